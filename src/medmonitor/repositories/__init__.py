"""Repositories package - Data access layer."""
from .appointment_repository import AppointmentRepository
from .clinic_repository import ClinicRepository
from .policy_repository import PolicyRepository, seed_policies
from .user_repository import UserRepository

__all__ = [
    "AppointmentRepository",
    "ClinicRepository",
    "PolicyRepository",
    "UserRepository",
    "seed_policies",
]
