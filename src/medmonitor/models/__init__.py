"""Models package - SQLAlchemy ORM models."""
from .appointment import Appointment, Consultation, Prescription
from .clinic import Department, Doctor, Patient
from .policy import PolicyRule
from .user import User

__all__ = [
    "Appointment",
    "Consultation",
    "Department",
    "Doctor",
    "Patient",
    "PolicyRule",
    "Prescription",
    "User",
]
