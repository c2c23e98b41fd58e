"""Shared Enums for the application.

Defines enum types used across models and schemas.
"""
from enum import Enum


class UserRole(str, Enum):
    """User role enum for authorization.

    Attributes:
        ADMIN: Full system access, manages users, roles and the catalog
        DOCTOR: Sees patients, completes and cancels appointments
        PATIENT: Books and cancels own appointments (default for new users)
    """
    ADMIN = "admin"
    DOCTOR = "doctor"
    PATIENT = "patient"

    @classmethod
    def default(cls) -> "UserRole":
        """Return the default role for new users."""
        return cls.PATIENT


class AppointmentStatus(str, Enum):
    """Appointment lifecycle states. Completed and Cancelled are terminal."""
    SCHEDULED = "Scheduled"
    CANCELLED = "Cancelled"
    COMPLETED = "Completed"


class PrescriptionStatus(str, Enum):
    ISSUED = "Issued"
    DISPENSED = "Dispensed"
