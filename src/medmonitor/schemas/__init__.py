"""Schemas package - Pydantic request/response models."""
from .appointment import (
    AppointmentComplete,
    AppointmentCreate,
    AppointmentDetailResponse,
    AppointmentResponse,
    MedicationItem,
    PatientHistoryResponse,
    PrescriptionDetailResponse,
    PrescriptionResponse,
    PrescriptionStatusUpdate,
)
from .clinic import (
    DepartmentCreate,
    DepartmentResponse,
    DepartmentUpdate,
    DoctorResponse,
    PatientResponse,
)
from .user import ProfileResponse, UserListResponse, UserResponse, UserRoleUpdate

__all__ = [
    "AppointmentComplete",
    "AppointmentCreate",
    "AppointmentDetailResponse",
    "AppointmentResponse",
    "MedicationItem",
    "PatientHistoryResponse",
    "PrescriptionDetailResponse",
    "PrescriptionResponse",
    "PrescriptionStatusUpdate",
    "DepartmentCreate",
    "DepartmentResponse",
    "DepartmentUpdate",
    "DoctorResponse",
    "PatientResponse",
    "ProfileResponse",
    "UserListResponse",
    "UserResponse",
    "UserRoleUpdate",
]
