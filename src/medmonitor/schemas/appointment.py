"""
Appointment Schemas.

Mutation endpoints answer with the flat ``*Response`` models; list and
history views use the ``*DetailResponse`` models that embed the related
doctor, patient and consultation.
"""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from ..models.enums import PrescriptionStatus
from .clinic import DoctorResponse, PatientResponse


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class AppointmentCreate(BaseModel):
    """Booking request. The patient is always the caller."""

    doctor_id: int = Field(..., gt=0, description="Doctor (user) ID")
    date: str = Field(
        ...,
        description="RFC 3339 timestamp, or YYYY-MM-DDTHH:MM read as UTC",
        examples=["2025-03-10T09:00:00Z", "2025-03-10T09:00"],
    )


class MedicationItem(BaseModel):
    medication: str = Field(..., min_length=1, max_length=255, examples=["Amoxicillin"])
    dosage: str = Field("", max_length=255, examples=["500mg 3x/day"])


class AppointmentComplete(BaseModel):
    diagnosis: str = Field("", description="Consultation diagnosis")
    notes: str = Field("", description="Consultation notes")
    medications: list[MedicationItem] = Field(
        default_factory=list,
        description="One Issued prescription is created per item",
    )


class PrescriptionStatusUpdate(BaseModel):
    status: PrescriptionStatus = Field(..., examples=["Dispensed"])


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class AppointmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    doctor_id: int
    appointment_date: datetime
    status: str
    created_at: datetime


class AppointmentDetailResponse(AppointmentResponse):
    doctor: DoctorResponse | None = None
    patient: PatientResponse | None = None


class ConsultationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    appointment_id: int
    diagnosis: str
    notes: str
    date: datetime


class PrescriptionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    consultation_id: int
    medication: str
    dosage: str
    status: str
    created_at: datetime


class PrescriptionDetailResponse(PrescriptionResponse):
    consultation: ConsultationResponse | None = None


class PatientHistoryResponse(BaseModel):
    """Read-only composite view of one patient."""

    patient_id: int
    appointments: list[AppointmentDetailResponse] = Field(default_factory=list)
    prescriptions: list[PrescriptionDetailResponse] = Field(default_factory=list)
