"""
Appointment, Prescription & History API Endpoints.

- GET    /appointments                  appointments visible to the caller
- POST   /appointments                  book (the caller is the patient)
- PUT    /appointments/{id}/complete    complete with consultation + prescriptions
- PUT    /appointments/{id}/cancel      cancel
- DELETE /appointments/{id}             soft delete
- GET    /prescriptions                 prescriptions visible to the caller
- PUT    /prescriptions/{id}            Issued -> Dispensed (or back)
- GET    /patients/{id}/history         appointments + prescriptions of a patient
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ....core.config import AppSettings
from ....core.gate import CurrentPrincipal
from ....core.responses import GenericResponse, MessageResponse
from ....db.session import get_db
from ....schemas.appointment import (
    AppointmentComplete,
    AppointmentCreate,
    AppointmentDetailResponse,
    AppointmentResponse,
    PatientHistoryResponse,
    PrescriptionDetailResponse,
    PrescriptionResponse,
    PrescriptionStatusUpdate,
)
from ....services.appointment_service import AppointmentService

router = APIRouter()


async def get_appointment_service(
    settings: AppSettings,
    db: AsyncSession = Depends(get_db),
) -> AppointmentService:
    return AppointmentService(db, settings)


# =============================================================================
# APPOINTMENTS
# =============================================================================

@router.get(
    "/appointments",
    response_model=list[AppointmentDetailResponse],
    summary="List my appointments",
    description=(
        "Admins see every appointment, doctors the ones they run plus their own "
        "bookings, patients their own bookings. Newest first."
    ),
)
async def list_appointments(
    principal: CurrentPrincipal,
    service: AppointmentService = Depends(get_appointment_service),
) -> list[AppointmentDetailResponse]:
    appointments = await service.list_for_principal(principal)
    return [AppointmentDetailResponse.model_validate(a) for a in appointments]


@router.post(
    "/appointments",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Book an appointment",
)
async def book_appointment(
    payload: AppointmentCreate,
    principal: CurrentPrincipal,
    service: AppointmentService = Depends(get_appointment_service),
) -> AppointmentResponse:
    appointment = await service.book(principal.id, payload.doctor_id, payload.date)
    return AppointmentResponse.model_validate(appointment)


@router.put(
    "/appointments/{appointment_id}/complete",
    response_model=GenericResponse[AppointmentResponse],
    summary="Complete an appointment",
    description="Writes the consultation and one Issued prescription per medication atomically.",
)
async def complete_appointment(
    appointment_id: int,
    payload: AppointmentComplete,
    service: AppointmentService = Depends(get_appointment_service),
) -> GenericResponse[AppointmentResponse]:
    appointment = await service.complete(
        appointment_id,
        diagnosis=payload.diagnosis,
        notes=payload.notes,
        medications=payload.medications,
    )
    return GenericResponse(
        message="Appointment completed successfully",
        data=AppointmentResponse.model_validate(appointment),
    )


@router.put(
    "/appointments/{appointment_id}/cancel",
    response_model=GenericResponse[AppointmentResponse],
    summary="Cancel an appointment",
)
async def cancel_appointment(
    appointment_id: int,
    service: AppointmentService = Depends(get_appointment_service),
) -> GenericResponse[AppointmentResponse]:
    appointment = await service.cancel(appointment_id)
    return GenericResponse(
        message="Appointment cancelled",
        data=AppointmentResponse.model_validate(appointment),
    )


@router.delete(
    "/appointments/{appointment_id}",
    response_model=MessageResponse,
    summary="Delete an appointment",
)
async def delete_appointment(
    appointment_id: int,
    service: AppointmentService = Depends(get_appointment_service),
) -> MessageResponse:
    await service.delete(appointment_id)
    return MessageResponse(message="Appointment deleted")


# =============================================================================
# PRESCRIPTIONS
# =============================================================================

@router.get(
    "/prescriptions",
    response_model=list[PrescriptionDetailResponse],
    summary="List my prescriptions",
)
async def list_prescriptions(
    principal: CurrentPrincipal,
    service: AppointmentService = Depends(get_appointment_service),
) -> list[PrescriptionDetailResponse]:
    prescriptions = await service.prescriptions_for_principal(principal)
    return [PrescriptionDetailResponse.model_validate(p) for p in prescriptions]


@router.put(
    "/prescriptions/{prescription_id}",
    response_model=GenericResponse[PrescriptionResponse],
    summary="Update prescription status",
)
async def update_prescription(
    prescription_id: int,
    payload: PrescriptionStatusUpdate,
    service: AppointmentService = Depends(get_appointment_service),
) -> GenericResponse[PrescriptionResponse]:
    prescription = await service.update_prescription_status(prescription_id, payload.status)
    return GenericResponse(
        message="Prescription updated",
        data=PrescriptionResponse.model_validate(prescription),
    )


# =============================================================================
# HISTORY
# =============================================================================

@router.get(
    "/patients/{patient_id}/history",
    response_model=PatientHistoryResponse,
    summary="Patient history",
)
async def patient_history(
    patient_id: int,
    service: AppointmentService = Depends(get_appointment_service),
) -> PatientHistoryResponse:
    history = await service.history(patient_id)
    return PatientHistoryResponse(
        patient_id=patient_id,
        appointments=[AppointmentDetailResponse.model_validate(a) for a in history["appointments"]],
        prescriptions=[
            PrescriptionDetailResponse.model_validate(p) for p in history["prescriptions"]
        ],
    )
