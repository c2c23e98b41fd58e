"""Appointment Lifecycle Service.

Owns every status change of an appointment and the records written with it.

Transition table:

    Scheduled --complete--> Completed   (+ Consultation, + N Prescriptions)
    Scheduled --cancel----> Cancelled

Completed and Cancelled are terminal. Completion writes the status change,
the consultation and all prescriptions in one transaction: either all of them
are committed or none is.
"""
from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import Settings
from ..core.exceptions import (
    AppointmentNotFoundError,
    InvalidDateError,
    InvalidTransitionError,
    NotFoundError,
    PartialWriteFailureError,
    SlotUnavailableError,
    StoreFailureError,
)
from ..models.appointment import Appointment, Prescription
from ..models.enums import AppointmentStatus, PrescriptionStatus, UserRole
from ..repositories.appointment_repository import AppointmentRepository
from ..repositories.clinic_repository import ClinicRepository
from ..repositories.user_repository import UserRepository

if TYPE_CHECKING:
    from ..core.gate import Principal
    from ..schemas.appointment import MedicationItem

log = structlog.get_logger(__name__)


# =============================================================================
# Dates & transitions
# =============================================================================

# RFC 3339 with and without fractional seconds ("Z" or a numeric offset).
_RFC3339_LAYOUTS = ("%Y-%m-%dT%H:%M:%S%z", "%Y-%m-%dT%H:%M:%S.%f%z")
# HTML datetime-local input; no zone, read as UTC.
_LOCAL_LAYOUT = "%Y-%m-%dT%H:%M"

ALLOWED_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.SCHEDULED: frozenset(
        {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED}
    ),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
}


def parse_appointment_date(value: str) -> datetime:
    """Parse a booking date and normalise it to an aware UTC datetime.

    Raises:
        InvalidDateError: the value matches none of the accepted layouts
    """
    if not isinstance(value, str):
        raise InvalidDateError(str(value))
    for layout in _RFC3339_LAYOUTS:
        try:
            return datetime.strptime(value, layout).astimezone(UTC)
        except ValueError:
            continue
    try:
        return datetime.strptime(value, _LOCAL_LAYOUT).replace(tzinfo=UTC)
    except ValueError as exc:
        raise InvalidDateError(value) from exc


def can_transition(current: str, target: AppointmentStatus) -> bool:
    try:
        state = AppointmentStatus(current)
    except ValueError:
        return False
    return target in ALLOWED_TRANSITIONS.get(state, frozenset())


def _check_transition(appointment: Appointment, target: AppointmentStatus) -> None:
    if not can_transition(appointment.status, target):
        raise InvalidTransitionError(appointment.id, appointment.status, target.value)


# =============================================================================
# Service
# =============================================================================


class AppointmentService:
    """Booking, completion, cancellation and the read views built on them."""

    def __init__(self, session: AsyncSession, settings: Settings) -> None:
        self.session = session
        self.settings = settings
        self.appointments = AppointmentRepository(session)
        self.clinic = ClinicRepository(session)
        self.users = UserRepository(session)

    async def _get_or_404(self, appointment_id: int) -> Appointment:
        appointment = await self.appointments.get_appointment(appointment_id)
        if appointment is None:
            raise AppointmentNotFoundError(appointment_id)
        return appointment

    async def _claim(self, appointment: Appointment, target: AppointmentStatus) -> None:
        """Apply an allowed transition with a conditional UPDATE on the current status.

        When a concurrent request moved the row first the UPDATE matches
        nothing: the transaction is rolled back and the transition is refused
        against the status that request left behind.
        """
        appointment_id = appointment.id
        current = AppointmentStatus(appointment.status)
        if await self.appointments.set_status_if(appointment_id, current, target):
            return

        await self.session.rollback()
        latest = await self._get_or_404(appointment_id)
        log.warning(
            "appointment_transition_lost",
            appointment_id=latest.id,
            expected=current.value,
            found=latest.status,
            target=target.value,
        )
        raise InvalidTransitionError(latest.id, latest.status, target.value)

    async def _commit(self, event: str, **context: Any) -> None:
        try:
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            log.error(f"{event}_failed", error=str(exc), **context)
            raise StoreFailureError(
                message="Failed to save appointment",
                details={"reason": str(exc)},
            ) from exc

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def book(self, patient_id: int, doctor_id: int, date_value: str) -> Appointment:
        """Create a Scheduled appointment for ``patient_id`` with ``doctor_id``."""
        when = parse_appointment_date(date_value)

        lock = not self.settings.ALLOW_DOUBLE_BOOKING
        if await self.clinic.get_doctor(doctor_id, for_update=lock) is None:
            raise NotFoundError(
                message=f"Doctor not found: {doctor_id}",
                error_code="DOCTOR_NOT_FOUND",
                resource_type="doctor",
                resource_id=doctor_id,
            )
        if await self.users.get_patient_profile(patient_id) is None:
            raise NotFoundError(
                message=f"Patient not found: {patient_id}",
                error_code="PATIENT_NOT_FOUND",
                resource_type="patient",
                resource_id=patient_id,
            )
        if lock:
            clash = await self.appointments.find_scheduled_at(doctor_id, when)
            if clash is not None:
                raise SlotUnavailableError(doctor_id, when.isoformat())

        try:
            appointment = await self.appointments.add_appointment(patient_id, doctor_id, when)
        except SQLAlchemyError as exc:
            await self.session.rollback()
            log.error("appointment_book_failed", doctor_id=doctor_id, error=str(exc))
            raise StoreFailureError(
                message="Failed to book appointment",
                details={"reason": str(exc)},
            ) from exc
        await self._commit("appointment_book", doctor_id=doctor_id)

        log.info(
            "appointment_booked",
            appointment_id=appointment.id,
            patient_id=patient_id,
            doctor_id=doctor_id,
            appointment_date=when.isoformat(),
        )
        return appointment

    async def complete(
        self,
        appointment_id: int,
        diagnosis: str,
        notes: str,
        medications: Iterable[MedicationItem] = (),
    ) -> Appointment:
        """Complete a Scheduled appointment, recording its consultation and prescriptions.

        All writes share one transaction. If any of them fails the transaction
        is rolled back, the appointment stays Scheduled and
        PartialWriteFailureError is raised.
        """
        appointment = await self._get_or_404(appointment_id)
        _check_transition(appointment, AppointmentStatus.COMPLETED)

        step = "appointment_status"
        issued = 0
        try:
            await self._claim(appointment, AppointmentStatus.COMPLETED)

            step = "consultation"
            consultation = await self.appointments.add_consultation(
                appointment_id, diagnosis, notes
            )

            for index, item in enumerate(medications):
                step = f"prescription[{index}]"
                await self.appointments.add_prescription(
                    consultation.id, item.medication, item.dosage
                )
                issued += 1

            step = "commit"
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            log.error(
                "appointment_complete_rolled_back",
                appointment_id=appointment_id,
                failed_step=step,
                error=str(exc),
            )
            raise PartialWriteFailureError(
                details={
                    "appointment_id": appointment_id,
                    "failed_step": step,
                    "reason": str(exc),
                }
            ) from exc

        log.info(
            "appointment_completed",
            appointment_id=appointment_id,
            consultation_id=consultation.id,
            prescriptions=issued,
        )
        return appointment

    async def cancel(self, appointment_id: int) -> Appointment:
        appointment = await self._get_or_404(appointment_id)
        _check_transition(appointment, AppointmentStatus.CANCELLED)

        try:
            await self._claim(appointment, AppointmentStatus.CANCELLED)
        except SQLAlchemyError as exc:
            await self.session.rollback()
            log.error("appointment_cancel_failed", appointment_id=appointment_id, error=str(exc))
            raise StoreFailureError(
                message="Failed to save appointment",
                details={"reason": str(exc)},
            ) from exc
        await self._commit("appointment_cancel", appointment_id=appointment_id)
        log.info("appointment_cancelled", appointment_id=appointment_id)
        return appointment

    async def delete(self, appointment_id: int) -> None:
        """Soft-delete an appointment in any status."""
        appointment = await self._get_or_404(appointment_id)
        appointment.soft_delete()
        await self._commit("appointment_delete", appointment_id=appointment_id)
        log.info("appointment_deleted", appointment_id=appointment_id)

    # -------------------------------------------------------------------------
    # Read views
    # -------------------------------------------------------------------------

    async def history(self, patient_id: int) -> dict[str, Sequence[Any]]:
        """Appointments and prescriptions of one patient, newest first."""
        appointments = await self.appointments.list_by_patient(patient_id)
        prescriptions = await self.appointments.list_prescriptions_by_patient(patient_id)
        return {"appointments": appointments, "prescriptions": prescriptions}

    async def list_for_principal(self, principal: Principal) -> list[Appointment]:
        """Appointments visible to the caller.

        admin: every appointment. doctor: the ones they run plus the ones they
        booked as a patient. patient: their own.
        """
        if principal.role == UserRole.ADMIN.value:
            return list(await self.appointments.list_all())

        own = list(await self.appointments.list_by_patient(principal.id))
        if principal.role != UserRole.DOCTOR.value:
            return own

        merged = {a.id: a for a in await self.appointments.list_by_doctor(principal.id)}
        for appointment in own:
            merged.setdefault(appointment.id, appointment)
        return sorted(
            merged.values(),
            key=lambda a: (a.appointment_date, a.id),
            reverse=True,
        )

    async def prescriptions_for_principal(self, principal: Principal) -> list[Prescription]:
        """Prescriptions issued to the caller; doctors also see the ones they issued."""
        own = list(await self.appointments.list_prescriptions_by_patient(principal.id))
        if principal.role != UserRole.DOCTOR.value:
            return own

        issued = await self.appointments.list_prescriptions_by_doctor(principal.id)
        merged = {p.id: p for p in issued}
        for prescription in own:
            merged.setdefault(prescription.id, prescription)
        return sorted(merged.values(), key=lambda p: (p.created_at, p.id), reverse=True)

    async def update_prescription_status(
        self,
        prescription_id: int,
        status: PrescriptionStatus | str,
    ) -> Prescription:
        status = PrescriptionStatus(status)
        prescription = await self.appointments.get_prescription(prescription_id)
        if prescription is None:
            raise NotFoundError(
                message=f"Prescription not found: {prescription_id}",
                error_code="PRESCRIPTION_NOT_FOUND",
                resource_type="prescription",
                resource_id=prescription_id,
            )

        previous = prescription.status
        prescription.status = status.value
        await self._commit("prescription_update", prescription_id=prescription_id)
        log.info(
            "prescription_status_changed",
            prescription_id=prescription_id,
            old_status=previous,
            new_status=status.value,
        )
        return prescription
