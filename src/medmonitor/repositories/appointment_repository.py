"""Appointment Repository - appointments, consultations and prescriptions.

Write methods stage and flush; ``AppointmentService`` owns commit/rollback.
"""
from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.appointment import Appointment, Consultation, Prescription
from ..models.enums import AppointmentStatus, PrescriptionStatus
from ..models.mixins import utcnow


class AppointmentRepository:
    """Repository for the appointment aggregate."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # =========================================================================
    # APPOINTMENTS
    # =========================================================================

    async def get_appointment(self, appointment_id: int) -> Appointment | None:
        query = select(Appointment).where(
            Appointment.id == appointment_id,
            Appointment.deleted_at.is_(None),
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def find_scheduled_at(self, doctor_id: int, when: datetime) -> Appointment | None:
        query = select(Appointment).where(
            Appointment.doctor_id == doctor_id,
            Appointment.appointment_date == when,
            Appointment.status == AppointmentStatus.SCHEDULED.value,
            Appointment.deleted_at.is_(None),
        )
        result = await self.session.execute(query.limit(1))
        return result.scalar_one_or_none()

    async def list_by_patient(self, patient_id: int) -> Sequence[Appointment]:
        query = (
            select(Appointment)
            .where(Appointment.patient_id == patient_id, Appointment.deleted_at.is_(None))
            .order_by(Appointment.appointment_date.desc(), Appointment.id.desc())
        )
        result = await self.session.execute(query)
        return result.scalars().all()

    async def list_by_doctor(self, doctor_id: int) -> Sequence[Appointment]:
        query = (
            select(Appointment)
            .where(Appointment.doctor_id == doctor_id, Appointment.deleted_at.is_(None))
            .order_by(Appointment.appointment_date.desc(), Appointment.id.desc())
        )
        result = await self.session.execute(query)
        return result.scalars().all()

    async def list_all(self) -> Sequence[Appointment]:
        query = (
            select(Appointment)
            .where(Appointment.deleted_at.is_(None))
            .order_by(Appointment.appointment_date.desc(), Appointment.id.desc())
        )
        result = await self.session.execute(query)
        return result.scalars().all()

    async def add_appointment(
        self,
        patient_id: int,
        doctor_id: int,
        appointment_date: datetime,
    ) -> Appointment:
        appointment = Appointment(
            patient_id=patient_id,
            doctor_id=doctor_id,
            appointment_date=appointment_date,
            status=AppointmentStatus.SCHEDULED.value,
        )
        self.session.add(appointment)
        await self.session.flush()
        return appointment

    async def set_status_if(
        self,
        appointment_id: int,
        expected: AppointmentStatus,
        status: AppointmentStatus,
    ) -> bool:
        """Move a live appointment from ``expected`` to ``status`` in one UPDATE.

        Returns False when the row is gone or no longer holds ``expected``.
        """
        query = (
            update(Appointment)
            .where(
                Appointment.id == appointment_id,
                Appointment.status == expected.value,
                Appointment.deleted_at.is_(None),
            )
            .values(status=status.value, updated_at=utcnow())
        )
        result = await self.session.execute(query)
        return result.rowcount == 1

    # =========================================================================
    # CONSULTATIONS & PRESCRIPTIONS
    # =========================================================================

    async def add_consultation(
        self,
        appointment_id: int,
        diagnosis: str,
        notes: str,
    ) -> Consultation:
        consultation = Consultation(
            appointment_id=appointment_id,
            diagnosis=diagnosis,
            notes=notes,
        )
        self.session.add(consultation)
        await self.session.flush()
        return consultation

    async def get_consultation_by_appointment(self, appointment_id: int) -> Consultation | None:
        query = select(Consultation).where(
            Consultation.appointment_id == appointment_id,
            Consultation.deleted_at.is_(None),
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def add_prescription(
        self,
        consultation_id: int,
        medication: str,
        dosage: str,
    ) -> Prescription:
        prescription = Prescription(
            consultation_id=consultation_id,
            medication=medication,
            dosage=dosage,
            status=PrescriptionStatus.ISSUED.value,
        )
        self.session.add(prescription)
        await self.session.flush()
        return prescription

    async def get_prescription(self, prescription_id: int) -> Prescription | None:
        query = select(Prescription).where(
            Prescription.id == prescription_id,
            Prescription.deleted_at.is_(None),
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def list_prescriptions_by_consultation(self, consultation_id: int) -> Sequence[Prescription]:
        query = (
            select(Prescription)
            .where(
                Prescription.consultation_id == consultation_id,
                Prescription.deleted_at.is_(None),
            )
            .order_by(Prescription.id)
        )
        result = await self.session.execute(query)
        return result.scalars().all()

    async def list_prescriptions_by_patient(self, patient_id: int) -> Sequence[Prescription]:
        """Prescriptions reached through consultation -> appointment, newest first."""
        query = (
            select(Prescription)
            .join(Consultation, Consultation.id == Prescription.consultation_id)
            .join(Appointment, Appointment.id == Consultation.appointment_id)
            .where(
                Appointment.patient_id == patient_id,
                Prescription.deleted_at.is_(None),
            )
            .order_by(Prescription.created_at.desc(), Prescription.id.desc())
        )
        result = await self.session.execute(query)
        return result.scalars().all()

    async def list_prescriptions_by_doctor(self, doctor_id: int) -> Sequence[Prescription]:
        query = (
            select(Prescription)
            .join(Consultation, Consultation.id == Prescription.consultation_id)
            .join(Appointment, Appointment.id == Consultation.appointment_id)
            .where(
                Appointment.doctor_id == doctor_id,
                Prescription.deleted_at.is_(None),
            )
            .order_by(Prescription.created_at.desc(), Prescription.id.desc())
        )
        result = await self.session.execute(query)
        return result.scalars().all()
