"""
Appointment lifecycle models.

    Appointment 1 --- 0..1 Consultation 1 --- * Prescription

A Consultation is only ever written while completing its Appointment, and the
Prescriptions of that consultation are written in the same transaction.
"""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db.session import Base
from .clinic import Doctor, Patient
from .enums import AppointmentStatus, PrescriptionStatus
from .mixins import SoftDeleteMixin, TimestampMixin, utcnow


class Appointment(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "appointments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    patient_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("patients.id"), nullable=False, index=True
    )
    doctor_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("doctors.id"), nullable=False, index=True
    )
    appointment_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=AppointmentStatus.SCHEDULED.value,
        index=True,
    )

    doctor: Mapped[Doctor] = relationship(Doctor, lazy="selectin")
    patient: Mapped[Patient] = relationship(Patient, lazy="selectin")

    __table_args__ = (
        Index("ix_appointments_doctor_date", "doctor_id", "appointment_date"),
    )

    def __repr__(self) -> str:
        return f"<Appointment(id={self.id}, status='{self.status}')>"


class Consultation(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "consultations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    appointment_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("appointments.id"), nullable=False, unique=True
    )
    diagnosis: Mapped[str] = mapped_column(Text, nullable=False, default="")
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    appointment: Mapped[Appointment] = relationship(Appointment, lazy="selectin")


class Prescription(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "prescriptions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    consultation_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("consultations.id"), nullable=False, index=True
    )
    medication: Mapped[str] = mapped_column(String(255), nullable=False)
    dosage: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=PrescriptionStatus.ISSUED.value,
    )

    consultation: Mapped[Consultation] = relationship(Consultation, lazy="selectin")
