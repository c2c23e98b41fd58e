"""Clinic Repository - departments and the doctor / patient directories."""
from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.clinic import Department, Doctor, Patient
from ..models.enums import UserRole
from ..models.user import User


class ClinicRepository:
    """Read/write access to the clinic catalog. Writes flush only."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # Departments --------------------------------------------------------------

    async def list_departments(self) -> Sequence[Department]:
        query = select(Department).where(Department.deleted_at.is_(None)).order_by(Department.name)
        result = await self.session.execute(query)
        return result.scalars().all()

    async def get_department(self, department_id: int) -> Department | None:
        query = select(Department).where(
            Department.id == department_id,
            Department.deleted_at.is_(None),
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_department_by_name(self, name: str) -> Department | None:
        query = select(Department).where(Department.name == name, Department.deleted_at.is_(None))
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def count_departments(self) -> int:
        query = select(func.count(Department.id)).where(Department.deleted_at.is_(None))
        result = await self.session.execute(query)
        return result.scalar_one()

    async def add_department(self, name: str, description: str = "") -> Department:
        department = Department(name=name, description=description)
        self.session.add(department)
        await self.session.flush()
        return department

    # Doctors / patients -------------------------------------------------------

    async def list_doctors(self) -> Sequence[Doctor]:
        query = (
            select(Doctor)
            .join(User, User.id == Doctor.id)
            .where(
                Doctor.deleted_at.is_(None),
                User.deleted_at.is_(None),
                User.role == UserRole.DOCTOR.value,
            )
            .order_by(Doctor.id)
        )
        result = await self.session.execute(query)
        return result.scalars().all()

    async def get_doctor(self, doctor_id: int, *, for_update: bool = False) -> Doctor | None:
        """Doctor profile of a live user who currently holds the doctor role.

        ``for_update`` locks the profile row until the transaction ends, which
        serialises bookings against the same doctor.
        """
        query = (
            select(Doctor)
            .join(User, User.id == Doctor.id)
            .where(
                Doctor.id == doctor_id,
                Doctor.deleted_at.is_(None),
                User.deleted_at.is_(None),
                User.role == UserRole.DOCTOR.value,
            )
        )
        if for_update:
            query = query.with_for_update(of=Doctor)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def list_patients(self) -> Sequence[Patient]:
        """Patients whose user currently holds the patient role."""
        query = (
            select(Patient)
            .join(User, User.id == Patient.id)
            .where(
                Patient.deleted_at.is_(None),
                User.deleted_at.is_(None),
                User.role == UserRole.PATIENT.value,
            )
            .order_by(Patient.id)
        )
        result = await self.session.execute(query)
        return result.scalars().all()
