"""User Repository - Data access layer for principals and their role profiles.

Write methods stage and flush only; the calling service owns the transaction
and decides when to commit, so several writes can land in one unit of work.
"""
from __future__ import annotations

from collections.abc import Sequence

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.clinic import Doctor, Patient
from ..models.enums import UserRole
from ..models.user import User

log = structlog.get_logger(__name__)


class UserRepository:
    """Repository for User and role-profile rows."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize with database session."""
        self.session = session

    # =========================================================================
    # READ OPERATIONS
    # =========================================================================

    async def get_by_id(self, user_id: int) -> User | None:
        query = select(User).where(User.id == user_id, User.deleted_at.is_(None))
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> User | None:
        """Get user by email address (case-insensitive, stored lowercase)."""
        query = select(User).where(User.email == email.strip().lower(), User.deleted_at.is_(None))
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_all(
        self,
        skip: int = 0,
        limit: int = 100,
        role: str | None = None,
    ) -> Sequence[User]:
        """Get all live users with optional role filter."""
        query = select(User).where(User.deleted_at.is_(None))
        if role:
            query = query.where(User.role == role)
        query = query.order_by(User.id).offset(skip).limit(limit)
        result = await self.session.execute(query)
        return result.scalars().all()

    async def count_all(self, role: str | None = None) -> int:
        """Count users matching the same filters as get_all."""
        query = select(func.count(User.id)).where(User.deleted_at.is_(None))
        if role:
            query = query.where(User.role == role)
        result = await self.session.execute(query)
        return result.scalar_one()

    async def get_by_emails(self, emails: Sequence[str]) -> Sequence[User]:
        if not emails:
            return []
        query = select(User).where(
            User.email.in_([e.lower() for e in emails]),
            User.deleted_at.is_(None),
        )
        result = await self.session.execute(query)
        return result.scalars().all()

    async def get_doctor_profile(self, user_id: int) -> Doctor | None:
        result = await self.session.execute(select(Doctor).where(Doctor.id == user_id))
        return result.scalar_one_or_none()

    async def get_patient_profile(self, user_id: int) -> Patient | None:
        result = await self.session.execute(select(Patient).where(Patient.id == user_id))
        return result.scalar_one_or_none()

    # =========================================================================
    # WRITE OPERATIONS (flush only)
    # =========================================================================

    async def add(
        self,
        email: str,
        name: str = "",
        picture: str = "",
        subject_id: str | None = None,
        role: str = UserRole.default().value,
    ) -> User:
        """Stage a new user and flush to obtain its id."""
        user = User(
            email=email.strip().lower(),
            name=name,
            picture=picture,
            subject_id=subject_id or None,
            role=role,
        )
        self.session.add(user)
        await self.session.flush()
        log.debug("user_staged", user_id=user.id, role=role)
        return user

    async def add_patient_profile(self, user_id: int) -> Patient:
        patient = Patient(id=user_id)
        self.session.add(patient)
        await self.session.flush()
        return patient

    async def add_doctor_profile(
        self,
        user_id: int,
        department_id: int | None = None,
        specialization: str | None = None,
    ) -> Doctor:
        doctor = Doctor(id=user_id, department_id=department_id)
        if specialization:
            doctor.specialization = specialization
        self.session.add(doctor)
        await self.session.flush()
        return doctor
