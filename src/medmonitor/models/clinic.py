"""
Clinic catalog models: departments and the Doctor / Patient role profiles.

A role profile shares its primary key with ``users.id``. Profiles are created
lazily the first time a user is given the role and are kept when the role
changes away.
"""
from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import Date, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db.session import Base
from .mixins import SoftDeleteMixin, TimestampMixin

if TYPE_CHECKING:
    from .user import User


DEFAULT_SPECIALIZATION = "Pending..."


class Department(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "departments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    def __repr__(self) -> str:
        return f"<Department(id={self.id}, name='{self.name}')>"


class Doctor(TimestampMixin, SoftDeleteMixin, Base):
    """Doctor profile (1:1 with a User holding the doctor role)."""

    __tablename__ = "doctors"

    id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id"),
        primary_key=True,
        autoincrement=False,
    )
    department_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("departments.id"),
        nullable=True,
        default=None,
        index=True,
    )
    specialization: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default=DEFAULT_SPECIALIZATION,
    )

    user: Mapped["User"] = relationship("User", lazy="selectin")
    department: Mapped["Department | None"] = relationship("Department", lazy="selectin")

    def __repr__(self) -> str:
        return f"<Doctor(id={self.id}, department_id={self.department_id})>"


class Patient(TimestampMixin, SoftDeleteMixin, Base):
    """Patient profile (1:1 with a User; every first-seen user gets one)."""

    __tablename__ = "patients"

    id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id"),
        primary_key=True,
        autoincrement=False,
    )
    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True, default=None)
    gender: Mapped[str] = mapped_column(String(32), nullable=False, default="")

    user: Mapped["User"] = relationship("User", lazy="selectin")

    def __repr__(self) -> str:
        return f"<Patient(id={self.id})>"
