"""
User Model (Principal).

SQLAlchemy 2.0 ORM model for the authenticated actor behind every request.

Design:
    - Email is the identity anchor: unique, lowercased, immutable after creation
    - subject_id is the issuer's stable subject ("sub"); set once, then frozen
    - Role-based: ADMIN, DOCTOR, PATIENT (PATIENT for first-seen identities)
    - Soft delete only: deleted_at marks removal, rows are never dropped
    - Role-specific data lives in the 1:1 Doctor / Patient profiles keyed by users.id
"""
from __future__ import annotations

from sqlalchemy import Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ..db.session import Base
from .enums import UserRole
from .mixins import SoftDeleteMixin, TimestampMixin


class User(TimestampMixin, SoftDeleteMixin, Base):
    """
    User entity for authentication and authorization.

    Attributes:
        id: Primary key (shared with the Doctor / Patient profile rows)
        email: Unique email address from the verified identity
        subject_id: Issuer subject; empty until the first verified login
        name: Display name, reconciled from the identity on login
        picture: Avatar URL, reconciled from the identity on login
        role: admin, doctor or patient
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    subject_id: Mapped[str | None] = mapped_column(
        String(255),
        unique=True,
        nullable=True,
        default=None,
        comment="External issuer subject (set-once)",
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    picture: Mapped[str] = mapped_column(String(1024), nullable=False, default="")

    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=UserRole.PATIENT.value,
        index=True,
        comment="User role: admin, doctor, patient",
    )

    __table_args__ = (
        Index("ix_users_role_deleted", "role", "deleted_at"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"
