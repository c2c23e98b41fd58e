"""Principal Service.

Turns a verified identity into a persisted principal and manages role changes.

Reconciliation on every authenticated request:
- unknown email: create the user as ``patient`` together with an empty
  Patient profile, committed as one unit
- known email: refresh ``name``/``picture`` when the issuer sends a different
  non-empty value; record ``subject_id`` the first time one is seen
- nothing changed: no write at all
"""
from __future__ import annotations

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import NotFoundError, StoreFailureError
from ..core.identity import VerifiedIdentity
from ..models.enums import UserRole
from ..models.user import User
from ..repositories.clinic_repository import ClinicRepository
from ..repositories.user_repository import UserRepository

log = structlog.get_logger(__name__)


def _reconcile(user: User, identity: VerifiedIdentity) -> bool:
    """Apply identity claims to ``user`` in place. Returns True if anything changed."""
    changed = False
    if identity.name and identity.name != user.name:
        user.name = identity.name
        changed = True
    if identity.picture and identity.picture != user.picture:
        user.picture = identity.picture
        changed = True
    if identity.subject_id and not user.subject_id:
        user.subject_id = identity.subject_id
        changed = True
    return changed


class PrincipalService:
    """Get-or-create of principals plus admin role changes."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.users = UserRepository(session)

    async def resolve(self, identity: VerifiedIdentity) -> User:
        """Return the live user for ``identity``, creating or refreshing it as needed.

        Raises:
            StoreFailureError: any persistence error (the unit of work is rolled back)
        """
        try:
            user = await self.users.get_by_email(identity.email)
            if user is None:
                return await self._create(identity)

            if _reconcile(user, identity):
                await self.session.commit()
                log.info("principal_reconciled", user_id=user.id)
            return user
        except SQLAlchemyError as exc:
            await self.session.rollback()
            log.error("principal_resolve_failed", email=identity.email, error=str(exc))
            raise StoreFailureError(details={"reason": str(exc)}) from exc

    async def _create(self, identity: VerifiedIdentity) -> User:
        try:
            user = await self.users.add(
                email=identity.email,
                name=identity.name,
                picture=identity.picture,
                subject_id=identity.subject_id,
                role=UserRole.default().value,
            )
            await self.users.add_patient_profile(user.id)
            await self.session.commit()
        except IntegrityError:
            # A concurrent first login created the same email; use that row.
            await self.session.rollback()
            existing = await self.users.get_by_email(identity.email)
            if existing is None:
                raise
            log.info("principal_created_concurrently", user_id=existing.id)
            return existing

        log.info("principal_created", user_id=user.id, role=user.role)
        return user

    async def set_role(
        self,
        user_id: int,
        role: UserRole | str,
        department_id: int | None = None,
        specialization: str | None = None,
    ) -> User:
        """Change a user's role and make sure the matching profile exists.

        ``doctor`` creates the Doctor profile when missing, otherwise updates
        only the supplied department/specialization. ``patient`` creates an
        empty Patient profile when missing. Profiles of a previous role are
        kept. Calling it twice with the same arguments is a no-op the second time.
        """
        role = UserRole(role)
        user = await self.users.get_by_id(user_id)
        if user is None:
            raise NotFoundError(
                message=f"User not found: {user_id}",
                error_code="USER_NOT_FOUND",
                resource_type="user",
                resource_id=user_id,
            )
        if department_id is not None:
            department = await ClinicRepository(self.session).get_department(department_id)
            if department is None:
                raise NotFoundError(
                    message=f"Department not found: {department_id}",
                    error_code="DEPARTMENT_NOT_FOUND",
                    resource_type="department",
                    resource_id=department_id,
                )

        previous = user.role
        try:
            user.role = role.value
            if role is UserRole.DOCTOR:
                doctor = await self.users.get_doctor_profile(user.id)
                if doctor is None:
                    await self.users.add_doctor_profile(user.id, department_id, specialization)
                else:
                    if department_id is not None:
                        doctor.department_id = department_id
                    if specialization:
                        doctor.specialization = specialization
            elif role is UserRole.PATIENT:
                if await self.users.get_patient_profile(user.id) is None:
                    await self.users.add_patient_profile(user.id)
            await self.session.flush()
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            log.error("role_change_failed", user_id=user_id, role=role.value, error=str(exc))
            raise StoreFailureError(
                message="Failed to update user role",
                details={"reason": str(exc)},
            ) from exc

        log.info("user_role_changed", user_id=user.id, old_role=previous, new_role=role.value)
        return user
