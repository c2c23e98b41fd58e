"""Catalog Service - departments and the doctor / patient directories."""
from __future__ import annotations

from collections.abc import Sequence

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import ConflictError, NotFoundError, StoreFailureError
from ..models.clinic import Department, Doctor, Patient
from ..repositories.clinic_repository import ClinicRepository

log = structlog.get_logger(__name__)

DEFAULT_DEPARTMENTS: tuple[tuple[str, str], ...] = (
    ("Cardiology", "Heart and cardiovascular system"),
    ("Neurology", "Brain and nervous system"),
)


class CatalogService:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.repo = ClinicRepository(session)

    async def _commit(self, event: str, **context) -> None:
        try:
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            log.warning(f"{event}_conflict", error=str(exc), **context)
            raise ConflictError(
                message="A department with this name already exists",
                error_code="DEPARTMENT_EXISTS",
                details=context,
            ) from exc
        except SQLAlchemyError as exc:
            await self.session.rollback()
            log.error(f"{event}_failed", error=str(exc), **context)
            raise StoreFailureError(
                message="Failed to save department",
                details={"reason": str(exc)},
            ) from exc

    async def _get_department_or_404(self, department_id: int) -> Department:
        department = await self.repo.get_department(department_id)
        if department is None:
            raise NotFoundError(
                message=f"Department not found: {department_id}",
                error_code="DEPARTMENT_NOT_FOUND",
                resource_type="department",
                resource_id=department_id,
            )
        return department

    # Departments --------------------------------------------------------------

    async def list_departments(self) -> Sequence[Department]:
        return await self.repo.list_departments()

    async def create_department(self, name: str, description: str = "") -> Department:
        if await self.repo.get_department_by_name(name) is not None:
            raise ConflictError(
                message=f"Department already exists: {name}",
                error_code="DEPARTMENT_EXISTS",
                details={"name": name},
            )
        try:
            department = await self.repo.add_department(name, description)
        except IntegrityError as exc:
            await self.session.rollback()
            raise ConflictError(
                message=f"Department already exists: {name}",
                error_code="DEPARTMENT_EXISTS",
                details={"name": name},
            ) from exc
        await self._commit("department_create", name=name)
        log.info("department_created", department_id=department.id, name=name)
        return department

    async def update_department(
        self,
        department_id: int,
        name: str | None = None,
        description: str | None = None,
    ) -> Department:
        """Update the supplied fields of a department in place."""
        department = await self._get_department_or_404(department_id)
        if name is not None and name != department.name:
            existing = await self.repo.get_department_by_name(name)
            if existing is not None and existing.id != department_id:
                raise ConflictError(
                    message=f"Department already exists: {name}",
                    error_code="DEPARTMENT_EXISTS",
                    details={"name": name},
                )
            department.name = name
        if description is not None:
            department.description = description
        await self._commit("department_update", department_id=department_id)
        log.info("department_updated", department_id=department_id)
        return department

    async def delete_department(self, department_id: int) -> None:
        department = await self._get_department_or_404(department_id)
        department.soft_delete()
        await self._commit("department_delete", department_id=department_id)
        log.info("department_deleted", department_id=department_id)

    async def seed_default_departments(self) -> int:
        """Insert the default departments when the catalog is empty."""
        if await self.repo.count_departments():
            return 0
        for name, description in DEFAULT_DEPARTMENTS:
            await self.repo.add_department(name, description)
        await self._commit("department_seed")
        log.info("departments_seeded", count=len(DEFAULT_DEPARTMENTS))
        return len(DEFAULT_DEPARTMENTS)

    # Directories --------------------------------------------------------------

    async def list_doctors(self) -> Sequence[Doctor]:
        return await self.repo.list_doctors()

    async def list_patients(self) -> Sequence[Patient]:
        return await self.repo.list_patients()
