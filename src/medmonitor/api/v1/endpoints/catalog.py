"""
Clinic Catalog API Endpoints.

- GET/POST   /departments        list / create
- PUT/DELETE /departments/{id}   update / soft delete
- GET        /doctors            doctor directory
- GET        /patients           patient directory
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ....core.responses import GenericResponse, MessageResponse
from ....db.session import get_db
from ....schemas.clinic import (
    DepartmentCreate,
    DepartmentResponse,
    DepartmentUpdate,
    DoctorResponse,
    PatientResponse,
)
from ....services.catalog_service import CatalogService

router = APIRouter()


async def get_catalog_service(
    db: AsyncSession = Depends(get_db),
) -> CatalogService:
    return CatalogService(db)


# =============================================================================
# DEPARTMENTS
# =============================================================================

@router.get(
    "/departments",
    response_model=list[DepartmentResponse],
    summary="List departments",
)
async def list_departments(
    service: CatalogService = Depends(get_catalog_service),
) -> list[DepartmentResponse]:
    departments = await service.list_departments()
    return [DepartmentResponse.model_validate(d) for d in departments]


@router.post(
    "/departments",
    response_model=GenericResponse[DepartmentResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create department",
)
async def create_department(
    payload: DepartmentCreate,
    service: CatalogService = Depends(get_catalog_service),
) -> GenericResponse[DepartmentResponse]:
    department = await service.create_department(payload.name, payload.description)
    return GenericResponse(
        message="Department created",
        data=DepartmentResponse.model_validate(department),
    )


@router.put(
    "/departments/{department_id}",
    response_model=GenericResponse[DepartmentResponse],
    summary="Update department",
)
async def update_department(
    department_id: int,
    payload: DepartmentUpdate,
    service: CatalogService = Depends(get_catalog_service),
) -> GenericResponse[DepartmentResponse]:
    department = await service.update_department(
        department_id,
        name=payload.name,
        description=payload.description,
    )
    return GenericResponse(
        message="Department updated",
        data=DepartmentResponse.model_validate(department),
    )


@router.delete(
    "/departments/{department_id}",
    response_model=MessageResponse,
    summary="Delete department",
)
async def delete_department(
    department_id: int,
    service: CatalogService = Depends(get_catalog_service),
) -> MessageResponse:
    await service.delete_department(department_id)
    return MessageResponse(message="Department deleted")


# =============================================================================
# DIRECTORIES
# =============================================================================

@router.get(
    "/doctors",
    response_model=list[DoctorResponse],
    summary="List doctors",
    description="Users currently holding the doctor role, with department.",
)
async def list_doctors(
    service: CatalogService = Depends(get_catalog_service),
) -> list[DoctorResponse]:
    doctors = await service.list_doctors()
    return [DoctorResponse.model_validate(d) for d in doctors]


@router.get(
    "/patients",
    response_model=list[PatientResponse],
    summary="List patients",
)
async def list_patients(
    service: CatalogService = Depends(get_catalog_service),
) -> list[PatientResponse]:
    patients = await service.list_patients()
    return [PatientResponse.model_validate(p) for p in patients]
