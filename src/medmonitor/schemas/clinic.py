"""Clinic catalog schemas: departments, doctors and patients."""
from __future__ import annotations

from datetime import date

from pydantic import BaseModel, ConfigDict, Field


class DepartmentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, examples=["Cardiology"])
    description: str = Field("", description="Free-text description")


class DepartmentUpdate(BaseModel):
    """Only the supplied fields are changed."""

    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None


class DepartmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str = ""


class UserSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    name: str = ""
    picture: str = ""


class DoctorResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    specialization: str
    department_id: int | None = None
    department: DepartmentResponse | None = None
    user: UserSummary | None = None


class PatientResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    date_of_birth: date | None = None
    gender: str = ""
    user: UserSummary | None = None
