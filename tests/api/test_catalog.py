"""API tests for departments and the doctor / patient directories."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from src.medmonitor.services.catalog_service import DEFAULT_DEPARTMENTS, CatalogService

if TYPE_CHECKING:
    from httpx import AsyncClient


class TestDepartments:
    async def test_create_and_list(self, client: AsyncClient, admin_headers, patient_headers) -> None:
        response = await client.post(
            "/api/v1/departments",
            json={"name": "Cardiology", "description": "Heart"},
            headers=admin_headers,
        )
        assert response.status_code == 201
        assert response.json()["data"]["name"] == "Cardiology"

        listed = await client.get("/api/v1/departments", headers=patient_headers)
        assert listed.status_code == 200
        assert [d["name"] for d in listed.json()] == ["Cardiology"]

    async def test_duplicate_name(self, client: AsyncClient, admin_headers) -> None:
        await client.post("/api/v1/departments", json={"name": "Neurology"}, headers=admin_headers)
        response = await client.post("/api/v1/departments", json={"name": "Neurology"}, headers=admin_headers)

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "DEPARTMENT_EXISTS"

    async def test_update_only_supplied_fields(self, client: AsyncClient, admin_headers) -> None:
        created = await client.post(
            "/api/v1/departments",
            json={"name": "Derm", "description": "Skin"},
            headers=admin_headers,
        )
        department_id = created.json()["data"]["id"]

        response = await client.put(
            f"/api/v1/departments/{department_id}",
            json={"name": "Dermatology"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["name"] == "Dermatology"
        assert data["description"] == "Skin"

    async def test_delete_hides_department(self, client: AsyncClient, admin_headers) -> None:
        created = await client.post("/api/v1/departments", json={"name": "Oncology"}, headers=admin_headers)
        department_id = created.json()["data"]["id"]

        response = await client.delete(f"/api/v1/departments/{department_id}", headers=admin_headers)
        assert response.status_code == 200

        listed = await client.get("/api/v1/departments", headers=admin_headers)
        assert listed.json() == []
        again = await client.delete(f"/api/v1/departments/{department_id}", headers=admin_headers)
        assert again.status_code == 404

    async def test_patient_cannot_create(self, client: AsyncClient, patient_headers) -> None:
        response = await client.post(
            "/api/v1/departments", json={"name": "Quackery"}, headers=patient_headers
        )
        assert response.status_code == 403


class TestDirectories:
    async def test_doctors(self, client: AsyncClient, users, patient_headers) -> None:
        response = await client.get("/api/v1/doctors", headers=patient_headers)

        assert response.status_code == 200
        doctors = response.json()
        assert [d["id"] for d in doctors] == [users["doctor"].id]
        assert doctors[0]["user"]["name"] == "Greg House"

    async def test_patients_only_lists_patient_role(self, client: AsyncClient, users, doctor_headers) -> None:
        response = await client.get("/api/v1/patients", headers=doctor_headers)

        assert response.status_code == 200
        assert [p["id"] for p in response.json()] == [users["patient"].id]


@pytest.mark.asyncio
async def test_seed_default_departments_only_when_empty(db_session) -> None:
    service = CatalogService(db_session)

    assert await service.seed_default_departments() == len(DEFAULT_DEPARTMENTS)
    assert await service.seed_default_departments() == 0
    assert len(await service.list_departments()) == len(DEFAULT_DEPARTMENTS)
