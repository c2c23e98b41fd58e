"""Tests for principal resolution inside the authorization gate."""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest
from fastapi import Request
from sqlalchemy.exc import OperationalError

from src.medmonitor.core.exceptions import StoreFailureError, UnauthenticatedError
from src.medmonitor.core.gate import Principal, get_current_principal, resolve_principal
from src.medmonitor.core.identity import VerifiedIdentity
from src.medmonitor.models.enums import UserRole


@pytest.fixture
def identity():
    return VerifiedIdentity(email="walk-in@clinic.test", subject_id="sub-1", name="Walk In")


async def test_resolve_principal_creates_patient(db_manager, identity):
    principal = await resolve_principal(db_manager, identity, timeout=5)

    assert isinstance(principal, Principal)
    assert principal.id > 0
    assert principal.role == UserRole.PATIENT.value
    assert principal.email == "walk-in@clinic.test"
    assert principal.name == "Walk In"


async def test_resolve_principal_is_stable(db_manager, identity):
    first = await resolve_principal(db_manager, identity, timeout=5)
    second = await resolve_principal(db_manager, identity, timeout=5)
    assert first == second


async def test_resolve_principal_store_error(db_manager, identity):
    with patch(
        "src.medmonitor.core.gate.PrincipalService.resolve",
        new=AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("db down"))),
    ):
        with pytest.raises(StoreFailureError) as exc_info:
            await resolve_principal(db_manager, identity, timeout=5)

    assert exc_info.value.status_code == 500
    assert exc_info.value.message == "Failed to process user"


async def test_resolve_principal_timeout(db_manager, identity):
    async def stall(self, identity):
        await asyncio.sleep(1)

    with patch("src.medmonitor.core.gate.PrincipalService.resolve", new=stall):
        with pytest.raises(StoreFailureError) as exc_info:
            await resolve_principal(db_manager, identity, timeout=0.05)

    assert exc_info.value.details["reason"] == "store operation timed out"


def test_current_principal_requires_gate():
    request = Request({"type": "http", "method": "GET", "path": "/", "headers": [], "state": {}})
    with pytest.raises(UnauthenticatedError):
        get_current_principal(request)
