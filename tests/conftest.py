"""Pytest fixtures and configuration."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import TYPE_CHECKING

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.medmonitor.core.config import Settings
from src.medmonitor.core.exceptions import IdentityIncompleteError, UnauthenticatedError
from src.medmonitor.core.identity import VerifiedIdentity
from src.medmonitor.core.policy import DEFAULT_POLICY_RULES, RulePolicyEnforcer
from src.medmonitor.db.session import Base, DatabaseManager
from src.medmonitor.main import create_application
from src.medmonitor.models.enums import UserRole
from src.medmonitor.models.user import User
from src.medmonitor.repositories.user_repository import UserRepository

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

# Test database URL (in-memory SQLite for tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

ADMIN_EMAIL = "admin@clinic.test"
DOCTOR_EMAIL = "house@clinic.test"
PATIENT_EMAIL = "patient@clinic.test"


class FakeIdentityVerifier:
    """Token -> identity table standing in for the external issuer.

    ``expired-token`` is rejected the way an issuer rejects an expired token,
    ``no-email-token`` verifies but carries no email claim.
    """

    def __init__(self, identities: dict[str, VerifiedIdentity] | None = None) -> None:
        self.identities = dict(identities or {})
        self.calls: list[str] = []

    async def verify(self, token: str) -> VerifiedIdentity:
        self.calls.append(token)
        if token == "expired-token":
            raise UnauthenticatedError(
                message="invalid identity token: Token expired",
                error_code="INVALID_TOKEN",
            )
        if token == "no-email-token":
            raise IdentityIncompleteError("email")
        identity = self.identities.get(token)
        if identity is None:
            raise UnauthenticatedError(
                message="invalid identity token: Wrong number of segments in token",
                error_code="INVALID_TOKEN",
            )
        return identity


async def create_user(
    session: AsyncSession,
    email: str,
    role: UserRole = UserRole.PATIENT,
    name: str = "",
    specialization: str | None = None,
) -> User:
    """Insert a user with the profiles a user of ``role`` would have."""
    repo = UserRepository(session)
    user = await repo.add(email=email, name=name, role=role.value)
    await repo.add_patient_profile(user.id)
    if role is UserRole.DOCTOR:
        await repo.add_doctor_profile(user.id, specialization=specialization)
    await session.commit()
    return user


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        APP_ENV="development",
        DATABASE_URL=TEST_DATABASE_URL,
        GOOGLE_CLIENT_ID="test-client-id.apps.googleusercontent.com",
        DATABASE_OPERATION_TIMEOUT_SECONDS=5.0,
    )


@pytest_asyncio.fixture(scope="function")
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(test_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async_session_factory = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )

    async with async_session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def db_manager(test_settings: Settings, test_engine: AsyncEngine) -> DatabaseManager:
    return DatabaseManager(test_settings, engine=test_engine)


@pytest.fixture
def enforcer() -> RulePolicyEnforcer:
    """The default rule table, as seeded at startup."""
    return RulePolicyEnforcer(DEFAULT_POLICY_RULES)


@pytest.fixture
def identity_verifier() -> FakeIdentityVerifier:
    return FakeIdentityVerifier(
        {
            "admin-token": VerifiedIdentity(email=ADMIN_EMAIL, subject_id="sub-admin", name="Ada Admin"),
            "doctor-token": VerifiedIdentity(email=DOCTOR_EMAIL, subject_id="sub-doctor", name="Greg House"),
            "patient-token": VerifiedIdentity(email=PATIENT_EMAIL, subject_id="sub-patient", name="Pat Patient"),
            "newcomer-token": VerifiedIdentity(
                email="Newcomer@Clinic.test",
                subject_id="sub-new",
                name="New Comer",
                picture="https://example.com/new.png",
            ),
        }
    )


@pytest.fixture
def make_user():
    """Factory fixture wrapping ``create_user``."""
    return create_user


@pytest_asyncio.fixture
async def users(db_session: AsyncSession) -> dict[str, User]:
    """One admin, one doctor and one patient, matching the verifier's tokens."""
    return {
        "admin": await create_user(db_session, ADMIN_EMAIL, UserRole.ADMIN, name="Ada Admin"),
        "doctor": await create_user(
            db_session, DOCTOR_EMAIL, UserRole.DOCTOR, name="Greg House", specialization="Diagnostics"
        ),
        "patient": await create_user(db_session, PATIENT_EMAIL, UserRole.PATIENT, name="Pat Patient"),
    }


@pytest.fixture
def app(
    test_settings: Settings,
    db_manager: DatabaseManager,
    identity_verifier: FakeIdentityVerifier,
    enforcer: RulePolicyEnforcer,
) -> FastAPI:
    return create_application(
        test_settings,
        db_manager=db_manager,
        identity_verifier=identity_verifier,
        enforcer=enforcer,
    )


@pytest_asyncio.fixture(scope="function")
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client bound to the test application."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def admin_headers(users: dict[str, User]) -> dict[str, str]:
    """Auth headers for the seeded admin."""
    return {"Authorization": "Bearer admin-token"}


@pytest.fixture
def doctor_headers(users: dict[str, User]) -> dict[str, str]:
    return {"Authorization": "Bearer doctor-token"}


@pytest.fixture
def patient_headers(users: dict[str, User]) -> dict[str, str]:
    return {"Authorization": "Bearer patient-token"}
