"""Authorization gate for every protected ``/api/v1`` route.

Attached as a router-level dependency, so it runs before any handler:

    Start --verify bearer--> Authenticated --resolve--> Resolved
          --enforce(role, path, method)--> Allowed | Denied

    verification fails      -> 401 (the resolver is never called)
    store fails / times out -> 500 STORE_FAILURE
    policy mechanism fails  -> 500 POLICY_EVAL_ERROR
    no rule matches         -> 403 FORBIDDEN

Handlers read the caller through ``CurrentPrincipal``.

Usage:
    router = APIRouter(dependencies=[Depends(authorize_request)])

    @router.get("/profile")
    async def profile(principal: CurrentPrincipal):
        ...
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Annotated

import structlog
from fastapi import Depends, Request
from sqlalchemy.exc import SQLAlchemyError

from ..db.session import DatabaseManager, get_db_manager
from ..services.principal_service import PrincipalService
from .config import AppSettings
from .exceptions import AccessDeniedError, PolicyEvalError, StoreFailureError, UnauthenticatedError
from .identity import IdentityVerifier, VerifiedIdentity, parse_bearer
from .policy import PolicyEnforcer

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class Principal:
    """The authenticated caller, as seen by handlers."""

    id: int
    role: str
    email: str
    name: str = ""
    picture: str = ""


def get_identity_verifier(request: Request) -> IdentityVerifier:
    return request.app.state.identity_verifier


def get_policy_enforcer(request: Request) -> PolicyEnforcer:
    return request.app.state.enforcer


async def resolve_principal(
    db_manager: DatabaseManager,
    identity: VerifiedIdentity,
    timeout: float,
) -> Principal:
    """Get-or-create the principal in its own unit of work, bounded by ``timeout``."""

    async def _resolve() -> Principal:
        async with db_manager.session() as session:
            user = await PrincipalService(session).resolve(identity)
            return Principal(
                id=user.id,
                role=user.role,
                email=user.email,
                name=user.name,
                picture=user.picture,
            )

    try:
        return await asyncio.wait_for(_resolve(), timeout=timeout)
    except TimeoutError as exc:
        logger.error("principal_resolve_timeout", timeout=timeout)
        raise StoreFailureError(details={"reason": "store operation timed out"}) from exc
    except SQLAlchemyError as exc:
        logger.error("principal_resolve_failed", error=str(exc))
        raise StoreFailureError(details={"reason": str(exc)}) from exc


async def authorize_request(
    request: Request,
    settings: AppSettings,
    db_manager: Annotated[DatabaseManager, Depends(get_db_manager)],
    verifier: Annotated[IdentityVerifier, Depends(get_identity_verifier)],
    enforcer: Annotated[PolicyEnforcer, Depends(get_policy_enforcer)],
) -> Principal:
    """Authenticate, resolve and authorize the caller, or raise.

    Raises:
        UnauthenticatedError / IdentityIncompleteError: 401
        StoreFailureError: 500
        PolicyEvalError: 500
        AccessDeniedError: 403
    """
    token = parse_bearer(request.headers.get("Authorization"))
    identity = await verifier.verify(token)

    principal = await resolve_principal(
        db_manager,
        identity,
        timeout=settings.DATABASE_OPERATION_TIMEOUT_SECONDS,
    )
    request.state.principal = principal
    structlog.contextvars.bind_contextvars(user_id=principal.id, role=principal.role)

    resource = request.url.path
    action = request.method
    try:
        allowed = enforcer.enforce(principal.role, resource, action)
    except PolicyEvalError:
        logger.error("policy_evaluation_failed", resource=resource, action=action)
        raise

    if not allowed:
        logger.warning("access_denied", resource=resource, action=action)
        raise AccessDeniedError(principal.role, resource, action)

    logger.debug("access_granted", resource=resource, action=action)
    return principal


def get_current_principal(request: Request) -> Principal:
    """Return the principal the gate injected for this request."""
    principal = getattr(request.state, "principal", None)
    if principal is None:
        raise UnauthenticatedError(message="request was not authenticated")
    return principal


# ---------------------------------------------------------------------------
# Convenient type aliases for endpoint signatures
# ---------------------------------------------------------------------------
CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]
