"""API v1: versioned router.

Router structure
----------------
PUBLIC (no auth):
  /health, /ready, /live   → health checks (liveness, readiness)

PROTECTED (authorization gate: bearer identity → principal → policy):
  /profile                 → the caller
  /users, /users/{id}/role → user management
  /departments, /doctors, /patients → clinic catalog
  /appointments/*          → booking and lifecycle
  /prescriptions/*         → listing and dispensing
  /patients/{id}/history   → patient history

Which role may call what is decided by the policy rules, not per endpoint.
"""
from fastapi import APIRouter, Depends

from ...core.gate import authorize_request
from .endpoints import appointments, catalog, health, users

router = APIRouter(prefix="/api/v1")

# =========================================================================
# PUBLIC ENDPOINTS (no auth required)
# =========================================================================

router.include_router(health.router, tags=["Health"])

# =========================================================================
# PROTECTED ENDPOINTS (gate runs before every handler)
# =========================================================================

router.include_router(
    users.router,
    tags=["Users"],
    dependencies=[Depends(authorize_request)],
)
router.include_router(
    catalog.router,
    tags=["Catalog"],
    dependencies=[Depends(authorize_request)],
)
router.include_router(
    appointments.router,
    tags=["Appointments"],
    dependencies=[Depends(authorize_request)],
)
