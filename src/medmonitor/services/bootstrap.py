"""Startup bootstrap run from the application lifespan.

- promote the users listed in ``BOOTSTRAP_ADMIN_EMAILS`` to admin
- insert the default departments when ``SEED_DEPARTMENTS`` is on and the
  catalog is empty

Both steps are idempotent. Users are only promoted once they exist, i.e. after
their first authenticated request; a restart picks up the rest.
"""
from __future__ import annotations

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import Settings
from ..models.enums import UserRole
from ..repositories.user_repository import UserRepository
from .catalog_service import CatalogService
from .principal_service import PrincipalService

log = structlog.get_logger(__name__)


async def promote_bootstrap_admins(session: AsyncSession, emails: list[str]) -> int:
    if not emails:
        return 0
    promoted = 0
    for user in await UserRepository(session).get_by_emails(emails):
        if user.role == UserRole.ADMIN.value:
            continue
        await PrincipalService(session).set_role(user.id, UserRole.ADMIN)
        promoted += 1
    if promoted:
        log.info("bootstrap_admins_promoted", count=promoted)
    return promoted


async def run_bootstrap(session: AsyncSession, settings: Settings) -> None:
    await promote_bootstrap_admins(session, settings.bootstrap_admin_emails_list)
    if settings.SEED_DEPARTMENTS:
        await CatalogService(session).seed_default_departments()
