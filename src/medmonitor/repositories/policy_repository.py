"""Policy Repository - durable storage for authorization rules."""
from __future__ import annotations

from collections.abc import Iterable

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.policy import DEFAULT_POLICY_RULES, Rule, RulePolicyEnforcer
from ..models.policy import PolicyRule

log = structlog.get_logger(__name__)


class PolicyRepository:
    """Repository for PolicyRule rows."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_rules(self) -> list[Rule]:
        result = await self.session.execute(
            select(PolicyRule).where(PolicyRule.ptype == "p").order_by(PolicyRule.id)
        )
        return [Rule(r.role, r.resource, r.action) for r in result.scalars().all()]

    async def exists(self, rule: Rule) -> bool:
        query = select(PolicyRule.id).where(
            PolicyRule.ptype == "p",
            PolicyRule.role == rule.role,
            PolicyRule.resource == rule.resource,
            PolicyRule.action == rule.action,
        )
        result = await self.session.execute(query)
        return result.first() is not None

    async def add_rule(self, rule: Rule) -> bool:
        """Stage a rule for insertion unless the exact triple is stored already."""
        if await self.exists(rule):
            return False
        self.session.add(
            PolicyRule(ptype="p", role=rule.role, resource=rule.resource, action=rule.action)
        )
        await self.session.flush()
        return True


async def seed_policies(
    session: AsyncSession,
    enforcer: RulePolicyEnforcer,
    defaults: Iterable[Rule] = DEFAULT_POLICY_RULES,
) -> int:
    """Load stored rules into ``enforcer`` and persist any missing default rule.

    Safe to run on every start: a triple that is already stored is never
    written again. When another instance stores the same triples first, the
    losing insert is rolled back and the rules are reloaded from the store.
    Returns how many rules this call added.
    """
    defaults = list(defaults)
    repo = PolicyRepository(session)
    enforcer.load(await repo.list_rules())

    added = 0
    try:
        for rule in defaults:
            if enforcer.has_rule(rule.role, rule.resource, rule.action):
                continue
            if await repo.add_rule(rule):
                added += 1
            enforcer.add(rule.role, rule.resource, rule.action)
        if added:
            await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        log.warning("policy_seed_conflict", error=str(exc))
        enforcer.load(await repo.list_rules())
        missing = [r for r in defaults if not enforcer.has_rule(r.role, r.resource, r.action)]
        if missing:
            raise
        added = 0

    if added:
        log.info("policy_rules_seeded", added=added)
    log.info("policy_rules_loaded", total=len(enforcer))
    return added
