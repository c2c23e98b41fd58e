"""Integration tests for durable policy rules and startup seeding."""
from __future__ import annotations

from unittest.mock import AsyncMock, patch

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.medmonitor.core.policy import DEFAULT_POLICY_RULES, Rule, RulePolicyEnforcer
from src.medmonitor.models.policy import PolicyRule
from src.medmonitor.repositories.policy_repository import PolicyRepository, seed_policies


async def _count_rules(session: AsyncSession) -> int:
    result = await session.execute(select(func.count(PolicyRule.id)))
    return result.scalar_one()


class TestSeedPolicies:
    async def test_first_run_persists_defaults(self, db_session: AsyncSession):
        enforcer = RulePolicyEnforcer()
        added = await seed_policies(db_session, enforcer)

        assert added == len(DEFAULT_POLICY_RULES)
        assert await _count_rules(db_session) == len(DEFAULT_POLICY_RULES)
        assert enforcer.enforce("patient", "/api/v1/appointments", "POST")

    async def test_second_run_adds_nothing(self, db_session: AsyncSession):
        await seed_policies(db_session, RulePolicyEnforcer())

        enforcer = RulePolicyEnforcer()
        added = await seed_policies(db_session, enforcer)

        assert added == 0
        assert await _count_rules(db_session) == len(DEFAULT_POLICY_RULES)
        assert len(enforcer) == len(DEFAULT_POLICY_RULES)

    async def test_stored_extra_rules_are_loaded(self, db_session: AsyncSession):
        repo = PolicyRepository(db_session)
        extra = Rule("doctor", "/api/v1/departments", "(GET)")
        await repo.add_rule(extra)
        await db_session.commit()

        enforcer = RulePolicyEnforcer()
        await seed_policies(db_session, enforcer)

        assert enforcer.enforce("doctor", "/api/v1/departments", "GET")
        assert await _count_rules(db_session) == len(DEFAULT_POLICY_RULES) + 1

    async def test_rules_stored_concurrently_are_reloaded(self, db_session: AsyncSession):
        await seed_policies(db_session, RulePolicyEnforcer())

        list_rules = PolicyRepository.list_rules
        reads = 0

        async def empty_first_read(self):
            nonlocal reads
            reads += 1
            if reads == 1:
                return []
            return await list_rules(self)

        enforcer = RulePolicyEnforcer()
        with (
            patch.object(PolicyRepository, "list_rules", empty_first_read),
            patch.object(PolicyRepository, "exists", new=AsyncMock(return_value=False)),
        ):
            added = await seed_policies(db_session, enforcer)

        assert added == 0
        assert reads == 2
        assert len(enforcer) == len(DEFAULT_POLICY_RULES)
        assert await _count_rules(db_session) == len(DEFAULT_POLICY_RULES)


class TestPolicyRepository:
    async def test_add_rule_skips_existing_triple(self, db_session: AsyncSession):
        repo = PolicyRepository(db_session)
        rule = Rule("patient", "/api/v1/profile", "(GET)")
        assert await repo.add_rule(rule) is True
        assert await repo.add_rule(rule) is False
        assert await repo.list_rules() == [rule]
