"""Tests for the rule-based policy enforcer."""

import pytest

from src.medmonitor.core.exceptions import PolicyEvalError
from src.medmonitor.core.policy import (
    DEFAULT_POLICY_RULES,
    Rule,
    RulePolicyEnforcer,
    action_matches,
    resource_matches,
)


@pytest.fixture
def enforcer():
    return RulePolicyEnforcer(DEFAULT_POLICY_RULES)


class TestKeyMatching:
    def test_wildcard_suffix_matches_any_remainder(self):
        assert resource_matches("/api/v1/users", "/api/v1/*")
        assert resource_matches("/api/v1/appointments/5/complete", "/api/v1/*")
        assert not resource_matches("/api/v2/users", "/api/v1/*")

    def test_named_segment_matches_exactly_one_segment(self):
        assert resource_matches("/api/v1/users/12/role", "/api/v1/users/:id/role")
        assert not resource_matches("/api/v1/users/12/34/role", "/api/v1/users/:id/role")
        assert not resource_matches("/api/v1/users//role", "/api/v1/users/:id/role")

    def test_literal_pattern_must_cover_whole_path(self):
        assert resource_matches("/api/v1/appointments", "/api/v1/appointments")
        assert not resource_matches("/api/v1/appointments/1", "/api/v1/appointments")
        assert not resource_matches("/prefix/api/v1/appointments", "/api/v1/appointments")

    def test_action_alternation(self):
        assert action_matches("GET", "(GET)|(POST)")
        assert action_matches("POST", "(GET)|(POST)")
        assert not action_matches("DELETE", "(GET)|(POST)")
        assert not action_matches("GETX", "(GET)")
        assert action_matches("PATCH", ".*")


class TestDefaultRules:
    @pytest.mark.parametrize(
        "role,path,method",
        [
            ("admin", "/api/v1/users", "GET"),
            ("admin", "/api/v1/departments/3", "DELETE"),
            ("doctor", "/api/v1/patients", "GET"),
            ("doctor", "/api/v1/patients/4/history", "GET"),
            ("doctor", "/api/v1/appointments/9/complete", "PUT"),
            ("patient", "/api/v1/appointments", "POST"),
            ("patient", "/api/v1/appointments/9/cancel", "PUT"),
            ("patient", "/api/v1/prescriptions/2", "PUT"),
            ("patient", "/api/v1/doctors", "GET"),
        ],
    )
    def test_allowed(self, enforcer, role, path, method):
        assert enforcer.enforce(role, path, method) is True

    @pytest.mark.parametrize(
        "role,path,method",
        [
            ("patient", "/api/v1/users", "GET"),
            ("patient", "/api/v1/appointments/9/complete", "PUT"),
            ("patient", "/api/v1/patients/4/history", "GET"),
            ("doctor", "/api/v1/appointments", "POST"),
            ("doctor", "/api/v1/users/2/role", "PUT"),
            ("doctor", "/api/v1/departments", "POST"),
            ("nurse", "/api/v1/profile", "GET"),
        ],
    )
    def test_denied(self, enforcer, role, path, method):
        assert enforcer.enforce(role, path, method) is False

    def test_empty_table_denies_everything(self):
        assert RulePolicyEnforcer().enforce("admin", "/api/v1/users", "GET") is False


class TestRuleTable:
    def test_load_drops_duplicates(self):
        rule = Rule("patient", "/api/v1/profile", "(GET)")
        enforcer = RulePolicyEnforcer([rule, rule])
        assert len(enforcer) == 1

    def test_add_is_idempotent(self):
        enforcer = RulePolicyEnforcer()
        assert enforcer.add("doctor", "/api/v1/patients", "(GET)") is True
        assert enforcer.add("doctor", "/api/v1/patients", "(GET)") is False
        assert enforcer.has_rule("doctor", "/api/v1/patients", "(GET)")
        assert enforcer.rules == [Rule("doctor", "/api/v1/patients", "(GET)")]

    def test_invalid_action_pattern_raises_policy_error(self):
        enforcer = RulePolicyEnforcer([Rule("patient", "/api/v1/profile", "(GET")])
        with pytest.raises(PolicyEvalError) as exc_info:
            enforcer.enforce("patient", "/api/v1/profile", "GET")
        assert exc_info.value.details["action_pattern"] == "(GET"

    def test_invalid_rule_of_other_role_is_not_evaluated(self):
        enforcer = RulePolicyEnforcer(
            [
                Rule("doctor", "/api/v1/patients", "(GET"),
                Rule("patient", "/api/v1/profile", "(GET)"),
            ]
        )
        assert enforcer.enforce("patient", "/api/v1/profile", "GET") is True
