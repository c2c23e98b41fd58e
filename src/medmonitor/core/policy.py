"""Deny-by-default policy enforcement.

A rule is a ``(role, resource, action)`` triple:

* ``resource`` is a key pattern matched against the request path. ``/*``
  matches any remainder, ``:name`` matches exactly one path segment, and the
  rest is a regular expression that must cover the whole path.
* ``action`` is a regular expression that must cover the whole HTTP verb,
  e.g. ``(GET)|(PUT)`` or ``.*``.

A request is allowed when any rule for its role matches. The rule table is
loaded once at startup and only read afterwards, so ``enforce`` takes no
locks and performs no I/O.
"""
from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from functools import lru_cache
from typing import Protocol

import structlog

from .exceptions import PolicyEvalError

log = structlog.get_logger(__name__)

_PATH_PARAM = re.compile(r":[^/]+")


@dataclass(frozen=True, slots=True)
class Rule:
    role: str
    resource: str
    action: str


class PolicyEnforcer(Protocol):
    """Anything that can answer ``may role perform action on resource``."""

    def enforce(self, role: str, resource: str, action: str) -> bool:
        """Return the decision; raise PolicyEvalError if no decision can be made."""
        ...


@lru_cache(maxsize=512)
def _compile_resource(pattern: str) -> re.Pattern[str]:
    regex = pattern.replace("/*", "/.*")
    regex = _PATH_PARAM.sub("[^/]+", regex)
    return re.compile(f"^{regex}$")


@lru_cache(maxsize=128)
def _compile_action(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern)


def resource_matches(path: str, pattern: str) -> bool:
    return _compile_resource(pattern).match(path) is not None


def action_matches(action: str, pattern: str) -> bool:
    return _compile_action(pattern).fullmatch(action) is not None


class RulePolicyEnforcer:
    """In-memory rule table with OR-of-rules matching per role."""

    def __init__(self, rules: Iterable[Rule] = ()) -> None:
        self._rules: dict[str, list[Rule]] = {}
        self.load(rules)

    def load(self, rules: Iterable[Rule]) -> None:
        """Replace the whole rule table."""
        table: dict[str, list[Rule]] = {}
        seen: set[Rule] = set()
        for rule in rules:
            if rule in seen:
                continue
            seen.add(rule)
            table.setdefault(rule.role, []).append(rule)
        self._rules = table

    def add(self, role: str, resource: str, action: str) -> bool:
        """Append a rule unless the exact triple is already present."""
        rule = Rule(role, resource, action)
        bucket = self._rules.setdefault(role, [])
        if rule in bucket:
            return False
        bucket.append(rule)
        return True

    def has_rule(self, role: str, resource: str, action: str) -> bool:
        return Rule(role, resource, action) in self._rules.get(role, ())

    @property
    def rules(self) -> list[Rule]:
        return [rule for bucket in self._rules.values() for rule in bucket]

    def __len__(self) -> int:
        return sum(len(bucket) for bucket in self._rules.values())

    def enforce(self, role: str, resource: str, action: str) -> bool:
        for rule in self._rules.get(role, ()):
            try:
                if resource_matches(resource, rule.resource) and action_matches(
                    action, rule.action
                ):
                    return True
            except re.error as exc:
                log.error(
                    "policy_rule_invalid",
                    role=rule.role,
                    resource=rule.resource,
                    action=rule.action,
                    error=str(exc),
                )
                raise PolicyEvalError(
                    details={
                        "role": rule.role,
                        "resource_pattern": rule.resource,
                        "action_pattern": rule.action,
                        "reason": str(exc),
                    }
                ) from exc
        return False


DEFAULT_POLICY_RULES: tuple[Rule, ...] = (
    Rule("admin", "/api/v1/*", ".*"),
    Rule("admin", "/api/v1/users", "(GET)|(PUT)"),
    Rule("admin", "/api/v1/users/:id/role", "(PUT)"),

    Rule("doctor", "/api/v1/profile", "(GET)"),
    Rule("doctor", "/api/v1/patients", "(GET)"),
    Rule("doctor", "/api/v1/patients/:id/history", "(GET)"),
    Rule("doctor", "/api/v1/appointments", "(GET)"),
    Rule("doctor", "/api/v1/appointments/:id/complete", "(PUT)"),
    Rule("doctor", "/api/v1/appointments/:id/cancel", "(PUT)"),
    Rule("doctor", "/api/v1/prescriptions", "(GET)"),
    Rule("doctor", "/api/v1/prescriptions/:id", "(PUT)"),

    Rule("patient", "/api/v1/profile", "(GET)"),
    Rule("patient", "/api/v1/appointments", "(GET)|(POST)"),
    Rule("patient", "/api/v1/appointments/:id/cancel", "(PUT)"),
    Rule("patient", "/api/v1/prescriptions", "(GET)"),
    Rule("patient", "/api/v1/prescriptions/:id", "(PUT)"),
    Rule("patient", "/api/v1/doctors", "(GET)"),
    Rule("patient", "/api/v1/departments", "(GET)"),
)
