"""Core package - Configuration, exceptions, identity and access control."""
from .config import AppSettings, Settings, get_settings
from .policy import DEFAULT_POLICY_RULES, PolicyEnforcer, Rule, RulePolicyEnforcer

__all__ = [
    "AppSettings",
    "Settings",
    "get_settings",
    "DEFAULT_POLICY_RULES",
    "PolicyEnforcer",
    "Rule",
    "RulePolicyEnforcer",
]
