"""API v1 endpoints package."""

from . import appointments, catalog, health, users

__all__ = [
	"appointments",
	"catalog",
	"health",
	"users",
]
