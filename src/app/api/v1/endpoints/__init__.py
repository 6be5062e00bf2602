"""API v1 endpoints package."""

from . import (
	admin,
	auth,
	debug,
	doctor,
	health,
)

__all__ = [
	"admin",
	"auth",
	"debug",
	"doctor",
	"health",
]
