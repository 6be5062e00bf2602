"""API v1 — versioned router.

Router structure
----------------
PUBLIC (the access guard lets these through without a session):
  /health/*          → health checks (liveness, readiness)
  /debug/*           → configuration / status counts (404 in production)
  /auth/*            → register, login, logout, temporary / permanent password,
                       resend confirmation, validate session

AUTHENTICATED:
  /auth/me, /auth/user-by-email

ROLE-SCOPED (guarded by path prefix, re-checked per endpoint):
  /admin/*           → dashboard, application pipeline, review decisions,
                       interview scheduling, settings, users
  /doctor/*          → own application profile
"""
from fastapi import APIRouter

from .endpoints import admin, auth, debug, doctor, health

router = APIRouter(prefix="/api/v1")

# =========================================================================
# PUBLIC ENDPOINTS
# =========================================================================

router.include_router(health.router, tags=["Health"])
router.include_router(debug.router, tags=["Debug"])
router.include_router(auth.router, tags=["Authentication"])

# =========================================================================
# ROLE-SCOPED ENDPOINTS
# =========================================================================

# Every endpoint in admin.router declares the AdminUser dependency
router.include_router(admin.router, tags=["Admin"])

router.include_router(doctor.router, tags=["Doctor"])
