"""Path-based access guard.

Every request passes through ``AccessGuardMiddleware`` before routing. The
guard verifies the session token (cookie or Bearer header), maps the path
to the role it requires and either lets the request through or sends it
elsewhere:

- no / invalid / expired token on a protected path -> ``/login?from=<path>``
- valid token, wrong role for a role-scoped area -> the role's home page
- valid token on ``/login`` or ``/register`` -> the role's home page

Page paths get a redirect. API paths (``/api/...``) get the same decision
as a JSON 401 / 403 carrying ``redirect_to``.

Allowed requests reach the handlers with ``request.state.session`` set and
the ``x-user-*`` forwarded headers injected. Any ``x-user-*`` header sent
by the client is dropped first.
"""
from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from urllib.parse import quote, urlencode

import structlog
from fastapi import Request, Response
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from ..models.enums import UserRole
from .config import Settings, get_settings
from .exceptions import UnauthorizedError
from .rbac import role_allowed
from .responses import ErrorResponse
from .security import SessionClaims, extract_session_token, verify_session_token

log = structlog.get_logger(__name__)

LOGIN_PATH = "/login"
API_PREFIX = "/api/"
FORWARDED_HEADER_PREFIX = b"x-user-"

PUBLIC_PATHS = frozenset({
    "/",
    "/login",
    "/register",
    "/verify-email",
    "/verify-email-sent",
    "/favicon.ico",
    "/docs",
    "/redoc",
    "/openapi.json",
    "/api/v1/auth/login",
    "/api/v1/auth/logout",
    "/api/v1/auth/register",
    "/api/v1/auth/verify-temporary-password",
    "/api/v1/auth/set-permanent-password",
    "/api/v1/auth/resend-confirmation",
    "/api/v1/auth/validate-session",
})

PUBLIC_PREFIXES = (
    "/public",
    "/static",
    "/docs",
    "/api/v1/health",
    "/api/v1/debug",
)

AUTH_PAGES = frozenset({"/login", "/register"})

ROLE_AREAS: tuple[tuple[str, UserRole], ...] = (
    ("/admin", UserRole.ADMIN),
    ("/api/v1/admin", UserRole.ADMIN),
    ("/doctor", UserRole.DOCTOR),
    ("/api/v1/doctor", UserRole.DOCTOR),
    ("/patient", UserRole.PATIENT),
    ("/api/v1/patient", UserRole.PATIENT),
)


def _under(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix.rstrip("/") + "/")


def is_public(path: str) -> bool:
    return path in PUBLIC_PATHS or any(_under(path, prefix) for prefix in PUBLIC_PREFIXES)


def required_role(path: str) -> UserRole | None:
    """Role area the path belongs to, if any."""
    for prefix, role in ROLE_AREAS:
        if _under(path, prefix):
            return role
    return None


def login_redirect(path: str) -> str:
    return f"{LOGIN_PATH}?{urlencode({'from': path})}"


class Outcome(str, Enum):
    PUBLIC = "public"
    ALLOWED = "allowed"
    UNAUTHENTICATED = "unauthenticated"
    WRONG_ROLE = "wrong_role"
    ALREADY_AUTHENTICATED = "already_authenticated"


@dataclass(frozen=True)
class GuardDecision:
    outcome: Outcome
    claims: SessionClaims | None = None
    redirect_to: str | None = None
    error_code: str | None = None

    @property
    def allowed(self) -> bool:
        return self.outcome in (Outcome.PUBLIC, Outcome.ALLOWED)


class AccessGuard:
    """Decides allow / redirect for a path and an optional session token."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def _claims(self, token: str | None) -> tuple[SessionClaims | None, str | None]:
        if not token:
            return None, "UNAUTHORIZED"
        try:
            return verify_session_token(token, settings=self.settings), None
        except UnauthorizedError as exc:
            return None, exc.error_code

    def evaluate(self, path: str, token: str | None) -> GuardDecision:
        claims, error_code = self._claims(token)

        if path in AUTH_PAGES and claims is not None:
            return GuardDecision(
                Outcome.ALREADY_AUTHENTICATED,
                claims=claims,
                redirect_to=claims.role.home_path,
            )

        if is_public(path):
            return GuardDecision(Outcome.PUBLIC, claims=claims)

        if claims is None:
            return GuardDecision(
                Outcome.UNAUTHENTICATED,
                redirect_to=login_redirect(path),
                error_code=error_code,
            )

        needed = required_role(path)
        if needed is not None and not role_allowed(claims.role, needed):
            return GuardDecision(
                Outcome.WRONG_ROLE,
                claims=claims,
                redirect_to=claims.role.home_path,
            )

        return GuardDecision(Outcome.ALLOWED, claims=claims)


def forwarded_headers(claims: SessionClaims) -> list[tuple[bytes, bytes]]:
    # Non-ASCII emails are percent-encoded (RFC 3986) so the header round-trips
    return [
        (b"x-user-id", claims.user_id.encode("latin-1")),
        (b"x-user-email", quote(claims.email, safe="@+").encode("ascii")),
        (b"x-user-role", claims.role.value.encode("latin-1")),
        (b"x-user-status", claims.status.value.encode("latin-1")),
    ]


def _error_response(status_code: int, code: str, message: str, redirect_to: str | None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse.build(code, message, {"redirect_to": redirect_to}).model_dump(mode="json"),
    )


class AccessGuardMiddleware(BaseHTTPMiddleware):
    """Runs ``AccessGuard`` in front of every route."""

    def __init__(self, app: ASGIApp, settings: Settings | None = None) -> None:
        super().__init__(app)
        self.guard = AccessGuard(settings or get_settings())

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        headers = [
            (name, value)
            for name, value in request.scope["headers"]
            if not name.lower().startswith(FORWARDED_HEADER_PREFIX)
        ]

        if request.method == "OPTIONS":
            request.scope["headers"] = headers
            return await call_next(request)

        path = request.url.path
        token = extract_session_token(request, self.guard.settings)
        decision = self.guard.evaluate(path, token)
        is_api = path.startswith(API_PREFIX)

        match decision.outcome:
            case Outcome.UNAUTHENTICATED:
                log.info("access_denied_unauthenticated", path=path, reason=decision.error_code)
                if is_api:
                    return _error_response(
                        401,
                        decision.error_code or "UNAUTHORIZED",
                        "Authentication required",
                        decision.redirect_to,
                    )
                return RedirectResponse(decision.redirect_to, status_code=307)
            case Outcome.WRONG_ROLE:
                log.warning(
                    "access_denied_wrong_role",
                    path=path,
                    user_id=decision.claims.user_id,
                    role=decision.claims.role.value,
                )
                if is_api:
                    return _error_response(403, "FORBIDDEN", "Insufficient role", decision.redirect_to)
                return RedirectResponse(decision.redirect_to, status_code=307)
            case Outcome.ALREADY_AUTHENTICATED:
                return RedirectResponse(decision.redirect_to, status_code=307)
            case Outcome.PUBLIC | Outcome.ALLOWED:
                pass

        if decision.claims is not None:
            request.state.session = decision.claims
            headers.extend(forwarded_headers(decision.claims))
        request.scope["headers"] = headers
        return await call_next(request)
