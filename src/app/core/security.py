"""Session tokens and cookies.

Sessions are HS256 JWTs signed with ``SECRET_KEY``. A login issues an
access token (short-lived, checked on every request) and a refresh token
(longer-lived); both travel as httpOnly cookies. There is no automatic
refresh: once the access token expires the user logs in again.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, Literal

from fastapi import Request, Response

from ..models.enums import AccountStatus, UserRole
from .config import Settings
from .exceptions import UnauthorizedError

TokenType = Literal["access", "refresh"]


@dataclass(frozen=True)
class SessionClaims:
    """Identity carried by a verified session token."""

    user_id: str
    email: str
    role: UserRole
    status: AccountStatus
    token_type: TokenType
    expires_at: datetime


def _base64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _base64url_decode(data: str) -> bytes:
    """Decode a base64url-encoded string, handling missing padding."""
    padding = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


def _sign(signing_input: bytes, secret: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), signing_input, hashlib.sha256).digest()
    return _base64url_encode(digest)


def _encode_jwt(payload: dict[str, Any], *, secret: str, algorithm: str = "HS256") -> str:
    """Minimal HS256 JWT encoder."""
    if algorithm != "HS256":
        raise ValueError("Only HS256 algorithm is supported in this implementation")

    header = {"alg": algorithm, "typ": "JWT"}
    header_json = json.dumps(header, separators=(",", ":"), sort_keys=True).encode("utf-8")
    payload_json = json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8")

    signing_input = f"{_base64url_encode(header_json)}.{_base64url_encode(payload_json)}"
    return f"{signing_input}.{_sign(signing_input.encode('ascii'), secret)}"


def _decode_jwt(token: str, *, settings: Settings) -> dict[str, Any]:
    """Decode and validate an HS256 JWT.

    Verifies the signature, ``exp``, ``iss`` and ``aud``. Raises
    ``UnauthorizedError`` (INVALID_TOKEN / TOKEN_EXPIRED) on any failure.
    """
    # Cookies and headers may carry any Latin-1 text; signed tokens are ASCII
    if not token.isascii():
        raise UnauthorizedError(message="Invalid token format", error_code="INVALID_TOKEN")
    try:
        header_b64, payload_b64, signature_b64 = token.split(".")
    except ValueError as exc:
        raise UnauthorizedError(message="Invalid token format", error_code="INVALID_TOKEN") from exc

    expected = _sign(f"{header_b64}.{payload_b64}".encode("ascii"), settings.SECRET_KEY)
    if not hmac.compare_digest(signature_b64, expected):
        raise UnauthorizedError(message="Invalid token signature", error_code="INVALID_TOKEN")

    try:
        payload = json.loads(_base64url_decode(payload_b64))
    except (ValueError, UnicodeDecodeError) as exc:
        raise UnauthorizedError(message="Invalid token payload", error_code="INVALID_TOKEN") from exc

    exp = payload.get("exp")
    if not isinstance(exp, int):
        raise UnauthorizedError(message="Invalid token expiration", error_code="INVALID_TOKEN")
    if int(datetime.now(UTC).timestamp()) >= exp:
        raise UnauthorizedError(message="Token has expired", error_code="TOKEN_EXPIRED")

    if payload.get("iss") != settings.JWT_ISSUER or payload.get("aud") != settings.JWT_AUDIENCE:
        raise UnauthorizedError(message="Token issuer or audience mismatch", error_code="INVALID_TOKEN")

    return payload


def create_session_token(
    *,
    user_id: str,
    email: str,
    role: UserRole,
    status: AccountStatus,
    settings: Settings,
    token_type: TokenType = "access",
    now: datetime | None = None,
) -> str:
    now = now or datetime.now(UTC)
    if token_type == "access":
        lifetime = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    else:
        lifetime = timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    payload = {
        "sub": user_id,
        "email": email,
        "role": role.value,
        "status": status.value,
        "type": token_type,
        "iss": settings.JWT_ISSUER,
        "aud": settings.JWT_AUDIENCE,
        "iat": int(now.timestamp()),
        "exp": int((now + lifetime).timestamp()),
    }
    return _encode_jwt(payload, secret=settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def verify_session_token(
    token: str,
    *,
    settings: Settings,
    expected_type: TokenType = "access",
) -> SessionClaims:
    """Return the claims of a valid token of ``expected_type``."""
    payload = _decode_jwt(token, settings=settings)

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        raise UnauthorizedError(message="Invalid token subject", error_code="INVALID_TOKEN")
    if payload.get("type") != expected_type:
        raise UnauthorizedError(message="Wrong token type", error_code="INVALID_TOKEN")

    try:
        role = UserRole(payload.get("role"))
        status = AccountStatus(payload.get("status"))
    except ValueError as exc:
        raise UnauthorizedError(message="Invalid token claims", error_code="INVALID_TOKEN") from exc

    return SessionClaims(
        user_id=subject,
        email=str(payload.get("email", "")),
        role=role,
        status=status,
        token_type=expected_type,
        expires_at=datetime.fromtimestamp(payload["exp"], UTC),
    )


def extract_session_token(request: Request, settings: Settings) -> str | None:
    """Session token from the auth cookie, falling back to a Bearer header."""
    token = request.cookies.get(settings.AUTH_COOKIE_NAME)
    if token:
        return token
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.lower().startswith("bearer "):
        return auth_header.split(" ", 1)[1].strip() or None
    return None


def set_session_cookies(
    response: Response,
    *,
    access_token: str,
    refresh_token: str,
    settings: Settings,
) -> None:
    common: dict[str, Any] = {
        "httponly": True,
        "secure": settings.is_production,
        "samesite": "lax",
        "path": "/",
    }
    response.set_cookie(
        settings.AUTH_COOKIE_NAME,
        access_token,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        **common,
    )
    response.set_cookie(
        settings.REFRESH_COOKIE_NAME,
        refresh_token,
        max_age=settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60,
        **common,
    )


def clear_session_cookies(response: Response, settings: Settings) -> None:
    for name in (settings.AUTH_COOKIE_NAME, settings.REFRESH_COOKIE_NAME):
        response.delete_cookie(
            name,
            path="/",
            secure=settings.is_production,
            httponly=True,
            samesite="lax",
        )
