"""Tests for auth endpoints.

Current API surface:
  POST /api/v1/auth/register                   submit a doctor application
  POST /api/v1/auth/verify-temporary-password  check the invitation password
  POST /api/v1/auth/set-permanent-password     replace it and sign in
  POST /api/v1/auth/resend-confirmation        re-send the invitation
  POST /api/v1/auth/login | logout             session cookies
  POST /api/v1/auth/validate-session           identity behind a token
  GET  /api/v1/auth/me | user-by-email
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from src.app.models.enums import AccountStatus, DoctorStatus, UserRole
from src.app.repositories.doctor_repository import DoctorRepository
from src.app.repositories.user_repository import UserRepository

if TYPE_CHECKING:
    from httpx import AsyncClient

EMAIL = "dr.jane@example.com"
PASSWORD = "Str0ngPassword"


# ---------------------------------------------------------------------------
# POST /api/v1/auth/register
# ---------------------------------------------------------------------------


async def test_register_creates_application(client: AsyncClient, gateway, application_payload, session_factory):
    response = await client.post("/api/v1/auth/register", json=application_payload)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"] == {"email": EMAIL, "requires_email_verification": True}
    assert EMAIL in gateway.accounts

    async with session_factory() as session:
        doctor = await DoctorRepository(session).get_by_email(EMAIL)
        assert doctor.status is DoctorStatus.EMAIL_UNCONFIRMED
        assert doctor.medical_specialty == "obstetrics"


async def test_register_with_custom_specialty(client: AsyncClient, application_payload, session_factory):
    payload = {**application_payload, "specialty": "Other", "custom_specialty": "Reproductive endocrinology"}

    response = await client.post("/api/v1/auth/register", json=payload)

    assert response.status_code == 200
    async with session_factory() as session:
        doctor = await DoctorRepository(session).get_by_email(EMAIL)
        assert doctor.medical_specialty == "Reproductive endocrinology"


@pytest.mark.parametrize(
    ("override", "field"),
    [
        ({"email": "not-an-email"}, "email"),
        ({"email": "a@@b..c"}, "email"),
        ({"type": "patient"}, "type"),
        ({"ahpra_registration_date": "last year"}, "ahpra_registration_date"),
        ({"experience": "lots"}, "experience"),
        ({"first_name": ""}, "first_name"),
    ],
)
async def test_register_validation_errors(client: AsyncClient, gateway, application_payload, override, field):
    response = await client.post("/api/v1/auth/register", json={**application_payload, **override})

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert field in [e["field"] for e in error["details"]["validation_errors"]]
    assert gateway.accounts == {}


async def test_register_other_specialty_needs_detail(client: AsyncClient, application_payload):
    response = await client.post("/api/v1/auth/register", json={**application_payload, "specialty": "other"})

    assert response.status_code == 400


async def test_register_duplicate_email(client: AsyncClient, make_user, application_payload):
    await make_user(EMAIL, UserRole.PATIENT)

    response = await client.post("/api/v1/auth/register", json=application_payload)

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "EMAIL_EXISTS"


async def test_register_duplicate_ahpra_leaves_one_application(
    client: AsyncClient, gateway, application_payload, session_factory
):
    first = {**application_payload, "email": "a@b.com", "ahpra_number": "ABC1234567890"}
    second = {**first, "email": "c@d.com"}

    assert (await client.post("/api/v1/auth/register", json=first)).status_code == 200
    response = await client.post("/api/v1/auth/register", json=second)

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "AHPRA_EXISTS"
    assert set(gateway.accounts) == {"a@b.com"}
    async with session_factory() as session:
        assert await UserRepository(session).count() == 1
        assert await DoctorRepository(session).count() == 1


# ---------------------------------------------------------------------------
# Confirmation flow
# ---------------------------------------------------------------------------


async def test_full_confirmation_flow(client: AsyncClient, gateway, application_payload, settings):
    await client.post("/api/v1/auth/register", json=application_payload)
    temp = gateway.temporary_password(EMAIL)

    verify = await client.post(
        "/api/v1/auth/verify-temporary-password",
        json={"email": EMAIL, "temporary_password": temp},
    )
    assert verify.status_code == 200
    assert verify.json()["data"] == {"requires_new_password": True}

    response = await client.post(
        "/api/v1/auth/set-permanent-password",
        json={"email": EMAIL, "temporary_password": temp, "new_password": PASSWORD},
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["auto_login"] is True
    assert data["redirect_to"] == "/doctor/profile"
    assert data["user"]["status"] == "pending"
    assert response.cookies.get(settings.AUTH_COOKIE_NAME)

    profile = await client.get("/api/v1/doctor/profile")
    assert profile.status_code == 200
    assert profile.json()["data"]["display_status"] == "pending_review"

    # a pending doctor cannot start a new session with the password
    login = await client.post("/api/v1/auth/login", json={"email": EMAIL, "password": PASSWORD})
    assert login.status_code == 403
    assert login.json()["error"]["code"] == "ACCOUNT_PENDING"
    assert login.json()["error"]["details"]["is_pending"] is True


async def test_wrong_temporary_password(client: AsyncClient, gateway):
    gateway.add_account(EMAIL, "Tmp!x8Qa2bZk", temporary=True)

    response = await client.post(
        "/api/v1/auth/verify-temporary-password",
        json={"email": EMAIL, "temporary_password": "nope"},
    )

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "INVALID_CREDENTIALS"


async def test_weak_permanent_password(client: AsyncClient, gateway):
    gateway.add_account(EMAIL, "Tmp!x8Qa2bZk", temporary=True)

    response = await client.post(
        "/api/v1/auth/set-permanent-password",
        json={"email": EMAIL, "temporary_password": "Tmp!x8Qa2bZk", "new_password": "alllowercase"},
    )

    assert response.status_code == 400
    errors = response.json()["error"]["details"]["validation_errors"]
    assert {e["field"] for e in errors} == {"new_password"}


async def test_resend_confirmation(client: AsyncClient, gateway):
    gateway.add_account(EMAIL, temporary=True)

    response = await client.post("/api/v1/auth/resend-confirmation", json={"email": "Dr.Jane@Example.com"})

    assert response.status_code == 200
    assert response.json()["data"] == {"email": EMAIL}
    assert gateway.resent == [EMAIL]


async def test_resend_confirmation_bad_email(client: AsyncClient):
    response = await client.post("/api/v1/auth/resend-confirmation", json={"email": "nope"})

    assert response.status_code == 400
    assert response.json()["error"]["details"]["validation_errors"][0]["field"] == "email"


# ---------------------------------------------------------------------------
# Login / logout / session
# ---------------------------------------------------------------------------


async def test_admin_login_sets_cookies(client: AsyncClient, gateway, admin_user, settings):
    gateway.add_account(admin_user.email, PASSWORD, UserRole.ADMIN)

    response = await client.post("/api/v1/auth/login", json={"email": admin_user.email, "password": PASSWORD})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["redirect_to"] == "/admin/dashboard"
    assert data["user"]["role"] == "admin"
    assert response.cookies.get(settings.AUTH_COOKIE_NAME)
    assert response.cookies.get(settings.REFRESH_COOKIE_NAME)

    me = await client.get("/api/v1/auth/me")
    assert me.status_code == 200
    assert me.json()["data"]["email"] == admin_user.email


async def test_login_wrong_password(client: AsyncClient, gateway, admin_user):
    gateway.add_account(admin_user.email, PASSWORD, UserRole.ADMIN)

    response = await client.post("/api/v1/auth/login", json={"email": admin_user.email, "password": "x"})

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "INVALID_CREDENTIALS"


async def test_login_inactive_account(client: AsyncClient, gateway, make_user):
    await make_user("gone@example.com", UserRole.PATIENT, AccountStatus.INACTIVE)
    gateway.add_account("gone@example.com", PASSWORD, UserRole.PATIENT)

    response = await client.post("/api/v1/auth/login", json={"email": "gone@example.com", "password": PASSWORD})

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "USER_INACTIVE"


async def test_logout_clears_cookies(client: AsyncClient, settings):
    response = await client.post("/api/v1/auth/logout")

    assert response.status_code == 200
    cookies = response.headers.get_list("set-cookie")
    assert any(c.startswith(f"{settings.AUTH_COOKIE_NAME}=") for c in cookies)
    assert all("max-age=0" in c.lower() for c in cookies)


async def test_validate_session_from_body(client: AsyncClient, admin_user, admin_headers):
    token = admin_headers["Authorization"].split(" ", 1)[1]

    response = await client.post("/api/v1/auth/validate-session", json={"token": token})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["valid"] is True
    assert data["user_id"] == admin_user.id
    assert data["role"] == "admin"


async def test_validate_session_from_header(client: AsyncClient, admin_headers):
    response = await client.post("/api/v1/auth/validate-session", headers=admin_headers)

    assert response.status_code == 200


async def test_validate_session_without_token(client: AsyncClient):
    response = await client.post("/api/v1/auth/validate-session")

    assert response.status_code == 401


async def test_me_requires_session(client: AsyncClient):
    response = await client.get("/api/v1/auth/me")

    assert response.status_code == 401
    assert response.json()["error"]["details"]["redirect_to"] == "/login?from=%2Fapi%2Fv1%2Fauth%2Fme"


async def test_user_by_email_is_admin_only(client: AsyncClient, make_user, auth_headers_for, admin_headers):
    patient = await make_user("p@example.com")

    denied = await client.get(
        "/api/v1/auth/user-by-email", params={"email": "p@example.com"}, headers=auth_headers_for(patient)
    )
    found = await client.get("/api/v1/auth/user-by-email", params={"email": "P@example.com"}, headers=admin_headers)
    missing = await client.get("/api/v1/auth/user-by-email", params={"email": "x@example.com"}, headers=admin_headers)

    assert denied.status_code == 403
    assert found.status_code == 200
    assert found.json()["data"]["id"] == patient.id
    assert missing.status_code == 404
    assert missing.json()["error"]["code"] == "USER_NOT_FOUND"
