"""Tests for the doctor profile endpoint."""

from __future__ import annotations

from typing import TYPE_CHECKING

from src.app.db.session import atomic
from src.app.models.enums import UserRole
from src.app.repositories.document_repository import DocumentUploadRepository
from src.app.repositories.user_repository import UserRepository

if TYPE_CHECKING:
    from httpx import AsyncClient


async def _owner(session_factory, doctor):
    async with session_factory() as session:
        return await UserRepository(session).get_by_id(doctor.user_id)


async def test_doctor_sees_own_profile(client: AsyncClient, make_doctor, auth_headers_for, session_factory, db_session):
    doctor = await make_doctor()
    async with atomic(db_session):
        await DocumentUploadRepository(db_session).insert(
            user_id=doctor.user_id,
            doctor_id=doctor.id,
            file_name="cv.pdf",
            original_name="Jane Citizen CV.pdf",
            s3_key=f"doctors/{doctor.id}/cv.pdf",
            s3_url=f"https://bucket.s3.amazonaws.com/doctors/{doctor.id}/cv.pdf",
            file_size=2048,
            mime_type="application/pdf",
            document_type="cv",
        )
    user = await _owner(session_factory, doctor)

    response = await client.get(
        "/api/v1/doctor/profile",
        params={"email": "someone.else@example.com"},
        headers=auth_headers_for(user),
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["application"]["id"] == doctor.id
    assert data["application"]["email"] == "dr.jane@example.com"
    assert data["display_status"] == "pending_review"
    [upload] = data["uploads"]
    assert upload["original_name"] == "Jane Citizen CV.pdf"
    assert upload["status"] == "uploaded"


async def test_admin_must_name_a_doctor(client: AsyncClient, admin_headers):
    response = await client.get("/api/v1/doctor/profile", headers=admin_headers)

    assert response.status_code == 400


async def test_admin_opens_profile_by_email(client: AsyncClient, admin_headers, make_doctor):
    doctor = await make_doctor()

    by_email = await client.get("/api/v1/doctor/profile", params={"email": "DR.JANE@example.com"}, headers=admin_headers)
    by_user = await client.get("/api/v1/doctor/profile", params={"user_id": doctor.user_id}, headers=admin_headers)

    assert by_email.status_code == 200
    assert by_email.json()["data"]["application"]["id"] == doctor.id
    assert by_user.json()["data"]["application"]["id"] == doctor.id


async def test_doctor_without_application(client: AsyncClient, make_user, auth_headers_for):
    user = await make_user("new.doctor@example.com", UserRole.DOCTOR)

    response = await client.get("/api/v1/doctor/profile", headers=auth_headers_for(user))

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "DOCTOR_NOT_FOUND"


async def test_patient_is_refused(client: AsyncClient, make_user, auth_headers_for):
    patient = await make_user("p@example.com", UserRole.PATIENT)

    response = await client.get("/api/v1/doctor/profile", headers=auth_headers_for(patient))

    assert response.status_code == 403


async def test_profile_page_redirects_to_login(client: AsyncClient):
    response = await client.get("/doctor/profile")

    assert response.status_code == 307
    assert response.headers["location"] == "/login?from=%2Fdoctor%2Fprofile"
