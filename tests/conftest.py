"""Pytest fixtures and configuration."""

from __future__ import annotations

import os

# Settings are read on first import of the application package
os.environ.setdefault("APP_ENV", "development")
os.environ.setdefault("SECRET_KEY", "test-secret-key-that-is-at-least-32-characters")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("COGNITO_USER_POOL_ID", "")
os.environ.setdefault("COGNITO_CLIENT_ID", "")

from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import date
from typing import TYPE_CHECKING

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.app.core.config import Settings, get_settings
from src.app.core.exceptions import ConflictError
from src.app.core.security import create_session_token
from src.app.db.session import Base, atomic, get_db
from src.app.main import create_application
from src.app.models.doctor import DoctorApplication
from src.app.models.enums import AccountStatus, DoctorStatus, UserRole
from src.app.models.user import User
from src.app.repositories.doctor_repository import DoctorRepository
from src.app.repositories.user_repository import UserRepository
from src.app.services.identity_service import (
    IdentityAccount,
    IdentitySession,
    get_identity_gateway,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

# Test database URL (in-memory SQLite for tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

STRONG_PASSWORD = "Str0ngPassword"


class FakeIdentityGateway:
    """In-memory stand-in for the Cognito user pool."""

    def __init__(self) -> None:
        self.accounts: dict[str, dict] = {}
        self.deleted: list[str] = []
        self.resent: list[str] = []

    def add_account(
        self,
        email: str,
        password: str = STRONG_PASSWORD,
        role: UserRole = UserRole.DOCTOR,
        *,
        temporary: bool = False,
    ) -> None:
        self.accounts[email] = {
            "password": password,
            "temporary": temporary,
            "role": role,
            "sub": f"sub-{len(self.accounts) + 1}",
        }

    def temporary_password(self, email: str) -> str:
        return self.accounts[email]["password"]

    async def create_account(self, email: str, temp_credential: str, attributes: dict[str, str]) -> str:
        if email in self.accounts:
            raise ConflictError(message="An account with this email already exists", error_code="EMAIL_EXISTS")
        self.add_account(
            email,
            temp_credential,
            UserRole(attributes.get("custom:role", UserRole.PATIENT.value)),
            temporary=True,
        )
        return self.accounts[email]["sub"]

    async def authenticate(self, email: str, credential: str) -> IdentitySession | None:
        account = self.accounts.get(email)
        if account is None or account["temporary"] or account["password"] != credential:
            return None
        return IdentitySession(access_token="provider-access", refresh_token=None, id_token=None)

    async def verify_temporary_credential(self, email: str, credential: str) -> bool:
        account = self.accounts.get(email)
        return account is not None and account["password"] == credential

    async def replace_credential(self, email: str, temp_credential: str, new_credential: str) -> bool:
        account = self.accounts.get(email)
        if account is None or account["password"] != temp_credential:
            return False
        account.update(password=new_credential, temporary=False)
        return True

    async def resend_confirmation(self, email: str) -> bool:
        self.resent.append(email)
        return email in self.accounts

    async def get_account(self, email: str) -> IdentityAccount | None:
        account = self.accounts.get(email)
        if account is None:
            return None
        status = "FORCE_CHANGE_PASSWORD" if account["temporary"] else "CONFIRMED"
        return IdentityAccount(username=account["sub"], email=email, role=account["role"], status=status)

    async def delete_account(self, email: str) -> None:
        self.accounts.pop(email, None)
        self.deleted.append(email)


@pytest.fixture
def settings() -> Settings:
    return get_settings()


@pytest.fixture
def gateway() -> FakeIdentityGateway:
    return FakeIdentityGateway()


@pytest_asyncio.fixture(scope="function")
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def app(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    gateway: FakeIdentityGateway,
) -> FastAPI:
    """Application with the database and identity provider swapped for test doubles."""
    application = create_application(settings)

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    application.dependency_overrides[get_db] = override_get_db
    application.dependency_overrides[get_identity_gateway] = lambda: gateway
    return application


@pytest_asyncio.fixture(scope="function")
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client with overridden dependencies."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Data builders
# ---------------------------------------------------------------------------

MakeUser = Callable[..., Awaitable[User]]
MakeDoctor = Callable[..., Awaitable[DoctorApplication]]


@pytest.fixture
def make_user(db_session: AsyncSession) -> MakeUser:
    async def _make(
        email: str,
        role: UserRole = UserRole.PATIENT,
        status: AccountStatus = AccountStatus.ACTIVE,
    ) -> User:
        async with atomic(db_session):
            return await UserRepository(db_session).create(email, role, status=status)

    return _make


@pytest.fixture
def make_doctor(db_session: AsyncSession) -> MakeDoctor:
    async def _make(
        email: str = "dr.jane@example.com",
        *,
        status: DoctorStatus = DoctorStatus.PENDING,
        account_status: AccountStatus = AccountStatus.PENDING,
        ahpra_number: str = "MED0001234567",
        first_name: str = "Jane",
        last_name: str = "Citizen",
    ) -> DoctorApplication:
        async with atomic(db_session):
            user = await UserRepository(db_session).create(email, UserRole.DOCTOR, status=account_status)
            return await DoctorRepository(db_session).insert(
                user=user,
                user_id=user.id,
                first_name=first_name,
                last_name=last_name,
                phone="0412345678",
                medical_specialty="obstetrics",
                ahpra_number=ahpra_number,
                ahpra_registration_date=date(2015, 1, 1),
                years_experience=6,
                status=status,
            )

    return _make


@pytest_asyncio.fixture
async def admin_user(make_user: MakeUser) -> User:
    return await make_user("ops.team@heydochealth.com.au", UserRole.ADMIN)


@pytest.fixture
def auth_headers_for(settings: Settings) -> Callable[[User], dict[str, str]]:
    """Bearer header carrying a valid session for ``user``."""

    def _headers(user: User) -> dict[str, str]:
        token = create_session_token(
            user_id=user.id,
            email=user.email,
            role=user.role,
            status=user.status,
            settings=settings,
        )
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def admin_headers(admin_user: User, auth_headers_for: Callable[[User], dict[str, str]]) -> dict[str, str]:
    return auth_headers_for(admin_user)


@pytest.fixture
def application_payload() -> dict:
    """Registration form as the portal submits it."""
    return {
        "type": "doctor",
        "first_name": "Jane",
        "last_name": "Citizen",
        "email": "Dr.Jane@Example.com",
        "phone": "0412345678",
        "specialty": "obstetrics",
        "ahpra_number": "med0001234567",
        "ahpra_registration_date": "2015",
        "experience": "6-10",
    }
