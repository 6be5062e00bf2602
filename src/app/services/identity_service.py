"""
Identity Gateway - AWS Cognito user pool integration.

Credentials never touch this service's database: accounts, passwords and
the invitation email all live in Cognito. This module wraps the admin API
calls the portal needs behind the ``IdentityGateway`` protocol so the rest
of the code (and the tests) can swap in another implementation.

Result conventions
------------------
- Wrong credentials / unknown user -> falsy result (``None`` / ``False``).
- Duplicate account -> ``ConflictError``.
- Password policy rejection -> ``ValidationError``.
- Anything else Cognito or botocore raises -> ``IdentityProviderError``.

No call is retried; a failed request surfaces immediately.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import secrets
import string
from dataclasses import dataclass
from typing import Any, Protocol

import aioboto3
import structlog
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import Request

from ..core.config import Settings
from ..core.exceptions import ConflictError, IdentityProviderError, ValidationError
from ..models.enums import UserRole

log = structlog.get_logger(__name__)

NEW_PASSWORD_REQUIRED = "NEW_PASSWORD_REQUIRED"
FORCE_CHANGE_PASSWORD = "FORCE_CHANGE_PASSWORD"

# Cognito error codes that mean "these credentials / this user don't check out"
_REJECTION_CODES = frozenset({
    "NotAuthorizedException",
    "UserNotFoundException",
    "UserNotConfirmedException",
    "PasswordResetRequiredException",
})

TEMP_PASSWORD_SPECIALS = "!@#$%^&*"


@dataclass(frozen=True)
class IdentitySession:
    """Tokens returned by a successful authentication."""

    access_token: str
    refresh_token: str | None
    id_token: str | None
    expires_in: int | None = None


@dataclass(frozen=True)
class IdentityAccount:
    username: str
    email: str
    role: UserRole
    status: str


class IdentityGateway(Protocol):
    """Operations the portal needs from the identity provider."""

    async def create_account(
        self,
        email: str,
        temp_credential: str,
        attributes: dict[str, str],
    ) -> str: ...

    async def authenticate(self, email: str, credential: str) -> IdentitySession | None: ...

    async def verify_temporary_credential(self, email: str, credential: str) -> bool: ...

    async def replace_credential(self, email: str, temp_credential: str, new_credential: str) -> bool: ...

    async def resend_confirmation(self, email: str) -> bool: ...

    async def get_account(self, email: str) -> IdentityAccount | None: ...

    async def delete_account(self, email: str) -> None: ...


def generate_temporary_password(length: int = 12) -> str:
    """Random password with at least one upper, lower, digit and special character."""
    required = [
        secrets.choice(string.ascii_uppercase),
        secrets.choice(string.ascii_lowercase),
        secrets.choice(string.digits),
        secrets.choice(TEMP_PASSWORD_SPECIALS),
    ]
    alphabet = string.ascii_letters + string.digits + TEMP_PASSWORD_SPECIALS
    rest = [secrets.choice(alphabet) for _ in range(length - len(required))]
    chars = required + rest
    secrets.SystemRandom().shuffle(chars)
    return "".join(chars)


def compute_secret_hash(username: str, client_id: str, client_secret: str) -> str:
    """Cognito SECRET_HASH: base64(HMAC-SHA256(client_secret, username + client_id))."""
    digest = hmac.new(
        client_secret.encode("utf-8"),
        (username + client_id).encode("utf-8"),
        hashlib.sha256,
    ).digest()
    return base64.b64encode(digest).decode("ascii")


def _error_code(exc: ClientError) -> str:
    return exc.response.get("Error", {}).get("Code", "")


def _attribute(attributes: list[dict[str, str]], name: str) -> str | None:
    for attr in attributes:
        if attr.get("Name") == name:
            return attr.get("Value")
    return None


class CognitoIdentityGateway:
    """``IdentityGateway`` backed by a Cognito user pool (admin auth flow)."""

    def __init__(self, settings: Settings) -> None:
        self.user_pool_id = settings.COGNITO_USER_POOL_ID
        self.client_id = settings.COGNITO_CLIENT_ID
        self.client_secret = settings.COGNITO_CLIENT_SECRET
        self.verification_url = f"{settings.APP_URL.rstrip('/')}/verify-email"
        self.session = aioboto3.Session(
            aws_access_key_id=settings.AWS_ACCESS_KEY_ID or None,
            aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY or None,
            region_name=settings.COGNITO_REGION,
        )
        log.info("cognito_gateway_initialized", region=settings.COGNITO_REGION)

    def _client(self) -> Any:
        return self.session.client("cognito-idp")

    def _with_secret(self, email: str, params: dict[str, str]) -> dict[str, str]:
        if self.client_secret:
            params["SECRET_HASH"] = compute_secret_hash(email, self.client_id, self.client_secret)
        return params

    async def _initiate_auth(self, client: Any, email: str, password: str) -> dict[str, Any]:
        return await client.admin_initiate_auth(
            UserPoolId=self.user_pool_id,
            ClientId=self.client_id,
            AuthFlow="ADMIN_NO_SRP_AUTH",
            AuthParameters=self._with_secret(email, {"USERNAME": email, "PASSWORD": password}),
        )

    @staticmethod
    def _session_from(result: dict[str, Any]) -> IdentitySession:
        return IdentitySession(
            access_token=result["AccessToken"],
            refresh_token=result.get("RefreshToken"),
            id_token=result.get("IdToken"),
            expires_in=result.get("ExpiresIn"),
        )

    def _provider_error(self, operation: str, exc: Exception) -> IdentityProviderError:
        code = _error_code(exc) if isinstance(exc, ClientError) else type(exc).__name__
        log.error("cognito_call_failed", operation=operation, provider_code=code)
        return IdentityProviderError(
            message=f"Identity provider error during {operation}",
            provider_code=code,
        )

    # ------------------------------------------------------------------
    # Gateway operations
    # ------------------------------------------------------------------

    async def create_account(
        self,
        email: str,
        temp_credential: str,
        attributes: dict[str, str],
    ) -> str:
        """Create the account; Cognito emails the temporary password to the user."""
        user_attributes = [
            {"Name": "email", "Value": email},
            {"Name": "email_verified", "Value": "false"},
        ] + [{"Name": name, "Value": value} for name, value in attributes.items() if value]

        try:
            async with self._client() as client:
                response = await client.admin_create_user(
                    UserPoolId=self.user_pool_id,
                    Username=email,
                    TemporaryPassword=temp_credential,
                    UserAttributes=user_attributes,
                    ClientMetadata={"verification_url": self.verification_url},
                )
        except ClientError as exc:
            code = _error_code(exc)
            if code == "UsernameExistsException":
                raise ConflictError(
                    message="An account with this email already exists",
                    error_code="EMAIL_EXISTS",
                ) from exc
            raise self._provider_error("create_account", exc) from exc
        except BotoCoreError as exc:
            raise self._provider_error("create_account", exc) from exc

        user = response.get("User", {})
        external_id = _attribute(user.get("Attributes", []), "sub") or user.get("Username") or email
        log.info("cognito_account_created", external_id=external_id)
        return external_id

    async def authenticate(self, email: str, credential: str) -> IdentitySession | None:
        try:
            async with self._client() as client:
                response = await self._initiate_auth(client, email, credential)
        except ClientError as exc:
            if _error_code(exc) in _REJECTION_CODES:
                return None
            raise self._provider_error("authenticate", exc) from exc
        except BotoCoreError as exc:
            raise self._provider_error("authenticate", exc) from exc

        result = response.get("AuthenticationResult")
        if result is None:
            # A pending challenge (e.g. NEW_PASSWORD_REQUIRED) is not a session
            return None
        return self._session_from(result)

    async def verify_temporary_credential(self, email: str, credential: str) -> bool:
        try:
            async with self._client() as client:
                response = await self._initiate_auth(client, email, credential)
        except ClientError as exc:
            if _error_code(exc) in _REJECTION_CODES:
                return False
            raise self._provider_error("verify_temporary_credential", exc) from exc
        except BotoCoreError as exc:
            raise self._provider_error("verify_temporary_credential", exc) from exc

        return (
            response.get("AuthenticationResult") is not None
            or response.get("ChallengeName") == NEW_PASSWORD_REQUIRED
        )

    async def replace_credential(self, email: str, temp_credential: str, new_credential: str) -> bool:
        """Answer the NEW_PASSWORD_REQUIRED challenge opened by ``temp_credential``."""
        try:
            async with self._client() as client:
                response = await self._initiate_auth(client, email, temp_credential)

                if response.get("ChallengeName") == NEW_PASSWORD_REQUIRED:
                    answer = await client.admin_respond_to_auth_challenge(
                        UserPoolId=self.user_pool_id,
                        ClientId=self.client_id,
                        ChallengeName=NEW_PASSWORD_REQUIRED,
                        Session=response["Session"],
                        ChallengeResponses=self._with_secret(
                            email, {"USERNAME": email, "NEW_PASSWORD": new_credential}
                        ),
                    )
                    return answer.get("AuthenticationResult") is not None

                if response.get("AuthenticationResult") is not None:
                    await client.admin_set_user_password(
                        UserPoolId=self.user_pool_id,
                        Username=email,
                        Password=new_credential,
                        Permanent=True,
                    )
                    return True
                return False
        except ClientError as exc:
            code = _error_code(exc)
            if code in _REJECTION_CODES:
                return False
            if code == "InvalidPasswordException":
                raise ValidationError.for_field(
                    "new_password", "Password does not meet requirements"
                ) from exc
            raise self._provider_error("replace_credential", exc) from exc
        except BotoCoreError as exc:
            raise self._provider_error("replace_credential", exc) from exc

    async def resend_confirmation(self, email: str) -> bool:
        """Re-send the invitation (temporary password) or the confirmation code."""
        try:
            async with self._client() as client:
                account = await client.admin_get_user(UserPoolId=self.user_pool_id, Username=email)
                if account.get("UserStatus") == FORCE_CHANGE_PASSWORD:
                    await client.admin_create_user(
                        UserPoolId=self.user_pool_id,
                        Username=email,
                        MessageAction="RESEND",
                        ClientMetadata={"verification_url": self.verification_url},
                    )
                else:
                    params: dict[str, Any] = {"ClientId": self.client_id, "Username": email}
                    if self.client_secret:
                        params["SecretHash"] = compute_secret_hash(
                            email, self.client_id, self.client_secret
                        )
                    await client.resend_confirmation_code(**params)
        except ClientError as exc:
            if _error_code(exc) == "UserNotFoundException":
                return False
            raise self._provider_error("resend_confirmation", exc) from exc
        except BotoCoreError as exc:
            raise self._provider_error("resend_confirmation", exc) from exc
        return True

    async def get_account(self, email: str) -> IdentityAccount | None:
        try:
            async with self._client() as client:
                account = await client.admin_get_user(UserPoolId=self.user_pool_id, Username=email)
        except ClientError as exc:
            if _error_code(exc) == "UserNotFoundException":
                return None
            raise self._provider_error("get_account", exc) from exc
        except BotoCoreError as exc:
            raise self._provider_error("get_account", exc) from exc

        attributes = account.get("UserAttributes", [])
        raw_role = _attribute(attributes, "custom:role") or UserRole.PATIENT.value
        try:
            role = UserRole(raw_role)
        except ValueError:
            role = UserRole.PATIENT
        return IdentityAccount(
            username=_attribute(attributes, "sub") or account.get("Username", email),
            email=email,
            role=role,
            status=account.get("UserStatus", ""),
        )

    async def delete_account(self, email: str) -> None:
        try:
            async with self._client() as client:
                await client.admin_delete_user(UserPoolId=self.user_pool_id, Username=email)
        except ClientError as exc:
            if _error_code(exc) == "UserNotFoundException":
                return
            raise self._provider_error("delete_account", exc) from exc
        except BotoCoreError as exc:
            raise self._provider_error("delete_account", exc) from exc
        log.info("cognito_account_deleted")


def get_identity_gateway(request: Request) -> IdentityGateway:
    """FastAPI dependency - the gateway built by ``create_application``."""
    return request.app.state.identity_gateway
