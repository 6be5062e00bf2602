"""Tests for the Cognito identity gateway with a mocked aioboto3 client."""

from __future__ import annotations

import base64
import hashlib
import hmac
import string
from unittest.mock import AsyncMock, MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from src.app.core.exceptions import ConflictError, IdentityProviderError, ValidationError
from src.app.models.enums import UserRole
from src.app.services.identity_service import (
    TEMP_PASSWORD_SPECIALS,
    CognitoIdentityGateway,
    compute_secret_hash,
    generate_temporary_password,
)

EMAIL = "dr.jane@example.com"


def _client_error(code: str, operation: str = "AdminInitiateAuth") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


@pytest.fixture
def cognito_settings(settings):
    return settings.model_copy(
        update={
            "COGNITO_USER_POOL_ID": "ap-southeast-2_pool",
            "COGNITO_CLIENT_ID": "client-id",
            "COGNITO_CLIENT_SECRET": "client-secret",
        }
    )


@pytest.fixture
def client() -> MagicMock:
    return MagicMock()


@pytest.fixture
def gateway(cognito_settings, client, monkeypatch) -> CognitoIdentityGateway:
    instance = CognitoIdentityGateway(cognito_settings)
    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=client)
    context.__aexit__ = AsyncMock(return_value=False)
    monkeypatch.setattr(instance, "_client", lambda: context)
    return instance


def test_temporary_password_has_every_character_class():
    for _ in range(20):
        password = generate_temporary_password()
        assert len(password) == 12
        assert any(c in string.ascii_uppercase for c in password)
        assert any(c in string.ascii_lowercase for c in password)
        assert any(c in string.digits for c in password)
        assert any(c in TEMP_PASSWORD_SPECIALS for c in password)


def test_secret_hash():
    expected = base64.b64encode(
        hmac.new(b"secret", b"user@example.comclient", hashlib.sha256).digest()
    ).decode()

    assert compute_secret_hash("user@example.com", "client", "secret") == expected


class TestCreateAccount:
    async def test_returns_provider_sub(self, gateway, client):
        client.admin_create_user = AsyncMock(
            return_value={"User": {"Username": EMAIL, "Attributes": [{"Name": "sub", "Value": "abc-123"}]}}
        )

        external_id = await gateway.create_account(EMAIL, "Tmp!x8Qa2bZk", {"given_name": "Jane", "phone": ""})

        assert external_id == "abc-123"
        kwargs = client.admin_create_user.await_args.kwargs
        assert kwargs["TemporaryPassword"] == "Tmp!x8Qa2bZk"
        names = [a["Name"] for a in kwargs["UserAttributes"]]
        assert names == ["email", "email_verified", "given_name"]
        assert kwargs["ClientMetadata"]["verification_url"].endswith("/verify-email")

    async def test_existing_user_is_a_conflict(self, gateway, client):
        client.admin_create_user = AsyncMock(side_effect=_client_error("UsernameExistsException"))

        with pytest.raises(ConflictError) as exc_info:
            await gateway.create_account(EMAIL, "Tmp!x8Qa2bZk", {})
        assert exc_info.value.error_code == "EMAIL_EXISTS"

    async def test_other_failures_are_provider_errors(self, gateway, client):
        client.admin_create_user = AsyncMock(side_effect=EndpointConnectionError(endpoint_url="https://x"))

        with pytest.raises(IdentityProviderError) as exc_info:
            await gateway.create_account(EMAIL, "Tmp!x8Qa2bZk", {})
        assert exc_info.value.details["provider_code"] == "EndpointConnectionError"


class TestAuthenticate:
    async def test_success_carries_secret_hash(self, gateway, client):
        client.admin_initiate_auth = AsyncMock(
            return_value={"AuthenticationResult": {"AccessToken": "a", "RefreshToken": "r", "IdToken": "i"}}
        )

        session = await gateway.authenticate(EMAIL, "pw")

        assert session.access_token == "a"
        params = client.admin_initiate_auth.await_args.kwargs["AuthParameters"]
        assert params["SECRET_HASH"] == compute_secret_hash(EMAIL, "client-id", "client-secret")

    @pytest.mark.parametrize("code", ["NotAuthorizedException", "UserNotFoundException"])
    async def test_rejection_is_none(self, gateway, client, code):
        client.admin_initiate_auth = AsyncMock(side_effect=_client_error(code))

        assert await gateway.authenticate(EMAIL, "pw") is None

    async def test_pending_challenge_is_not_a_session(self, gateway, client):
        client.admin_initiate_auth = AsyncMock(return_value={"ChallengeName": "NEW_PASSWORD_REQUIRED"})

        assert await gateway.authenticate(EMAIL, "pw") is None

    async def test_throttling_is_a_provider_error(self, gateway, client):
        client.admin_initiate_auth = AsyncMock(side_effect=_client_error("TooManyRequestsException"))

        with pytest.raises(IdentityProviderError):
            await gateway.authenticate(EMAIL, "pw")


class TestTemporaryCredential:
    async def test_challenge_means_valid(self, gateway, client):
        client.admin_initiate_auth = AsyncMock(return_value={"ChallengeName": "NEW_PASSWORD_REQUIRED"})

        assert await gateway.verify_temporary_credential(EMAIL, "tmp") is True

    async def test_rejection_means_invalid(self, gateway, client):
        client.admin_initiate_auth = AsyncMock(side_effect=_client_error("NotAuthorizedException"))

        assert await gateway.verify_temporary_credential(EMAIL, "tmp") is False

    async def test_replace_answers_challenge(self, gateway, client):
        client.admin_initiate_auth = AsyncMock(
            return_value={"ChallengeName": "NEW_PASSWORD_REQUIRED", "Session": "s-1"}
        )
        client.admin_respond_to_auth_challenge = AsyncMock(return_value={"AuthenticationResult": {"AccessToken": "a"}})

        assert await gateway.replace_credential(EMAIL, "tmp", "Str0ngPassword") is True
        kwargs = client.admin_respond_to_auth_challenge.await_args.kwargs
        assert kwargs["Session"] == "s-1"
        assert kwargs["ChallengeResponses"]["NEW_PASSWORD"] == "Str0ngPassword"

    async def test_replace_for_confirmed_account_sets_password(self, gateway, client):
        client.admin_initiate_auth = AsyncMock(return_value={"AuthenticationResult": {"AccessToken": "a"}})
        client.admin_set_user_password = AsyncMock(return_value={})

        assert await gateway.replace_credential(EMAIL, "current", "Str0ngPassword") is True
        assert client.admin_set_user_password.await_args.kwargs["Permanent"] is True

    async def test_replace_with_policy_rejection(self, gateway, client):
        client.admin_initiate_auth = AsyncMock(
            return_value={"ChallengeName": "NEW_PASSWORD_REQUIRED", "Session": "s-1"}
        )
        client.admin_respond_to_auth_challenge = AsyncMock(side_effect=_client_error("InvalidPasswordException"))

        with pytest.raises(ValidationError):
            await gateway.replace_credential(EMAIL, "tmp", "weakpassword")


class TestAccountLookup:
    async def test_role_read_from_custom_attribute(self, gateway, client):
        client.admin_get_user = AsyncMock(
            return_value={
                "Username": EMAIL,
                "UserStatus": "CONFIRMED",
                "UserAttributes": [
                    {"Name": "sub", "Value": "abc-123"},
                    {"Name": "custom:role", "Value": "admin"},
                ],
            }
        )

        account = await gateway.get_account(EMAIL)

        assert account.username == "abc-123"
        assert account.role is UserRole.ADMIN

    async def test_unknown_role_defaults_to_patient(self, gateway, client):
        client.admin_get_user = AsyncMock(
            return_value={"Username": EMAIL, "UserAttributes": [{"Name": "custom:role", "Value": "nurse"}]}
        )

        assert (await gateway.get_account(EMAIL)).role is UserRole.PATIENT

    async def test_missing_account(self, gateway, client):
        client.admin_get_user = AsyncMock(side_effect=_client_error("UserNotFoundException", "AdminGetUser"))

        assert await gateway.get_account(EMAIL) is None


class TestResendConfirmation:
    async def test_invited_user_gets_invitation_again(self, gateway, client):
        client.admin_get_user = AsyncMock(return_value={"UserStatus": "FORCE_CHANGE_PASSWORD"})
        client.admin_create_user = AsyncMock(return_value={})

        assert await gateway.resend_confirmation(EMAIL) is True
        assert client.admin_create_user.await_args.kwargs["MessageAction"] == "RESEND"

    async def test_unconfirmed_user_gets_code(self, gateway, client):
        client.admin_get_user = AsyncMock(return_value={"UserStatus": "UNCONFIRMED"})
        client.resend_confirmation_code = AsyncMock(return_value={})

        assert await gateway.resend_confirmation(EMAIL) is True
        assert "SecretHash" in client.resend_confirmation_code.await_args.kwargs

    async def test_unknown_user(self, gateway, client):
        client.admin_get_user = AsyncMock(side_effect=_client_error("UserNotFoundException", "AdminGetUser"))

        assert await gateway.resend_confirmation(EMAIL) is False


async def test_delete_missing_account_is_quiet(gateway, client):
    client.admin_delete_user = AsyncMock(side_effect=_client_error("UserNotFoundException", "AdminDeleteUser"))

    await gateway.delete_account(EMAIL)
