"""Tests for the session layer: uniform results, error mapping, serialised resolution."""

import asyncio

import pytest

from brand_connect.errors import AuthRejected, SessionInvalid, UpstreamUnavailable
from brand_connect.models.auth_models import RegistrationRequest
from brand_connect.models.enums import (
    ApprovalStatus,
    AuthEvent,
    ErrorCode,
    ResolutionSource,
    UserRole,
)
from fakes import FakeAuthProvider, InMemoryRecordStore, seed_client, seed_creative


def _make_registration(**overrides: object) -> RegistrationRequest:
    fields: dict[str, object] = {
        "email": "New.User@Example.com ",
        "password": "s3cret-pass",
        "name": "New User",
        "phone": "+51 999 000 111",
        "location": "Lima",
        "user_type": "client",
    }
    fields.update(overrides)
    return RegistrationRequest(**fields)


class TestValidation:
    def test_email_rules(self, services) -> None:
        authority = services["session_authority"]
        assert authority.validate_email("a@b.co").is_valid
        assert not authority.validate_email("").is_valid
        assert not authority.validate_email("not-an-email").is_valid

    def test_password_minimum_length(self, services) -> None:
        authority = services["session_authority"]
        assert not authority.validate_password("short").is_valid
        assert authority.validate_password("longenough").is_valid

    def test_name_rejects_control_characters(self, services) -> None:
        authority = services["session_authority"]
        assert not authority.validate_name("Bad\nName").is_valid
        assert not authority.validate_name("A").is_valid
        assert authority.validate_name("Ana").is_valid


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_resolves_and_stores_user(self, services, auth: FakeAuthProvider, store, session) -> None:
        principal = auth.add_account("client@example.com", "password123", {"full_name": "Dana"})
        seed_client(store, principal.id, full_name="Dana")

        result = await services["session_authority"].login(" Client@Example.com", "password123")

        assert result.success
        assert result.data.id == principal.id
        assert result.data.source == ResolutionSource.CLIENT_PROFILE
        assert session.current_user == result.data
        assert session.access_token is not None

    @pytest.mark.asyncio
    async def test_invalid_credentials_are_mapped(self, services, auth: FakeAuthProvider) -> None:
        auth.add_account("client@example.com", "password123")

        result = await services["session_authority"].login("client@example.com", "wrong-password")

        assert not result.success
        assert result.error_code == ErrorCode.INVALID_CREDENTIALS
        assert result.error == "Invalid email or password"

    @pytest.mark.asyncio
    async def test_unconfirmed_email_is_mapped(self, services, auth: FakeAuthProvider) -> None:
        auth.add_account("new@example.com", "password123", confirmed=False)

        result = await services["session_authority"].login("new@example.com", "password123")

        assert result.error_code == ErrorCode.EMAIL_NOT_CONFIRMED
        assert result.error == "Please verify your email address"

    @pytest.mark.asyncio
    async def test_unknown_provider_error_passes_raw_message(self, services, auth: FakeAuthProvider) -> None:
        auth.fail("sign_in", AuthRejected("Signups not allowed for this instance"))

        result = await services["session_authority"].login("x@example.com", "password123")

        assert not result.success
        assert result.error == "Signups not allowed for this instance"
        assert result.error_code == ErrorCode.UNKNOWN_ERROR

    @pytest.mark.asyncio
    async def test_network_error_is_a_result_not_an_exception(self, services, auth: FakeAuthProvider) -> None:
        auth.fail("sign_in", UpstreamUnavailable("sign_in: store unreachable"))

        result = await services["session_authority"].login("x@example.com", "password123")

        assert result.error_code == ErrorCode.NETWORK_ERROR

    @pytest.mark.asyncio
    async def test_invalid_email_never_reaches_provider(self, services, auth: FakeAuthProvider) -> None:
        result = await services["session_authority"].login("bogus", "password123")

        assert result.error_code == ErrorCode.VALIDATION_ERROR
        assert auth.current is None

    @pytest.mark.asyncio
    async def test_login_heals_missing_profile(self, services, auth: FakeAuthProvider, store: InMemoryRecordStore) -> None:
        auth.add_account("maker@example.com", "password123", {"user_type": "creative", "profession": "Designer"})

        result = await services["session_authority"].login("maker@example.com", "password123")

        assert result.data.role == UserRole.CREATIVE
        assert result.data.name == "Designer"
        assert result.data.approved is False
        assert len(store.rows("creative_profiles")) == 1

    @pytest.mark.asyncio
    async def test_admin_login_rejects_non_admin(self, services, auth: FakeAuthProvider, session) -> None:
        auth.add_account("client@example.com", "password123")

        result = await services["session_authority"].admin_login("client@example.com", "password123")

        assert result.error_code == ErrorCode.FORBIDDEN
        assert result.error == "Access denied. Admin credentials required."
        assert session.current_user is None
        assert auth.current is None

    @pytest.mark.asyncio
    async def test_admin_login_accepts_admin(self, services, auth: FakeAuthProvider) -> None:
        auth.add_account("root@example.com", "password123", {"role": "admin"})

        result = await services["session_authority"].admin_login("root@example.com", "password123")

        assert result.success
        assert result.data.is_admin


class TestRegistration:
    @pytest.mark.asyncio
    async def test_register_client_provisions_profile(self, services, auth: FakeAuthProvider, store) -> None:
        result = await services["session_authority"].register(_make_registration())

        assert result.success
        assert result.data.role == UserRole.CLIENT
        assert result.data.email == "new.user@example.com"
        profiles = store.rows("client_profiles")
        assert len(profiles) == 1
        assert profiles[0]["full_name"] == "New User"
        assert auth.sign_up_metadata[0]["user_type"] == "client"

    @pytest.mark.asyncio
    async def test_register_creative_sends_category_and_profession(self, services, auth: FakeAuthProvider, store) -> None:
        request = _make_registration(user_type="creative", profession="Illustrator")

        result = await services["session_authority"].register(request)

        metadata = auth.sign_up_metadata[0]
        assert metadata["category"] == "General"
        assert metadata["profession"] == "Illustrator"
        creative = store.rows("creative_profiles")[0]
        assert creative["title"] == "Illustrator"
        assert creative["approval_status"] == "pending"
        assert creative["bio"] == "Professional Illustrator based in Lima"
        assert result.data.approved is False

    @pytest.mark.asyncio
    async def test_trigger_created_profile_is_not_duplicated(self, services, auth: FakeAuthProvider, store) -> None:
        auth.on_sign_up = lambda principal: seed_creative(
            store, user_id=principal.id, approval_status=ApprovalStatus.PENDING,
        )

        result = await services["session_authority"].register(
            _make_registration(user_type="creative", profession="Editor"),
        )

        assert result.success
        assert len(store.rows("creative_profiles")) == 1

    @pytest.mark.asyncio
    async def test_existing_email_is_mapped(self, services, auth: FakeAuthProvider) -> None:
        auth.add_account("new.user@example.com", "password123")

        result = await services["session_authority"].register(_make_registration())

        assert result.error_code == ErrorCode.EMAIL_ALREADY_EXISTS

    @pytest.mark.asyncio
    async def test_short_password_is_rejected(self, services) -> None:
        result = await services["session_authority"].register(_make_registration(password="short"))
        assert result.error_code == ErrorCode.VALIDATION_ERROR

    @pytest.mark.asyncio
    async def test_unconfirmed_sign_up_does_not_sign_in(self, services, auth: FakeAuthProvider, session) -> None:
        auth.auto_confirm = False

        result = await services["session_authority"].register(_make_registration())

        assert result.success
        assert result.data.role == UserRole.CLIENT
        assert session.current_user is None


class TestLogoutAndPasswords:
    @pytest.mark.asyncio
    async def test_logout_clears_even_when_provider_fails(self, services, auth: FakeAuthProvider, session) -> None:
        auth.add_account("client@example.com", "password123")
        await services["session_authority"].login("client@example.com", "password123")
        auth.fail("sign_out", UpstreamUnavailable("offline"))

        result = await services["session_authority"].logout()

        assert result.success
        assert session.current_user is None

    @pytest.mark.asyncio
    async def test_reset_password_uses_redirect(self, services, auth: FakeAuthProvider, config) -> None:
        result = await services["session_authority"].reset_password(" Someone@Example.com")

        assert result.success
        assert auth.reset_requests == [("someone@example.com", config.PASSWORD_RESET_REDIRECT_URL)]

    @pytest.mark.asyncio
    async def test_update_password_requires_user(self, services) -> None:
        result = await services["session_authority"].update_password("new-password")
        assert result.error_code == ErrorCode.NOT_AUTHENTICATED

    @pytest.mark.asyncio
    async def test_update_password(self, services, auth: FakeAuthProvider) -> None:
        auth.add_account("client@example.com", "password123")
        authority = services["session_authority"]
        await authority.login("client@example.com", "password123")

        result = await authority.update_password("brand-new-pass")

        assert result.success
        assert auth.accounts["client@example.com"][0] == "brand-new-pass"


class TestRefresh:
    @pytest.mark.asyncio
    async def test_invalid_refresh_token_expires_session(self, services, auth: FakeAuthProvider, session) -> None:
        auth.add_account("client@example.com", "password123")
        authority = services["session_authority"]
        await authority.login("client@example.com", "password123")
        auth.fail("refresh_session", SessionInvalid("Invalid Refresh Token: Already Used"))

        result = await authority.refresh_session()

        assert result.error_code == ErrorCode.SESSION_EXPIRED
        assert session.current_user is None

    @pytest.mark.asyncio
    async def test_network_error_keeps_session(self, services, auth: FakeAuthProvider, session) -> None:
        auth.add_account("client@example.com", "password123")
        authority = services["session_authority"]
        await authority.login("client@example.com", "password123")
        auth.fail("refresh_session", UpstreamUnavailable("offline"))

        result = await authority.refresh_session()

        assert result.success
        assert session.current_user is not None


class TestUpdateProfile:
    @pytest.mark.asyncio
    async def test_requires_resolved_user(self, services) -> None:
        result = await services["session_authority"].update_profile({"phone": "123"})
        assert result.error_code == ErrorCode.NOT_AUTHENTICATED

    @pytest.mark.asyncio
    async def test_client_update_refreshes_current_user(self, services, auth: FakeAuthProvider, store, session) -> None:
        principal = auth.add_account("client@example.com", "password123")
        seed_client(store, principal.id, full_name="Dana")
        authority = services["session_authority"]
        await authority.login("client@example.com", "password123")

        result = await authority.update_profile({"full_name": "Dana Updated", "industry": "Retail"})

        assert result.success
        assert result.data.name == "Dana Updated"
        assert session.current_user.industry == "Retail"

    @pytest.mark.asyncio
    async def test_creative_update_cannot_touch_approval(self, services, auth: FakeAuthProvider, store) -> None:
        principal = auth.add_account("maker@example.com", "password123", {"user_type": "creative"})
        seed_creative(store, user_id=principal.id, approval_status=ApprovalStatus.PENDING)
        authority = services["session_authority"]
        await authority.login("maker@example.com", "password123")

        result = await authority.update_profile({"title": "Senior Editor", "approval_status": "approved"})

        assert result.success
        assert result.data.name == "Senior Editor"
        assert result.data.approved is False
        assert store.rows("creative_profiles")[0]["approval_status"] == "pending"

    @pytest.mark.asyncio
    async def test_invalid_field_value(self, services, auth: FakeAuthProvider, store) -> None:
        principal = auth.add_account("maker@example.com", "password123", {"user_type": "creative"})
        seed_creative(store, user_id=principal.id)
        authority = services["session_authority"]
        await authority.login("maker@example.com", "password123")

        result = await authority.update_profile({"hourly_rate": -5})

        assert result.error_code == ErrorCode.VALIDATION_ERROR

    @pytest.mark.asyncio
    async def test_admin_has_no_profile(self, services, auth: FakeAuthProvider) -> None:
        auth.add_account("root@example.com", "password123", {"role": "admin"})
        authority = services["session_authority"]
        await authority.login("root@example.com", "password123")

        result = await authority.update_profile({"phone": "1"})

        assert result.error_code == ErrorCode.FORBIDDEN


class TestAuthStateAndSerialisation:
    @pytest.mark.asyncio
    async def test_start_restores_persisted_session(self, services, auth: FakeAuthProvider, store, session) -> None:
        principal = auth.add_account("client@example.com", "password123")
        seed_client(store, principal.id)
        auth.sign_in_as(principal)

        result = await services["session_authority"].start()

        assert result.data.id == principal.id
        assert session.current_user.id == principal.id
        await services["session_authority"].stop()

    @pytest.mark.asyncio
    async def test_signed_out_event_clears_user(self, services, auth: FakeAuthProvider, session) -> None:
        principal = auth.add_account("client@example.com", "password123")
        auth.sign_in_as(principal)
        authority = services["session_authority"]
        await authority.start()
        assert session.current_user is not None

        auth.current = None
        auth.emit(AuthEvent.SIGNED_OUT)
        await authority.stop()

        assert session.current_user is None

    @pytest.mark.asyncio
    async def test_signed_in_event_resolves_user(self, services, auth: FakeAuthProvider, session) -> None:
        authority = services["session_authority"]
        await authority.start()
        principal = auth.add_account("client@example.com", "password123", {"full_name": "Lee"})
        auth_session = auth.sign_in_as(principal)

        auth.emit(AuthEvent.SIGNED_IN, auth_session)
        await authority.stop()

        assert session.current_user.name == "Lee"

    @pytest.mark.asyncio
    async def test_stale_session_on_event_clears_user(self, services, auth: FakeAuthProvider, session) -> None:
        principal = auth.add_account("gone@example.com", "password123")
        auth_session = auth.sign_in_as(principal)
        auth.stale = True

        user = await services["session_authority"].handle_auth_state_change(
            AuthEvent.INITIAL_SESSION, auth_session,
        )

        assert user is None
        assert session.current_user is None
        assert auth.sign_out_calls == 1

    @pytest.mark.asyncio
    async def test_concurrent_resolutions_share_one_lookup(self, services, auth: FakeAuthProvider, store) -> None:
        principal = auth.add_account("client@example.com", "password123")
        seed_client(store, principal.id)
        auth_session = auth.sign_in_as(principal)
        authority = services["session_authority"]

        first, second = await asyncio.gather(
            authority.handle_auth_state_change(AuthEvent.SIGNED_IN, auth_session),
            authority.handle_auth_state_change(AuthEvent.USER_UPDATED, auth_session),
        )

        assert first == second
        assert store.calls.count(("get_by_id", "client_profiles")) == 1
