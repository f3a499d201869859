"""
Session Authority.

Single orchestrator for every session concern: login, registration,
logout, password reset and update, token refresh, profile updates, and
error classification.

Sits between the UI layer and the auth provider / identity resolver so
that views stay thin form handlers.  Every public coroutine returns a
``ServiceResult``; the caller never inspects raw exceptions.

Resolution of the current user is serialised.  A resolution requested
while another is in flight awaits that one instead of racing it.
"""

from __future__ import annotations

import asyncio
import re
from typing import Coroutine, Optional

from pydantic import ValidationError

from brand_connect.auth import SessionManager
from brand_connect.config import AppConfig
from brand_connect.errors import (
    AuthRejected,
    Forbidden,
    MarketplaceError,
    NotAuthenticated,
    NotFound,
    SessionInvalid,
    UpstreamUnavailable,
)
from brand_connect.logger import StructuredLogger
from brand_connect.models.auth_models import (
    SUPABASE_ERROR_MAP,
    RegistrationRequest,
    ValidationResult,
)
from brand_connect.models.enums import AuthEvent, ErrorCode, UserRole
from brand_connect.models.principal import AuthSession
from brand_connect.models.profiles import ClientProfileUpdate, CreativeProfileUpdate
from brand_connect.models.service_models import ServiceResult
from brand_connect.models.user import AppUser
from brand_connect.repositories.profile_repository import (
    ClientProfileRepository,
    CreativeProfileRepository,
)
from brand_connect.services.base_service import BaseService
from brand_connect.services.identity import IdentityResolver
from brand_connect.services.provisioning import ProfileProvisioningService
from brand_connect.store.base import AuthProvider, AuthSubscription
from brand_connect.utils.audit import log_audit_event


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_EMAIL_RE: re.Pattern[str] = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+"
    r"@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)+$"
)

_MIN_PASSWORD_LENGTH: int = 8

# Matches C0 controls (U+0000-U+001F), DEL (U+007F), and C1 controls (U+0080-U+009F).
_CONTROL_CHAR_RE: re.Pattern[str] = re.compile(r"[\x00-\x1f\x7f-\x9f]")

_ADMIN_ONLY_MESSAGE: str = "Access denied. Admin credentials required."

# Events that carry a (possibly new) identity and trigger re-resolution.
_RESOLVING_EVENTS: frozenset[AuthEvent] = frozenset({
    AuthEvent.INITIAL_SESSION,
    AuthEvent.SIGNED_IN,
    AuthEvent.USER_UPDATED,
})


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class SessionAuthority(BaseService):
    """Uniform-result session operations for the UI.

    Parameters
    ----------
    auth:
        Auth provider adapter.
    resolver:
        Identity resolver used for every current-user refresh.
    provisioning:
        Just-in-time profile provisioning, run after sign-up and on login.
    client_repo, creative_repo:
        Profile repositories used by :meth:`update_profile`.
    session:
        Injectable holder for the current user and tokens.
    config:
        Application configuration.
    logger:
        Structured JSON logger for audit-grade logging.
    """

    def __init__(
        self,
        auth: AuthProvider,
        resolver: IdentityResolver,
        provisioning: ProfileProvisioningService,
        client_repo: ClientProfileRepository,
        creative_repo: CreativeProfileRepository,
        session: SessionManager,
        config: AppConfig,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._auth: AuthProvider = auth
        self._resolver: IdentityResolver = resolver
        self._provisioning: ProfileProvisioningService = provisioning
        self._client_repo: ClientProfileRepository = client_repo
        self._creative_repo: CreativeProfileRepository = creative_repo
        self._session: SessionManager = session
        self._config: AppConfig = config

        self._resolving: Optional[asyncio.Task[Optional[AppUser]]] = None
        self._auth_subscription: Optional[AuthSubscription] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._tasks: set[asyncio.Task[object]] = set()

    @property
    def current_user(self) -> Optional[AppUser]:
        return self._session.current_user

    # ==================================================================
    # Validation helpers
    # ==================================================================

    @staticmethod
    def validate_email(email: str) -> ValidationResult:
        """Validate an email address against a simplified RFC 5322 regex.

        Parameters
        ----------
        email:
            The raw email string to validate.

        Returns
        -------
        ValidationResult
            ``is_valid=True`` if the email matches, otherwise a
            human-readable ``error_message``.
        """
        if not email or not email.strip():
            return ValidationResult(
                is_valid=False,
                error_message="Email address is required.",
            )
        if not _EMAIL_RE.match(email.strip()):
            return ValidationResult(
                is_valid=False,
                error_message="Please enter a valid email address.",
            )
        return ValidationResult(is_valid=True)

    @staticmethod
    def validate_password(password: str) -> ValidationResult:
        """Enforce the password policy: minimum 8 characters."""
        if not password or len(password) < _MIN_PASSWORD_LENGTH:
            return ValidationResult(
                is_valid=False,
                error_message=f"Password must be at least {_MIN_PASSWORD_LENGTH} characters.",
            )
        return ValidationResult(is_valid=True)

    @staticmethod
    def validate_name(name: str, field_label: str = "Name") -> ValidationResult:
        """Validate a display name.

        Rejects control characters (U+0000-U+001F, U+007F-U+009F)
        including newlines and tabs to prevent log injection and
        display corruption.
        """
        stripped = (name or "").strip()
        if not stripped:
            return ValidationResult(
                is_valid=False,
                error_message=f"{field_label} is required.",
            )
        if len(stripped) < 2:
            return ValidationResult(
                is_valid=False,
                error_message=f"{field_label} must be at least 2 characters.",
            )
        if _CONTROL_CHAR_RE.search(stripped):
            return ValidationResult(
                is_valid=False,
                error_message=(
                    f"{field_label} contains invalid characters. "
                    "Only printable characters are allowed."
                ),
            )
        return ValidationResult(is_valid=True)

    @staticmethod
    def normalize_email(email: str) -> str:
        """Normalise an email address: strip whitespace and lowercase."""
        return email.strip().lower()

    @staticmethod
    def _invalid(check: ValidationResult) -> ServiceResult[AppUser]:
        return ServiceResult.fail(
            check.error_message or "Invalid input.",
            ErrorCode.VALIDATION_ERROR,
            status_code=422,
        )

    # ==================================================================
    # Lifecycle
    # ==================================================================

    async def start(self) -> ServiceResult[AppUser]:
        """Restore any persisted session and follow auth-state changes."""
        self._loop = asyncio.get_running_loop()
        result = await self.restore_session()
        if self._auth_subscription is None:
            self._auth_subscription = self._auth.on_auth_state_change(self._on_auth_event)
        return result

    async def stop(self) -> None:
        """Stop following auth-state changes and drain queued handlers."""
        if self._auth_subscription is not None:
            self._auth_subscription.unsubscribe()
            self._auth_subscription = None
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def restore_session(self) -> ServiceResult[AppUser]:
        """Resolve the user behind the provider's persisted session, if any."""
        try:
            auth_session = await self._auth.get_session()
        except MarketplaceError as exc:
            return self._classify_error(exc, "RESTORE_FAILED")

        if auth_session is None:
            self._session.clear()
            return ServiceResult.ok(None)

        self._session.set_tokens(auth_session)
        user = await self._refresh_current_user()
        return ServiceResult.ok(user)

    def _on_auth_event(self, event: AuthEvent, auth_session: Optional[AuthSession]) -> None:
        # Provider callbacks are synchronous and may arrive off the loop thread.
        coro = self.handle_auth_state_change(event, auth_session)
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            if self._loop is None:
                coro.close()
                self._logger.warning("Auth event %s dropped: no event loop.", event)
                return
            self._loop.call_soon_threadsafe(self._spawn, coro)
            return
        self._spawn(coro)

    def _spawn(self, coro: Coroutine[object, object, object]) -> None:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def handle_auth_state_change(
        self,
        event: AuthEvent,
        auth_session: Optional[AuthSession],
    ) -> Optional[AppUser]:
        """Apply one auth-state event to the current-user snapshot."""
        self._logger.debug("Auth state change: %s", event)

        if event == AuthEvent.SIGNED_OUT:
            self._session.clear()
            return None

        if auth_session is None:
            if event == AuthEvent.INITIAL_SESSION:
                self._session.clear()
            return self._session.current_user

        self._session.set_tokens(auth_session)
        if event in _RESOLVING_EVENTS or self._session.current_user is None:
            return await self._refresh_current_user()
        return self._session.current_user

    # ==================================================================
    # Resolution
    # ==================================================================

    async def _refresh_current_user(self) -> Optional[AppUser]:
        """Resolve the current user, joining any resolution already in flight."""
        if self._resolving is None or self._resolving.done():
            self._resolving = asyncio.ensure_future(self._resolve_and_store())
        return await asyncio.shield(self._resolving)

    async def _await_in_flight(self) -> None:
        if self._resolving is not None and not self._resolving.done():
            await asyncio.shield(self._resolving)

    async def _resolve_and_store(self) -> Optional[AppUser]:
        try:
            user = await self._resolver.resolve_current()
        except MarketplaceError as exc:
            # Keep the previous snapshot; it is allowed to be stale.
            self._logger.warning(
                "User resolution failed: %s", exc.message,
                extra={"event": "RESOLVE_FAILED"},
            )
            return self._session.current_user

        if user is None:
            self._session.clear()
        else:
            self._session.set_current_user(user)
        return user

    # ==================================================================
    # Login
    # ==================================================================

    async def login(self, email: str, password: str) -> ServiceResult[AppUser]:
        """Authenticate with email and password and resolve the user.

        Parameters
        ----------
        email:
            The raw email entered by the user.
        password:
            The raw password entered by the user.

        Returns
        -------
        ServiceResult[AppUser]
            The resolved user on success, or a structured error with
            ``error_code`` and ``error`` on failure.
        """
        email_check = self.validate_email(email)
        if not email_check.is_valid:
            return self._invalid(email_check)
        if not password:
            return ServiceResult.fail(
                "Password is required.", ErrorCode.VALIDATION_ERROR, status_code=422,
            )
        email = self.normalize_email(email)

        try:
            auth_session = await self._auth.sign_in(email, password)
        except MarketplaceError as exc:
            return self._classify_error(exc, "LOGIN_FAILED")

        self._session.set_tokens(auth_session)

        # JIT provisioning: heals a profile lost to a failed sign-up trigger.
        try:
            await self._provisioning.ensure_profile(auth_session.principal)
        except MarketplaceError as exc:
            self._logger.warning(
                "JIT provisioning at login failed for %s: %s",
                auth_session.principal.id,
                exc.message,
            )

        user = await self._refresh_current_user()
        if user is None:
            return ServiceResult.fail(
                "Your session has expired. Please sign in again.",
                ErrorCode.SESSION_EXPIRED,
                status_code=401,
            )

        log_audit_event(
            logger=self._logger,
            action="LOGIN",
            entity_type="User",
            entity_id=user.id,
            user_id=user.id,
            details={"email": user.email, "role": str(user.role), "source": str(user.source)},
        )
        return ServiceResult.ok(user)

    async def admin_login(self, email: str, password: str) -> ServiceResult[AppUser]:
        """Login that only admits admins; anyone else is signed out again."""
        result = await self.login(email, password)
        if not result.success or result.data is None:
            return result
        if result.data.is_admin:
            return result

        self._logger.warning(
            "Non-admin %s attempted admin login.", result.data.id,
            extra={"event": "ADMIN_LOGIN_DENIED"},
        )
        await self.logout()
        return ServiceResult.fail(_ADMIN_ONLY_MESSAGE, ErrorCode.FORBIDDEN, status_code=403)

    # ==================================================================
    # Registration
    # ==================================================================

    async def register(self, request: RegistrationRequest) -> ServiceResult[AppUser]:
        """Create an account, give the profile trigger one bounded wait,
        provision whatever it missed, and resolve the new user.

        Parameters
        ----------
        request:
            Sign-up form payload.

        Returns
        -------
        ServiceResult[AppUser]
        """
        for check in (
            self.validate_name(request.name, "Name"),
            self.validate_email(request.email),
            self.validate_password(request.password),
        ):
            if not check.is_valid:
                return self._invalid(check)

        email = self.normalize_email(request.email)
        metadata: dict[str, object] = {
            "full_name": request.name.strip(),
            "phone": request.phone,
            "location": request.location,
            "user_type": request.user_type,
            "role": request.user_type,
        }
        if request.user_type == UserRole.CREATIVE:
            metadata["category"] = self._config.DEFAULT_CREATIVE_CATEGORY
            metadata["profession"] = request.profession

        try:
            principal = await self._auth.sign_up(email, request.password, metadata)
        except MarketplaceError as exc:
            return self._classify_error(exc, "REGISTER_FAILED")

        self._logger.info(
            "User registered: %s (%s).",
            principal.id,
            request.user_type,
            extra={"event": "REGISTER", "email": email, "user_id": principal.id},
        )

        if self._config.PROFILE_TRIGGER_WAIT_S > 0:
            await asyncio.sleep(self._config.PROFILE_TRIGGER_WAIT_S)

        try:
            await self._provisioning.ensure_profile(principal)
        except MarketplaceError as exc:
            self._logger.error(
                "Profile provisioning after sign-up failed for %s: %s",
                principal.id,
                exc.message,
                extra={"event": "PROVISION_FAILED"},
            )

        try:
            auth_session = await self._auth.get_session()
        except MarketplaceError as exc:
            self._logger.warning("No session after sign-up: %s", exc.message)
            auth_session = None

        if auth_session is not None:
            self._session.set_tokens(auth_session)
            user = await self._refresh_current_user()
        else:
            # Email confirmation pending: resolve without signing in.
            user = await self._resolver.resolve(principal)
        return ServiceResult.ok(user)

    # ==================================================================
    # Logout
    # ==================================================================

    async def logout(self) -> ServiceResult[None]:
        """Server-side sign-out, then clear local state.

        A failed server call is logged; local state is cleared anyway so
        offline logout still works.
        """
        user = self._session.current_user
        user_id = user.id if user is not None else "unknown"

        try:
            await self._auth.sign_out()
        except MarketplaceError as exc:
            self._logger.warning("Server-side sign_out failed for %s: %s", user_id, exc.message)

        await self._await_in_flight()
        self._session.clear()

        self._logger.info(
            "User logged out: %s", user_id,
            extra={"event": "LOGOUT", "user_id": user_id},
        )
        return ServiceResult.ok(None)

    # ==================================================================
    # Token refresh
    # ==================================================================

    async def refresh_session(self) -> ServiceResult[AppUser]:
        """Refresh the token pair.

        Distinguishes a permanently invalid refresh token
        (``session_expired``, session cleared) from a transient network
        error (success, retried next cycle).
        """
        if not self._session.is_authenticated:
            return ServiceResult.ok(None)

        try:
            auth_session = await self._auth.refresh_session()
        except SessionInvalid as exc:
            self._logger.warning(
                "Token refresh failed (auth error): %s. Forcing logout.", exc.message,
                extra={"event": "SESSION_EXPIRED"},
            )
            self._session.clear()
            return ServiceResult.fail(
                "Your session has expired. Please sign in again.",
                ErrorCode.SESSION_EXPIRED,
                status_code=401,
            )
        except UpstreamUnavailable:
            self._logger.debug("Network error during token refresh; will retry.")
            return ServiceResult.ok(self._session.current_user)
        except MarketplaceError as exc:
            return self._classify_error(exc, "REFRESH_FAILED")

        if auth_session is not None:
            self._session.set_tokens(auth_session)
            self._logger.info("Session token refreshed.")
        return ServiceResult.ok(self._session.current_user)

    # ==================================================================
    # Passwords
    # ==================================================================

    async def reset_password(self, email: str) -> ServiceResult[None]:
        """Send a password-reset email that links back to the app."""
        email_check = self.validate_email(email)
        if not email_check.is_valid:
            return self._invalid(email_check)

        email = self.normalize_email(email)
        try:
            await self._auth.reset_password_email(email, self._config.PASSWORD_RESET_REDIRECT_URL)
        except MarketplaceError as exc:
            return self._classify_error(exc, "PASSWORD_RESET_FAILED")

        self._logger.info(
            "Password reset requested for %s.", email,
            extra={"event": "PASSWORD_RESET_REQUESTED", "email": email},
        )
        return ServiceResult.ok(None)

    async def update_password(self, new_password: str) -> ServiceResult[None]:
        """Change the signed-in user's password."""
        user = self._session.current_user
        if user is None:
            return ServiceResult.from_error(NotAuthenticated("Login required."))

        pw_check = self.validate_password(new_password)
        if not pw_check.is_valid:
            return self._invalid(pw_check)

        try:
            await self._auth.update_password(new_password)
        except MarketplaceError as exc:
            return self._classify_error(exc, "PASSWORD_UPDATE_FAILED")

        log_audit_event(
            logger=self._logger,
            action="PASSWORD_UPDATE",
            entity_type="User",
            entity_id=user.id,
            user_id=user.id,
        )
        return ServiceResult.ok(None)

    # ==================================================================
    # Profile updates
    # ==================================================================

    async def update_profile(self, changes: dict[str, object]) -> ServiceResult[AppUser]:
        """Apply *changes* to the current user's own profile.

        Dispatches on role: clients update ``client_profiles``, creatives
        their ``creative_profiles`` row.  Admins have no profile.  The
        current user is re-resolved after a successful write.
        """
        await self._await_in_flight()
        user = self._session.current_user

        try:
            if user is None:
                raise NotAuthenticated("Login required to update your profile.")
            if user.role == UserRole.ADMIN:
                raise Forbidden("Admin accounts have no profile to update.")

            if user.role == UserRole.CLIENT:
                await self._client_repo.update(user.id, ClientProfileUpdate.model_validate(changes))
            else:
                update = CreativeProfileUpdate.model_validate(changes)
                profile = await self._creative_repo.get_by_user_id(user.id)
                if profile is None:
                    raise NotFound("Creative profile not found.")
                await self._creative_repo.update(profile.id, update)
        except ValidationError as exc:
            return ServiceResult.fail(
                f"Invalid profile data: {exc.errors()[0]['msg']}",
                ErrorCode.VALIDATION_ERROR,
                status_code=422,
            )
        except MarketplaceError as exc:
            return self._classify_error(exc, "PROFILE_UPDATE_FAILED")

        log_audit_event(
            logger=self._logger,
            action="PROFILE_UPDATE",
            entity_type="ClientProfile" if user.role == UserRole.CLIENT else "CreativeProfile",
            entity_id=user.id,
            user_id=user.id,
            details={"fields": ",".join(sorted(changes))},
        )

        refreshed = await self._refresh_current_user()
        return ServiceResult.ok(refreshed)

    # ==================================================================
    # Error classification
    # ==================================================================

    def _classify_error(self, exc: MarketplaceError, event: str) -> ServiceResult[AppUser]:
        """Map a provider or domain error to a structured ``ServiceResult``.

        Known provider phrases map to stable categories.  Other provider
        rejections pass their raw message through.  Domain errors keep
        their own code and message.
        """
        error_str = exc.message.lower()
        for phrase, (error_code, human_message) in SUPABASE_ERROR_MAP.items():
            if phrase in error_str:
                self._logger.warning(
                    "Auth error (%s): %s", phrase, exc.message,
                    extra={"event": event, "error_code": str(error_code)},
                )
                return ServiceResult.fail(human_message, error_code, status_code=exc.status_code)

        self._logger.warning(
            "%s: %s", event, exc.message,
            extra={"event": event, "error_code": str(exc.code)},
        )
        if isinstance(exc, AuthRejected):
            return ServiceResult.fail(exc.message, ErrorCode.UNKNOWN_ERROR, status_code=exc.status_code)
        return ServiceResult.from_error(exc)
