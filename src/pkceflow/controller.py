"""Login flow orchestration.

Drives one login/logout cycle through URL construction, redirect parsing,
token exchange, refresh token persistence and profile lookup:

    IDLE -> AWAITING_CALLBACK -> EXCHANGING -> AUTHENTICATED | FAILED

Opening URLs in a user agent and delivering the redirect back are left to
the caller.
"""

from __future__ import annotations

import logging
from typing import Callable

from pkceflow.models.config import AuthorizationRequestConfig
from pkceflow.models.errors import (
    FlowStateError,
    MalformedCallbackError,
    OAuth2Error,
    ProfileFetchError,
    ProviderDeniedError,
    SessionStoreError,
    TokenExchangeError,
)
from pkceflow.models.flow import CallbackFailure
from pkceflow.models.session import (
    Authenticated,
    FlowState,
    Pending,
    Session,
    Unauthenticated,
    UserProfile,
)
from pkceflow.models.tokens import TokenSet
from pkceflow.services.authorization import AuthorizationStart, AuthorizationUrlBuilder
from pkceflow.services.callback import CallbackParser
from pkceflow.services.tokens import TokenExchangeClient
from pkceflow.storage import SessionStore

logger = logging.getLogger(__name__)


class AuthFlowController:
    """State machine for a single in-flight login attempt.

    A second ``start_login`` before the first resolves replaces the retained
    verifier, abandoning the first attempt. Callers that need concurrent
    attempts must use one controller per attempt.
    """

    def __init__(
        self,
        config: AuthorizationRequestConfig,
        session_store: SessionStore,
        token_client: TokenExchangeClient | None = None,
        url_builder: AuthorizationUrlBuilder | None = None,
        callback_parser: CallbackParser | None = None,
    ):
        """Initialize the controller.

        Args:
            config: Identity provider configuration used for every request
            session_store: Where the refresh token is persisted
            token_client: Client for token and userinfo requests
            url_builder: Authorization/logout URL builder
            callback_parser: Redirect URL parser
        """
        self.config = config
        self._session_store = session_store
        self._token_client = token_client or TokenExchangeClient()
        self._url_builder = url_builder or AuthorizationUrlBuilder()
        self._callback_parser = callback_parser or CallbackParser()

        self._state = FlowState.IDLE
        self._session: Session = Unauthenticated()
        self._in_flight_verifier: str | None = None
        self._attempt = 0

        # Direct callback assignment
        self.session_change_handler: Callable[[Session], None] | None = None

    @property
    def state(self) -> FlowState:
        return self._state

    @property
    def session(self) -> Session:
        return self._session

    def start_login(self) -> AuthorizationStart:
        """Begin a login attempt.

        Returns:
            AuthorizationStart: URL for the caller to open, and the verifier
            it may pass back into ``handle_callback``

        Raises:
            CryptoUnavailableError: If no verifier can be generated
        """
        if self._state in (FlowState.AWAITING_CALLBACK, FlowState.EXCHANGING):
            logger.warning("Starting a new login; abandoning the in-flight attempt")

        start = self._url_builder.build(self.config)
        self._begin_attempt()
        self._in_flight_verifier = start.verifier
        self._transition(FlowState.AWAITING_CALLBACK, Pending())

        logger.info(f"Login started for client {self.config.client_id}")
        return start

    async def handle_callback(
        self, redirect_url: str, in_flight_verifier: str | None = None
    ) -> Session:
        """Complete a login attempt from the provider's redirect URL.

        If the attempt is cancelled, logged out or replaced while a request
        is in flight, its result is discarded and the current session is
        returned.

        Args:
            redirect_url: Redirect delivered to the application
            in_flight_verifier: Verifier returned by ``start_login``. Defaults
                to the one retained by this controller.

        Returns:
            Session: ``Authenticated`` on success, ``Unauthenticated`` with
            the error otherwise

        Raises:
            FlowStateError: If no login attempt is awaiting a callback
            SessionStoreError: If the refresh token cannot be stored
        """
        if self._state is not FlowState.AWAITING_CALLBACK:
            raise FlowStateError(
                f"Cannot handle callback in state {self._state.value}"
            )

        verifier = in_flight_verifier or self._in_flight_verifier
        if verifier is None:
            raise FlowStateError("No code verifier for the in-flight login")

        attempt = self._attempt
        self._transition(FlowState.EXCHANGING, Pending())

        outcome = self._callback_parser.parse(redirect_url)
        if isinstance(outcome, CallbackFailure):
            self._in_flight_verifier = None
            return self._fail(self._callback_error(outcome))

        try:
            token_set = await self._token_client.exchange_authorization_code(
                outcome.authorization_code, verifier, self.config
            )
        except TokenExchangeError as e:
            if not self._is_current(attempt):
                return self._superseded()
            self._in_flight_verifier = None
            return self._fail(e)

        if not self._is_current(attempt):
            return self._superseded()
        self._in_flight_verifier = None

        if token_set.refresh_token:
            await self._store_refresh_token(token_set.refresh_token, attempt)
            if not self._is_current(attempt):
                return self._superseded()
        else:
            logger.warning(
                "Token response has no refresh token; session cannot be resumed"
            )

        return await self._complete(token_set, attempt)

    async def resume_session(self) -> Session:
        """Restore a session from the stored refresh token.

        Makes no network call when nothing is stored. A refresh token the
        provider rejects is deleted so it is not retried on every start.
        While a login attempt is in flight the current session is returned
        untouched.

        Raises:
            SessionStoreError: If the session store fails
        """
        if self._state in (FlowState.AWAITING_CALLBACK, FlowState.EXCHANGING):
            logger.debug(f"Not resuming during login in state {self._state.value}")
            return self._session

        attempt = self._begin_attempt()
        refresh_token = await self._call_store("get", attempt=attempt)
        if not self._is_current(attempt):
            return self._superseded()

        if not refresh_token:
            logger.debug("No stored refresh token")
            return self._transition(FlowState.IDLE, Unauthenticated())

        self._transition(FlowState.EXCHANGING, Pending())

        try:
            token_set = await self._token_client.exchange_refresh_token(
                refresh_token, self.config
            )
        except TokenExchangeError as e:
            if not self._is_current(attempt):
                return self._superseded()
            if e.is_invalid_grant:
                logger.info("Stored refresh token rejected; clearing it")
                await self._call_store("delete", attempt=attempt)
            return self._fail(e)

        if not self._is_current(attempt):
            return self._superseded()

        # Providers that rotate refresh tokens invalidate the previous one
        if token_set.refresh_token and token_set.refresh_token != refresh_token:
            await self._store_refresh_token(token_set.refresh_token, attempt)
            if not self._is_current(attempt):
                return self._superseded()

        return await self._complete(token_set, attempt)

    async def logout(self) -> None:
        """Forget the local session.

        Call after the provider's logout redirect has been observed; see
        ``logout_url``. Any attempt still in flight is discarded.

        Raises:
            SessionStoreError: If the stored refresh token cannot be deleted
        """
        self._begin_attempt()
        self._in_flight_verifier = None
        await self._call_store("delete")
        self._transition(FlowState.IDLE, Unauthenticated())
        logger.info("Logged out")

    def logout_url(self, return_to: str | None = None) -> str:
        """Provider logout URL for the caller to open."""
        return self._url_builder.build_logout_url(self.config, return_to)

    def cancel(self) -> None:
        """Abandon an attempt that is waiting for its redirect or exchange."""
        if self._state not in (FlowState.AWAITING_CALLBACK, FlowState.EXCHANGING):
            logger.debug(f"Nothing to cancel in state {self._state.value}")
            return

        self._begin_attempt()
        self._in_flight_verifier = None
        self._transition(FlowState.IDLE, Unauthenticated())
        logger.info("Login cancelled")

    async def close(self) -> None:
        await self._token_client.close()

    async def _complete(self, token_set: TokenSet, attempt: int) -> Session:
        try:
            profile: UserProfile = await self._token_client.fetch_user_profile(
                token_set.access_token, self.config
            )
        except ProfileFetchError as e:
            if not self._is_current(attempt):
                return self._superseded()
            return self._fail(e)

        if not self._is_current(attempt):
            return self._superseded()

        logger.info("Login complete")
        return self._transition(
            FlowState.AUTHENTICATED,
            Authenticated(user_profile=profile, access_token=token_set.access_token),
        )

    async def _store_refresh_token(self, refresh_token: str, attempt: int) -> None:
        await self._call_store("set", refresh_token, attempt=attempt)
        # A logout that ran while the write was pending must still win
        if not self._is_current(attempt) and self._state is FlowState.IDLE:
            await self._call_store("delete", attempt=attempt)

    async def _call_store(
        self, operation: str, *args: str, attempt: int | None = None
    ) -> str | None:
        try:
            return await getattr(self._session_store, operation)(*args)
        except Exception as e:
            error = SessionStoreError(f"Session store {operation} failed: {e}")
            if attempt is None or self._is_current(attempt):
                self._fail(error)
            raise error from e

    def _begin_attempt(self) -> int:
        self._attempt += 1
        return self._attempt

    def _is_current(self, attempt: int) -> bool:
        return attempt == self._attempt

    def _superseded(self) -> Session:
        logger.info("Login attempt superseded; discarding its result")
        return self._session

    def _callback_error(self, outcome: CallbackFailure) -> OAuth2Error:
        if outcome.is_malformed:
            return MalformedCallbackError("Callback URL has neither code nor error")
        return ProviderDeniedError(outcome.error_code, outcome.error_description)

    def _fail(self, error: OAuth2Error) -> Session:
        logger.warning(f"Login failed: {error.error_code}")
        return self._transition(FlowState.FAILED, Unauthenticated(error=error))

    def _transition(self, state: FlowState, session: Session) -> Session:
        self._state = state
        self._session = session

        if self.session_change_handler:
            try:
                self.session_change_handler(session)
            except Exception:
                logger.exception("Error in session change handler")

        return session
