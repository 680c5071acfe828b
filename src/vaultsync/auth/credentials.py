"""Credential store and OAuth2 state machine."""

import asyncio
import time
from enum import Enum
from typing import Callable, List, Optional

from .oauth_handler import GoogleOAuthHandler, DEFAULT_AUTH_URL, DEFAULT_TOKEN_URL, DEFAULT_SCOPES
from ..config.store import ConfigStore
from ..exceptions import AuthError, ConfigError
from ..utils.logging import get_logger


class AuthState(str, Enum):
    """Authentication states of the credential store."""
    UNAUTHENTICATED = "unauthenticated"
    PENDING_AUTHORIZATION = "pending_authorization"
    AUTHENTICATED = "authenticated"


HandlerFactory = Callable[..., GoogleOAuthHandler]


class CredentialStore:
    """Supplies valid access tokens to remote operations.

    Tokens live in the persisted configuration record. Exchange and refresh
    are serialized by a lock, so concurrent callers that find an expired
    token trigger a single refresh between them.
    """

    def __init__(
        self,
        config_store: ConfigStore,
        scopes: Optional[List[str]] = None,
        auth_url: str = DEFAULT_AUTH_URL,
        token_url: str = DEFAULT_TOKEN_URL,
        expiry_margin_seconds: int = 60,
        handler_factory: Optional[HandlerFactory] = None
    ):
        """Initialize the credential store.

        Args:
            config_store: Store holding client configuration and tokens
            scopes: OAuth scopes to request
            auth_url: Google consent endpoint
            token_url: Google token endpoint
            expiry_margin_seconds: Refresh tokens this long before they expire
            handler_factory: Builds the OAuth handler; defaults to GoogleOAuthHandler
        """
        self.config_store = config_store
        self.scopes = scopes or list(DEFAULT_SCOPES)
        self.auth_url = auth_url
        self.token_url = token_url
        self.expiry_margin_seconds = expiry_margin_seconds
        self.handler_factory = handler_factory or GoogleOAuthHandler
        self.logger = get_logger(self.__class__.__name__)

        self._lock = asyncio.Lock()
        self._pending_handler: Optional[GoogleOAuthHandler] = None
        self._state = (
            AuthState.AUTHENTICATED if config_store.config.has_tokens
            else AuthState.UNAUTHENTICATED
        )

    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def is_authenticated(self) -> bool:
        return self._state == AuthState.AUTHENTICATED

    def begin_authorization(self) -> str:
        """Start the authorization flow.

        Returns:
            The consent URL the user has to open

        Raises:
            ConfigError: If client id or client secret is missing
        """
        config = self.config_store.config
        if not config.has_client:
            self.logger.error("Cannot authorize without client id and client secret")
            raise ConfigError("Invalid client data, please insert proper client id and client secret")

        self._pending_handler = self._build_handler()
        auth_url = self._pending_handler.get_authorization_url()
        self._state = AuthState.PENDING_AUTHORIZATION

        self.logger.info("Authorization pending", redirect_uri=config.redirect_uri)
        return auth_url

    async def complete_authorization(self, authorization_code: str) -> None:
        """Exchange the user-supplied code for a token pair.

        Raises:
            AuthError: If the flow was not started, the code is empty, or the
                exchange fails. Tokens are cleared and the store returns to
                UNAUTHENTICATED.
        """
        code = (authorization_code or "").strip()

        async with self._lock:
            handler = self._pending_handler
            if handler is None:
                raise AuthError("Authorization has not been started")
            self._pending_handler = None

            if not code:
                await self._reset_tokens(authorization_code="")
                raise AuthError("No authorization code supplied")

            try:
                token_data = await handler.exchange_code_for_token(code)
            except Exception as e:
                self.logger.error("Authentication failed", error=str(e))
                await self._reset_tokens(authorization_code=code)
                if isinstance(e, AuthError):
                    raise
                raise AuthError(f"Authentication failed: {e}") from e

            await self.config_store.update_async(
                authorization_code=code,
                access_token=token_data["access_token"],
                refresh_token=token_data["refresh_token"],
                token_expiry=int(token_data.get("expires_at", 0)),
            )
            self._set_state(AuthState.AUTHENTICATED)

        self.logger.info("Authentication successful")

    async def get_access_token(self, stale_token: Optional[str] = None) -> str:
        """Return a usable access token, refreshing it when needed.

        Remote calls made while an authorization is pending leave the
        pending state alone, so the user's code can still be submitted.

        Args:
            stale_token: A token the remote API just rejected. It is refreshed
                unless another caller already replaced it.

        Raises:
            AuthError: If not authenticated or the refresh token is rejected
            NetworkError: If the token endpoint cannot be reached
        """
        async with self._lock:
            config = self.config_store.config
            if not config.has_tokens:
                self._set_state(AuthState.UNAUTHENTICATED)
                raise AuthError("Not authenticated with Google Drive")

            current = config.access_token
            if not self._is_expired(config.token_expiry):
                if stale_token is None or stale_token != current:
                    return current

            handler = self._build_handler()
            try:
                token_data = await handler.refresh_access_token(config.refresh_token)
            except AuthError:
                self.logger.error("Refresh token rejected, re-authentication required")
                await self._reset_tokens()
                raise

            await self.config_store.update_async(
                access_token=token_data["access_token"],
                refresh_token=token_data["refresh_token"],
                token_expiry=int(token_data.get("expires_at", 0)),
            )
            self._set_state(AuthState.AUTHENTICATED)
            return token_data["access_token"]

    def _is_expired(self, token_expiry: int) -> bool:
        # Unknown expiry counts as expired
        if not token_expiry:
            return True
        return time.time() >= token_expiry - self.expiry_margin_seconds

    def _set_state(self, state: AuthState) -> None:
        # A pending authorization only ends through complete_authorization
        if self._pending_handler is not None:
            return
        self._state = state

    async def _reset_tokens(self, **extra) -> None:
        await self.config_store.update_async(access_token="", refresh_token="", token_expiry=0, **extra)
        self._set_state(AuthState.UNAUTHENTICATED)

    def _build_handler(self) -> GoogleOAuthHandler:
        config = self.config_store.config
        return self.handler_factory(
            client_id=config.client_id,
            client_secret=config.client_secret,
            redirect_uri=config.redirect_uri,
            scopes=self.scopes,
            auth_url=self.auth_url,
            token_url=self.token_url,
        )
