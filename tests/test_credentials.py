"""Tests for the credential store and its auth state machine."""

import asyncio
import time
from unittest.mock import AsyncMock, Mock

import pytest

from vaultsync.auth.credentials import AuthState, CredentialStore
from vaultsync.config.store import ConfigStore
from vaultsync.exceptions import AuthError, ConfigError, NetworkError


def make_handler(exchange=None, refresh=None):
    handler = Mock()
    handler.get_authorization_url.return_value = "https://accounts.google.com/o/oauth2/v2/auth?client_id=abc"
    handler.exchange_code_for_token = AsyncMock(side_effect=exchange)
    handler.refresh_access_token = AsyncMock(side_effect=refresh)
    return handler


@pytest.fixture
def store(tmp_path):
    config_store = ConfigStore(tmp_path / "vaultsync.json")
    config_store.load()
    config_store.update(client_id="abc.apps.googleusercontent.com", client_secret="s3cret")
    return config_store


class TestAuthorizationFlow:
    """Test Unauthenticated -> PendingAuthorization -> Authenticated."""

    def test_starts_unauthenticated_without_tokens(self, store):
        credentials = CredentialStore(store)

        assert credentials.state == AuthState.UNAUTHENTICATED
        assert credentials.is_authenticated is False

    def test_starts_authenticated_with_stored_tokens(self, store):
        store.update(access_token="at", refresh_token="rt")

        credentials = CredentialStore(store)

        assert credentials.state == AuthState.AUTHENTICATED

    def test_begin_requires_client_id_and_secret(self, tmp_path):
        empty = ConfigStore(tmp_path / "empty.json")
        empty.load()
        factory = Mock()
        credentials = CredentialStore(empty, handler_factory=factory)

        with pytest.raises(ConfigError):
            credentials.begin_authorization()

        assert credentials.state == AuthState.UNAUTHENTICATED
        factory.assert_not_called()

    def test_begin_returns_consent_url_and_waits_for_code(self, store):
        handler = make_handler()
        factory = Mock(return_value=handler)
        credentials = CredentialStore(store, handler_factory=factory)

        url = credentials.begin_authorization()

        assert url.startswith("https://accounts.google.com/")
        assert credentials.state == AuthState.PENDING_AUTHORIZATION
        kwargs = factory.call_args.kwargs
        assert kwargs["client_id"] == "abc.apps.googleusercontent.com"
        assert kwargs["redirect_uri"] == "urn:ietf:wg:oauth:2.0:oob"

    @pytest.mark.asyncio
    async def test_successful_exchange_authenticates_and_persists(self, store):
        expires_at = int(time.time()) + 3600
        handler = make_handler(exchange=lambda code: {
            "access_token": "at-1", "refresh_token": "rt-1", "expires_at": expires_at
        })
        credentials = CredentialStore(store, handler_factory=Mock(return_value=handler))

        credentials.begin_authorization()
        await credentials.complete_authorization("  4/code  ")

        assert credentials.state == AuthState.AUTHENTICATED
        handler.exchange_code_for_token.assert_awaited_once_with("4/code")

        reloaded = ConfigStore(store.file_path).load()
        assert reloaded.access_token == "at-1"
        assert reloaded.refresh_token == "rt-1"
        assert reloaded.token_expiry == expires_at
        assert reloaded.authorization_code == "4/code"

    @pytest.mark.asyncio
    async def test_failed_exchange_leaves_tokens_unset(self, store):
        handler = make_handler(exchange=AuthError("invalid_grant"))
        credentials = CredentialStore(store, handler_factory=Mock(return_value=handler))

        credentials.begin_authorization()
        with pytest.raises(AuthError):
            await credentials.complete_authorization("bad-code")

        assert credentials.state == AuthState.UNAUTHENTICATED
        assert store.config.access_token == ""
        assert store.config.refresh_token == ""

    @pytest.mark.asyncio
    async def test_network_failure_during_exchange_is_auth_error(self, store):
        handler = make_handler(exchange=NetworkError("unreachable"))
        credentials = CredentialStore(store, handler_factory=Mock(return_value=handler))

        credentials.begin_authorization()
        with pytest.raises(AuthError):
            await credentials.complete_authorization("code")

        assert credentials.state == AuthState.UNAUTHENTICATED
        assert store.config.has_tokens is False

    @pytest.mark.asyncio
    async def test_empty_code_reverts_to_unauthenticated(self, store):
        handler = make_handler()
        credentials = CredentialStore(store, handler_factory=Mock(return_value=handler))

        credentials.begin_authorization()
        with pytest.raises(AuthError):
            await credentials.complete_authorization("")

        assert credentials.state == AuthState.UNAUTHENTICATED
        handler.exchange_code_for_token.assert_not_called()

    @pytest.mark.asyncio
    async def test_complete_without_begin_is_rejected(self, store):
        credentials = CredentialStore(store, handler_factory=Mock(return_value=make_handler()))

        with pytest.raises(AuthError):
            await credentials.complete_authorization("code")


class TestAccessTokens:
    """Test refresh-if-expired-else-reuse."""

    @pytest.mark.asyncio
    async def test_reuses_valid_token(self, store):
        store.update(access_token="at", refresh_token="rt", token_expiry=int(time.time()) + 3600)
        handler = make_handler()
        credentials = CredentialStore(store, handler_factory=Mock(return_value=handler))

        assert await credentials.get_access_token() == "at"
        handler.refresh_access_token.assert_not_called()

    @pytest.mark.asyncio
    async def test_refreshes_expired_token(self, store):
        store.update(access_token="old", refresh_token="rt", token_expiry=int(time.time()) - 10)
        handler = make_handler(refresh=lambda rt: {
            "access_token": "new", "refresh_token": rt, "expires_at": int(time.time()) + 3600
        })
        credentials = CredentialStore(store, handler_factory=Mock(return_value=handler))

        assert await credentials.get_access_token() == "new"
        handler.refresh_access_token.assert_awaited_once_with("rt")
        assert store.config.access_token == "new"
        assert store.config.refresh_token == "rt"

    @pytest.mark.asyncio
    async def test_unknown_expiry_is_refreshed(self, store):
        store.update(access_token="old", refresh_token="rt", token_expiry=0)
        handler = make_handler(refresh=lambda rt: {
            "access_token": "new", "refresh_token": rt, "expires_at": int(time.time()) + 3600
        })
        credentials = CredentialStore(store, handler_factory=Mock(return_value=handler))

        assert await credentials.get_access_token() == "new"

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_refresh(self, store):
        store.update(access_token="old", refresh_token="rt", token_expiry=0)

        async def slow_refresh(rt):
            await asyncio.sleep(0.01)
            return {"access_token": "new", "refresh_token": rt, "expires_at": int(time.time()) + 3600}

        handler = make_handler(refresh=slow_refresh)
        credentials = CredentialStore(store, handler_factory=Mock(return_value=handler))

        tokens = await asyncio.gather(*(credentials.get_access_token() for _ in range(5)))

        assert tokens == ["new"] * 5
        assert handler.refresh_access_token.await_count == 1

    @pytest.mark.asyncio
    async def test_stale_token_forces_refresh_once(self, store):
        store.update(access_token="at", refresh_token="rt", token_expiry=int(time.time()) + 3600)
        handler = make_handler(refresh=lambda rt: {
            "access_token": "at-2", "refresh_token": rt, "expires_at": int(time.time()) + 3600
        })
        credentials = CredentialStore(store, handler_factory=Mock(return_value=handler))

        first = await credentials.get_access_token(stale_token="at")
        second = await credentials.get_access_token(stale_token="at")

        assert first == second == "at-2"
        assert handler.refresh_access_token.await_count == 1

    @pytest.mark.asyncio
    async def test_rejected_refresh_clears_tokens(self, store):
        store.update(access_token="old", refresh_token="rt", token_expiry=0)
        handler = make_handler(refresh=AuthError("invalid_grant"))
        credentials = CredentialStore(store, handler_factory=Mock(return_value=handler))

        with pytest.raises(AuthError):
            await credentials.get_access_token()

        assert credentials.state == AuthState.UNAUTHENTICATED
        assert store.config.has_tokens is False

    @pytest.mark.asyncio
    async def test_network_failure_during_refresh_keeps_tokens(self, store):
        store.update(access_token="old", refresh_token="rt", token_expiry=0)
        handler = make_handler(refresh=NetworkError("unreachable"))
        credentials = CredentialStore(store, handler_factory=Mock(return_value=handler))

        with pytest.raises(NetworkError):
            await credentials.get_access_token()

        assert store.config.refresh_token == "rt"
        assert credentials.state == AuthState.AUTHENTICATED

    @pytest.mark.asyncio
    async def test_unauthenticated_store_raises(self, store):
        credentials = CredentialStore(store)

        with pytest.raises(AuthError):
            await credentials.get_access_token()


class TestPendingAuthorization:
    """Test remote calls made while the user is on the consent page."""

    @pytest.mark.asyncio
    async def test_failed_token_lookup_keeps_first_authorization_pending(self, store):
        handler = make_handler(exchange=lambda code: {
            "access_token": "at", "refresh_token": "rt", "expires_at": int(time.time()) + 3600
        })
        credentials = CredentialStore(store, handler_factory=Mock(return_value=handler))

        credentials.begin_authorization()
        with pytest.raises(AuthError):
            await credentials.get_access_token()

        assert credentials.state == AuthState.PENDING_AUTHORIZATION
        await credentials.complete_authorization("user-code")
        assert credentials.state == AuthState.AUTHENTICATED

    @pytest.mark.asyncio
    async def test_refresh_during_reauthorization_keeps_it_pending(self, store):
        store.update(access_token="old", refresh_token="rt", token_expiry=0)
        handler = make_handler(
            exchange=lambda code: {
                "access_token": "at-new", "refresh_token": "rt-new", "expires_at": int(time.time()) + 3600
            },
            refresh=lambda rt: {
                "access_token": "refreshed", "refresh_token": rt, "expires_at": int(time.time()) + 3600
            },
        )
        credentials = CredentialStore(store, handler_factory=Mock(return_value=handler))

        credentials.begin_authorization()
        assert await credentials.get_access_token() == "refreshed"
        assert credentials.state == AuthState.PENDING_AUTHORIZATION

        await credentials.complete_authorization("user-code")

        assert credentials.state == AuthState.AUTHENTICATED
        assert store.config.access_token == "at-new"

    @pytest.mark.asyncio
    async def test_second_completion_is_rejected(self, store):
        handler = make_handler(exchange=lambda code: {
            "access_token": "at", "refresh_token": "rt", "expires_at": int(time.time()) + 3600
        })
        credentials = CredentialStore(store, handler_factory=Mock(return_value=handler))

        credentials.begin_authorization()
        await credentials.complete_authorization("user-code")

        with pytest.raises(AuthError):
            await credentials.complete_authorization("user-code")
        assert handler.exchange_code_for_token.await_count == 1
