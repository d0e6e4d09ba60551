"""Access token management for the Realtime Database REST API."""

import asyncio
import logging
import typing as t
from datetime import datetime, timedelta, timezone

import httpx

from async_ferno._assertion import build_assertion
from async_ferno._config import GRANT_TYPE, TOKEN_REFRESH_MARGIN, TOKEN_URL
from async_ferno.encoders import decode_json, encode_form_body
from async_ferno.errors import DecodeError, InvalidTokenStateError, TokenDecodeError, TokenExchangeError
from async_ferno.models import AccessToken, OAuthResponse, ServiceIdentity


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenManager:
    """Manages the OAuth 2.0 access token lifecycle of a single service account.

    The cached token is replaced with a single assignment of an immutable ``AccessToken``, a failed
    refresh never touches it. Concurrent callers that find the token stale share one refresh.
    """

    def __init__(
        self,
        identity: ServiceIdentity,
        refresh_margin: timedelta = TOKEN_REFRESH_MARGIN,
    ) -> None:
        """
        :param identity: service account identity used to sign the assertions.
        :param refresh_margin: tokens expiring within this margin are refreshed before use.
        """
        self._identity: ServiceIdentity = identity
        self.refresh_margin: timedelta = refresh_margin
        self._token: t.Optional[AccessToken] = None
        self._token_lock: asyncio.Lock = asyncio.Lock()

    @property
    def identity(self) -> ServiceIdentity:
        return self._identity

    @property
    def token(self) -> t.Optional[AccessToken]:
        return self._token

    def _cached_token(self, now: datetime) -> t.Optional[AccessToken]:
        token = self._token
        if token is None or not token.is_valid(now, self.refresh_margin):
            return None
        if not token.value:
            raise InvalidTokenStateError("Cached access token has an expiry but no value")
        return token

    async def get_access_token(self, http_client: httpx.AsyncClient, now: t.Optional[datetime] = None) -> AccessToken:
        """Get a valid OAuth 2.0 access token, refreshing if necessary.

        :param http_client: the async HTTP client to use for the token refresh request.
        :param now: the current instant, defaults to the wall clock.
        """
        now = now or utcnow()
        token = self._cached_token(now)
        if token is not None:
            return token

        async with self._token_lock:
            # Double-check after acquiring the lock, another coroutine may have refreshed already.
            token = self._cached_token(now)
            if token is not None:
                return token
            return await self._refresh(http_client, now)

    async def refresh(self, http_client: httpx.AsyncClient, now: t.Optional[datetime] = None) -> AccessToken:
        """Exchange a fresh assertion for a new access token regardless of the cached one.

        :param http_client: the async HTTP client to use for the token refresh request.
        :param now: the current instant, defaults to the wall clock.
        """
        async with self._token_lock:
            return await self._refresh(http_client, now or utcnow())

    async def _refresh(self, http_client: httpx.AsyncClient, now: datetime) -> AccessToken:
        logging.debug("Refreshing access token for %s", self._identity.email)
        headers = {"Content-Type": "application/x-www-form-urlencoded"}
        data = encode_form_body(
            {
                "grant_type": GRANT_TYPE,
                "assertion": build_assertion(self._identity, now).decode("ascii"),
            }
        )

        try:
            response: httpx.Response = await http_client.post(TOKEN_URL, content=data, headers=headers)
        except httpx.HTTPError as exc:
            logging.warning("Access token refresh failed: %s", exc)
            raise TokenExchangeError(f"Failed to reach the OAuth token endpoint: {exc}", cause=exc)

        if not response.is_success:
            logging.warning("Access token refresh failed with status %s", response.status_code)
            raise TokenExchangeError(
                f"OAuth token endpoint responded with status: {response.status_code}; body: {response.content!r}",
                http_response=response,
            )

        try:
            oauth_response = decode_json(response.content, OAuthResponse)
        except DecodeError as exc:
            raise TokenDecodeError(f"Unexpected OAuth token response: {exc}", cause=exc, http_response=response)
        if not oauth_response.access_token:
            raise TokenDecodeError("OAuth token response holds an empty access token", http_response=response)

        token = AccessToken(
            value=oauth_response.access_token,
            expires_at=now + timedelta(seconds=oauth_response.expires_in),
        )
        self._token = token
        logging.debug("Access token refreshed, expires at %s", token.expires_at.isoformat())
        return token
