"""
Bearer token attachment for manager requests.
"""

import asyncio
import inspect
from typing import AsyncGenerator, Awaitable, Callable, Optional, Protocol, Union, runtime_checkable

import httpx

from manager_client.shared.logging import get_logger

TokenResult = Union[Optional[str], Awaitable[Optional[str]]]


@runtime_checkable
class TokenProvider(Protocol):
    """Source of bearer tokens for the manager.

    ``load_token`` returns the current token, loading it on first use.
    ``refresh_token`` is called after a 401 with the token that was
    rejected and returns a fresh one, or ``None`` when no refresh is possible.
    """

    async def load_token(self) -> Optional[str]:
        ...

    async def refresh_token(self, stale: Optional[str]) -> Optional[str]:
        ...


async def _resolve(result: TokenResult) -> Optional[str]:
    if inspect.isawaitable(result):
        return await result
    return result


class BearerTokenProvider:
    """Token provider driven by load and refresh callbacks.

    Callbacks may be plain functions or coroutines. The loaded token is kept
    until a refresh replaces it; concurrent callers share one load and one
    refresh per rejected token.
    """

    def __init__(
        self,
        load_tokens: Callable[[], TokenResult],
        refresh_tokens: Optional[Callable[[Optional[str]], TokenResult]] = None,
    ):
        self._load_tokens = load_tokens
        self._refresh_tokens = refresh_tokens
        self._token: Optional[str] = None
        self._loaded = False
        self._lock = asyncio.Lock()
        self.logger = get_logger("manager_client.auth")

    async def load_token(self) -> Optional[str]:
        if self._loaded:
            return self._token

        async with self._lock:
            if not self._loaded:
                self._token = await _resolve(self._load_tokens())
                self._loaded = True
            return self._token

    async def refresh_token(self, stale: Optional[str]) -> Optional[str]:
        if self._refresh_tokens is None:
            return None

        async with self._lock:
            # Another request already replaced the rejected token
            if self._loaded and self._token != stale:
                return self._token

            self.logger.info("Refreshing bearer token")
            fresh = await _resolve(self._refresh_tokens(stale))
            if fresh is None:
                return None

            self._token = fresh
            self._loaded = True
            return fresh


class StaticTokenProvider:
    """A fixed access token. It cannot be refreshed."""

    def __init__(self, token: str):
        self._token = token

    async def load_token(self) -> Optional[str]:
        return self._token

    async def refresh_token(self, stale: Optional[str]) -> Optional[str]:
        return None


class BearerAuth(httpx.Auth):
    """httpx auth flow that sends ``Authorization: Bearer`` and retries a 401 once."""

    def __init__(self, provider: TokenProvider):
        self.provider = provider
        self.logger = get_logger("manager_client.auth")

    def sync_auth_flow(self, request: httpx.Request):
        raise RuntimeError("BearerAuth requires an httpx.AsyncClient")

    async def async_auth_flow(self, request: httpx.Request) -> AsyncGenerator[httpx.Request, httpx.Response]:
        token = await self.provider.load_token()
        self._apply(request, token)

        response = yield request

        if response.status_code != 401:
            return

        fresh = await self.provider.refresh_token(token)
        if fresh is None:
            self.logger.warning("No fresh bearer token available after 401", url=str(request.url))
            return

        self.logger.debug("Retrying request with fresh bearer token", url=str(request.url))
        self._apply(request, fresh)
        yield request

    @staticmethod
    def _apply(request: httpx.Request, token: Optional[str]) -> None:
        if token:
            request.headers["Authorization"] = f"Bearer {token}"
        else:
            request.headers.pop("Authorization", None)
