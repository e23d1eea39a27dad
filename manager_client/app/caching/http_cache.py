"""
HTTP response cache for the manager client.

A private cache following the RFC 9111 rules the manager relies on:
explicit freshness from ``Cache-Control: max-age`` or ``Expires``,
revalidation with ``ETag``/``Last-Modified`` validators, ``no-store`` and
``no-cache`` directives, ``Vary`` matching, and invalidation after unsafe
requests. Heuristic freshness is not applied.
"""

import time
from collections import OrderedDict
from dataclasses import dataclass, field
from email.utils import format_datetime, parsedate_to_datetime
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Protocol, Tuple

import httpx

from manager_client.shared.logging import get_logger

CACHEABLE_STATUS_CODES = frozenset({200, 203, 204, 300, 301, 404, 405, 410, 414, 501})
UNSAFE_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})

# Stripped from stored headers when a 304 is merged in
HOP_BY_HOP_HEADERS = frozenset({
    "connection", "keep-alive", "proxy-authenticate", "proxy-authorization",
    "te", "trailer", "transfer-encoding", "upgrade", "content-length",
})
BODY_FRAMING_HEADERS = frozenset({"content-encoding", "content-length", "transfer-encoding"})


def parse_cache_control(value: Optional[str]) -> Dict[str, Optional[str]]:
    """Parse a Cache-Control header into lower-cased directives."""
    directives: Dict[str, Optional[str]] = {}
    if not value:
        return directives

    for part in value.split(","):
        part = part.strip()
        if not part:
            continue
        if "=" in part:
            name, _, arg = part.partition("=")
            directives[name.strip().lower()] = arg.strip().strip('"')
        else:
            directives[part.lower()] = None
    return directives


def _parse_seconds(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return max(0, int(value))
    except ValueError:
        return None


def _parse_http_date(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp()


@dataclass
class CacheEntry:
    """A stored response plus what is needed to judge its freshness."""
    status_code: int
    headers: List[Tuple[str, str]]
    content: bytes
    stored_at: float
    vary: Dict[str, Optional[str]] = field(default_factory=dict)

    @property
    def response_headers(self) -> httpx.Headers:
        return httpx.Headers(self.headers)

    def freshness_lifetime(self) -> float:
        headers = self.response_headers
        directives = parse_cache_control(headers.get("cache-control"))

        if "max-age" in directives:
            max_age = _parse_seconds(directives["max-age"])
            return float(max_age) if max_age is not None else 0.0

        if "expires" in headers:
            expires = _parse_http_date(headers.get("expires"))
            if expires is None:
                return 0.0
            date = _parse_http_date(headers.get("date"))
            return max(0.0, expires - (date if date is not None else self.stored_at))

        return 0.0

    def current_age(self, now: float) -> float:
        age_header = _parse_seconds(self.response_headers.get("age")) or 0
        return age_header + max(0.0, now - self.stored_at)

    def is_fresh(self, now: float) -> bool:
        directives = parse_cache_control(self.response_headers.get("cache-control"))
        if "no-cache" in directives:
            return False
        return self.freshness_lifetime() > self.current_age(now)

    def validators(self) -> Dict[str, str]:
        headers = self.response_headers
        conditional = {}
        if "etag" in headers:
            conditional["If-None-Match"] = headers["etag"]
        if "last-modified" in headers:
            conditional["If-Modified-Since"] = headers["last-modified"]
        return conditional

    def matches(self, request: httpx.Request) -> bool:
        return all(request.headers.get(name) == value for name, value in self.vary.items())


class CacheStorage(Protocol):
    """Where cache entries live. Implementations must tolerate concurrent use."""

    def get(self, key: str) -> Optional[CacheEntry]:
        ...

    def set(self, key: str, entry: CacheEntry) -> None:
        ...

    def delete(self, key: str) -> None:
        ...

    def clear(self) -> None:
        ...


class InMemoryCacheStorage:
    """Bounded LRU storage held in process memory."""

    def __init__(self, max_entries: int = 256):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()

    def get(self, key: str) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is not None:
            self._entries.move_to_end(key)
        return entry

    def set(self, key: str, entry: CacheEntry) -> None:
        self._entries[key] = entry
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class CacheTransport(httpx.AsyncBaseTransport):
    """Transport wrapper that answers GET requests from a private HTTP cache."""

    def __init__(
        self,
        transport: httpx.AsyncBaseTransport,
        storage: Optional[CacheStorage] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.transport = transport
        self.storage = storage if storage is not None else InMemoryCacheStorage()
        self._clock = clock or time.time
        self.logger = get_logger("manager_client.cache")

    @staticmethod
    def cache_key(request: httpx.Request) -> str:
        return f"{request.method}:{request.url}"

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        if request.method in UNSAFE_METHODS:
            response = await self.transport.handle_async_request(request)
            if response.status_code < 400:
                self.storage.delete(f"GET:{request.url}")
            return response

        if request.method != "GET":
            return await self.transport.handle_async_request(request)

        key = self.cache_key(request)
        request_directives = parse_cache_control(request.headers.get("cache-control"))

        if "no-store" in request_directives:
            return await self.transport.handle_async_request(request)

        entry = self.storage.get(key)
        if entry is not None and not entry.matches(request):
            entry = None

        now = self._clock()
        if entry is not None and "no-cache" not in request_directives and entry.is_fresh(now):
            self.logger.debug("Cache hit", url=str(request.url))
            return self._from_entry(entry, request, now)

        if entry is not None and entry.validators():
            return await self._revalidate(key, entry, request)

        self.logger.debug("Cache miss", url=str(request.url))
        response = await self.transport.handle_async_request(request)
        return await self._store(key, request, response)

    async def aclose(self) -> None:
        await self.transport.aclose()

    async def _revalidate(self, key: str, entry: CacheEntry, request: httpx.Request) -> httpx.Response:
        self.logger.debug("Revalidating stale cache entry", url=str(request.url))
        headers = httpx.Headers(request.headers)
        for name, value in entry.validators().items():
            headers[name] = value
        conditional = httpx.Request(request.method, request.url, headers=headers, extensions=request.extensions)

        response = await self.transport.handle_async_request(conditional)
        if response.status_code != 304:
            return await self._store(key, request, response)

        await response.aclose()
        merged = httpx.Headers(entry.headers)
        for name, value in response.headers.items():
            if name.lower() not in HOP_BY_HOP_HEADERS:
                merged[name] = value
        refreshed = CacheEntry(
            status_code=entry.status_code,
            headers=list(merged.multi_items()),
            content=entry.content,
            stored_at=self._clock(),
            vary=entry.vary,
        )
        self.storage.set(key, refreshed)
        return self._from_entry(refreshed, request, refreshed.stored_at)

    async def _store(self, key: str, request: httpx.Request, response: httpx.Response) -> httpx.Response:
        if not self._is_storable(response):
            self.storage.delete(key)
            return response

        # The decoded body is stored, so framing and encoding headers are dropped
        content = await response.aread()
        await response.aclose()
        headers = [
            (name, value) for name, value in response.headers.multi_items()
            if name.lower() not in BODY_FRAMING_HEADERS
        ]

        vary = {
            name.strip().lower(): request.headers.get(name.strip())
            for name in response.headers.get("vary", "").split(",")
            if name.strip()
        }
        entry = CacheEntry(
            status_code=response.status_code,
            headers=headers,
            content=content,
            stored_at=self._clock(),
            vary=vary,
        )
        self.storage.set(key, entry)
        self.logger.debug("Stored response in cache", url=str(request.url), status_code=response.status_code)

        return httpx.Response(
            status_code=response.status_code,
            headers=headers,
            content=content,
            request=request,
            extensions=response.extensions,
        )

    @staticmethod
    def _is_storable(response: httpx.Response) -> bool:
        if response.status_code not in CACHEABLE_STATUS_CODES:
            return False

        directives = parse_cache_control(response.headers.get("cache-control"))
        if "no-store" in directives:
            return False
        if response.headers.get("vary", "").strip() == "*":
            return False

        has_freshness = "max-age" in directives or "expires" in response.headers
        has_validator = "etag" in response.headers or "last-modified" in response.headers
        return has_freshness or has_validator

    @staticmethod
    def _from_entry(entry: CacheEntry, request: httpx.Request, now: float) -> httpx.Response:
        headers = entry.response_headers
        headers["Age"] = str(int(entry.current_age(now)))
        if "date" not in headers:
            headers["Date"] = format_datetime(datetime.fromtimestamp(entry.stored_at, tz=timezone.utc), usegmt=True)
        return httpx.Response(
            status_code=entry.status_code,
            headers=headers,
            content=entry.content,
            request=request,
            extensions={"from_cache": True},
        )
