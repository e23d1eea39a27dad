"""
Client-side HTTP caching package.

The manager marks its rule set cacheable; this package keeps those
responses and serves them until the server's freshness window closes.
Freshness always comes from the server's headers, never from local TTLs.
"""

from .http_cache import CacheEntry, CacheStorage, CacheTransport, InMemoryCacheStorage, parse_cache_control

__all__ = [
    "CacheEntry",
    "CacheStorage",
    "CacheTransport",
    "InMemoryCacheStorage",
    "parse_cache_control",
]
