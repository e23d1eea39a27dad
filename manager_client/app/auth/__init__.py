"""
Authentication helpers for the manager client.
"""

from .bearer import BearerAuth, BearerTokenProvider, StaticTokenProvider, TokenProvider

__all__ = [
    "BearerAuth",
    "BearerTokenProvider",
    "StaticTokenProvider",
    "TokenProvider",
]
