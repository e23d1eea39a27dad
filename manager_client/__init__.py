"""
Client library for the JWT revocation manager service.
"""

from manager_client.app.auth import BearerTokenProvider, StaticTokenProvider, TokenProvider
from manager_client.app.client import ManagerClient
from manager_client.app.rules import Condition, PartialList, Rule, RuleSet

__all__ = [
    "BearerTokenProvider",
    "Condition",
    "ManagerClient",
    "PartialList",
    "Rule",
    "RuleSet",
    "StaticTokenProvider",
    "TokenProvider",
]
