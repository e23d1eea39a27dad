"""
JWT revocation manager client.

Structure:
- app.client: ManagerClient, one coroutine per manager endpoint.
- app.auth: bearer token providers and the 401-retry auth flow.
- app.caching: private HTTP cache honoring the manager's cache headers.
- app.rules: Rule, RuleSet and PartialList models.
"""

from .client import ManagerClient

__all__ = ["ManagerClient"]
