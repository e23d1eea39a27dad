"""
Client for the JWT revocation manager service.
"""

from typing import Any, AsyncIterator, Callable, Dict, Optional, Tuple, Type, TypeVar
from urllib.parse import quote

import httpx
import pydantic

from manager_client.shared.config import ManagerClientConfig
from manager_client.shared.errors import (
    AuthorizationError,
    DecodingError,
    ServiceUnavailableError,
    UnexpectedStatusError,
    ValidationError,
)
from manager_client.shared.logging import get_logger

from .auth import BearerAuth, BearerTokenProvider, TokenProvider
from .caching import CacheStorage, CacheTransport, InMemoryCacheStorage
from .rules import PartialList, Rule, RuleSet

ModelT = TypeVar("ModelT", bound=pydantic.BaseModel)

DEFAULT_TIMEOUT_SECONDS = 10.0


class ManagerClient:
    """Client for reading and managing revocation rules on a manager service.

    Every request carries a bearer token from ``token_provider``; a 401 is
    retried once with a refreshed token. GET responses pass through a private
    HTTP cache, so a rule set the manager marks cacheable is served locally
    until it goes stale. ``transport`` replaces the network stack, which is
    how tests supply an ``httpx.MockTransport``.
    """

    def __init__(
        self,
        manager_url: str,
        token_provider: TokenProvider,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        cache_enabled: bool = True,
        cache_storage: Optional[CacheStorage] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        if not manager_url:
            raise ValidationError("manager_url is required")

        self.manager_url = manager_url.rstrip("/")
        self.logger = get_logger("manager_client")

        network = transport if transport is not None else httpx.AsyncHTTPTransport()
        self.cache: Optional[CacheTransport] = None
        if cache_enabled:
            self.cache = CacheTransport(network, storage=cache_storage, clock=clock)
            network = self.cache

        self._http = httpx.AsyncClient(
            transport=network,
            auth=BearerAuth(token_provider),
            headers={"Accept": "application/json"},
            timeout=timeout,
        )

    @classmethod
    def from_config(
        cls,
        config: ManagerClientConfig,
        token_provider: Optional[TokenProvider] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "ManagerClient":
        """Build a client from settings, using the configured access token by default."""
        if token_provider is None:
            access_token = config.access_token
            token_provider = BearerTokenProvider(lambda: access_token)

        return cls(
            config.manager_url,
            token_provider,
            transport,
            timeout=config.timeout_seconds,
            cache_enabled=config.cache_enabled,
            cache_storage=InMemoryCacheStorage(config.cache_max_entries),
        )

    async def __aenter__(self) -> "ManagerClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying connection pool."""
        await self._http.aclose()

    async def get_rule_set(self) -> RuleSet:
        """Retrieve the current rule set.

        Returns:
            The RuleSet containing all active rules.
        """
        response = await self._send("GET", self._url("ruleset"))
        rule_set = self._decode(response, RuleSet)
        self._require_identified(response, *rule_set.rules)
        return rule_set

    async def list_rules(self, limit: Optional[int] = None, cursor: Optional[str] = None) -> PartialList[Rule]:
        """List the rules defined in the manager.

        Args:
            limit: the maximum number of rules to return.
            cursor: position of the next rule to return, taken verbatim from a
                previous PartialList. Omit to start from the beginning.

        Returns:
            The rules in the requested range and a cursor if more remain.
        """
        if limit is not None and limit < 1:
            raise ValidationError("limit must be a positive integer", details={"limit": limit})
        if cursor is not None and not cursor:
            raise ValidationError("cursor must be a non-empty string when given")

        params: Dict[str, str] = {}
        if limit is not None:
            params["limit"] = str(limit)
        if cursor is not None:
            params["cursor"] = cursor

        response = await self._send("GET", self._url("rules"), params=params or None)
        page = self._decode(response, PartialList[Rule])
        self._require_identified(response, *page.items)
        return page

    async def iter_rules(self, limit: Optional[int] = None) -> AsyncIterator[Rule]:
        """Iterate over every rule, following cursors page by page."""
        cursor: Optional[str] = None
        while True:
            page = await self.list_rules(limit=limit, cursor=cursor)
            for rule in page.items:
                yield rule
            if page.cursor is None:
                return
            cursor = page.cursor

    async def get_rule(self, rule_id: str) -> Optional[Rule]:
        """Retrieve a rule.

        Returns:
            The rule with ``rule_id``, or None if the manager has no such rule.
        """
        self._require_rule_id(rule_id)

        response = await self._send("GET", self._url("rules", rule_id))
        if response.status_code == 404:
            self.logger.debug("Rule not found", rule_id=rule_id)
            return None

        rule = self._decode(response, Rule)
        self._require_identified(response, rule)
        return rule

    async def create_rule(self, rule: Rule) -> Rule:
        """Create a new rule.

        Args:
            rule: the rule to create; must not have a rule_id set.

        Returns:
            The created rule with the server-assigned rule_id.
        """
        if rule.rule_id is not None:
            raise ValidationError(
                "A new rule must not carry a rule_id",
                details={"rule_id": rule.rule_id}
            )

        response = await self._send("POST", self._url("rules"), json=rule.to_wire())
        created = self._decode(response, Rule, expected=(200, 201))
        self._require_identified(response, created)

        self.logger.info("Rule created", rule_id=created.rule_id)
        return created

    async def delete_rule(self, rule_id: str) -> Optional[Rule]:
        """Delete a rule.

        Returns:
            The rule that was deleted, or None if no rule had ``rule_id``.
        """
        self._require_rule_id(rule_id)

        response = await self._send("DELETE", self._url("rules", rule_id))
        if response.status_code == 404:
            self.logger.debug("Rule to delete not found", rule_id=rule_id)
            return None

        deleted = self._decode(response, Rule)
        self._require_identified(response, deleted)
        self.logger.info("Rule deleted", rule_id=rule_id)
        return deleted

    def _url(self, *segments: str) -> str:
        return self.manager_url + "/" + "/".join(quote(segment, safe="") for segment in segments)

    @staticmethod
    def _require_rule_id(rule_id: str) -> None:
        if not rule_id:
            raise ValidationError("rule_id must be a non-empty string")

    def _require_identified(self, response: httpx.Response, *rules: Rule) -> None:
        """Rules returned by the manager always carry the identifier it assigned."""
        for rule in rules:
            if not rule.rule_id:
                self.logger.warning("Manager returned a rule without a rule_id", url=str(response.request.url))
                raise DecodingError(
                    "Manager returned a rule without a rule_id",
                    details={"url": str(response.request.url), "body": response.text}
                )

    async def _send(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, str]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        self.logger.debug("Manager request", method=method, url=url, params=params)
        try:
            response = await self._http.request(method, url, params=params, json=json)
        except httpx.TransportError as e:
            self.logger.warning("Manager request failed", method=method, url=url, error=str(e))
            raise ServiceUnavailableError(
                f"Could not reach manager: {e}",
                details={"method": method, "url": url, "error": str(e)}
            ) from e

        if response.status_code == 401:
            self.logger.warning("Manager rejected bearer token", method=method, url=url)
            raise AuthorizationError(
                "Manager rejected the bearer token",
                details={"method": method, "url": url, "body": response.text}
            )

        return response

    def _decode(
        self,
        response: httpx.Response,
        model: Type[ModelT],
        expected: Tuple[int, ...] = (200,),
    ) -> ModelT:
        if response.status_code not in expected:
            self.logger.warning(
                "Unexpected manager response",
                url=str(response.request.url),
                status_code=response.status_code
            )
            raise UnexpectedStatusError(response.status_code, response.text)

        try:
            return model.model_validate_json(response.content)
        except pydantic.ValidationError as e:
            self.logger.warning("Malformed manager response", url=str(response.request.url), error=str(e))
            raise DecodingError(
                f"Response from {response.request.url} is not a valid {model.__name__}",
                details={"status_code": response.status_code, "error": str(e)}
            ) from e
