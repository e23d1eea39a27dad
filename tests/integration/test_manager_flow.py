"""
Integration test against a live revocation manager.

Requires:
- JRM_TEST_SERVER_URL: base URL of the manager
- JRM_TEST_ACCESS_TOKEN: bearer token allowed to manage rules
"""

import asyncio
import os
import time

import pytest

from manager_client.app.auth import StaticTokenProvider
from manager_client.app.client import ManagerClient
from manager_client.app.rules import Rule, RuleSet, string_equals

SERVER_URL = os.getenv("JRM_TEST_SERVER_URL")
ACCESS_TOKEN = os.getenv("JRM_TEST_ACCESS_TOKEN")

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(
        not (SERVER_URL and ACCESS_TOKEN),
        reason="JRM_TEST_SERVER_URL and JRM_TEST_ACCESS_TOKEN are not set"
    ),
]

RULESET_WAIT_SECONDS = 30.0
POLL_INTERVAL_SECONDS = 1.0


async def wait_for_rule_set(client: ManagerClient, predicate) -> RuleSet:
    """Poll the rule set until the manager has recomputed it."""
    deadline = time.monotonic() + RULESET_WAIT_SECONDS
    while True:
        rule_set = await client.get_rule_set()
        if predicate(rule_set) or time.monotonic() >= deadline:
            return rule_set
        await asyncio.sleep(POLL_INTERVAL_SECONDS)


class TestManagerFlow:
    """End-to-end rule lifecycle."""

    @pytest.mark.asyncio
    async def test_create_and_retrieve_rules(self):
        # The rule set endpoint is cacheable, so polling must bypass the cache
        async with ManagerClient(SERVER_URL, StaticTokenProvider(ACCESS_TOKEN), cache_enabled=False) as client:
            new_rule = await client.create_rule(Rule(
                rule_expires=int(time.time()) + 3600,
                iss=[string_equals("bad-issuer.mfrancza.com")],
            ))
            assert new_rule.rule_id

            assert await client.get_rule(new_rule.rule_id) == new_rule

            listed = [rule async for rule in client.iter_rules(limit=2)]
            assert new_rule in listed

            rule_set = await wait_for_rule_set(client, lambda rs: new_rule in rs.rules)
            assert new_rule in rule_set.rules
            assert rule_set.timestamp < time.time() + 5

            assert await client.delete_rule(new_rule.rule_id) == new_rule
            assert await client.get_rule(new_rule.rule_id) is None
            assert await client.delete_rule(new_rule.rule_id) is None

            updated = await wait_for_rule_set(client, lambda rs: new_rule not in rs.rules)
            assert new_rule not in updated.rules
            assert updated.timestamp < time.time() + 5
