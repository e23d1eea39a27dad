"""
Revocation rule data model.

Rules are opaque beyond JSON round-tripping: the client never evaluates
conditions, it only carries them between caller and manager.
"""

from .models import (
    Condition,
    ConditionKind,
    date_time_after,
    date_time_before,
    date_time_equals,
    PartialList,
    Rule,
    RuleSet,
    string_ends_with,
    string_equals,
    string_starts_with,
)

__all__ = [
    "Condition",
    "ConditionKind",
    "date_time_after",
    "date_time_before",
    "date_time_equals",
    "PartialList",
    "Rule",
    "RuleSet",
    "string_ends_with",
    "string_equals",
    "string_starts_with",
]
