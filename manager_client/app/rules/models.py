"""
Rule data models for the revocation manager client.

Field names follow the manager's JSON contract (``ruleId``, ``ruleExpires``);
Python attribute names are snake_case and both spellings are accepted when
constructing a model.
"""

from typing import Any, Dict, Generic, Optional, Tuple, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")

CLAIM_FIELDS = ("iss", "sub", "aud", "exp", "nbf", "iat", "jti")


class ConditionKind:
    """Predicate kinds known to this client. The manager may define more."""
    STRING_EQUALS = "StringEquals"
    STRING_STARTS_WITH = "StringStartsWith"
    STRING_ENDS_WITH = "StringEndsWith"
    DATE_TIME_BEFORE = "DateTimeBefore"
    DATE_TIME_AFTER = "DateTimeAfter"
    DATE_TIME_EQUALS = "DateTimeEquals"


class Condition(BaseModel):
    """A tagged predicate inside a rule.

    Only the ``type`` tag is interpreted; every other field, including those
    of kinds this client does not know, is kept as-is and written back.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    type: str = Field(..., min_length=1, description="Predicate kind")


def _condition(kind: str, value: Union[str, int]) -> Condition:
    return Condition(type=kind, value=value)


def string_equals(value: str) -> Condition:
    return _condition(ConditionKind.STRING_EQUALS, value)


def string_starts_with(value: str) -> Condition:
    return _condition(ConditionKind.STRING_STARTS_WITH, value)


def string_ends_with(value: str) -> Condition:
    return _condition(ConditionKind.STRING_ENDS_WITH, value)


def date_time_before(value: int) -> Condition:
    return _condition(ConditionKind.DATE_TIME_BEFORE, value)


def date_time_after(value: int) -> Condition:
    return _condition(ConditionKind.DATE_TIME_AFTER, value)


def date_time_equals(value: int) -> Condition:
    return _condition(ConditionKind.DATE_TIME_EQUALS, value)


class Rule(BaseModel):
    """A revocation rule.

    ``rule_id`` is absent until the manager assigns one. Condition lists for
    the registered JWT claims are modelled explicitly; any other top-level
    field is a condition list on a custom claim and is validated into
    ``Condition`` tuples the same way, so a rule built locally compares equal
    to the same rule decoded from the manager.
    """

    model_config = ConfigDict(extra="allow", frozen=True, populate_by_name=True)

    __pydantic_extra__: Dict[str, Tuple[Condition, ...]]

    rule_id: Optional[str] = Field(None, alias="ruleId", description="Server-assigned identifier")
    rule_expires: int = Field(..., alias="ruleExpires", description="Epoch seconds after which the rule may be purged")
    iss: Tuple[Condition, ...] = ()
    sub: Tuple[Condition, ...] = ()
    aud: Tuple[Condition, ...] = ()
    exp: Tuple[Condition, ...] = ()
    nbf: Tuple[Condition, ...] = ()
    iat: Tuple[Condition, ...] = ()
    jti: Tuple[Condition, ...] = ()

    def without_id(self) -> "Rule":
        """Copy of this rule with the identifier cleared."""
        return self.model_copy(update={"rule_id": None})

    def to_wire(self) -> Dict[str, Any]:
        """JSON-ready dict; empty condition lists and a missing id are omitted."""
        data = self.model_dump(mode="json", by_alias=True)
        if data.get("ruleId") is None:
            data.pop("ruleId", None)
        for claim in (*CLAIM_FIELDS, *(self.model_extra or {})):
            if not data.get(claim):
                data.pop(claim, None)
        return data


class RuleSet(BaseModel):
    """Snapshot of all active rules and when the manager computed it."""

    model_config = ConfigDict(frozen=True)

    rules: Tuple[Rule, ...] = ()
    timestamp: int = Field(..., description="Epoch seconds")


class PartialList(BaseModel, Generic[T]):
    """One page of an enumeration.

    ``cursor`` is opaque; pass it back unchanged to fetch the next page.
    ``None`` means this is the last page.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    items: Tuple[T, ...] = Field((), alias="list")
    cursor: Optional[str] = None

    @property
    def has_more(self) -> bool:
        return self.cursor is not None
