import logging
import re
from enum import Enum
from typing import Iterable

from pydantic import BaseModel, ConfigDict, field_validator

from hl7_location import Location
from hl7_structure import Message

logger = logging.getLogger(__name__)

NUMERIC_PATTERN = re.compile(r"((-|\+)?[0-9]+(\.[0-9]+)?)+")


class RuleType(str, Enum):
    EXIST = "EXIST"
    EXIST_NON_EMPTY = "EXIST_NON_EMPTY"
    NUMERIC = "NUMERIC"


class Hl7Rule(BaseModel):
    """A check against one path in a message, e.g. Hl7Rule(location="PID-3", rule=RuleType.EXIST)."""
    model_config = ConfigDict(frozen=True)

    location: Location
    rule: RuleType

    @field_validator("location", mode="before")
    @classmethod
    def _parse_location(cls, value):
        if isinstance(value, str):
            return Location.parse(value)
        return value


def rule_test(message: Message, rule: Hl7Rule) -> bool:
    location = rule.location
    if not location.has_field:
        # A segment exists or it does not; it has no value to inspect.
        if rule.rule in (RuleType.EXIST, RuleType.EXIST_NON_EMPTY):
            result = message.has(location)
        else:
            result = False
    elif rule.rule == RuleType.EXIST:
        result = message.has(location)
    elif rule.rule == RuleType.EXIST_NON_EMPTY:
        result = message.has(location) and message.get(location).marshal().strip() != ""
    else:
        node = message.get(location)
        result = node.is_base and NUMERIC_PATTERN.fullmatch(node.get_data()) is not None
    logger.debug(f"Rule {rule.rule.value} on '{location.canonical}' -> {'PASS' if result else 'FAIL'}")
    return result


def rules_test(message: Message, rules: Iterable[Hl7Rule]) -> bool:
    """True when every rule passes. All rules are evaluated."""
    results = [rule_test(message, rule) for rule in rules]
    return all(results)
