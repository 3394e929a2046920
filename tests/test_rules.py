# FILE: tests/test_rules.py
import pytest

from hl7_location import Location
from hl7_rules import Hl7Rule, RuleType, rule_test, rules_test
from hl7_structure import Message

pytestmark = pytest.mark.unit


@pytest.mark.parametrize("path, expected", [
    ("PV1-3", True),
    ("PV1-4", False),
    ("PID-3[2]", True),
    ("PID-3[3]", False),
    ("OBR-5", True),
    ("PID", True),
    ("ZID", False),
])
def test_exist(oru_message: Message, path: str, expected: bool):
    assert rule_test(oru_message, Hl7Rule(location=path, rule=RuleType.EXIST)) is expected


@pytest.mark.parametrize("path, expected", [
    ("OBR-14", True),
    ("OBR-5", False),
    ("PID-3", True),
    ("PV1-3.2", False),
    ("PID-7", True),
    ("OBX[6]", True),
    ("OBX[7]", False),
])
def test_exist_non_empty(oru_message: Message, path: str, expected: bool):
    assert rule_test(oru_message, Hl7Rule(location=path, rule=RuleType.EXIST_NON_EMPTY)) is expected


@pytest.mark.parametrize("path, expected", [
    ("OBX-5", True),
    ("OBX[2]-5", True),
    ("OBX[1]-5", False),
    ("OBX-4", True),
    ("PID-3", False),
    ("PID-8", False),
    ("ZZZ-1", False),
    ("OBX", False),
])
def test_numeric(oru_message: Message, path: str, expected: bool):
    assert rule_test(oru_message, Hl7Rule(location=path, rule=RuleType.NUMERIC)) is expected


@pytest.mark.parametrize("value, expected", [
    ("-1.5", True),
    ("+3", True),
    ("12a", False),
    ("", False),
    (" 4", False),
])
def test_numeric_requires_whole_value(oru_message: Message, value: str, expected: bool):
    oru_message.get("OBX-5").set_data(value)
    assert rule_test(oru_message, Hl7Rule(location="OBX-5", rule="NUMERIC")) is expected


def test_rule_accepts_location_objects():
    rule = Hl7Rule(location=Location.parse("PID-3[1].5"), rule=RuleType.EXIST)
    assert rule.location.component_index == 4
    assert Hl7Rule(location="PID-3[1].5", rule="EXIST") == rule


def test_rule_rejects_bad_location():
    with pytest.raises(ValueError):
        Hl7Rule(location="PID-3[", rule=RuleType.EXIST)


def test_rules_test_requires_every_rule(oru_message: Message):
    rules = [
        Hl7Rule(location="MSH-9", rule=RuleType.EXIST_NON_EMPTY),
        Hl7Rule(location="PV1-3", rule=RuleType.EXIST),
        Hl7Rule(location="OBX-5", rule=RuleType.NUMERIC),
    ]
    assert rules_test(oru_message, rules)
    assert not rules_test(oru_message, rules + [Hl7Rule(location="PV1-4", rule=RuleType.EXIST)])
    assert rules_test(oru_message, [])
