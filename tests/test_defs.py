# FILE: tests/test_defs.py
import pytest
from pydantic import ValidationError

from hl7_defs import COMPONENT, DEFAULT_DELIMITERS, ESCAPE, FIELD, REPETITION, SUBCOMPONENT, Delimiters

pytestmark = pytest.mark.unit


def test_default_delimiters():
    assert str(DEFAULT_DELIMITERS) == "|^~\\&"
    assert DEFAULT_DELIMITERS.encoding_characters == "^~\\&"


def test_positional_access_follows_field_component_repetition_escape_subcomponent():
    delims = Delimiters.from_string("|^~\\&")
    assert delims[FIELD] == "|"
    assert delims[COMPONENT] == "^"
    assert delims[REPETITION] == "~"
    assert delims[ESCAPE] == "\\"
    assert delims[SUBCOMPONENT] == "&"


def test_delimiters_compare_by_value():
    assert Delimiters.from_string("|^~\\&") == DEFAULT_DELIMITERS
    assert Delimiters.from_string(":^~\\`") != DEFAULT_DELIMITERS


def test_duplicate_characters_are_rejected():
    with pytest.raises(ValidationError):
        Delimiters.from_string("|^^\\&")


def test_wrong_length_is_rejected():
    with pytest.raises(ValueError):
        Delimiters.from_string("|^~")


def test_segment_terminator_cannot_be_a_delimiter():
    with pytest.raises(ValidationError):
        Delimiters.from_string("|^~\\\r")


def test_delimiters_are_immutable():
    with pytest.raises(ValidationError):
        DEFAULT_DELIMITERS.field = ":"
