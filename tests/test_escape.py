# FILE: tests/test_escape.py
import pytest

from hl7_defs import DEFAULT_DELIMITERS, Delimiters
from hl7_escape import escape, reescape, unescape

pytestmark = pytest.mark.unit


def test_escape_replaces_every_delimiter():
    assert escape(DEFAULT_DELIMITERS, "a|b^c~d\\e&f") == "a\\F\\b\\S\\c\\R\\d\\E\\e\\T\\f"


def test_escape_handles_escape_character_first():
    """An escape character in data must not be re-wrapped by later substitutions."""
    assert escape(DEFAULT_DELIMITERS, "\\^") == "\\E\\\\S\\"


def test_escape_leaves_empty_and_none_unchanged():
    assert escape(DEFAULT_DELIMITERS, "") == ""
    assert escape(DEFAULT_DELIMITERS, None) is None


def test_unescape_fast_path_without_escape_character():
    assert unescape(DEFAULT_DELIMITERS, "plain text") == "plain text"


def test_unescape_restores_original_text():
    original = "2.73x10^-7 & more | pipes ~ tildes \\ slashes"
    assert unescape(DEFAULT_DELIMITERS, escape(DEFAULT_DELIMITERS, original)) == original


def test_unescape_literal_escape_sequence_text():
    """Data that literally reads '\\F\\' survives a round trip."""
    original = "\\F\\"
    encoded = escape(DEFAULT_DELIMITERS, original)
    assert encoded == "\\E\\F\\E\\"
    assert unescape(DEFAULT_DELIMITERS, encoded) == original


def test_escape_is_idempotent_only_on_clean_text():
    clean = "NO RESERVED CHARACTERS"
    assert escape(DEFAULT_DELIMITERS, escape(DEFAULT_DELIMITERS, clean)) == escape(DEFAULT_DELIMITERS, clean)

    dirty = "A^B"
    once = escape(DEFAULT_DELIMITERS, dirty)
    assert escape(DEFAULT_DELIMITERS, once) != once


def test_escape_uses_custom_alphabet():
    custom = Delimiters.from_string("|*~#`")
    assert escape(custom, "a*b^c") == "a#S#b^c"
    assert unescape(custom, "a#S#b#T#c") == "a*b`c"


def test_reescape_moves_data_between_alphabets():
    custom = Delimiters.from_string("|*~\\`")
    assert reescape(DEFAULT_DELIMITERS, custom, "123\\S\\ MILL RD") == "123^ MILL RD"
    assert reescape(DEFAULT_DELIMITERS, custom, "(3*5)555") == "(3\\S\\5)555"


def test_reescape_same_alphabet_is_identity():
    assert reescape(DEFAULT_DELIMITERS, Delimiters(), "A\\S\\B") == "A\\S\\B"
