import re
from typing import Dict, List, Optional, Tuple

from hl7_defs import Delimiters


def _escape_table(delimiters: Delimiters) -> List[Tuple[str, str]]:
    # (delimiter character, escape sequence) in encoding order; the escape
    # character itself has to go first or its own wrappers get re-escaped.
    esc = delimiters.escape
    return [
        (delimiters.escape, f"{esc}E{esc}"),
        (delimiters.field, f"{esc}F{esc}"),
        (delimiters.repetition, f"{esc}R{esc}"),
        (delimiters.component, f"{esc}S{esc}"),
        (delimiters.subcomponent, f"{esc}T{esc}"),
    ]


def _decode_map(delimiters: Delimiters) -> Dict[str, str]:
    return {
        "T": delimiters.subcomponent,
        "S": delimiters.component,
        "R": delimiters.repetition,
        "F": delimiters.field,
        "E": delimiters.escape,
    }


def escape(delimiters: Delimiters, data: Optional[str]) -> Optional[str]:
    """Replace every reserved delimiter in data with its escape sequence."""
    if not data:
        return data
    for char, sequence in _escape_table(delimiters):
        data = data.replace(char, sequence)
    return data


def unescape(delimiters: Delimiters, data: Optional[str]) -> Optional[str]:
    """
    Turn escape sequences back into the delimiter characters they stand for.

    Sequences are decoded in a single left-to-right pass, so the text between
    two escaped escape characters ('\\E\\F\\E\\') is never read as a sequence of
    its own. Other sequences (\\H\\, \\Xhh\\, ...) are left as they are.
    """
    if not data or delimiters.escape not in data:
        return data
    esc = re.escape(delimiters.escape)
    decode = _decode_map(delimiters)
    return re.sub(f"{esc}([TSRFE]){esc}", lambda m: decode[m.group(1)], data)


def reescape(old: Delimiters, new: Delimiters, data: Optional[str]) -> Optional[str]:
    """Re-encode escaped data written under one alphabet for another."""
    if old == new:
        return data
    return escape(new, unescape(old, data))
