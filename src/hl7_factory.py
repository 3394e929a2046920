"""
Shortcuts for building messages and nodes from scratch.

Data arguments are plain (unescaped) text; each builder escapes it for the
delimiters the node is created with. Without explicit delimiters the builders
use Hl7Settings().delimiters (HL7_DEFAULT_DELIMITERS, '|^~\\&' unless set).
"""
from typing import Optional

from hl7_config import Hl7Settings
from hl7_defs import HEADER_SEGMENT, SEGMENT_TERMINATOR, Delimiters
from hl7_parser import parse_message
from hl7_structure import Component, Field, Message, RepeatingField, Segment, Subcomponent


def _resolve(delimiters: Optional[Delimiters]) -> Delimiters:
    return delimiters or Hl7Settings().delimiters


def new_message(delimiters: Optional[Delimiters] = None, additional_fields: int = 0) -> Message:
    """A message holding only the MSH header, optionally padded with empty fields."""
    delimiters = _resolve(delimiters)
    message = Message(delimiters)
    message.unmarshal(HEADER_SEGMENT + str(delimiters) + SEGMENT_TERMINATOR)
    header = message.header
    for _ in range(additional_fields):
        header.append(quick_field(delimiters=delimiters))
    return message


def message(raw: str) -> Message:
    return parse_message(raw)


def segment(name: str, field_count: int = 0, delimiters: Optional[Delimiters] = None) -> Segment:
    delimiters = _resolve(delimiters)
    seg = Segment(delimiters)
    seg.name = name
    for _ in range(field_count):
        seg.append(quick_field(delimiters=delimiters))
    return seg


def repeating_field(delimiters: Optional[Delimiters] = None) -> RepeatingField:
    return RepeatingField(_resolve(delimiters))


def quick_field(data: str = "", delimiters: Optional[Delimiters] = None) -> RepeatingField:
    """A repeating field holding a single leaf field."""
    delimiters = _resolve(delimiters)
    slot = repeating_field(delimiters)
    slot.append(field(data, delimiters))
    return slot


def field(data: str = "", delimiters: Optional[Delimiters] = None) -> Field:
    return Field(_resolve(delimiters), data)


def component(data: str = "", delimiters: Optional[Delimiters] = None) -> Component:
    return Component(_resolve(delimiters), data)


def subcomponent(data: str = "", delimiters: Optional[Delimiters] = None) -> Subcomponent:
    return Subcomponent(_resolve(delimiters), data)
