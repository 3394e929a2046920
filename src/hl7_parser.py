import logging
from typing import Iterable, Iterator, List

from hl7_defs import DELIMITER_OFFSET, HEADER_SEGMENT, MIN_MESSAGE_LENGTH, Delimiters
from hl7_errors import MalformedMessageError
from hl7_structure import Message

logger = logging.getLogger(__name__)


def detect_delimiters(raw: str) -> Delimiters:
    """Read the five delimiter characters declared right after 'MSH'."""
    if raw is None or len(raw) < MIN_MESSAGE_LENGTH:
        raise MalformedMessageError(
            f"message must be at least {MIN_MESSAGE_LENGTH} characters, got {len(raw or '')}")
    if not raw.startswith(HEADER_SEGMENT):
        raise MalformedMessageError(f"message must start with '{HEADER_SEGMENT}', got '{raw[:3]}'")
    declared = raw[DELIMITER_OFFSET:MIN_MESSAGE_LENGTH]
    try:
        delimiters = Delimiters.from_string(declared)
    except ValueError as e:
        raise MalformedMessageError(f"invalid delimiter declaration '{declared}': {e}") from e
    logger.debug(f"Delimiters detected: Field='{delimiters.field}', Component='{delimiters.component}', "
                 f"Repetition='{delimiters.repetition}', Escape='{delimiters.escape}', "
                 f"Subcomponent='{delimiters.subcomponent}'")
    return delimiters


class Hl7Parser:
    """Builds a Message tree from one raw HL7 v2 message."""

    def __init__(self, raw: str):
        self.raw = raw
        self.delimiters = detect_delimiters(raw)

    def parse(self) -> Message:
        message = Message(self.delimiters)
        message.unmarshal(self.raw)
        logger.debug(f"Parsed message with {len(message)} segment(s)")
        return message


def parse_message(raw: str) -> Message:
    return Hl7Parser(raw).parse()


def iter_messages(chunks: Iterable[str], delimiter: str = "\r\n") -> Iterator[str]:
    """
    Cut a stream of text chunks into message texts on the message delimiter.

    Blank chunks are skipped with a warning. Leading whitespace is dropped from
    each message so blank lines between messages do not end up in front of
    'MSH'. A non-blank remainder after the last delimiter is the final message.
    """
    pending = ""
    for chunk in chunks:
        if not chunk:
            continue
        # Everything before this point was already searched.
        start = max(0, len(pending) - len(delimiter) + 1)
        pending += chunk
        position = pending.find(delimiter, start)
        while position != -1:
            text = pending[:position]
            pending = pending[position + len(delimiter):]
            if text.strip():
                yield text.lstrip()
            else:
                logger.warning("Skipping blank chunk between messages")
            position = pending.find(delimiter)
    if pending.strip():
        yield pending.lstrip()


def split_messages(content: str, delimiter: str = "\r\n") -> List[str]:
    """Split an in-memory batch of messages on the message delimiter."""
    return list(iter_messages([content], delimiter))
