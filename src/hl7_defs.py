from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Wire-level constants for HL7 v2 pipe-delimited messages.
SEGMENT_TERMINATOR = "\r"
HEADER_SEGMENT = "MSH"
DEFAULT_DELIMITER_STRING = "|^~\\&"

# Byte offsets of the delimiter declaration inside the MSH segment.
DELIMITER_OFFSET = 3
MIN_MESSAGE_LENGTH = 8

# Positions inside the (F, C, R, E, S) tuple.
FIELD = 0
COMPONENT = 1
REPETITION = 2
ESCAPE = 3
SUBCOMPONENT = 4


class Delimiters(BaseModel):
    """The five-character alphabet a message is split with, in (F, C, R, E, S) order."""
    model_config = ConfigDict(frozen=True)

    field: str = Field("|", min_length=1, max_length=1)
    component: str = Field("^", min_length=1, max_length=1)
    repetition: str = Field("~", min_length=1, max_length=1)
    escape: str = Field("\\", min_length=1, max_length=1)
    subcomponent: str = Field("&", min_length=1, max_length=1)

    @model_validator(mode="after")
    def _check_distinct(self) -> "Delimiters":
        chars = self.as_tuple()
        if len(set(chars)) != len(chars):
            raise ValueError(f"Delimiter characters must be distinct, got '{''.join(chars)}'")
        if "\r" in chars or "\n" in chars:
            raise ValueError("Line terminators cannot be used as delimiters")
        return self

    @classmethod
    def from_string(cls, chars: str) -> "Delimiters":
        if len(chars) != 5:
            raise ValueError(f"Expected exactly 5 delimiter characters, got {len(chars)}: '{chars}'")
        return cls(field=chars[0], component=chars[1], repetition=chars[2],
                   escape=chars[3], subcomponent=chars[4])

    def as_tuple(self) -> Tuple[str, str, str, str, str]:
        return (self.field, self.component, self.repetition, self.escape, self.subcomponent)

    @property
    def encoding_characters(self) -> str:
        """The four characters MSH-2 declares (everything except the field separator)."""
        return self.component + self.repetition + self.escape + self.subcomponent

    def __getitem__(self, position: int) -> str:
        return self.as_tuple()[position]

    def __str__(self) -> str:
        return "".join(self.as_tuple())


DEFAULT_DELIMITERS = Delimiters()

# Depth of each node kind below the message root.
LEVEL_MESSAGE = 0
LEVEL_SEGMENT = 1
LEVEL_REPEATING_FIELD = 2
LEVEL_FIELD = 3
LEVEL_COMPONENT = 4
LEVEL_SUBCOMPONENT = 5
