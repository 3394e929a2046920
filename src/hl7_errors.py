"""
Exceptions raised by the HL7 structure engine.

Query misses are not errors: they come back as a NullField, an empty list
or None. Everything here is caller-visible and is never swallowed internally.
"""
from typing import Optional


# Base Exception
class HL7Error(Exception):
    """Base exception for all HL7 structure errors."""

    def __init__(self, message: str, segment: Optional[str] = None, location: Optional[str] = None):
        self.segment = segment
        self.location = location

        details = []
        if segment:
            details.append(f"segment={segment}")
        if location:
            details.append(f"location={location}")

        full_message = message
        if details:
            full_message = f"{message} [{', '.join(details)}]"

        super().__init__(full_message)


class MalformedLocationError(HL7Error, ValueError):
    """Raised when a path expression such as 'PID-3[1].5' cannot be parsed."""

    def __init__(self, text: str, reason: Optional[str] = None):
        self.text = text
        self.reason = reason
        msg = f"Invalid HL7 location: '{text}'"
        if reason:
            msg += f" - {reason}"
        super().__init__(msg)


class MalformedMessageError(HL7Error, ValueError):
    """Raised when a raw message has no usable MSH delimiter declaration."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Malformed message: {reason}", segment="MSH")


class StructuralMisuseError(HL7Error, TypeError):
    """Raised when a leaf-only operation is called on a composite node, or vice versa."""

    def __init__(self, reason: str, location: Optional[str] = None):
        self.reason = reason
        super().__init__(reason, location=location)


class InvalidTimestampError(HL7Error, ValueError):
    """Raised when an HL7 timestamp cannot be parsed."""

    def __init__(self, value: str, reason: Optional[str] = None):
        self.value = value
        msg = f"Invalid HL7 timestamp: '{value}'"
        if reason:
            msg += f" - {reason}"
        super().__init__(msg)


class FileReadError(HL7Error):
    """Raised when an input file cannot be read."""

    def __init__(self, filepath: str, reason: str):
        self.filepath = filepath
        self.reason = reason
        super().__init__(f"Cannot read file '{filepath}': {reason}")
