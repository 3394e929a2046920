"""Runtime configuration using Pydantic Settings."""

from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings

from hl7_defs import DEFAULT_DELIMITER_STRING, Delimiters


class Hl7Settings(BaseSettings):
    """Defaults for the file reader, writer and CLI, loaded from HL7_* environment variables."""

    default_delimiters: str = DEFAULT_DELIMITER_STRING
    message_delimiter: str = "\r\n"
    read_buffer_size: int = 500
    file_encoding: str = "utf-8"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    model_config = {"env_prefix": "HL7_", "case_sensitive": False}

    @field_validator("default_delimiters")
    @classmethod
    def _check_delimiters(cls, value: str) -> str:
        Delimiters.from_string(value)
        return value

    @field_validator("read_buffer_size")
    @classmethod
    def _check_buffer_size(cls, value: int) -> int:
        if value < 1:
            raise ValueError("read_buffer_size must be positive")
        return value

    @field_validator("message_delimiter")
    @classmethod
    def _check_message_delimiter(cls, value: str) -> str:
        if not value:
            raise ValueError("message_delimiter cannot be empty")
        return value

    @property
    def delimiters(self) -> Delimiters:
        return Delimiters.from_string(self.default_delimiters)


__all__ = ["Hl7Settings"]
