"""
File I/O for batches of HL7 messages.

Hl7FileReader streams a file in fixed-size chunks and cuts it into messages on
a message delimiter (CRLF by default, since segments themselves end in CR).
Hl7FileWriter appends serialized messages, each followed by that delimiter.
"""
import logging
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional, Union

from hl7_config import Hl7Settings
from hl7_errors import FileReadError
from hl7_parser import iter_messages, parse_message
from hl7_structure import Message

logger = logging.getLogger(__name__)

MessageListener = Callable[[Message], bool]


class MessageListAdapter:
    """Listener that keeps every message it receives."""

    def __init__(self):
        self.messages: List[Message] = []

    def __call__(self, message: Message) -> bool:
        self.messages.append(message)
        return True

    def clear(self):
        self.messages.clear()


class Hl7FileReader:
    def __init__(self, path: Union[str, Path], delimiter: Optional[str] = None,
                 buffer_size: Optional[int] = None, encoding: Optional[str] = None):
        settings = Hl7Settings()
        self.path = Path(path)
        self.delimiter = delimiter or settings.message_delimiter
        self.buffer_size = buffer_size or settings.read_buffer_size
        self.encoding = encoding or settings.file_encoding

    def _open(self):
        if not self.path.exists():
            raise FileReadError(str(self.path), "file does not exist")
        if not self.path.is_file():
            raise FileReadError(str(self.path), "path is not a file")
        try:
            # newline="" keeps CR and CRLF exactly as written.
            return open(self.path, "r", encoding=self.encoding, newline="")
        except OSError as e:
            raise FileReadError(str(self.path), str(e)) from e

    def _chunks(self, handle) -> Iterator[str]:
        while True:
            try:
                chunk = handle.read(self.buffer_size)
            except UnicodeDecodeError as e:
                raise FileReadError(str(self.path), f"could not decode file as {self.encoding}: {e}") from e
            if not chunk:
                return
            yield chunk

    def raw_messages(self) -> Iterator[str]:
        """Yield the text of each message without parsing it."""
        count = 0
        with self._open() as handle:
            for text in iter_messages(self._chunks(handle), self.delimiter):
                count += 1
                yield text
        logger.info(f"Read {count} message(s) from {self.path}")

    def __iter__(self) -> Iterator[Message]:
        for text in self.raw_messages():
            yield parse_message(text)

    def read_all(self) -> List[Message]:
        return list(self)

    def parse(self, listener: MessageListener) -> bool:
        """Push every message to listener; True when the listener accepted all of them."""
        success = True
        for message in self:
            success = bool(listener(message)) and success
        return success


class Hl7FileWriter:
    def __init__(self, path: Union[str, Path], delimiter: Optional[str] = None, append: bool = True,
                 encoding: Optional[str] = None):
        settings = Hl7Settings()
        self.path = Path(path)
        self.delimiter = delimiter or settings.message_delimiter
        self.append = append
        self.encoding = encoding or settings.file_encoding
        self._handle = None

    def _prepare(self):
        mode = "a" if self.append else "w"
        self._handle = open(self.path, mode, encoding=self.encoding, newline="")
        logger.info(f"Opened {self.path} for writing (mode={mode})")

    def write(self, message: Message):
        if self._handle is None:
            self._prepare()
        self._handle.write(message.marshal())
        self._handle.write(self.delimiter)
        self._handle.flush()

    def write_all(self, messages: Iterable[Message]):
        for message in messages:
            self.write(message)

    def close(self):
        if self._handle is not None:
            self._handle.close()
            self._handle = None

    def __enter__(self) -> "Hl7FileWriter":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
