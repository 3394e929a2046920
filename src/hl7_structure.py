"""
The HL7 v2 message tree.

Message -> Segment -> RepeatingField -> Field -> Component -> Subcomponent.
Each level joins its children with its own delimiter; Field and Component are
either a leaf holding an escaped payload or a composite holding children, and
say which through an explicit is_base flag. Children are owned by their parent
list; the parent link is a weak reference.

Any mutation marks the owning Message dirty so its PathIndex is rebuilt on the
next query.
"""
import logging
import weakref
from typing import Iterator, List, Optional

from hl7_cdm import CdmMessage
from hl7_defs import (DEFAULT_DELIMITERS, HEADER_SEGMENT, LEVEL_COMPONENT, LEVEL_FIELD, LEVEL_MESSAGE,
                      LEVEL_REPEATING_FIELD, LEVEL_SEGMENT, LEVEL_SUBCOMPONENT, SEGMENT_TERMINATOR,
                      Delimiters)
from hl7_errors import StructuralMisuseError
from hl7_escape import escape, reescape, unescape
from hl7_location import Location

logger = logging.getLogger(__name__)


class HL7Node:
    """Shared header of every node kind: delimiters, parent link and dirty propagation."""
    level: int = -1

    def __init__(self, delimiters: Optional[Delimiters] = None):
        self._delimiters = delimiters or DEFAULT_DELIMITERS
        self._parent_ref = None

    @property
    def delimiters(self) -> Delimiters:
        return self._delimiters

    @property
    def parent(self) -> Optional["HL7Node"]:
        if self._parent_ref is None:
            return None
        return self._parent_ref()

    @property
    def message(self) -> Optional["Message"]:
        """The Message this node is attached to, if any."""
        node = self
        while node is not None and not isinstance(node, Message):
            node = node.parent
        return node

    @property
    def location(self) -> Optional[Location]:
        return Location.determine(self)

    def _set_parent(self, parent: Optional["HL7Node"]):
        self._parent_ref = weakref.ref(parent) if parent is not None else None

    def _set_dirty(self):
        root = self.message
        if root is not None:
            root._dirty = True

    def _apply_delimiters(self, delimiters: Delimiters):
        self._delimiters = delimiters

    def marshal(self) -> str:
        raise NotImplementedError

    def unmarshal(self, raw: str):
        raise NotImplementedError

    def __str__(self) -> str:
        return self.marshal()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.marshal()!r})"


class HL7Composite(HL7Node):
    """
    A node with an ordered list of children of a single kind.

    Attaching a child moves it out of any previous parent, re-encodes its data
    for this node's delimiters and marks the message dirty.
    """
    child_type: type = HL7Node

    def __init__(self, delimiters: Optional[Delimiters] = None):
        super().__init__(delimiters)
        self._children: List[HL7Node] = []

    # --- Read access ---

    @property
    def children(self) -> List[HL7Node]:
        return list(self._children)

    def __len__(self) -> int:
        return len(self._children)

    def __iter__(self) -> Iterator[HL7Node]:
        return iter(list(self._children))

    def __getitem__(self, index: int) -> HL7Node:
        return self._children[index]

    def index_of(self, child: HL7Node) -> int:
        for i, existing in enumerate(self._children):
            if existing is child:
                return i
        return -1

    # --- Mutation ---

    def append(self, child: HL7Node) -> HL7Node:
        self._check_child(child)
        self._before_child_change()
        self._adopt(child)
        self._children.append(child)
        self._set_dirty()
        return child

    def insert(self, index: int, child: HL7Node) -> HL7Node:
        self._check_child(child)
        self._before_child_change()
        self._adopt(child)
        self._children.insert(index, child)
        self._set_dirty()
        return child

    def remove_at(self, index: int) -> HL7Node:
        self._before_child_change()
        child = self._children.pop(index)
        self._set_dirty()
        child._set_parent(None)
        return child

    def remove(self, child: HL7Node) -> bool:
        """Detach child by identity. Returns False when it is not one of ours."""
        index = self.index_of(child)
        if index < 0:
            return False
        self.remove_at(index)
        return True

    def replace_at(self, index: int, child: HL7Node) -> HL7Node:
        self._check_child(child)
        self._before_child_change()
        previous = self._children[index]
        if previous is child:
            return previous
        self._adopt(child)
        # Adopting may have shifted our own list if child was a sibling.
        index = self.index_of(previous)
        self._children[index] = child
        previous._set_parent(None)
        self._set_dirty()
        return previous

    def clear(self):
        self._before_child_change()
        for child in self._children:
            child._set_parent(None)
        self._children = []
        self._set_dirty()

    def _before_child_change(self):
        pass

    def _check_child(self, child: HL7Node):
        if not isinstance(child, self.child_type):
            raise StructuralMisuseError(
                f"{type(self).__name__} children must be {self.child_type.__name__}, "
                f"got {type(child).__name__}")
        if isinstance(child, NullField):
            raise StructuralMisuseError("A NullField cannot be attached to a message")
        if child is self or self._is_descendant_of(child):
            raise StructuralMisuseError(f"Cannot attach a {type(child).__name__} beneath itself")

    def _adopt(self, child: HL7Node):
        previous = child.parent
        if isinstance(previous, HL7Composite):
            previous.remove(child)
        child._apply_delimiters(self._delimiters)
        child._set_parent(self)

    def _is_descendant_of(self, node: HL7Node) -> bool:
        current = self.parent
        while current is not None:
            if current is node:
                return True
            current = current.parent
        return False

    def _apply_delimiters(self, delimiters: Delimiters):
        self._delimiters = delimiters
        for child in self._children:
            child._apply_delimiters(delimiters)

    def _load_children(self, pieces: List[str], factory):
        for child in self._children:
            child._set_parent(None)
        self._children = []
        for piece in pieces:
            child = factory(self._delimiters)
            child.unmarshal(piece)
            child._set_parent(self)
            self._children.append(child)


class _DataNode(HL7Composite):
    """Field and Component: a leaf payload or a composite of children."""
    separator_position: int = 0

    def __init__(self, delimiters: Optional[Delimiters] = None, data: Optional[str] = None):
        super().__init__(delimiters)
        self._raw = ""
        self._is_base = True
        if data:
            self._raw = escape(self._delimiters, data)

    @property
    def is_base(self) -> bool:
        return self._is_base

    @property
    def raw(self) -> str:
        """The escaped payload as it appears on the wire."""
        return self.marshal()

    def get_data(self) -> str:
        if not self._is_base:
            raise StructuralMisuseError(
                f"{type(self).__name__} is composite; read its children instead", location=self._where())
        return unescape(self._delimiters, self._raw)

    def set_data(self, data: Optional[str]):
        if not self._is_base:
            raise StructuralMisuseError(
                f"{type(self).__name__} is composite; set data on its children instead", location=self._where())
        self._raw = escape(self._delimiters, data or "")
        self._set_dirty()

    def marshal(self) -> str:
        if self._is_base:
            return self._raw
        separator = self._delimiters[self.separator_position]
        return separator.join(child.marshal() for child in self._children)

    def _where(self) -> Optional[str]:
        location = self.location
        return str(location) if location is not None else None

    def _before_child_change(self):
        # A leaf turns composite; a non-empty payload becomes the first child.
        if not self._is_base:
            return
        payload = self._raw
        self._is_base = False
        self._raw = ""
        self._children = []
        if payload:
            child = self.child_type(self._delimiters)
            child.unmarshal(payload)
            child._set_parent(self)
            self._children.append(child)

    def _apply_delimiters(self, delimiters: Delimiters):
        if self._is_base:
            self._raw = reescape(self._delimiters, delimiters, self._raw)
            self._delimiters = delimiters
        else:
            super()._apply_delimiters(delimiters)


class Subcomponent(HL7Node):
    """Deepest level; always a leaf."""
    level = LEVEL_SUBCOMPONENT

    def __init__(self, delimiters: Optional[Delimiters] = None, data: Optional[str] = None):
        super().__init__(delimiters)
        self._raw = escape(self._delimiters, data) if data else ""

    @property
    def is_base(self) -> bool:
        return True

    def get_data(self) -> str:
        return unescape(self._delimiters, self._raw)

    def set_data(self, data: Optional[str]):
        self._raw = escape(self._delimiters, data or "")
        self._set_dirty()

    def marshal(self) -> str:
        return self._raw

    def unmarshal(self, raw: str):
        self._raw = raw or ""
        self._set_dirty()

    def _apply_delimiters(self, delimiters: Delimiters):
        self._raw = reescape(self._delimiters, delimiters, self._raw)
        self._delimiters = delimiters


class Component(_DataNode):
    level = LEVEL_COMPONENT
    child_type = Subcomponent
    separator_position = 4

    def unmarshal(self, raw: str):
        raw = raw or ""
        d = self._delimiters
        pieces = raw.split(d.subcomponent)
        if raw == d.encoding_characters or len(pieces) == 1:
            self._load_children([], Subcomponent)
            self._is_base = True
            self._raw = raw
        else:
            self._is_base = False
            self._raw = ""
            self._load_children(pieces, Subcomponent)
        self._set_dirty()


class Field(_DataNode):
    level = LEVEL_FIELD
    child_type = Component
    separator_position = 1

    def __init__(self, delimiters: Optional[Delimiters] = None, data: Optional[str] = None):
        super().__init__(delimiters, data)
        self._literal = False

    @property
    def is_delimiter_field(self) -> bool:
        """True for the MSH-2 declaration, whose payload is never escaped or split."""
        return self._literal

    def get_data(self) -> str:
        if self._literal:
            return self._raw
        return super().get_data()

    def set_data(self, data: Optional[str]):
        if self._literal:
            self._raw = data or ""
            self._set_dirty()
            return
        super().set_data(data)

    def unmarshal(self, raw: str):
        raw = raw or ""
        d = self._delimiters
        self._literal = raw == d.encoding_characters
        pieces = raw.split(d.component)
        if self._literal or (len(pieces) == 1 and d.subcomponent not in raw):
            self._load_children([], Component)
            self._is_base = True
            self._raw = raw
        else:
            self._is_base = False
            self._raw = ""
            self._load_children(pieces, Component)
        self._set_dirty()

    def _declare(self, encoding_characters: str):
        # Store the delimiter declaration as-is.
        self._load_children([], Component)
        self._literal = True
        self._is_base = True
        self._raw = encoding_characters
        self._set_dirty()

    def _before_child_change(self):
        self._literal = False
        super()._before_child_change()

    def _apply_delimiters(self, delimiters: Delimiters):
        if self._literal:
            self._delimiters = delimiters
            return
        super()._apply_delimiters(delimiters)


class NullField(Field):
    """
    Returned for paths that match nothing (and for MSH-1, which has no slot).

    It is never attached to a message and set_data leaves it unchanged.
    """

    def __init__(self, data: str = "", delimiters: Optional[Delimiters] = None):
        super().__init__(delimiters)
        self._raw = data

    def get_data(self) -> str:
        return self._raw

    def set_data(self, data: Optional[str]):
        """Accepted and discarded."""

    def _before_child_change(self):
        raise StructuralMisuseError("NullField cannot hold children")


class RepeatingField(HL7Composite):
    level = LEVEL_REPEATING_FIELD
    child_type = Field

    def marshal(self) -> str:
        return self._delimiters.repetition.join(child.marshal() for child in self._children)

    def unmarshal(self, raw: str):
        raw = raw or ""
        d = self._delimiters
        if raw == d.encoding_characters:
            pieces = [raw]
        else:
            pieces = raw.split(d.repetition)
        self._load_children(pieces, Field)
        self._set_dirty()


class Segment(HL7Composite):
    level = LEVEL_SEGMENT
    child_type = RepeatingField

    @property
    def name(self) -> str:
        if not self._children or not len(self._children[0]):
            return ""
        return self._children[0][0].get_data()

    @name.setter
    def name(self, value: str):
        if not self._children:
            self.append(RepeatingField(self._delimiters))
        name_slot = self._children[0]
        if not len(name_slot):
            name_slot.append(Field(self._delimiters))
        name_slot[0].set_data(value)

    @property
    def is_header(self) -> bool:
        return self.name == HEADER_SEGMENT

    @property
    def delimiter_field(self) -> Optional[Field]:
        """The MSH-2 field of a header segment."""
        if not self.is_header or len(self._children) < 2 or not len(self._children[1]):
            return None
        return self._children[1][0]

    def marshal(self) -> str:
        return self._delimiters.field.join(child.marshal() for child in self._children)

    def unmarshal(self, raw: str):
        raw = raw or ""
        d = self._delimiters
        pieces = raw.split(d.field)
        self._load_children(pieces, RepeatingField)
        self._set_dirty()

    def compress(self):
        """Drop trailing repeating fields that serialize to nothing. The name slot always stays."""
        removed = 0
        while len(self._children) > 1 and self._children[-1].marshal() == "":
            self._children.pop()._set_parent(None)
            removed += 1
        if removed:
            logger.debug(f"Compressed {removed} trailing repeating field(s) from {self.name}")
            self._set_dirty()

    def copy(self) -> "Segment":
        duplicate = Segment(self._delimiters)
        duplicate.unmarshal(self.marshal())
        return duplicate


class Message(HL7Composite):
    """
    Root of the tree. Owns the delimiter set and the PathIndex used by the
    get/get_all/has/get_segment/get_all_segments queries.
    """
    level = LEVEL_MESSAGE
    child_type = Segment

    def __init__(self, delimiters: Optional[Delimiters] = None):
        super().__init__(delimiters)
        self._dirty = True
        self._index = None

    @property
    def segments(self) -> List[Segment]:
        return list(self._children)

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    @property
    def message(self) -> "Message":
        return self

    @property
    def index(self):
        if self._index is None:
            from hl7_index import PathIndex
            self._index = PathIndex(self)
        return self._index

    @property
    def header(self) -> Optional[Segment]:
        if self._children and self._children[0].is_header:
            return self._children[0]
        return None

    def marshal(self) -> str:
        text = SEGMENT_TERMINATOR.join(child.marshal() for child in self._children)
        if not text.endswith(SEGMENT_TERMINATOR):
            text += SEGMENT_TERMINATOR
        return text

    def unmarshal(self, raw: str):
        raw = raw or ""
        pieces = raw.split(SEGMENT_TERMINATOR)
        while pieces and pieces[-1] == "":
            pieces.pop()
        self._load_children(pieces, Segment)
        self._dirty = True
        logger.debug(f"Unmarshalled {len(pieces)} segment(s)")

    # --- Queries ---

    def get(self, location) -> Field:
        return self.index.get(location)

    def get_all(self, location) -> List[HL7Node]:
        return self.index.get_all(location)

    def has(self, location) -> bool:
        return self.index.has(location)

    def get_segment(self, location) -> Optional[Segment]:
        return self.index.get_segment(location)

    def get_all_segments(self, location) -> List[Segment]:
        return self.index.get_all_segments(location)

    # --- Whole-message operations ---

    def change_delimiters(self, chars, rewrite_header: bool = True):
        """
        Re-encode every leaf for a new delimiter set.

        Data is decoded with the old set and escaped with the new one, so text
        that was data stays data. The MSH-2 declaration is left untouched apart
        from being rewritten to the new characters when rewrite_header is set.
        """
        new = chars if isinstance(chars, Delimiters) else Delimiters.from_string(chars)
        old = self._delimiters
        header = self.header
        declaration = header.delimiter_field if header is not None else None
        if rewrite_header and declaration is not None:
            declaration._declare(new.encoding_characters)
        self._apply_delimiters(new)
        self._dirty = True
        logger.debug(f"Changed delimiters from '{old}' to '{new}' (rewrite_header={rewrite_header})")

    def compress(self):
        for segment in self._children:
            segment.compress()
        self._dirty = True

    def copy(self, retain_data: bool = True) -> "Message":
        """
        Deep copy through the wire form. Without retain_data only the structure
        survives: every leaf is blanked except segment names and MSH-2.
        """
        duplicate = Message(self._delimiters)
        duplicate.unmarshal(self.marshal())
        if not retain_data:
            for segment in duplicate.segments:
                for repeating_field in segment.children[1:]:
                    for field in repeating_field:
                        _blank(field)
        return duplicate

    def to_cdm(self) -> CdmMessage:
        return CdmMessage.from_message(self)


def _blank(node: HL7Node):
    if isinstance(node, Field) and node.is_delimiter_field:
        return
    if node.is_base:
        node.set_data("")
        return
    for child in node:
        _blank(child)
