import re
from typing import Optional

from pydantic import BaseModel, ConfigDict

from hl7_defs import (HEADER_SEGMENT, LEVEL_COMPONENT, LEVEL_FIELD, LEVEL_REPEATING_FIELD,
                      LEVEL_SEGMENT, LEVEL_SUBCOMPONENT)
from hl7_errors import MalformedLocationError

# SEG[i]-N[j].C.S, every part after the segment name optional. The hyphen may be
# left out ("PID3", "NK1[1]7"), which is only unambiguous for three-character names.
_LOCATION_PATTERN = re.compile(r"""
    ^(?P<segment>[A-Za-z][A-Za-z0-9]{2})
    (?:\[(?P<segment_index>\d+)\])?
    (?:
        -?(?P<field>\d+)
        (?:\[(?P<field_index>\d+)\])?
        (?:\.(?P<component>\d+)(?:\.(?P<subcomponent>\d+))?)?
    )?$
""", re.VERBOSE)


def _diagnose(text: str) -> str:
    if text.count("[") != text.count("]"):
        return "unmatched bracket"
    if len(text) < 3 or not re.match(r"^[A-Za-z][A-Za-z0-9]{2}", text):
        return "segment name must be three alphanumeric characters"
    if re.search(r"\[[^\]]*[^0-9\]][^\]]*\]", text):
        return "occurrence index must be a non-negative integer"
    return "expected SEG[i]-N[j].C.S"


class Location(BaseModel):
    """
    An address into a message tree.

    field_position uses HL7 numbering as written in paths ("MSH-3" is 3); the
    slot it occupies inside the segment is repeating_field_index. Component and
    subcomponent indices are 0-based and -1 when absent. Equality is structural
    over every attribute, so two locations are equal exactly when their
    fully-qualified forms are.
    """
    model_config = ConfigDict(frozen=True)

    segment_name: str
    segment_index: int = 0
    field_position: int = -1
    field_index: int = 0
    component_index: int = -1
    subcomponent_index: int = -1
    has_field: bool = False
    has_component: bool = False
    has_subcomponent: bool = False
    segment_index_implied: bool = True
    field_index_implied: bool = True

    # --- Construction ---

    @classmethod
    def parse(cls, text: str) -> "Location":
        """Parse a path such as 'PID-3[1].5', 'OBX[2]-5' or 'MSH12'."""
        if text is None:
            raise MalformedLocationError("None", "location text is required")
        candidate = text.strip()
        match = _LOCATION_PATTERN.match(candidate)
        if not match:
            raise MalformedLocationError(text, _diagnose(candidate))

        parts = match.groupdict()
        values = {
            "segment_name": parts["segment"],
            "segment_index_implied": parts["segment_index"] is None,
            "segment_index": int(parts["segment_index"] or 0),
        }
        if parts["field"] is not None:
            values.update(
                has_field=True,
                field_position=int(parts["field"]),
                field_index_implied=parts["field_index"] is None,
                field_index=int(parts["field_index"] or 0),
            )
        if parts["component"] is not None:
            component = int(parts["component"])
            if component < 1:
                raise MalformedLocationError(text, "component numbers start at 1")
            values.update(has_component=True, component_index=component - 1)
        if parts["subcomponent"] is not None:
            subcomponent = int(parts["subcomponent"])
            if subcomponent < 1:
                raise MalformedLocationError(text, "subcomponent numbers start at 1")
            values.update(has_subcomponent=True, subcomponent_index=subcomponent - 1)
        return cls(**values)

    @classmethod
    def coerce(cls, location) -> "Location":
        if isinstance(location, Location):
            return location
        return cls.parse(location)

    @classmethod
    def of(cls, segment_name: str, segment_index: int,
           repeating_field_index: Optional[int] = None, field_index: int = 0,
           component_index: int = -1, subcomponent_index: int = -1) -> "Location":
        """Build a fully-qualified location from positions inside the tree."""
        has_field = repeating_field_index is not None
        has_component = has_field and component_index >= 0
        has_subcomponent = has_component and subcomponent_index >= 0
        position = -1
        if has_field:
            position = repeating_field_index
            if segment_name == HEADER_SEGMENT and repeating_field_index >= 1:
                position += 1
        # Keys are built for every node on each index rebuild; the values are
        # already known to be valid.
        return cls.model_construct(
            segment_name=segment_name,
            segment_index=segment_index,
            field_position=position,
            field_index=field_index if has_field else 0,
            component_index=component_index if has_component else -1,
            subcomponent_index=subcomponent_index if has_subcomponent else -1,
            has_field=has_field,
            has_component=has_component,
            has_subcomponent=has_subcomponent,
            segment_index_implied=False,
            field_index_implied=not has_field,
        )

    @classmethod
    def field_separator(cls, segment_index: int) -> "Location":
        """Key for MSH-1, which names the field separator rather than a slot."""
        return cls.of(HEADER_SEGMENT, segment_index, 0).model_copy(update={"field_position": 1})

    @classmethod
    def determine(cls, node) -> Optional["Location"]:
        """Fully-qualified location of a node, or None when it is not attached to a message."""
        level = getattr(node, "level", None)
        if level is None or level < LEVEL_SEGMENT:
            return None

        # Walk up to the segment, remembering the position at each level.
        positions = {}
        current = node
        while current.level > LEVEL_SEGMENT:
            parent = current.parent
            if parent is None:
                return None
            positions[current.level] = parent.index_of(current)
            current = parent
        segment = current
        message = segment.parent
        if message is None:
            return None

        name = segment.name
        occurrence = 0
        for other in message.segments:
            if other is segment:
                break
            if other.name == name:
                occurrence += 1

        if level == LEVEL_SEGMENT:
            return cls.model_construct(
                segment_name=name, segment_index=occurrence, field_position=-1,
                field_index=0, component_index=-1, subcomponent_index=-1,
                has_field=False, has_component=False, has_subcomponent=False,
                segment_index_implied=False, field_index_implied=True,
            )
        location = cls.of(
            name, occurrence,
            positions[LEVEL_REPEATING_FIELD],
            positions.get(LEVEL_FIELD, 0),
            positions.get(LEVEL_COMPONENT, -1),
            positions.get(LEVEL_SUBCOMPONENT, -1),
        )
        if level == LEVEL_REPEATING_FIELD:
            # A repeating field spans every field occurrence in its slot.
            location = location.model_copy(update={"field_index_implied": True})
        return location

    # --- Derived values ---

    @property
    def repeating_field_index(self) -> Optional[int]:
        """Slot inside the segment. MSH-1 is the field separator itself and has none."""
        if not self.has_field:
            return None
        if self.segment_name == HEADER_SEGMENT and self.field_position >= 1:
            if self.field_position == 1:
                return None
            return self.field_position - 1
        return self.field_position

    @property
    def is_fully_qualified(self) -> bool:
        if self.segment_index_implied:
            return False
        return not (self.has_field and self.field_index_implied)

    # --- Formatting ---

    def _format(self, segment_brackets: bool, field_brackets: bool) -> str:
        text = self.segment_name
        if segment_brackets:
            text += f"[{self.segment_index}]"
        if not self.has_field:
            return text
        text += f"-{self.field_position}"
        if field_brackets:
            text += f"[{self.field_index}]"
        if self.has_component:
            text += f".{self.component_index + 1}"
            if self.has_subcomponent:
                text += f".{self.subcomponent_index + 1}"
        return text

    @property
    def short(self) -> str:
        return self._format(False, False)

    @property
    def canonical(self) -> str:
        return self._format(not self.segment_index_implied, not self.field_index_implied)

    @property
    def fully_qualified(self) -> str:
        return self._format(True, True)

    def __str__(self) -> str:
        return self.fully_qualified

    # --- Matching ---

    def matches(self, query: "Location", rollup: bool = False) -> bool:
        """
        True when this (concrete) location satisfies query.

        An implied occurrence on either side matches any occurrence. With rollup
        set, a field-level location also answers a query for component 1 of that
        field, which is how a plain leaf field is reached as 'PID-5.1'.
        """
        if self.segment_name != query.segment_name:
            return False
        if not (self.segment_index_implied or query.segment_index_implied) \
                and self.segment_index != query.segment_index:
            return False
        if self.has_field != query.has_field:
            return False
        if not query.has_field:
            return True
        if self.field_position != query.field_position:
            return False
        if not (self.field_index_implied or query.field_index_implied) \
                and self.field_index != query.field_index:
            return False

        if rollup and not self.has_component and query.has_component \
                and not query.has_subcomponent and query.component_index == 0:
            return True

        if self.has_component != query.has_component or self.has_subcomponent != query.has_subcomponent:
            return False
        if query.has_component and self.component_index != query.component_index:
            return False
        if query.has_subcomponent and self.subcomponent_index != query.subcomponent_index:
            return False
        return True
