import logging
from typing import Dict, List, Optional, Union

from hl7_defs import HEADER_SEGMENT
from hl7_location import Location
from hl7_structure import Field, HL7Node, Message, NullField, Segment

logger = logging.getLogger(__name__)

LocationLike = Union[str, Location]


class PathIndex:
    """
    Flat, ordered map from fully-qualified Location to node for one message.

    Keys are emitted in pre-order: each field (leaf or composite), then the
    components of a composite field, then the subcomponents of a composite
    component. MSH-1 gets a detached entry holding the field separator. The map
    is rebuilt on the first query after the message was marked dirty.
    """

    def __init__(self, message: Message):
        self._message = message
        self._entries: Dict[Location, HL7Node] = {}
        self.rebuild_count = 0

    def _refresh(self):
        if self._message.is_dirty or self.rebuild_count == 0:
            self.rebuild()

    def rebuild(self):
        entries: Dict[Location, HL7Node] = {}
        occurrences: Dict[str, int] = {}
        separator = self._message.delimiters.field

        for segment in self._message.segments:
            name = segment.name
            segment_index = occurrences.get(name, -1) + 1
            occurrences[name] = segment_index

            for rf_index, repeating_field in enumerate(segment):
                for field_index, field in enumerate(repeating_field):
                    entries[Location.of(name, segment_index, rf_index, field_index)] = field
                    if field.is_base:
                        continue
                    for component_index, component in enumerate(field):
                        key = Location.of(name, segment_index, rf_index, field_index, component_index)
                        entries[key] = component
                        if component.is_base:
                            continue
                        for sub_index, subcomponent in enumerate(component):
                            key = Location.of(name, segment_index, rf_index, field_index,
                                              component_index, sub_index)
                            entries[key] = subcomponent
                if name == HEADER_SEGMENT and rf_index == 0:
                    entries[Location.field_separator(segment_index)] = NullField(separator)

        self._entries = entries
        self._message._dirty = False
        self.rebuild_count += 1
        logger.debug(f"Rebuilt path index: {len(entries)} entries over {len(occurrences)} segment name(s)")

    # --- Queries ---

    def _matches(self, key: Location, node: HL7Node, query: Location) -> bool:
        rollup = isinstance(node, Field) and node.is_base and not isinstance(node, NullField)
        return key.matches(query, rollup=rollup)

    def has(self, location: LocationLike) -> bool:
        query = Location.coerce(location)
        if not query.has_field:
            return self.get_segment(query) is not None
        self._refresh()
        if query.is_fully_qualified and query in self._entries:
            return True
        return any(self._matches(key, node, query) for key, node in self._entries.items())

    def get(self, location: LocationLike) -> Field:
        """First node matching location in tree order, or a NullField."""
        query = Location.coerce(location)
        self._refresh()
        if query.is_fully_qualified:
            node = self._entries.get(query)
            if node is not None:
                return node
        for key, node in self._entries.items():
            if self._matches(key, node, query):
                return node
        return NullField()

    def get_all(self, location: LocationLike) -> List[HL7Node]:
        query = Location.coerce(location)
        self._refresh()
        return [node for key, node in self._entries.items() if self._matches(key, node, query)]

    def get_segment(self, location: LocationLike) -> Optional[Segment]:
        query = Location.coerce(location)
        wanted = 0 if query.segment_index_implied else query.segment_index
        occurrence = 0
        for segment in self._message.segments:
            if segment.name != query.segment_name:
                continue
            if occurrence == wanted:
                return segment
            occurrence += 1
        return None

    def get_all_segments(self, location: LocationLike) -> List[Segment]:
        query = Location.coerce(location)
        matches = [segment for segment in self._message.segments if segment.name == query.segment_name]
        if query.segment_index_implied:
            return matches
        if query.segment_index < len(matches):
            return [matches[query.segment_index]]
        return []

    def __len__(self) -> int:
        self._refresh()
        return len(self._entries)
