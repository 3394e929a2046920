# Canonical Data Model (CDM) for parsed HL7 v2 messages.
# A JSON-friendly snapshot of the tree with decoded leaf values.
from pydantic import BaseModel, Field
from typing import List, Optional

from hl7_defs import HEADER_SEGMENT


class CdmSubcomponent(BaseModel):
    position: int
    value: str


class CdmComponent(BaseModel):
    """A component; value is set for leaves, subcomponents for composites."""
    position: int
    value: Optional[str] = None
    subcomponents: List[CdmSubcomponent] = Field(default_factory=list)


class CdmField(BaseModel):
    """One occurrence inside a repeating field (0-based repetition)."""
    repetition: int
    value: Optional[str] = None
    components: List[CdmComponent] = Field(default_factory=list)


class CdmRepeatingField(BaseModel):
    """A field slot, numbered the way HL7 paths number it (MSH-1 is the field separator)."""
    position: int
    location: str
    repetitions: List[CdmField] = Field(default_factory=list)

    def get_value(self, repetition: int = 0) -> Optional[str]:
        if 0 <= repetition < len(self.repetitions):
            return self.repetitions[repetition].value
        return None


class CdmSegment(BaseModel):
    segment_id: str
    line_number: int
    raw_segment: str
    fields: List[CdmRepeatingField] = Field(default_factory=list)

    def get_field(self, position: int) -> Optional[CdmRepeatingField]:
        """Retrieves a field slot by its HL7 position (1-based)."""
        return next((field for field in self.fields if field.position == position), None)


class CdmMessage(BaseModel):
    delimiters: str
    segments: List[CdmSegment] = Field(default_factory=list)

    def get_segment(self, segment_id: str) -> Optional[CdmSegment]:
        return next((segment for segment in self.segments if segment.segment_id == segment_id), None)

    def get_segments(self, segment_id: str) -> List[CdmSegment]:
        return [segment for segment in self.segments if segment.segment_id == segment_id]

    @classmethod
    def from_message(cls, message) -> "CdmMessage":
        delimiters = message.delimiters
        segments = []
        for line_number, segment in enumerate(message.segments, start=1):
            name = segment.name
            occurrence = sum(1 for seg in segments if seg.segment_id == name)
            fields = []
            for slot, repeating_field in enumerate(segment.children[1:], start=1):
                position = slot + 1 if name == HEADER_SEGMENT else slot
                fields.append(CdmRepeatingField(
                    position=position,
                    location=f"{name}[{occurrence}]-{position}",
                    repetitions=[_field_to_cdm(i, field) for i, field in enumerate(repeating_field)],
                ))
            if name == HEADER_SEGMENT:
                fields.insert(0, CdmRepeatingField(
                    position=1,
                    location=f"{name}[{occurrence}]-1",
                    repetitions=[CdmField(repetition=0, value=delimiters.field)],
                ))
            segments.append(CdmSegment(
                segment_id=name,
                line_number=line_number,
                raw_segment=segment.marshal(),
                fields=fields,
            ))
        return cls(delimiters=str(delimiters), segments=segments)


def _field_to_cdm(repetition: int, field) -> CdmField:
    if field.is_base:
        return CdmField(repetition=repetition, value=field.get_data())
    components = []
    for position, component in enumerate(field, start=1):
        if component.is_base:
            components.append(CdmComponent(position=position, value=component.get_data()))
        else:
            components.append(CdmComponent(
                position=position,
                subcomponents=[CdmSubcomponent(position=i, value=sub.get_data())
                               for i, sub in enumerate(component, start=1)],
            ))
    return CdmField(repetition=repetition, components=components)


class CdmBatch(BaseModel):
    """Every message read from one file, in file order."""
    source: Optional[str] = None
    messages: List[CdmMessage] = Field(default_factory=list)
