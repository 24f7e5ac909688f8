"""Chart and knowledge-base reference types produced by the mapper."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class KbChoice(str, Enum):
    """Which provenance source a reference item currently presents."""

    RAW_VALUE = "rawValue"
    PROFILE_KB_VALUE = "profileKbValue"
    PRACTICE_KB_VALUE = "practiceKbValue"


@dataclass(slots=True)
class DataReferenceValue:
    """One candidate value for a knowledge-base entity."""

    label: Any
    confidence_score: float | None = None
    document_id: str | int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "label": self.label,
            "confidence_score": self.confidence_score,
            "documentId": self.document_id,
        }


@dataclass(slots=True)
class ReferenceItem:
    """Provenance record stored out-of-line for a knowledge-base entity."""

    data_item_id: str
    selected_kb_choice: KbChoice
    is_accepted: bool = False
    raw_value: DataReferenceValue | None = None
    profile_kb_value: DataReferenceValue | None = None
    practice_kb_value: DataReferenceValue | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize, leaving out candidate blocks that were never populated."""

        payload: dict[str, Any] = {
            "dataItemId": self.data_item_id,
            "selectedKbChoice": self.selected_kb_choice.value,
            "isAccepted": self.is_accepted,
        }
        if self.raw_value is not None:
            # The raw block only ever carries the transcript label.
            payload["rawValue"] = {"label": self.raw_value.label}
        if self.profile_kb_value is not None:
            payload["profileKbValue"] = self.profile_kb_value.to_dict()
        if self.practice_kb_value is not None:
            payload["practiceKbValue"] = self.practice_kb_value.to_dict()
        return payload


@dataclass(frozen=True, slots=True)
class DataReference:
    """Pointer left in structured output where a knowledge-base entity was mapped."""

    data_item_id: str
    data_table_id: int | str | None

    def to_dict(self) -> dict[str, Any]:
        return {"dataItemId": self.data_item_id, "dataTableId": self.data_table_id}


@dataclass(slots=True)
class MappingContext:
    """Reference items collected during one mapping pass plus the id counter."""

    data_reference_items: dict[str, ReferenceItem] = field(default_factory=dict)
    next_kb_id: int = 0

    def allocate_id(self) -> str:
        kb_id = str(self.next_kb_id)
        self.next_kb_id += 1
        return kb_id


@dataclass(slots=True)
class ClassificationChart:
    """Structured sections plus the reference items they point into."""

    sections: dict[str, Any] = field(default_factory=dict)
    data_reference_items: dict[str, ReferenceItem] = field(default_factory=dict)

    @classmethod
    def empty(cls, section_names: list[str]) -> ClassificationChart:
        return cls(sections={name: {} for name in section_names})

    def to_dict(self) -> dict[str, Any]:
        return {
            "sections": to_jsonable(self.sections),
            "dataReferenceItems": {
                item_id: item.to_dict() for item_id, item in self.data_reference_items.items()
            },
        }


def to_jsonable(value: Any) -> Any:
    """Convert mapped section data (which may hold data references) to plain JSON values."""

    if isinstance(value, DataReference):
        return value.to_dict()
    if isinstance(value, dict):
        return {key: to_jsonable(item) for key, item in value.items()}
    if isinstance(value, list):
        return [to_jsonable(item) for item in value]
    return value
