"""Schemas for classification API responses."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ConversationInitResult(BaseModel):
    """Response of the conversation initialize endpoint."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    conversation_guid: str = Field(alias="conversationGuid", min_length=1)


class SectionsPresentResult(BaseModel):
    """Which sections the latest transcript text touches."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    updated_flags: dict[str, bool] = Field(default_factory=dict, alias="updatedFlags")

    def flagged_sections(self) -> list[str]:
        return [name for name, present in self.updated_flags.items() if present]


class ClassificationResult(BaseModel):
    """Raw per-section classification output for one transcript snapshot."""

    model_config = ConfigDict(extra="ignore")

    classification: dict[str, Any] = Field(default_factory=dict)
    sections_present: dict[str, bool] = Field(default_factory=dict)
