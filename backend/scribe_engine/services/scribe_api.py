"""HTTP client for the remote classification service."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Protocol
from urllib import error as urllib_error
from urllib import request as urllib_request

from pydantic import ValidationError

from scribe_engine.config import Settings
from scribe_engine.schema.parser import SchemaDefinition
from scribe_engine.schemas.classification import (
    ClassificationResult,
    ConversationInitResult,
    SectionsPresentResult,
)

logger = logging.getLogger(__name__)


class ScribeApiError(RuntimeError):
    """Raised when a classification API call fails or returns an unexpected body."""


class ClassificationClient(Protocol):
    """Protocol for the remote classification service."""

    def initialize_conversation(self) -> str:
        """Open a conversation and return its id."""

    def check_sections_present(
        self,
        transcript: str,
        conversation_id: str,
        sequence_number: int,
    ) -> SectionsPresentResult:
        """Return which sections the transcript mentions."""

    def classify(
        self,
        transcript: str,
        sections: list[str],
        conversation_id: str,
        sequence_number: int,
    ) -> ClassificationResult:
        """Classify the transcript into the requested sections."""

    def cleanup(self, conversation_id: str) -> None:
        """Release server-side conversation state."""

    def with_provider(self, provider_id: str) -> ClassificationClient:
        """Return a client that sends requests on behalf of ``provider_id``."""


@dataclass(slots=True)
class ScribeApiClient:
    """Minimal JSON-over-HTTP client for the classification service using stdlib HTTP."""

    base_url: str
    provider_id: str
    schema_definition: SchemaDefinition = field(default_factory=list)
    timeout_seconds: int = 60

    @classmethod
    def from_settings(cls, settings: Settings, schema_definition: SchemaDefinition) -> ScribeApiClient:
        return cls(
            base_url=settings.scribe_api_url,
            provider_id=settings.provider_id,
            schema_definition=schema_definition,
            timeout_seconds=settings.api_timeout_seconds,
        )

    def with_provider(self, provider_id: str) -> ScribeApiClient:
        return replace(self, provider_id=provider_id)

    def initialize_conversation(self) -> str:
        decoded = self._request("GET", "classification/initialize")
        try:
            return ConversationInitResult.model_validate(decoded).conversation_guid
        except ValidationError as exc:
            raise ScribeApiError("Classification service returned no conversation id") from exc

    def check_sections_present(
        self,
        transcript: str,
        conversation_id: str,
        sequence_number: int,
    ) -> SectionsPresentResult:
        body = {
            "conversation_id": conversation_id,
            "output_schema": self.schema_definition,
            "sequence_number": sequence_number,
            "prompt_text": transcript,
            "sections": self.schema_definition,
        }
        decoded = self._request("POST", "section/get_sections_present", body)
        try:
            return SectionsPresentResult.model_validate(decoded or {})
        except ValidationError as exc:
            raise ScribeApiError("Classification service returned malformed section flags") from exc

    def classify(
        self,
        transcript: str,
        sections: list[str],
        conversation_id: str,
        sequence_number: int,
    ) -> ClassificationResult:
        body = {
            "conversation_id": conversation_id,
            "output_schema": self.schema_definition,
            "sequence_number": sequence_number,
            "prompt_text": transcript,
            "sections": sections,
        }
        decoded = self._request("POST", "classification/classify", body)
        try:
            return ClassificationResult.model_validate(decoded or {})
        except ValidationError as exc:
            raise ScribeApiError("Classification service returned a malformed classification") from exc

    def cleanup(self, conversation_id: str) -> None:
        self._request("POST", "conversation/cleanup", {"conversationGuid": conversation_id})

    def _request(self, method: str, path: str, body: dict[str, Any] | None = None) -> Any:
        url = f"{self.base_url.rstrip('/')}/{path}"
        req = urllib_request.Request(
            url=url,
            data=json.dumps(body).encode("utf-8") if body is not None else None,
            method=method,
            headers={
                "Content-Type": "application/json",
                "X-Provider-Guid": self.provider_id,
            },
        )
        try:
            with urllib_request.urlopen(req, timeout=self.timeout_seconds) as resp:
                raw = resp.read().decode("utf-8")
        except urllib_error.HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="replace")
            raise ScribeApiError(f"Classification service HTTP {exc.code}: {detail}") from exc
        except urllib_error.URLError as exc:
            raise ScribeApiError(f"Classification service request failed: {exc.reason}") from exc
        except (TimeoutError, OSError) as exc:
            raise ScribeApiError(f"Classification service request failed: {exc}") from exc

        if not raw.strip():
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.warning("scribe.api_non_json_response path=%s", path)
            raise ScribeApiError(f"Classification service returned non-JSON body for {path}") from exc
