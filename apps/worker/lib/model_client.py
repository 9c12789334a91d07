"""
Model capability used by the two pipeline stages.

The pipeline only depends on the ``ModelCapability`` protocol; the OpenAI
implementation below is the default production adapter.
"""
from __future__ import annotations

import base64
import json
import logging
from typing import Any, Optional, Protocol

from openai import APIError, AsyncOpenAI, OpenAIError

from apps.worker.lib.prompts import EXTRACTION_PROMPT, PROSE_PROMPT, PROSE_SYSTEM_PROMPT
from packages.shared.models import DocumentKind, PipelineConfig, document_kind
from packages.shared.schema_validator import DAILY_ENTRIES_RESPONSE_SCHEMA

logger = logging.getLogger(__name__)


class ModelCapabilityError(Exception):
    """The model could not be reached or returned an unusable response."""


class ModelCapability(Protocol):
    async def generate_prose(self, content: bytes, mime_type: str, filename: str) -> str:
        """Return a narrative of the document with inline [Page N] citations."""
        ...

    async def extract_entries(self, prose: str) -> Any:
        """Return the decoded JSON payload of daily entries for *prose*."""
        ...


def _data_url(content: bytes, mime_type: str) -> str:
    encoded = base64.b64encode(content).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def build_document_part(content: bytes, mime_type: str, filename: str) -> dict[str, Any]:
    """Chat content part carrying the raw document."""
    if document_kind(mime_type, filename) == DocumentKind.IMAGE:
        return {"type": "image_url", "image_url": {"url": _data_url(content, mime_type)}}
    return {
        "type": "file",
        "file": {"filename": filename, "file_data": _data_url(content, mime_type)},
    }


class OpenAIModelCapability:
    def __init__(
        self,
        config: PipelineConfig | None = None,
        api_key: Optional[str] = None,
        client: AsyncOpenAI | None = None,
    ):
        self.config = config or PipelineConfig()
        self._api_key = api_key
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        # Created on first use so the service can start without credentials.
        if self._client is None:
            try:
                self._client = AsyncOpenAI(api_key=self._api_key)
            except OpenAIError as exc:
                raise ModelCapabilityError(f"OpenAI client unavailable: {exc}") from exc
        return self._client

    async def generate_prose(self, content: bytes, mime_type: str, filename: str) -> str:
        try:
            response = await self.client.chat.completions.create(
                model=self.config.prose_model,
                messages=[
                    {"role": "system", "content": PROSE_SYSTEM_PROMPT},
                    {
                        "role": "user",
                        "content": [
                            build_document_part(content, mime_type, filename),
                            {"type": "text", "text": PROSE_PROMPT},
                        ],
                    },
                ],
            )
        except APIError as exc:
            raise ModelCapabilityError(f"Prose request failed: {exc}") from exc
        return response.choices[0].message.content or ""

    async def extract_entries(self, prose: str) -> Any:
        try:
            response = await self.client.chat.completions.create(
                model=self.config.extraction_model,
                messages=[
                    {"role": "user", "content": prose},
                    {"role": "user", "content": EXTRACTION_PROMPT},
                ],
                response_format={
                    "type": "json_schema",
                    "json_schema": {"name": "daily_entries", "schema": DAILY_ENTRIES_RESPONSE_SCHEMA},
                },
            )
        except APIError as exc:
            raise ModelCapabilityError(f"Extraction request failed: {exc}") from exc

        text = response.choices[0].message.content
        if not text:
            return []
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise ModelCapabilityError(f"Extraction response is not valid JSON: {exc}") from exc
