"""
Caesar Backend — Pydantic Request/Response Schemas
====================================================

What:  Models for the payloads that flow through POST /api/chat.
Why:   Every handler answers with the same {success, error?, ...} envelope;
       declaring the shapes once keeps the handlers from drifting apart.
How:   Handlers build these models and return model_dump(exclude_none=True),
       so "error" only appears on failures and payload fields only on success.

Request bodies are NOT modelled here: the dispatcher reads the raw JSON dict
because each action takes different fields and the storage forwards must
relay values untouched.
"""

import base64
import binascii
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from app.exceptions import InvalidImageError


# ══════════════════════════════════════════════════════════════════════════
# Envelopes: what the API returns to clients
# ══════════════════════════════════════════════════════════════════════════


class Envelope(BaseModel):
    """
    What:  The uniform response shape shared by every handler.
    Fields:
        success: True when the handler produced its payload
        error:   Localized human-readable message, present only on failure
    """
    success: bool = Field(description="Whether the action completed")
    error: Optional[str] = Field(default=None, description="Failure message (localized)")

    @classmethod
    def failure(cls, message: str) -> "Envelope":
        return cls(success=False, error=message)

    def to_body(self) -> dict:
        return self.model_dump(exclude_none=True)


class Receipt(BaseModel):
    """
    What:  One receipt extracted from an image.

    id is epoch milliseconds plus a random fraction, so it sorts by extraction
    time. It is not guaranteed unique across concurrent requests.
    """
    id: float = Field(description="Client-side identifier for the receipt")
    text: str = Field(description="Extracted receipt text (store, date, total, items)")


class AnalyzeResponse(Envelope):
    receipts: Optional[List[Receipt]] = Field(default=None)


class SuggestFolderResponse(Envelope):
    suggestions: Optional[List[str]] = Field(default=None)


class SearchResponse(Envelope):
    answer: Optional[str] = Field(default=None)


class HealthResponse(BaseModel):
    """
    What:  Health check response showing which outbound dependencies are wired.
    Who:   Returned by GET /health for container probes.

    Only configuration is checked: probing Gemini or the Apps Script endpoint
    would spend quota on every probe.
    """
    status: str = Field(description="Overall status: healthy or degraded")
    version: str = Field(description="Application version")
    analysis: str = Field(description="Analysis API key: configured or missing")
    folder: str = Field(description="Folder suggestion API key: configured or missing")
    search: str = Field(description="Search API key: configured or missing")
    storage: str = Field(description="Storage endpoint URL: configured or missing")
    uptime_seconds: float = Field(description="Seconds since service started")


# ══════════════════════════════════════════════════════════════════════════
# Inline images
# ══════════════════════════════════════════════════════════════════════════


class InlineImage(BaseModel):
    """
    What:  Decoded image bytes plus their declared media type.
    How:   Built from the browser's data URI (data:<mime>;base64,<payload>).
    """
    mime_type: str
    data: bytes

    @classmethod
    def from_data_uri(cls, data_uri: Any) -> "InlineImage":
        """
        Split a data URI into media type and raw bytes.

        Raises:
            InvalidImageError: Not a string, no "data:" header, no comma,
                empty media type, or a payload that is not valid base64.
        """
        if not isinstance(data_uri, str):
            raise InvalidImageError(f"Expected a data URI string, got {type(data_uri).__name__}")

        header, sep, payload = data_uri.partition(",")
        if not sep or not header.startswith("data:"):
            raise InvalidImageError("Image is not a data URI")

        mime_type = header[len("data:"):].split(";")[0].strip()
        if not mime_type:
            raise InvalidImageError("Image data URI has no media type")

        # Wrapped payloads (MIME-style line breaks) decode as if unwrapped
        payload = "".join(payload.split())
        try:
            data = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise InvalidImageError(f"Image payload is not valid base64: {exc}") from exc

        return cls(mime_type=mime_type, data=data)

    def as_blob(self) -> dict:
        """Content part in the shape google-generativeai accepts for inline data."""
        return {"mime_type": self.mime_type, "data": self.data}
