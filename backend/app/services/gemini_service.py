"""
Caesar Backend — Google Gemini Service Implementation
=======================================================

What:  Concrete GenerativeService using the Google Gemini API.
Why:   Gemini handles all three AI use cases: OCR-style receipt extraction
       from photos, folder-name suggestion, and Q&A over stored receipts.
How:   Sends the prompt (and optional inline image) through the
       google-generativeai SDK and returns the first candidate's text.
Who:   Three instances are built by build_dispatcher(), one per API key.
When:  Once per image (analyze) or once per request (suggestFolder, search).

Failure Strategy:
    A single attempt per call. Any SDK or transport exception is logged and
    re-raised as GenerativeServiceError; the handler turns it into a failure
    envelope. There is no retry and no circuit breaker.

Key handling:
    The SDK keeps its credentials in module-level state set by
    genai.configure(), and every configure() call drops the SDK's cached
    clients. Each instance therefore configures its own key only once, when
    it builds its model on the first call. generate_content_async() binds
    the freshly configured client to the model before its first await, so
    requests running concurrently on the event loop never pick up each
    other's key. Later calls reuse the bound model. A failed call discards
    it and the next call binds a new one.
"""

import logging
import time
import uuid
from typing import Any, Optional

import google.generativeai as genai

from app.exceptions import GenerativeServiceError
from app.middleware.request_id import request_id_var
from app.schemas.chat import InlineImage
from app.services.llm_base import GenerativeService

logger = logging.getLogger(__name__)


class GeminiService(GenerativeService):
    """
    One Gemini model bound to one API key.

    Attributes:
        api_key:    Key for this use case (CAESAR_ANALYSIS / _FOLDER / _SEARCH)
        model_name: Gemini model, e.g. gemini-2.0-flash-exp
        purpose:    Label used in log lines ("analysis", "folder", "search")
    """

    def __init__(self, api_key: str, model_name: str, purpose: str = "default"):
        self.api_key = api_key
        self.model_name = model_name
        self.purpose = purpose
        self._model: Optional[Any] = None

        if not api_key:
            logger.warning(
                "GeminiService(%s) has no API key; calls will fail until it is set",
                purpose,
            )

    async def generate_text(
        self,
        prompt: str,
        image: Optional[InlineImage] = None,
    ) -> Optional[str]:
        """
        Ask the model for a completion and return its text.

        Flow:
            1. Build contents: [prompt] or [prompt, inline image blob]
            2. On the first call, configure the SDK with this instance's key and
               build the model; later calls reuse it
            3. Await generate_content_async (single attempt)
            4. Return candidates[0].content.parts[0].text, or None if absent

        Raises:
            GenerativeServiceError: The SDK raised (network, auth, quota,
                blocked prompt, invalid image).
        """
        rid = request_id_var.get("") or str(uuid.uuid4())[:8]

        contents: list = [prompt]
        if image is not None:
            contents.append(image.as_blob())

        logger.info(
            "[%s] Gemini %s request: model=%s, image=%s",
            rid,
            self.purpose,
            self.model_name,
            image.mime_type if image is not None else "none",
        )

        start_time = time.perf_counter()
        try:
            # No await between configure() and the first call: the model binds
            # the client carrying this key before the coroutine first yields.
            if self._model is None:
                genai.configure(api_key=self.api_key)
                self._model = genai.GenerativeModel(self.model_name)
            response = await self._model.generate_content_async(contents)
        except Exception as e:
            self._model = None
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.warning(
                "[%s] Gemini %s call failed after %.0fms: %s",
                rid,
                self.purpose,
                duration_ms,
                str(e),
            )
            raise GenerativeServiceError(
                message=str(e) or type(e).__name__,
                context={"request_id": rid, "purpose": self.purpose, "error_type": type(e).__name__},
            ) from e

        duration_ms = (time.perf_counter() - start_time) * 1000
        text = self._first_text(response)

        logger.info(
            "[%s] Gemini %s completed in %.0fms, %s",
            rid,
            self.purpose,
            duration_ms,
            f"{len(text)} chars" if text is not None else "no candidate",
        )
        return text

    @staticmethod
    def _first_text(response: Any) -> Optional[str]:
        """
        Pull the first candidate's first text part out of a response.

        The SDK's response.text raises ValueError when there are no candidates
        (e.g. a safety block). Here that case is returned as None and each
        handler reports it with its own message.
        """
        candidates = getattr(response, "candidates", None) or []
        if not candidates:
            return None

        content = getattr(candidates[0], "content", None)
        parts = getattr(content, "parts", None) or []
        if not parts:
            return None

        return getattr(parts[0], "text", None)
