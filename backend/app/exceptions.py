"""
Caesar Backend — Custom Exception Hierarchy
=============================================

What:  Application-specific exceptions for the dispatch endpoint and the two
       outbound services.
Why:   Services raise typed errors; handlers turn them into failure envelopes
       and the app turns the rest into HTTP status codes.
How:   Each exception carries a message (safe to return to the client) and an
       optional context dict (logged only).

Exception Hierarchy:
    CaesarError (base)
    ├── InvalidActionError       → 400 Bad Request
    ├── InvalidImageError        → failure envelope (analyze)
    ├── GenerativeServiceError   → failure envelope (analyze / suggest / search)
    └── StorageServiceError      → failure envelope (folder handlers / search)

Where each tier handles them:
    - Handlers catch everything raised by their outbound calls and return
      {"success": False, "error": <localized prefix> + message} at HTTP 200.
    - InvalidActionError is raised by the dispatcher and mapped to HTTP 400
      by the exception handler registered in main.py.
    - Anything else escaping a handler becomes HTTP 500 in the chat route.
"""

from typing import Any, Dict, Optional


class CaesarError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  Client-facing description (ends up in the envelope's "error")
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class InvalidActionError(CaesarError):
    """
    Raised when the request's "action" field names no known handler.

    HTTP: 400 Bad Request with {"success": false, "error": "Invalid action"}.
    The offending value is kept in context for the log line only.
    """

    def __init__(self, action: Any = None, context: Optional[Dict[str, Any]] = None):
        ctx = context or {}
        ctx["action"] = action
        super().__init__(message="Invalid action", context=ctx)
        self.action = action


class InvalidImageError(CaesarError):
    """
    Raised when an image payload is not a usable base64 data URI.

    Expected shape: data:<mime>;base64,<payload>
    """

    def __init__(
        self,
        message: str = "Invalid image data URI",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class GenerativeServiceError(CaesarError):
    """
    Raised when a Gemini call fails (network, quota, blocked prompt, bad key).

    No retry is attempted; the caller converts it into a failure envelope
    on the first failure.
    """

    def __init__(
        self,
        message: str = "Generative service request failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class StorageServiceError(CaesarError):
    """
    Raised when the Apps Script storage endpoint cannot be reached or
    answers with something that is not JSON.

    A JSON reply carrying {"success": false} is NOT an error at this level;
    it is relayed to the caller as-is.
    """

    def __init__(
        self,
        message: str = "Storage service request failed",
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if status_code is not None:
            ctx["status_code"] = status_code
        super().__init__(message=message, context=ctx)
        self.status_code = status_code
