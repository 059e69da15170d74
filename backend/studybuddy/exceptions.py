"""
StudyBuddy Backend — Custom Exception Hierarchy
=================================================

What:  Application-specific exceptions for every way a request can fail.
Why:   Each failure category maps to exactly one HTTP status, and the
       orchestration core raises them without knowing anything about HTTP.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with correct HTTP status codes.
Who:   Raised by the assistant service, mode handlers and LLM providers.
When:  Synchronously, at the first failing step; nothing is retried or
       downgraded to a default answer.

Exception Hierarchy:
    StudyBuddyError (base)
    ├── RequestError                    → 400 Bad Request (caller can fix)
    │   ├── AmbiguousModeError          no mode, question or image to go on
    │   ├── InvalidModeError            explicit mode outside the known set
    │   ├── MissingRequiredFieldError   mode known, its mandatory input absent
    │   └── InvalidImageReferenceError  imageUrl unusable (bad data URL, non-image, too large)
    └── UpstreamInvocationError         → 502 Bad Gateway (model call failed)
        └── CircuitBreakerOpenError     → 503 Service Unavailable

Request lifecycle (which state raises what):
    Resolving   → AmbiguousModeError, InvalidModeError
    Dispatching → MissingRequiredFieldError
    Invoking    → UpstreamInvocationError, CircuitBreakerOpenError,
                  InvalidImageReferenceError
"""

from typing import Any, Dict, Iterable, Optional


class StudyBuddyError(Exception):
    """
    Base exception for all StudyBuddy application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional structured info (returned as `details`)
    """

    # Machine-readable code used as `error` in the JSON body
    code = "internal_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


# ══════════════════════════════════════════════════════════════════════════
# Caller errors (HTTP 400)
# ══════════════════════════════════════════════════════════════════════════

class RequestError(StudyBuddyError):
    """
    Raised when the inbound payload cannot be turned into a model call.

    HTTP:  400 Bad Request
    Never retried: only the caller can supply the missing information.
    """

    code = "bad_request"


class AmbiguousModeError(RequestError):
    """
    No explicit mode and nothing to infer one from.

    When:  The request has no `mode`, no question field and no image.
    """

    code = "ambiguous_mode"

    def __init__(
        self,
        message: str = (
            "Cannot determine AI mode. Provide either mode, userQuestion, or imageUrl."
        ),
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class InvalidModeError(RequestError):
    """
    An explicit `mode` value outside the known set.

    Example response:
        {
            "error": "invalid_mode",
            "message": "Invalid mode: 'LECTURE_MODE'",
            "details": {"mode": "LECTURE_MODE", "allowed": ["AUTO_MODE", "CHAT_MODE"]}
        }
    """

    code = "invalid_mode"

    def __init__(
        self,
        mode: Any,
        allowed: Iterable[str] = (),
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["mode"] = mode
        allowed = list(allowed)
        if allowed:
            ctx["allowed"] = allowed
        super().__init__(message=f"Invalid mode: {mode!r}", context=ctx)
        self.mode = mode


class MissingRequiredFieldError(RequestError):
    """
    The mode is known but its mandatory input is absent.

    When:  AUTO without `imageUrl`; CHAT with an empty or whitespace-only question.
    The offending request field is exposed as `.field` and in `details.field`.
    """

    code = "missing_required_field"

    def __init__(
        self,
        field: str,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["field"] = field
        super().__init__(
            message=message or f"Missing required field: {field}",
            context=ctx,
        )
        self.field = field


class InvalidImageReferenceError(RequestError):
    """
    The `imageUrl` is present but cannot be turned into image bytes.

    When:  Malformed data: URL, unsupported scheme, non-image content type,
           oversized image, or a host that resolves to a non-public address.
    Raised by providers that must load the image themselves (Gemini).
    """

    code = "invalid_image_reference"

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        ctx = context or {}
        ctx["field"] = "imageUrl"
        super().__init__(message=message, context=ctx)
        self.field = "imageUrl"


# ══════════════════════════════════════════════════════════════════════════
# Upstream errors (HTTP 5xx)
# ══════════════════════════════════════════════════════════════════════════

class UpstreamInvocationError(StudyBuddyError):
    """
    Raised when the language-model call fails for any reason.

    What:    Auth, quota, network, timeout, or a malformed/empty response.
    HTTP:    502 Bad Gateway
    Recovery: none in this service; the provider's own message is kept in
             `upstream_message` so the HTTP layer can surface it for diagnostics.
    """

    code = "upstream_error"

    def __init__(
        self,
        message: str = "The language model request failed",
        upstream_message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if upstream_message:
            ctx["upstream_message"] = upstream_message
        super().__init__(message=message, context=ctx)
        self.upstream_message = upstream_message


class CircuitBreakerOpenError(UpstreamInvocationError):
    """
    Raised when the circuit breaker is in OPEN state.

    What:    Too many consecutive provider failures tripped the breaker.
    HTTP:    503 Service Unavailable, with Retry-After.

    How circuit breaker works:
        CLOSED (normal) → failures increment counter
        → After N failures → OPEN (reject all calls for M seconds)
        → After M seconds → HALF-OPEN (allow one test call)
        → If test succeeds → CLOSED
        → If test fails → OPEN again
    """

    code = "service_unavailable"

    def __init__(
        self,
        recovery_time: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"AI service is temporarily unavailable due to repeated failures. "
            f"The service will automatically retry in approximately {recovery_time} seconds."
        )
        ctx = context or {}
        ctx["recovery_time"] = recovery_time
        super().__init__(message=message, context=ctx)
        self.recovery_time = recovery_time
