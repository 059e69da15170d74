"""
StudyBuddy Backend — Pydantic Request/Response Schemas
=======================================================

What:  Pydantic models defining the API contract between frontend and backend.
Why:   The frontend sends camelCase, loosely-shaped JSON (every field optional,
       legacy aliases still in circulation); these models accept that shape and
       hand the service layer typed Python values.
How:   FastAPI validates request bodies against AssistRequest and serializes
       AssistResponse / ErrorResponse / HealthResponse.
Who:   Used by route handlers and by the assistant service.

Field naming:
    The wire format is camelCase (userQuestion, imageUrl, ...). Python code
    uses snake_case attributes; `populate_by_name` lets tests construct models
    either way.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Mode(str, Enum):
    """The two interaction modes a request can resolve to."""

    AUTO = "AUTO_MODE"   # Unprompted slide explanation, image required
    CHAT = "CHAT_MODE"   # User question, image optional


# ══════════════════════════════════════════════════════════════════════════
# Request Models — What the client sends
# ══════════════════════════════════════════════════════════════════════════


class NoteRef(BaseModel):
    """
    What:  One of the student's notes, passed along as soft context.
    Who:   Owned by the notes UI; this service only reads it.

    `content` is an ordered list of fragments joined with spaces for display.
    A bare string is accepted and treated as a single fragment.
    """

    title: str = Field(default="", description="Note title")
    content: List[str] = Field(default_factory=list, description="Ordered text fragments")
    tags: List[str] = Field(default_factory=list, description="Topic tags, display order")

    model_config = ConfigDict(frozen=True, extra="ignore")

    @field_validator("content", mode="before")
    @classmethod
    def coerce_content(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return v

    @field_validator("tags", mode="before")
    @classmethod
    def coerce_tags(cls, v):
        if v is None:
            return []
        if isinstance(v, (set, frozenset)):
            return sorted(v)
        return v

    @field_validator("title", mode="before")
    @classmethod
    def coerce_title(cls, v):
        return "" if v is None else v


class AssistRequest(BaseModel):
    """
    What:  Raw inbound payload for POST /api/ai/chat.
    Why:   Every field is optional; which ones are required depends on the
           mode, which is only known after normalization and resolution.

    `mode` is kept as a plain string here so an unknown value reaches the
    resolver and becomes an InvalidModeError (400) rather than a schema 422.
    """

    mode: Optional[str] = Field(default=None, description="AUTO_MODE or CHAT_MODE")
    user_question: Optional[str] = Field(default=None, alias="userQuestion")
    question: Optional[str] = Field(default=None, description="Legacy alias for userQuestion")
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    slide_text: Optional[str] = Field(default=None, alias="slideText")
    slide_index: Optional[int] = Field(default=None, alias="slideIndex")
    notes: Optional[List[NoteRef]] = Field(default=None)
    highlighted_text: Optional[str] = Field(default=None, alias="highlightedText")
    excerpt: Optional[str] = Field(default=None, description="Legacy alias for highlightedText")
    slide_name: Optional[str] = Field(default=None, alias="slideName")
    is_slide_analysis: Optional[bool] = Field(
        default=None,
        alias="isSlideAnalysis",
        description="Legacy AUTO trigger flag",
    )

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# ══════════════════════════════════════════════════════════════════════════
# Response Models — What the API returns to clients
# ══════════════════════════════════════════════════════════════════════════


class AssistResponse(BaseModel):
    """
    What:  The response envelope.
    How:   `response` is the model's text, verbatim; `timestamp` is the UTC
           completion time in ISO 8601.
    """

    response: str = Field(description="Model output, unmodified")
    mode: Mode = Field(description="Resolved mode")
    timestamp: str = Field(description="Completion time (UTC ISO 8601)")

    model_config = ConfigDict(frozen=True)


class ModeInfo(BaseModel):
    """Describes one mode for GET /api/ai/modes."""

    mode: Mode
    description: str
    required_fields: List[str]
    optional_fields: List[str]
    models: List[str] = Field(description="Model variants this mode may select")


class ModesResponse(BaseModel):
    modes: List[ModeInfo]


class ErrorResponse(BaseModel):
    """
    What:  Standardized error response format for all API errors.

    Example:
        {
            "error": "missing_required_field",
            "message": "AUTO_MODE requires slide image URL",
            "details": {"field": "imageUrl"},
            "request_id": "1f2e3d4c"
        }
    """

    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """
    What:  Health check response showing service and dependency status.
    Who:   Returned by GET /health for monitoring and load balancer probes.
    """

    status: str = Field(description="Overall service status: healthy, degraded")
    version: str = Field(description="Application version")
    llm_provider: str = Field(description="Configured model provider")
    llm: str = Field(description="Model API status: available, unavailable, circuit_open")
    uptime_seconds: float = Field(description="Seconds since service started")
