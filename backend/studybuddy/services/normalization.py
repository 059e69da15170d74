"""
StudyBuddy Backend — Request Normalization
============================================

What:  Folds legacy field names into one canonical request, then narrows it
       into a per-mode request once the mode is known.
Why:   Aliases (`question` vs `userQuestion`, `excerpt` vs `highlightedText`)
       are resolved in exactly one place, so the resolver and the handlers
       only ever see canonical fields.
How:   normalize_request()  AssistRequest      → NormalizedRequest
       narrow()             NormalizedRequest  → AutoModeRequest | ChatModeRequest

Alias rules (first non-empty value wins):
    question         = userQuestion, then question
    highlighted_text = highlightedText, then excerpt

Empty strings count as absent for every optional text field.
"""

from typing import Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict

from studybuddy.exceptions import MissingRequiredFieldError
from studybuddy.schemas.assistant import AssistRequest, Mode, NoteRef


def _first_present(*values: Optional[str]) -> Optional[str]:
    for value in values:
        if value:
            return value
    return None


class NormalizedRequest(BaseModel):
    """Canonical inbound request: no aliases, no empty strings."""

    mode: Optional[str] = None
    question: Optional[str] = None
    image_url: Optional[str] = None
    slide_text: Optional[str] = None
    slide_index: Optional[int] = None
    notes: Tuple[NoteRef, ...] = ()
    highlighted_text: Optional[str] = None
    slide_name: Optional[str] = None
    is_slide_analysis: bool = False

    model_config = ConfigDict(frozen=True)

    @property
    def has_question(self) -> bool:
        return self.question is not None

    @property
    def has_image(self) -> bool:
        return self.image_url is not None


class AutoModeRequest(BaseModel):
    """AUTO variant. Construction guarantees an image is present."""

    image_url: str
    slide_text: Optional[str] = None
    slide_index: Optional[int] = None
    notes: Tuple[NoteRef, ...] = ()

    model_config = ConfigDict(frozen=True)

    @property
    def mode(self) -> Mode:
        return Mode.AUTO


class ChatModeRequest(BaseModel):
    """CHAT variant. Construction guarantees a non-blank question."""

    question: str
    image_url: Optional[str] = None
    slide_text: Optional[str] = None
    slide_index: Optional[int] = None
    notes: Tuple[NoteRef, ...] = ()
    highlighted_text: Optional[str] = None
    slide_name: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @property
    def mode(self) -> Mode:
        return Mode.CHAT


ModeRequest = Union[AutoModeRequest, ChatModeRequest]


def normalize_request(raw: AssistRequest) -> NormalizedRequest:
    """Fold legacy aliases and drop empty values."""
    mode = raw.mode.strip() if isinstance(raw.mode, str) else raw.mode
    return NormalizedRequest(
        mode=mode or None,
        question=_first_present(raw.user_question, raw.question),
        image_url=_first_present(raw.image_url),
        slide_text=_first_present(raw.slide_text),
        slide_index=raw.slide_index,
        notes=tuple(raw.notes or ()),
        highlighted_text=_first_present(raw.highlighted_text, raw.excerpt),
        slide_name=_first_present(raw.slide_name),
        is_slide_analysis=bool(raw.is_slide_analysis),
    )


def narrow(request: NormalizedRequest, mode: Mode) -> ModeRequest:
    """
    Build the per-mode request for an already resolved mode.

    Raises:
        MissingRequiredFieldError: imageUrl absent for AUTO, or the question
            empty/whitespace-only for CHAT.
    """
    if mode is Mode.AUTO:
        if not request.image_url:
            raise MissingRequiredFieldError(
                field="imageUrl",
                message="AUTO_MODE requires slide image URL",
            )
        return AutoModeRequest(
            image_url=request.image_url,
            slide_text=request.slide_text,
            slide_index=request.slide_index,
            notes=request.notes,
        )

    if not request.question or not request.question.strip():
        raise MissingRequiredFieldError(
            field="userQuestion",
            message="CHAT_MODE requires a user question",
        )
    return ChatModeRequest(
        question=request.question,
        image_url=request.image_url,
        slide_text=request.slide_text,
        slide_index=request.slide_index,
        notes=request.notes,
        highlighted_text=request.highlighted_text,
        slide_name=request.slide_name,
    )
