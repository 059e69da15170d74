"""
StudyBuddy Backend — Outbound Model Invocation
================================================

What:  Provider-neutral description of the single model call a request makes.
Why:   Mode handlers decide WHAT to send; providers (OpenAI, Gemini) decide
       HOW to put it on the wire. Tests assert on these objects directly.
How:   Frozen Pydantic models; built once per request and never mutated.
"""

from typing import Literal, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field


class TextPart(BaseModel):
    type: Literal["text"] = "text"
    text: str

    model_config = ConfigDict(frozen=True)


class ImagePart(BaseModel):
    """An image reference: http(s) URL or data: URL, plus processing detail."""

    type: Literal["image_url"] = "image_url"
    url: str
    detail: str = "high"

    model_config = ConfigDict(frozen=True)


ContentPart = Union[TextPart, ImagePart]


class ChatMessage(BaseModel):
    """
    One turn of the outbound conversation.

    `content` is either plain text or an ordered text+image composite. Each
    request is a single user turn; there is no conversation history.
    """

    role: Literal["user"] = "user"
    content: Union[str, Tuple[ContentPart, ...]]

    model_config = ConfigDict(frozen=True)

    @property
    def images(self) -> Tuple[ImagePart, ...]:
        if isinstance(self.content, str):
            return ()
        return tuple(part for part in self.content if isinstance(part, ImagePart))

    @property
    def text(self) -> str:
        """All text in this message, parts joined by blank lines."""
        if isinstance(self.content, str):
            return self.content
        return "\n\n".join(part.text for part in self.content if isinstance(part, TextPart))


class ModelInvocation(BaseModel):
    """
    Everything needed for one model call.

    Attributes:
        system_prompt: Mode template plus appended context fragments
        messages:      Ordered user/assistant turns (always exactly one user turn here)
        model:         Selected model identifier (vision or text-only variant)
        max_tokens:    Output token ceiling
        temperature:   Sampling temperature
    """

    system_prompt: str
    messages: Tuple[ChatMessage, ...]
    model: str
    max_tokens: int = Field(gt=0)
    temperature: float = Field(ge=0.0, le=2.0)

    model_config = ConfigDict(frozen=True)

    @property
    def has_image(self) -> bool:
        return any(message.images for message in self.messages)
