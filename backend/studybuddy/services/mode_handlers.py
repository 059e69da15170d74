"""
StudyBuddy Backend — Mode Handlers
====================================

What:  One handler per mode. Each turns its per-mode request into a
       ModelInvocation (system prompt, user turn, model variant, generation
       parameters) and runs it through the injected LLMService.
How:   build_invocation() is pure and deterministic; handle() adds the single
       outbound call. The model's text is returned as-is.

    ┌─────────────────┬──────────────────────────┬──────────────────────────────┐
    │                 │ AUTO                     │ CHAT                         │
    ├─────────────────┼──────────────────────────┼──────────────────────────────┤
    │ template        │ AUTO_MODE_PROMPT         │ CHAT_MODE_PROMPT             │
    │ context         │ notes, slide info        │ notes, current slide,        │
    │                 │                          │ highlighted excerpt, title   │
    │ user turn       │ task text + image        │ question [+ image]           │
    │ model           │ vision, always           │ vision if image, else text   │
    │ max_tokens      │ auto_max_tokens (1500)   │ chat_max_tokens (1200)       │
    │ temperature     │ auto_temperature (0.7)   │ chat_temperature (0.8)       │
    └─────────────────┴──────────────────────────┴──────────────────────────────┘
"""

from abc import ABC, abstractmethod
from typing import Generic, Tuple, TypeVar

from studybuddy.config import Settings
from studybuddy.schemas.assistant import Mode
from studybuddy.schemas.invocation import ChatMessage, ImagePart, ModelInvocation, TextPart
from studybuddy.services import context_builders
from studybuddy.services.llm_base import LLMService
from studybuddy.services.normalization import AutoModeRequest, ChatModeRequest
from studybuddy.services.prompts import AUTO_MODE_PROMPT, AUTO_MODE_TASK, CHAT_MODE_PROMPT

RequestT = TypeVar("RequestT", AutoModeRequest, ChatModeRequest)


class ModeHandler(ABC, Generic[RequestT]):
    mode: Mode

    def __init__(self, llm: LLMService, settings: Settings):
        self.llm = llm
        self.settings = settings

    @abstractmethod
    def build_system_prompt(self, request: RequestT) -> str:
        ...

    @abstractmethod
    def build_messages(self, request: RequestT) -> Tuple[ChatMessage, ...]:
        ...

    @abstractmethod
    def select_model(self, request: RequestT) -> str:
        ...

    @property
    @abstractmethod
    def max_tokens(self) -> int:
        ...

    @property
    @abstractmethod
    def temperature(self) -> float:
        ...

    def image_part(self, url: str) -> ImagePart:
        return ImagePart(url=url, detail=self.settings.image_detail)

    def build_invocation(self, request: RequestT) -> ModelInvocation:
        return ModelInvocation(
            system_prompt=self.build_system_prompt(request),
            messages=self.build_messages(request),
            model=self.select_model(request),
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        )

    async def handle(self, request: RequestT) -> str:
        return await self.llm.complete(self.build_invocation(request))


class AutoModeHandler(ModeHandler[AutoModeRequest]):
    """Unprompted slide explanation. The request type guarantees an image."""

    mode = Mode.AUTO

    def build_system_prompt(self, request: AutoModeRequest) -> str:
        prompt = AUTO_MODE_PROMPT
        prompt += context_builders.build_notes_context(request.notes)
        prompt += context_builders.build_slide_context(request.slide_text, request.slide_index)
        return prompt

    def build_messages(self, request: AutoModeRequest) -> Tuple[ChatMessage, ...]:
        slide_context = context_builders.build_slide_context(
            request.slide_text, request.slide_index
        )
        instruction = f"{slide_context}\n\n{AUTO_MODE_TASK}"
        return (
            ChatMessage(
                role="user",
                content=(TextPart(text=instruction), self.image_part(request.image_url)),
            ),
        )

    def select_model(self, request: AutoModeRequest) -> str:
        return self.llm.vision_model

    @property
    def max_tokens(self) -> int:
        return self.settings.auto_max_tokens

    @property
    def temperature(self) -> float:
        return self.settings.auto_temperature


class ChatModeHandler(ModeHandler[ChatModeRequest]):
    """
    Student question, optionally about the current slide image.

    Context blocks are appended in a fixed order: notes, current slide,
    highlighted excerpt, slide title.
    """

    mode = Mode.CHAT

    def build_system_prompt(self, request: ChatModeRequest) -> str:
        prompt = CHAT_MODE_PROMPT
        prompt += context_builders.build_notes_context(request.notes)
        prompt += context_builders.build_current_slide_context(
            request.slide_text, request.slide_index
        )
        prompt += context_builders.build_highlight_context(request.highlighted_text)
        prompt += context_builders.build_slide_name_context(request.slide_name)
        return prompt

    def build_messages(self, request: ChatModeRequest) -> Tuple[ChatMessage, ...]:
        if request.image_url:
            content = (TextPart(text=request.question), self.image_part(request.image_url))
            return (ChatMessage(role="user", content=content),)
        return (ChatMessage(role="user", content=request.question),)

    def select_model(self, request: ChatModeRequest) -> str:
        if request.image_url:
            return self.llm.vision_model
        return self.llm.text_model

    @property
    def max_tokens(self) -> int:
        return self.settings.chat_max_tokens

    @property
    def temperature(self) -> float:
        return self.settings.chat_temperature
