"""
StudyBuddy Backend — Assistant Service (Orchestration Entry Point)
===================================================================

What:  Turns one inbound payload into one model call and one response envelope.
Who:   Called by the /api/ai/chat and legacy /api/chat route handlers.
When:  Once per request; no state is carried between requests.

Orchestration Flow:
    ┌───────────┐   ┌───────────┐   ┌─────────────┐   ┌──────────┐   ┌──────────┐
    │ Normalize │──▶│ Resolving │──▶│ Dispatching │──▶│ Invoking │──▶│   Done   │
    │ (aliases) │   │ (mode)    │   │ (narrow +   │   │ (LLM)    │   │(envelope)│
    └───────────┘   └───────────┘   │  handler)   │   └──────────┘   └──────────┘
                          │         └─────────────┘        │
                          ▼                │               ▼
                     AmbiguousMode    MissingRequired   UpstreamInvocation
                     InvalidMode      Field

    Any step can fail; the first failure propagates unchanged to the caller.
    There is no partial result and no fallback answer.

Design Decision:
    The LLM service and settings are constructor arguments. The FastAPI
    lifespan builds one instance per process; tests build their own around a
    fake LLMService.
"""

import logging
from typing import Dict, List, Union

from studybuddy.config import Settings
from studybuddy.schemas.assistant import AssistRequest, AssistResponse, Mode, ModeInfo
from studybuddy.services.envelope import build_envelope
from studybuddy.services.llm_base import LLMService
from studybuddy.services.mode_handlers import AutoModeHandler, ChatModeHandler, ModeHandler
from studybuddy.services.mode_resolver import resolve_mode
from studybuddy.services.normalization import narrow, normalize_request

logger = logging.getLogger(__name__)


class AssistantService:
    """
    Responsibilities:
        - handle():         full normalize → resolve → dispatch → invoke → envelope
        - handler_for():    the handler registered for a mode
        - describe_modes(): static description of both modes for GET /api/ai/modes
    """

    def __init__(self, llm: LLMService, settings: Settings):
        self.llm = llm
        self.settings = settings
        self.handlers: Dict[Mode, ModeHandler] = {
            Mode.AUTO: AutoModeHandler(llm, settings),
            Mode.CHAT: ChatModeHandler(llm, settings),
        }

    def handler_for(self, mode: Mode) -> ModeHandler:
        return self.handlers[mode]

    async def handle(self, payload: Union[AssistRequest, dict]) -> AssistResponse:
        """
        Process one request end to end.

        Args:
            payload: Parsed request body (or a plain dict in camelCase/snake_case)

        Returns:
            AssistResponse with the model text, resolved mode and UTC timestamp

        Raises:
            AmbiguousModeError:        no mode, question or image
            InvalidModeError:          explicit mode outside the known set
            MissingRequiredFieldError: imageUrl (AUTO) or question (CHAT) missing
            UpstreamInvocationError:   the model call failed
        """
        raw = payload if isinstance(payload, AssistRequest) else AssistRequest.model_validate(payload)

        # ── Resolving ─────────────────────────────────────────────────────
        request = normalize_request(raw)
        mode = resolve_mode(request)

        # ── Dispatching ───────────────────────────────────────────────────
        mode_request = narrow(request, mode)
        handler = self.handler_for(mode)

        logger.info(
            "Dispatching %s: notes=%d image=%s slide_index=%s",
            mode.value,
            len(request.notes),
            request.has_image,
            request.slide_index,
        )

        # ── Invoking ──────────────────────────────────────────────────────
        text = await handler.handle(mode_request)

        # ── Done ──────────────────────────────────────────────────────────
        return build_envelope(text, mode)

    def describe_modes(self) -> List[ModeInfo]:
        return [
            ModeInfo(
                mode=Mode.AUTO,
                description=(
                    "Automatic slide explanation, triggered when a slide becomes "
                    "current. No question needed."
                ),
                required_fields=["imageUrl"],
                optional_fields=["slideText", "slideIndex", "notes"],
                models=[self.llm.vision_model],
            ),
            ModeInfo(
                mode=Mode.CHAT,
                description=(
                    "Student question answering, optionally grounded in the current "
                    "slide, notes and a highlighted excerpt."
                ),
                required_fields=["userQuestion"],
                optional_fields=[
                    "imageUrl",
                    "slideText",
                    "slideIndex",
                    "notes",
                    "highlightedText",
                    "slideName",
                ],
                models=[self.llm.vision_model, self.llm.text_model],
            ),
        ]
