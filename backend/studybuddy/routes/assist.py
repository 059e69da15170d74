"""
StudyBuddy Backend — Assistant Route Handlers
===============================================

What:  POST /api/ai/chat (main endpoint), POST /api/chat (legacy alias) and
       GET /api/ai/modes.
How:   Parse the JSON body into AssistRequest, hand it to the AssistantService
       held on app.state, return the envelope. Failures propagate to the global
       exception handlers registered in main.py.
Who:   Called by the lecture viewer (slide navigation → AUTO) and the chat
       panel (question → CHAT).
"""

import logging

from fastapi import APIRouter, Depends, Request

from studybuddy.schemas.assistant import (
    AssistRequest,
    AssistResponse,
    ErrorResponse,
    ModesResponse,
)
from studybuddy.services.assistant_service import AssistantService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Assistant"])

_ERROR_RESPONSES = {
    400: {"description": "Ambiguous/invalid mode or missing field", "model": ErrorResponse},
    502: {"description": "Language model request failed", "model": ErrorResponse},
    503: {"description": "Circuit breaker open", "model": ErrorResponse},
}


def get_assistant_service(request: Request) -> AssistantService:
    """Dependency: the process-wide AssistantService built in the lifespan."""
    return request.app.state.assistant_service


@router.post(
    "/ai/chat",
    response_model=AssistResponse,
    responses=_ERROR_RESPONSES,
    summary="Explain the current slide or answer a question",
    description=(
        "AUTO_MODE explains the current slide image unprompted; CHAT_MODE answers the "
        "student's question. The mode is taken from `mode` when present, otherwise "
        "inferred from the question and image fields."
    ),
)
async def assist(
    payload: AssistRequest,
    request: Request,
    service: AssistantService = Depends(get_assistant_service),
) -> AssistResponse:
    result = await service.handle(payload)
    request.state.assist_mode = result.mode.value
    return result


@router.post(
    "/chat",
    response_model=AssistResponse,
    responses=_ERROR_RESPONSES,
    summary="Legacy chat endpoint",
    description="Older clients send `{question, notes}`; same behavior as /api/ai/chat.",
    deprecated=True,
)
async def legacy_chat(
    payload: AssistRequest,
    request: Request,
    service: AssistantService = Depends(get_assistant_service),
) -> AssistResponse:
    logger.debug("Legacy /api/chat request")
    result = await service.handle(payload)
    request.state.assist_mode = result.mode.value
    return result


@router.get(
    "/ai/modes",
    response_model=ModesResponse,
    summary="List interaction modes",
)
async def list_modes(
    service: AssistantService = Depends(get_assistant_service),
) -> ModesResponse:
    return ModesResponse(modes=service.describe_modes())
