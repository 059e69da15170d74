"""
StudyBuddy Backend — Assistant Service Unit Tests
===================================================

What:  End-to-end orchestration with a fake model provider.

What we test:
    ✅ Scenarios: b-tree question, slide navigation, highlighted excerpt, empty body
    ✅ Explicit mode authority over field contents
    ✅ Required-field failures per mode, before any model call
    ✅ Upstream failures propagate as UpstreamInvocationError
    ✅ Envelope: verbatim text, mode tag, ISO timestamp
"""

from datetime import datetime

import pytest

from studybuddy.exceptions import (
    AmbiguousModeError,
    InvalidModeError,
    MissingRequiredFieldError,
    UpstreamInvocationError,
)
from studybuddy.schemas.assistant import AssistRequest, Mode
from studybuddy.services.prompts import AUTO_MODE_PROMPT, CHAT_MODE_PROMPT


class TestScenarios:
    @pytest.mark.asyncio
    async def test_question_without_notes(self, assistant_service, fake_llm):
        """{userQuestion: "What is a b-tree?", notes: []} → CHAT, text model."""
        result = await assistant_service.handle(
            {"userQuestion": "What is a b-tree?", "notes": []}
        )

        assert result.mode is Mode.CHAT
        invocation = fake_llm.last_invocation
        assert invocation.model == "text-model"
        assert invocation.system_prompt.startswith(CHAT_MODE_PROMPT)
        assert "REFERENCE MATERIALS" not in invocation.system_prompt

    @pytest.mark.asyncio
    async def test_slide_navigation(self, assistant_service, fake_llm):
        """{imageUrl, slideIndex: 3} → AUTO, vision model, unprompted explanation."""
        result = await assistant_service.handle(
            {"imageUrl": "https://x/slide.png", "slideIndex": 3}
        )

        assert result.mode is Mode.AUTO
        invocation = fake_llm.last_invocation
        assert invocation.model == "vision-model"
        assert invocation.system_prompt.startswith(AUTO_MODE_PROMPT)
        (message,) = invocation.messages
        assert message.images[0].url == "https://x/slide.png"
        assert message.images[0].detail == "high"
        assert "Explain this slide" in message.text

    @pytest.mark.asyncio
    async def test_highlighted_excerpt(self, assistant_service, fake_llm):
        result = await assistant_service.handle(
            {"highlightedText": "Entropy always increases.", "userQuestion": "explain"}
        )

        assert result.mode is Mode.CHAT
        prompt = fake_llm.last_invocation.system_prompt
        block = prompt[prompt.index("HIGHLIGHTED EXCERPT"):]
        assert "Entropy always increases." in block
        assert "focus your explanation on this excerpt" in block

    @pytest.mark.asyncio
    async def test_empty_body_is_ambiguous(self, assistant_service, fake_llm):
        with pytest.raises(AmbiguousModeError):
            await assistant_service.handle({})
        assert fake_llm.invocations == []


class TestExplicitMode:
    @pytest.mark.asyncio
    async def test_explicit_chat_with_image_and_question(self, assistant_service, fake_llm):
        result = await assistant_service.handle(
            {"mode": "CHAT_MODE", "userQuestion": "What is shown?", "imageUrl": "https://x/s.png"}
        )
        assert result.mode is Mode.CHAT
        assert fake_llm.last_invocation.model == "vision-model"

    @pytest.mark.asyncio
    async def test_explicit_auto_ignores_question(self, assistant_service, fake_llm):
        result = await assistant_service.handle(
            {"mode": "AUTO_MODE", "userQuestion": "ignored?", "imageUrl": "https://x/s.png"}
        )
        assert result.mode is Mode.AUTO
        assert "ignored?" not in fake_llm.last_invocation.messages[0].text

    @pytest.mark.asyncio
    async def test_invalid_mode(self, assistant_service):
        with pytest.raises(InvalidModeError):
            await assistant_service.handle({"mode": "QUIZ_MODE", "userQuestion": "q"})


class TestRequiredFields:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            {"mode": "AUTO_MODE"},
            {"mode": "AUTO_MODE", "userQuestion": "q", "slideText": "t", "slideIndex": 1},
            {"isSlideAnalysis": True, "notes": [{"title": "n", "content": ["c"]}]},
        ],
    )
    async def test_auto_without_image(self, assistant_service, fake_llm, payload):
        with pytest.raises(MissingRequiredFieldError) as exc_info:
            await assistant_service.handle(payload)
        assert exc_info.value.field == "imageUrl"
        assert fake_llm.invocations == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("question", ["", "   ", "\t\n"])
    async def test_chat_with_blank_question(self, assistant_service, fake_llm, question):
        with pytest.raises(MissingRequiredFieldError) as exc_info:
            await assistant_service.handle({"mode": "CHAT_MODE", "userQuestion": question})
        assert exc_info.value.field == "userQuestion"
        assert fake_llm.invocations == []


class TestUpstreamFailure:
    @pytest.mark.asyncio
    async def test_provider_error_propagates(self, assistant_service, fake_llm):
        fake_llm.error = RuntimeError("quota exceeded")
        with pytest.raises(UpstreamInvocationError) as exc_info:
            await assistant_service.handle({"userQuestion": "q"})
        assert exc_info.value.upstream_message == "quota exceeded"
        assert len(fake_llm.invocations) == 1

    @pytest.mark.asyncio
    async def test_empty_completion_is_upstream_error(self, assistant_service, fake_llm):
        fake_llm.response = None
        with pytest.raises(UpstreamInvocationError):
            await assistant_service.handle({"userQuestion": "q"})


class TestEnvelope:
    @pytest.mark.asyncio
    async def test_text_passed_through_verbatim(self, assistant_service, fake_llm):
        fake_llm.response = "x" * 5000 + "\n  trailing  "
        result = await assistant_service.handle({"userQuestion": "q"})
        assert result.response == "x" * 5000 + "\n  trailing  "

    @pytest.mark.asyncio
    async def test_timestamp_is_iso_utc(self, assistant_service):
        result = await assistant_service.handle(AssistRequest(user_question="q"))
        assert result.timestamp.endswith("Z")
        parsed = datetime.fromisoformat(result.timestamp.replace("Z", "+00:00"))
        assert parsed.utcoffset().total_seconds() == 0

    @pytest.mark.asyncio
    async def test_one_call_per_request(self, assistant_service, fake_llm):
        await assistant_service.handle({"userQuestion": "one"})
        await assistant_service.handle({"imageUrl": "https://x/s.png"})
        assert len(fake_llm.invocations) == 2


class TestDescribeModes:
    def test_lists_both_modes(self, assistant_service):
        modes = {info.mode: info for info in assistant_service.describe_modes()}
        assert modes[Mode.AUTO].required_fields == ["imageUrl"]
        assert modes[Mode.AUTO].models == ["vision-model"]
        assert modes[Mode.CHAT].required_fields == ["userQuestion"]
        assert modes[Mode.CHAT].models == ["vision-model", "text-model"]
