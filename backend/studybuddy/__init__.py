"""
StudyBuddy Backend — Application Package Initializer
====================================================

What:  Request orchestration between the lecture-notes frontend and a
       generative language model.

Architecture Note:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   AssistantService (Orchestration)  │  ← normalize, resolve, dispatch
    ├─────────────────────────────────────┤
    │   Mode Handlers + Context Builders  │  ← prompt and invocation assembly
    ├─────────────────────────────────────┤
    │      LLMService (OpenAI / Gemini)   │  ← the single outbound call
    └─────────────────────────────────────┘

    Each request is stateless: one mode, one handler, one model call,
    one response envelope.
"""

__version__ = "1.0.0"
