# Services package init
"""
StudyBuddy Backend — Services Layer
=====================================

What:  Everything between the HTTP routes and the model provider.

Service Inventory:
    - normalization:     legacy alias folding, per-mode request narrowing
    - mode_resolver:     explicit mode or ordered inference rules
    - context_builders:  notes / slide / excerpt prompt fragments
    - prompts:           AUTO and CHAT system prompt templates
    - mode_handlers:     AutoModeHandler, ChatModeHandler
    - envelope:          response envelope builder
    - assistant_service: AssistantService, the orchestration entry point
    - llm_base:          LLMService (abstract) with retry + circuit breaker
    - openai_service:    OpenAIService (default provider)
    - gemini_service:    GeminiService (alternate provider)
    - llm_factory:       provider selection from settings
"""
