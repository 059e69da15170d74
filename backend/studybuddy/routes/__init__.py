# Routes package init
"""
StudyBuddy Backend — API Routes Package
=========================================

Route Inventory:
    - assist.py:  POST /api/ai/chat    (AUTO / CHAT orchestration)
                  POST /api/chat       (legacy alias)
                  GET  /api/ai/modes   (mode descriptions)
    - health.py:  GET  /               (service banner)
                  GET  /health         (service health check)

Routes stay thin: parse the body, call AssistantService, return the result.
Error formatting is owned by the global exception handlers in main.py.
"""
