# Middleware package init
"""
StudyBuddy Backend — Middleware Package
========================================

Middleware Chain (execution order):
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    1. Request ID first, so the access log and error bodies carry it
    2. Logging measures everything downstream, including the model call
    3. GZip / CORS are Starlette's stock middleware
"""
