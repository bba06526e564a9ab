# Middleware package init
"""
Caesar Backend — Middleware Package
=====================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain:
    Request → [Request ID] → [Logging] → Route Handler

    1. Request ID first: every later log line can carry the correlation ID
    2. Logging: records status and duration once the response is built

CORS is not middleware here: the chat route attaches its fixed CORS headers
to every response and answers OPTIONS itself.
"""
