"""
Caesar Backend — Application Package Initializer
==================================================

Layered the same way throughout:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns, CORS headers
    ├─────────────────────────────────────┤
    │     Dispatcher + Handlers (Logic)   │  ← action table, envelopes
    ├─────────────────────────────────────┤
    │     Outbound clients (Services)     │  ← Gemini SDK, Apps Script via httpx
    └─────────────────────────────────────┘

There is no persistence layer: receipts and folders live in the remote
spreadsheet behind the Apps Script web app.
"""

__version__ = "1.0.0"
