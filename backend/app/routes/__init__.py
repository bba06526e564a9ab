# Routes package init
"""
Caesar Backend — API Routes Package
=====================================

Route Inventory:
    - chat.py:    POST    /api/chat   (action dispatch)
                  OPTIONS /api/chat   (CORS preflight)
    - health.py:  GET     /health     (configuration health check)

Routes stay thin: parse the request, call the dispatcher, attach headers.
"""
