"""
Caesar Backend — Chat Route Handler
=====================================

What:  POST /api/chat (action dispatch) and OPTIONS /api/chat (preflight).
Why:   The browser front end talks to the backend through this one endpoint,
       selecting the operation with the "action" field of the JSON body.
How:   Parses the body, hands it to the ChatDispatcher, wraps the handler's
       result in a JSONResponse carrying the CORS headers.

Status codes:
    200  Handler ran. Body is its envelope (success may be false) or the
         storage endpoint's reply relayed verbatim.
    400  Unknown or missing action (InvalidActionError, handler registered in
         main.py). A JSON body that is not an object has no action.
    500  Body is not JSON or is JSON null, or an exception escaped a handler.
         Body: {"success": false, "error": str(exc)}

CORS headers are set explicitly on every response instead of through
CORSMiddleware: the front end may be served from any origin and the
preflight answer is fixed.
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response

from app.exceptions import InvalidActionError
from app.middleware.request_id import request_id_var
from app.services.dispatcher import ChatDispatcher

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Chat"])

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


def get_dispatcher(request: Request) -> ChatDispatcher:
    """Dispatcher built by the application factory (overridable in tests)."""
    return request.app.state.dispatcher


@router.post(
    "/chat",
    summary="Dispatch a receipt action",
    description=(
        "Runs one of analyze, suggestFolder, saveToFolder, getFolders, addFolder "
        "or search, selected by the 'action' field of the JSON body."
    ),
)
async def chat(
    request: Request,
    dispatcher: ChatDispatcher = Depends(get_dispatcher),
) -> JSONResponse:
    try:
        body = await request.json()
        result = await dispatcher.dispatch(body)
    except InvalidActionError:
        raise
    except Exception as exc:
        logger.error(
            "[%s] Chat request failed: %s",
            request_id_var.get(""),
            str(exc),
            exc_info=True,
        )
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": str(exc) or type(exc).__name__},
            headers=CORS_HEADERS,
        )

    return JSONResponse(content=result, headers=CORS_HEADERS)


@router.options("/chat", summary="CORS preflight for /api/chat")
async def chat_preflight() -> Response:
    return Response(status_code=200, headers=CORS_HEADERS)
