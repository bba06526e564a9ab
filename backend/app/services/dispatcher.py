"""
Caesar Backend — Action Dispatcher
====================================

What:  Maps the "action" field of a /api/chat request to its handler.
Why:   One endpoint serves six operations; the table is the single place
       that knows which names exist.
How:   A dict of action name → bound async handler. Unknown names raise
       InvalidActionError (HTTP 400).
Who:   Built once per app by build_dispatcher(settings) and injected into the
       chat route.

Action Table:
    analyze        → ReceiptService.analyze
    suggestFolder  → ReceiptService.suggest_folder
    saveToFolder   → FolderService.save_to_folder
    getFolders     → FolderService.get_folders
    addFolder      → FolderService.add_folder
    search         → ReceiptService.search
"""

import logging
from typing import Any, Awaitable, Callable, Dict

from app.config import Settings
from app.exceptions import InvalidActionError
from app.middleware.request_id import request_id_var
from app.services.folder_service import FolderService
from app.services.gemini_service import GeminiService
from app.services.receipt_service import ReceiptService
from app.services.storage_service import StorageClient

logger = logging.getLogger(__name__)

Handler = Callable[[Dict[str, Any]], Awaitable[Any]]


class ChatDispatcher:
    """
    Routes a parsed request body to the handler named by its "action".

    Handlers receive the whole body dict and return the JSON-serializable
    response body.
    """

    def __init__(self, receipts: ReceiptService, folders: FolderService) -> None:
        self.receipts = receipts
        self.folders = folders
        self.handlers: Dict[str, Handler] = {
            "analyze": receipts.analyze,
            "suggestFolder": receipts.suggest_folder,
            "saveToFolder": folders.save_to_folder,
            "getFolders": folders.get_folders,
            "addFolder": folders.add_folder,
            "search": receipts.search,
        }

    async def dispatch(self, body: Any) -> Any:
        """
        Invoke the handler for body["action"].

        Raises:
            TypeError: body is JSON null (→ HTTP 500 in the route)
            InvalidActionError: action missing or unknown (→ HTTP 400).
                A body that is not an object ([], 5, "analyze") has no
                action and lands here too.
        """
        if body is None:
            raise TypeError("Cannot read 'action' of a null request body")

        action = body.get("action") if isinstance(body, dict) else None
        handler = self.handlers.get(action) if isinstance(action, str) else None
        if handler is None:
            raise InvalidActionError(action=action)

        logger.info("[%s] Dispatching action=%s", request_id_var.get(""), action)
        return await handler(body)


def build_dispatcher(settings: Settings) -> ChatDispatcher:
    """
    Wire services from configuration: one Gemini model per API key and a
    single storage client shared by the folder handlers and search.
    """
    storage = StorageClient(settings.gas_web_app_url, timeout=settings.storage_timeout)
    receipts = ReceiptService(
        analysis=GeminiService(settings.caesar_analysis, settings.gemini_model, purpose="analysis"),
        folder=GeminiService(settings.caesar_folder, settings.gemini_model, purpose="folder"),
        search=GeminiService(settings.caesar_search, settings.gemini_model, purpose="search"),
        storage=storage,
    )
    return ChatDispatcher(receipts=receipts, folders=FolderService(storage))
