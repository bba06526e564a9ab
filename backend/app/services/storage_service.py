"""
Caesar Backend — Apps Script Storage Client
=============================================

What:  Thin JSON-over-HTTP client for the Google Apps Script web app that
       stores folders and receipts in a spreadsheet.
Why:   The router owns no persistence. Every storage operation is a POST of
       {"action": ..., ...} to one URL, and the reply is relayed as-is.
How:   httpx.AsyncClient per call, redirects followed (Apps Script answers
       /exec with a 302 to googleusercontent.com), JSON decoded and returned.
Who:   folder_service (saveReceipts, getFolders, addFolder) and
       receipt_service (getAllReceipts before a search).

Remote actions:
    saveReceipts    {folderName, receipts, images}
    getFolders      {}
    addFolder       {folderName}
    getAllReceipts  {}  → {"success": bool, "data": [...]}

Error boundary:
    - Transport failures and non-JSON replies → StorageServiceError
    - HTTP error statuses are NOT raised when the body is JSON; the remote
      service's own {"success": false, "error": ...} is passed through.
"""

import logging
import time
from typing import Any, Dict, Optional

import httpx

from app.exceptions import StorageServiceError
from app.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)


class StorageClient:
    """
    Posts action-tagged payloads to the storage endpoint.

    Args:
        url:       Apps Script web app URL (GAS_WEB_APP_URL)
        timeout:   Seconds, or None for no timeout
        transport: Optional httpx transport (tests pass httpx.MockTransport)
    """

    def __init__(
        self,
        url: str,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self.transport = transport

    async def call(self, action: str, **fields: Any) -> Any:
        """
        POST {"action": action, **fields} and return the decoded JSON reply.

        Raises:
            StorageServiceError: URL not configured, transport failure, or a
                reply body that is not JSON.
        """
        rid = request_id_var.get("")
        if not self.url:
            raise StorageServiceError(
                message="GAS_WEB_APP_URL is not configured",
                context={"action": action},
            )

        # Fields the caller did not send are left out, not sent as null
        payload: Dict[str, Any] = {"action": action}
        payload.update({key: value for key, value in fields.items() if value is not None})
        start_time = time.perf_counter()

        async with httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            transport=self.transport,
        ) as client:
            try:
                response = await client.post(self.url, json=payload)
            except httpx.HTTPError as exc:
                logger.warning("[%s] Storage %s failed: %s", rid, action, exc)
                raise StorageServiceError(
                    message=str(exc) or type(exc).__name__,
                    context={"action": action, "error_type": type(exc).__name__},
                ) from exc

        duration_ms = (time.perf_counter() - start_time) * 1000

        try:
            data = response.json()
        except ValueError as exc:
            logger.warning(
                "[%s] Storage %s returned non-JSON body (status %d)",
                rid,
                action,
                response.status_code,
            )
            raise StorageServiceError(
                message=f"Invalid JSON from storage endpoint: {exc}",
                status_code=response.status_code,
                context={"action": action},
            ) from exc

        logger.info(
            "[%s] Storage %s → %d in %.0fms",
            rid,
            action,
            response.status_code,
            duration_ms,
        )
        return data

    # ── Remote actions ────────────────────────────────────────────────────

    async def save_receipts(self, folder_name: Any, receipts: Any, images: Any) -> Any:
        return await self.call(
            "saveReceipts",
            folderName=folder_name,
            receipts=receipts,
            images=images,
        )

    async def get_folders(self) -> Any:
        return await self.call("getFolders")

    async def add_folder(self, folder_name: Any) -> Any:
        return await self.call("addFolder", folderName=folder_name)

    async def get_all_receipts(self) -> Any:
        return await self.call("getAllReceipts")
