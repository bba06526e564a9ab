"""
Caesar Backend — Folder Persistence Handlers
==============================================

What:  saveToFolder, getFolders and addFolder.
How:   Each handler maps the local request onto one storage action and relays
       the storage endpoint's JSON reply verbatim, whatever its shape. No
       local validation or transformation.

    local action   →  storage action
    saveToFolder   →  saveReceipts {folderName, receipts, images}
    getFolders     →  getFolders
    addFolder      →  addFolder {folderName}

Only a failure to obtain a JSON reply at all is turned into a local failure
envelope.
"""

import logging
from typing import Any, Dict

from app.schemas.chat import Envelope
from app.services.storage_service import StorageClient

logger = logging.getLogger(__name__)


class FolderService:
    def __init__(self, storage: StorageClient) -> None:
        self.storage = storage

    async def save_to_folder(self, body: Dict[str, Any]) -> Any:
        try:
            return await self.storage.save_receipts(
                folder_name=body.get("folderName"),
                receipts=body.get("receipts"),
                images=body.get("images"),
            )
        except Exception as e:
            logger.warning("Saving receipts to folder failed: %s", e)
            return Envelope.failure(f"保存に失敗しました: {e}").to_body()

    async def get_folders(self, body: Dict[str, Any]) -> Any:
        try:
            return await self.storage.get_folders()
        except Exception as e:
            logger.warning("Listing folders failed: %s", e)
            return Envelope.failure(f"フォルダ取得に失敗しました: {e}").to_body()

    async def add_folder(self, body: Dict[str, Any]) -> Any:
        try:
            return await self.storage.add_folder(folder_name=body.get("folderName"))
        except Exception as e:
            logger.warning("Adding folder failed: %s", e)
            return Envelope.failure(f"フォルダ追加に失敗しました: {e}").to_body()
