"""
Caesar Backend — Receipt AI Handlers
======================================

What:  The three handlers that need the generative model:
       analyze (receipt extraction), suggestFolder, and search.
Why:   Each one reshapes the request into a prompt, makes its outbound
       call(s), and reshapes the answer into the response envelope.
How:   ReceiptService holds one GenerativeService per use case plus the
       storage client. Each handler returns a plain dict body; failures are
       caught here and returned as {"success": False, "error": ...}.
Who:   Registered in the dispatcher's action table.

Flows:
    analyze        images[] ─▶ for each: data URI ─▶ Gemini ─▶ split on ---RECEIPT---
    suggestFolder  receipts[] ─▶ Gemini ─▶ clean lines ─▶ first three
    search         storage getAllReceipts ─▶ Gemini(data + query) ─▶ answer

Error messages are Japanese: the front end shows them verbatim.
"""

import json
import logging
import random
import re
import time
from typing import Any, Dict, List

from app.schemas.chat import (
    AnalyzeResponse,
    InlineImage,
    Receipt,
    SearchResponse,
    SuggestFolderResponse,
)
from app.services.llm_base import GenerativeService
from app.services.storage_service import StorageClient

logger = logging.getLogger(__name__)

# Literal token the extraction prompt asks the model to put between receipts
RECEIPT_SEPARATOR = "---RECEIPT---"

# Joins receipt texts inside the folder-suggestion prompt
RECEIPT_JOINER = "\n\n---\n\n"

MAX_SUGGESTIONS = 3

_NUMBER_PREFIX = re.compile(r"^[0-9.]+\s*")
_EDGE_QUOTES = re.compile(r"^[\"']|[\"']$")


# ══════════════════════════════════════════════════════════════════════════
# Prompts
# ══════════════════════════════════════════════════════════════════════════

ANALYZE_PROMPT = f"""この画像に含まれるすべてのレシート情報を抽出してください。
複数のレシートがある場合は、それぞれを「{RECEIPT_SEPARATOR}」という区切り文字で分けてください。

各レシートについて以下の情報を抽出してください：
- 店名
- 日付
- 合計金額
- 商品リスト（商品名と価格）

フォーマット：
店名: [店名]
日付: [日付]
合計金額: [金額]
商品:
- [商品名] [価格]
- [商品名] [価格]
..."""

SUGGEST_FOLDER_PROMPT = """以下のレシート情報を分析して、適切なフォルダ名を3つ提案してください。
フォルダ名は簡潔で分かりやすく、以下のような形式が望ましいです：
- "2025年5月_スーパー"
- "コンビニ_日用品"
- "外食_2025年5月"

レシート情報:
{receipts}

フォルダ名候補を3つ、改行区切りで出力してください。説明は不要です。"""

SEARCH_PROMPT = """以下のレシートデータベースを参照して、ユーザーの質問に答えてください。

データベース:
{database}

質問: {query}

具体的な数値や日付を含めて、正確に回答してください。"""


# ══════════════════════════════════════════════════════════════════════════
# Pure helpers
# ══════════════════════════════════════════════════════════════════════════

def new_receipt_id() -> float:
    """Epoch milliseconds plus a random fraction in [0, 1)."""
    return time.time() * 1000 + random.random()


def split_receipts(text: str) -> List[Receipt]:
    """Split model output on the separator token, one Receipt per non-blank segment."""
    return [
        Receipt(id=new_receipt_id(), text=segment.strip())
        for segment in text.split(RECEIPT_SEPARATOR)
        if segment.strip()
    ]


def clean_suggestions(text: str) -> List[str]:
    """
    Turn raw model output into at most three folder names.

    Per line: trim; drop blank lines and lines starting with "-" or "*";
    strip a leading "1." / "2 " style prefix; strip one quote at each end.
    """
    lines = [line.strip() for line in text.split("\n")]
    kept = [line for line in lines if line and not line.startswith(("-", "*"))]
    cleaned = [_EDGE_QUOTES.sub("", _NUMBER_PREFIX.sub("", line)) for line in kept]
    return cleaned[:MAX_SUGGESTIONS]


# ══════════════════════════════════════════════════════════════════════════
# Handlers
# ══════════════════════════════════════════════════════════════════════════

class ReceiptService:
    """
    Handlers for the AI-backed actions.

    Args:
        analysis: Model used for receipt extraction (CAESAR_ANALYSIS key)
        folder:   Model used for folder-name suggestion (CAESAR_FOLDER key)
        search:   Model used for Q&A over stored receipts (CAESAR_SEARCH key)
        storage:  Apps Script client, used by search to fetch the dataset
    """

    def __init__(
        self,
        analysis: GenerativeService,
        folder: GenerativeService,
        search: GenerativeService,
        storage: StorageClient,
    ) -> None:
        self.analysis = analysis
        self.folder = folder
        self.search_model = search
        self.storage = storage

    async def analyze(self, body: Dict[str, Any]) -> Dict[str, Any]:
        """
        Extract receipts from one or more data-URI images.

        Images are processed sequentially. Any failure discards receipts
        already extracted from earlier images and returns a single failure.
        """
        images = body.get("images")
        if not images:
            return AnalyzeResponse.failure("画像が指定されていません").to_body()

        try:
            receipts: List[Receipt] = []
            for index, data_uri in enumerate(images):
                image = InlineImage.from_data_uri(data_uri)
                text = await self.analysis.generate_text(ANALYZE_PROMPT, image=image)
                if text is None:
                    logger.info("Image %d produced no candidate text", index)
                    continue
                receipts.extend(split_receipts(text))
        except Exception as e:
            logger.warning("Receipt analysis failed: %s", e)
            return AnalyzeResponse.failure(f"画像解析に失敗しました: {e}").to_body()

        logger.info("Extracted %d receipt(s) from %d image(s)", len(receipts), len(images))
        return AnalyzeResponse(success=True, receipts=receipts).to_body()

    async def suggest_folder(self, body: Dict[str, Any]) -> Dict[str, Any]:
        """Propose up to three folder names for a set of receipt texts."""
        try:
            receipts = body.get("receipts")
            if not isinstance(receipts, list):
                raise TypeError("receipts must be a list of receipt texts")
            prompt = SUGGEST_FOLDER_PROMPT.format(
                receipts=RECEIPT_JOINER.join(str(receipt) for receipt in receipts)
            )
            text = await self.folder.generate_text(prompt)
        except Exception as e:
            logger.warning("Folder suggestion failed: %s", e)
            return SuggestFolderResponse.failure(f"フォルダ名提案エラー: {e}").to_body()

        if text is None:
            return SuggestFolderResponse.failure("フォルダ名の提案に失敗しました").to_body()

        return SuggestFolderResponse(success=True, suggestions=clean_suggestions(text)).to_body()

    async def search(self, body: Dict[str, Any]) -> Dict[str, Any]:
        """
        Answer a free-text question from the stored receipts.

        The whole dataset is fetched from storage and embedded in the prompt.
        A storage reply without success=true stops here; its error detail is
        not surfaced and the model is not called.
        """
        query = body.get("query")
        try:
            data_result = await self.storage.get_all_receipts()
            if not isinstance(data_result, dict) or not data_result.get("success"):
                logger.warning("Search aborted: storage did not return receipts")
                return SearchResponse.failure(
                    "検索に失敗しました: データ取得に失敗しました"
                ).to_body()

            prompt = SEARCH_PROMPT.format(
                database=json.dumps(data_result.get("data"), ensure_ascii=False, indent=2),
                query=query,
            )
            answer = await self.search_model.generate_text(prompt)
        except Exception as e:
            logger.warning("Search failed: %s", e)
            return SearchResponse.failure(f"検索に失敗しました: {e}").to_body()

        if answer is None:
            return SearchResponse.failure("検索結果が見つかりませんでした").to_body()

        return SearchResponse(success=True, answer=answer).to_body()
