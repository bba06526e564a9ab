"""
Caesar Backend — Chat Endpoint Tests
======================================

What:  POST/OPTIONS /api/chat and GET /health through the ASGI app.
How:   HTTPX AsyncClient over ASGITransport; the dispatcher is replaced with
       one wired to FakeModel instances and a mock storage transport.

What we test:
    ✅ Unknown / missing action → 400 {"success": false, "error": "Invalid action"}
    ✅ OPTIONS → empty body + CORS headers
    ✅ Non-object JSON body → 400; non-JSON or null body → 500
    ✅ Handler failures stay at 200 with success=false
    ✅ Storage replies relayed verbatim with CORS headers
    ✅ X-Request-ID echoed / generated
    ✅ /health reports configuration
"""

import httpx
import pytest

from app.services.dispatcher import ChatDispatcher, build_dispatcher
from app.services.folder_service import FolderService
from app.services.receipt_service import ReceiptService, RECEIPT_SEPARATOR

CORS = {
    "access-control-allow-origin": "*",
    "access-control-allow-methods": "POST, OPTIONS",
    "access-control-allow-headers": "Content-Type",
}


def _assert_cors(response):
    for name, value in CORS.items():
        assert response.headers[name] == value


def _dispatcher(make_model, storage, analysis=None, folder=None, search=None):
    receipts = ReceiptService(
        analysis=analysis or make_model(),
        folder=folder or make_model(),
        search=search or make_model(),
        storage=storage,
    )
    return ChatDispatcher(receipts=receipts, folders=FolderService(storage))


class TestDispatchErrors:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [{"action": "deleteEverything"}, {"action": None}, {}])
    async def test_unknown_action_is_400(self, make_client, make_model, make_storage, body):
        storage, handler = make_storage({"success": True})
        client = await make_client(_dispatcher(make_model, storage))

        response = await client.post("/api/chat", json=body)

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Invalid action"}
        _assert_cors(response)
        assert handler.bodies == []

    @pytest.mark.asyncio
    async def test_malformed_json_is_500(self, make_client, make_model, make_storage):
        storage, _ = make_storage({"success": True})
        client = await make_client(_dispatcher(make_model, storage))

        response = await client.post(
            "/api/chat",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 500
        body = response.json()
        assert body["success"] is False
        assert body["error"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", [b"[]", b"5", b'"analyze"', b'["analyze"]'])
    async def test_non_object_body_is_400(self, make_client, make_model, make_storage, raw):
        storage, handler = make_storage({"success": True})
        client = await make_client(_dispatcher(make_model, storage))

        response = await client.post(
            "/api/chat",
            content=raw,
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Invalid action"}
        _assert_cors(response)
        assert handler.bodies == []

    @pytest.mark.asyncio
    async def test_null_body_is_500(self, make_client, make_model, make_storage):
        storage, _ = make_storage({"success": True})
        client = await make_client(_dispatcher(make_model, storage))

        response = await client.post(
            "/api/chat",
            content=b"null",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 500
        assert response.json() == {
            "success": False,
            "error": "Cannot read 'action' of a null request body",
        }
        _assert_cors(response)


class TestPreflight:

    @pytest.mark.asyncio
    async def test_options_returns_empty_body_with_cors(self, make_client):
        client = await make_client()

        response = await client.options("/api/chat")

        assert response.status_code == 200
        assert response.content == b""
        _assert_cors(response)


class TestActions:

    @pytest.mark.asyncio
    async def test_analyze_empty_images(self, make_client, make_model, make_storage):
        analysis = make_model(["unused"])
        storage, handler = make_storage({"success": True})
        client = await make_client(_dispatcher(make_model, storage, analysis=analysis))

        response = await client.post("/api/chat", json={"action": "analyze", "images": []})

        assert response.status_code == 200
        assert response.json() == {"success": False, "error": "画像が指定されていません"}
        assert analysis.calls == []
        assert handler.bodies == []

    @pytest.mark.asyncio
    async def test_analyze_two_receipts(self, make_client, make_model, make_storage, sample_data_uri):
        analysis = make_model([f"店名: A\n{RECEIPT_SEPARATOR}\n店名: B"])
        storage, _ = make_storage({"success": True})
        client = await make_client(_dispatcher(make_model, storage, analysis=analysis))

        response = await client.post(
            "/api/chat", json={"action": "analyze", "images": [sample_data_uri]}
        )

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/json"
        _assert_cors(response)
        body = response.json()
        assert body["success"] is True
        assert [r["text"] for r in body["receipts"]] == ["店名: A", "店名: B"]
        assert len({r["id"] for r in body["receipts"]}) == 2

    @pytest.mark.asyncio
    async def test_suggest_folder(self, make_client, make_model, make_storage):
        folder = make_model(['1. "2025年5月_スーパー"\n2. コンビニ_日用品\n3. 外食_2025年5月'])
        storage, _ = make_storage({"success": True})
        client = await make_client(_dispatcher(make_model, storage, folder=folder))

        response = await client.post(
            "/api/chat", json={"action": "suggestFolder", "receipts": ["店名: A"]}
        )

        assert response.json() == {
            "success": True,
            "suggestions": ["2025年5月_スーパー", "コンビニ_日用品", "外食_2025年5月"],
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "request_body, outbound_action",
        [
            ({"action": "saveToFolder", "folderName": "f", "receipts": [], "images": []}, "saveReceipts"),
            ({"action": "getFolders"}, "getFolders"),
            ({"action": "addFolder", "folderName": "f"}, "addFolder"),
        ],
    )
    async def test_storage_forwards_verbatim(
        self, make_client, make_model, make_storage, request_body, outbound_action
    ):
        remote = {"success": True, "folders": ["外食"], "extra": {"rows": 3}}
        storage, handler = make_storage(remote)
        client = await make_client(_dispatcher(make_model, storage))

        response = await client.post("/api/chat", json=request_body)

        assert response.status_code == 200
        assert response.json() == remote
        _assert_cors(response)
        assert [b["action"] for b in handler.bodies] == [outbound_action]

    @pytest.mark.asyncio
    async def test_search_storage_failure_skips_model(self, make_client, make_model, make_storage):
        search = make_model(["unused"])
        storage, handler = make_storage({"success": False, "error": "Sheet missing"})
        client = await make_client(_dispatcher(make_model, storage, search=search))

        response = await client.post("/api/chat", json={"action": "search", "query": "合計は？"})

        assert response.status_code == 200
        assert response.json() == {
            "success": False,
            "error": "検索に失敗しました: データ取得に失敗しました",
        }
        assert search.calls == []
        assert [b["action"] for b in handler.bodies] == ["getAllReceipts"]

    @pytest.mark.asyncio
    async def test_network_failure_stays_200(self, make_client, make_model, make_storage):
        def unreachable(body):
            raise httpx.ConnectError("network down")

        storage, _ = make_storage(unreachable)
        client = await make_client(_dispatcher(make_model, storage))

        response = await client.post("/api/chat", json={"action": "getFolders"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is False
        assert body["error"].startswith("フォルダ取得に失敗しました: ")


class TestAmbient:

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, make_client):
        client = await make_client()

        response = await client.options("/api/chat", headers={"X-Request-ID": "abc12345"})

        assert response.headers["X-Request-ID"] == "abc12345"

    @pytest.mark.asyncio
    async def test_request_id_generated(self, make_client):
        client = await make_client()

        response = await client.options("/api/chat")

        assert len(response.headers["X-Request-ID"]) == 8

    @pytest.mark.asyncio
    async def test_health(self, make_client):
        client = await make_client()

        response = await client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["storage"] == "configured"

    def test_build_dispatcher_registers_all_actions(self, test_settings):
        dispatcher = build_dispatcher(test_settings)
        assert set(dispatcher.handlers) == {
            "analyze", "suggestFolder", "saveToFolder", "getFolders", "addFolder", "search",
        }
        assert dispatcher.receipts.analysis.api_key == "test-analysis-key"
        assert dispatcher.receipts.folder.api_key == "test-folder-key"
        assert dispatcher.receipts.search_model.api_key == "test-search-key"
