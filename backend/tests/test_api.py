"""Tests for the HTTP API."""

import json

import pytest


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/api/v1/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["storage"] == "healthy"
        assert body["mapping_version"] == "2.3.0"

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, client):
        response = await client.get("/api/v1/health", headers={"X-Request-ID": "abc123"})
        assert response.headers["X-Request-ID"] == "abc123"

    @pytest.mark.asyncio
    async def test_request_id_generated(self, client):
        response = await client.get("/api/v1/health")
        assert len(response.headers["X-Request-ID"]) == 8


class TestExtractions:
    @pytest.mark.asyncio
    async def test_upload_email(self, client, quote_email):
        response = await client.post(
            "/api/v1/extractions",
            files={"file": ("quote.eml", quote_email, "message/rfc822")},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["filename"] == "quote.eml"
        assert body["strategy_used"] == "email_extraction"
        assert body["record"]["client_name"] == "Jan Peeters"
        assert body["record"]["cargo"] == "1 x used BMW 7 Series 2019"
        assert body["quality"]["completeness"] == 1.0
        assert body["metadata"]["strategies_tried"] == ["email_extraction"]

    @pytest.mark.asyncio
    async def test_unsupported_type_is_a_failed_result(self, client):
        response = await client.post(
            "/api/v1/extractions",
            files={"file": ("notes.txt", b"ship my car", "text/plain")},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is False
        assert body["error_type"] == "unsupported_document_type"
        assert body["record"] == {}
        assert body["quality"]["score"] == 0

    @pytest.mark.asyncio
    async def test_empty_file(self, client):
        response = await client.post(
            "/api/v1/extractions",
            files={"file": ("quote.eml", b"", "message/rfc822")},
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Empty file"

    @pytest.mark.asyncio
    async def test_uploads_removed_after_processing(self, client, storage, quote_email):
        for name, content, mime in [
            ("quote.eml", quote_email, "message/rfc822"),
            ("notes.txt", b"ship my car", "text/plain"),
            ("broken.pdf", b"%PDF-1.4 not really", "application/pdf"),
        ]:
            response = await client.post("/api/v1/extractions", files={"file": (name, content, mime)})
            assert response.status_code == 200
        assert list(storage.root.iterdir()) == []

    @pytest.mark.asyncio
    async def test_list_strategies(self, client):
        response = await client.get("/api/v1/extractions/strategies")
        assert response.status_code == 200
        strategies = response.json()["strategies"]
        assert len(strategies) == 6
        assert strategies[0] == {"name": "email_extraction", "priority": 100}
        assert strategies[-1] == {"name": "image_ocr", "priority": 80}


class TestMapping:
    @pytest.mark.asyncio
    async def test_summary(self, client):
        response = await client.get("/api/v1/mapping/summary")
        assert response.status_code == 200
        body = response.json()
        assert body["version"] == "2.3.0"
        assert body["required_fields"] == ["client_name", "origin", "destination", "cargo"]
        assert "city_to_port" in body["transforms"]

    @pytest.mark.asyncio
    async def test_reload(self, client):
        response = await client.post("/api/v1/mapping/reload")
        assert response.status_code == 200
        assert response.json()["version"] == "2.3.0"

    @pytest.mark.asyncio
    async def test_broken_reload_rejected(self, client, pipeline, tmp_path):
        path = tmp_path / "mapping.json"
        path.write_text(json.dumps({"version": "x", "field_mappings": {"a": {"x": {"transfrom": "trim"}}}}))
        pipeline.settings.mapping_config_path = str(path)

        response = await client.post("/api/v1/mapping/reload")
        assert response.status_code == 422
        assert "invalid" in response.json()["detail"]

        summary = await client.get("/api/v1/mapping/summary")
        assert summary.json()["version"] == "2.3.0"
