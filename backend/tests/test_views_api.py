"""Tests for view recording endpoints."""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import ASGITransport, AsyncClient

from manga_stats.core.deps import get_db
from manga_stats.main import app
from manga_stats.models import Chapter, Comic


@pytest.fixture
async def client():
    db = AsyncMock()
    app.dependency_overrides[get_db] = lambda: db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac
    app.dependency_overrides.clear()


class TestRecordMangaView:
    @pytest.mark.asyncio
    @patch("manga_stats.api.views.view_tracking.record_comic_view")
    async def test_records_view_with_client_info(self, mock_record, client):
        mock_record.return_value = Comic(title="Berserk", slug="berserk")

        resp = await client.post(
            "/api/manga/berserk/view",
            headers={"X-Forwarded-For": "203.0.113.9, 10.0.0.1", "User-Agent": "reader/1.0"},
        )

        assert resp.status_code == 200
        assert resp.json() == {"success": True, "message": "View recorded successfully"}
        assert mock_record.call_args.args[1] == "berserk"
        assert mock_record.call_args.kwargs == {
            "ip_address": "203.0.113.9",
            "user_agent": "reader/1.0",
        }

    @pytest.mark.asyncio
    @patch("manga_stats.api.views.view_tracking.record_comic_view")
    async def test_unknown_slug_is_404(self, mock_record, client):
        mock_record.return_value = None

        resp = await client.post("/api/manga/missing/view")

        assert resp.status_code == 404
        assert resp.json()["detail"] == "Manga not found"


class TestRecordChapterView:
    @pytest.mark.asyncio
    @patch("manga_stats.api.views.view_tracking.record_chapter_view")
    async def test_records_view(self, mock_record, client):
        mock_record.return_value = Chapter(comic_id=1, chapter_number=1, slug="chapter-1")

        resp = await client.post("/api/chapters/7/view")

        assert resp.status_code == 200
        assert mock_record.call_args.args[1] == 7

    @pytest.mark.asyncio
    @patch("manga_stats.api.views.view_tracking.record_chapter_view")
    async def test_unknown_chapter_is_404(self, mock_record, client):
        mock_record.return_value = None

        resp = await client.post("/api/chapters/7/view")

        assert resp.status_code == 404
        assert resp.json()["detail"] == "Chapter not found"
