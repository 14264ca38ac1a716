from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy import select

from app.core.errors import NotFoundError
from app.models import ShortNews, ShortNewsRead, WebArticle
from app.schemas.read_progress import ReadProgressBatchIn, ReadProgressIn
from app.services.read_progress_service import KIND_SHORT_NEWS, ReadProgressService, clamp


class _Clock:
    def __init__(self) -> None:
        self.now = datetime(2026, 3, 10, 6, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=30)
        return self.now


@pytest_asyncio.fixture
async def content(db, newsroom):
    web = WebArticle(
        tenant_id=newsroom.tenant.id,
        author_id=newsroom.reporter.user_id,
        slug="rain",
        title="Rain",
    )
    short = ShortNews(
        tenant_id=newsroom.tenant.id,
        author_id=newsroom.reporter.user_id,
        language_code="en",
        title="Rain short",
    )
    db.add_all([web, short])
    await db.commit()
    return web.id, short.id


def _read(article_id, delta=0, scroll=0, ended=False) -> ReadProgressIn:
    return ReadProgressIn(article_id=article_id, delta_time_ms=delta, max_scroll_percent=scroll, ended=ended)


def _service(db, settings) -> ReadProgressService:
    return ReadProgressService(db, settings=settings, clock=_Clock())


def test_clamp():
    assert clamp(-5, 0, 100) == 0
    assert clamp(150, 0, 100) == 100
    assert clamp(float("nan"), 0, 100) == 0
    assert clamp("bad", 0, 100) == 0
    assert clamp(42.5, 0, 100) == 42.5


class TestRecordProgress:
    @pytest.mark.asyncio
    async def test_first_event_creates_row(self, db, settings, content):
        web_id, _ = content
        out = await _service(db, settings).record_progress("user-1", [_read(web_id, 3000, 40)])
        assert out["missing"] == []
        progress = out["results"][0]
        assert progress["articleId"] == web_id
        assert progress["kind"] == "article"
        assert progress["totalTimeMs"] == 3000
        assert progress["maxScrollPercent"] == 40
        assert progress["completed"] is False
        assert progress["sessionsCount"] == 1

    @pytest.mark.asyncio
    async def test_time_accumulates_scroll_is_max_and_completion_latches(self, db, settings, content):
        web_id, _ = content
        service = _service(db, settings)
        await service.record_progress("user-1", [_read(web_id, 3000, 40)])
        second = (await service.record_progress("user-1", [_read(web_id, 6000, 30)]))["results"][0]
        assert second["totalTimeMs"] == 9000
        assert second["maxScrollPercent"] == 40
        assert second["completed"] is False

        third = (await service.record_progress("user-1", [_read(web_id, 1000, 90)]))["results"][0]
        assert third["completed"] is True
        assert third["completedAt"] is not None

        fourth = (await service.record_progress("user-1", [_read(web_id, 0, 10)]))["results"][0]
        assert fourth["completed"] is True
        assert fourth["completedAt"] == third["completedAt"]
        assert fourth["maxScrollPercent"] == 90
        assert fourth["totalTimeMs"] == 10000
        assert fourth["lastEventAt"] != third["lastEventAt"]

    @pytest.mark.asyncio
    async def test_completion_needs_both_thresholds(self, db, settings, content):
        web_id, _ = content
        service = _service(db, settings)
        out = (await service.record_progress("user-1", [_read(web_id, 60000, 50)]))["results"][0]
        assert out["completed"] is False
        out = (await service.record_progress("user-2", [_read(web_id, 1000, 100)]))["results"][0]
        assert out["completed"] is False

    @pytest.mark.asyncio
    async def test_single_event_can_complete_on_insert(self, db, settings, content):
        web_id, _ = content
        out = (await _service(db, settings).record_progress("user-1", [_read(web_id, 9000, 95)]))["results"][0]
        assert out["completed"] is True

    @pytest.mark.asyncio
    async def test_ended_sessions_are_counted(self, db, settings, content):
        web_id, _ = content
        service = _service(db, settings)
        await service.record_progress("user-1", [_read(web_id, 1000, 10, ended=True)])
        out = (await service.record_progress("user-1", [_read(web_id, 1000, 10, ended=True)]))["results"][0]
        assert out["sessionsCount"] == 2

    @pytest.mark.asyncio
    async def test_inputs_are_clamped(self, db, settings, content):
        web_id, _ = content
        service = _service(db, settings)
        out = (await service.record_progress("user-1", [_read(web_id, -500, -3)]))["results"][0]
        assert out["totalTimeMs"] == 0
        assert out["maxScrollPercent"] == 0
        out = (await service.record_progress("user-1", [_read(web_id, 10**9, 250)]))["results"][0]
        assert out["totalTimeMs"] == settings.read_max_delta_ms
        assert out["maxScrollPercent"] == 100

    @pytest.mark.asyncio
    async def test_batch_reports_missing_and_applies_rest(self, db, settings, content):
        web_id, _ = content
        out = await _service(db, settings).record_progress(
            "user-1", [_read("nope", 1000, 10), _read(web_id, 1000, 10)]
        )
        assert out["missing"] == ["nope"]
        assert [item["articleId"] for item in out["results"]] == [web_id]

    @pytest.mark.asyncio
    async def test_short_news_id_on_article_endpoint_is_redirected(self, db, settings, content):
        _, short_id = content
        out = await _service(db, settings).record_progress("user-1", [_read(short_id, 2000, 50)])
        assert out["missing"] == []
        assert out["results"][0]["kind"] == KIND_SHORT_NEWS
        row = (
            await db.execute(select(ShortNewsRead).where(ShortNewsRead.short_news_id == short_id))
        ).scalar_one()
        assert row.total_time_ms == 2000

    @pytest.mark.asyncio
    async def test_short_news_endpoint_does_not_accept_web_ids(self, db, settings, content):
        web_id, short_id = content
        service = _service(db, settings)
        out = await service.record_progress("user-1", [_read(web_id, 1000, 10)], kind=KIND_SHORT_NEWS)
        assert out["missing"] == [web_id]
        out = await service.record_progress("user-1", [_read(short_id, 1000, 10)], kind=KIND_SHORT_NEWS)
        assert out["results"][0]["articleId"] == short_id


class TestQueries:
    @pytest.mark.asyncio
    async def test_status_for_user(self, db, settings, content):
        web_id, _ = content
        service = _service(db, settings)
        await service.record_progress("user-1", [_read(web_id, 1000, 10)])
        status = await service.status_for("user-1", [web_id, "unread", web_id])
        assert list(status) == [web_id, "unread"]
        assert status[web_id]["totalTimeMs"] == 1000
        assert status["unread"] is None
        assert (await service.status_for("user-2", [web_id]))[web_id] is None

    @pytest.mark.asyncio
    async def test_aggregate(self, db, settings, content):
        web_id, _ = content
        service = _service(db, settings)
        await service.record_progress("user-1", [_read(web_id, 10000, 90)])
        await service.record_progress("user-2", [_read(web_id, 2000, 30)])
        aggregate = await service.aggregate(web_id)
        assert aggregate == {
            "articleId": web_id,
            "readers": 2,
            "completedReaders": 1,
            "totalTimeMs": 12000,
            "avgMaxScrollPercent": 60.0,
        }

    @pytest.mark.asyncio
    async def test_aggregate_unknown_article(self, db, settings, content):
        with pytest.raises(NotFoundError):
            await _service(db, settings).aggregate("missing")


class TestBatchSchema:
    def test_flat_body_becomes_single_item(self):
        body = ReadProgressBatchIn.model_validate({"shortNewsId": "s-1", "deltaTimeMs": 500, "ended": True})
        items = body.items()
        assert len(items) == 1
        assert items[0].article_id == "s-1"
        assert items[0].ended is True

    def test_reads_list(self):
        body = ReadProgressBatchIn.model_validate({"reads": [{"articleId": "a"}, {"shortNewsId": "b"}]})
        assert [item.article_id for item in body.items()] == ["a", "b"]

    def test_empty_body(self):
        assert ReadProgressBatchIn.model_validate({}).items() == []
