from datetime import timedelta

import httpx
import pytest
import pytest_asyncio
from fastapi import HTTPException

from app.api.deps.auth import caller_from_claims
from app.core.security import create_access_token
from app.main import create_app
from app.models import WebArticle
from app.models.user import Caller, UserRole
from app.services.prompt_service import WEB_ARTICLE_PROMPT_KEY, PromptService
from conftest import FakeCache, FakeGateway, make_bundle


def _auth(user_id: str, role: str) -> dict:
    token = create_access_token(Caller(user_id=user_id, role=UserRole(role)))
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def app(settings, session_factory):
    application = create_app(settings)
    application.state.session_factory = session_factory
    application.state.ai_gateway = FakeGateway()
    application.state.prompt_service = PromptService(FakeCache(), ttl_seconds=60)
    return application


@pytest_asyncio.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
        yield http


def _compose_body(newsroom) -> dict:
    return {
        "languageCode": "en",
        "title": "Council approves budget",
        "content": "The council met on Monday and approved the budget.",
        "categoryIds": [newsroom.category.id],
    }


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["database"] == "connected"
    assert body["ai_providers"] == ["fake"]


@pytest.mark.asyncio
async def test_requests_without_token_are_rejected(client):
    response = await client.post("/api/v1/articles/ai/compose", json={})
    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"
    assert response.json()["ok"] is False


@pytest.mark.asyncio
async def test_expired_token_is_rejected(client):
    token = create_access_token(Caller("reader-1", UserRole.READER), expires_delta=timedelta(minutes=-5))
    response = await client.get("/api/v1/reads/articles/status", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_claims_become_a_caller():
    caller = caller_from_claims({"sub": "u-1", "role": "desk_editor", "tenantId": "t-1"})
    assert caller == Caller(user_id="u-1", role=UserRole.DESK_EDITOR, tenant_id="t-1")
    with pytest.raises(HTTPException):
        caller_from_claims({"sub": "u-1", "role": "janitor"})
    with pytest.raises(HTTPException):
        caller_from_claims({"role": "READER"})

@pytest.mark.asyncio
async def test_compose_then_status(app, client, newsroom):
    app.state.ai_gateway = FakeGateway(make_bundle())
    headers = _auth(newsroom.reporter.user_id, "REPORTER")

    response = await client.post("/api/v1/articles/ai/compose", json=_compose_body(newsroom), headers=headers)
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["outputs"]["webArticleId"]
    assert data["outputs"]["shortNewsId"]

    status = await client.get(f"/api/v1/articles/{data['articleId']}/ai-status", headers=headers)
    assert status.status_code == 200
    assert status.json()["data"]["ai"]["aiStatus"] == "DONE"


@pytest.mark.asyncio
async def test_desk_publishes_pending_web_article(app, client, newsroom):
    app.state.ai_gateway = FakeGateway(make_bundle())
    composed = await client.post(
        "/api/v1/articles/ai/compose",
        json=_compose_body(newsroom),
        headers=_auth(newsroom.reporter.user_id, "REPORTER"),
    )
    web_id = composed.json()["data"]["outputs"]["webArticleId"]
    url = f"/api/v1/articles/web/{web_id}/status"

    denied = await client.patch(url, json={"status": "PUBLISHED"}, headers=_auth(newsroom.reporter.user_id, "REPORTER"))
    assert denied.status_code == 403

    response = await client.patch(
        url, json={"status": "PUBLISHED"}, headers=_auth(newsroom.editor.user_id, "DESK_EDITOR")
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["previousStatus"] == "PENDING"
    assert data["status"] == "PUBLISHED"
    assert data["publishedAt"]

    other_tenant = await client.patch(
        url, json={"status": "ARCHIVED"}, headers=_auth("stranger-editor", "DESK_EDITOR")
    )
    assert other_tenant.status_code == 404


@pytest.mark.asyncio
async def test_degraded_compose_is_accepted(app, client, newsroom):
    app.state.ai_gateway = FakeGateway("not json", "still not json")
    response = await client.post(
        "/api/v1/articles/ai/compose",
        json=_compose_body(newsroom),
        headers=_auth(newsroom.reporter.user_id, "REPORTER"),
    )
    assert response.status_code == 202
    data = response.json()["data"]
    assert data["status"] == "ACCEPTED"
    assert data["errorCode"] == "INVALID_JSON"


@pytest.mark.asyncio
async def test_unified_with_missing_fields(client, newsroom):
    response = await client.post(
        "/api/v1/articles/unified",
        json={},
        headers=_auth(newsroom.reporter.user_id, "REPORTER"),
    )
    assert response.status_code == 422
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_reader_cannot_compose(client, newsroom):
    response = await client.post(
        "/api/v1/articles/ai/compose",
        json=_compose_body(newsroom),
        headers=_auth("reader-1", "READER"),
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_read_progress_and_status(client, db, newsroom):
    web = WebArticle(tenant_id=newsroom.tenant.id, author_id=newsroom.reporter.user_id, slug="rain", title="Rain")
    db.add(web)
    await db.commit()
    headers = _auth("reader-1", "READER")

    response = await client.post(
        "/api/v1/reads/articles/progress",
        json={"reads": [{"articleId": web.id, "deltaTimeMs": 9000, "maxScrollPercent": 95}, {"articleId": "nope"}]},
        headers=headers,
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["missing"] == ["nope"]
    assert data["results"][0]["completed"] is True

    status = await client.get(f"/api/v1/reads/articles/status?ids={web.id},unread", headers=headers)
    assert status.status_code == 200
    progress = status.json()["data"]
    assert progress[web.id]["totalTimeMs"] == 9000
    assert progress["unread"] is None


@pytest.mark.asyncio
async def test_read_progress_requires_an_item(client):
    response = await client.post("/api/v1/reads/articles/progress", json={}, headers=_auth("reader-1", "READER"))
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_prompt_admin(client):
    headers = _auth("root", "SUPER_ADMIN")
    url = f"/api/v1/prompts/{WEB_ARTICLE_PROMPT_KEY}"

    before = await client.get(url, headers=headers)
    assert before.status_code == 200
    assert before.json()["data"]["isDefault"] is True

    saved = await client.put(url, json={"content": "Write about {{TITLE}}"}, headers=headers)
    assert saved.status_code == 200
    assert saved.json()["data"]["content"] == "Write about {{TITLE}}"

    after = await client.get(url, headers=headers)
    assert after.json()["data"] == {"key": WEB_ARTICLE_PROMPT_KEY, "content": "Write about {{TITLE}}", "isDefault": False}

    denied = await client.get(url, headers=_auth("editor-1", "DESK_EDITOR"))
    assert denied.status_code == 403
