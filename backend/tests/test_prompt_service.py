import pytest

from app.models import Prompt
from app.services.prompt_service import (
    DEFAULT_PROMPTS,
    WEB_ARTICLE_PROMPT_KEY,
    PromptService,
    render,
)
from conftest import FakeCache


class TestRender:
    def test_both_placeholder_styles(self):
        out = render("A {{ TITLE }} / {TITLE} / {{TITLE}}", {"TITLE": "Rain"})
        assert out == "A Rain / Rain / Rain"

    def test_unknown_placeholders_left_untouched(self):
        assert render("{{KNOWN}} {{OTHER}} {x}", {"KNOWN": 1}) == "1 {{OTHER}} {x}"

    def test_value_formatting(self):
        out = render("{{A}}|{{B}}|{{C}}|{{D}}", {"A": True, "B": ["x", "y"], "C": None, "D": {"k": "తెలుగు"}})
        assert out == 'true|["x", "y"]||{"k": "తెలుగు"}'

    def test_inserted_text_is_not_substituted_again(self):
        out = render(
            "Content: {{RAW_CONTENT}}\nMin: {{MIN_WORDS}}",
            {"RAW_CONTENT": "Budget is {MIN_WORDS} crore, see {{TITLE}}", "MIN_WORDS": 600, "TITLE": "x"},
        )
        assert out == "Content: Budget is {MIN_WORDS} crore, see {{TITLE}}\nMin: 600"

    def test_no_expression_evaluation(self):
        assert render("{{ A.upper() }}", {"A": "x"}) == "{{ A.upper() }}"


class TestResolve:
    @pytest.mark.asyncio
    async def test_default_when_no_row_and_cached(self, db):
        cache = FakeCache()
        service = PromptService(cache, ttl_seconds=60)
        content = await service.resolve(db, WEB_ARTICLE_PROMPT_KEY)
        assert content == DEFAULT_PROMPTS[WEB_ARTICLE_PROMPT_KEY]
        assert cache.store[f"prompt:{WEB_ARTICLE_PROMPT_KEY}"] == ""
        assert await service.resolve(db, WEB_ARTICLE_PROMPT_KEY) == DEFAULT_PROMPTS[WEB_ARTICLE_PROMPT_KEY]

    @pytest.mark.asyncio
    async def test_database_row_wins(self, db):
        db.add(Prompt(key=WEB_ARTICLE_PROMPT_KEY, content="Custom {{TITLE}}"))
        await db.commit()
        service = PromptService(FakeCache(), ttl_seconds=60)
        assert await service.resolve_and_render(db, WEB_ARTICLE_PROMPT_KEY, {"TITLE": "Rain"}) == "Custom Rain"

    @pytest.mark.asyncio
    async def test_blank_row_falls_back_to_default(self, db):
        db.add(Prompt(key=WEB_ARTICLE_PROMPT_KEY, content="   "))
        await db.commit()
        service = PromptService(FakeCache(), ttl_seconds=60)
        assert await service.resolve(db, WEB_ARTICLE_PROMPT_KEY) == DEFAULT_PROMPTS[WEB_ARTICLE_PROMPT_KEY]

    @pytest.mark.asyncio
    async def test_unknown_key_resolves_empty(self, db):
        service = PromptService(FakeCache(), ttl_seconds=60)
        assert await service.resolve(db, "missing_key") == ""

    @pytest.mark.asyncio
    async def test_save_invalidates_cache(self, db):
        cache = FakeCache()
        service = PromptService(cache, ttl_seconds=60)
        await service.resolve(db, WEB_ARTICLE_PROMPT_KEY)
        await service.save(db, WEB_ARTICLE_PROMPT_KEY, "Edited prompt", "edited by admin")
        assert f"prompt:{WEB_ARTICLE_PROMPT_KEY}" in cache.deleted
        assert await service.resolve(db, WEB_ARTICLE_PROMPT_KEY) == "Edited prompt"
