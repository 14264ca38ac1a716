from datetime import datetime, timezone

from app.domain.composition.builders import (
    build_newspaper,
    build_short,
    build_web,
    canonical_url,
    long_form_word_count,
    render_blocks_html,
)
from app.domain.composition.normalization import normalize_submission
from app.domain.composition.quota import daily_limit_reached, local_day_bounds
from app.domain.composition.status_policy import derive_publish_status
from app.models.article import ArticleStatus
from app.models.user import UserRole
from app.schemas.composition import (
    CompositionPayload,
    GeneratedBundle,
    LocationIn,
    MediaImageIn,
    PrintArticleIn,
    ShortNewsIn,
    WebArticleIn,
)


class TestPublishStatus:
    def test_reporter_needs_auto_publish_and_publish_ready(self):
        assert derive_publish_status(UserRole.REPORTER, auto_publish=True, publish_ready=True) == ArticleStatus.PUBLISHED
        assert derive_publish_status(UserRole.REPORTER, auto_publish=True, publish_ready=False) == ArticleStatus.PENDING
        assert derive_publish_status(UserRole.REPORTER, auto_publish=False, publish_ready=True) == ArticleStatus.PENDING

    def test_editorial_roles_always_publish(self):
        for role in (UserRole.SUPER_ADMIN, UserRole.TENANT_ADMIN, UserRole.DESK_EDITOR, UserRole.NEWS_MODERATOR):
            assert derive_publish_status(role, auto_publish=False, publish_ready=False) == ArticleStatus.PUBLISHED


class TestLocalDay:
    def test_boundary_at_local_midnight(self):
        # 18:29 UTC is 23:59 at +05:30; 18:30 UTC is the next local day.
        before = datetime(2026, 3, 10, 18, 29, tzinfo=timezone.utc)
        after = datetime(2026, 3, 10, 18, 30, tzinfo=timezone.utc)
        start_before, end_before = local_day_bounds(before, 330)
        start_after, _ = local_day_bounds(after, 330)
        assert start_before == datetime(2026, 3, 9, 18, 30, tzinfo=timezone.utc)
        assert end_before == start_after == datetime(2026, 3, 10, 18, 30, tzinfo=timezone.utc)

    def test_limit(self):
        assert not daily_limit_reached(1, 2)
        assert daily_limit_reached(2, 2)
        assert not daily_limit_reached(50, 0)


class TestNormalization:
    def test_snake_case_and_camel_case_map_to_same_payload(self):
        snake = {
            "base_article": {"language_code": "en", "category": "politics"},
            "location": {"place_name": "Guntur"},
            "print_article": {"headline": "Rain", "body": "One\n\nTwo"},
            "web_article": {"headline": "Rain", "seo": {"meta_title": "Rain"}},
            "short_mobile_article": {"h1": "Rain", "content": "Short"},
            "status": {"publish_ready": True},
        }
        camel = {
            "baseArticle": {"languageCode": "en", "category": "politics"},
            "location": {"placeName": "Guntur"},
            "printArticle": {"headline": "Rain", "body": ["One", "Two"]},
            "webArticle": {"headline": "Rain", "seo": {"metaTitle": "Rain"}},
            "shortNews": {"h1": "Rain", "content": "Short"},
            "publishControl": {"publishReady": True},
        }
        left = CompositionPayload.model_validate(normalize_submission(snake))
        right = CompositionPayload.model_validate(normalize_submission(camel))
        assert left == right
        assert left.publish_control.publish_ready is True
        assert left.print_article.body == ["One", "Two"]

    def test_string_images_become_objects(self):
        data = normalize_submission({"media": {"images": ["https://img.test/a.jpg", {"url": "https://img.test/b.jpg"}]}})
        assert data["media"]["images"] == [{"url": "https://img.test/a.jpg"}, {"url": "https://img.test/b.jpg"}]

    def test_non_dict_payload(self):
        assert normalize_submission(["nope"]) == {}


class TestBuilders:
    def test_newspaper_counts_and_location(self):
        draft = build_newspaper(
            PrintArticleIn(headline="  Rain  ", body=["one two", "three"]),
            LocationIn.model_validate({"resolved": {"district": "Guntur", "mandal": "Tenali"}, "dateline": "TENALI"}),
        )
        assert draft.headline == "Rain"
        assert draft.word_count == 3
        assert draft.place_name == "Tenali"
        assert draft.dateline == "TENALI"

    def test_web_html_is_sanitized(self):
        web_in = WebArticleIn.model_validate(
            {
                "headline": "Rain <script>alert(1)</script>",
                "sections": [{"subhead": "More", "paragraphs": ["<b>bold</b> <img src=x onerror=alert(1)>"]}],
                "seo": {"slug": "Heavy Rain!", "keywords": "rain, weather"},
            }
        )
        draft = build_web(web_in, [MediaImageIn(url="https://img.test/a.jpg", caption="Clouds")])
        assert "<script" not in draft.content_html
        assert "onerror" not in draft.content_html
        assert draft.slug == "heavy-rain"
        assert draft.keywords == ["rain", "weather"]
        assert draft.cover_image_url == "https://img.test/a.jpg"
        assert draft.meta_title
        assert "<figure>" in draft.content_html

    def test_render_blocks_escapes_text(self):
        html = render_blocks_html([{"type": "p", "text": "<i>x</i> & y"}])
        assert html == "<p>&lt;i&gt;x&lt;/i&gt; &amp; y</p>"

    def test_short_news_limits(self):
        draft = build_short(
            ShortNewsIn(h1="A very long headline that keeps going and going", content=" ".join(["w"] * 80)),
            fallback_title="Fallback",
            title_max_chars=35,
            max_words=60,
        )
        assert len(draft.title) <= 35
        assert draft.word_count == 60
        assert build_short(ShortNewsIn(), fallback_title="", title_max_chars=35, max_words=60) is None

    def test_long_form_prefers_web_sections(self):
        bundle = GeneratedBundle.model_validate(
            {
                "printArticle": {"headline": "x", "body": ["a b"]},
                "webArticle": {"headline": "x", "sections": [{"paragraphs": ["a b c d"]}]},
            }
        )
        assert long_form_word_count(bundle) == 4
        assert long_form_word_count(GeneratedBundle(print_article=bundle.print_article)) == 2

    def test_canonical_url(self):
        assert canonical_url("https://news.test/", "politics", "rain") == "https://news.test/politics/rain"
        assert canonical_url("news.test", None, "rain") == "https://news.test/news/rain"
        assert canonical_url(None, "politics", "rain") is None
