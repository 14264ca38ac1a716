"""
Pure builders that turn validated submission blocks into sanitized,
length-capped drafts ready for persistence.
"""

from __future__ import annotations

import html
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from app.schemas.composition import (
    GeneratedBundle,
    LocationIn,
    MediaImageIn,
    PrintArticleIn,
    ShortNewsIn,
    WebArticleIn,
)
from app.utils.text_processing import (
    clean_text,
    count_words,
    html_to_text,
    sanitize_html,
    slugify,
    trim_words,
    truncate_text,
)

TEXT_MAX_CHARS = 4000
LIST_ITEM_MAX_CHARS = 400
CAPTION_MAX_CHARS = 300
ALT_MAX_CHARS = 200
SLUG_MAX_CHARS = 120
META_TITLE_MAX_CHARS = 60
META_DESCRIPTION_MAX_CHARS = 160
META_DESCRIPTION_WORDS = 24


def cap(text: Optional[str], limit: int) -> str:
    return truncate_text(clean_text(text), limit)


def _cap_list(values: list[str], limit: int) -> list[str]:
    return [item for item in (cap(value, limit) for value in values or []) if item]


@dataclass(slots=True)
class NewspaperDraft:
    headline: str
    subtitle: Optional[str]
    lead: Optional[str]
    dateline: Optional[str]
    body: list[str]
    highlights: list[str]
    state: Optional[str] = None
    district: Optional[str] = None
    mandal: Optional[str] = None
    village: Optional[str] = None
    place_name: Optional[str] = None
    word_count: int = 0
    char_count: int = 0


@dataclass(slots=True)
class WebDraft:
    slug: str
    title: str
    lead: Optional[str]
    meta_title: str
    meta_description: str
    keywords: list[str]
    blocks: list[dict[str, Any]]
    content_html: str
    plain_text: str
    cover_image_url: Optional[str] = None
    image_urls: list[str] = field(default_factory=list)


@dataclass(slots=True)
class ShortDraft:
    title: str
    subtitle: Optional[str]
    content: str
    word_count: int


def build_newspaper(print_in: PrintArticleIn, location: Optional[LocationIn]) -> NewspaperDraft:
    body = _cap_list(print_in.body, TEXT_MAX_CHARS)
    joined = " ".join(body)
    resolved = location.resolved if location else None
    return NewspaperDraft(
        headline=cap(print_in.headline, 500),
        subtitle=cap(print_in.subtitle, 500) or None,
        lead=cap(print_in.lead, TEXT_MAX_CHARS) or None,
        dateline=cap(location.dateline, 200) or None if location else None,
        body=body,
        highlights=_cap_list(print_in.highlights, LIST_ITEM_MAX_CHARS),
        state=resolved.state if resolved else None,
        district=resolved.district if resolved else None,
        mandal=resolved.mandal if resolved else None,
        village=resolved.village if resolved else None,
        place_name=(location.place_name if location else None)
        or (resolved.village or resolved.mandal or resolved.district if resolved else None),
        word_count=count_words(joined),
        char_count=len(joined),
    )


def build_web_blocks(web_in: WebArticleIn, images: list[MediaImageIn]) -> list[dict[str, Any]]:
    blocks: list[dict[str, Any]] = [{"type": "h1", "text": cap(web_in.headline, TEXT_MAX_CHARS)}]
    lead = cap(web_in.lead, TEXT_MAX_CHARS)
    if lead:
        blocks.append({"type": "p", "text": lead, "lead": True})
    for image in images[:1]:
        blocks.append(_image_block(image))
    for section in web_in.sections:
        subhead = cap(section.subhead, TEXT_MAX_CHARS)
        if subhead:
            blocks.append({"type": "h2", "text": subhead})
        for paragraph in _cap_list(section.paragraphs, TEXT_MAX_CHARS):
            blocks.append({"type": "p", "text": paragraph})
    for image in images[1:]:
        blocks.append(_image_block(image))
    return blocks


def _image_block(image: MediaImageIn) -> dict[str, Any]:
    return {
        "type": "image",
        "url": image.url.strip(),
        "caption": cap(image.caption, CAPTION_MAX_CHARS) or None,
        "alt": cap(image.alt, ALT_MAX_CHARS) or None,
    }


def render_blocks_html(blocks: list[dict[str, Any]]) -> str:
    parts: list[str] = []
    for block in blocks:
        kind = block.get("type")
        if kind in ("h1", "h2", "h3", "p"):
            parts.append(f"<{kind}>{html.escape(block.get('text') or '')}</{kind}>")
        elif kind == "list":
            items = "".join(f"<li>{html.escape(item)}</li>" for item in block.get("items") or [])
            parts.append(f"<ul>{items}</ul>")
        elif kind == "image" and block.get("url"):
            alt = html.escape(block.get("alt") or "", quote=True)
            src = html.escape(block["url"], quote=True)
            caption = block.get("caption")
            figcaption = f"<figcaption>{html.escape(caption)}</figcaption>" if caption else ""
            parts.append(f'<figure><img src="{src}" alt="{alt}" loading="lazy">{figcaption}</figure>')
    return sanitize_html("".join(parts))


def build_web(
    web_in: WebArticleIn,
    images: list[MediaImageIn],
    *,
    fallback_body: str = "",
) -> WebDraft:
    blocks = build_web_blocks(web_in, images)
    content_html = render_blocks_html(blocks)
    plain_text = html_to_text(content_html)
    title = cap(web_in.headline, 500)
    seo = web_in.seo
    body_text = " ".join(block["text"] for block in blocks if block.get("type") == "p") or fallback_body

    slug = slugify((seo.slug if seo and seo.slug else "") or title, SLUG_MAX_CHARS)
    meta_title = cap(seo.meta_title if seo else None, META_TITLE_MAX_CHARS) or title[:META_TITLE_MAX_CHARS]
    meta_description = cap(seo.meta_description if seo else None, META_DESCRIPTION_MAX_CHARS) or truncate_text(
        trim_words(clean_text(body_text), META_DESCRIPTION_WORDS), META_DESCRIPTION_MAX_CHARS
    )
    image_urls = [image.url.strip() for image in images if image.url and image.url.strip()]
    return WebDraft(
        slug=slug,
        title=title,
        lead=cap(web_in.lead, TEXT_MAX_CHARS) or None,
        meta_title=meta_title,
        meta_description=meta_description,
        keywords=_cap_list(seo.keywords if seo else [], 80),
        blocks=blocks,
        content_html=content_html,
        plain_text=plain_text,
        cover_image_url=image_urls[0] if image_urls else None,
        image_urls=image_urls,
    )


def build_short(
    short_in: ShortNewsIn,
    *,
    fallback_title: str,
    title_max_chars: int,
    max_words: int,
) -> Optional[ShortDraft]:
    content = trim_words(clean_text(short_in.content), max_words)
    title = cap(short_in.h1, title_max_chars) or cap(fallback_title, title_max_chars)
    if not title and not content:
        return None
    return ShortDraft(
        title=title,
        subtitle=cap(short_in.h2, 300) or None,
        content=content,
        word_count=count_words(content),
    )


def web_body_word_count(web_in: WebArticleIn) -> int:
    paragraphs = [web_in.lead or ""]
    for section in web_in.sections:
        paragraphs.extend(section.paragraphs)
    return count_words(" ".join(paragraphs))


def print_body_word_count(print_in: PrintArticleIn) -> int:
    return count_words(" ".join(print_in.body))


def long_form_word_count(bundle: GeneratedBundle) -> int:
    """Word count of the long-form body: web sections when present, else print body."""
    if bundle.web_article and bundle.web_article.sections:
        return web_body_word_count(bundle.web_article)
    if bundle.print_article:
        return print_body_word_count(bundle.print_article)
    return 0


def long_form_text(bundle: GeneratedBundle) -> str:
    if bundle.web_article and bundle.web_article.sections:
        return " ".join(p for section in bundle.web_article.sections for p in section.paragraphs)
    if bundle.print_article:
        return " ".join(bundle.print_article.body)
    return ""


def canonical_url(host: Optional[str], category_slug: Optional[str], slug: str) -> Optional[str]:
    if not host:
        return None
    host = host.strip().rstrip("/")
    if "://" in host:
        host = host.split("://", 1)[1]
    return f"https://{host}/{category_slug or 'news'}/{slug}"


def news_article_json_ld(
    *,
    headline: str,
    description: str,
    url: Optional[str],
    image_urls: list[str],
    language_code: str,
    keywords: list[str],
    published_at: Optional[datetime],
    modified_at: datetime,
    publisher_name: str,
) -> dict[str, Any]:
    data: dict[str, Any] = {
        "@context": "https://schema.org",
        "@type": "NewsArticle",
        "headline": headline[:110],
        "description": description,
        "inLanguage": language_code,
        "dateModified": modified_at.isoformat(),
        "publisher": {"@type": "Organization", "name": publisher_name},
    }
    if url:
        data["mainEntityOfPage"] = {"@type": "WebPage", "@id": url}
        data["url"] = url
    if image_urls:
        data["image"] = image_urls
    if keywords:
        data["keywords"] = ", ".join(keywords)
    if published_at:
        data["datePublished"] = published_at.isoformat()
    return data
