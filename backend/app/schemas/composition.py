"""
Newsdesk Editorial Core — Composition Schemas
=============================================
Canonical (camelCase on the wire) shape of a structured submission and of
the AI-generated article bundle. Alternate snake_case payloads are mapped
onto this shape by `app.domain.composition.normalization`.
"""

from __future__ import annotations

import re
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def camelize(name: str) -> str:
    if "_" not in name:
        return name
    head, *tail = [part for part in name.split("_") if part] or [name]
    return head + "".join(part[:1].upper() + part[1:] for part in tail)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=camelize, populate_by_name=True, extra="ignore")


def _as_paragraphs(value: Any) -> Any:
    """Accept a single string where a list of paragraphs is expected."""
    if value is None:
        return []
    if isinstance(value, str):
        parts = [part.strip() for part in re.split(r"\n\s*\n|\n", value)]
        return [part for part in parts if part]
    return value


# ── Structured submission ──

class BaseArticleIn(CamelModel):
    language_code: str = "te"
    category: Optional[str] = None


class ResolvedLocation(CamelModel):
    state: Optional[str] = None
    district: Optional[str] = None
    mandal: Optional[str] = None
    village: Optional[str] = None


class LocationIn(CamelModel):
    resolved: ResolvedLocation = Field(default_factory=ResolvedLocation)
    dateline: Optional[str] = None
    place_name: Optional[str] = None


class PrintArticleIn(CamelModel):
    headline: str = ""
    subtitle: Optional[str] = None
    lead: Optional[str] = None
    body: list[str] = Field(default_factory=list)
    highlights: list[str] = Field(default_factory=list)

    @field_validator("body", "highlights", mode="before")
    @classmethod
    def split_paragraphs(cls, value: Any) -> Any:
        return _as_paragraphs(value)


class WebSectionIn(CamelModel):
    subhead: Optional[str] = None
    paragraphs: list[str] = Field(default_factory=list)

    @field_validator("paragraphs", mode="before")
    @classmethod
    def split_paragraphs(cls, value: Any) -> Any:
        return _as_paragraphs(value)


class SeoIn(CamelModel):
    slug: Optional[str] = None
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None
    keywords: list[str] = Field(default_factory=list)

    @field_validator("keywords", mode="before")
    @classmethod
    def split_keywords(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value or []


class WebArticleIn(CamelModel):
    headline: str = ""
    lead: Optional[str] = None
    sections: list[WebSectionIn] = Field(default_factory=list)
    seo: Optional[SeoIn] = None


class ShortNewsIn(CamelModel):
    h1: Optional[str] = None
    h2: Optional[str] = None
    content: Optional[str] = None


class MediaImageIn(CamelModel):
    url: str
    caption: Optional[str] = None
    alt: Optional[str] = None


class MediaIn(CamelModel):
    images: list[MediaImageIn] = Field(default_factory=list)


class PublishControlIn(CamelModel):
    publish_ready: bool = False


class CompositionPayload(CamelModel):
    """Structured submission: one print article plus optional web/short variants."""

    tenant_id: Optional[str] = None
    domain_id: Optional[str] = None
    base_article: Optional[BaseArticleIn] = None
    location: Optional[LocationIn] = None
    print_article: Optional[PrintArticleIn] = None
    web_article: Optional[WebArticleIn] = None
    short_news: Optional[ShortNewsIn] = None
    media: MediaIn = Field(default_factory=MediaIn)
    publish_control: PublishControlIn = Field(default_factory=PublishControlIn)


class GeneratedBundle(CamelModel):
    """What the model is asked to return for an AI composition."""

    print_article: Optional[PrintArticleIn] = None
    web_article: Optional[WebArticleIn] = None
    short_news: Optional[ShortNewsIn] = None


# ── Raw AI submission ──

class ComposeRequest(CamelModel):
    tenant_id: Optional[str] = None
    domain_id: Optional[str] = None
    language_code: str = "te"
    title: str = ""
    content: str = ""
    category_ids: list[str] = Field(default_factory=list)
    image_urls: list[str] = Field(default_factory=list)
    publish_ready: bool = False
    location: Optional[LocationIn] = None
