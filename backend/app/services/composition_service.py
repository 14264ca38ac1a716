"""
Newsdesk Editorial Core — Article Composition Workflow
======================================================
Turns one submission into up to three published variants (newspaper, web,
short news) that all point back to the same base article.

Structured submissions are persisted directly. Raw submissions go through:
RECEIVED → PROMPTED → AI_CALLED → PARSED (one JSON-only retry) →
LENGTH_OK (one rebalancing retry) → SANITIZED → PERSISTED

The base article is committed before the AI call, so provider and parse
failures only mark it FAILED with a diagnostic code; the submission is
never lost.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, get_settings
from app.core.errors import (
    ForbiddenError,
    ParseError,
    PersistenceError,
    ProviderError,
    ValidationError,
)
from app.core.json_utils import extract_json_object
from app.core.logging import get_logger
from app.domain.composition.builders import (
    build_newspaper,
    build_short,
    build_web,
    canonical_url,
    long_form_text,
    long_form_word_count,
    news_article_json_ld,
)
from app.domain.composition.normalization import normalize_submission
from app.domain.composition.quota import daily_limit_reached, local_day_bounds
from app.domain.composition.results import (
    Composed,
    ComposedOutputs,
    CompositionErrorCode,
    CompositionResult,
    CompositionWarning,
    Degraded,
)
from app.domain.composition.state_machine import CompositionState, CompositionTrace, can_transition_ai_status
from app.domain.composition.status_policy import derive_publish_status
from app.models import (
    AiMode,
    AiStatus,
    Article,
    ArticleStatus,
    Domain,
    Language,
    Reporter,
    Tenant,
)
from app.models.user import TENANT_BOUND_ROLES, Caller, UserRole
from app.repositories.article_repository import ArticleRepository
from app.schemas.composition import (
    ComposeRequest,
    CompositionPayload,
    GeneratedBundle,
    LocationIn,
    MediaImageIn,
)
from app.services.ai_gateway import AIGateway, AIPurpose, GenerationResult
from app.services.prompt_service import WEB_ARTICLE_PROMPT_KEY, PromptService
from app.utils.language import matches_language, normalize_language_code

logger = get_logger("services.composition")

JSON_ONLY_INSTRUCTION = (
    "IMPORTANT: Return ONLY a single valid JSON object with the exact keys specified. "
    "Do not include markdown, code fences, explanations, or any text before/after the JSON."
)
BALANCE_INSTRUCTION = (
    "IMPORTANT: Ensure the combined article body (join all paragraph texts) is between "
    "{min_words} and {max_words} words. Do not invent facts; expand or condense neutrally. "
    "Return ONLY JSON."
)
AI_RAW_MAX_CHARS = 20000

SKIP_PRECOMPOSED = "PRECOMPOSED"
SKIP_AI_REWRITE_DISABLED = "AI_REWRITE_DISABLED"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class TenantScope:
    tenant: Tenant
    domain: Optional[Domain]
    reporter: Optional[Reporter]

    @property
    def tenant_id(self) -> str:
        return self.tenant.id

    @property
    def domain_id(self) -> Optional[str]:
        return self.domain.id if self.domain else None


@dataclass(slots=True)
class _Context:
    caller: Caller
    scope: TenantScope
    language: Optional[Language]
    language_code: str
    category_slug: Optional[str]
    status: ArticleStatus
    now: datetime


class CompositionWorkflow:
    """Composition entry points. One instance per request/session."""

    def __init__(
        self,
        db: AsyncSession,
        *,
        gateway: AIGateway,
        prompts: PromptService,
        settings: Optional[Settings] = None,
        repository: Optional[ArticleRepository] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.db = db
        self.repo = repository or ArticleRepository(db)
        self.gateway = gateway
        self.prompts = prompts
        self.settings = settings or get_settings()
        self.clock = clock

    # ── Tenant scope ──

    async def resolve_scope(
        self,
        caller: Caller,
        *,
        tenant_id: Optional[str],
        domain_id: Optional[str],
    ) -> TenantScope:
        domain: Optional[Domain] = None
        reporter: Optional[Reporter] = None

        if caller.role == UserRole.SUPER_ADMIN:
            if domain_id:
                domain = await self.repo.get_domain(domain_id)
                if domain is None:
                    raise ValidationError("Domain not found", details={"domainId": domain_id})
                if tenant_id and tenant_id != domain.tenant_id:
                    raise ValidationError("Domain does not belong to tenant", details={"tenantId": tenant_id})
                tenant_id = domain.tenant_id
            if not tenant_id:
                raise ValidationError("tenantId or domainId is required for SUPER_ADMIN")
        elif caller.role in TENANT_BOUND_ROLES:
            reporter = await self.repo.get_reporter(caller.user_id)
            if reporter is None:
                raise ValidationError("Reporter profile is not linked to a tenant")
            if tenant_id and tenant_id != reporter.tenant_id:
                raise ForbiddenError("Tenant scope mismatch")
            tenant_id = reporter.tenant_id
        else:
            raise ForbiddenError("Role cannot submit articles")

        tenant = await self.repo.get_tenant(tenant_id)
        if tenant is None:
            raise ValidationError("Tenant not found", details={"tenantId": tenant_id})

        if domain is None and domain_id:
            domain = await self.repo.get_domain(domain_id)
            if domain is None or domain.tenant_id != tenant.id:
                raise ValidationError("Domain not found", details={"domainId": domain_id})
        if domain is None:
            domain = await self.repo.get_primary_domain(tenant.id)

        return TenantScope(tenant=tenant, domain=domain, reporter=reporter)

    def _derive_status(self, caller: Caller, scope: TenantScope, publish_ready: bool) -> ArticleStatus:
        auto_publish = bool(scope.reporter.auto_publish) if scope.reporter else False
        return derive_publish_status(caller.role, auto_publish=auto_publish, publish_ready=publish_ready)

    async def _newspaper_quota_exhausted(self, caller: Caller, now: datetime) -> bool:
        if caller.role != UserRole.REPORTER:
            return False
        start, end = local_day_bounds(now, self.settings.local_day_offset_minutes)
        created = await self.repo.count_newspaper_articles(author_id=caller.user_id, start=start, end=end)
        return daily_limit_reached(created, self.settings.newspaper_daily_limit)

    async def _build_context(
        self,
        caller: Caller,
        *,
        tenant_id: Optional[str],
        domain_id: Optional[str],
        language_code: Optional[str],
        category_ref: Optional[str],
        publish_ready: bool,
    ) -> _Context:
        scope = await self.resolve_scope(caller, tenant_id=tenant_id, domain_id=domain_id)
        code = normalize_language_code(language_code, default=self.settings.default_language_code)
        language = await self.repo.get_language(code)
        category_slug = None
        if category_ref:
            category = await self.repo.find_category(scope.tenant_id, category_ref)
            category_slug = category.slug if category else None
        return _Context(
            caller=caller,
            scope=scope,
            language=language,
            language_code=code,
            category_slug=category_slug,
            status=self._derive_status(caller, scope, publish_ready),
            now=self.clock(),
        )

    # ── Structured submission ──

    async def submit_unified(self, caller: Caller, raw_payload: dict[str, Any]) -> Composed:
        """Persist a pre-composed submission: base + newspaper (+ web, + short) in one transaction."""
        trace = CompositionTrace()
        normalized = normalize_submission(raw_payload)
        try:
            payload = CompositionPayload.model_validate(normalized)
        except PydanticValidationError as exc:
            raise ValidationError("Invalid submission", details=exc.errors(include_url=False)) from exc

        missing = []
        if payload.base_article is None:
            missing.append("baseArticle")
        if payload.location is None:
            missing.append("location")
        if payload.print_article is None:
            missing.append("printArticle")
        elif not payload.print_article.headline.strip():
            missing.append("printArticle.headline")
        if missing:
            raise ValidationError("Missing required fields", details={"missing": missing})

        ctx = await self._build_context(
            caller,
            tenant_id=payload.tenant_id,
            domain_id=payload.domain_id,
            language_code=payload.base_article.language_code,
            category_ref=payload.base_article.category,
            publish_ready=payload.publish_control.publish_ready,
        )
        bundle = GeneratedBundle(
            print_article=payload.print_article,
            web_article=payload.web_article,
            short_news=payload.short_news,
        )
        trace.advance(CompositionState.SANITIZED)

        try:
            base = await self.repo.create_base(
                tenant_id=ctx.scope.tenant_id,
                domain_id=ctx.scope.domain_id,
                language_id=ctx.language.id if ctx.language else None,
                language_code=ctx.language_code,
                author_id=caller.user_id,
                title=payload.print_article.headline.strip()[:500],
                content="\n\n".join(payload.print_article.body),
                category_ids=[payload.base_article.category] if payload.base_article.category else [],
                image_urls=[image.url for image in payload.media.images],
                raw={"submission": normalized, "seo": payload.web_article.seo.model_dump(by_alias=True)
                     if payload.web_article and payload.web_article.seo else None},
                publish_ready=payload.publish_control.publish_ready,
                status=ctx.status,
                ai_status=AiStatus.PENDING,
                ai_mode=None,
                ai_queue={"newspaper": True, "web": bool(bundle.web_article), "short": bool(bundle.short_news)},
                ai_skip_reason=SKIP_PRECOMPOSED,
            )
            outputs, warnings = await self._persist_variants(
                base, ctx, bundle, images=payload.media.images, location=payload.location
            )
            self._finish(base, AiStatus.DONE, ctx.now)
            await self.repo.commit()
        except SQLAlchemyError as exc:
            await self.repo.rollback()
            logger.error("composition_persist_failed", mode="unified", error=str(exc))
            raise PersistenceError("Could not persist submission") from exc

        trace.advance(CompositionState.PERSISTED)
        logger.info(
            "composition_persisted",
            mode="unified",
            article_id=base.id,
            tenant_id=base.tenant_id,
            status=ctx.status.value,
            warnings=[w.value for w in warnings],
        )
        return Composed(
            article_id=base.id,
            tenant_id=base.tenant_id,
            status=ctx.status,
            outputs=outputs,
            warnings=warnings,
            trace=trace.as_list(),
        )

    # ── AI composition ──

    async def compose_with_ai(self, caller: Caller, request: ComposeRequest) -> CompositionResult:
        trace = CompositionTrace()
        missing = []
        if not request.title.strip():
            missing.append("title")
        if not request.content.strip():
            missing.append("content")
        if not [c for c in request.category_ids if c and c.strip()]:
            missing.append("categoryIds")
        if missing:
            raise ValidationError("Missing required fields", details={"missing": missing})

        ctx = await self._build_context(
            caller,
            tenant_id=request.tenant_id,
            domain_id=request.domain_id,
            language_code=request.language_code,
            category_ref=request.category_ids[0],
            publish_ready=request.publish_ready,
        )
        ai_mode = AiMode.LIMITED if ctx.scope.tenant.ai_rewrite_enabled is False else AiMode.FULL
        full = ai_mode == AiMode.FULL

        try:
            base = await self.repo.create_base(
                tenant_id=ctx.scope.tenant_id,
                domain_id=ctx.scope.domain_id,
                language_id=ctx.language.id if ctx.language else None,
                language_code=ctx.language_code,
                author_id=caller.user_id,
                title=request.title.strip()[:500],
                content=request.content,
                category_ids=list(request.category_ids),
                image_urls=list(request.image_urls),
                raw=request.model_dump(by_alias=True),
                publish_ready=request.publish_ready,
                status=ArticleStatus.PENDING,
                ai_status=AiStatus.PENDING,
                ai_mode=ai_mode,
                ai_queue={"newspaper": True, "web": full, "short": full},
                ai_skip_reason=None if full else SKIP_AI_REWRITE_DISABLED,
            )
            await self.repo.commit()
        except SQLAlchemyError as exc:
            await self.repo.rollback()
            logger.error("composition_persist_failed", mode="ai", stage="base", error=str(exc))
            raise PersistenceError("Could not persist submission") from exc

        prompt = await self.prompts.resolve_and_render(
            self.db,
            WEB_ARTICLE_PROMPT_KEY,
            {
                "TENANT_ID": ctx.scope.tenant_id,
                "LANGUAGE_CODE": ctx.language_code,
                "AUTHOR_ID": caller.user_id,
                "CATEGORY_IDS": list(request.category_ids),
                "IMAGE_URLS": list(request.image_urls),
                "IS_PUBLISHED": request.publish_ready,
                "TITLE": request.title.strip(),
                "RAW_CONTENT": request.content,
                "RAW_JSON": request.model_dump(by_alias=True),
                "MIN_WORDS": self.settings.article_min_words,
                "MAX_WORDS": self.settings.article_max_words,
                "SHORT_MAX_WORDS": self.settings.short_news_max_words,
                "SHORT_TITLE_MAX_CHARS": self.settings.short_news_title_max_chars,
            },
        )
        self._advance(trace, base, CompositionState.PROMPTED)
        article_id = base.id
        try:
            self._start(base)
            await self.repo.commit()
        except SQLAlchemyError as exc:
            await self.repo.rollback()
            logger.error(
                "composition_persist_failed", mode="ai", stage="start", article_id=article_id, error=str(exc)
            )
            await self._mark_persistence_failure(article_id)
            raise PersistenceError("Could not persist submission") from exc

        usages: list[dict[str, Any]] = []
        generation = await self._generate(prompt, usages, AIPurpose.REWRITE if full else AIPurpose.NEWSPAPER)
        if isinstance(generation, ProviderError):
            return await self._fail(base, trace, CompositionErrorCode.PROVIDER_ERROR, usages, detail=generation.kind.value)
        self._advance(trace, base, CompositionState.AI_CALLED)
        if generation.empty:
            return await self._fail(base, trace, CompositionErrorCode.EMPTY_RESPONSE, usages)

        raw_text = generation.text
        bundle = self._parse_bundle(raw_text)
        if bundle is None:
            self._advance(trace, base, CompositionState.PARSE_RETRY)
            retry = await self._generate(f"{prompt}\n\n{JSON_ONLY_INSTRUCTION}", usages, AIPurpose.JSON_REPAIR)
            if isinstance(retry, ProviderError):
                return await self._fail(
                    base, trace, CompositionErrorCode.PROVIDER_ERROR, usages, detail=retry.kind.value, raw=raw_text
                )
            if not retry.empty:
                raw_text = retry.text
                bundle = self._parse_bundle(raw_text)
            if bundle is None:
                self._advance(trace, base, CompositionState.PARSE_FAILED)
                return await self._fail(base, trace, CompositionErrorCode.INVALID_JSON, usages, raw=raw_text)
        self._advance(trace, base, CompositionState.PARSED)

        if not full:
            bundle = GeneratedBundle(print_article=bundle.print_article)
        if bundle.print_article is None or not bundle.print_article.body:
            return await self._fail(base, trace, CompositionErrorCode.MISSING_BODY, usages, raw=raw_text)
        if not bundle.print_article.headline.strip():
            bundle.print_article.headline = request.title.strip()
        if bundle.web_article is not None and bundle.web_article.seo is None:
            return await self._fail(base, trace, CompositionErrorCode.MISSING_SEO_BLOCK, usages, raw=raw_text)

        warnings: list[CompositionWarning] = []
        bundle, in_band = await self._balance_length(prompt, bundle, trace, base, usages)
        if not in_band:
            warnings.append(CompositionWarning.LENGTH_OUT_OF_RANGE)
        self._advance(trace, base, CompositionState.LENGTH_OK)

        status = ctx.status
        if not matches_language(
            long_form_text(bundle), ctx.language_code, self.settings.language_min_script_ratio
        ):
            if self.settings.language_strict_mode:
                return await self._fail(base, trace, CompositionErrorCode.LANGUAGE_MISMATCH, usages, raw=raw_text)
            warnings.append(CompositionWarning.REVIEW_REQUIRED)
            status = ArticleStatus.PENDING
            ctx.status = status

        images = [MediaImageIn(url=url) for url in request.image_urls if url and url.strip()]
        self._advance(trace, base, CompositionState.SANITIZED)
        try:
            base.status = status
            outputs, persist_warnings = await self._persist_variants(
                base, ctx, bundle, images=images, location=request.location
            )
            warnings.extend(persist_warnings)
            await self.repo.add_usage_events(base.id, base.tenant_id, usages)
            self._finish(base, AiStatus.DONE, ctx.now)
            await self.repo.commit()
        except SQLAlchemyError as exc:
            await self.repo.rollback()
            logger.error("composition_persist_failed", mode="ai", article_id=article_id, error=str(exc))
            await self._mark_persistence_failure(article_id)
            raise PersistenceError("Could not persist composed article") from exc

        self._advance(trace, base, CompositionState.PERSISTED)
        logger.info(
            "composition_persisted",
            mode="ai",
            article_id=base.id,
            tenant_id=base.tenant_id,
            status=status.value,
            ai_mode=ai_mode.value,
            outputs=outputs.as_dict(),
            warnings=[w.value for w in warnings],
        )
        return Composed(
            article_id=base.id,
            tenant_id=base.tenant_id,
            status=status,
            outputs=outputs,
            warnings=warnings,
            trace=trace.as_list(),
        )

    async def _generate(
        self, prompt: str, usages: list[dict[str, Any]], purpose: AIPurpose
    ) -> GenerationResult | ProviderError:
        try:
            result = await self.gateway.generate(prompt, purpose=purpose)
        except ProviderError as exc:
            return exc
        usages.append(result.usage.as_dict())
        return result

    @staticmethod
    def _parse_bundle(text: str) -> Optional[GeneratedBundle]:
        try:
            data = extract_json_object(text)
            return GeneratedBundle.model_validate(normalize_submission(data))
        except (ParseError, PydanticValidationError):
            return None

    def _in_band(self, words: int) -> bool:
        return self.settings.article_min_words <= words <= self.settings.article_max_words

    async def _balance_length(
        self,
        prompt: str,
        bundle: GeneratedBundle,
        trace: CompositionTrace,
        base: Article,
        usages: list[dict[str, Any]],
    ) -> tuple[GeneratedBundle, bool]:
        words = long_form_word_count(bundle)
        if self._in_band(words):
            return bundle, True

        self._advance(trace, base, CompositionState.LENGTH_RETRY)
        instruction = BALANCE_INSTRUCTION.format(
            min_words=self.settings.article_min_words,
            max_words=self.settings.article_max_words,
        )
        current = json.dumps(bundle.model_dump(by_alias=True, exclude_none=True), ensure_ascii=False)
        retry = await self._generate(
            f"{prompt}\n\n{instruction}\n\nCurrent draft JSON:\n{current}", usages, AIPurpose.LENGTH_BALANCE
        )
        if isinstance(retry, ProviderError) or retry.empty:
            logger.info("length_retry_unusable", article_id=base.id, words=words)
            return bundle, False

        candidate = self._parse_bundle(retry.text)
        if candidate is None or candidate.print_article is None or not candidate.print_article.body:
            logger.info("length_retry_unusable", article_id=base.id, words=words)
            return bundle, False
        retried_words = long_form_word_count(candidate)
        if not self._in_band(retried_words):
            logger.info("length_retry_out_of_band", article_id=base.id, words=words, retried_words=retried_words)
            return bundle, False
        if not candidate.print_article.headline.strip():
            candidate.print_article.headline = bundle.print_article.headline
        if bundle.web_article is None:
            candidate.web_article = None
        elif candidate.web_article is not None and candidate.web_article.seo is None:
            candidate.web_article.seo = bundle.web_article.seo
        if bundle.short_news is None:
            candidate.short_news = None
        return candidate, True

    # ── Shared persistence ──

    async def _persist_variants(
        self,
        base: Article,
        ctx: _Context,
        bundle: GeneratedBundle,
        *,
        images: list[MediaImageIn],
        location: Optional[LocationIn],
    ) -> tuple[ComposedOutputs, list[CompositionWarning]]:
        outputs = ComposedOutputs()
        warnings: list[CompositionWarning] = []
        author_id = ctx.caller.user_id

        if bundle.print_article is not None:
            if await self._newspaper_quota_exhausted(ctx.caller, ctx.now):
                warnings.append(CompositionWarning.DAILY_LIMIT_REACHED)
                logger.info("newspaper_daily_limit_reached", author_id=author_id, article_id=base.id)
            else:
                draft = build_newspaper(bundle.print_article, location)
                newspaper = await self.repo.create_newspaper(
                    tenant_id=base.tenant_id,
                    base_article_id=base.id,
                    author_id=author_id,
                    language_code=ctx.language_code,
                    headline=draft.headline,
                    subtitle=draft.subtitle,
                    lead=draft.lead,
                    dateline=draft.dateline,
                    body=draft.body,
                    highlights=draft.highlights,
                    state=draft.state,
                    district=draft.district,
                    mandal=draft.mandal,
                    village=draft.village,
                    place_name=draft.place_name,
                    word_count=draft.word_count,
                    char_count=draft.char_count,
                    status=ctx.status,
                    created_at=ctx.now,
                )
                outputs.newspaper_article_id = newspaper.id
        self._clear_queue(base, "newspaper")

        if bundle.web_article is not None:
            fallback_body = " ".join(bundle.print_article.body) if bundle.print_article else ""
            web = build_web(bundle.web_article, images, fallback_body=fallback_body)
            published_at = ctx.now if ctx.status == ArticleStatus.PUBLISHED else None
            url = canonical_url(ctx.scope.domain.host if ctx.scope.domain else None, ctx.category_slug, web.slug)
            row, created = await self.repo.upsert_web_article(
                tenant_id=base.tenant_id,
                domain_id=ctx.scope.domain_id,
                language_id=ctx.language.id if ctx.language else None,
                slug=web.slug,
                values={
                    "base_article_id": base.id,
                    "author_id": author_id,
                    "title": web.title,
                    "lead": web.lead,
                    "meta_title": web.meta_title,
                    "meta_description": web.meta_description,
                    "keywords": web.keywords,
                    "content_html": web.content_html,
                    "content_json": web.blocks,
                    "plain_text": web.plain_text,
                    "json_ld": news_article_json_ld(
                        headline=web.title,
                        description=web.meta_description,
                        url=url,
                        image_urls=web.image_urls,
                        language_code=ctx.language_code,
                        keywords=web.keywords,
                        published_at=published_at,
                        modified_at=ctx.now,
                        publisher_name=ctx.scope.tenant.name,
                    ),
                    "canonical_url": url,
                    "cover_image_url": web.cover_image_url,
                    "status": ctx.status,
                    "published_at": published_at,
                },
            )
            outputs.web_article_id = row.id
            logger.info("web_article_upserted", web_article_id=row.id, slug=web.slug, created=created)
        self._clear_queue(base, "web")

        if bundle.short_news is not None:
            draft = build_short(
                bundle.short_news,
                fallback_title=bundle.print_article.headline if bundle.print_article else base.title,
                title_max_chars=self.settings.short_news_title_max_chars,
                max_words=self.settings.short_news_max_words,
            )
            if draft is not None:
                short = await self.repo.create_short_news(
                    tenant_id=base.tenant_id,
                    base_article_id=base.id,
                    author_id=author_id,
                    language_code=ctx.language_code,
                    category_id=(base.category_ids or [None])[0],
                    title=draft.title,
                    subtitle=draft.subtitle,
                    content=draft.content,
                    word_count=draft.word_count,
                    status=ctx.status,
                )
                outputs.short_news_id = short.id
        self._clear_queue(base, "short")

        base.newspaper_article_id = outputs.newspaper_article_id
        base.web_article_id = outputs.web_article_id
        base.short_news_id = outputs.short_news_id
        await self.db.flush()
        return outputs, warnings

    # ── AI job bookkeeping ──

    @staticmethod
    def _clear_queue(base: Article, name: str) -> None:
        queue = dict(base.ai_queue or {})
        queue[name] = False
        base.ai_queue = queue

    def _set_ai_status(self, base: Article, target: AiStatus) -> None:
        if not can_transition_ai_status(base.ai_status, target):
            raise RuntimeError(f"illegal AI status transition {base.ai_status} -> {target}")
        base.ai_status = target

    def _start(self, base: Article) -> None:
        self._set_ai_status(base, AiStatus.PROCESSING)
        base.ai_started_at = self.clock()

    def _finish(self, base: Article, status: AiStatus, now: Optional[datetime] = None) -> None:
        self._set_ai_status(base, status)
        base.ai_finished_at = now or self.clock()

    def _advance(self, trace: CompositionTrace, base: Article, state: CompositionState) -> None:
        trace.advance(state)
        logger.debug("composition_state", article_id=base.id, state=state.value)

    async def _fail(
        self,
        base: Article,
        trace: CompositionTrace,
        code: CompositionErrorCode,
        usages: list[dict[str, Any]],
        *,
        detail: Optional[str] = None,
        raw: Optional[str] = None,
    ) -> Degraded:
        if trace.current not in (CompositionState.PARSE_FAILED, CompositionState.ABORTED):
            trace.advance(CompositionState.ABORTED)
        article_id, tenant_id = base.id, base.tenant_id
        try:
            if raw:
                base.ai_raw = raw[:AI_RAW_MAX_CHARS]
            base.ai_error = code.value if not detail else f"{code.value}:{detail}"[:120]
            self._finish(base, AiStatus.FAILED)
            await self.repo.add_usage_events(base.id, base.tenant_id, usages)
            await self.repo.commit()
        except SQLAlchemyError as exc:
            await self.repo.rollback()
            logger.error("composition_fail_mark_failed", article_id=article_id, error=str(exc))
            raise PersistenceError("Could not record composition failure") from exc

        logger.warning(
            "composition_degraded",
            article_id=article_id,
            tenant_id=tenant_id,
            error_code=code.value,
            detail=detail,
            trace=trace.as_list(),
        )
        return Degraded(
            article_id=article_id,
            tenant_id=tenant_id,
            error_code=code,
            detail=detail,
            trace=trace.as_list(),
        )

    async def _mark_persistence_failure(self, article_id: str) -> None:
        try:
            base = await self.repo.get_article(article_id)
            if base is None or base.ai_status not in (AiStatus.PENDING, AiStatus.PROCESSING):
                return
            base.ai_error = "PERSISTENCE_ERROR"
            self._finish(base, AiStatus.FAILED)
            await self.repo.commit()
        except SQLAlchemyError as exc:
            await self.repo.rollback()
            logger.error("composition_fail_mark_failed", article_id=article_id, error=str(exc))
