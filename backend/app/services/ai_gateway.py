"""
Newsdesk Editorial Core — AI Provider Gateway
=============================================
One entry point for text generation across the OpenAI-compatible chat API
and Gemini. Each call has a hard deadline. A 400 that names the model or
response format gets exactly one retry on the fallback model with JSON mode
off. Every other failure surfaces as ProviderError.
"""

from __future__ import annotations

import asyncio
import enum
import re
import time
from dataclasses import asdict, dataclass
from typing import Any, Optional

import httpx
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt

from app.core.config import Settings, get_settings
from app.core.errors import ProviderError, ProviderErrorKind
from app.core.logging import get_logger

logger = get_logger("services.ai_gateway")

_FALLBACK_TRIGGER_RE = re.compile(r"model|response[_ ]format", re.IGNORECASE)


class AIPurpose(str, enum.Enum):
    REWRITE = "rewrite"
    NEWSPAPER = "newspaper"
    JSON_REPAIR = "json_repair"
    LENGTH_BALANCE = "length_balance"


@dataclass(slots=True)
class GenerationUsage:
    provider: str
    model: str
    purpose: str
    prompt_chars: int
    response_chars: int
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    total_tokens: Optional[int] = None

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class GenerationResult:
    text: str
    usage: GenerationUsage

    @property
    def empty(self) -> bool:
        return not (self.text or "").strip()


def _is_fallback_eligible(exc: BaseException) -> bool:
    return isinstance(exc, ProviderError) and exc.fallback_eligible


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


class AIGateway:
    """Provider-agnostic text generation with deadline and one-shot model fallback."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._settings = settings
        self._http_client = http_client
        self._gemini_client = None

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            self._settings = get_settings()
        return self._settings

    # ── Provider selection ──

    def configured_providers(self) -> list[str]:
        providers = []
        if (self.settings.gemini_api_key or "").strip():
            providers.append("gemini")
        if (self.settings.openai_api_key or "").strip():
            providers.append("openai")
        return providers

    def select_provider(self) -> str:
        available = self.configured_providers()
        if not available:
            raise ProviderError("no AI provider credentials configured", kind=ProviderErrorKind.NOT_CONFIGURED)
        preferred = (self.settings.ai_provider or "").strip().lower()
        if preferred in available:
            return preferred
        return available[0]

    def _model_for(self, provider: str, fallback: bool) -> str:
        if provider == "openai":
            return self.settings.openai_fallback_model if fallback else self.settings.openai_model
        return self.settings.gemini_fallback_model if fallback else self.settings.gemini_model

    # ── Public API ──

    async def generate(
        self,
        prompt: str,
        *,
        purpose: AIPurpose = AIPurpose.REWRITE,
        timeout_ms: Optional[int] = None,
        json_mode: bool = True,
    ) -> GenerationResult:
        """Generate text for `prompt`. Empty text is returned as-is, not raised."""
        provider = self.select_provider()
        timeout = max(0.1, timeout_ms / 1000.0) if timeout_ms else self.settings.ai_timeout_seconds

        result: Optional[GenerationResult] = None
        retrying = AsyncRetrying(
            stop=stop_after_attempt(2),
            retry=retry_if_exception(_is_fallback_eligible),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                fallback = attempt.retry_state.attempt_number > 1
                model = self._model_for(provider, fallback)
                if fallback:
                    logger.warning("ai_fallback_model", provider=provider, model=model, purpose=purpose.value)
                result = await self._call_with_deadline(
                    provider,
                    prompt,
                    purpose=purpose,
                    model=model,
                    json_mode=json_mode and not fallback,
                    timeout=timeout,
                )
        return result

    async def _call_with_deadline(
        self,
        provider: str,
        prompt: str,
        *,
        purpose: AIPurpose,
        model: str,
        json_mode: bool,
        timeout: float,
    ) -> GenerationResult:
        started = time.monotonic()
        call = self._call_openai if provider == "openai" else self._call_gemini
        try:
            text, usage = await asyncio.wait_for(
                call(prompt, model=model, json_mode=json_mode, timeout=timeout),
                timeout=timeout,
            )
        except asyncio.TimeoutError as exc:
            logger.warning("ai_call_timeout", provider=provider, model=model, timeout_s=timeout)
            raise ProviderError(
                f"{provider} call exceeded {timeout}s", kind=ProviderErrorKind.TIMEOUT, provider=provider
            ) from exc
        except ProviderError as exc:
            logger.warning(
                "ai_call_failed",
                provider=provider,
                model=model,
                kind=exc.kind.value,
                http_status=exc.http_status,
                error=exc.message[:300],
            )
            raise

        text = text or ""
        result = GenerationResult(
            text=text,
            usage=GenerationUsage(
                provider=provider,
                model=model,
                purpose=purpose.value,
                prompt_chars=len(prompt),
                response_chars=len(text),
                prompt_tokens=_as_int(usage.get("prompt_tokens")),
                completion_tokens=_as_int(usage.get("completion_tokens")),
                total_tokens=_as_int(usage.get("total_tokens")),
            ),
        )
        logger.info(
            "ai_call_complete",
            provider=provider,
            model=model,
            purpose=purpose.value,
            elapsed_ms=int((time.monotonic() - started) * 1000),
            response_chars=len(text),
            total_tokens=result.usage.total_tokens,
        )
        return result

    # ── OpenAI-compatible chat completions ──

    async def _post(self, url: str, *, json: dict, headers: dict, timeout: float) -> httpx.Response:
        if self._http_client is not None:
            return await self._http_client.post(url, json=json, headers=headers, timeout=timeout)
        async with httpx.AsyncClient(timeout=timeout) as client:
            return await client.post(url, json=json, headers=headers)

    async def _call_openai(
        self,
        prompt: str,
        *,
        model: str,
        json_mode: bool,
        timeout: float,
    ) -> tuple[str, dict[str, Any]]:
        payload: dict[str, Any] = {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.settings.ai_temperature,
            "max_tokens": self.settings.ai_max_output_tokens,
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}
        url = f"{self.settings.openai_base_url.rstrip('/')}/chat/completions"
        headers = {"Authorization": f"Bearer {self.settings.openai_api_key}"}

        try:
            response = await self._post(url, json=payload, headers=headers, timeout=timeout)
        except httpx.TimeoutException as exc:
            raise ProviderError(str(exc) or "timeout", kind=ProviderErrorKind.TIMEOUT, provider="openai") from exc
        except httpx.HTTPError as exc:
            raise ProviderError(str(exc) or "network error", kind=ProviderErrorKind.NETWORK, provider="openai") from exc

        if response.status_code >= 400:
            message = self._openai_error_message(response)
            kind = ProviderErrorKind.HTTP
            if response.status_code == 400 and _FALLBACK_TRIGGER_RE.search(message):
                kind = ProviderErrorKind.MODEL_UNSUPPORTED
            raise ProviderError(message, kind=kind, provider="openai", http_status=response.status_code)

        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderError("non-JSON provider response", kind=ProviderErrorKind.HTTP, provider="openai") from exc

        choices = data.get("choices") or [{}]
        message = (choices[0] or {}).get("message") or {}
        return message.get("content") or "", data.get("usage") or {}

    @staticmethod
    def _openai_error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text[:500]
        error = body.get("error") if isinstance(body, dict) else None
        if isinstance(error, dict):
            return str(error.get("message") or error)
        return str(error or body)[:500]

    # ── Gemini ──

    def _get_gemini(self):
        """Lazy-load the Gemini SDK."""
        if self._gemini_client is None:
            import google.generativeai as genai
            genai.configure(api_key=self.settings.gemini_api_key)
            self._gemini_client = genai
        return self._gemini_client

    async def _call_gemini(
        self,
        prompt: str,
        *,
        model: str,
        json_mode: bool,
        timeout: float,
    ) -> tuple[str, dict[str, Any]]:
        genai = self._get_gemini()
        generation_config: dict[str, Any] = {
            "temperature": self.settings.ai_temperature,
            "max_output_tokens": self.settings.ai_max_output_tokens,
        }
        if json_mode:
            generation_config["response_mime_type"] = "application/json"

        try:
            response = await genai.GenerativeModel(model).generate_content_async(
                prompt,
                generation_config=generation_config,
                request_options={"timeout": timeout},
            )
        except Exception as exc:  # noqa: BLE001 - google.api_core errors are classified below
            raise self._classify_gemini_error(exc) from exc

        try:
            text = response.text or ""
        except ValueError:
            # Blocked or candidate-less responses have no text accessor.
            text = ""
        meta = getattr(response, "usage_metadata", None)
        usage = {
            "prompt_tokens": getattr(meta, "prompt_token_count", None),
            "completion_tokens": getattr(meta, "candidates_token_count", None),
            "total_tokens": getattr(meta, "total_token_count", None),
        }
        return text, usage

    @staticmethod
    def _classify_gemini_error(exc: Exception) -> ProviderError:
        message = str(exc) or type(exc).__name__
        code = getattr(exc, "code", None)
        http_status = code if isinstance(code, int) else None
        if http_status in (400, 404) and _FALLBACK_TRIGGER_RE.search(message):
            kind = ProviderErrorKind.MODEL_UNSUPPORTED
        elif http_status is not None:
            kind = ProviderErrorKind.HTTP
        else:
            kind = ProviderErrorKind.NETWORK
        return ProviderError(message[:500], kind=kind, provider="gemini", http_status=http_status)
