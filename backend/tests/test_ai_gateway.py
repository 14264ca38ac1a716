from __future__ import annotations

import asyncio
import json
from types import SimpleNamespace

import httpx
import pytest

from app.core.errors import ProviderError, ProviderErrorKind
from app.services.ai_gateway import AIGateway, AIPurpose


def _openai_settings(settings, **overrides):
    values = {
        "ai_provider": "openai",
        "openai_api_key": "sk-test",
        "openai_base_url": "https://llm.test/v1",
        "openai_model": "primary-model",
        "openai_fallback_model": "fallback-model",
        "gemini_api_key": "",
    }
    values.update(overrides)
    return settings.model_copy(update=values)


def _completion(content, usage=None) -> dict:
    body = {"choices": [{"message": {"role": "assistant", "content": content}}]}
    if usage is not None:
        body["usage"] = usage
    return body


def _gateway(settings, handler) -> tuple[AIGateway, list[dict]]:
    seen: list[dict] = []

    async def record(request: httpx.Request):
        seen.append(json.loads(request.content))
        result = handler(request, len(seen))
        if asyncio.iscoroutine(result):
            result = await result
        return result

    client = httpx.AsyncClient(transport=httpx.MockTransport(record))
    return AIGateway(settings, http_client=client), seen


class TestProviderSelection:
    def test_not_configured(self, settings):
        with pytest.raises(ProviderError) as exc:
            AIGateway(settings).select_provider()
        assert exc.value.kind == ProviderErrorKind.NOT_CONFIGURED

    def test_preference_and_default_order(self, settings):
        both = settings.model_copy(update={"openai_api_key": "sk", "gemini_api_key": "g"})
        assert AIGateway(both).configured_providers() == ["gemini", "openai"]
        assert AIGateway(both).select_provider() == "gemini"
        preferred = both.model_copy(update={"ai_provider": "openai"})
        assert AIGateway(preferred).select_provider() == "openai"


class TestOpenAICompatible:
    @pytest.mark.asyncio
    async def test_success_reports_usage(self, settings):
        gateway, seen = _gateway(
            _openai_settings(settings),
            lambda request, n: httpx.Response(
                200, json=_completion('{"ok": true}', {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15})
            ),
        )
        result = await gateway.generate("write", purpose=AIPurpose.REWRITE)
        assert result.text == '{"ok": true}'
        assert result.usage.total_tokens == 15
        assert result.usage.provider == "openai"
        assert result.usage.prompt_chars == len("write")
        assert seen[0]["model"] == "primary-model"
        assert seen[0]["response_format"] == {"type": "json_object"}
        assert seen[0]["max_tokens"] == settings.ai_max_output_tokens

    @pytest.mark.asyncio
    async def test_model_rejection_retries_once_on_fallback_without_json_mode(self, settings):
        def handler(request, n):
            if n == 1:
                return httpx.Response(
                    400, json={"error": {"message": "response_format json_object is not supported by this model"}}
                )
            return httpx.Response(200, json=_completion("fallback text"))

        gateway, seen = _gateway(_openai_settings(settings), handler)
        result = await gateway.generate("write")
        assert result.text == "fallback text"
        assert result.usage.model == "fallback-model"
        assert len(seen) == 2
        assert seen[1]["model"] == "fallback-model"
        assert "response_format" not in seen[1]

    @pytest.mark.asyncio
    async def test_fallback_happens_at_most_once(self, settings):
        gateway, seen = _gateway(
            _openai_settings(settings),
            lambda request, n: httpx.Response(400, json={"error": {"message": "model not found"}}),
        )
        with pytest.raises(ProviderError) as exc:
            await gateway.generate("write")
        assert exc.value.kind == ProviderErrorKind.MODEL_UNSUPPORTED
        assert len(seen) == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [401, 429, 500])
    async def test_other_http_errors_do_not_fall_back(self, settings, status):
        gateway, seen = _gateway(
            _openai_settings(settings),
            lambda request, n: httpx.Response(status, json={"error": {"message": "nope"}}),
        )
        with pytest.raises(ProviderError) as exc:
            await gateway.generate("write")
        assert exc.value.kind == ProviderErrorKind.HTTP
        assert exc.value.http_status == status
        assert len(seen) == 1

    @pytest.mark.asyncio
    async def test_missing_usage_and_content_is_empty_not_error(self, settings):
        gateway, _ = _gateway(_openai_settings(settings), lambda request, n: httpx.Response(200, json={"choices": []}))
        result = await gateway.generate("write")
        assert result.empty
        assert result.usage.total_tokens is None
        assert result.usage.response_chars == 0

    @pytest.mark.asyncio
    async def test_transport_timeout_maps_to_timeout(self, settings):
        def handler(request, n):
            raise httpx.ReadTimeout("slow", request=request)

        gateway, _ = _gateway(_openai_settings(settings), handler)
        with pytest.raises(ProviderError) as exc:
            await gateway.generate("write")
        assert exc.value.kind == ProviderErrorKind.TIMEOUT

    @pytest.mark.asyncio
    async def test_deadline_is_enforced(self, settings):
        async def handler(request, n):
            await asyncio.sleep(1)
            return httpx.Response(200, json=_completion("late"))

        gateway, _ = _gateway(_openai_settings(settings), handler)
        with pytest.raises(ProviderError) as exc:
            await gateway.generate("write", timeout_ms=50)
        assert exc.value.kind == ProviderErrorKind.TIMEOUT

    @pytest.mark.asyncio
    async def test_network_error(self, settings):
        def handler(request, n):
            raise httpx.ConnectError("refused", request=request)

        gateway, _ = _gateway(_openai_settings(settings), handler)
        with pytest.raises(ProviderError) as exc:
            await gateway.generate("write")
        assert exc.value.kind == ProviderErrorKind.NETWORK


class _FakeGeminiError(Exception):
    def __init__(self, message: str, code: int):
        super().__init__(message)
        self.code = code


class _FakeGenai:
    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls: list[tuple[str, dict]] = []

    def GenerativeModel(self, model):  # noqa: N802 - mirrors the SDK
        fake = self

        class _Model:
            async def generate_content_async(self, prompt, generation_config=None, request_options=None):
                fake.calls.append((model, dict(generation_config or {})))
                outcome = fake.outcomes.pop(0)
                if isinstance(outcome, Exception):
                    raise outcome
                return outcome

        return _Model()


class TestGemini:
    def _gateway(self, settings, outcomes):
        gateway = AIGateway(
            settings.model_copy(
                update={"gemini_api_key": "g-key", "gemini_model": "g-primary", "gemini_fallback_model": "g-fallback"}
            )
        )
        fake = _FakeGenai(outcomes)
        gateway._gemini_client = fake
        return gateway, fake

    @pytest.mark.asyncio
    async def test_success(self, settings):
        response = SimpleNamespace(
            text='{"a": 1}',
            usage_metadata=SimpleNamespace(prompt_token_count=3, candidates_token_count=4, total_token_count=7),
        )
        gateway, fake = self._gateway(settings, [response])
        result = await gateway.generate("write", purpose=AIPurpose.JSON_REPAIR)
        assert result.text == '{"a": 1}'
        assert result.usage.purpose == "json_repair"
        assert result.usage.total_tokens == 7
        assert fake.calls[0][1]["response_mime_type"] == "application/json"
        assert fake.calls[0][1]["max_output_tokens"] == settings.ai_max_output_tokens

    @pytest.mark.asyncio
    async def test_model_error_falls_back(self, settings):
        gateway, fake = self._gateway(
            settings,
            [_FakeGeminiError("model g-primary is not found", 404), SimpleNamespace(text="ok", usage_metadata=None)],
        )
        result = await gateway.generate("write")
        assert result.text == "ok"
        assert [call[0] for call in fake.calls] == ["g-primary", "g-fallback"]
        assert "response_mime_type" not in fake.calls[1][1]
