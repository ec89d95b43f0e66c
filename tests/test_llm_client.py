import json

import httpx
import pytest

from code_insight import llm_client
from code_insight.exceptions import ConfigError, ProviderError
from code_insight.llm_client import LLMClient, ProviderSettings


def make_client(handler, settings=None, default_model="gemini:gemini-2.5-flash"):
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return LLMClient(
        settings=settings or ProviderSettings(gemini_api_key="g-key", gemini_api_base="https://gemini.test/v1beta"),
        default_model=default_model,
        default_provider="gemini",
        timeout=5.0,
        http_client=http,
    )


def test_parse_model_spec_with_explicit_provider():
    assert llm_client.parse_model_spec("openai:gpt-4.1-mini") == ("openai", "gpt-4.1-mini")
    assert llm_client.parse_model_spec(" Gemini : gemini-2.5-pro ") == ("gemini", "gemini-2.5-pro")


def test_parse_model_spec_bare_name_uses_default_provider():
    assert llm_client.parse_model_spec("gemini-2.5-pro", "gemini") == ("gemini", "gemini-2.5-pro")
    assert llm_client.parse_model_spec("gpt-4.1", "openai") == ("openai", "gpt-4.1")


def test_parse_model_spec_vendor_prefixed_name_uses_openrouter():
    provider, name = llm_client.parse_model_spec("google/gemini-3-pro-preview", "gemini")
    assert provider == "openrouter"
    assert name == "google/gemini-3-pro-preview"


def test_supported_providers_include_expected_keys():
    assert {"gemini", "openai", "openrouter", "anthropic"} <= set(llm_client.PROVIDERS)


def test_to_gemini_contents_normalizes_roles_and_merges_consecutive():
    contents = llm_client._to_gemini_contents(
        [
            {"role": "system", "content": "sys"},
            {"role": "user", "content": "u1"},
            {"role": "assistant", "content": "a1"},
        ]
    )

    assert [c["role"] for c in contents] == ["user", "model"]
    assert "[SYSTEM]\nsys" in contents[0]["parts"][0]["text"]
    assert "u1" in contents[0]["parts"][0]["text"]


@pytest.mark.asyncio
async def test_generate_gemini_sends_prompt_and_generation_config():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["api_key"] = request.headers.get("x-goog-api-key")
        captured["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={"candidates": [{"content": {"parts": [{"text": "A tiny "}, {"text": "project."}]}}]},
        )

    client = make_client(handler)
    async with client:
        result = await client.generate("PROMPT TEXT")

    assert captured["url"] == "https://gemini.test/v1beta/models/gemini-2.5-flash:generateContent"
    assert captured["api_key"] == "g-key"
    assert captured["body"]["contents"] == [{"role": "user", "parts": [{"text": "PROMPT TEXT"}]}]
    assert captured["body"]["generationConfig"] == {"maxOutputTokens": 100_000, "temperature": 0.7}
    assert result.text == "A tiny \nproject."
    assert result.model == "gemini:gemini-2.5-flash"


@pytest.mark.asyncio
async def test_generate_model_override_applies_to_single_call():
    urls = []

    def handler(request: httpx.Request) -> httpx.Response:
        urls.append(str(request.url))
        return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": "ok"}]}}]})

    client = make_client(handler)
    first = await client.generate("p", model="gemini-2.5-pro")
    second = await client.generate("p")
    await client.aclose()

    assert urls[0].endswith("/models/gemini-2.5-pro:generateContent")
    assert urls[1].endswith("/models/gemini-2.5-flash:generateContent")
    assert first.model == "gemini-2.5-pro"
    assert second.model == "gemini:gemini-2.5-flash"


@pytest.mark.asyncio
async def test_generate_surfaces_provider_error_message():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            400,
            json={"error": {"code": 400, "message": "API key not valid. Please pass a valid API key."}},
        )

    client = make_client(handler)

    with pytest.raises(ProviderError) as excinfo:
        await client.generate("p")

    assert str(excinfo.value) == "API key not valid. Please pass a valid API key."
    assert excinfo.value.status_code == 400
    assert excinfo.value.provider == "gemini"


@pytest.mark.asyncio
async def test_generate_falls_back_to_exception_text_without_provider_message():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="upstream unavailable")

    client = make_client(handler)

    with pytest.raises(ProviderError) as excinfo:
        await client.generate("p")

    assert "503" in str(excinfo.value)
    assert excinfo.value.status_code == 503


@pytest.mark.asyncio
async def test_generate_does_not_retry():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    client = make_client(handler)

    with pytest.raises(ProviderError) as excinfo:
        await client.generate("p")

    assert "connection refused" in str(excinfo.value)
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_generate_reports_blocked_prompt():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"promptFeedback": {"blockReason": "SAFETY"}})

    client = make_client(handler)

    with pytest.raises(ProviderError, match="SAFETY"):
        await client.generate("p")


@pytest.mark.asyncio
async def test_generate_missing_credentials_raises_config_error():
    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover - never reached
        raise AssertionError("no request expected")

    client = make_client(handler, settings=ProviderSettings())

    with pytest.raises(ConfigError):
        await client.generate("p")


@pytest.mark.asyncio
async def test_generate_unknown_provider_raises_config_error():
    client = make_client(lambda request: httpx.Response(200))

    with pytest.raises(ConfigError, match="Unknown provider 'mystery'"):
        await client.generate("p", model="mystery:model-x")


@pytest.mark.asyncio
async def test_generate_openai_compatible_provider():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["auth"] = request.headers.get("authorization")
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"choices": [{"message": {"content": "openai answer"}}]})

    settings = ProviderSettings(openai_api_key="o-key", openai_api_base="https://openai.test/v1/")
    client = make_client(handler, settings=settings)

    result = await client.generate("hello", model="openai:gpt-4.1-mini")

    assert captured["url"] == "https://openai.test/v1/chat/completions"
    assert captured["auth"] == "Bearer o-key"
    assert captured["body"] == {"model": "gpt-4.1-mini", "messages": [{"role": "user", "content": "hello"}]}
    assert result.text == "openai answer"


@pytest.mark.asyncio
async def test_generate_anthropic_provider():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["version"] = request.headers.get("anthropic-version")
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"content": [{"type": "text", "text": "claude answer"}]})

    settings = ProviderSettings(
        anthropic_api_key="a-key",
        anthropic_api_base="https://anthropic.test",
        anthropic_api_version="2023-06-01",
        anthropic_max_tokens=2048,
    )
    client = make_client(handler, settings=settings)

    result = await client.generate("hello", model="anthropic:claude-sonnet-4")

    assert captured["url"] == "https://anthropic.test/v1/messages"
    assert captured["version"] == "2023-06-01"
    assert captured["body"]["max_tokens"] == 2048
    assert captured["body"]["messages"] == [{"role": "user", "content": "hello"}]
    assert result.text == "claude answer"


@pytest.mark.asyncio
async def test_generate_401_mentions_credentials():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": {"message": "Invalid token"}})

    settings = ProviderSettings(openrouter_api_key="bad", openrouter_api_base="https://openrouter.test/api/v1")
    client = make_client(handler, settings=settings)

    with pytest.raises(ProviderError) as excinfo:
        await client.generate("p", model="anthropic/claude-3.5-sonnet")

    assert "Invalid token" in str(excinfo.value)
    assert "401 Unauthorized" in str(excinfo.value)
    assert excinfo.value.provider == "openrouter"


@pytest.mark.asyncio
async def test_generate_rejects_empty_gemini_response():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"candidates": []})

    client = make_client(handler)

    with pytest.raises(ProviderError, match="Empty response from provider") as excinfo:
        await client.generate("p")

    assert excinfo.value.provider == "gemini"


@pytest.mark.asyncio
async def test_generate_empty_gemini_response_reports_finish_reason():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"candidates": [{"content": {"parts": []}, "finishReason": "MAX_TOKENS"}]})

    client = make_client(handler)

    with pytest.raises(ProviderError, match="finishReason: MAX_TOKENS"):
        await client.generate("p")
