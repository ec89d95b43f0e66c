"""Model invocation for code-insight.

``LLMClient`` is the single boundary to the text-generation provider: it takes
a finished prompt and returns generated text. It is constructed once (by the
CLI or the embedding application) and passed explicitly to the analysis
pipeline. Providers are selected from a ``provider:model`` spec string; a bare
model name uses the configured default provider.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

import httpx

from . import config
from .exceptions import ConfigError, ProviderError
from .logging import logger

GENERIC_FAILURE = "Failed to generate content"


@dataclass(frozen=True)
class ProviderSettings:
    """Credentials and generation parameters for every supported provider."""

    gemini_api_key: Optional[str] = None
    gemini_api_base: Optional[str] = None
    openai_api_key: Optional[str] = None
    openai_api_base: Optional[str] = None
    openrouter_api_key: Optional[str] = None
    openrouter_api_base: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    anthropic_api_base: Optional[str] = None
    anthropic_api_version: Optional[str] = None
    anthropic_max_tokens: int = 4096
    max_output_tokens: int = 100_000
    temperature: float = 0.7

    @classmethod
    def from_config(cls) -> "ProviderSettings":
        return cls(
            gemini_api_key=config.GEMINI_API_KEY,
            gemini_api_base=config.GEMINI_API_BASE,
            openai_api_key=config.OPENAI_API_KEY,
            openai_api_base=config.OPENAI_API_BASE,
            openrouter_api_key=config.OPENROUTER_API_KEY,
            openrouter_api_base=config.OPENROUTER_API_BASE,
            anthropic_api_key=config.ANTHROPIC_API_KEY,
            anthropic_api_base=config.ANTHROPIC_API_BASE,
            anthropic_api_version=config.ANTHROPIC_API_VERSION,
            anthropic_max_tokens=config.ANTHROPIC_MAX_TOKENS,
            max_output_tokens=config.MAX_OUTPUT_TOKENS,
            temperature=config.TEMPERATURE,
        )


@dataclass(frozen=True)
class Generation:
    text: str
    model: str


Messages = List[Dict[str, str]]
ProviderFn = Callable[[httpx.AsyncClient, ProviderSettings, str, Messages, float], Awaitable[str]]


def parse_model_spec(spec: str, default_provider: Optional[str] = None) -> Tuple[str, str]:
    """Parse a model spec into (provider, model_name).

    Examples:
        "openai:gpt-4.1-mini" -> ("openai", "gpt-4.1-mini")
        "gemini-2.5-pro" -> (default provider, "gemini-2.5-pro")
        "google/gemini-3-pro-preview" -> ("openrouter", "google/gemini-3-pro-preview")
    """
    fallback = (default_provider or config.DEFAULT_PROVIDER).lower()
    spec = spec.strip()
    if ":" in spec:
        provider, model_name = spec.split(":", 1)
        return provider.strip().lower() or fallback, model_name.strip()

    # Vendor-prefixed ids such as "anthropic/claude-3.5-sonnet" are OpenRouter-style.
    if "/" in spec:
        return "openrouter", spec
    return fallback, spec


def _to_gemini_contents(messages: Messages) -> List[Dict[str, Any]]:
    """Convert chat messages into Gemini contents, merging same-role turns."""
    contents: List[Dict[str, Any]] = []
    for msg in messages:
        role = "model" if msg.get("role") == "assistant" else "user"
        text = msg.get("content", "")
        if msg.get("role") == "system":
            text = "[SYSTEM]\n" + text

        if contents and contents[-1]["role"] == role:
            contents[-1]["parts"][0]["text"] += "\n\n" + text
        else:
            contents.append({"role": role, "parts": [{"text": text}]})
    return contents


async def _query_gemini(
    http: httpx.AsyncClient,
    settings: ProviderSettings,
    model_name: str,
    messages: Messages,
    timeout: float,
) -> str:
    if not settings.gemini_api_key or not settings.gemini_api_base:
        raise ConfigError("Missing GEMINI_API_KEY or GEMINI_API_BASE", provider="gemini", model=model_name)

    url = f"{settings.gemini_api_base.rstrip('/')}/models/{model_name}:generateContent"
    headers = {
        "Content-Type": "application/json",
        "x-goog-api-key": settings.gemini_api_key,
    }
    payload: Dict[str, Any] = {
        "contents": _to_gemini_contents(messages),
        "generationConfig": {
            "maxOutputTokens": settings.max_output_tokens,
            "temperature": settings.temperature,
        },
    }

    response = await http.post(url, headers=headers, json=payload, timeout=timeout)
    response.raise_for_status()
    data = response.json()

    # Candidates may hold several text parts; they are joined in order.
    text_chunks: List[str] = []
    for candidate in data.get("candidates", []):
        content = candidate.get("content") or {}
        for part in content.get("parts", []):
            piece = part.get("text")
            if isinstance(piece, str):
                text_chunks.append(piece)

    text = "\n".join(text_chunks).strip()
    if not text:
        block_reason = (data.get("promptFeedback") or {}).get("blockReason")
        if block_reason:
            raise ProviderError(f"Prompt blocked by provider: {block_reason}", provider="gemini", model=model_name)
        finish_reasons = [c.get("finishReason") for c in data.get("candidates", []) if c.get("finishReason")]
        detail = f" (finishReason: {', '.join(finish_reasons)})" if finish_reasons else ""
        raise ProviderError(f"Empty response from provider{detail}", provider="gemini", model=model_name)

    return text


async def _query_openai_like(
    http: httpx.AsyncClient,
    provider: str,
    api_key: Optional[str],
    api_base: Optional[str],
    model_name: str,
    messages: Messages,
    timeout: float,
) -> str:
    """OpenAI-compatible /chat/completions client (OpenAI, OpenRouter)."""
    if not api_key or not api_base:
        raise ConfigError(
            f"Missing API key or base URL for provider '{provider}'",
            provider=provider,
            model=model_name,
        )

    headers = {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
    }
    payload = {"model": model_name, "messages": messages}
    url = api_base.rstrip("/") + "/chat/completions"

    response = await http.post(url, headers=headers, json=payload, timeout=timeout)
    response.raise_for_status()
    data = response.json()
    return data["choices"][0]["message"].get("content") or ""


async def _query_openai(http, settings: ProviderSettings, model_name, messages, timeout) -> str:
    return await _query_openai_like(
        http, "openai", settings.openai_api_key, settings.openai_api_base, model_name, messages, timeout
    )


async def _query_openrouter(http, settings: ProviderSettings, model_name, messages, timeout) -> str:
    return await _query_openai_like(
        http, "openrouter", settings.openrouter_api_key, settings.openrouter_api_base, model_name, messages, timeout
    )


async def _query_anthropic(
    http: httpx.AsyncClient,
    settings: ProviderSettings,
    model_name: str,
    messages: Messages,
    timeout: float,
) -> str:
    if not settings.anthropic_api_key or not settings.anthropic_api_base or not settings.anthropic_api_version:
        raise ConfigError(
            "Missing Anthropic configuration (ANTHROPIC_API_KEY, ANTHROPIC_API_BASE, or ANTHROPIC_API_VERSION)",
            provider="anthropic",
            model=model_name,
        )

    url = f"{settings.anthropic_api_base.rstrip('/')}/v1/messages"
    headers = {
        "Content-Type": "application/json",
        "x-api-key": settings.anthropic_api_key,
        "anthropic-version": settings.anthropic_api_version,
    }
    system = "\n\n".join(m.get("content", "") for m in messages if m.get("role") == "system")
    payload: Dict[str, Any] = {
        "model": model_name,
        "messages": [m for m in messages if m.get("role") != "system"],
        "max_tokens": settings.anthropic_max_tokens,
        "temperature": settings.temperature,
    }
    if system:
        payload["system"] = system

    response = await http.post(url, headers=headers, json=payload, timeout=timeout)
    response.raise_for_status()
    data = response.json()

    text_chunks = [
        block["text"]
        for block in data.get("content", [])
        if block.get("type") == "text" and isinstance(block.get("text"), str)
    ]
    return "\n".join(text_chunks).strip()


PROVIDERS: Dict[str, ProviderFn] = {
    "gemini": _query_gemini,
    "openai": _query_openai,
    "openrouter": _query_openrouter,
    "anthropic": _query_anthropic,
}


def _provider_error_message(response: httpx.Response) -> Optional[str]:
    """Extract the provider's own error text from an error response body."""
    try:
        data = response.json()
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None

    error = data.get("error")
    if isinstance(error, dict) and isinstance(error.get("message"), str):
        return error["message"]
    if isinstance(error, str):
        return error
    if isinstance(data.get("message"), str):
        return data["message"]
    return None


class LLMClient:
    """Handle to the text-generation provider.

    Usage::

        async with LLMClient.from_config() as client:
            result = await client.generate("Summarize ...", model="gemini:gemini-2.5-pro")
    """

    def __init__(
        self,
        settings: Optional[ProviderSettings] = None,
        default_model: Optional[str] = None,
        default_provider: Optional[str] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.settings = settings or ProviderSettings()
        self.default_model = default_model or config.DEFAULT_MODEL
        self.default_provider = default_provider or config.DEFAULT_PROVIDER
        self.timeout = timeout if timeout is not None else config.REQUEST_TIMEOUT
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=self.timeout)

    @classmethod
    def from_config(cls, http_client: Optional[httpx.AsyncClient] = None) -> "LLMClient":
        return cls(settings=ProviderSettings.from_config(), http_client=http_client)

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> "LLMClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def generate(self, prompt: str, model: Optional[str] = None) -> Generation:
        """Send ``prompt`` to the provider and return its text.

        Args:
            prompt: The finished prompt, sent unmodified.
            model: Optional model spec overriding ``default_model`` for this call.

        Raises:
            ConfigError: Unknown provider or missing credentials.
            ProviderError: Any other provider failure. Never retried.
        """
        spec = (model or self.default_model).strip()
        provider, model_name = parse_model_spec(spec, self.default_provider)
        provider_fn = PROVIDERS.get(provider)
        if provider_fn is None:
            known_providers = ", ".join(sorted(PROVIDERS.keys()))
            raise ConfigError(
                f"Unknown provider '{provider}' in model spec '{spec}'. Expected one of: {known_providers}.",
                provider=provider,
                model=model_name,
            )

        messages = [{"role": "user", "content": prompt}]
        logger.info("llm.request", provider=provider, model=model_name, prompt_chars=len(prompt))

        try:
            text = await provider_fn(self._http, self.settings, model_name, messages, self.timeout)
        except ProviderError as e:
            logger.error("llm.failed", provider=provider, model=model_name, error=str(e))
            raise
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            message = _provider_error_message(e.response) or str(e) or GENERIC_FAILURE
            if status == 401:
                message = f"{message} (401 Unauthorized: check API key or credentials)"
            logger.error("llm.failed", provider=provider, model=model_name, status=status, error=message)
            raise ProviderError(message, provider=provider, model=model_name, status_code=status) from e
        except Exception as e:
            message = str(e) or GENERIC_FAILURE
            logger.error("llm.failed", provider=provider, model=model_name, error=message)
            raise ProviderError(message, provider=provider, model=model_name) from e

        logger.info("llm.response", provider=provider, model=model_name, response_chars=len(text))
        return Generation(text=text, model=spec)


__all__ = [
    "LLMClient",
    "Generation",
    "ProviderSettings",
    "PROVIDERS",
    "parse_model_spec",
]
