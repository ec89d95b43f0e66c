"""Configuration for code-insight."""

import os
from dotenv import load_dotenv

load_dotenv()


def _split_csv(raw: str) -> list:
    return [part.strip() for part in raw.split(",") if part.strip()]


# Default provider used when a model spec carries no explicit "provider:" prefix.
DEFAULT_PROVIDER = os.getenv("CODE_INSIGHT_DEFAULT_PROVIDER", "gemini").strip().lower() or "gemini"

# Google Gemini (direct REST API; used with /models/{model}:generateContent)
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
GEMINI_API_BASE = os.getenv(
    "GEMINI_API_BASE",
    "https://generativelanguage.googleapis.com/v1beta",
)
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")

# Model used when a request does not override it. The fallback always routes
# GEMINI_MODEL to gemini, independent of DEFAULT_PROVIDER.
DEFAULT_MODEL = os.getenv("CODE_INSIGHT_DEFAULT_MODEL") or f"gemini:{GEMINI_MODEL}"

# OpenAI
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_API_BASE = os.getenv("OPENAI_API_BASE", "https://api.openai.com/v1")

# OpenRouter (OpenAI-compatible chat completions)
OPENROUTER_API_KEY = os.getenv("OPENROUTER_API_KEY")
OPENROUTER_API_BASE = os.getenv("OPENROUTER_API_BASE", "https://openrouter.ai/api/v1")

# Anthropic
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")
ANTHROPIC_API_BASE = os.getenv("ANTHROPIC_API_BASE", "https://api.anthropic.com")
# Anthropic API version is driven purely by environment configuration.
ANTHROPIC_API_VERSION = os.getenv("ANTHROPIC_API_VERSION")
ANTHROPIC_MAX_TOKENS = int(os.getenv("ANTHROPIC_MAX_TOKENS", "4096"))

# Generation parameters shared by every provider.
MAX_OUTPUT_TOKENS = int(os.getenv("LLM_MAX_OUTPUT_TOKENS", "100000"))
TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", "0.7"))
REQUEST_TIMEOUT = float(os.getenv("LLM_TIMEOUT", "120"))

# Optional log file; logs go to stderr when unset.
LOG_FILE = os.getenv("CODE_INSIGHT_LOG_FILE", "")
LOG_LEVEL = os.getenv("CODE_INSIGHT_LOG_LEVEL", "INFO")

# Additional traversal filters layered on top of the built-in policy.
EXTRA_SKIP_DIRS = _split_csv(os.getenv("CODE_INSIGHT_EXTRA_SKIP_DIRS", ""))
EXTRA_SKIP_EXTENSIONS = _split_csv(os.getenv("CODE_INSIGHT_EXTRA_SKIP_EXTENSIONS", ""))
