"""Provider/runtime configuration for the LLM layer.

Architectural role:
    Resolves credentials, model identifiers, and endpoints into one immutable
    `ProviderSettings` object. The object is built once at process start by the
    HTTP adapter and handed to `docuchat.llm.providers.build_providers`; nothing
    in the LLM layer reads the environment on its own.

Credential lookup:
    Environment variable first (`OPENAI_API_KEY`, `GEMINI_API_KEY`), then the
    matching key file under `config/`. A missing credential disables that
    provider instead of failing startup.
"""

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv


DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_GEMINI_MODEL = "gemini-1.5-flash"

DEFAULT_OPENAI_BASE_URL = "https://api.openai.com/v1"
DEFAULT_GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

DEFAULT_REQUEST_TIMEOUT = 120.0

KEY_FILES = {
    "openai": "config/openai.key",
    "gemini": "config/gemini.key",
}


@dataclass(frozen=True)
class ProviderSettings:
    """Resolved provider configuration.

    Attributes:
        openai_api_key: OpenAI credential or `None` when not configured.
        gemini_api_key: Gemini credential or `None` when not configured.
        openai_model: Chat-completions model identifier.
        gemini_model: generateContent model identifier.
        openai_base_url: OpenAI-compatible API root (no trailing slash).
        gemini_base_url: Generative Language API root (no trailing slash).
        request_timeout: Transport timeout in seconds for one provider call.
    """

    openai_api_key: str | None = field(default=None, repr=False)
    gemini_api_key: str | None = field(default=None, repr=False)
    openai_model: str = DEFAULT_OPENAI_MODEL
    gemini_model: str = DEFAULT_GEMINI_MODEL
    openai_base_url: str = DEFAULT_OPENAI_BASE_URL
    gemini_base_url: str = DEFAULT_GEMINI_BASE_URL
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT


def load_key(path):
    """Load API key from environment override or key file.

    Resolution order:
        1. Environment variable inferred from file stem (for example
           `config/openai.key` -> `OPENAI_API_KEY`).
        2. Raw file contents at `path`.

    Edge cases:
        - `None` path returns `None`.
        - Missing file or blank content returns `None`.
    """
    if not path:
        return None
    key_name = os.path.splitext(os.path.basename(path))[0].upper() + "_API_KEY"
    env_value = os.getenv(key_name)
    if env_value and env_value.strip():
        return env_value.strip()
    if not os.path.exists(path):
        return None
    with open(path, "r") as f:
        return f.read().strip() or None


def _env_or_default(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _timeout_from_env() -> float:
    raw = os.getenv("LLM_REQUEST_TIMEOUT")
    if raw is None or not raw.strip():
        return DEFAULT_REQUEST_TIMEOUT
    try:
        value = float(raw)
    except ValueError:
        return DEFAULT_REQUEST_TIMEOUT
    return value if value > 0 else DEFAULT_REQUEST_TIMEOUT


def load_settings() -> ProviderSettings:
    """Build `ProviderSettings` from `.env`, the process environment, and key files."""
    load_dotenv()
    return ProviderSettings(
        openai_api_key=load_key(KEY_FILES["openai"]),
        gemini_api_key=load_key(KEY_FILES["gemini"]),
        openai_model=_env_or_default("OPENAI_MODEL", DEFAULT_OPENAI_MODEL),
        gemini_model=_env_or_default("GEMINI_MODEL", DEFAULT_GEMINI_MODEL),
        openai_base_url=_env_or_default("OPENAI_BASE_URL", DEFAULT_OPENAI_BASE_URL).rstrip("/"),
        gemini_base_url=_env_or_default("GEMINI_BASE_URL", DEFAULT_GEMINI_BASE_URL).rstrip("/"),
        request_timeout=_timeout_from_env(),
    )
