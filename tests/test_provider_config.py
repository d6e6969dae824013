import pytest

from docuchat.llm import provider_config
from docuchat.llm.provider_config import (
    DEFAULT_GEMINI_MODEL,
    DEFAULT_OPENAI_MODEL,
    DEFAULT_REQUEST_TIMEOUT,
    load_key,
    load_settings,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in (
        "OPENAI_API_KEY",
        "GEMINI_API_KEY",
        "OPENAI_MODEL",
        "GEMINI_MODEL",
        "OPENAI_BASE_URL",
        "GEMINI_BASE_URL",
        "LLM_REQUEST_TIMEOUT",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(provider_config, "load_dotenv", lambda: None)
    monkeypatch.chdir(tmp_path)


def test_defaults_without_credentials() -> None:
    settings = load_settings()

    assert settings.openai_api_key is None
    assert settings.gemini_api_key is None
    assert settings.openai_model == DEFAULT_OPENAI_MODEL == "gpt-4o-mini"
    assert settings.gemini_model == DEFAULT_GEMINI_MODEL == "gemini-1.5-flash"
    assert settings.request_timeout == DEFAULT_REQUEST_TIMEOUT


def test_environment_overrides(monkeypatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", " sk-env ")
    monkeypatch.setenv("GEMINI_MODEL", "gemini-2.0-flash")
    monkeypatch.setenv("OPENAI_BASE_URL", "http://localhost:8080/v1/")
    monkeypatch.setenv("LLM_REQUEST_TIMEOUT", "15")

    settings = load_settings()

    assert settings.openai_api_key == "sk-env"
    assert settings.gemini_model == "gemini-2.0-flash"
    assert settings.openai_base_url == "http://localhost:8080/v1"
    assert settings.request_timeout == 15.0


def test_invalid_timeout_falls_back_to_default(monkeypatch) -> None:
    monkeypatch.setenv("LLM_REQUEST_TIMEOUT", "soon")

    assert load_settings().request_timeout == DEFAULT_REQUEST_TIMEOUT


def test_key_file_is_used_when_env_missing(tmp_path) -> None:
    (tmp_path / "config").mkdir()
    (tmp_path / "config" / "gemini.key").write_text("g-file\n", encoding="utf-8")

    assert load_key("config/gemini.key") == "g-file"
    assert load_settings().gemini_api_key == "g-file"


def test_env_wins_over_key_file(monkeypatch, tmp_path) -> None:
    (tmp_path / "config").mkdir()
    (tmp_path / "config" / "openai.key").write_text("from-file", encoding="utf-8")
    monkeypatch.setenv("OPENAI_API_KEY", "from-env")

    assert load_key("config/openai.key") == "from-env"


def test_missing_or_blank_key_is_none(tmp_path) -> None:
    (tmp_path / "config").mkdir()
    (tmp_path / "config" / "openai.key").write_text("   ", encoding="utf-8")

    assert load_key(None) is None
    assert load_key("config/openai.key") is None
    assert load_key("config/gemini.key") is None
