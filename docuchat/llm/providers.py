"""Provider-specific transport clients for chat requests.

Architectural role:
    Each provider variant turns a normalized `OutboundRequest` into its own wire
    payload, performs one HTTP call, and extracts the primary reply text.

Model invocation flow:
    `service.converse/analyze` -> `ChatProvider.converse(request, temperature)`
    -> `build_payload` -> `requests` POST -> `extract_reply`.

Retry behavior:
    No retry loop is implemented. Each HTTP call is attempted once with the
    configured timeout through module-level `requests.post`, so worker threads
    share no connection state. Tests inject any object with a compatible
    `post` method.

Failure handling model:
    Transport errors, HTTP error statuses, and unreadable response bodies are
    converted into `ProviderCallFailed` carrying the provider's own message when
    the body has one. A well-formed body whose reply fields have the wrong shape
    is treated as an empty reply. Nothing else is raised.
"""

import logging
from typing import Mapping, Protocol

import requests

from docuchat.llm.errors import ProviderCallFailed
from docuchat.llm.message_types import (
    ASSISTANT_ROLE,
    ImageBlock,
    OutboundRequest,
    ProviderReply,
    TextBlock,
    fold_history,
    fold_user_turn,
)
from docuchat.llm.provider_config import ProviderSettings
from docuchat.llm.sanitizer import sanitize_openai_messages


logger = logging.getLogger(__name__)

OPENAI = "openai"
GEMINI = "gemini"


class ChatProvider(Protocol):
    """Capability shared by every provider variant."""

    provider_id: str

    def converse(self, request: OutboundRequest, *, temperature: float) -> ProviderReply:
        """Send one normalized request and return the trimmed reply text."""
        ...


def _error_message(response: requests.Response) -> str:
    """Pull the provider's error message out of an error response body."""
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error

    text = (response.text or "").strip()
    if text:
        return text[:500]
    return f"HTTP {response.status_code}"


def _post_json(session, provider_id: str, url: str, headers: dict, payload: dict, timeout: float) -> dict:
    """POST `payload` and return the decoded JSON body or raise `ProviderCallFailed`."""
    try:
        response = session.post(url, headers=headers, json=payload, timeout=timeout)
    except requests.exceptions.RequestException as err:
        logger.exception("%s request failed", provider_id)
        raise ProviderCallFailed(provider_id, str(err) or err.__class__.__name__) from err

    if response.status_code >= 400:
        message = _error_message(response)
        logger.error("%s returned HTTP %s: %s", provider_id, response.status_code, message)
        raise ProviderCallFailed(provider_id, message, upstream_status=response.status_code)

    try:
        data = response.json()
    except ValueError as err:
        raise ProviderCallFailed(provider_id, "Provider returned a non-JSON response") from err

    if not isinstance(data, dict):
        raise ProviderCallFailed(provider_id, "Provider returned an unexpected response shape")
    return data


class OpenAIProvider:
    """OpenAI-family chat-completions client."""

    provider_id = OPENAI

    def __init__(self, *, api_key: str, model: str, base_url: str, timeout: float, session=None):
        self._api_key = api_key
        self.model = model
        self._url = f"{base_url.rstrip('/')}/chat/completions"
        self._timeout = timeout
        self._session = session if session is not None else requests

    def build_messages(self, request: OutboundRequest) -> list[dict]:
        messages = [
            {"role": turn.role, "content": turn.content}
            for turn in fold_history(request.history)
        ]

        content = []
        for block in fold_user_turn(request):
            if isinstance(block, ImageBlock):
                content.append({"type": "image_url", "image_url": {"url": block.data_uri}})
            else:
                content.append({"type": "text", "text": block.text})
        messages.append({"role": "user", "content": content})

        return sanitize_openai_messages(messages)

    def build_payload(self, request: OutboundRequest, *, temperature: float) -> dict:
        return {
            "model": self.model,
            "messages": self.build_messages(request),
            "temperature": temperature,
        }

    @staticmethod
    def extract_reply(data: dict) -> ProviderReply:
        choices = data.get("choices")
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            return ProviderReply(text="")
        message = choices[0].get("message") or {}
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str):
            return ProviderReply(text="")
        return ProviderReply(text=content.strip())

    def converse(self, request: OutboundRequest, *, temperature: float) -> ProviderReply:
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }
        payload = self.build_payload(request, temperature=temperature)
        data = _post_json(self._session, self.provider_id, self._url, headers, payload, self._timeout)
        return self.extract_reply(data)


class GeminiProvider:
    """Gemini-family generateContent client.

    Content is assembled from typed blocks only, so no sanitation pass is needed.
    """

    provider_id = GEMINI

    def __init__(self, *, api_key: str, model: str, base_url: str, timeout: float, session=None):
        self._api_key = api_key
        self.model = model
        self._url = f"{base_url.rstrip('/')}/models/{model}:generateContent"
        self._timeout = timeout
        self._session = session if session is not None else requests

    def build_contents(self, request: OutboundRequest) -> list[dict]:
        contents = [
            {
                "role": "model" if turn.role == ASSISTANT_ROLE else "user",
                "parts": [{"text": turn.content}],
            }
            for turn in fold_history(request.history)
        ]

        parts = []
        for block in fold_user_turn(request):
            if isinstance(block, ImageBlock):
                parts.append({"inlineData": {"data": block.data, "mimeType": block.mime_type}})
            elif isinstance(block, TextBlock):
                parts.append({"text": block.text})
        contents.append({"role": "user", "parts": parts})

        return contents

    def build_payload(self, request: OutboundRequest, *, temperature: float) -> dict:
        return {
            "contents": self.build_contents(request),
            "generationConfig": {"temperature": temperature},
        }

    @staticmethod
    def extract_reply(data: dict) -> ProviderReply:
        candidates = data.get("candidates")
        if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], dict):
            return ProviderReply(text="")
        content = candidates[0].get("content") or {}
        parts = content.get("parts") if isinstance(content, dict) else None
        if not isinstance(parts, list):
            return ProviderReply(text="")
        texts = [
            part["text"]
            for part in parts
            if isinstance(part, dict) and isinstance(part.get("text"), str)
        ]
        return ProviderReply(text="".join(texts).strip())

    def converse(self, request: OutboundRequest, *, temperature: float) -> ProviderReply:
        headers = {
            "x-goog-api-key": self._api_key,
            "Content-Type": "application/json",
        }
        payload = self.build_payload(request, temperature=temperature)
        data = _post_json(self._session, self.provider_id, self._url, headers, payload, self._timeout)
        return self.extract_reply(data)


def build_providers(settings: ProviderSettings, session=None) -> Mapping[str, ChatProvider | None]:
    """Construct provider handles once from settings.

    Providers without a credential map to `None`; the service layer reports
    them as unavailable instead of attempting a call.
    """
    providers: dict[str, ChatProvider | None] = {OPENAI: None, GEMINI: None}

    if settings.openai_api_key:
        providers[OPENAI] = OpenAIProvider(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            base_url=settings.openai_base_url,
            timeout=settings.request_timeout,
            session=session,
        )

    if settings.gemini_api_key:
        providers[GEMINI] = GeminiProvider(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            base_url=settings.gemini_base_url,
            timeout=settings.request_timeout,
            session=session,
        )

    logger.info(
        "Providers configured: %s",
        ", ".join(name for name, provider in providers.items() if provider is not None) or "none",
    )
    return providers
