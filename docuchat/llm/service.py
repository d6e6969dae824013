"""Conversation entry points over the configured providers.

Architectural role:
    Bridges the HTTP adapter to the provider variants. Both entry points
    normalize their inputs into one `OutboundRequest`, validate it, resolve the
    provider handle, and delegate the call.

Parameter semantics:
    - `converse`: `temperature=0.6` for conversational chat.
    - `analyze`: `temperature=0.4` for extractive document analysis.

Failure scenarios:
    - `EmptyRequest` before any provider lookup when there is nothing to send.
    - `ProviderUnavailable` for unknown ids or providers without a credential.
    - `ProviderCallFailed` propagated from the provider transport.
"""

import logging
from typing import Mapping

from docuchat.llm.errors import EmptyRequest, ProviderUnavailable
from docuchat.llm.message_types import (
    OutboundRequest,
    ProviderReply,
    fold_history,
    parse_history,
)
from docuchat.llm.providers import ChatProvider


logger = logging.getLogger(__name__)

CHAT_TEMPERATURE = 0.6
ANALYSIS_TEMPERATURE = 0.4

DEFAULT_ANALYSIS_QUESTION = "Summarize this file."


def resolve_provider(providers: Mapping[str, ChatProvider | None], provider_id: str) -> ChatProvider:
    provider = providers.get(provider_id)
    if provider is None:
        raise ProviderUnavailable(provider_id)
    return provider


def _call(provider: ChatProvider, request: OutboundRequest, temperature: float) -> ProviderReply:
    reply = provider.converse(request, temperature=temperature)
    if not reply.text:
        logger.warning("%s returned no reply text", provider.provider_id)
    return reply


def converse(
    providers: Mapping[str, ChatProvider | None],
    provider_id: str,
    prompt: str,
    history=(),
    images=(),
    document_texts=(),
) -> ProviderReply:
    """Send a prompt plus prior dialogue and optional attachments to one provider.

    Args:
        providers: Provider handles built at startup (`build_providers`).
        provider_id: `openai` or `gemini`.
        prompt: Free-text user prompt; may be empty when attachments exist.
        history: Prior turns, oldest first, as `ConversationTurn` or raw dicts.
        images: `ImageBlock` attachments.
        document_texts: `DocumentText` attachments.

    Returns:
        `ProviderReply`; empty text means the provider produced no answer.
    """
    request = OutboundRequest(
        prompt=(prompt or "").strip(),
        history=tuple(fold_history(parse_history(history))),
        images=tuple(images),
        document_texts=tuple(document_texts),
    )
    if not request.prompt and not request.has_attachments():
        raise EmptyRequest()

    provider = resolve_provider(providers, provider_id)
    return _call(provider, request, CHAT_TEMPERATURE)


def build_analysis_prompt(question: str, has_documents: bool) -> str:
    question = (question or "").strip() or DEFAULT_ANALYSIS_QUESTION
    if has_documents:
        return f"You will get extracted text from files. Task: {question}"
    return f"Task: {question}"


def analyze(
    providers: Mapping[str, ChatProvider | None],
    provider_id: str,
    question: str,
    images=(),
    document_texts=(),
) -> ProviderReply:
    """Run a single-turn analysis task over attached files (no history)."""
    images = tuple(images)
    document_texts = tuple(document_texts)
    if not images and not document_texts:
        raise EmptyRequest("No files uploaded")

    request = OutboundRequest(
        prompt=build_analysis_prompt(question, has_documents=bool(document_texts)),
        images=images,
        document_texts=document_texts,
    )
    provider = resolve_provider(providers, provider_id)
    return _call(provider, request, ANALYSIS_TEMPERATURE)
