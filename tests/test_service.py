import pytest

from docuchat.llm.errors import EmptyRequest, ProviderUnavailable
from docuchat.llm.message_types import DocumentText, ImageBlock, OutboundRequest
from docuchat.llm.provider_config import ProviderSettings
from docuchat.llm.providers import OpenAIProvider, build_providers
from docuchat.llm.service import (
    ANALYSIS_TEMPERATURE,
    CHAT_TEMPERATURE,
    analyze,
    build_analysis_prompt,
    converse,
)
from tests.fakes import FakeResponse, FakeSession, RecordingProvider


IMAGE = ImageBlock(mime_type="image/jpeg", data="/9j/4AAQ", filename="photo.jpg")


def test_converse_normalizes_request(recording_provider) -> None:
    reply = converse(
        {"openai": recording_provider},
        "openai",
        "  What is this?  ",
        history=[
            {"role": "user", "content": "hi"},
            {"role": "assistant", "text": "hello"},
            {"role": "assistant", "content": "   "},
            {"role": "system", "content": "treated as user"},
        ],
        images=[IMAGE],
    )

    assert reply.text == "ok"
    request = recording_provider.calls[0]["request"]
    assert request.prompt == "What is this?"
    assert [(t.role, t.content) for t in request.history] == [
        ("user", "hi"),
        ("assistant", "hello"),
        ("user", "treated as user"),
    ]
    assert request.images == (IMAGE,)
    assert recording_provider.calls[0]["temperature"] == CHAT_TEMPERATURE


def test_converse_empty_prompt_without_attachments_fails_before_provider_lookup() -> None:
    provider = RecordingProvider()

    with pytest.raises(EmptyRequest):
        converse({"openai": provider}, "openai", "   ", history=[{"role": "user", "content": "earlier"}])

    with pytest.raises(EmptyRequest):
        converse({}, "unknown", "")

    assert provider.calls == []


def test_converse_allows_empty_prompt_with_document(recording_provider) -> None:
    converse({"openai": recording_provider}, "openai", "", document_texts=[DocumentText("a.txt", "alpha")])

    request = recording_provider.calls[0]["request"]
    assert request.prompt == ""
    assert request.document_texts == (DocumentText("a.txt", "alpha"),)


def test_missing_credential_is_unavailable_without_network_call() -> None:
    session = FakeSession()
    providers = build_providers(ProviderSettings(openai_api_key="sk"), session=session)

    with pytest.raises(ProviderUnavailable) as excinfo:
        converse(providers, "gemini", "hi")

    assert excinfo.value.message == "Gemini key missing"
    assert excinfo.value.status_code == 400
    assert session.calls == []


def test_unknown_provider_is_unavailable(recording_provider) -> None:
    with pytest.raises(ProviderUnavailable):
        converse({"openai": recording_provider}, "anthropic", "hi")

    assert recording_provider.calls == []


def test_analyze_uses_lower_temperature_and_no_history() -> None:
    session = FakeSession(FakeResponse(body={"choices": [{"message": {"content": "summary"}}]}))
    provider = OpenAIProvider(
        api_key="sk", model="gpt-4o-mini", base_url="https://api.openai.com/v1", timeout=5, session=session
    )
    providers = {"openai": provider}

    analyze(providers, "openai", "Summarize", document_texts=[DocumentText("r.txt", "body")])
    converse(providers, "openai", "Summarize", document_texts=[DocumentText("r.txt", "body")])

    analysis_payload, chat_payload = (call["json"] for call in session.calls)
    assert analysis_payload["temperature"] == ANALYSIS_TEMPERATURE == 0.4
    assert chat_payload["temperature"] == CHAT_TEMPERATURE == 0.6
    assert analysis_payload["temperature"] < chat_payload["temperature"]
    assert analysis_payload["messages"] == [
        {
            "role": "user",
            "content": [
                {"type": "text", "text": "You will get extracted text from files. Task: Summarize"},
                {"type": "text", "text": "--- r.txt ---\nbody\n"},
            ],
        }
    ]


def test_analyze_images_only_uses_plain_task_framing(recording_provider) -> None:
    analyze({"openai": recording_provider}, "openai", "", images=[IMAGE])

    request = recording_provider.calls[0]["request"]
    assert request.prompt == "Task: Summarize this file."
    assert request.history == ()


def test_analyze_without_files_is_empty_request(recording_provider) -> None:
    with pytest.raises(EmptyRequest) as excinfo:
        analyze({"openai": recording_provider}, "openai", "Summarize")

    assert excinfo.value.message == "No files uploaded"


def test_build_analysis_prompt() -> None:
    assert build_analysis_prompt("Find totals", has_documents=True) == (
        "You will get extracted text from files. Task: Find totals"
    )
    assert build_analysis_prompt("  ", has_documents=False) == "Task: Summarize this file."


def test_empty_reply_is_returned_as_empty_text() -> None:
    provider = RecordingProvider(text="")

    reply = converse({"openai": provider}, "openai", "hi")

    assert reply.text == ""


def test_outbound_request_attachment_flag() -> None:
    assert not OutboundRequest(prompt="x").has_attachments()
    assert OutboundRequest(images=(IMAGE,)).has_attachments()
