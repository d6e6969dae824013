"""Error taxonomy for the provider adapter.

Architectural role:
    Every failure that can leave `docuchat.llm.service` is one of the classes
    below. The HTTP adapter maps them onto JSON error bodies through a single
    exception handler, so callers always receive either a reply or a
    structured error.

Retry behavior:
    None of these errors is retried by the core.
"""

PROVIDER_LABELS = {
    "openai": "OpenAI",
    "gemini": "Gemini",
}


class DocuChatError(Exception):
    """Base class for caller-visible adapter errors.

    Attributes:
        message: Short, user-facing error label.
        status_code: HTTP status the adapter layer should answer with.
        detail: Optional underlying message (provider error text).
    """

    status_code = 400

    def __init__(self, message: str, detail: str | None = None, status_code: int | None = None):
        super().__init__(message if detail is None else f"{message}: {detail}")
        self.message = message
        self.detail = detail
        if status_code is not None:
            self.status_code = status_code

    def to_payload(self) -> dict:
        """Return the JSON body used by the HTTP adapter."""
        payload = {"error": self.message}
        if self.detail:
            payload["detail"] = self.detail
        return payload


class EmptyRequest(DocuChatError):
    """No prompt text and no attachments were supplied."""

    def __init__(self, message: str = "Empty prompt"):
        super().__init__(message)


class ProviderUnavailable(DocuChatError):
    """The requested provider is unknown or has no configured credential."""

    def __init__(self, provider_id: str):
        label = PROVIDER_LABELS.get(provider_id, str(provider_id or "provider"))
        super().__init__(f"{label} key missing")
        self.provider_id = provider_id


class ProviderCallFailed(DocuChatError):
    """The provider rejected the request or the network call failed.

    `upstream_status` carries the provider's HTTP status when one was received.
    """

    status_code = 502

    def __init__(self, provider_id: str, detail: str, upstream_status: int | None = None):
        super().__init__("Provider call failed", detail=detail)
        self.provider_id = provider_id
        self.upstream_status = upstream_status

