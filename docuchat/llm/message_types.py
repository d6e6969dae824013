"""Provider-agnostic conversation data contracts.

Architectural role:
    Defines the normalized request shape consumed by every provider variant and
    the content-block union used to assemble the final user turn.

Folding rules (shared by all providers):
    - History turns with blank content are dropped.
    - The final user turn is ordered: prompt text, one synthetic document block,
      then one block per image.
    - A turn that would be empty gets a single placeholder text block.
"""

from dataclasses import dataclass, field
from typing import Union


PLACEHOLDER_TEXT = "(no content)"
ASSISTANT_ROLE = "assistant"
USER_ROLE = "user"


@dataclass(frozen=True)
class ConversationTurn:
    """One prior dialogue message; `role` is `user` or `assistant`."""

    role: str
    content: str

    @classmethod
    def from_raw(cls, raw) -> "ConversationTurn":
        """Parse a loosely shaped history entry.

        `content` is used when it is a string, otherwise `text`; anything else
        yields an empty turn. Roles other than `assistant` become `user`.
        """
        if not isinstance(raw, dict):
            return cls(role=USER_ROLE, content="")
        content = raw.get("content")
        if not isinstance(content, str):
            content = raw.get("text")
        if not isinstance(content, str):
            content = ""
        role = ASSISTANT_ROLE if raw.get("role") == ASSISTANT_ROLE else USER_ROLE
        return cls(role=role, content=content)

    def is_blank(self) -> bool:
        return not self.content.strip()


@dataclass(frozen=True)
class TextBlock:
    text: str


@dataclass(frozen=True)
class ImageBlock:
    """Inline image attachment, carried as base64 data plus its MIME type."""

    mime_type: str
    data: str
    filename: str = ""

    @property
    def data_uri(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"


ContentBlock = Union[TextBlock, ImageBlock]


@dataclass(frozen=True)
class DocumentText:
    """Extracted plain text of a non-image attachment."""

    filename: str
    text: str


@dataclass(frozen=True)
class OutboundRequest:
    """Normalized request rebuilt from scratch for every provider call."""

    prompt: str = ""
    history: tuple[ConversationTurn, ...] = field(default_factory=tuple)
    images: tuple[ImageBlock, ...] = field(default_factory=tuple)
    document_texts: tuple[DocumentText, ...] = field(default_factory=tuple)

    def has_attachments(self) -> bool:
        return bool(self.images or self.document_texts)


@dataclass(frozen=True)
class ProviderReply:
    """Primary reply text. Empty text means "no answer", not failure."""

    text: str = ""


def parse_history(raw_history) -> list[ConversationTurn]:
    """Convert caller-supplied history entries to turns, preserving order."""
    if not isinstance(raw_history, (list, tuple)):
        return []
    turns = []
    for item in raw_history:
        if isinstance(item, ConversationTurn):
            turns.append(item)
        else:
            turns.append(ConversationTurn.from_raw(item))
    return turns


def fold_history(history) -> list[ConversationTurn]:
    """Drop blank turns; the relative order of the remaining turns is kept."""
    return [turn for turn in history if not turn.is_blank()]


def build_document_block(document_texts) -> TextBlock | None:
    """Concatenate document texts into one block, each under a `--- name ---` header.

    Documents whose text is blank are skipped. Returns `None` when nothing is left.
    """
    sections = []
    for doc in document_texts:
        body = (doc.text or "").strip()
        if not body:
            continue
        sections.append(f"--- {doc.filename} ---\n{body}\n")
    if not sections:
        return None
    return TextBlock(text="".join(sections))


def fold_user_turn(request: OutboundRequest) -> list[ContentBlock]:
    """Build the ordered content blocks of the final user turn."""
    blocks: list[ContentBlock] = []

    prompt = request.prompt.strip()
    if prompt:
        blocks.append(TextBlock(text=prompt))

    document_block = build_document_block(request.document_texts)
    if document_block is not None:
        blocks.append(document_block)

    blocks.extend(request.images)

    if not blocks:
        blocks.append(TextBlock(text=PLACEHOLDER_TEXT))
    return blocks
