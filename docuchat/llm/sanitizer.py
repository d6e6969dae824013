"""Content-block repair for OpenAI-family chat payloads.

Older clients and alternate SDKs emit image parts as `input_image` or as
`image_url` with a bare string value. The chat-completions API rejects the whole
request when it meets either shape, so every outbound OpenAI message list goes
through `sanitize_openai_messages` first.

The pass is pure, never raises, and is idempotent: every shape it emits is
already canonical.
"""

LEGACY_IMAGE_TYPE = "input_image"
CANONICAL_IMAGE_TYPE = "image_url"

# Order matters: the first present field wins.
URL_FALLBACK_FIELDS = ("image_url", "image", "url", "data")


def _is_present(value) -> bool:
    # Containers count even when empty; an empty dict yields "" below.
    return isinstance(value, (dict, list)) or bool(value)


def _recover_url(part: dict) -> str:
    raw = ""
    for name in URL_FALLBACK_FIELDS:
        value = part.get(name)
        if _is_present(value):
            raw = value
            break
    if isinstance(raw, str):
        return raw
    if isinstance(raw, dict):
        url = raw.get("url")
        return url if isinstance(url, str) else ""
    return ""


def sanitize_openai_part(part):
    """Return `part` in canonical form; non-dict and canonical parts are returned as is."""
    if not isinstance(part, dict):
        return part

    kind = part.get("type")

    if kind == LEGACY_IMAGE_TYPE:
        return {"type": CANONICAL_IMAGE_TYPE, "image_url": {"url": _recover_url(part)}}

    if kind == CANONICAL_IMAGE_TYPE and isinstance(part.get("image_url"), str):
        return {"type": CANONICAL_IMAGE_TYPE, "image_url": {"url": part["image_url"]}}

    return part


def sanitize_openai_content(content):
    """Sanitize a list of content parts. `None` becomes an empty list."""
    return [sanitize_openai_part(part) for part in (content or [])]


def sanitize_openai_messages(messages):
    """Sanitize every message whose `content` is a list of parts.

    Messages with string content and non-dict entries pass through untouched.
    Input messages are not mutated.
    """
    sanitized = []
    for message in messages or []:
        if isinstance(message, dict) and isinstance(message.get("content"), list):
            message = {**message, "content": sanitize_openai_content(message["content"])}
        sanitized.append(message)
    return sanitized
