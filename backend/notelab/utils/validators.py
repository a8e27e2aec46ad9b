"""
Input validation and sanitization.

The registration password policy (8+ chars, a letter and a digit) and the
looser reset-password minimum (6 chars) intentionally differ.
"""
import re
from typing import Any, List

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PASSWORD_PATTERN = re.compile(r"^(?=.*[A-Za-z])(?=.*\d)[A-Za-z\d@$!%*?&]{8,}$")
UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)
HEX_COLOR_PATTERN = re.compile(r"^#[0-9A-Fa-f]{6}$")

RESET_PASSWORD_MIN_LENGTH = 6
MAX_TAGS = 10
MAX_TAG_LENGTH = 50

_SCRIPT_BLOCK = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_EVENT_HANDLER = re.compile(r"on\w+\s*=", re.IGNORECASE)
_JS_SCHEME = re.compile(r"javascript:", re.IGNORECASE)
_DATA_SCHEME = re.compile(r"data:", re.IGNORECASE)

# Markdown constructs removed from previews, applied in order
_PREVIEW_RULES = (
    (re.compile(r"#{1,6}\s+"), ""),
    (re.compile(r"\*\*(.*?)\*\*"), r"\1"),
    (re.compile(r"\*(.*?)\*"), r"\1"),
    (re.compile(r"`(.*?)`"), r"\1"),
    (re.compile(r"!\[([^\]]*)\]\([^)]+\)"), ""),
    (re.compile(r"\[([^\]]+)\]\([^)]+\)"), r"\1"),
    (re.compile(r"```[\s\S]*?```"), ""),
    (re.compile(r"\n+"), " "),
)


def is_valid_email(email: Any) -> bool:
    return isinstance(email, str) and bool(EMAIL_PATTERN.match(email))


def is_valid_password(password: Any) -> bool:
    """Registration policy: at least 8 characters with a letter and a digit."""
    return isinstance(password, str) and bool(PASSWORD_PATTERN.match(password))


def is_valid_uuid(value: Any) -> bool:
    return isinstance(value, str) and bool(UUID_PATTERN.match(value))


def is_valid_hex_color(value: Any) -> bool:
    return isinstance(value, str) and bool(HEX_COLOR_PATTERN.match(value))


def sanitize_string(value: Any, max_length: int = 1000) -> str:
    """Trim and truncate; anything that is not a string becomes ''."""
    if not isinstance(value, str):
        return ""
    return value.strip()[:max_length]


def sanitize_html(html: Any) -> str:
    """Strip script blocks, inline event handlers and javascript:/data: URLs."""
    if not isinstance(html, str):
        return ""
    html = _SCRIPT_BLOCK.sub("", html)
    html = _EVENT_HANDLER.sub("", html)
    html = _JS_SCHEME.sub("", html)
    return _DATA_SCHEME.sub("", html)


def sanitize_tags(tags: Any) -> List[str]:
    """Keep at most MAX_TAGS tags, each trimmed to MAX_TAG_LENGTH."""
    if not isinstance(tags, (list, tuple)):
        return []
    return [sanitize_string(tag, MAX_TAG_LENGTH) for tag in list(tags)[:MAX_TAGS]]


def split_csv(value: str) -> List[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


def generate_preview(content: str, max_length: int = 150) -> str:
    """Plain-text excerpt of markdown content for note lists."""
    if not content:
        return ""

    text = content
    for pattern, replacement in _PREVIEW_RULES:
        text = pattern.sub(replacement, text)
    text = text.strip()

    if len(text) > max_length:
        return text[:max_length] + "..."
    return text


def email_local_part(email: str) -> str:
    return email.split("@", 1)[0]
