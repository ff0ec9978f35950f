"""
Shared validation functions for bookmark input.

The dashboard client validates form input with these functions before anything
is sent to the API, and the API schemas re-apply them so the backend never
trusts the client's checks.
"""
import re

from pydantic import AnyUrl, TypeAdapter, ValidationError

from core.config import get_settings

# Any explicit http/https scheme, case-insensitive ("HTTP://Example.com" is kept as-is)
SCHEME_PATTERN = re.compile(r"^https?://", re.IGNORECASE)

DEFAULT_SCHEME = "https://"

_url_adapter = TypeAdapter(AnyUrl)


def normalize_url(raw: str) -> str:
    """
    Normalize user-entered link text.

    Trims surrounding whitespace and prefixes ``https://`` when no http(s)
    scheme is present. Empty input stays empty so callers can report it as
    missing rather than invalid.
    """
    trimmed = raw.strip()
    if not trimmed:
        return trimmed
    if SCHEME_PATTERN.match(trimmed):
        return trimmed
    return f"{DEFAULT_SCHEME}{trimmed}"


def is_valid_url(url: str) -> bool:
    """Return True if ``url`` parses as an absolute URL with a host."""
    if not url:
        return False
    try:
        parsed = _url_adapter.validate_python(url)
    except ValidationError:
        return False
    return bool(parsed.host)


def validate_title(title: str) -> str:
    """
    Validate and trim a bookmark title.

    Raises:
        ValueError: If the title is blank or exceeds the configured maximum length.
    """
    settings = get_settings()
    trimmed = title.strip()
    if not trimmed:
        raise ValueError("Title is required")
    if len(trimmed) > settings.max_title_length:
        raise ValueError(
            f"Title exceeds maximum length of {settings.max_title_length:,} characters "
            f"(got {len(trimmed):,} characters).",
        )
    return trimmed


def validate_url(url: str) -> str:
    """
    Normalize and validate a bookmark URL.

    Raises:
        ValueError: If the URL is blank, too long, or does not parse.
    """
    settings = get_settings()
    normalized = normalize_url(url)
    if not normalized:
        raise ValueError("URL is required")
    if len(normalized) > settings.max_url_length:
        raise ValueError(
            f"URL exceeds maximum length of {settings.max_url_length:,} characters "
            f"(got {len(normalized):,} characters).",
        )
    if not is_valid_url(normalized):
        raise ValueError("Please enter a valid URL")
    return normalized
