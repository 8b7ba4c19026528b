"""Input validation utilities for company names and website URLs."""

from urllib.parse import urlparse

from reputation.exceptions import ValidationError

MAX_COMPANY_NAME_LENGTH = 200


def validate_url(url: str) -> tuple[bool, str]:
    """Validate a URL string.

    Args:
        url: The URL to validate.

    Returns:
        Tuple of (is_valid, error_message).  error_message is empty on success.
    """
    if not url or not isinstance(url, str):
        return False, "URL is empty or not a string."
    url = url.strip()
    try:
        parsed = urlparse(url)
    except Exception as exc:
        return False, f"URL parse error: {exc}"
    if parsed.scheme not in ("http", "https"):
        return False, f"Invalid scheme: {parsed.scheme!r}. Must be http or https."
    if not parsed.netloc:
        return False, "URL has no network location (domain)."
    hostname = parsed.hostname or ""
    if not hostname or len(hostname) > 253:
        return False, "Invalid hostname length."
    return True, ""


def has_scheme(url: str | None) -> bool:
    """True when *url* starts with ``http://`` or ``https://``."""
    return bool(url) and url.strip().lower().startswith(("http://", "https://"))


def require_company_name(name: object) -> str:
    """Return the stripped company name or raise :class:`ValidationError`."""
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("Company name is required")
    name = name.strip()
    if len(name) > MAX_COMPANY_NAME_LENGTH:
        raise ValidationError(
            f"Company name exceeds {MAX_COMPANY_NAME_LENGTH} characters"
        )
    return name
