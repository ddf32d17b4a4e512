from __future__ import annotations

from urllib.parse import urlparse


def is_valid_url(url: str) -> bool:
    """Basic URL validation."""
    try:
        result = urlparse(url)
        return all([result.scheme in ("http", "https"), result.netloc])
    except ValueError:
        return False


def extract_domain(url: str) -> str:
    """Extract the lower-cased hostname, or an empty string."""
    try:
        return (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""


def matches_domain_suffix(url: str, suffix: str) -> bool:
    """True when the URL's hostname ends with the country-code suffix (e.g. ``.de``)."""
    if not is_valid_url(url):
        return False
    host = extract_domain(url).rstrip(".")
    suffix = suffix.lower().strip()
    if not suffix:
        return True
    if not suffix.startswith("."):
        suffix = "." + suffix
    return host.endswith(suffix)
