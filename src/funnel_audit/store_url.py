from __future__ import annotations

from typing import Optional
from urllib.parse import urlparse

from funnel_audit.exceptions import InvalidStoreUrlError

STORE_URL_REQUIRED = "Store URL is required"
INVALID_URL_FORMAT = "Invalid URL format"


def validate_store_url(url: Optional[str]) -> str:
    """Return the trimmed store URL, or raise InvalidStoreUrlError."""
    if url is None or not str(url).strip():
        raise InvalidStoreUrlError(STORE_URL_REQUIRED)
    url = str(url).strip()
    try:
        parsed = urlparse(url)
    except ValueError as e:
        raise InvalidStoreUrlError(INVALID_URL_FORMAT) from e
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        raise InvalidStoreUrlError(INVALID_URL_FORMAT)
    return url
