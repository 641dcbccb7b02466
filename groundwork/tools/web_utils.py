from __future__ import annotations

import html
import re
from urllib.parse import urlparse


def is_valid_url(url: str) -> bool:
    """Basic URL validation."""
    try:
        result = urlparse(url)
        return all([result.scheme in ("http", "https"), result.netloc])
    except ValueError:
        return False


def normalize_host(url: str) -> str:
    try:
        host = (urlparse(url).hostname or "").lower().strip()
    except ValueError:
        return ""
    if host.startswith("www."):
        host = host[4:]
    return host


def strip_tags(text: str) -> str:
    """Remove markup and collapse whitespace."""
    cleaned = re.sub(r"<[^>]*>?", " ", text or "")
    cleaned = html.unescape(cleaned)
    return re.sub(r"\s+", " ", cleaned).strip()
