from __future__ import annotations

from typing import Optional
import re
import unicodedata
from urllib.parse import unquote, urlparse


_INVISIBLE = ("\u200b", "\u200c", "\u200d", "\ufeff")


def clean_profile_url(url: Optional[str]) -> Optional[str]:
    """Canonical ``https://linkedin.com/in/<slug>`` form of a profile URL.

    Query string, fragment, trailing locale segments and regional subdomains
    (de., uk., www.) are dropped. Returns None for anything that is not a
    member profile URL.
    """
    if not url or not isinstance(url, str):
        return None
    text = url.strip()
    if not text:
        return None
    if not re.match(r"^[a-z][a-z0-9+.-]*://", text, re.IGNORECASE):
        text = f"https://{text}"
    u = urlparse(text)
    if u.scheme.lower() not in ("http", "https"):
        return None
    host = (u.hostname or "").lower()
    if host != "linkedin.com" and not host.endswith(".linkedin.com"):
        return None
    parts = [p for p in (u.path or "").split("/") if p]
    if len(parts) < 2 or parts[0].lower() != "in":
        return None
    # Decode percent-encoding and normalize Unicode; canonicalize to lowercase
    slug = unicodedata.normalize("NFKC", unquote(parts[1])).strip().lower()
    for ch in _INVISIBLE:
        slug = slug.replace(ch, "")
    if not slug:
        return None
    return f"https://linkedin.com/in/{slug}"
