"""
Reduce captured profile HTML to a token-bounded prompt payload.

Two modes:
- PRESERVE_STRUCTURE narrows to the main profile container first, then strips
  non-content nodes but keeps classes and landmarks the model can use as hints.
- AGGRESSIVE_REDUCE keeps the whole page but also drops nav/header/footer/aside
  and every class/id/data-* attribute.
"""
from __future__ import annotations

import logging
import math
import re
from typing import Optional, Union

from bs4 import BeautifulSoup, Comment, Tag

from config.settings import Settings, get_settings
from models.extraction_request import OptimizationMode
from models.preprocessed_document import PreprocessedDocument
from services.errors import RequestValidationError


MAIN_CONTENT_MIN_CHARS = 1000

NON_CONTENT_TAGS = [
    "script", "style", "noscript", "template", "svg", "img", "picture", "source",
    "video", "audio", "iframe", "canvas", "object", "embed", "link", "meta", "li-icon",
]
LANDMARK_TAGS = ["nav", "header", "footer", "aside"]

_PROFILE_HINT = re.compile(r"profile", re.IGNORECASE)
_ICON_HINT = re.compile(r"icon", re.IGNORECASE)
_HAS_MARKUP = re.compile(r"<[^>]+>")


def estimate_tokens(text: str) -> int:
    """Rough token count; markup tokenizes worse than prose, so use 3 chars/token when tags remain."""
    if not text:
        return 0
    chars_per_token = 3 if _HAS_MARKUP.search(text) else 4
    return math.ceil(len(text) / chars_per_token)


def _find_main_content(soup: BeautifulSoup) -> Optional[Tag]:
    candidates = (
        lambda: soup.find("main"),
        lambda: soup.find(attrs={"role": "main"}),
        lambda: soup.find("section", class_=_PROFILE_HINT),
        lambda: soup.find("div", class_=_PROFILE_HINT),
        lambda: soup.find("div", id=_PROFILE_HINT),
    )
    for lookup in candidates:
        node = lookup()
        if isinstance(node, Tag) and len(str(node)) > MAIN_CONTENT_MIN_CHARS:
            return node
    return None


def _decompose_all(root: Tag, names) -> int:
    removed = 0
    for node in root.find_all(names):
        if node.decomposed:
            continue
        node.decompose()
        removed += 1
    return removed


def _strip_nodes(root: Tag, mode: OptimizationMode) -> None:
    for comment in root.find_all(string=lambda s: isinstance(s, Comment)):
        comment.extract()
    _decompose_all(root, NON_CONTENT_TAGS)
    # Decorative icon wrappers carry no text, only sprite references
    for node in root.find_all(class_=_ICON_HINT):
        if not node.decomposed and not node.get_text(strip=True):
            node.decompose()
    if mode is OptimizationMode.AGGRESSIVE_REDUCE:
        _decompose_all(root, LANDMARK_TAGS)


def _strip_attributes(root: Tag, mode: OptimizationMode) -> None:
    aggressive = mode is OptimizationMode.AGGRESSIVE_REDUCE
    nodes = [root] + root.find_all(True)
    for node in nodes:
        if not node.attrs:
            continue
        drop = []
        for name in node.attrs:
            low = name.lower()
            if low == "style" or low.startswith("on"):
                drop.append(name)
            elif aggressive and (low in ("class", "id") or low.startswith("data-")):
                drop.append(name)
        for name in drop:
            del node.attrs[name]


def _collapse_whitespace(text: str) -> str:
    text = re.sub(r">\s+<", "><", text)
    text = re.sub(r"\s+", " ", text)
    return text.strip()


def _reduce(html: str, mode: OptimizationMode) -> str:
    soup = BeautifulSoup(html, "html.parser")
    root: Union[BeautifulSoup, Tag] = soup
    if mode is OptimizationMode.PRESERVE_STRUCTURE:
        main = _find_main_content(soup)
        if main is not None:
            logging.debug(f"Main profile container found: {len(str(main)) / 1024:.2f} KB", extra={"step": "preprocess"})
            root = main
    _strip_nodes(root, mode)
    _strip_attributes(root, mode)
    return _collapse_whitespace(str(root))


def _strip_only(html: str) -> str:
    text = re.sub(r"<script[^>]*>[\s\S]*?</script>", "", html, flags=re.IGNORECASE)
    text = re.sub(r"<style[^>]*>[\s\S]*?</style>", "", text, flags=re.IGNORECASE)
    return re.sub(r"\s+", " ", text).strip()


def preprocess(html: str, mode: OptimizationMode) -> PreprocessedDocument:
    """Never raises: any parser failure degrades to a strip-only pass."""
    html = html or ""
    original_size = len(html.encode("utf-8"))
    fallback_used = False
    try:
        text = _reduce(html, mode)
    except Exception as e:  # bs4 tree surgery on hostile markup
        logging.warning(
            f"HTML preprocessing failed, using strip-only fallback: {e}",
            extra={"step": "preprocess", "status": "fallback", "error": type(e).__name__},
        )
        text = _strip_only(html)
        fallback_used = True

    final_size = len(text.encode("utf-8"))
    doc = PreprocessedDocument(
        text=text,
        original_size_bytes=original_size,
        final_size_bytes=final_size,
        estimated_tokens=estimate_tokens(text),
        mode=mode,
        fallback_used=fallback_used,
    )
    logging.info(
        f"Preprocessed HTML ({mode.value}): {original_size / 1024:.2f} KB -> {final_size / 1024:.2f} KB "
        f"({doc.reduction_pct}% reduction, ~{doc.estimated_tokens} tokens)",
        extra={"step": "preprocess", "status": "ok"},
    )
    return doc


def check_raw_size(html: str, settings: Optional[Settings] = None) -> None:
    settings = settings or get_settings()
    size_kb = len((html or "").encode("utf-8")) / 1024
    if size_kb > settings.max_html_kb:
        raise RequestValidationError(
            f"HTML too large: {size_kb:.2f} KB (max: {settings.max_html_kb} KB)",
            user_message="This profile page is too large to process.",
            status_hint=413,
        )


def check_token_budget(doc: PreprocessedDocument, settings: Optional[Settings] = None) -> None:
    settings = settings or get_settings()
    if doc.estimated_tokens > settings.max_input_tokens:
        raise RequestValidationError(
            f"Content too large: ~{doc.estimated_tokens} tokens (max: {settings.max_input_tokens})",
            user_message="This profile page is too large to process.",
            status_hint=413,
        )
