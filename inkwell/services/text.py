"""
Slug and text helpers for post records.

Pure functions: slugs, excerpts, read time, tag and author normalization,
plus the denormalized search document sent to the search index.
"""

import math
import re
import unicodedata
from typing import Any, Iterable, Optional

from pydantic import BaseModel

from inkwell.models.post import Author, Post

EXCERPT_LENGTH = 220
SEO_DESCRIPTION_LENGTH = 160
WORDS_PER_MINUTE = 220
MAX_TAGS = 10
ELLIPSIS = "…"

_COMBINING_MARKS = re.compile(r"[\u0300-\u036f]")
_NON_SLUG_CHARS = re.compile(r"[^a-z0-9\s-]")
_SEPARATOR_RUNS = re.compile(r"[\s_-]+")
_WHITESPACE = re.compile(r"\s+")


def to_slug(value: Any = "") -> str:
    """
    Normalize text into a URL-friendly slug.

    Strips diacritics, drops anything outside [a-z0-9 -], collapses separator
    runs to one hyphen and trims hyphens from both ends. Empty input gives an
    empty string; callers supply their own fallback.

    Examples:
        to_slug("Café Society!") -> "cafe-society"
        to_slug("  -- ") -> ""
    """
    if value is None:
        return ""
    text = unicodedata.normalize("NFD", str(value).strip().lower())
    text = _COMBINING_MARKS.sub("", text)
    text = _NON_SLUG_CHARS.sub("", text)
    text = _SEPARATOR_RUNS.sub("-", text)
    return text.strip("-")


def build_excerpt(content: Optional[str] = "", length: int = 200) -> str:
    """Collapse whitespace and cut at ``length`` characters, appending an ellipsis if cut."""
    clean = _WHITESPACE.sub(" ", content or "").strip()
    if len(clean) <= length:
        return clean
    return f"{clean[:length].strip()}{ELLIPSIS}"


def count_words(content: Optional[str]) -> int:
    return len((content or "").split())


def estimate_read_time(content: Optional[str] = "") -> int:
    """Minutes to read at 220 words per minute, rounded up, never below 1."""
    return max(1, math.ceil(count_words(content) / WORDS_PER_MINUTE))


def normalize_tags(tags: Any = None) -> list[str]:
    """
    Clean a tag list.

    Non-strings and blanks are dropped, inner whitespace collapsed, exact
    duplicates removed (case-sensitive). First-seen order is kept and the
    result is capped at 10.
    """
    if not isinstance(tags, (list, tuple)):
        return []

    unique: dict[str, None] = {}
    for tag in tags:
        if not isinstance(tag, str):
            continue
        trimmed = tag.strip()
        if not trimmed:
            continue
        unique.setdefault(_WHITESPACE.sub(" ", trimmed), None)

    return list(unique)[:MAX_TAGS]


def tag_slugs(tags: Iterable[str]) -> list[str]:
    return [to_slug(tag) for tag in tags]


def normalize_author(author: Any = None) -> Author:
    """
    Build a complete author from a bare name, a partial mapping, or nothing.

    The handle is the slug of the name unless given explicitly.
    """
    if isinstance(author, BaseModel):
        author = author.model_dump()

    if isinstance(author, str):
        author = author.strip()

    if not author:
        return Author(name="Anonymous", handle="anonymous")

    if isinstance(author, str):
        return Author(name=author, handle=to_slug(author) or "contributor")

    name = (author.get("name") or "").strip() or "Anonymous"
    return Author(
        name=name,
        handle=author.get("handle") or to_slug(name) or "contributor",
        avatar=author.get("avatar") or None,
        bio=author.get("bio") or None,
    )


def build_search_document(post: Optional[Post]) -> Optional[dict]:
    """
    Denormalize a post for the search index.

    The document is the post's JSON form plus ``searchText``: title, subtitle,
    excerpt, content, tags and author name/handle joined by newlines.
    """
    if post is None or not post.id:
        return None

    doc = post.model_dump(by_alias=True, mode="json")
    doc["tagSlugs"] = list(post.tag_slugs) or tag_slugs(post.tags)
    doc["readTimeMinutes"] = post.read_time_minutes or estimate_read_time(post.content)

    parts = [
        post.title,
        post.subtitle,
        post.excerpt,
        post.content,
        " ".join(post.tags),
        post.author.name if post.author else "",
        post.author.handle if post.author else "",
    ]
    doc["searchText"] = "\n".join(part for part in parts if part)
    return doc


def strip_search_metadata(doc: Any) -> Optional[dict]:
    """Drop search-only fields from an index document."""
    if not isinstance(doc, dict):
        return None
    return {key: value for key, value in doc.items() if key != "searchText"}


def escape_xml(value: Any = "") -> str:
    return (
        str(value)
        .replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&apos;")
    )
