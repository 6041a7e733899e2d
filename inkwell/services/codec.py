"""
Post document codec.

A post file is a block of ``Label: value`` header lines, a blank line, a
literal ``Story:`` marker, a blank line and then the story body verbatim:

    Title: Quiet Courage for Future Posts
    Subtitle: Why tiny habits beat viral spikes.
    Author: Stephen
    Tags: life, craft
    Cover Image URL:
    Slug: quiet-courage-for-future-posts
    Status: published
    Published: 2024/03/20
    Schedule:
    Created: 2024-03-19T07:15:00.000Z
    Updated: 2024-03-20T09:30:00.000Z
    Claps: 312
    Bookmarks: 146
    Views: 1280
    Comments: 14

    Story:

    He writes before dawn...

Header labels and their casing are a stable on-disk contract.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from inkwell.core.clock import ensure_utc, utc_now
from inkwell.models.post import Post, PostStats, PostStatus, SeoMeta
from inkwell.services.text import (
    EXCERPT_LENGTH,
    SEO_DESCRIPTION_LENGTH,
    build_excerpt,
    estimate_read_time,
    normalize_author,
    normalize_tags,
    tag_slugs,
    to_slug,
)

STORY_MARKER = "story:"

_LINE_BREAK = re.compile(r"\r?\n")
_SIMPLE_DATE = re.compile(r"^(\d{4})[/-](\d{2})[/-](\d{2})(?:\s+(\d{2}):(\d{2}))?$")

normalize_status = PostStatus.normalize


@dataclass(frozen=True)
class FileStat:
    """File metadata used as timestamp fallbacks when headers are missing."""

    mtime: datetime
    birthtime: datetime


def parse_document(raw: Any = "") -> tuple[dict[str, str], str]:
    """
    Split a post file into header fields and story body.

    Header keys are lowercased and trimmed, values trimmed. Lines without a
    colon are skipped. Without a ``Story:`` marker the whole file is headers
    and the body is empty.
    """
    text = raw.decode("utf-8") if isinstance(raw, bytes) else str(raw or "")
    lines = _LINE_BREAK.split(text)

    story_index = next(
        (i for i, line in enumerate(lines) if line.strip().lower() == STORY_MARKER),
        None,
    )
    if story_index is None:
        header_lines, story_lines = lines, []
    else:
        header_lines, story_lines = lines[:story_index], lines[story_index + 1:]

    meta: dict[str, str] = {}
    for line in header_lines:
        key, separator, value = line.partition(":")
        if not separator:
            continue
        key = key.strip().lower()
        if key:
            meta[key] = value.strip()

    if story_lines and not story_lines[0].strip():
        story_lines = story_lines[1:]

    return meta, "\n".join(story_lines)


def parse_date_field(value: Optional[str]) -> Optional[datetime]:
    """
    Parse a header date.

    Accepts ISO-8601, ``YYYY/MM/DD[ HH:MM]`` and ``YYYY-MM-DD[ HH:MM]``; the
    short forms are read as UTC. Anything unparseable is treated as absent.
    """
    if not value:
        return None
    trimmed = value.strip()
    if not trimmed:
        return None

    match = _SIMPLE_DATE.match(trimmed)
    if match:
        year, month, day, hour, minute = match.groups()
        try:
            return datetime(
                int(year), int(month), int(day),
                int(hour or 0), int(minute or 0),
                tzinfo=timezone.utc,
            )
        except ValueError:
            return None

    iso = trimmed[:-1] + "+00:00" if trimmed.endswith(("Z", "z")) else trimmed
    try:
        return ensure_utc(datetime.fromisoformat(iso))
    except ValueError:
        return None


def format_iso(value: Optional[datetime]) -> str:
    """Millisecond-precision UTC timestamp with a ``Z`` suffix."""
    if value is None:
        return ""
    value = ensure_utc(value)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def format_date(value: Optional[datetime]) -> str:
    if value is None:
        return ""
    return ensure_utc(value).strftime("%Y/%m/%d")


def format_datetime(value: Optional[datetime]) -> str:
    if value is None:
        return ""
    return ensure_utc(value).strftime("%Y/%m/%d %H:%M")


def _parse_count(value: Optional[str]) -> int:
    try:
        return max(0, int(float(value or 0)))
    except (TypeError, ValueError, OverflowError):
        return 0


def _header_value(value: Any) -> str:
    if value is None:
        return ""
    return _LINE_BREAK.sub(" ", str(value))


def build_record(
    meta: dict[str, str],
    story: str,
    post_id: str,
    status_hint: Any = PostStatus.DRAFT,
    file_stat: Optional[FileStat] = None,
    now: Optional[datetime] = None,
) -> Post:
    """
    Rebuild a post from parsed header fields.

    Timestamp fallbacks:
        published_at: ``Published`` header, else file mtime (published only).
            Always null unless published or scheduled.
        created_at: ``Created`` -> published_at -> file birthtime -> now
        updated_at: ``Updated`` -> file mtime -> created_at
    """
    title = meta.get("title") or "Untitled"
    content = (story or "").replace("\r\n", "\n").rstrip()
    tags = normalize_tags(meta["tags"].split(",")) if meta.get("tags") else []
    status = normalize_status(meta.get("status") or status_hint)
    scheduled_for = parse_date_field(meta.get("schedule"))

    published_at = parse_date_field(meta.get("published"))
    if status == PostStatus.DRAFT:
        published_at = None
    elif status == PostStatus.PUBLISHED and published_at is None and file_stat:
        published_at = file_stat.mtime

    created_at = (
        parse_date_field(meta.get("created"))
        or published_at
        or (file_stat.birthtime if file_stat else None)
        or now
        or utc_now()
    )
    updated_at = (
        parse_date_field(meta.get("updated"))
        or (file_stat.mtime if file_stat else None)
        or created_at
    )

    return Post(
        id=post_id,
        title=title,
        subtitle=meta.get("subtitle") or "",
        slug=meta.get("slug") or to_slug(title) or post_id,
        author=normalize_author(meta.get("author") or "Anonymous"),
        content=content,
        excerpt=build_excerpt(content, EXCERPT_LENGTH),
        cover_image=meta.get("cover image url") or None,
        tags=tags,
        tag_slugs=tag_slugs(tags),
        status=status,
        published_at=published_at,
        scheduled_for=scheduled_for,
        read_time_minutes=estimate_read_time(content),
        stats=PostStats(
            views=_parse_count(meta.get("views")),
            claps=_parse_count(meta.get("claps")),
            bookmarks=_parse_count(meta.get("bookmarks")),
            comments=_parse_count(meta.get("comments")),
        ),
        seo=SeoMeta(
            title=title,
            description=build_excerpt(content, SEO_DESCRIPTION_LENGTH),
            canonical_url=None,
        ),
        created_at=created_at,
        updated_at=updated_at,
    )


def serialize_post(post: Post) -> str:
    """Render a post in the on-disk format. Story newlines are normalized to ``\\n``."""
    story = (post.content or "").replace("\r\n", "\n").rstrip()
    fields = [
        ("Title", post.title or "Untitled"),
        ("Subtitle", post.subtitle or ""),
        ("Author", post.author.name if post.author else "Anonymous"),
        ("Tags", ", ".join(post.tags)),
        ("Cover Image URL", post.cover_image or ""),
        ("Slug", post.slug or post.id),
        ("Status", normalize_status(post.status).value),
        ("Published", format_date(post.published_at)),
        ("Schedule", format_datetime(post.scheduled_for)),
        ("Created", format_iso(post.created_at)),
        ("Updated", format_iso(post.updated_at)),
        ("Claps", post.stats.claps),
        ("Bookmarks", post.stats.bookmarks),
        ("Views", post.stats.views),
        ("Comments", post.stats.comments),
    ]
    header = "\n".join(f"{label}: {_header_value(value)}" for label, value in fields)
    story_block = f"{story}\n" if story else ""
    return f"{header}\n\nStory:\n\n{story_block}"
