"""
File-backed post store.

Posts live under two directories, one ``<id>.post`` file each:

    <root>/published/   status == published
    <root>/drafts/      status == draft or scheduled

A post's file exists in the directory matching its status and never in both.
Status changes move the file (write new, delete old).

Usage:
    store = FilePostStore(FileStorage(), Path("posts"))
    await store.ready()

    post = await store.create({"title": "Hello", "content": "First words."})
    post = await store.patch(post.id, {"status": "published"})
    post = await store.update_with(post.id, lambda current: current.model_copy(update={...}))
    await store.remove(post.id)

Concurrent updates to the same id are not serialized: the last write wins.
"""

import asyncio
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Optional

import structlog

from inkwell.core.clock import utc_now
from inkwell.core.errors import BlogError, StorageError
from inkwell.models.post import Author, Post, PostStats, PostStatus, SeoMeta
from inkwell.services.codec import build_record, normalize_status, parse_document, serialize_post
from inkwell.services.storage import FileStorage
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

logger = structlog.get_logger(__name__)

POST_EXTENSION = ".post"

Mutator = Callable[[Post], Optional[Post]]


def is_post_file(file_name: str) -> bool:
    return file_name.endswith(POST_EXTENSION)


def coerce_fields(fields: dict[str, Any]) -> dict[str, Any]:
    """Loosely-typed input fields into shapes the Post model accepts."""
    coerced = {key: value for key, value in fields.items() if key != "id"}
    if "author" in coerced:
        coerced["author"] = normalize_author(coerced["author"])
    if "tags" in coerced:
        coerced["tags"] = normalize_tags(coerced["tags"])
    if "status" in coerced:
        coerced["status"] = normalize_status(coerced["status"])
    for key in ("title", "subtitle", "content"):
        if key in coerced and coerced[key] is None:
            coerced.pop(key)
    if isinstance(coerced.get("seo"), dict):
        coerced["seo"] = {k: v for k, v in coerced["seo"].items() if v is not None}
    elif coerced.get("seo") is None:
        coerced.pop("seo", None)
    return coerced


@contextmanager
def _storage_errors(operation: str, **context):
    """Convert filesystem failures on required paths into StorageError."""
    try:
        yield
    except BlogError:
        raise
    except OSError as exc:
        logger.error("Post storage operation failed", operation=operation, error=str(exc), **context)
        raise StorageError(
            f"Unable to {operation}.",
            details={"operation": operation, **{k: str(v) for k, v in context.items()}},
        ) from exc


class FilePostStore:
    def __init__(
        self,
        storage: FileStorage,
        root: Path,
        log: Any = None,
        seed_samples: bool = True,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.storage = storage
        self.root = Path(root)
        self.published_dir = self.root / "published"
        self.drafts_dir = self.root / "drafts"
        self.seed_samples = seed_samples
        self.log = log or logger
        self._clock = clock
        self._ready_task: Optional[asyncio.Future] = None
        self._create_lock = asyncio.Lock()

    # =========================================================================
    # INITIALIZATION
    # =========================================================================

    async def ready(self) -> None:
        """
        Create both directories and seed sample posts on first run.

        Memoized: concurrent first callers share one initialization. A failed
        initialization is kept and re-raised to every later caller.
        """
        if self._ready_task is None:
            self._ready_task = asyncio.ensure_future(self._initialize())
        await asyncio.shield(self._ready_task)

    async def _initialize(self) -> None:
        try:
            with _storage_errors("initialize post storage", root=self.root):
                await self.storage.makedirs(self.published_dir)
                await self.storage.makedirs(self.drafts_dir)
                if self.seed_samples:
                    await self._seed_if_needed()
        except StorageError as exc:
            self.log.error("Post store initialization failed", error=exc.message)
            raise

    async def _seed_if_needed(self) -> None:
        published = [f for f in await self._safe_list(self.published_dir) if is_post_file(f)]
        drafts = [f for f in await self._safe_list(self.drafts_dir) if is_post_file(f)]
        if published or drafts:
            return

        samples = build_sample_posts()
        for sample in samples:
            await self._persist(sample, keep_updated_at=True)
        self.log.info("Seeded sample posts", count=len(samples))

    # =========================================================================
    # PATHS
    # =========================================================================

    def _directory_for(self, status: PostStatus) -> Path:
        return self.published_dir if status == PostStatus.PUBLISHED else self.drafts_dir

    @staticmethod
    def _valid_id(post_id: str) -> bool:
        return bool(post_id) and "/" not in post_id and "\\" not in post_id and not post_id.startswith(".")

    def _candidates(self, post_id: str) -> list[tuple[Path, PostStatus]]:
        if not self._valid_id(post_id):
            return []
        return [
            (self.published_dir / f"{post_id}{POST_EXTENSION}", PostStatus.PUBLISHED),
            (self.drafts_dir / f"{post_id}{POST_EXTENSION}", PostStatus.DRAFT),
        ]

    # =========================================================================
    # READ OPERATIONS
    # =========================================================================

    async def _safe_list(self, directory: Path) -> list[str]:
        try:
            return await self.storage.list(directory)
        except FileNotFoundError:
            await self.storage.makedirs(directory)
            return []

    async def _read_post_file(self, path: Path, status_hint: PostStatus) -> Post:
        raw = await self.storage.read(path)
        file_stat = await self.storage.stat(path)
        meta, story = parse_document(raw)
        return build_record(meta, story, path.stem, status_hint, file_stat, now=self._clock())

    async def _read_directory(self, directory: Path, status_hint: PostStatus) -> list[Post]:
        with _storage_errors("list posts", directory=directory):
            names = sorted(f for f in await self._safe_list(directory) if is_post_file(f))

        async def read_one(name: str) -> Optional[Post]:
            path = directory / name
            try:
                with _storage_errors("read post", path=path):
                    return await self._read_post_file(path, status_hint)
            except StorageError as exc:
                if isinstance(exc.__cause__, FileNotFoundError):
                    # Removed between listing and reading
                    self.log.debug("Post file vanished during listing", path=str(path))
                    return None
                raise

        posts = await asyncio.gather(*(read_one(name) for name in names))
        return [post for post in posts if post is not None]

    async def list_all(self) -> list[Post]:
        """Every post from both directories, published first."""
        await self.ready()
        published, drafts = await asyncio.gather(
            self._read_directory(self.published_dir, PostStatus.PUBLISHED),
            self._read_directory(self.drafts_dir, PostStatus.DRAFT),
        )
        return [*published, *drafts]

    async def _load(self, post_id: str) -> Optional[tuple[Post, Path]]:
        """Find a post file, published directory first. The residence directory is the status hint."""
        for path, status_hint in self._candidates(post_id):
            with _storage_errors("read post", path=path):
                if await self.storage.exists(path):
                    return await self._read_post_file(path, status_hint), path
        return None

    async def get(self, post_id: str) -> Optional[Post]:
        await self.ready()
        loaded = await self._load(post_id)
        return loaded[0] if loaded else None

    # =========================================================================
    # WRITE OPERATIONS
    # =========================================================================

    async def _id_taken(self, post_id: str) -> bool:
        for path, _ in self._candidates(post_id):
            if await self.storage.exists(path):
                return True
        return False

    async def _ensure_unique_id(self, base_id: str) -> str:
        """Append -1, -2, ... until the id is free in both directories."""
        candidate = base_id
        suffix = 1
        with _storage_errors("allocate post id", base_id=base_id):
            while await self._id_taken(candidate):
                candidate = f"{base_id}-{suffix}"
                suffix += 1
        return candidate

    async def create(self, payload: dict[str, Any]) -> Post:
        """
        Create a post from snake_case fields.

        The id is the slug of ``slug`` or ``title`` (``post-<ms>`` when both
        are empty), made unique across both directories. Allocation and the
        first write happen under one lock; a file that another writer claims
        in between moves allocation on to the next suffix.
        """
        await self.ready()
        fallback = f"post-{int(self._clock().timestamp() * 1000)}"
        base_slug = to_slug(payload.get("slug") or payload.get("title") or "") or fallback
        fields = coerce_fields(payload)

        async with self._create_lock:
            while True:
                post_id = await self._ensure_unique_id(base_slug)
                record = Post.model_validate({**fields, "id": post_id, "slug": base_slug})
                try:
                    return await self._persist(record)
                except StorageError as exc:
                    if not isinstance(exc.__cause__, FileExistsError):
                        raise
                    self.log.info("Post id claimed during create", post_id=post_id)

    async def update_with(self, post_id: str, mutator: Mutator) -> Optional[Post]:
        """
        Apply ``mutator`` to a copy of the current post and persist the result.

        The mutator returns the new post, or None to abort. Returns None when
        the post does not exist or the update was aborted.
        """
        await self.ready()
        loaded = await self._load(post_id)
        if loaded is None:
            return None
        existing, previous_path = loaded

        proposed = mutator(existing.model_copy(deep=True))
        if proposed is None:
            return None

        record = proposed.model_copy(
            update={
                "id": post_id,
                "slug": proposed.slug or existing.slug or post_id,
                "created_at": existing.created_at,
            }
        )
        return await self._persist(record, previous_path=previous_path)

    async def patch(self, post_id: str, fields: dict[str, Any]) -> Optional[Post]:
        """Merge snake_case ``fields`` into the current post and persist."""

        def merge(current: Post) -> Post:
            return Post.model_validate({**current.model_dump(), **coerce_fields(fields)})

        return await self.update_with(post_id, merge)

    async def remove(self, post_id: str) -> bool:
        """Delete whichever file holds the id. False when it is in neither directory."""
        await self.ready()
        for path, _ in self._candidates(post_id):
            with _storage_errors("delete post", path=path):
                if not await self.storage.exists(path):
                    continue
                try:
                    await self.storage.delete(path)
                except FileNotFoundError:
                    continue
                return True
        return False

    def normalize(self, record: Post, keep_updated_at: bool = False) -> Post:
        """
        Re-derive computed fields and coerce a record into a valid post.

        Tags are cleaned and capped, the slug is never empty, status is one of
        the three valid values, the SEO block is fully populated and
        ``updated_at`` is refreshed.
        """
        now = self._clock()
        title = record.title or "Untitled"
        content = (record.content or "").replace("\r\n", "\n")
        status = normalize_status(record.status)
        tags = normalize_tags(record.tags)

        if status == PostStatus.PUBLISHED:
            published_at = record.published_at or now
        elif status == PostStatus.SCHEDULED:
            published_at = record.published_at
        else:
            published_at = None

        seo = record.seo or SeoMeta()
        return Post(
            id=record.id,
            title=title,
            subtitle=record.subtitle or "",
            slug=record.slug or to_slug(title) or record.id,
            author=normalize_author(record.author),
            content=content,
            excerpt=build_excerpt(content, EXCERPT_LENGTH),
            cover_image=record.cover_image or None,
            tags=tags,
            tag_slugs=tag_slugs(tags),
            status=status,
            published_at=published_at,
            scheduled_for=record.scheduled_for or None,
            read_time_minutes=estimate_read_time(content),
            stats=PostStats.model_validate(record.stats.model_dump() if record.stats else {}),
            seo=SeoMeta(
                title=seo.title or title,
                description=seo.description or build_excerpt(content, SEO_DESCRIPTION_LENGTH),
                canonical_url=seo.canonical_url or None,
            ),
            content_format=record.content_format or "markdown",
            created_at=record.created_at or now,
            updated_at=(record.updated_at or now) if keep_updated_at else now,
        )

    async def _persist(
        self,
        record: Post,
        previous_path: Optional[Path] = None,
        keep_updated_at: bool = False,
    ) -> Post:
        normalized = self.normalize(record, keep_updated_at=keep_updated_at)
        target_path = self._directory_for(normalized.status) / f"{normalized.id}{POST_EXTENSION}"
        document = serialize_post(normalized)

        with _storage_errors("write post", path=target_path):
            if previous_path is not None and previous_path != target_path:
                await self.storage.relocate(previous_path, target_path, document)
                self.log.info(
                    "Moved post file",
                    post_id=normalized.id,
                    status=normalized.status.value,
                    directory=target_path.parent.name,
                )
            elif previous_path is not None:
                await self.storage.update(target_path, document)
            else:
                await self.storage.create(target_path, document)

        return normalized


# =============================================================================
# SAMPLE CONTENT
# =============================================================================


def _utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def build_sample_posts() -> list[Post]:
    """Posts written on first run so a fresh install has something to show."""
    author = Author(name="Stephen", handle="stephen")

    first_content = """Stephen keeps a journal of the tiny rebellions that stack into a life.

He writes before dawn, deleting more than he keeps, trusting that consistency beats sudden flashes of genius.

The courage he leans on is quiet: publish the note, share the draft, ask for the uncomfortable feedback.

Key rituals he returns to:
- Block time for wandering research.
- Track claps only to celebrate the reader, not the ego.
- Ship a paragraph even when the story feels half baked."""

    second_content = """Stephen maps the drafts he never published.

Some become talks, some whisper into newsletters, and a few hibernate until a better example arrives.

He now keeps a "rituals board" beside his desk:
- Monday mornings celebrate community wins.
- Wednesdays reserve time for structure edits.
- Fridays highlight a reader's question.

Scheduling creativity sounds cold, but the calendar liberates his weekends for real adventures."""

    draft_content = """This draft is the reminder Stephen refuses to delete.

It holds the questions he will answer once the next cohort of readers arrives.

He keeps it close to remember that drafts are promises, not debts."""

    samples = [
        dict(
            title="Quiet Courage for Future Posts",
            subtitle="Why Stephen trusts tiny habits more than viral spikes.",
            content=first_content,
            cover_image="https://images.unsplash.com/photo-1498050108023-c5249f4df085?auto=format&fit=crop&w=1600&q=80",
            tags=["inspite", "life", "craft"],
            status=PostStatus.PUBLISHED,
            published_at=_utc(2024, 3, 20, 9, 30),
            stats=PostStats(views=1280, claps=312, bookmarks=146, comments=14),
            created_at=_utc(2024, 3, 19, 7, 15),
            updated_at=_utc(2024, 3, 20, 9, 30),
        ),
        dict(
            title="Scheduling Wonder Without Killing Joy",
            subtitle="Stephen proves that planning can still leave room for spontaneity.",
            content=second_content,
            cover_image="https://images.unsplash.com/photo-1500530855697-b586d89ba3ee?auto=format&fit=crop&w=1600&q=80",
            tags=["inspite", "life", "systems"],
            status=PostStatus.PUBLISHED,
            published_at=_utc(2024, 4, 2, 14, 5),
            stats=PostStats(views=940, claps=245, bookmarks=101, comments=9),
            created_at=_utc(2024, 4, 1, 16, 40),
            updated_at=_utc(2024, 4, 2, 14, 5),
        ),
        dict(
            title="The Draft Stephen Keeps Nearby",
            subtitle="A letter to his future collaborators.",
            content=draft_content,
            cover_image="https://images.unsplash.com/photo-1489515217757-5fd1be406fef?auto=format&fit=crop&w=1600&q=80",
            tags=["inspite", "life", "reflection"],
            status=PostStatus.DRAFT,
            scheduled_for=_utc(2024, 6, 1, 11, 0),
            stats=PostStats(views=0, claps=68, bookmarks=17, comments=0),
            created_at=_utc(2024, 3, 28, 10, 20),
            updated_at=_utc(2024, 3, 28, 10, 20),
        ),
    ]

    posts = []
    for sample in samples:
        slug = to_slug(sample["title"])
        posts.append(Post(id=slug, slug=slug, author=author, **sample))
    return posts
