"""
Tests for the file-backed post store.

Tests:
- Memoized initialization and sample seeding
- Id allocation and uniqueness
- Directory placement on status changes
- published_at / created_at lifecycle
- Storage failures surfacing as StorageError
"""

import asyncio
from pathlib import Path

import pytest

from inkwell.core.errors import StorageError
from inkwell.models.post import PostStatus
from inkwell.services.post_store import FilePostStore, build_sample_posts
from inkwell.services.storage import FileStorage


def post_files(directory: Path) -> list[str]:
    if not directory.exists():
        return []
    return sorted(p.name for p in directory.iterdir() if p.suffix == ".post")


class FailingStorage(FileStorage):
    """Storage whose directory creation always fails."""

    def __init__(self):
        self.makedirs_calls = 0

    async def makedirs(self, directory):
        self.makedirs_calls += 1
        raise PermissionError(f"cannot create {directory}")


class ClaimingStorage(FileStorage):
    """Storage where another writer takes the first new file's path just before it is written."""

    def __init__(self):
        self.claimed = False

    async def create(self, path, content):
        if not self.claimed:
            self.claimed = True
            await super().create(path, "Title: Other writer\n\nStory:\nTheirs\n")
        await super().create(path, content)


class TestInitialization:
    """Tests for ready() and seeding."""

    @pytest.mark.asyncio
    async def test_ready_creates_directories(self, store, posts_root):
        await store.ready()
        assert (posts_root / "published").is_dir()
        assert (posts_root / "drafts").is_dir()
        assert await store.list_all() == []

    @pytest.mark.asyncio
    async def test_seeds_samples_on_empty_store(self, seeded_store, posts_root):
        await seeded_store.ready()

        assert post_files(posts_root / "published") == [
            "quiet-courage-for-future-posts.post",
            "scheduling-wonder-without-killing-joy.post",
        ]
        assert post_files(posts_root / "drafts") == ["the-draft-stephen-keeps-nearby.post"]

        posts = await seeded_store.list_all()
        assert [p.status for p in posts] == [PostStatus.PUBLISHED, PostStatus.PUBLISHED, PostStatus.DRAFT]

    @pytest.mark.asyncio
    async def test_concurrent_ready_seeds_once(self, seeded_store, posts_root):
        await asyncio.gather(*(seeded_store.ready() for _ in range(10)))

        posts = await seeded_store.list_all()
        assert len(posts) == len(build_sample_posts())
        assert len(post_files(posts_root / "published")) == 2
        assert len(post_files(posts_root / "drafts")) == 1

    @pytest.mark.asyncio
    async def test_no_reseed_when_posts_exist(self, posts_root):
        first = FilePostStore(FileStorage(), posts_root, seed_samples=False)
        await first.create({"title": "Only post", "content": "Body"})

        second = FilePostStore(FileStorage(), posts_root, seed_samples=True)
        posts = await second.list_all()
        assert [p.id for p in posts] == ["only-post"]

    @pytest.mark.asyncio
    async def test_seeded_sample_values(self, seeded_store):
        post = await seeded_store.get("quiet-courage-for-future-posts")

        assert post.author.name == "Stephen"
        assert post.tags == ["inspite", "life", "craft"]
        assert post.stats.claps == 312
        assert post.stats.views == 1280

    @pytest.mark.asyncio
    async def test_failed_initialization_is_cached(self, posts_root):
        storage = FailingStorage()
        failing = FilePostStore(storage, posts_root)

        with pytest.raises(StorageError):
            await failing.ready()
        with pytest.raises(StorageError):
            await failing.list_all()

        assert storage.makedirs_calls == 1


class TestCreate:
    """Tests for creating posts."""

    @pytest.mark.asyncio
    async def test_create_derives_fields(self, store, posts_root):
        post = await store.create(
            {
                "title": "Hello World",
                "content": "Some words here.\r\nAnd more.",
                "tags": ["Life", "life", " craft "],
                "author": "Ada Lovelace",
            }
        )

        assert post.id == "hello-world"
        assert post.slug == "hello-world"
        assert post.status == PostStatus.DRAFT
        assert post.published_at is None
        assert post.content == "Some words here.\nAnd more."
        assert post.tags == ["Life", "life", "craft"]
        assert post.tag_slugs == ["life", "life", "craft"]
        assert post.author.handle == "ada-lovelace"
        assert post.seo.title == "Hello World"
        assert post.created_at is not None
        assert post_files(posts_root / "drafts") == ["hello-world.post"]

    @pytest.mark.asyncio
    async def test_same_title_gets_numeric_suffix(self, store):
        first = await store.create({"title": "Same Title", "content": "One"})
        second = await store.create({"title": "Same Title", "content": "Two"})
        third = await store.create({"title": "Same Title", "content": "Three", "status": "published"})

        assert first.id == "same-title"
        assert second.id == "same-title-1"
        assert third.id == "same-title-2"

    @pytest.mark.asyncio
    async def test_uniqueness_spans_both_directories(self, store):
        await store.create({"title": "Shared", "content": "One", "status": "published"})
        draft = await store.create({"title": "Shared", "content": "Two"})
        assert draft.id == "shared-1"

    @pytest.mark.asyncio
    async def test_concurrent_creates_get_distinct_ids(self, store):
        posts = await asyncio.gather(
            store.create({"title": "Same", "content": "One"}),
            store.create({"title": "Same", "content": "Two"}),
            store.create({"title": "Same", "content": "Three", "status": "published"}),
        )

        assert sorted(p.id for p in posts) == ["same", "same-1", "same-2"]
        stored = {p.id: p.content for p in await store.list_all()}
        assert sorted(stored.values()) == ["One", "Three", "Two"]

    @pytest.mark.asyncio
    async def test_file_claimed_by_another_writer_is_not_overwritten(self, posts_root):
        storage = ClaimingStorage()
        store = FilePostStore(storage, posts_root, seed_samples=False)

        post = await store.create({"title": "Same", "content": "Mine"})

        assert post.id == "same-1"
        assert (await store.get("same")).content == "Theirs"
        assert (await store.get("same-1")).content == "Mine"

    @pytest.mark.asyncio
    async def test_storage_create_is_exclusive(self, tmp_path):
        storage = FileStorage()
        path = tmp_path / "one.post"
        await storage.create(path, "first")

        with pytest.raises(FileExistsError):
            await storage.create(path, "second")
        assert path.read_text() == "first"

    @pytest.mark.asyncio
    async def test_explicit_slug_wins(self, store):
        post = await store.create({"title": "Title", "slug": "Custom Slug!", "content": "Body"})
        assert post.id == "custom-slug"

    @pytest.mark.asyncio
    async def test_empty_title_falls_back_to_timestamp_id(self, store):
        post = await store.create({"title": "???", "content": "Body"})
        assert post.id.startswith("post-")

    @pytest.mark.asyncio
    async def test_tag_cap(self, store):
        tags = [f"topic-{i}" for i in range(15)]
        post = await store.create({"title": "Many tags", "content": "Body", "tags": tags})

        assert post.tags == tags[:10]
        stored = await store.get(post.id)
        assert stored.tags == tags[:10]

    @pytest.mark.asyncio
    async def test_published_create_gets_published_at(self, store, posts_root):
        post = await store.create({"title": "Live", "content": "Body", "status": "PUBLISHED"})

        assert post.status == PostStatus.PUBLISHED
        assert post.published_at is not None
        assert post_files(posts_root / "published") == ["live.post"]


class TestUpdate:
    """Tests for update_with / patch and directory placement."""

    @pytest.mark.asyncio
    async def test_status_change_moves_file(self, store, posts_root):
        post = await store.create({"title": "Mover", "content": "Body"})

        await store.patch(post.id, {"status": "published"})
        assert post_files(posts_root / "published") == ["mover.post"]
        assert post_files(posts_root / "drafts") == []

        await store.patch(post.id, {"status": "scheduled"})
        assert post_files(posts_root / "published") == []
        assert post_files(posts_root / "drafts") == ["mover.post"]

    @pytest.mark.asyncio
    async def test_published_at_lifecycle(self, store):
        post = await store.create({"title": "Lifecycle", "content": "Body"})
        created_at = (await store.get(post.id)).created_at
        assert post.published_at is None

        published = await store.patch(post.id, {"status": "published"})
        assert published.published_at is not None

        drafted = await store.patch(post.id, {"status": "draft"})
        assert drafted.published_at is None
        assert drafted.created_at == created_at
        assert (await store.get(post.id)).created_at == created_at

    @pytest.mark.asyncio
    async def test_scheduled_keeps_existing_published_at(self, store):
        post = await store.create({"title": "Sched", "content": "Body", "status": "published"})
        first_published = (await store.get(post.id)).published_at

        scheduled = await store.patch(post.id, {"status": "scheduled"})
        assert scheduled.published_at == first_published

    @pytest.mark.asyncio
    async def test_update_with_keeps_id_and_created_at(self, store):
        post = await store.create({"title": "Stable", "content": "Body"})
        before = await store.get(post.id)

        updated = await store.update_with(
            post.id,
            lambda current: current.model_copy(update={"id": "hijacked", "title": "Renamed", "created_at": None}),
        )

        assert updated.id == "stable"
        assert updated.title == "Renamed"
        assert updated.created_at == before.created_at
        assert updated.updated_at >= before.updated_at

    @pytest.mark.asyncio
    async def test_update_recomputes_derived_fields(self, store):
        post = await store.create({"title": "Derived", "content": "short"})
        updated = await store.patch(post.id, {"content": "word " * 500})

        assert updated.read_time_minutes == 3
        assert updated.excerpt.endswith("…")

    @pytest.mark.asyncio
    async def test_mutator_can_abort(self, store):
        post = await store.create({"title": "Abort", "content": "Body"})
        assert await store.update_with(post.id, lambda current: None) is None
        assert (await store.get(post.id)).title == "Abort"

    @pytest.mark.asyncio
    async def test_missing_post(self, store):
        assert await store.update_with("nope", lambda current: current) is None
        assert await store.patch("nope", {"title": "x"}) is None


class TestReadAndRemove:
    """Tests for get, list_all and remove."""

    @pytest.mark.asyncio
    async def test_get_missing(self, store):
        assert await store.get("missing") is None

    @pytest.mark.asyncio
    async def test_get_rejects_path_like_ids(self, store):
        await store.ready()
        assert await store.get("../published/x") is None
        assert await store.get(".hidden") is None

    @pytest.mark.asyncio
    async def test_list_all_published_first(self, store):
        await store.create({"title": "Draft one", "content": "Body"})
        await store.create({"title": "Live one", "content": "Body", "status": "published"})

        posts = await store.list_all()
        assert [p.id for p in posts] == ["live-one", "draft-one"]

    @pytest.mark.asyncio
    async def test_list_ignores_other_files(self, store, posts_root):
        await store.ready()
        (posts_root / "drafts" / "notes.txt").write_text("not a post")
        assert await store.list_all() == []

    @pytest.mark.asyncio
    async def test_hand_written_file_is_read(self, store, posts_root):
        await store.ready()
        (posts_root / "published" / "manual.post").write_text(
            "Title: Manual\nTags: notes\n\nStory:\n\nWritten by hand.\n"
        )

        post = await store.get("manual")
        assert post.status == PostStatus.PUBLISHED
        assert post.published_at is not None
        assert post.content == "Written by hand."

    @pytest.mark.asyncio
    async def test_unparseable_counter_does_not_break_listing(self, store, posts_root):
        await store.ready()
        (posts_root / "published" / "bad.post").write_text(
            "Title: Bad counters\nClaps: 1e400\nViews: inf\n\nStory:\nStill readable.\n"
        )
        await store.create({"title": "Fine", "content": "Body", "status": "published"})

        posts = {p.id: p for p in await store.list_all()}
        assert set(posts) == {"bad", "fine"}
        assert posts["bad"].stats.claps == 0
        assert posts["bad"].stats.views == 0

    @pytest.mark.asyncio
    async def test_remove(self, store, posts_root):
        post = await store.create({"title": "Gone soon", "content": "Body"})

        assert await store.remove(post.id) is True
        assert await store.get(post.id) is None
        assert post_files(posts_root / "drafts") == []
        assert await store.remove(post.id) is False
