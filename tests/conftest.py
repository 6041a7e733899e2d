"""
Test fixtures for inkwell tests.

Every fixture points storage at pytest's ``tmp_path`` so tests never touch
the real posts directory. Sample seeding is off unless a test asks for it.
"""

from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from inkwell.core.cache import MemoryCache
from inkwell.core.config import Settings
from inkwell.main import create_app
from inkwell.services.blog import BlogService
from inkwell.services.post_store import FilePostStore
from inkwell.services.search import MemorySearchIndex, SearchIndexSync
from inkwell.services.storage import FileStorage


@pytest.fixture
def posts_root(tmp_path):
    return tmp_path / "posts"


@pytest.fixture
def store(posts_root) -> FilePostStore:
    return FilePostStore(FileStorage(), posts_root, seed_samples=False)


@pytest.fixture
def seeded_store(posts_root) -> FilePostStore:
    return FilePostStore(FileStorage(), posts_root, seed_samples=True)


@pytest.fixture
def memory_cache() -> MemoryCache:
    return MemoryCache(maxsize=16, ttl=600)


@pytest.fixture
def search_sync() -> SearchIndexSync:
    return SearchIndexSync(MemorySearchIndex())


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(
        POSTS_DIR=tmp_path / "posts",
        DATA_DIR=tmp_path / "data",
        SEED_SAMPLE_POSTS=False,
    )


@pytest.fixture
def blog(test_settings) -> BlogService:
    return BlogService.from_settings(test_settings)


@pytest.fixture
def client(blog, test_settings) -> Iterator[TestClient]:
    """API client; entering the context runs startup so storage is ready."""
    app = create_app(service=blog, config=test_settings)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def api_prefix(test_settings) -> str:
    return test_settings.API_PREFIX
