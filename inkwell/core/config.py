from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    PROJECT_NAME: str = "Inkwell Blog"
    API_PREFIX: str = "/applications/blog/api"
    VIEW_PREFIX: str = "/applications/blog"

    # Post files live in <POSTS_DIR>/published and <POSTS_DIR>/drafts
    POSTS_DIR: Path = Path("posts")
    SEED_SAMPLE_POSTS: bool = True

    # JSON-backed records (comments, site settings)
    DATA_DIR: Path = Path(".data")
    COMMENTS_FILE: str = "blog-comments.json"
    SITE_SETTINGS_FILE: str = "blog-settings.json"

    # Home feed cache
    FEED_CACHE_TTL_SECONDS: int = 60
    CACHE_MAX_ENTRIES: int = 256

    # In-process search index (falls back to substring matching when disabled)
    SEARCH_ENABLED: bool = True
    SEARCH_COLLECTION: str = "blog-posts"

    CLAP_MAX_PER_REQUEST: int = 50

    # Frontend URL for CORS
    FRONTEND_URL: str = "http://localhost:3003"

    model_config = SettingsConfigDict(case_sensitive=True, env_file=".env", extra="ignore")

    @property
    def comments_path(self) -> Path:
        return self.DATA_DIR / self.COMMENTS_FILE

    @property
    def site_settings_path(self) -> Path:
        return self.DATA_DIR / self.SITE_SETTINGS_FILE


settings = Settings()
