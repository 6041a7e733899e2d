"""Site appearance settings, persisted as one JSON document."""

import asyncio
from pathlib import Path
from typing import Any, Optional

import structlog
from anyio import to_thread

from inkwell.core.errors import StorageError
from inkwell.models.site_settings import SiteSettings, SiteSettingsUpdate
from inkwell.services.storage import read_json_file, write_json_file

logger = structlog.get_logger(__name__)


def merge_settings(current: dict[str, Any], changes: dict[str, Any]) -> dict[str, Any]:
    """Recursively overlay ``changes`` onto ``current``. None values are ignored."""
    merged = dict(current)
    for key, value in changes.items():
        if value is None:
            continue
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_settings(merged[key], value)
        else:
            merged[key] = value
    return merged


class SiteSettingsStore:
    def __init__(self, path: Path):
        self.path = Path(path)
        self._settings: Optional[SiteSettings] = None
        self._lock = asyncio.Lock()

    async def _load(self) -> SiteSettings:
        if self._settings is not None:
            return self._settings
        try:
            raw = await to_thread.run_sync(read_json_file, self.path)
        except (OSError, ValueError) as exc:
            logger.error("Failed to load site settings", path=str(self.path), error=str(exc))
            raise StorageError("Unable to load site settings.", details={"path": str(self.path)}) from exc

        # Missing fields, or a missing file, take the defaults
        self._settings = SiteSettings.model_validate(raw or {})
        return self._settings

    async def get(self) -> SiteSettings:
        async with self._lock:
            return await self._load()

    async def update(self, changes: SiteSettingsUpdate) -> SiteSettings:
        async with self._lock:
            current = await self._load()
            merged = SiteSettings.model_validate(
                merge_settings(current.model_dump(), changes.model_dump(exclude_none=True))
            )
            try:
                await to_thread.run_sync(write_json_file, self.path, merged.model_dump(by_alias=True, mode="json"))
            except OSError as exc:
                logger.error("Failed to save site settings", path=str(self.path), error=str(exc))
                raise StorageError("Unable to save site settings.", details={"path": str(self.path)}) from exc
            self._settings = merged
        logger.info("Site settings updated", fields=sorted(changes.model_dump(exclude_none=True)))
        return merged
