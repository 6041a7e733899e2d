"""
Raw file I/O for the post store.

Blocking filesystem calls run in AnyIO worker threads so the event loop keeps
serving requests while files are read and written. Errors are plain
``OSError``s; ``FileNotFoundError`` signals absence and the store decides
whether that is benign.
"""

import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from anyio import to_thread

from inkwell.services.codec import FileStat


def _write_text(path: Path, content: str, mode: str = "w") -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, mode, encoding="utf-8", newline="\n") as handle:
        handle.write(content)


def _stat(path: Path) -> Optional[FileStat]:
    try:
        result = os.stat(path)
    except OSError:
        return None
    # st_birthtime only exists on macOS/BSD (and Windows on 3.12+)
    birth = getattr(result, "st_birthtime", None) or result.st_ctime
    return FileStat(
        mtime=datetime.fromtimestamp(result.st_mtime, tz=timezone.utc),
        birthtime=datetime.fromtimestamp(birth, tz=timezone.utc),
    )


def read_json_file(path: Path) -> Optional[Any]:
    """Parsed JSON content, or None when the file does not exist."""
    if not path.is_file():
        return None
    return json.loads(path.read_text("utf-8") or "null")


def write_json_file(path: Path, payload: Any) -> None:
    """Write through a temporary file so readers never see a partial document."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(json.dumps(payload, indent=2), "utf-8")
    tmp_path.replace(path)


class FileStorage:
    """Local filesystem implementation of the store's file collaborator."""

    async def read(self, path: Path) -> str:
        return await to_thread.run_sync(Path(path).read_text, "utf-8")

    async def create(self, path: Path, content: str) -> None:
        """Write a new file. Raises FileExistsError if ``path`` is already taken."""
        await to_thread.run_sync(_write_text, Path(path), content, "x")

    async def update(self, path: Path, content: str) -> None:
        await to_thread.run_sync(_write_text, Path(path), content)

    async def delete(self, path: Path) -> None:
        """Raises FileNotFoundError if the file is already gone."""
        await to_thread.run_sync(Path(path).unlink)

    async def list(self, directory: Path) -> list[str]:
        """File names in ``directory``. Raises FileNotFoundError if it does not exist."""
        return await to_thread.run_sync(os.listdir, directory)

    async def exists(self, path: Path) -> bool:
        return await to_thread.run_sync(Path(path).is_file)

    async def stat(self, path: Path) -> Optional[FileStat]:
        return await to_thread.run_sync(_stat, Path(path))

    async def makedirs(self, directory: Path) -> None:
        await to_thread.run_sync(lambda: Path(directory).mkdir(parents=True, exist_ok=True))

    async def relocate(self, old_path: Path, new_path: Path, content: str) -> None:
        """
        Move a post file by writing the new file and then deleting the old one.

        Not atomic: a crash between the two steps leaves the post in both
        directories. A missing old file is tolerated.
        """
        await self.update(new_path, content)
        try:
            await self.delete(old_path)
        except FileNotFoundError:
            pass
