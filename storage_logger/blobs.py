"""File-based image blob store."""

from __future__ import annotations

import os
from pathlib import Path

from loguru import logger


def _is_safe_filename(filename: str) -> bool:
    text = str(filename or "").strip()
    if not text or text in {".", ".."}:
        return False
    if "/" in text or "\\" in text or "\x00" in text:
        return False
    return not text.endswith(".tmp")


class BlobStore:
    """Flat directory of image files addressed by filename.

    Every operation degrades to ``False``/``None`` on I/O errors so callers
    can treat a missing blob the same way as an absent image.
    """

    def __init__(self, root_dir: str | Path) -> None:
        self.root_dir = Path(root_dir).expanduser()
        self.root_dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, filename: str) -> Path | None:
        if not _is_safe_filename(filename):
            return None
        return self.root_dir / filename

    def write(self, filename: str, data: bytes) -> bool:
        path = self.path_for(filename)
        if path is None:
            logger.warning(f"Refusing to write blob with unsafe name: {filename!r}")
            return False
        tmp = path.with_name(path.name + ".tmp")
        try:
            self.root_dir.mkdir(parents=True, exist_ok=True)
            tmp.write_bytes(data)
            os.replace(tmp, path)
        except OSError as e:
            logger.warning(f"Error saving image {filename}: {e}")
            tmp.unlink(missing_ok=True)
            return False
        logger.debug(f"Saved image blob {filename} ({len(data)} bytes)")
        return True

    def read(self, filename: str | None) -> bytes | None:
        if not filename:
            return None
        path = self.path_for(filename)
        if path is None or not path.is_file():
            return None
        try:
            return path.read_bytes()
        except OSError as e:
            logger.warning(f"Error reading image {filename}: {e}")
            return None

    def exists(self, filename: str | None) -> bool:
        if not filename:
            return False
        path = self.path_for(filename)
        return path is not None and path.is_file()

    def delete(self, filename: str | None) -> bool:
        if not filename:
            return False
        path = self.path_for(filename)
        if path is None or not path.exists():
            return False
        try:
            path.unlink()
        except OSError as e:
            logger.warning(f"Error deleting image {filename}: {e}")
            return False
        logger.debug(f"Deleted image blob {filename}")
        return True

    def list(self) -> list[str]:
        if not self.root_dir.exists():
            return []
        try:
            return sorted(p.name for p in self.root_dir.iterdir() if p.is_file())
        except OSError as e:
            logger.warning(f"Failed to list {self.root_dir}: {e}")
            return []

    def clear(self) -> int:
        """Delete every file in the blob directory and return how many went."""
        removed = 0
        for name in self.list():
            try:
                (self.root_dir / name).unlink(missing_ok=True)
                removed += 1
            except OSError as e:
                logger.warning(f"Failed to clear image {name}: {e}")
                continue
        logger.debug(f"Cleared {removed} image blobs from {self.root_dir}")
        return removed
