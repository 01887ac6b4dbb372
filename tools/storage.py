"""Local filesystem object storage for generated ebook files."""

import asyncio
import logging
from pathlib import Path, PurePosixPath
from typing import Optional

from config.exceptions import StorageError
from config.settings import Settings

logger = logging.getLogger(__name__)


class LocalStorage:
    """Writes objects under ``storage_dir`` and serves them from ``storage_base_url``.

    Putting the same key twice overwrites the previous object.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings()
        self.root = Path(self.settings.storage_dir)
        self.root.mkdir(parents=True, exist_ok=True)

    def _resolve(self, key: str) -> Path:
        parts = PurePosixPath(key.lstrip("/")).parts
        if not parts or any(part in ("..", "") for part in parts):
            raise StorageError(f"Invalid storage key: {key}")
        return self.root.joinpath(*parts)

    def url_for(self, key: str) -> str:
        return f"{self.settings.storage_base_url}/{key.lstrip('/')}"

    async def put(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        """Store ``data`` under ``key`` and return its public URL.

        Raises:
            StorageError: If the key is invalid or the write fails.
        """
        target = self._resolve(key)
        try:
            await asyncio.to_thread(self._write, target, data)
        except OSError as e:
            raise StorageError(f"Failed to store {key}: {e}", {"content_type": content_type}) from e
        logger.debug("Stored %s (%d bytes, %s)", key, len(data), content_type)
        return self.url_for(key)

    @staticmethod
    def _write(target: Path, data: bytes):
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
