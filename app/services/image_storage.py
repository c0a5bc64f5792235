"""
Local storage for downloaded venue photos
"""

import asyncio
import logging
import uuid
from pathlib import Path

logger = logging.getLogger(__name__)


class ImageStorage:
    """Writes images under a directory that is served at public_prefix"""

    def __init__(self, directory: str, public_prefix: str):
        self.directory = Path(directory)
        self.public_prefix = public_prefix.rstrip("/")

    def public_path(self, filename: str) -> str:
        return f"{self.public_prefix}/{filename}"

    def _write(self, filename: str, content: bytes):
        self.directory.mkdir(parents=True, exist_ok=True)
        (self.directory / filename).write_bytes(content)

    async def save(self, content: bytes, extension: str = "jpg") -> str:
        """
        Save bytes under a fresh unique filename and return its public path
        """
        filename = f"{uuid.uuid4()}.{extension}"
        await asyncio.to_thread(self._write, filename, content)
        logger.info(f"Photo saved as {filename}")
        return self.public_path(filename)

    async def delete(self, public_path: str) -> bool:
        filename = public_path.rsplit("/", 1)[-1]
        target = self.directory / filename
        if not target.exists():
            return False
        await asyncio.to_thread(target.unlink)
        return True
