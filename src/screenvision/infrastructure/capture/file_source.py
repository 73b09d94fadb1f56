"""Frame source backed by an image file."""

import asyncio
import base64
import logging
import mimetypes
from pathlib import Path

logger = logging.getLogger(__name__)


class FileFrameSource:
    """Reads a frame from an image file on every capture.

    Point it at a file that an external screenshot tool keeps overwriting
    to get a live feed.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def mime_type(self) -> str:
        guessed, _ = mimetypes.guess_type(self._path.name)
        if guessed and guessed.startswith("image/"):
            return guessed
        return "image/jpeg"

    async def capture(self) -> str | None:
        """Return the file as a data URI, or None if it does not exist."""
        try:
            data = await asyncio.to_thread(self._path.read_bytes)
        except FileNotFoundError:
            logger.debug("Frame file not found: %s", self._path)
            return None
        if not data:
            return None
        encoded = base64.b64encode(data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"
