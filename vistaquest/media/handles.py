"""Temporary on-disk handle for the currently displayed scene image.

Only one handle is live per session.  The previous file is removed as
soon as its replacement has been written (on every successful turn or
refinement) and on session reset, so stale scene images never pile up
on disk.
"""

import logging
import mimetypes
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


class SceneImageHandle:
    """Scoped acquire/release of the current scene image file."""

    def __init__(self, directory: Path | None = None, prefix: str = "vistaquest_scene_"):
        self.directory = Path(directory) if directory else None
        self.prefix = prefix
        self._path: Path | None = None
        self._mime_type: str | None = None

    @property
    def path(self) -> Path | None:
        return self._path

    @property
    def mime_type(self) -> str | None:
        return self._mime_type

    def replace(self, data: bytes, mime_type: str = "image/png") -> Path:
        """Write *data* to a fresh file, then release the current one.

        The previous file is released before the new path becomes the
        handle.  If the write fails, the previous file and path stay as
        they were and the ``OSError`` propagates.
        """
        if self.directory is not None:
            self.directory.mkdir(parents=True, exist_ok=True)
        suffix = mimetypes.guess_extension(mime_type) or ".png"
        fd, name = tempfile.mkstemp(suffix=suffix, prefix=self.prefix, dir=self.directory)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
        except BaseException:
            Path(name).unlink(missing_ok=True)
            raise

        self.release()
        self._path = Path(name)
        self._mime_type = mime_type
        logger.debug("Scene image handle acquired: %s (%d bytes)", self._path, len(data))
        return self._path

    def release(self) -> None:
        """Delete the current file, if any."""
        if self._path is not None:
            self._path.unlink(missing_ok=True)
            logger.debug("Scene image handle released: %s", self._path)
        self._path = None
        self._mime_type = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
        return False
