"""
Module for random-access reads over a local source file.
"""
import logging
import os
import threading
from pathlib import Path
from typing import BinaryIO, Optional, Union

from .exceptions import SourceError

logger = logging.getLogger(__name__)


class RangeView:
    """Read-only view over a fixed section of a source file.

    The view owns nothing: it is only valid while the underlying
    SourceFile stays open.
    """

    def __init__(self, source: "SourceFile", offset: int, length: int):
        self.source = source
        self.offset = offset
        self.length = length

    @property
    def size(self) -> int:
        return self.length

    def read(self, size: Optional[int] = None) -> bytes:
        """Read up to ``size`` bytes from the start of the view.

        Fewer bytes are returned only when the file ends inside the view.
        """
        if size is None or size > self.length:
            size = self.length
        return self.source.read_at(self.offset, size)


class SourceFile:
    """A local file opened for concurrent offset-scoped reads."""

    def __init__(self, path: Union[str, Path]):
        """Initialize the source file.

        Args:
            path: Path to the local file
        """
        self.path = Path(path)
        self.size = 0
        self._fh: Optional[BinaryIO] = None
        self._lock = threading.Lock()

    def open(self) -> "SourceFile":
        """Open the file and determine its size.

        Raises:
            SourceError: If the file cannot be opened or stat'd
        """
        try:
            self._fh = open(self.path, 'rb')
        except OSError as e:
            raise SourceError(
                f"Error opening source file for upload {str(self.path)!r}: {e}",
                source=str(self.path)
            ) from e

        try:
            self.size = os.fstat(self._fh.fileno()).st_size
        except OSError as e:
            self.close()
            raise SourceError(
                f"Could not stat file {str(self.path)!r}: {e}",
                source=str(self.path)
            ) from e

        logger.debug(f"Opened {self.path} ({self.size} bytes)")
        return self

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None

    @property
    def closed(self) -> bool:
        return self._fh is None

    def __enter__(self) -> "SourceFile":
        if self._fh is None:
            self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def read_at(self, offset: int, length: int) -> bytes:
        """Read ``length`` bytes starting at ``offset``.

        Reads past the end of the file return fewer bytes (or none).
        Seek and read happen under a lock so concurrent callers never see
        each other's file position.
        """
        if self._fh is None:
            raise ValueError(f"Source file {self.path} is not open")
        with self._lock:
            self._fh.seek(offset)
            return self._fh.read(length)

    def section(self, offset: int, length: int) -> RangeView:
        """Return a lazy view over ``length`` bytes at ``offset``."""
        return RangeView(self, offset, length)


def open_source(path: Union[str, Path]) -> SourceFile:
    """Open a local file for random-access reads."""
    return SourceFile(path).open()
