"""
Module for scanning source files for non-empty page ranges.
"""
import logging
from typing import List, Optional

from .exceptions import ScanError
from .models import (
    ByteRange,
    UploadSettings,
    UploadUnit,
    padded_blob_size,
)
from .source import SourceFile

logger = logging.getLogger(__name__)


def split_pages(source, size: int, page_size: int, max_range_size: int) -> List[ByteRange]:
    """Split a source into the page ranges that contain data.

    The source is read one page at a time. Runs of non-empty pages are
    merged into ranges of at most ``max_range_size`` bytes; empty pages are
    skipped since the remote blob is zero-initialised.

    Args:
        source: Object providing ``read_at(offset, length) -> bytes``
        size: Size of the source in bytes
        page_size: Page alignment granule
        max_range_size: Largest range a single write may cover

    Returns:
        Ordered, non-overlapping list of page-aligned ranges

    Raises:
        ScanError: If a page cannot be read
    """
    # whilst the file can be any size, it must be uploaded in whole pages
    blob_size = padded_blob_size(size, page_size)
    empty_page = bytes(page_size)

    ranges: List[ByteRange] = []
    current_offset = 0
    current_length = 0

    for offset in range(0, blob_size, page_size):
        try:
            page = source.read_at(offset, page_size)
        except OSError as e:
            raise ScanError(f"Could not read chunk at {offset}: {e}", offset=offset) from e

        # anything past the end of the file counts as zeros
        if page == empty_page[:len(page)]:
            if current_length != 0:
                ranges.append(ByteRange(current_offset, current_length))
            current_offset = offset + page_size
            current_length = 0
        else:
            current_length += page_size
            if (current_length == max_range_size or
                    current_offset + current_length == blob_size):
                ranges.append(ByteRange(current_offset, current_length))
                current_offset = offset + page_size
                current_length = 0

    return ranges


class FileScanner:
    """Finds the non-empty regions of a source file."""

    def __init__(self, settings: Optional[UploadSettings] = None):
        """Initialize the file scanner.

        Args:
            settings: Page and range sizes to scan with
        """
        self.settings = settings or UploadSettings()

    def split(self, source: SourceFile) -> List[ByteRange]:
        """Return the ranges of ``source`` that need to be uploaded."""
        ranges = split_pages(
            source,
            source.size,
            self.settings.page_size,
            self.settings.max_range_size
        )
        total = sum(r.length for r in ranges)
        logger.info(
            f"Found {len(ranges)} non-empty ranges ({total} bytes) in {source.path} "
            f"of {padded_blob_size(source.size, self.settings.page_size)} bytes"
        )
        return ranges

    def scan(self, source: SourceFile) -> List[UploadUnit]:
        """Return upload units for every non-empty range of ``source``."""
        return [
            UploadUnit(range=r, view=source.section(r.offset, r.length))
            for r in self.split(source)
        ]
