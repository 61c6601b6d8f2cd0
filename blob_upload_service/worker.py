"""
Module for the workers that write queued page ranges to a blob.
"""
import logging
import queue

from .exceptions import RangeUploadError
from .models import BlobTarget, UploadUnit
from .tracker import UploadTracker

logger = logging.getLogger(__name__)


class PageUploadWorker:
    """Drains a queue of upload units, writing each one to the target blob."""

    def __init__(self, store, target: BlobTarget, blob_size: int,
                 tracker: UploadTracker, source_name: str):
        """Initialize the worker.

        Args:
            store: BlobStore used to write page ranges
            target: Blob being written
            blob_size: Size the blob was created with
            tracker: Collector for completions and errors
            source_name: Path of the source file, for error context
        """
        self.store = store
        self.target = target
        self.blob_size = blob_size
        self.tracker = tracker
        self.source_name = source_name

    def run(self, units: "queue.Queue[UploadUnit]") -> None:
        """Process units until the queue is empty."""
        while True:
            try:
                unit = units.get_nowait()
            except queue.Empty:
                return

            try:
                written = self.upload_unit(unit)
                self.tracker.record_success(unit.range, written)
            except RangeUploadError as e:
                logger.error(str(e))
                self.tracker.record_failure(unit.range, e)
            except Exception as e:
                logger.exception(f"Unexpected error uploading range at offset {unit.offset}")
                error = RangeUploadError(
                    f"Unexpected error uploading range at offset {unit.offset} "
                    f"for file {self.source_name!r}: {e}",
                    offset=unit.offset,
                    source=self.source_name
                )
                error.__cause__ = e
                self.tracker.record_failure(unit.range, error)
            finally:
                units.task_done()

    def upload_unit(self, unit: UploadUnit) -> int:
        """Write a single range, clipped to the size of the blob.

        Returns:
            Number of bytes written

        Raises:
            RangeUploadError: If the range could not be read or written
        """
        start = unit.offset
        end = min(unit.offset + unit.length - 1, self.blob_size - 1)
        size = end - start + 1

        try:
            chunk = unit.view.read(size)
        except OSError as e:
            raise RangeUploadError(
                f"Error reading source file {self.source_name!r} at offset {start}: {e}",
                offset=start,
                source=self.source_name
            ) from e

        # the tail of the last page is logically zero
        if len(chunk) < size:
            chunk = chunk.ljust(size, b"\x00")

        try:
            self.store.write_range(
                self.target.account_name,
                self.target.container_name,
                self.target.blob_name,
                start,
                end,
                chunk
            )
        except Exception as e:
            raise RangeUploadError(
                f"Error writing page at offset {start} for file {self.source_name!r}: {e}",
                offset=start,
                source=self.source_name
            ) from e

        logger.debug(f"Wrote bytes {start}-{end} of {self.target}")
        return size
