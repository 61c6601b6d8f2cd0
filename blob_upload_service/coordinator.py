"""
Module for coordinating parallel page range uploads.
"""
import logging
import queue
import threading
import uuid
from pathlib import Path
from typing import List, Optional

from .exceptions import ConfigurationError
from .models import BlobTarget, UploadSettings, UploadSummary, UploadUnit
from .scanner import FileScanner
from .source import SourceFile
from .tracker import UploadTracker
from .worker import PageUploadWorker

logger = logging.getLogger(__name__)


class UploadCoordinator:
    """Fans page ranges out over a fixed pool of upload workers."""

    def __init__(self, store, settings: Optional[UploadSettings] = None,
                 log_dir: Optional[Path] = None):
        """Initialize the upload coordinator.

        Args:
            store: BlobStore that performs the remote writes
            settings: Page sizes and worker pool sizing
            log_dir: Directory for JSON upload reports

        Raises:
            ConfigurationError: If ``log_dir`` cannot be created
        """
        self.store = store
        self.settings = settings or UploadSettings()
        self.log_dir = log_dir
        if log_dir:
            try:
                log_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise ConfigurationError(f"Cannot create report directory {log_dir}: {e}") from e
        self.scanner = FileScanner(self.settings)

    @property
    def worker_count(self) -> int:
        return self.settings.worker_count

    def upload_pages(self, target: BlobTarget, source: SourceFile) -> UploadSummary:
        """Upload every non-empty range of an open source into ``target``.

        The blob must already exist at ``source.size`` bytes.

        Raises:
            ScanError: If the source could not be scanned; nothing is uploaded
        """
        units = self.scanner.scan(source)
        return self.run(target, units, source.size, str(source.path))

    def run(self, target: BlobTarget, units: List[UploadUnit], blob_size: int,
            source_name: str = "") -> UploadSummary:
        """Upload the given units and wait for all of them to finish.

        Args:
            target: Blob being written
            units: Upload units, in ascending offset order
            blob_size: Size the blob was created with
            source_name: Path of the source, for error context

        Returns:
            UploadSummary whose ``error`` is the first failure seen, if any
        """
        upload_id = str(uuid.uuid4())
        tracker = UploadTracker(upload_id, source_name, len(units), log_dir=self.log_dir)

        pending: "queue.Queue[UploadUnit]" = queue.Queue(maxsize=len(units))
        for unit in units:
            pending.put_nowait(unit)

        worker = PageUploadWorker(self.store, target, blob_size, tracker, source_name)
        threads = []
        for i in range(self.worker_count):
            thread = threading.Thread(
                target=worker.run,
                args=(pending,),
                name=f"page-upload-{upload_id[:8]}-{i}",
                daemon=True
            )
            threads.append(thread)
            thread.start()

        logger.info(
            f"Uploading {len(units)} ranges of {source_name or 'source'} to {target} "
            f"with {len(threads)} workers"
        )

        pending.join()
        for thread in threads:
            thread.join()

        summary = tracker.summary()
        tracker.log_upload_summary(summary)
        if summary.failed_ranges:
            logger.error(
                f"{summary.failed_ranges} of {summary.total_ranges} ranges failed "
                f"for {target}: {summary.error}"
            )
        return summary
