"""
Module for tracking the outcome of the ranges in a page upload.
"""
import json
import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from .models import ByteRange, RangeResult, UploadSummary

logger = logging.getLogger(__name__)


class UploadTracker:
    """Collects completions and the first error from concurrent workers."""

    def __init__(self, upload_id: str, source: str, total_ranges: int,
                 log_dir: Optional[Path] = None):
        """Initialize the upload tracker.

        Args:
            upload_id: Identifier of this upload, used in reports
            source: Path of the file being uploaded
            total_ranges: Number of ranges queued for upload
            log_dir: Existing directory to write a JSON report to. If None, logs only.
        """
        self.upload_id = upload_id
        self.source = source
        self.total_ranges = total_ranges
        self.log_dir = log_dir

        self._results: List[RangeResult] = []
        self._first_error: Optional[Exception] = None
        self._lock = threading.Lock()

    @property
    def first_error(self) -> Optional[Exception]:
        with self._lock:
            return self._first_error

    @property
    def attempts(self) -> int:
        with self._lock:
            return len(self._results)

    def record_success(self, byte_range: ByteRange, bytes_written: int) -> None:
        """Record a range that was written."""
        with self._lock:
            self._results.append(RangeResult(
                offset=byte_range.offset,
                length=byte_range.length,
                success=True,
                bytes_written=bytes_written
            ))

    def record_failure(self, byte_range: ByteRange, error: Exception) -> None:
        """Record a range that failed. Only the first error is kept."""
        with self._lock:
            if self._first_error is None:
                self._first_error = error
            self._results.append(RangeResult(
                offset=byte_range.offset,
                length=byte_range.length,
                success=False,
                error=str(error)
            ))

    def summary(self) -> UploadSummary:
        """Build a summary of everything recorded so far."""
        with self._lock:
            results = sorted(self._results, key=lambda r: r.offset)
            successful = sum(1 for r in results if r.success)
            return UploadSummary(
                upload_id=self.upload_id,
                source=self.source,
                total_ranges=self.total_ranges,
                successful_ranges=successful,
                failed_ranges=len(results) - successful,
                bytes_uploaded=sum(r.bytes_written for r in results),
                results=results,
                error=self._first_error
            )

    def _get_log_path(self) -> Optional[Path]:
        if not self.log_dir:
            return None

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return self.log_dir / f"upload_{self.upload_id}_{timestamp}.json"

    def log_upload_summary(self, summary: UploadSummary) -> None:
        """Log the summary of a completed page upload.

        Args:
            summary: UploadSummary object
        """
        log_data = {
            "timestamp": datetime.now().isoformat(),
            "upload_id": summary.upload_id,
            "source": summary.source,
            "total_ranges": summary.total_ranges,
            "successful_ranges": summary.successful_ranges,
            "failed_ranges": summary.failed_ranges,
            "bytes_uploaded": summary.bytes_uploaded,
            "error": str(summary.error) if summary.error else None,
            "results": [
                {
                    "offset": r.offset,
                    "length": r.length,
                    "success": r.success,
                    "bytes_written": r.bytes_written,
                    "error": r.error
                }
                for r in summary.results
            ]
        }

        if log_path := self._get_log_path():
            try:
                with open(log_path, 'w') as f:
                    json.dump(log_data, f, indent=2)
            except OSError as e:
                logger.warning(f"Could not write upload report {log_path}: {e}")

        logger.info(
            f"Completed upload {summary.upload_id}: "
            f"{summary.successful_ranges}/{summary.total_ranges} ranges uploaded successfully "
            f"({summary.bytes_uploaded} bytes)"
        )
