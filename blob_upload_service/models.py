"""
Module containing data models for the blob upload service.
"""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Dict, Any

from .exceptions import ConfigurationError

# Minimum page write granularity and maximum single page write for page blobs
MIN_PAGE_SIZE = 4 * 1024
MAX_PAGE_RANGE_SIZE = 4 * 1024 * 1024

DEFAULT_PARALLELISM = 8
DEFAULT_POLLING_INTERVAL = 15.0

BLOB_TYPE_BLOCK = "block"
BLOB_TYPE_PAGE = "page"


def padded_blob_size(size: int, page_size: int) -> int:
    """Round a file size up to the next multiple of the page size."""
    if size % page_size == 0:
        return size
    return size + (page_size - size % page_size)


@dataclass(frozen=True)
class ByteRange:
    """A page-aligned range of bytes that needs to be written."""
    offset: int
    length: int

    @property
    def end(self) -> int:
        """Inclusive last byte of the range."""
        return self.offset + self.length - 1


@dataclass
class UploadUnit:
    """A byte range queued for upload, with a lazy view over the source."""
    range: ByteRange
    view: Any  # RangeView

    @property
    def offset(self) -> int:
        return self.range.offset

    @property
    def length(self) -> int:
        return self.range.length


@dataclass(frozen=True)
class BlobTarget:
    """Identity of the remote blob being written."""
    account_name: str
    container_name: str
    blob_name: str

    def __str__(self) -> str:
        return f"{self.account_name}/{self.container_name}/{self.blob_name}"


@dataclass
class BlobUploadRequest:
    """Describes how a blob should be created."""
    account_name: str
    container_name: str
    blob_name: str
    blob_type: str = BLOB_TYPE_BLOCK
    content_type: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)
    size: int = 0
    source: Optional[Path] = None
    source_uri: Optional[str] = None

    def __post_init__(self):
        """Normalise the request."""
        if self.source is not None and not isinstance(self.source, Path):
            self.source = Path(self.source)
        self.blob_type = (self.blob_type or "").lower()
        if self.metadata is None:
            self.metadata = {}

    @property
    def target(self) -> BlobTarget:
        return BlobTarget(self.account_name, self.container_name, self.blob_name)


@dataclass
class RangeResult:
    """Represents the result of uploading a single byte range."""
    offset: int
    length: int
    success: bool
    bytes_written: int = 0
    error: Optional[str] = None


@dataclass
class UploadSummary:
    """Represents a summary of a page upload operation."""
    upload_id: str
    source: str
    total_ranges: int
    successful_ranges: int
    failed_ranges: int
    bytes_uploaded: int
    results: List[RangeResult]
    error: Optional[Exception] = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass
class UploadSettings:
    """Tunables for sparse page uploads."""
    page_size: int = MIN_PAGE_SIZE
    max_range_size: int = MAX_PAGE_RANGE_SIZE
    parallelism: int = DEFAULT_PARALLELISM
    processing_units: Optional[int] = None
    polling_interval: float = DEFAULT_POLLING_INTERVAL

    def __post_init__(self):
        """Validate the settings."""
        if self.processing_units is None:
            self.processing_units = os.cpu_count() or 1
        if self.page_size <= 0:
            raise ConfigurationError(f"page_size must be positive, got {self.page_size}")
        if self.max_range_size <= 0 or self.max_range_size % self.page_size != 0:
            raise ConfigurationError(
                f"max_range_size must be a positive multiple of page_size "
                f"({self.page_size}), got {self.max_range_size}"
            )
        if self.parallelism < 1:
            raise ConfigurationError(f"parallelism must be at least 1, got {self.parallelism}")
        if self.processing_units < 1:
            raise ConfigurationError(
                f"processing_units must be at least 1, got {self.processing_units}"
            )
        if self.polling_interval <= 0:
            raise ConfigurationError(
                f"polling_interval must be positive, got {self.polling_interval}"
            )

    @property
    def worker_count(self) -> int:
        return self.parallelism * self.processing_units

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "UploadSettings":
        """Build settings from a config mapping, ignoring unrelated keys."""
        converters = {
            'page_size': int,
            'max_range_size': int,
            'parallelism': int,
            'processing_units': int,
            'polling_interval': float,
        }
        values = {}
        for key, value in config.items():
            if key not in converters or value is None:
                continue
            try:
                values[key] = converters[key](value)
            except (TypeError, ValueError) as e:
                raise ConfigurationError(f"Invalid value for {key}: {value!r}") from e
        return cls(**values)
