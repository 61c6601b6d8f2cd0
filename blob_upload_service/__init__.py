from .blob_upload import BlobUploadService
from .coordinator import UploadCoordinator
from .exceptions import (
    BlobUploadError,
    ConfigurationError,
    RangeUploadError,
    ScanError,
    SourceError,
    ValidationError,
)
from .models import (
    BlobTarget,
    BlobUploadRequest,
    ByteRange,
    UploadSettings,
    UploadSummary,
    padded_blob_size,
)
from .scanner import FileScanner, split_pages
from .source import SourceFile, open_source
from .tracker import UploadTracker
from .uploader import AzureBlobStore, BlobStore

__version__ = "0.1.0"

__all__ = [
    "BlobUploadService",
    "UploadCoordinator",
    "BlobUploadError",
    "ConfigurationError",
    "RangeUploadError",
    "ScanError",
    "SourceError",
    "ValidationError",
    "BlobTarget",
    "BlobUploadRequest",
    "ByteRange",
    "UploadSettings",
    "UploadSummary",
    "padded_blob_size",
    "FileScanner",
    "split_pages",
    "SourceFile",
    "open_source",
    "UploadTracker",
    "AzureBlobStore",
    "BlobStore",
]
