"""
Module for creating blobs from an upload request.
"""
import logging
from pathlib import Path
from typing import Optional

from .coordinator import UploadCoordinator
from .exceptions import BlobUploadError, SourceError, ValidationError
from .models import (
    BLOB_TYPE_BLOCK,
    BLOB_TYPE_PAGE,
    BlobUploadRequest,
    UploadSettings,
    UploadSummary,
)
from .source import SourceFile

logger = logging.getLogger(__name__)


class BlobUploadService:
    """Creates a blob by copying, creating empty, or uploading a local file."""

    def __init__(self, store, settings: Optional[UploadSettings] = None,
                 log_dir: Optional[Path] = None):
        """Initialize the service.

        Args:
            store: BlobStore used for every remote call
            settings: Page upload settings
            log_dir: Directory for JSON upload reports
        """
        self.store = store
        self.settings = settings or UploadSettings()
        self.coordinator = UploadCoordinator(store, self.settings, log_dir=log_dir)

    def validate(self, request: BlobUploadRequest) -> None:
        """Check that the request is a supported combination of options.

        Raises:
            ValidationError: If the request cannot be fulfilled
        """
        if request.source_uri:
            return

        blob = str(request.target)
        if request.blob_type == BLOB_TYPE_BLOCK:
            return

        if request.blob_type == BLOB_TYPE_PAGE:
            if request.source is not None and request.size:
                raise ValidationError("`size` cannot be set for an uploaded page blob", blob)
            if request.source is None and not request.size:
                raise ValidationError("`size` cannot be zero for a page blob", blob)
            return

        raise ValidationError(f"Unsupported Blob Type: {request.blob_type!r}", blob)

    def create(self, request: BlobUploadRequest) -> Optional[UploadSummary]:
        """Create the blob described by ``request``.

        Returns:
            UploadSummary for page blobs uploaded from a source, otherwise None

        Raises:
            ValidationError: If the request is invalid; nothing remote is touched
            SourceError: If the source file cannot be opened
            ScanError: If the source cannot be scanned
            BlobUploadError: If any remote call fails
        """
        self.validate(request)

        if request.source_uri:
            self._copy(request)
            return None

        if request.blob_type == BLOB_TYPE_BLOCK:
            if request.source is not None:
                self._upload_block_blob(request)
            else:
                self._create_empty_block_blob(request)
            return None

        if request.source is not None:
            return self._upload_page_blob(request)

        self._create_empty_page_blob(request, request.size)
        return None

    def _copy(self, request: BlobUploadRequest) -> None:
        logger.info(f"Copying {request.source_uri} to {request.target}")
        try:
            self.store.copy_from_url(
                request.account_name,
                request.container_name,
                request.blob_name,
                request.source_uri,
                request.metadata,
                self.settings.polling_interval
            )
        except Exception as e:
            raise BlobUploadError(f"Error copy/waiting: {e}", {"blob": str(request.target)}) from e

    def _create_empty_block_blob(self, request: BlobUploadRequest) -> None:
        try:
            self.store.create_empty_block_blob(
                request.account_name,
                request.container_name,
                request.blob_name,
                request.content_type,
                request.metadata
            )
        except Exception as e:
            raise BlobUploadError(f"Error PutBlockBlob: {e}", {"blob": str(request.target)}) from e
        logger.info(f"Created empty block blob {request.target}")

    def _upload_block_blob(self, request: BlobUploadRequest) -> None:
        try:
            stream = open(request.source, 'rb')
        except OSError as e:
            raise SourceError(
                f"Error opening source file for upload {str(request.source)!r}: {e}",
                source=str(request.source)
            ) from e

        with stream:
            logger.info(f"Uploading {request.source} to {request.target}")
            try:
                self.store.upload_block_blob(
                    request.account_name,
                    request.container_name,
                    request.blob_name,
                    stream,
                    request.content_type,
                    request.metadata
                )
            except Exception as e:
                raise BlobUploadError(
                    f"Error PutBlockBlobFromFile: {e}", {"blob": str(request.target)}
                ) from e

    def _create_empty_page_blob(self, request: BlobUploadRequest, size: int) -> None:
        try:
            self.store.create_empty_page_blob(
                request.account_name,
                request.container_name,
                request.blob_name,
                size,
                request.content_type,
                request.metadata
            )
        except Exception as e:
            raise BlobUploadError(f"Error PutPageBlob: {e}", {"blob": str(request.target)}) from e
        logger.info(f"Created page blob {request.target} ({size} bytes)")

    def _upload_page_blob(self, request: BlobUploadRequest) -> UploadSummary:
        with SourceFile(request.source) as source:
            self._create_empty_page_blob(request, source.size)

            summary = self.coordinator.upload_pages(request.target, source)
            if summary.error is not None:
                raise BlobUploadError(
                    f"Error while uploading source file {str(source.path)!r}: {summary.error}",
                    {"blob": str(request.target)}
                ) from summary.error

        return summary
