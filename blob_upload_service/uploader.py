"""
Module for talking to Azure Blob Storage with retry logic.
"""
import logging
import threading
import time
from typing import Any, BinaryIO, Dict, Optional, Protocol

from azure.core.exceptions import (
    HttpResponseError,
    ServiceRequestError,
    ServiceResponseError,
)
from azure.storage.blob import BlobServiceClient, BlobType, ContentSettings
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    before_log,
    after_log
)

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {408, 429, 500, 502, 503, 504}
RETRYABLE_ERROR_CODES = {
    'ServerBusy',
    'OperationTimedOut',
    'InternalError',
}


def is_retryable_error(exception: BaseException) -> bool:
    """Check if an exception should trigger a retry.

    Args:
        exception: The exception to check

    Returns:
        True if the error is retryable, False otherwise
    """
    if isinstance(exception, (ServiceRequestError, ServiceResponseError)):
        return True
    if isinstance(exception, HttpResponseError):
        if exception.status_code in RETRYABLE_STATUS_CODES:
            return True
        return getattr(exception, 'error_code', None) in RETRYABLE_ERROR_CODES
    return False


def _retrying():
    return retry(
        retry=retry_if_exception(is_retryable_error),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=4, max=10),
        before=before_log(logger, logging.DEBUG),
        after=after_log(logger, logging.DEBUG),
        reraise=True
    )


class BlobStore(Protocol):
    """Remote operations the upload service relies on."""

    def create_empty_page_blob(self, account_name: str, container_name: str,
                               blob_name: str, size: int,
                               content_type: Optional[str],
                               metadata: Dict[str, str]) -> None:
        ...

    def write_range(self, account_name: str, container_name: str, blob_name: str,
                    start_byte: int, end_byte: int, content: bytes) -> None:
        ...

    def create_empty_block_blob(self, account_name: str, container_name: str,
                                blob_name: str, content_type: Optional[str],
                                metadata: Dict[str, str]) -> None:
        ...

    def upload_block_blob(self, account_name: str, container_name: str,
                          blob_name: str, stream: BinaryIO,
                          content_type: Optional[str],
                          metadata: Dict[str, str]) -> None:
        ...

    def copy_from_url(self, account_name: str, container_name: str, blob_name: str,
                      source_uri: str, metadata: Dict[str, str],
                      polling_interval: float) -> None:
        ...


class AzureBlobStore:
    """BlobStore backed by the Azure Storage SDK."""

    def __init__(self, connection_string: Optional[str] = None,
                 credential: Any = None,
                 endpoint_suffix: str = "core.windows.net"):
        """Initialize the store.

        Args:
            connection_string: Storage account connection string. When set it
                takes precedence over ``credential``.
            credential: Credential for account URL based clients
            endpoint_suffix: DNS suffix of the blob endpoint
        """
        self.connection_string = connection_string
        self.credential = credential
        self.endpoint_suffix = endpoint_suffix
        self._clients: Dict[str, BlobServiceClient] = {}
        self._lock = threading.Lock()

    def _service_client(self, account_name: str) -> BlobServiceClient:
        with self._lock:
            client = self._clients.get(account_name)
            if client is None:
                if self.connection_string:
                    client = BlobServiceClient.from_connection_string(self.connection_string)
                else:
                    account_url = f"https://{account_name}.blob.{self.endpoint_suffix}"
                    client = BlobServiceClient(account_url=account_url,
                                               credential=self.credential)
                self._clients[account_name] = client
            return client

    def _blob_client(self, account_name: str, container_name: str, blob_name: str):
        return self._service_client(account_name).get_blob_client(
            container=container_name,
            blob=blob_name
        )

    @_retrying()
    def create_empty_page_blob(self, account_name: str, container_name: str,
                               blob_name: str, size: int,
                               content_type: Optional[str] = None,
                               metadata: Optional[Dict[str, str]] = None) -> None:
        """Create a zero-filled page blob of exactly ``size`` bytes."""
        blob = self._blob_client(account_name, container_name, blob_name)
        blob.create_page_blob(
            size=size,
            content_settings=ContentSettings(content_type=content_type),
            metadata=metadata or None
        )
        logger.debug(f"Created page blob {container_name}/{blob_name} ({size} bytes)")

    @_retrying()
    def write_range(self, account_name: str, container_name: str, blob_name: str,
                    start_byte: int, end_byte: int, content: bytes) -> None:
        """Write ``content`` to the inclusive range ``start_byte``-``end_byte``."""
        length = end_byte - start_byte + 1
        if len(content) != length:
            raise ValueError(
                f"Content is {len(content)} bytes but range {start_byte}-{end_byte} "
                f"is {length} bytes"
            )
        blob = self._blob_client(account_name, container_name, blob_name)
        blob.upload_page(content, offset=start_byte, length=length)

    @_retrying()
    def create_empty_block_blob(self, account_name: str, container_name: str,
                                blob_name: str, content_type: Optional[str] = None,
                                metadata: Optional[Dict[str, str]] = None) -> None:
        """Create an empty block blob."""
        blob = self._blob_client(account_name, container_name, blob_name)
        blob.upload_blob(
            b"",
            blob_type=BlobType.BLOCKBLOB,
            overwrite=True,
            content_settings=ContentSettings(content_type=content_type),
            metadata=metadata or None
        )

    def upload_block_blob(self, account_name: str, container_name: str,
                          blob_name: str, stream: BinaryIO,
                          content_type: Optional[str] = None,
                          metadata: Optional[Dict[str, str]] = None) -> None:
        """Stream a file into a block blob.

        Not retried here: a partially consumed stream cannot be replayed, and
        the SDK already retries individual block uploads.
        """
        blob = self._blob_client(account_name, container_name, blob_name)
        blob.upload_blob(
            stream,
            blob_type=BlobType.BLOCKBLOB,
            overwrite=True,
            content_settings=ContentSettings(content_type=content_type),
            metadata=metadata or None
        )

    @_retrying()
    def _start_copy(self, blob, source_uri: str, metadata: Optional[Dict[str, str]]):
        return blob.start_copy_from_url(source_uri, metadata=metadata or None)

    @_retrying()
    def _copy_properties(self, blob):
        return blob.get_blob_properties().copy

    def copy_from_url(self, account_name: str, container_name: str, blob_name: str,
                      source_uri: str, metadata: Optional[Dict[str, str]] = None,
                      polling_interval: float = 15.0) -> None:
        """Copy ``source_uri`` into the blob and wait for the copy to finish.

        Raises:
            HttpResponseError: If the copy ends in any state but success
        """
        blob = self._blob_client(account_name, container_name, blob_name)
        self._start_copy(blob, source_uri, metadata)

        while True:
            copy = self._copy_properties(blob)
            if copy.status != 'pending':
                break
            logger.debug(f"Copy into {container_name}/{blob_name} is {copy.progress}")
            time.sleep(polling_interval)

        if copy.status != 'success':
            raise HttpResponseError(
                message=f"Copy from {source_uri} finished with status "
                        f"{copy.status!r}: {copy.status_description}"
            )
