"""
Tests for the Azure blob store.
"""
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from azure.core.exceptions import (
    HttpResponseError,
    ResourceNotFoundError,
    ServiceRequestError,
    ServiceResponseError,
)
from azure.storage.blob import BlobType
from tenacity import wait_none

from blob_upload_service.uploader import AzureBlobStore, is_retryable_error


def http_error(status_code, error_code=None):
    error = HttpResponseError(message=f"status {status_code}")
    error.status_code = status_code
    error.error_code = error_code
    return error


@pytest.fixture(autouse=True)
def no_wait(monkeypatch):
    """Remove wait time between retries for testing."""
    for name in ('create_empty_page_blob', 'write_range', 'create_empty_block_blob',
                 '_start_copy', '_copy_properties'):
        monkeypatch.setattr(getattr(AzureBlobStore, name).retry, 'wait', wait_none())


@pytest.fixture
def mock_blob_client():
    with patch('blob_upload_service.uploader.BlobServiceClient') as mock_service_cls:
        blob_client = MagicMock()
        service = MagicMock()
        service.get_blob_client.return_value = blob_client
        mock_service_cls.from_connection_string.return_value = service
        mock_service_cls.return_value = service
        yield blob_client


@pytest.fixture
def store(mock_blob_client):
    return AzureBlobStore(connection_string="UseDevelopmentStorage=true")


def test_create_empty_page_blob(store, mock_blob_client):
    store.create_empty_page_blob("acct", "vhds", "disk.vhd", 8192,
                                 "application/octet-stream", {"a": "b"})

    kwargs = mock_blob_client.create_page_blob.call_args.kwargs
    assert kwargs['size'] == 8192
    assert kwargs['content_settings'].content_type == "application/octet-stream"
    assert kwargs['metadata'] == {"a": "b"}


def test_write_range_passes_offset_and_length(store, mock_blob_client):
    store.write_range("acct", "vhds", "disk.vhd", 4096, 8191, b"\x01" * 4096)

    mock_blob_client.upload_page.assert_called_once_with(b"\x01" * 4096, offset=4096, length=4096)


def test_write_range_rejects_mismatched_content(store, mock_blob_client):
    with pytest.raises(ValueError):
        store.write_range("acct", "vhds", "disk.vhd", 0, 4095, b"\x01" * 10)

    assert not mock_blob_client.upload_page.called


def test_write_range_retries_transient_errors(store, mock_blob_client):
    mock_blob_client.upload_page.side_effect = [http_error(503), ServiceRequestError("reset"), None]

    store.write_range("acct", "vhds", "disk.vhd", 0, 3, b"abcd")

    assert mock_blob_client.upload_page.call_count == 3


def test_write_range_gives_up_after_three_attempts(store, mock_blob_client):
    mock_blob_client.upload_page.side_effect = http_error(500)

    with pytest.raises(HttpResponseError):
        store.write_range("acct", "vhds", "disk.vhd", 0, 3, b"abcd")

    assert mock_blob_client.upload_page.call_count == 3


def test_write_range_does_not_retry_client_errors(store, mock_blob_client):
    mock_blob_client.upload_page.side_effect = http_error(403, "AuthorizationFailure")

    with pytest.raises(HttpResponseError):
        store.write_range("acct", "vhds", "disk.vhd", 0, 3, b"abcd")

    assert mock_blob_client.upload_page.call_count == 1


def test_block_blob_uploads(store, mock_blob_client, tmp_path):
    store.create_empty_block_blob("acct", "files", "empty.txt", "text/plain", {})
    assert mock_blob_client.upload_blob.call_args.args[0] == b""
    assert mock_blob_client.upload_blob.call_args.kwargs['blob_type'] == BlobType.BLOCKBLOB

    path = tmp_path / "data.txt"
    path.write_text("data")
    with open(path, 'rb') as stream:
        store.upload_block_blob("acct", "files", "data.txt", stream, None, {})
    assert mock_blob_client.upload_blob.call_args.args[0] is stream
    assert mock_blob_client.upload_blob.call_args.kwargs['overwrite'] is True


def test_copy_from_url_polls_until_done(store, mock_blob_client):
    mock_blob_client.get_blob_properties.side_effect = [
        SimpleNamespace(copy=SimpleNamespace(status='pending', progress='1/2', status_description=None)),
        SimpleNamespace(copy=SimpleNamespace(status='success', progress='2/2', status_description=None)),
    ]

    with patch('blob_upload_service.uploader.time.sleep') as mock_sleep:
        store.copy_from_url("acct", "vhds", "disk.vhd", "https://example.com/src.vhd",
                            {"k": "v"}, polling_interval=15)

    mock_blob_client.start_copy_from_url.assert_called_once_with(
        "https://example.com/src.vhd", metadata={"k": "v"}
    )
    mock_sleep.assert_called_once_with(15)


def test_copy_from_url_failed_copy_raises(store, mock_blob_client):
    mock_blob_client.get_blob_properties.return_value = SimpleNamespace(
        copy=SimpleNamespace(status='failed', progress=None, status_description='404 source')
    )

    with pytest.raises(HttpResponseError, match="failed"):
        store.copy_from_url("acct", "vhds", "disk.vhd", "https://example.com/src.vhd")


def test_service_client_from_account_url():
    credential = object()
    with patch('blob_upload_service.uploader.BlobServiceClient') as mock_service_cls:
        store = AzureBlobStore(credential=credential)
        store.write_range("acct", "vhds", "disk.vhd", 0, 0, b"x")
        store.write_range("acct", "vhds", "disk.vhd", 1, 1, b"y")

    mock_service_cls.assert_called_once_with(
        account_url="https://acct.blob.core.windows.net",
        credential=credential
    )


def test_is_retryable_error():
    """Test error classification for retries."""
    for code in (408, 429, 500, 502, 503, 504):
        assert is_retryable_error(http_error(code))

    assert is_retryable_error(http_error(409, 'ServerBusy'))
    assert is_retryable_error(ServiceRequestError("connection reset"))

    for code in (400, 403, 404, 409, 412):
        assert not is_retryable_error(http_error(code))

    assert not is_retryable_error(ResourceNotFoundError("gone"))
    assert not is_retryable_error(ValueError("nope"))


def test_copy_from_url_retries_transient_polling_errors(store, mock_blob_client):
    mock_blob_client.get_blob_properties.side_effect = [
        ServiceResponseError("connection dropped"),
        SimpleNamespace(copy=SimpleNamespace(status='success', progress='2/2', status_description=None)),
    ]

    store.copy_from_url("acct", "vhds", "disk.vhd", "https://example.com/src.vhd")

    assert mock_blob_client.get_blob_properties.call_count == 2
    mock_blob_client.start_copy_from_url.assert_called_once()


def test_permanent_copy_conflict_is_not_retried():
    assert not is_retryable_error(
        http_error(409, 'IncrementalCopyOfEarlierVersionSnapshotNotAllowed')
    )
