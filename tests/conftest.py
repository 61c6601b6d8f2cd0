"""
Test fixtures for the blob upload service.
"""
import threading
from typing import Dict, Optional, Set

import pytest

from blob_upload_service.blob_upload import BlobUploadService
from blob_upload_service.coordinator import UploadCoordinator
from blob_upload_service.models import BlobTarget, UploadSettings


class FakeBlobStore:
    """In-memory BlobStore that records every call."""

    def __init__(self):
        self.blobs: Dict[str, bytearray] = {}
        self.block_blobs: Dict[str, bytes] = {}
        self.copies: Dict[str, str] = {}
        self.properties: Dict[str, dict] = {}
        self.writes = []
        self.calls = []
        self.fail_offsets: Set[int] = set()
        self.fail_create: Optional[Exception] = None
        self._lock = threading.Lock()

    @staticmethod
    def _key(account_name, container_name, blob_name):
        return f"{account_name}/{container_name}/{blob_name}"

    def create_empty_page_blob(self, account_name, container_name, blob_name,
                               size, content_type=None, metadata=None):
        self.calls.append('create_empty_page_blob')
        if self.fail_create:
            raise self.fail_create
        key = self._key(account_name, container_name, blob_name)
        with self._lock:
            self.blobs[key] = bytearray(size)
            self.properties[key] = {'content_type': content_type, 'metadata': metadata}

    def write_range(self, account_name, container_name, blob_name,
                    start_byte, end_byte, content):
        key = self._key(account_name, container_name, blob_name)
        with self._lock:
            self.writes.append((start_byte, end_byte))
            if start_byte in self.fail_offsets:
                raise IOError(f"injected failure at {start_byte}")
            assert len(content) == end_byte - start_byte + 1
            blob = self.blobs[key]
            assert end_byte < len(blob)
            blob[start_byte:end_byte + 1] = content

    def create_empty_block_blob(self, account_name, container_name, blob_name,
                                content_type=None, metadata=None):
        self.calls.append('create_empty_block_blob')
        self.block_blobs[self._key(account_name, container_name, blob_name)] = b""

    def upload_block_blob(self, account_name, container_name, blob_name,
                          stream, content_type=None, metadata=None):
        self.calls.append('upload_block_blob')
        self.block_blobs[self._key(account_name, container_name, blob_name)] = stream.read()

    def copy_from_url(self, account_name, container_name, blob_name,
                      source_uri, metadata=None, polling_interval=15.0):
        self.calls.append('copy_from_url')
        self.copies[self._key(account_name, container_name, blob_name)] = source_uri


@pytest.fixture
def fake_store():
    """Create an in-memory blob store."""
    return FakeBlobStore()


@pytest.fixture
def settings():
    """Small pages so tests stay fast."""
    return UploadSettings(page_size=4096, max_range_size=4 * 1024 * 1024,
                          parallelism=2, processing_units=2)


@pytest.fixture
def target():
    return BlobTarget("testaccount", "vhds", "disk.vhd")


@pytest.fixture
def coordinator(fake_store, settings, tmp_path):
    """Create a test upload coordinator."""
    return UploadCoordinator(fake_store, settings, log_dir=tmp_path / "logs")


@pytest.fixture
def upload_service(fake_store, settings):
    """Create a test upload service."""
    return BlobUploadService(fake_store, settings)


@pytest.fixture
def make_file(tmp_path):
    """Write bytes to a file under the temp directory."""
    def _make_file(content: bytes, name: str = "source.bin"):
        path = tmp_path / name
        path.write_bytes(content)
        return path
    return _make_file


@pytest.fixture
def sparse_file(make_file):
    """10,000 bytes with the second page all zeros."""
    content = b"\x01" * 4096 + b"\x00" * 4096 + b"\x02" * (10000 - 8192)
    return make_file(content)
