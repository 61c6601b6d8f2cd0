"""
Tests for the command line interface.
"""
import argparse
import json
from unittest.mock import patch

import pytest

from blob_upload_service.cli import (
    build_settings,
    load_config,
    main,
    parse_metadata,
)
from blob_upload_service.exceptions import ConfigurationError


def test_load_config(tmp_path):
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps({"parallelism": 2, "log_dir": "logs"}))

    assert load_config(config_file) == {"parallelism": 2, "log_dir": "logs"}
    assert load_config(None) == {}


def test_load_config_invalid_json(tmp_path):
    config_file = tmp_path / "config.json"
    config_file.write_text("{not json")

    with pytest.raises(ConfigurationError):
        load_config(config_file)


def test_parse_metadata():
    assert parse_metadata(["a=1", "b=x=y"]) == {"a": "1", "b": "x=y"}
    assert parse_metadata(None) == {}

    with pytest.raises(ConfigurationError):
        parse_metadata(["novalue"])


def test_build_settings_flags_override_config():
    args = argparse.Namespace(page_size=None, max_range_size=8192,
                              parallelism=3, processing_units=1)

    settings = build_settings(args, {"max_range_size": 4096, "parallelism": 1})

    assert settings.max_range_size == 8192
    assert settings.parallelism == 3
    assert settings.worker_count == 3


def test_scan_prints_ranges(sparse_file, capsys):
    main(["scan", str(sparse_file)])

    report = json.loads(capsys.readouterr().out)
    assert report["size"] == 10000
    assert report["ranges"] == [
        {"offset": 0, "length": 4096},
        {"offset": 8192, "length": 4096},
    ]


def test_upload_uses_store_from_environment(sparse_file, fake_store, monkeypatch):
    monkeypatch.setenv("AZURE_STORAGE_CONNECTION_STRING", "UseDevelopmentStorage=true")

    with patch('blob_upload_service.cli.AzureBlobStore', return_value=fake_store) as mock_store_cls:
        main(["upload", "acct", "vhds", "disk.vhd", "-t", "page", "-s", str(sparse_file),
              "-m", "owner=ops", "-p", "1", "--processing-units", "2"])

    assert mock_store_cls.call_args.kwargs["connection_string"] == "UseDevelopmentStorage=true"
    assert bytes(fake_store.blobs["acct/vhds/disk.vhd"]) == sparse_file.read_bytes()
    assert fake_store.properties["acct/vhds/disk.vhd"]["metadata"] == {"owner": "ops"}


def test_upload_validation_error_exits(fake_store):
    with patch('blob_upload_service.cli.AzureBlobStore', return_value=fake_store):
        with pytest.raises(SystemExit) as exc_info:
            main(["upload", "acct", "vhds", "disk.vhd", "-t", "page"])

    assert exc_info.value.code == 1
    assert fake_store.calls == []


def test_bad_config_value_exits(sparse_file, tmp_path):
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps({"parallelism": "many"}))

    with pytest.raises(SystemExit) as exc_info:
        main(["-c", str(config_file), "scan", str(sparse_file)])

    assert exc_info.value.code == 1
