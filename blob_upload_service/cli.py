"""
Command-line interface for the blob upload service.
"""
import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv

from .blob_upload import BlobUploadService
from .exceptions import BlobUploadError, ConfigurationError
from .models import BlobUploadRequest, UploadSettings
from .scanner import FileScanner
from .source import open_source
from .uploader import AzureBlobStore

logger = logging.getLogger(__name__)

CONNECTION_STRING_ENV = "AZURE_STORAGE_CONNECTION_STRING"


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application.

    Args:
        verbose: Whether to enable debug logging
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    # the SDK logs every HTTP request at INFO
    logging.getLogger('azure').setLevel(logging.WARNING)


def load_config(config_file: Optional[Path] = None) -> dict:
    """Load configuration from a JSON file.

    Args:
        config_file: Path to config file

    Returns:
        Dictionary of configuration values
    """
    if not config_file:
        return {}

    try:
        with open(config_file) as f:
            config = json.load(f)
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"Error loading config file {config_file}: {e}") from e

    if not isinstance(config, dict):
        raise ConfigurationError(f"Config file {config_file} must contain a JSON object")
    return config


def parse_metadata(pairs: Optional[List[str]]) -> Dict[str, str]:
    """Turn ``key=value`` strings into a metadata dict."""
    metadata = {}
    for pair in pairs or []:
        key, sep, value = pair.partition('=')
        if not sep or not key:
            raise ConfigurationError(f"Metadata must be given as key=value, got {pair!r}")
        metadata[key] = value
    return metadata


def build_settings(args: argparse.Namespace, config: dict) -> UploadSettings:
    """Merge config file values with command line overrides."""
    values = dict(config)
    for name in ('page_size', 'max_range_size', 'parallelism', 'processing_units'):
        override = getattr(args, name, None)
        if override is not None:
            values[name] = override
    return UploadSettings.from_dict(values)


def create_service(args: argparse.Namespace) -> BlobUploadService:
    """Create and configure the blob upload service.

    Args:
        args: Command line arguments

    Returns:
        Configured BlobUploadService instance
    """
    config = load_config(args.config)
    settings = build_settings(args, config)

    log_dir = config.get('log_dir')
    store = AzureBlobStore(
        connection_string=os.getenv(CONNECTION_STRING_ENV),
        endpoint_suffix=config.get('endpoint_suffix', 'core.windows.net')
    )
    return BlobUploadService(
        store,
        settings=settings,
        log_dir=Path(log_dir) if log_dir else None
    )


def handle_upload(args: argparse.Namespace) -> None:
    """Handle the upload command.

    Args:
        args: Command line arguments
    """
    service = create_service(args)

    request = BlobUploadRequest(
        account_name=args.account,
        container_name=args.container,
        blob_name=args.blob,
        blob_type=args.type,
        content_type=args.content_type,
        metadata=parse_metadata(args.metadata),
        size=args.size or 0,
        source=Path(args.source) if args.source else None,
        source_uri=args.source_uri
    )

    summary = service.create(request)
    if summary is not None:
        logger.info(
            f"Uploaded {summary.bytes_uploaded} bytes in {summary.total_ranges} ranges "
            f"to {request.target}"
        )
    else:
        logger.info(f"Created {request.target}")


def handle_scan(args: argparse.Namespace) -> None:
    """Handle the scan command.

    Prints the ranges that would be uploaded without touching any blob.

    Args:
        args: Command line arguments
    """
    settings = build_settings(args, load_config(args.config))
    scanner = FileScanner(settings)

    with open_source(args.source) as source:
        ranges = scanner.split(source)
        report = {
            "source": str(source.path),
            "size": source.size,
            "ranges": [{"offset": r.offset, "length": r.length} for r in ranges]
        }
    print(json.dumps(report, indent=2))


def add_size_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('--page-size', type=int, dest='page_size',
                        help="Page size used when looking for empty pages")
    parser.add_argument('--max-range-size', type=int, dest='max_range_size',
                        help="Largest range written in a single request")


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the CLI."""
    load_dotenv()

    parser = argparse.ArgumentParser(description="Azure Blob Upload CLI")
    parser.add_argument('-v', '--verbose', action='store_true',
                        help="Enable verbose logging")
    parser.add_argument('-c', '--config', type=Path,
                        help="Path to config file")

    subparsers = parser.add_subparsers(dest='command', required=True)

    # Upload command
    upload_parser = subparsers.add_parser('upload',
                                          help="Create a blob")
    upload_parser.add_argument('account', type=str,
                               help="Storage account name")
    upload_parser.add_argument('container', type=str,
                               help="Destination container")
    upload_parser.add_argument('blob', type=str,
                               help="Destination blob name")
    upload_parser.add_argument('-s', '--source', type=str,
                               help="Local file to upload")
    upload_parser.add_argument('-u', '--source-uri', type=str, dest='source_uri',
                               help="URL to copy the blob from")
    upload_parser.add_argument('-t', '--type', type=str, default='block',
                               help="Blob type: block or page")
    upload_parser.add_argument('--size', type=int,
                               help="Size of an empty page blob in bytes")
    upload_parser.add_argument('--content-type', type=str, dest='content_type',
                               help="Content type of the blob")
    upload_parser.add_argument('-m', '--metadata', action='append',
                               help="Metadata as key=value, may be repeated")
    upload_parser.add_argument('-p', '--parallelism', type=int,
                               help="Workers per processing unit")
    upload_parser.add_argument('--processing-units', type=int, dest='processing_units',
                               help="Processing units to size the worker pool by")
    add_size_arguments(upload_parser)

    # Scan command
    scan_parser = subparsers.add_parser('scan',
                                        help="List the non-empty ranges of a file")
    scan_parser.add_argument('source', type=str,
                             help="Local file to scan")
    add_size_arguments(scan_parser)

    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    try:
        if args.command == 'upload':
            handle_upload(args)
        elif args.command == 'scan':
            handle_scan(args)

    except BlobUploadError as e:
        logger.error(f"Error: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
