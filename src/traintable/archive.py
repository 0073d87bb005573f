"""Reads GTFS feed archives into raw table text."""

import io
import logging
import posixpath
import zipfile
from pathlib import Path
from typing import Dict, Iterable, Union

import requests

from .errors import FeedError, MissingEntry

logger = logging.getLogger(__name__)

# MTA GTFS static data URL
DEFAULT_FEED_URL = "https://rrgtfsfeeds.s3.amazonaws.com/gtfs_subway.zip"
REQUEST_TIMEOUT = 30  # seconds

REQUIRED_TABLES = (
    "routes",
    "stops",
    "trips",
    "stop_times",
    "calendar",
    "calendar_dates",
    "transfers",
)

# Shape geometry is never parsed
SKIPPED_TABLES = frozenset({"shapes"})


def fetch_feed(url: str = DEFAULT_FEED_URL, timeout: float = REQUEST_TIMEOUT) -> bytes:
    """Download a GTFS zip and return its bytes."""
    logger.info(f"Downloading GTFS data from {url}")
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        logger.error(f"Failed to download {url}: {e}")
        raise
    logger.debug(f"Downloaded {len(response.content)} bytes from {url}")
    return response.content


def _table_name(entry_name: str) -> str:
    return posixpath.splitext(posixpath.basename(entry_name))[0]


def _decode(raw: bytes) -> str:
    # utf-8-sig drops the byte order mark some agencies export
    return raw.decode("utf-8-sig")


def _check_required(found: Iterable[str], required: Iterable[str]) -> None:
    found = set(found)
    for table in required:
        if table not in found:
            raise MissingEntry(table)


def read_archive(
    data: bytes,
    required: Iterable[str] = REQUIRED_TABLES,
    skip: Iterable[str] = SKIPPED_TABLES,
) -> Dict[str, str]:
    """
    Decode every table in a GTFS zip.

    Args:
        data: Zip archive bytes.
        required: Tables that must be present.
        skip: Tables that are never decoded.

    Returns:
        Mapping of table name (e.g. "stop_times") to its text.

    Raises:
        MissingEntry: If a required table is absent.
        FeedError: If the bytes are not a zip archive.
    """
    skip = frozenset(skip)
    tables: Dict[str, str] = {}

    try:
        zip_file = zipfile.ZipFile(io.BytesIO(data))
    except zipfile.BadZipFile as e:
        raise FeedError(f"Feed is not a valid zip archive: {e}") from e

    with zip_file:
        for info in zip_file.infolist():
            if info.is_dir() or not info.filename.endswith(".txt"):
                continue
            name = _table_name(info.filename)
            if name in skip:
                logger.debug(f"Skipping {info.filename}")
                continue
            tables[name] = _decode(zip_file.read(info))
            logger.debug(f"Read {info.filename} ({info.file_size} bytes)")

    _check_required(tables, required)
    return tables


def read_directory(
    path: Union[str, Path],
    required: Iterable[str] = REQUIRED_TABLES,
    skip: Iterable[str] = SKIPPED_TABLES,
) -> Dict[str, str]:
    """Read the tables of an extracted GTFS feed directory."""
    skip = frozenset(skip)
    directory = Path(path)
    if not directory.is_dir():
        raise FeedError(f"GTFS directory not found: {directory}")

    tables: Dict[str, str] = {}
    for file in sorted(directory.glob("*.txt")):
        if file.stem in skip:
            continue
        tables[file.stem] = _decode(file.read_bytes())

    _check_required(tables, required)
    return tables
