"""GTFS static feed loader."""

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Union

from .archive import DEFAULT_FEED_URL, REQUEST_TIMEOUT, fetch_feed, read_archive, read_directory
from .parser import TABLE_PARSERS
from .snapshot import FeedSnapshot, FeedTables, build_snapshot

logger = logging.getLogger(__name__)


class GTFSLoader:
    """Loads GTFS static feeds into FeedSnapshots."""

    def __init__(self, parallel: bool = True, max_workers: Optional[int] = None, strict: bool = False):
        """
        Initialize the GTFS loader.

        Args:
            parallel: Parse tables concurrently in a thread pool.
            max_workers: Thread pool size; defaults to one worker per table.
            strict: Fail on dangling references instead of dropping rows.
        """
        self.parallel = parallel
        self.max_workers = max_workers or len(TABLE_PARSERS)
        self.strict = strict

    def load_from_url(self, url: str = DEFAULT_FEED_URL, timeout: float = REQUEST_TIMEOUT) -> FeedSnapshot:
        """Download a GTFS zip and load it."""
        return self.load_from_bytes(fetch_feed(url, timeout=timeout))

    def load_from_bytes(self, data: bytes) -> FeedSnapshot:
        """Load a GTFS zip held in memory."""
        try:
            return self._build(read_archive(data))
        except Exception as e:
            logger.error(f"Failed to load GTFS data: {e}")
            raise

    def load_from_directory(self, path: Union[str, Path]) -> FeedSnapshot:
        """Load GTFS data from an extracted feed directory."""
        logger.info(f"Loading GTFS data from {path}")
        try:
            return self._build(read_directory(path))
        except Exception as e:
            logger.error(f"Failed to load GTFS data: {e}")
            raise

    def parse_tables(self, raw_tables: Dict[str, str]) -> FeedTables:
        """Parse the raw text of every table the snapshot needs."""
        if self.parallel:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                futures = {
                    name: executor.submit(parser, raw_tables.get(name, ""))
                    for name, parser in TABLE_PARSERS.items()
                }
                # result() re-raises the first parse error
                parsed = {name: tuple(future.result()) for name, future in futures.items()}
        else:
            parsed = {
                name: tuple(parser(raw_tables.get(name, "")))
                for name, parser in TABLE_PARSERS.items()
            }

        for name, rows in parsed.items():
            logger.debug(f"Parsed {len(rows)} rows from {name}.txt")
        return FeedTables(**parsed)

    def _build(self, raw_tables: Dict[str, str]) -> FeedSnapshot:
        tables = self.parse_tables(raw_tables)
        snapshot = build_snapshot(tables, strict=self.strict, loaded_at=datetime.now())
        logger.info(f"Loaded {len(snapshot.stations)} stations and {len(tables.routes)} routes")
        return snapshot
