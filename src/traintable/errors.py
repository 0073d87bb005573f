"""Exceptions raised while loading and querying GTFS feeds."""

from typing import Optional


class FeedError(Exception):
    """Base class for feed loading and query errors."""


class MissingEntry(FeedError):
    """A required table is absent from the feed archive."""

    def __init__(self, table: str):
        self.table = table
        super().__init__(f"Required table '{table}' not found in feed")


class MalformedRow(FeedError):
    """A row does not satisfy its table's structural minimum."""

    def __init__(self, table: str, line: int, reason: str):
        self.table = table
        self.line = line
        self.reason = reason
        super().__init__(f"{table}.txt line {line}: {reason}")


class UnknownReference(FeedError):
    """A foreign key points at an id missing from its target table."""

    def __init__(self, table: str, column: str, value: str):
        self.table = table
        self.column = column
        self.value = value
        super().__init__(f"{table}.{column} references unknown id '{value}'")


class StationNotFound(FeedError, ValueError):
    """No station matches the requested id or name."""

    def __init__(self, station_input: str, message: Optional[str] = None):
        self.station_input = station_input
        super().__init__(message or f"No station found matching '{station_input}'")


class FeedNotLoaded(FeedError, RuntimeError):
    """A query was made before any feed snapshot was published."""
