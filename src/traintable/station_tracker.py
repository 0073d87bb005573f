"""Main Station Tracker class."""

import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Union

from .archive import DEFAULT_FEED_URL
from .arrivals import DEFAULT_LIMIT, next_arrival_per_direction, upcoming_arrivals
from .errors import FeedNotLoaded, StationNotFound
from .gtfs_loader import GTFSLoader
from .models import Arrival, Route, Station
from .snapshot import FeedSnapshot

logger = logging.getLogger(__name__)

# Upper bound on arrivals returned by a single query
MAX_ARRIVAL_LIMIT = 15


class StationTracker:
    """
    Answers schedule queries against the most recently loaded GTFS feed.

    This class provides methods to:
    - List lines and the stations each line serves
    - Find stations by ID or name
    - Get upcoming scheduled arrivals, optionally per direction

    Reloading builds a complete new snapshot before publishing it, so a query
    always runs against one consistent feed.
    """

    def __init__(self, loader: Optional[GTFSLoader] = None, snapshot: Optional[FeedSnapshot] = None):
        """
        Initialize the tracker.

        Args:
            loader: Loader used by the load methods. Defaults to GTFSLoader().
            snapshot: Already built snapshot to publish immediately.
        """
        self.gtfs_loader = loader or GTFSLoader()
        self._snapshot = snapshot
        self._lock = threading.Lock()

    @property
    def snapshot(self) -> FeedSnapshot:
        """The currently published snapshot."""
        snapshot = self._snapshot
        if snapshot is None:
            raise FeedNotLoaded("No GTFS feed has been loaded")
        return snapshot

    @property
    def is_loaded(self) -> bool:
        return self._snapshot is not None

    def publish(self, snapshot: FeedSnapshot) -> None:
        """Replace the published snapshot."""
        with self._lock:
            self._snapshot = snapshot
        logger.info(f"Published feed snapshot with {len(snapshot.stations)} stations")

    def load(self, data: bytes) -> FeedSnapshot:
        """Build a snapshot from GTFS zip bytes and publish it."""
        snapshot = self.gtfs_loader.load_from_bytes(data)
        self.publish(snapshot)
        return snapshot

    def load_from_url(self, url: str = DEFAULT_FEED_URL) -> FeedSnapshot:
        """Download a GTFS zip, build a snapshot and publish it."""
        snapshot = self.gtfs_loader.load_from_url(url)
        self.publish(snapshot)
        return snapshot

    def load_from_directory(self, path: Union[str, Path]) -> FeedSnapshot:
        """Build a snapshot from an extracted feed directory and publish it."""
        snapshot = self.gtfs_loader.load_from_directory(path)
        self.publish(snapshot)
        return snapshot

    def list_lines(self) -> List[Route]:
        return self.snapshot.list_lines()

    def stations_for_line(self, line_id: str) -> List[Station]:
        return self.snapshot.stations_for_line(line_id)

    def get_station(self, station_id: str) -> Optional[Station]:
        """Get a station by anchor or platform stop ID, or None."""
        return self.snapshot.get_station(station_id)

    def find_station(self, station_input: str) -> Station:
        """
        Get a station by ID or name.

        Args:
            station_input: Either a stop ID (e.g., "127N") or station name (e.g., "Times Square").

        Returns:
            Station object.

        Raises:
            StationNotFound: If station not found.
        """
        snapshot = self.snapshot
        station = snapshot.get_station(station_input)
        if station is not None:
            return station

        stations = snapshot.find_stations_by_name(station_input)
        if not stations:
            raise StationNotFound(station_input)
        return stations[0]

    def find_stations_by_name(self, name: str) -> List[Station]:
        """
        Find all stations matching a name (partial match).

        Args:
            name: Station name or partial name.

        Returns:
            List of matching Station objects.
        """
        return self.snapshot.find_stations_by_name(name)

    def upcoming_arrivals(
        self,
        station_id: str,
        direction: Optional[str] = None,
        line_id: Optional[str] = None,
        limit: int = DEFAULT_LIMIT,
        now: Optional[datetime] = None,
    ) -> List[Arrival]:
        """
        Get upcoming scheduled arrivals at a station.

        Args:
            station_id: Station or platform stop ID.
            direction: Optional "north" or "south".
            line_id: Optional route ID filter.
            limit: Maximum arrivals, capped at MAX_ARRIVAL_LIMIT.
            now: Query time; defaults to the local wall clock.

        Returns:
            List of Arrival objects, soonest first.
        """
        return upcoming_arrivals(
            self.snapshot,
            station_id,
            now or datetime.now(),
            direction=direction,
            line_id=line_id,
            limit=min(limit, MAX_ARRIVAL_LIMIT),
        )

    def next_trains(
        self,
        station_id: str,
        line_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Arrival]:
        """Get the next train in each direction, keyed by "north"/"south"."""
        return next_arrival_per_direction(self.snapshot, station_id, now or datetime.now(), line_id=line_id)
