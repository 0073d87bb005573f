"""TrainTable - GTFS static schedule loader and arrival lookup."""

__version__ = "0.1.0"

from .errors import (
    FeedError,
    FeedNotLoaded,
    MalformedRow,
    MissingEntry,
    StationNotFound,
    UnknownReference,
)
from .models import Arrival, GtfsTime, Route, Station, Stop, StopTime, Trip
from .snapshot import FeedSnapshot, FeedTables, build_snapshot
from .service_calendar import is_active
from .arrivals import next_arrival_per_direction, upcoming_arrivals
from .gtfs_loader import GTFSLoader
from .station_tracker import StationTracker

__all__ = [
    "StationTracker",
    "GTFSLoader",
    "FeedSnapshot",
    "FeedTables",
    "build_snapshot",
    "is_active",
    "upcoming_arrivals",
    "next_arrival_per_direction",
    "Arrival",
    "GtfsTime",
    "Route",
    "Station",
    "Stop",
    "StopTime",
    "Trip",
    "FeedError",
    "FeedNotLoaded",
    "MalformedRow",
    "MissingEntry",
    "StationNotFound",
    "UnknownReference",
]
