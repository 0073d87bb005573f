"""Immutable feed snapshot and the index builder that produces it."""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime
from types import MappingProxyType
from typing import Dict, FrozenSet, List, Mapping, Optional, Set, Tuple

from .errors import UnknownReference
from .models import (
    CalendarDateEntry,
    CalendarEntry,
    Route,
    Station,
    Stop,
    StopTime,
    Transfer,
    Trip,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FeedTables:
    """The parsed base tables of one feed."""
    routes: Tuple[Route, ...] = ()
    stops: Tuple[Stop, ...] = ()
    trips: Tuple[Trip, ...] = ()
    stop_times: Tuple[StopTime, ...] = ()
    calendar: Tuple[CalendarEntry, ...] = ()
    calendar_dates: Tuple[CalendarDateEntry, ...] = ()
    transfers: Tuple[Transfer, ...] = ()


@dataclass(frozen=True, eq=False)
class FeedSnapshot:
    """
    Base tables plus derived indices for one feed load.

    Built once by build_snapshot() and never mutated; a reload produces a new
    snapshot. Every index only references ids present in the base tables.
    """
    tables: FeedTables
    stations: Mapping[str, Station]  # anchor stop_id -> Station
    stop_to_station: Mapping[str, str]  # stop_id -> anchor stop_id
    line_stations: Mapping[str, FrozenSet[str]]  # route_id -> {anchor stop_ids}
    trip_service: Mapping[str, str]  # trip_id -> service_id
    route_trips: Mapping[str, FrozenSet[str]]  # route_id -> {trip_ids}
    routes_by_id: Mapping[str, Route]
    trips_by_id: Mapping[str, Trip]
    stop_times_by_stop: Mapping[str, Tuple[StopTime, ...]]  # table order
    calendar_by_service: Mapping[str, CalendarEntry]
    calendar_exceptions: Mapping[Tuple[str, date], int]  # (service_id, date) -> exception_type
    dropped_stop_times: int = 0
    untimed_stop_times: int = 0
    loaded_at: Optional[datetime] = field(default=None, compare=False)

    def list_lines(self) -> List[Route]:
        """All routes in feed order."""
        return list(self.tables.routes)

    def stations_for_line(self, line_id: str) -> List[Station]:
        """Stations served by a route, ordered by station id."""
        station_ids = self.line_stations.get(line_id, frozenset())
        return [self.stations[station_id] for station_id in sorted(station_ids)]

    def get_station(self, station_id: str) -> Optional[Station]:
        """Get a station by anchor id, or by the id of one of its platforms."""
        station = self.stations.get(station_id)
        if station is None and station_id in self.stop_to_station:
            station = self.stations[self.stop_to_station[station_id]]
        return station

    def find_stations_by_name(self, name: str) -> List[Station]:
        """Find stations by name (case-insensitive partial match)."""
        name_lower = name.lower()
        return [station for station in self.stations.values() if name_lower in station.name.lower()]


class _StationDraft:
    """Mutable station state while stops are folded."""

    def __init__(self, station_id: str, stop: Stop):
        self.station_id = station_id
        self.name = stop.name
        self.latitude = stop.latitude
        self.longitude = stop.longitude
        self.lines: Set[str] = set()
        self.directions: Dict[str, str] = {}
        self.stop_ids: Set[str] = set()

    def freeze(self) -> Station:
        return Station(
            station_id=self.station_id,
            name=self.name,
            latitude=self.latitude,
            longitude=self.longitude,
            lines=frozenset(self.lines),
            directions=MappingProxyType(dict(self.directions)),
            stop_ids=frozenset(self.stop_ids),
        )


def _fold_stations(stops) -> Tuple[Dict[str, _StationDraft], Dict[str, str]]:
    drafts: Dict[str, _StationDraft] = {}
    stop_to_station: Dict[str, str] = {}

    for stop in stops:
        anchor = stop.anchor_id
        draft = drafts.get(anchor)
        if draft is None:
            # First stop seen for an anchor supplies the name and coordinates
            draft = drafts[anchor] = _StationDraft(anchor, stop)
        draft.stop_ids.add(stop.stop_id)
        direction = stop.direction
        if direction is not None:
            draft.directions[direction] = stop.stop_id
        stop_to_station[stop.stop_id] = anchor

    return drafts, stop_to_station


def build_snapshot(
    tables: FeedTables,
    strict: bool = False,
    loaded_at: Optional[datetime] = None,
) -> FeedSnapshot:
    """
    Build the derived indices for a set of parsed tables.

    Each table is scanned once. Stop times that reference an unknown trip or
    stop are dropped and counted. Untimed stop times still place their stop on
    the trip's line but are left out of stop_times_by_stop. Trips of unknown
    routes keep their service mapping but join no line.

    Args:
        tables: Parsed feed tables.
        strict: Raise UnknownReference on the first dangling id instead of
            dropping the row.
        loaded_at: Timestamp recorded on the snapshot.

    Returns:
        A read-only FeedSnapshot.
    """
    drafts, stop_to_station = _fold_stations(tables.stops)

    routes_by_id: Dict[str, Route] = {}
    for route in tables.routes:
        routes_by_id.setdefault(route.route_id, route)

    trips_by_id: Dict[str, Trip] = {}
    trip_service: Dict[str, str] = {}
    route_trips: Dict[str, Set[str]] = {route_id: set() for route_id in routes_by_id}
    for trip in tables.trips:
        if trip.trip_id in trips_by_id:
            continue
        trips_by_id[trip.trip_id] = trip
        trip_service[trip.trip_id] = trip.service_id
        if trip.route_id in route_trips:
            route_trips[trip.route_id].add(trip.trip_id)
        elif strict:
            raise UnknownReference("trips", "route_id", trip.route_id)
        else:
            logger.debug(f"Trip {trip.trip_id} references unknown route {trip.route_id}")

    stops_by_trip: Dict[str, Set[str]] = defaultdict(set)
    stop_times_by_stop: Dict[str, List[StopTime]] = defaultdict(list)
    dropped = 0
    untimed = 0
    for stop_time in tables.stop_times:
        if stop_time.trip_id not in trips_by_id:
            if strict:
                raise UnknownReference("stop_times", "trip_id", stop_time.trip_id)
            dropped += 1
            continue
        if stop_time.stop_id not in stop_to_station:
            if strict:
                raise UnknownReference("stop_times", "stop_id", stop_time.stop_id)
            dropped += 1
            continue
        stops_by_trip[stop_time.trip_id].add(stop_time.stop_id)
        if stop_time.arrival_time is None:
            untimed += 1
            continue
        stop_times_by_stop[stop_time.stop_id].append(stop_time)

    if dropped:
        logger.warning(f"Dropped {dropped} stop_times referencing unknown trips or stops")
    if untimed:
        logger.debug(f"Left {untimed} untimed stop_times out of the arrival index")

    line_stations: Dict[str, FrozenSet[str]] = {}
    for route_id, trip_ids in route_trips.items():
        station_ids: Set[str] = set()
        for trip_id in trip_ids:
            for stop_id in stops_by_trip.get(trip_id, ()):
                station_ids.add(stop_to_station[stop_id])
        for station_id in station_ids:
            drafts[station_id].lines.add(route_id)
        line_stations[route_id] = frozenset(station_ids)

    calendar_by_service: Dict[str, CalendarEntry] = {}
    for entry in tables.calendar:
        calendar_by_service.setdefault(entry.service_id, entry)

    calendar_exceptions: Dict[Tuple[str, date], int] = {}
    for exception in tables.calendar_dates:
        calendar_exceptions[(exception.service_id, exception.date)] = exception.exception_type

    stations = {station_id: draft.freeze() for station_id, draft in drafts.items()}
    logger.debug(
        f"Indexed {len(stations)} stations, {len(line_stations)} lines, {len(trips_by_id)} trips"
    )

    return FeedSnapshot(
        tables=tables,
        stations=MappingProxyType(stations),
        stop_to_station=MappingProxyType(stop_to_station),
        line_stations=MappingProxyType(line_stations),
        trip_service=MappingProxyType(trip_service),
        route_trips=MappingProxyType({k: frozenset(v) for k, v in route_trips.items()}),
        routes_by_id=MappingProxyType(routes_by_id),
        trips_by_id=MappingProxyType(trips_by_id),
        stop_times_by_stop=MappingProxyType({k: tuple(v) for k, v in stop_times_by_stop.items()}),
        calendar_by_service=MappingProxyType(calendar_by_service),
        calendar_exceptions=MappingProxyType(calendar_exceptions),
        dropped_stop_times=dropped,
        untimed_stop_times=untimed,
        loaded_at=loaded_at,
    )
