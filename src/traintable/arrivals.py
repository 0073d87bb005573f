"""Scheduled arrival queries against a feed snapshot."""

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from .models import DIRECTIONS, NORTH, SOUTH, Arrival, StopTime
from .service_calendar import is_active
from .snapshot import FeedSnapshot

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10


def _resolve_targets(snapshot: FeedSnapshot, station_id: str, direction: Optional[str]) -> List[str]:
    """Resolve the concrete stop ids to match stop_times against."""
    if direction is None:
        station = snapshot.stations.get(station_id)
        if station is not None and station_id not in snapshot.stop_times_by_stop:
            # Anchor with no stop_times of its own: use its platforms
            return sorted(station.stop_ids)
        if station is None and station_id not in snapshot.stop_to_station:
            logger.debug(f"Unknown stop {station_id}")
            return []
        return [station_id]

    station = snapshot.get_station(station_id)
    if station is None:
        logger.debug(f"Unknown station {station_id}")
        return []
    platform = station.directions.get(direction)
    if platform is None:
        logger.debug(f"Station {station.station_id} has no {direction} platform")
        return []
    return [platform]


def _upcoming_stop_times(
    snapshot: FeedSnapshot,
    stop_ids: Iterable[str],
    now: datetime,
    line_id: Optional[str] = None,
) -> List[StopTime]:
    """Stop times at stop_ids running today and strictly after now, soonest first."""
    today = now.date()
    now_clock = (now.hour, now.minute, now.second)
    service_active: Dict[str, bool] = {}
    candidates = []

    for stop_id in stop_ids:
        for stop_time in snapshot.stop_times_by_stop.get(stop_id, ()):
            trip = snapshot.trips_by_id[stop_time.trip_id]
            if line_id is not None and trip.route_id != line_id:
                continue
            if trip.service_id not in service_active:
                service_active[trip.service_id] = is_active(snapshot, trip.service_id, today)
            if not service_active[trip.service_id]:
                continue
            if stop_time.arrival_time.normalized() <= now_clock:
                continue
            candidates.append(stop_time)

    # sorted() is stable, so equal times keep stop id then table order
    return sorted(candidates, key=lambda st: st.arrival_time.normalized())


def _to_arrival(snapshot: FeedSnapshot, stop_time: StopTime) -> Arrival:
    trip = snapshot.trips_by_id[stop_time.trip_id]
    return Arrival(
        route_id=trip.route_id,
        trip_id=stop_time.trip_id,
        stop_id=stop_time.stop_id,
        arrival_time=stop_time.arrival_time,
        departure_time=stop_time.departure_time,
        stop_sequence=stop_time.stop_sequence,
        headsign=trip.headsign,
    )


def upcoming_arrivals(
    snapshot: FeedSnapshot,
    station_id: str,
    now: datetime,
    direction: Optional[str] = None,
    line_id: Optional[str] = None,
    limit: int = DEFAULT_LIMIT,
) -> List[Arrival]:
    """
    Get the next scheduled arrivals at a station.

    Args:
        snapshot: Feed snapshot to query.
        station_id: Anchor station id or a platform stop id.
        now: Query instant. Its date selects active services and its time of
            day is the cutoff; arrival hours are compared modulo 24.
        direction: "north" or "south" to query that platform of the station.
            Without a direction, a platform id matches its own stop_times and
            an anchor id matches its own stop_times or, when it has none,
            those of all its platforms merged.
        line_id: Only include trips of this route.
        limit: Maximum number of arrivals.

    Returns:
        Arrivals sorted by normalized arrival time. Empty when the station,
        its platform in that direction, or any upcoming service is missing.

    Raises:
        ValueError: If limit is negative or direction is not recognized.
    """
    if limit < 0:
        raise ValueError(f"limit must be non-negative, got {limit}")
    if direction is not None and direction not in DIRECTIONS:
        raise ValueError(f"direction must be one of {DIRECTIONS}, got '{direction}'")

    targets = _resolve_targets(snapshot, station_id, direction)
    if not targets:
        return []

    stop_times = _upcoming_stop_times(snapshot, targets, now, line_id)
    return [_to_arrival(snapshot, stop_time) for stop_time in stop_times[:limit]]


def next_arrival_per_direction(
    snapshot: FeedSnapshot,
    station_id: str,
    now: datetime,
    line_id: Optional[str] = None,
) -> Dict[str, Arrival]:
    """
    Get the soonest arrival in each direction at a station.

    Stations with north/south platforms are queried per platform. Otherwise
    the direction is guessed from stop sequence: arrivals whose sequence is
    above the midpoint of the candidates' sequences count as southbound, the
    rest as northbound. That split is a heuristic and can mislabel lines that
    start or end at the station.
    """
    station = snapshot.get_station(station_id)
    if station is None:
        return {}

    result: Dict[str, Arrival] = {}
    if station.directions:
        for direction in DIRECTIONS:
            platform = station.directions.get(direction)
            if platform is None:
                continue
            stop_times = _upcoming_stop_times(snapshot, [platform], now, line_id)
            if stop_times:
                result[direction] = _to_arrival(snapshot, stop_times[0])
        return result

    candidates = _upcoming_stop_times(snapshot, sorted(station.stop_ids), now, line_id)
    if not candidates:
        return result

    sequences = [st.stop_sequence for st in candidates]
    midpoint = (min(sequences) + max(sequences)) / 2
    for stop_time in candidates:
        direction = SOUTH if stop_time.stop_sequence > midpoint else NORTH
        if direction not in result:
            result[direction] = _to_arrival(snapshot, stop_time)
    return result
