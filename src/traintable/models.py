"""Data models for GTFS static feeds."""

from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import FrozenSet, Mapping, Optional, Tuple

NORTH = "north"
SOUTH = "south"
DIRECTIONS = (NORTH, SOUTH)

# Platform stop ids carry their direction as the last character
DIRECTION_SUFFIXES = {"N": NORTH, "S": SOUTH}

SERVICE_ADDED = 1
SERVICE_REMOVED = 2

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


@dataclass(frozen=True)
class GtfsTime:
    """
    A GTFS time of day.

    Hours are kept as written in the feed and may be 24 or more for trips that
    run past midnight, so ordering within a trip is preserved. Comparisons
    against a wall clock go through normalized().
    """
    hours: int
    minutes: int
    seconds: int

    def normalized(self) -> Tuple[int, int, int]:
        """Return (hour mod 24, minute, second)."""
        return (self.hours % 24, self.minutes, self.seconds)

    @property
    def clock(self) -> time:
        """Normalized wall-clock time."""
        return time(*self.normalized())

    def __str__(self) -> str:
        return f"{self.hours:02d}:{self.minutes:02d}:{self.seconds:02d}"


@dataclass(frozen=True)
class Route:
    """Represents a transit line from routes.txt."""
    route_id: str
    agency_id: str = ""
    short_name: str = ""
    long_name: str = ""
    route_type: Optional[int] = None
    description: Optional[str] = None
    url: Optional[str] = None
    color: Optional[str] = None
    text_color: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.short_name or self.long_name or self.route_id


@dataclass(frozen=True)
class Stop:
    """Represents a row of stops.txt."""
    stop_id: str
    name: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    location_type: Optional[int] = None
    parent_station: Optional[str] = None

    @property
    def direction(self) -> Optional[str]:
        """Direction encoded in the stop id suffix, if any."""
        return DIRECTION_SUFFIXES.get(self.stop_id[-1:])

    @property
    def anchor_id(self) -> str:
        """Id of the station this stop folds into."""
        return self.parent_station or self.stop_id


@dataclass(frozen=True)
class Station:
    """A passenger-facing station folded from a parent stop and its platforms."""
    station_id: str
    name: str
    latitude: Optional[float]
    longitude: Optional[float]
    lines: FrozenSet[str]  # Route IDs served at this station
    directions: Mapping[str, str] = field(hash=False)  # "north"/"south" -> platform stop_id
    stop_ids: FrozenSet[str]  # Every stop folded into this station


@dataclass(frozen=True)
class Trip:
    """Represents a row of trips.txt."""
    trip_id: str
    route_id: str
    service_id: str
    headsign: str = ""
    direction_id: Optional[int] = None
    shape_id: Optional[str] = None


@dataclass(frozen=True)
class StopTime:
    """Represents a row of stop_times.txt; both times are None on untimed stops."""
    trip_id: str
    stop_id: str
    arrival_time: Optional[GtfsTime]
    departure_time: Optional[GtfsTime]
    stop_sequence: int


@dataclass(frozen=True)
class CalendarEntry:
    """Weekly service pattern from calendar.txt."""
    service_id: str
    monday: bool
    tuesday: bool
    wednesday: bool
    thursday: bool
    friday: bool
    saturday: bool
    sunday: bool
    start_date: Optional[date] = None  # None = unbounded
    end_date: Optional[date] = None

    def runs_on(self, weekday: int) -> bool:
        """Flag for a weekday index as returned by date.weekday() (Monday is 0)."""
        return getattr(self, WEEKDAYS[weekday])

    def covers(self, day: date) -> bool:
        if self.start_date is not None and day < self.start_date:
            return False
        if self.end_date is not None and day > self.end_date:
            return False
        return True


@dataclass(frozen=True)
class CalendarDateEntry:
    """Service exception from calendar_dates.txt."""
    service_id: str
    date: date
    exception_type: int  # SERVICE_ADDED or SERVICE_REMOVED


@dataclass(frozen=True)
class Transfer:
    """Represents a row of transfers.txt. Not used by queries."""
    from_stop_id: str
    to_stop_id: str
    transfer_type: Optional[int] = None
    min_transfer_time: Optional[int] = None


@dataclass(frozen=True)
class Arrival:
    """A scheduled arrival at a stop.

    Times keep the raw GTFS value, so a post-midnight arrival reads 25:10:00.
    """
    route_id: str
    trip_id: str
    stop_id: str
    arrival_time: GtfsTime
    departure_time: GtfsTime
    stop_sequence: int
    headsign: str = ""

    def minutes_until(self, now: datetime) -> int:
        """Whole minutes from now's time of day to the normalized arrival."""
        h, m, s = self.arrival_time.normalized()
        arrival_seconds = h * 3600 + m * 60 + s
        now_seconds = now.hour * 3600 + now.minute * 60 + now.second
        return max(0, (arrival_seconds - now_seconds) // 60)
