"""Parsers for the GTFS static tables."""

import csv
import io
import re
from datetime import date
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Tuple, Union

from .errors import MalformedRow
from .models import (
    WEEKDAYS,
    CalendarDateEntry,
    CalendarEntry,
    GtfsTime,
    Route,
    Stop,
    StopTime,
    Transfer,
    Trip,
    SERVICE_ADDED,
    SERVICE_REMOVED,
)

_INT_RE = re.compile(r"[-+]?\d+")
_FLOAT_RE = re.compile(r"[-+]?(\d+\.\d*|\.\d+|\d+)([eE][-+]?\d+)?")
_DATE_RE = re.compile(r"(\d{4})(\d{2})(\d{2})")
_TIME_RE = re.compile(r"(\d{1,3}):(\d{2}):(\d{2})")

Record = Dict[str, str]


def cast_value(text: str) -> Union[int, float, str]:
    """Typed cast: numeric-looking text becomes a number, anything else stays a string."""
    stripped = text.strip()
    if _INT_RE.fullmatch(stripped):
        return int(stripped)
    if _FLOAT_RE.fullmatch(stripped):
        return float(stripped)
    return text


def parse_gtfs_date(text: str) -> date:
    """Parse a YYYYMMDD date."""
    match = _DATE_RE.fullmatch(text.strip())
    if not match:
        raise ValueError(f"expected YYYYMMDD, got '{text}'")
    year, month, day = (int(part) for part in match.groups())
    return date(year, month, day)


def parse_gtfs_time(text: str) -> GtfsTime:
    """
    Parse an H:MM:SS or HH:MM:SS time.

    The hour is not clamped; 25:10:00 stays hour 25.
    """
    match = _TIME_RE.fullmatch(text.strip())
    if not match:
        raise ValueError(f"expected HH:MM:SS, got '{text}'")
    hours, minutes, seconds = (int(part) for part in match.groups())
    if minutes > 59 or seconds > 59:
        raise ValueError(f"minutes and seconds must be below 60, got '{text}'")
    return GtfsTime(hours, minutes, seconds)


def parse_day_flag(text: str) -> bool:
    value = text.strip()
    if value == "1":
        return True
    if value == "0":
        return False
    raise ValueError(f"expected 0 or 1, got '{text}'")


def _iter_rows(
    text: str,
    table: str,
    required: Sequence[str] = (),
    columns: Sequence[str] = (),
) -> Iterator[Tuple[int, Record]]:
    """
    Yield (line number, record) for each data row of a table.

    Every row must fill the `required` columns; `columns` only have to be
    present in the header.
    """
    reader = csv.reader(io.StringIO(text))
    header: Optional[List[str]] = None

    for row in reader:
        if not any(field.strip() for field in row):
            continue

        if header is None:
            header = [name.strip().lstrip("\ufeff") for name in row]
            for column in tuple(required) + tuple(columns):
                if column not in header:
                    raise MalformedRow(table, reader.line_num, f"header lacks required column '{column}'")
            continue

        line = reader.line_num
        if len(row) > len(header):
            if any(field.strip() for field in row[len(header):]):
                raise MalformedRow(table, line, f"{len(row)} fields for {len(header)} columns")
            row = row[:len(header)]
        elif len(row) < len(header):
            missing = header[len(row):]
            for column in required:
                if column in missing:
                    raise MalformedRow(table, line, f"missing field '{column}'")
            row = row + [""] * len(missing)

        record = {name: value.strip() for name, value in zip(header, row)}
        for column in required:
            if not record[column]:
                raise MalformedRow(table, line, f"empty required field '{column}'")
        yield line, record


def read_rows(text: str, table: str = "table", required: Sequence[str] = ()) -> List[Record]:
    """
    Parse delimited text with a header line into one mapping per data row.

    Args:
        text: Table contents; the first non-blank line is the header.
        table: Table name used in error messages.
        required: Columns that every row must fill.

    Returns:
        Records in file order, keyed by header column name.

    Raises:
        MalformedRow: If the header or a row lacks a required column.
    """
    return [record for _, record in _iter_rows(text, table, required)]


def _convert(table: str, line: int, column: str, value: str, converter: Callable):
    try:
        return converter(value)
    except ValueError as e:
        raise MalformedRow(table, line, f"invalid {column}: {e}") from e


def _optional(table: str, line: int, record: Record, column: str, converter: Callable):
    value = record.get(column, "")
    if not value:
        return None
    return _convert(table, line, column, value, converter)


def _typed_int(value: str) -> int:
    number = cast_value(value)
    if not isinstance(number, int):
        raise ValueError(f"expected an integer, got '{value}'")
    return number


def _text(record: Record, column: str) -> Optional[str]:
    return record.get(column) or None


def parse_routes(text: str) -> List[Route]:
    """Parse routes.txt."""
    table = "routes"
    routes = []
    for line, record in _iter_rows(text, table, ("route_id",)):
        routes.append(Route(
            route_id=record["route_id"],
            agency_id=record.get("agency_id", ""),
            short_name=record.get("route_short_name", ""),
            long_name=record.get("route_long_name", ""),
            route_type=_optional(table, line, record, "route_type", _typed_int),
            description=_text(record, "route_desc"),
            url=_text(record, "route_url"),
            color=_text(record, "route_color"),
            text_color=_text(record, "route_text_color"),
        ))
    return routes


def parse_stops(text: str) -> List[Stop]:
    """Parse stops.txt."""
    table = "stops"
    stops = []
    for line, record in _iter_rows(text, table, ("stop_id",)):
        stops.append(Stop(
            stop_id=record["stop_id"],
            name=record.get("stop_name", ""),
            latitude=_optional(table, line, record, "stop_lat", float),
            longitude=_optional(table, line, record, "stop_lon", float),
            location_type=_optional(table, line, record, "location_type", _typed_int),
            parent_station=_text(record, "parent_station"),
        ))
    return stops


def parse_trips(text: str) -> List[Trip]:
    """Parse trips.txt."""
    table = "trips"
    trips = []
    for line, record in _iter_rows(text, table, ("route_id", "service_id", "trip_id")):
        trips.append(Trip(
            trip_id=record["trip_id"],
            route_id=record["route_id"],
            service_id=record["service_id"],
            headsign=record.get("trip_headsign", ""),
            direction_id=_optional(table, line, record, "direction_id", _typed_int),
            shape_id=_text(record, "shape_id"),
        ))
    return trips


def parse_stop_times(text: str) -> List[StopTime]:
    """
    Parse stop_times.txt.

    The time columns must be in the header but may be empty. An empty arrival
    takes the departure time and vice versa; a row with neither is an untimed
    stop and keeps both as None.
    """
    table = "stop_times"
    required = ("trip_id", "stop_id", "stop_sequence")
    stop_times = []
    for line, record in _iter_rows(text, table, required, ("arrival_time", "departure_time")):
        arrival = _optional(table, line, record, "arrival_time", parse_gtfs_time)
        departure = _optional(table, line, record, "departure_time", parse_gtfs_time)
        stop_times.append(StopTime(
            trip_id=record["trip_id"],
            stop_id=record["stop_id"],
            arrival_time=arrival or departure,
            departure_time=departure or arrival,
            stop_sequence=_convert(table, line, "stop_sequence", record["stop_sequence"], _typed_int),
        ))
    return stop_times


def parse_calendar(text: str) -> List[CalendarEntry]:
    """Parse calendar.txt."""
    table = "calendar"
    entries = []
    for line, record in _iter_rows(text, table, ("service_id",) + WEEKDAYS):
        flags = {
            day: _convert(table, line, day, record[day], parse_day_flag)
            for day in WEEKDAYS
        }
        entries.append(CalendarEntry(
            service_id=record["service_id"],
            start_date=_optional(table, line, record, "start_date", parse_gtfs_date),
            end_date=_optional(table, line, record, "end_date", parse_gtfs_date),
            **flags,
        ))
    return entries


def _exception_type(value: str) -> int:
    exception_type = _typed_int(value)
    if exception_type not in (SERVICE_ADDED, SERVICE_REMOVED):
        raise ValueError(f"expected 1 or 2, got '{value}'")
    return exception_type


def parse_calendar_dates(text: str) -> List[CalendarDateEntry]:
    """Parse calendar_dates.txt."""
    table = "calendar_dates"
    entries = []
    for line, record in _iter_rows(text, table, ("service_id", "date", "exception_type")):
        entries.append(CalendarDateEntry(
            service_id=record["service_id"],
            date=_convert(table, line, "date", record["date"], parse_gtfs_date),
            exception_type=_convert(table, line, "exception_type", record["exception_type"], _exception_type),
        ))
    return entries


def parse_transfers(text: str) -> List[Transfer]:
    """Parse transfers.txt."""
    table = "transfers"
    transfers = []
    for line, record in _iter_rows(text, table, ("from_stop_id", "to_stop_id")):
        transfers.append(Transfer(
            from_stop_id=record["from_stop_id"],
            to_stop_id=record["to_stop_id"],
            transfer_type=_optional(table, line, record, "transfer_type", _typed_int),
            min_transfer_time=_optional(table, line, record, "min_transfer_time", _typed_int),
        ))
    return transfers


TABLE_PARSERS: Dict[str, Callable[[str], list]] = {
    "routes": parse_routes,
    "stops": parse_stops,
    "trips": parse_trips,
    "stop_times": parse_stop_times,
    "calendar": parse_calendar,
    "calendar_dates": parse_calendar_dates,
    "transfers": parse_transfers,
}
