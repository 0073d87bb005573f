"""Tests for the GTFS table parsers."""

import unittest
import sys
from datetime import date
from pathlib import Path

# Add src to path so we can import traintable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from traintable.errors import MalformedRow
from traintable.models import GtfsTime
from traintable.parser import (
    cast_value,
    parse_calendar,
    parse_calendar_dates,
    parse_gtfs_date,
    parse_gtfs_time,
    parse_routes,
    parse_stop_times,
    parse_stops,
    parse_transfers,
    parse_trips,
    read_rows,
)


class TestCasting(unittest.TestCase):
    """Test field-level casts."""

    def test_typed_cast(self):
        self.assertEqual(cast_value("42"), 42)
        self.assertEqual(cast_value("-3"), -3)
        self.assertEqual(cast_value("40.75"), 40.75)
        self.assertEqual(cast_value("A"), "A")
        self.assertEqual(cast_value("EE352E"), "EE352E")
        self.assertEqual(cast_value(""), "")

    def test_parse_date(self):
        self.assertEqual(parse_gtfs_date("20240115"), date(2024, 1, 15))

    def test_parse_date_rejects_bad_values(self):
        for text in ("2024-01-15", "20241315", "2024011"):
            with self.assertRaises(ValueError):
                parse_gtfs_date(text)

    def test_parse_time_keeps_hours_past_midnight(self):
        """Test that hours of 24 or more are not clamped."""
        value = parse_gtfs_time("25:10:00")
        self.assertEqual(value, GtfsTime(25, 10, 0))
        self.assertEqual(value.normalized(), (1, 10, 0))
        self.assertEqual(str(value), "25:10:00")

    def test_parse_time_single_digit_hour(self):
        self.assertEqual(parse_gtfs_time("8:05:00"), GtfsTime(8, 5, 0))

    def test_parse_time_rejects_bad_values(self):
        for text in ("08:05", "08:61:00", "eight"):
            with self.assertRaises(ValueError):
                parse_gtfs_time(text)


class TestReadRows(unittest.TestCase):
    """Test header-driven row parsing."""

    def test_rows_keyed_by_header(self):
        rows = read_rows("b,a\n1,2\n3,4\n")
        self.assertEqual(rows, [{"b": "1", "a": "2"}, {"b": "3", "a": "4"}])

    def test_blank_lines_skipped(self):
        rows = read_rows("id,name\n\n1,one\n\n2,two\n")
        self.assertEqual([row["id"] for row in rows], ["1", "2"])

    def test_trailing_empty_fields_tolerated(self):
        rows = read_rows("id,name\n1,one,,\n")
        self.assertEqual(rows, [{"id": "1", "name": "one"}])

    def test_extra_values_rejected(self):
        with self.assertRaises(MalformedRow):
            read_rows("id,name\n1,one,surprise\n")

    def test_short_row_missing_optional_column_is_padded(self):
        rows = read_rows("id,name,note\n1,one\n", required=("id",))
        self.assertEqual(rows[0]["note"], "")

    def test_short_row_missing_required_column(self):
        with self.assertRaises(MalformedRow) as ctx:
            read_rows("name,id\none\n", table="stops", required=("id",))
        self.assertEqual(ctx.exception.table, "stops")
        self.assertEqual(ctx.exception.line, 2)

    def test_header_missing_required_column(self):
        with self.assertRaises(MalformedRow) as ctx:
            read_rows("name\none\n", table="stops", required=("id",))
        self.assertEqual(ctx.exception.line, 1)


class TestTableParsers(unittest.TestCase):
    """Test the per-table record parsers."""

    def test_parse_stops(self):
        stops = parse_stops(
            "stop_id,stop_name,stop_lat,stop_lon,location_type,parent_station\n"
            "127,Times Sq-42 St,40.755,-73.9871,1,\n"
            "127N,Times Sq-42 St,40.755,-73.9871,,127\n"
        )
        self.assertEqual(len(stops), 2)
        self.assertEqual(stops[0].location_type, 1)
        self.assertIsNone(stops[0].parent_station)
        self.assertAlmostEqual(stops[1].latitude, 40.755, places=3)
        self.assertEqual(stops[1].parent_station, "127")
        self.assertEqual(stops[1].direction, "north")

    def test_stop_without_id_is_malformed(self):
        with self.assertRaises(MalformedRow):
            parse_stops("stop_id,stop_name\n,Nowhere\n")

    def test_invalid_coordinate_is_malformed(self):
        with self.assertRaises(MalformedRow):
            parse_stops("stop_id,stop_name,stop_lat,stop_lon\nX,Nowhere,north,-73\n")

    def test_parse_routes(self):
        routes = parse_routes(
            "agency_id,route_id,route_short_name,route_long_name,route_type,route_color\n"
            "MTA,A,A,8 Avenue Express,1,000000\n"
        )
        self.assertEqual(routes[0].route_type, 1)
        self.assertEqual(routes[0].color, "000000")
        self.assertEqual(routes[0].display_name, "A")
        self.assertIsNone(routes[0].url)

    def test_parse_trips(self):
        trips = parse_trips(
            "route_id,service_id,trip_id,trip_headsign,direction_id\n"
            "A,Weekday,A1,Inwood,1\n"
        )
        self.assertEqual(trips[0].direction_id, 1)
        self.assertEqual(trips[0].headsign, "Inwood")
        self.assertIsNone(trips[0].shape_id)

    def test_parse_stop_times(self):
        stop_times = parse_stop_times(
            "trip_id,arrival_time,departure_time,stop_id,stop_sequence\n"
            "A1,24:05:00,24:05:30,A02N,7\n"
        )
        self.assertEqual(stop_times[0].arrival_time, GtfsTime(24, 5, 0))
        self.assertEqual(stop_times[0].departure_time, GtfsTime(24, 5, 30))
        self.assertEqual(stop_times[0].stop_sequence, 7)

    def test_stop_time_missing_arrival_uses_departure(self):
        stop_times = parse_stop_times(
            "trip_id,arrival_time,departure_time,stop_id,stop_sequence\n"
            "A1,,08:00:00,A02N,1\n"
        )
        self.assertEqual(stop_times[0].arrival_time, GtfsTime(8, 0, 0))

    def test_untimed_stop_time(self):
        """Test that a non-timepoint stop with both times empty is kept."""
        stop_times = parse_stop_times(
            "trip_id,arrival_time,departure_time,stop_id,stop_sequence\n"
            "A1,08:00:00,08:00:00,A01N,1\n"
            "A1,,,A02N,2\n"
        )
        self.assertEqual(len(stop_times), 2)
        self.assertIsNone(stop_times[1].arrival_time)
        self.assertIsNone(stop_times[1].departure_time)
        self.assertEqual(stop_times[1].stop_sequence, 2)

    def test_stop_times_header_needs_time_columns(self):
        with self.assertRaises(MalformedRow) as ctx:
            parse_stop_times(
                "trip_id,departure_time,stop_id,stop_sequence\n"
                "A1,08:00:00,A02N,1\n"
            )
        self.assertEqual(ctx.exception.line, 1)
        self.assertIn("arrival_time", str(ctx.exception))

    def test_stop_time_with_bad_time_is_malformed(self):
        with self.assertRaises(MalformedRow) as ctx:
            parse_stop_times(
                "trip_id,arrival_time,departure_time,stop_id,stop_sequence\n"
                "A1,8am,08:00:00,A02N,1\n"
            )
        self.assertEqual(ctx.exception.table, "stop_times")

    def test_parse_calendar(self):
        entries = parse_calendar(
            "service_id,monday,tuesday,wednesday,thursday,friday,saturday,sunday,start_date,end_date\n"
            "Weekday,1,1,1,1,1,0,0,20240101,20240630\n"
            "Always,1,1,1,1,1,1,1,,\n"
        )
        weekday, always = entries
        self.assertTrue(weekday.monday)
        self.assertFalse(weekday.sunday)
        self.assertEqual(weekday.start_date, date(2024, 1, 1))
        self.assertEqual(weekday.end_date, date(2024, 6, 30))
        self.assertIsNone(always.start_date)
        self.assertIsNone(always.end_date)

    def test_calendar_bad_flag_is_malformed(self):
        with self.assertRaises(MalformedRow):
            parse_calendar(
                "service_id,monday,tuesday,wednesday,thursday,friday,saturday,sunday\n"
                "Weekday,yes,1,1,1,1,0,0\n"
            )

    def test_parse_calendar_dates(self):
        entries = parse_calendar_dates("service_id,date,exception_type\nWeekday,20240115,2\n")
        self.assertEqual(entries[0].date, date(2024, 1, 15))
        self.assertEqual(entries[0].exception_type, 2)

    def test_unknown_exception_type_is_malformed(self):
        with self.assertRaises(MalformedRow):
            parse_calendar_dates("service_id,date,exception_type\nWeekday,20240115,3\n")

    def test_parse_transfers(self):
        transfers = parse_transfers(
            "from_stop_id,to_stop_id,transfer_type,min_transfer_time\n"
            "101,101,2,180\n"
            "103,104,0,\n"
        )
        self.assertEqual(transfers[0].min_transfer_time, 180)
        self.assertIsNone(transfers[1].min_transfer_time)
        self.assertEqual(transfers[1].transfer_type, 0)


if __name__ == "__main__":
    unittest.main()
