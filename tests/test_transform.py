"""
Tests for rebuilding Counts from scratch and exporting ticks.
"""
import pandas as pd

from climbing_ticks import config
from climbing_ticks.models import Counts, RouteType, TickStyle
from climbing_ticks.transform import TICK_COLUMNS, aggregate_counts, build_tick_frame, export_ticks

from testdata import make_route


class TestAggregateCounts:
    def test_counts_all_breakdowns(self):
        # Route 4 is a two-pitch trad route, route 6 a single-pitch sport one.
        routes = {
            4: make_route(4, [5, 6], ["Colorado", "Boulder"]),
            6: make_route(6, [8], ["International", "Europe", "Spain", "Siurana"]),
        }
        counts = aggregate_counts(routes)

        assert counts == Counts(
            version=config.COUNTS_VERSION,
            date_first_ticks={"20200105": 1, "20200108": 1},
            date_pitches={"20200105": 2, "20200106": 2, "20200108": 1},
            date_ticks={"20200105": 1, "20200106": 1, "20200108": 1},
            day_of_week_pitches={7: 2, 1: 2, 3: 1},
            day_of_week_ticks={7: 1, 1: 1, 3: 1},
            grade_clean_ticks={"5.9": 2},
            grade_ticks={"5.9": 2, "5.6": 1},
            lat_long_ticks={"39.9,-105.0": 2, "40.0,-105.1": 1},
            month_grade_ticks={"202001|5.9": 2, "202001|5.6": 1},
            pitches_ticks={2: 2, 1: 1},
            region_ticks={"Colorado": 2, "Spain": 1},
            route_ticks={"4|Route 4": 2, "6|Route 6": 1},
            route_type_ticks={int(RouteType.TRAD): 2, int(RouteType.SPORT): 1},
            tick_style_ticks={
                int(TickStyle.LEAD_FLASH): 1,
                int(TickStyle.LEAD_REDPOINT): 1,
                int(TickStyle.FOLLOW): 1,
            },
        )

    def test_values_are_plain_ints(self):
        counts = aggregate_counts({1: make_route(1, [1, 2])})
        for name in Counts.breakdown_names():
            for key, value in getattr(counts, name).items():
                assert type(value) is int
                assert type(key) in (int, str)

    def test_no_ticks(self):
        assert aggregate_counts({}) == Counts()
        assert aggregate_counts({1: make_route(1, [])}) == Counts()

    def test_route_ticks_limited_to_top_routes(self):
        routes = {
            route_id: make_route(route_id, list(range(route_id * 100, route_id * 100 + route_id)))
            for route_id in range(1, config.NUM_TOP_ROUTES + 6)
        }
        counts = aggregate_counts(routes)
        assert len(counts.route_ticks) == config.NUM_TOP_ROUTES
        assert next(iter(counts.route_ticks)) == f"{config.NUM_TOP_ROUTES + 5}|Route {config.NUM_TOP_ROUTES + 5}"
        assert "5|Route 5" not in counts.route_ticks
        assert "6|Route 6" in counts.route_ticks


class TestBuildTickFrame:
    def test_marks_first_ticks(self):
        df = build_tick_frame({4: make_route(4, [5, 6, 8])})
        assert list(df.columns) == TICK_COLUMNS
        assert df.set_index("tick_id")["first_tick"].to_dict() == {5: True, 6: False, 8: False}
        assert df.set_index("tick_id")["style_name"].to_dict() == {
            5: "Lead-Flash",
            6: "Lead-Redpoint",
            8: "Follow",
        }

    def test_deleted_ticks_are_excluded(self):
        route = make_route(4, [5])
        route.deleted_ticks[6] = route.ticks[5]
        assert build_tick_frame({4: route})["tick_id"].tolist() == [5]


class TestExportTicks:
    def test_writes_newest_first(self, tmp_path):
        routes = {4: make_route(4, [5, 9], ["Colorado"]), 6: make_route(6, [7])}
        path = export_ticks(routes, tmp_path / "out" / "ticks.csv")

        assert path.exists()
        df = pd.read_csv(path)
        assert list(df.columns) == TICK_COLUMNS
        assert df["tick_id"].tolist() == [9, 7, 5]
        assert df["location"].tolist() == ["Colorado", "Location 6", "Colorado"]

    def test_empty_export_has_header(self, tmp_path):
        path = export_ticks({}, tmp_path / "ticks.csv")
        assert path.read_text().strip() == ",".join(TICK_COLUMNS)
