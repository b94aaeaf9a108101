"""
Tests for the tick ordering and document serialization.
"""
import itertools
from datetime import date
from functools import cmp_to_key

import pytest

from climbing_ticks.models import (
    Area,
    AreaMap,
    Counts,
    Route,
    RouteSummary,
    Tick,
    TickStyle,
    User,
    compare_ticks,
    is_clean_tick_style,
)

from testdata import make_route

D1 = date(2020, 1, 1)
D2 = date(2020, 1, 2)


def _tick(style=TickStyle.LEAD, pitches=1, day=D1) -> Tick:
    return Tick(date=day, style=style, pitches=pitches)


class TestCompareTicks:
    def test_more_pitches_first(self):
        assert compare_ticks(1, _tick(TickStyle.ATTEMPT, pitches=3), 2, _tick(TickStyle.SOLO, pitches=1)) < 0

    @pytest.mark.parametrize(
        "better, worse",
        [
            (TickStyle.SOLO, TickStyle.FLASH),
            (TickStyle.FLASH, TickStyle.SEND),
            (TickStyle.SEND, TickStyle.LEAD_ONSIGHT),
            (TickStyle.LEAD_ONSIGHT, TickStyle.LEAD_FLASH),
            (TickStyle.LEAD_FLASH, TickStyle.LEAD_REDPOINT),
            (TickStyle.LEAD_REDPOINT, TickStyle.LEAD_PINKPOINT),
            (TickStyle.LEAD_PINKPOINT, TickStyle.LEAD_FELL_HUNG),
            (TickStyle.LEAD_FELL_HUNG, TickStyle.LEAD),
            (TickStyle.LEAD, TickStyle.FOLLOW),
            (TickStyle.FOLLOW, TickStyle.TOP_ROPE),
            (TickStyle.TOP_ROPE, TickStyle.ATTEMPT),
            (TickStyle.ATTEMPT, TickStyle.UNKNOWN),
        ],
    )
    def test_style_rank(self, better, worse):
        # The worse tick gets the earlier date and lower ID to show style wins.
        assert compare_ticks(2, _tick(better, day=D2), 1, _tick(worse, day=D1)) < 0
        assert compare_ticks(1, _tick(worse, day=D1), 2, _tick(better, day=D2)) > 0

    def test_earlier_date_then_lower_id(self):
        assert compare_ticks(2, _tick(day=D1), 1, _tick(day=D2)) < 0
        assert compare_ticks(1, _tick(), 2, _tick()) < 0
        assert compare_ticks(1, _tick(), 1, _tick()) == 0

    def test_strict_total_order(self):
        ticks = [
            (tick_id, _tick(style, pitches, day))
            for tick_id, (style, pitches, day) in enumerate(
                itertools.product(
                    [TickStyle.SOLO, TickStyle.LEAD, TickStyle.LEAD_FLASH, TickStyle.FOLLOW],
                    [1, 2],
                    [D1, D2],
                ),
                start=1,
            )
        ]
        for (id_a, a), (id_b, b) in itertools.product(ticks, repeat=2):
            result = compare_ticks(id_a, a, id_b, b)
            assert result == -compare_ticks(id_b, b, id_a, a)
            assert (result == 0) == (id_a == id_b)
            assert result == compare_ticks(id_a, a, id_b, b)

        ordered = sorted(ticks, key=cmp_to_key(lambda x, y: compare_ticks(x[0], x[1], y[0], y[1])))
        for i, j in itertools.combinations(range(len(ordered)), 2):
            assert compare_ticks(*ordered[i], *ordered[j]) < 0


class TestIsCleanTickStyle:
    def test_clean_styles(self):
        clean = {style for style in TickStyle if is_clean_tick_style(style)}
        assert clean == {
            TickStyle.SOLO,
            TickStyle.LEAD_ONSIGHT,
            TickStyle.LEAD_FLASH,
            TickStyle.LEAD_REDPOINT,
            TickStyle.LEAD_PINKPOINT,
            TickStyle.SEND,
            TickStyle.FLASH,
        }


class TestSerialization:
    def test_route_keeps_integer_tick_ids(self):
        route = make_route(4, [11, 12])
        route.deleted_ticks[13] = _tick()
        assert Route.from_dict(route.to_dict()) == route
        assert set(route.to_dict()["ticks"]) == {"11", "12"}

    def test_counts_restore_integer_keys(self):
        counts = Counts(
            date_ticks={"20200101": 2},
            day_of_week_ticks={3: 2},
            pitches_ticks={1: 2},
            tick_style_ticks={int(TickStyle.SOLO): 2},
            route_ticks={"1|Route 1": 2},
        )
        assert Counts.from_dict(counts.to_dict()) == counts

    def test_counts_without_version_are_version_zero(self):
        assert Counts.from_dict({}).version == 0

    def test_area_map_omits_unset_fields(self):
        area_map = AreaMap(children={"a": AreaMap(area_id="a"), "b": AreaMap(children={})})
        assert area_map.to_dict() == {"children": {"a": {"area_id": "a"}, "b": {"children": {}}}}
        assert AreaMap.from_dict(area_map.to_dict()) == area_map

    def test_area_and_user(self):
        area = Area(routes={5: RouteSummary(name="Route 5", grade="5.9")})
        assert Area.from_dict(area.to_dict()) == area
        user = User(max_tick_id=10, num_routes=2, num_imports=1)
        assert User.from_dict({**user.to_dict(), "unrelated": True}) == user
