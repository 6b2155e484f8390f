"""
Unit tests for the cube module.
"""

import pytest
import numpy as np
import sys
import os
from pathlib import Path

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from sessioncube.cube.schema import CubeConfig, Measure, AggregateFunction, create_session_cube_config
from sessioncube.cube.records import parse_records, split_rows
from sessioncube.cube.ordering import sort_entities
from sessioncube.cube.engine import CubeBuilder, build_cube, normalize, grid_position
from sessioncube.cube.view import EntityFilter, filter_cube
from sessioncube.cube.stats import compute_stats, round_half_up


HEADER = "user_id,hour,day_type,device,content_type,session_minutes,recommended,completed,is_binge"
SAMPLE_FILE = Path(__file__).parent.parent / "data" / "sessions.csv"


def make_csv(*rows):
    return "\n".join((HEADER,) + rows)


@pytest.fixture
def two_user_csv():
    """U01 has two music sessions and one video session, U02 one news session."""
    return make_csv(
        "U01,8,weekday,mobile,music,7,no,0,0",
        "U02,9,weekday,mobile,news,6,no,0,0",
        "U01,20,weekend,desktop,music,12,yes,1,1",
        "U01,21,weekend,desktop,video,40,yes,1,1",
    )


@pytest.fixture
def nine_user_csv():
    """U1..U9 with one music session each, minutes equal to the user number."""
    return make_csv(*[f"U{i},8,weekday,mobile,music,{i},no,0,0" for i in range(1, 10)])


@pytest.fixture
def sample_cube():
    return build_cube(SAMPLE_FILE.read_text())


class TestCubeConfig:
    def test_defaults(self):
        config = create_session_cube_config()
        assert config.categories == ("music", "news", "search", "podcast", "video")
        assert config.page_size == 8
        assert config.primary_metric == "session_minutes"
        assert config.measure_names == [
            "session_minutes", "completed_count", "binge_count", "is_recommended_count"
        ]

    def test_invalid_page_size(self):
        with pytest.raises(ValueError):
            CubeConfig(page_size=0)

    def test_fractional_page_size_rejected(self):
        with pytest.raises(ValueError):
            CubeConfig(page_size=2.5)
        assert CubeConfig(page_size=4.0).page_size == 4

    def test_unknown_primary_metric(self):
        with pytest.raises(ValueError):
            CubeConfig(primary_metric="revenue")

    def test_empty_categories(self):
        with pytest.raises(ValueError):
            CubeConfig(categories=())

    def test_replace_validates(self):
        config = CubeConfig().replace(page_size=4)
        assert config.page_size == 4
        assert config.measure_names == CubeConfig().measure_names
        with pytest.raises(ValueError):
            config.replace(page_size=-1)

    def test_dict_round_trip(self):
        config = CubeConfig(categories=("a", "b"), page_size=3)
        restored = CubeConfig.from_dict(config.to_dict())
        assert restored.categories == ("a", "b")
        assert restored.page_size == 3
        assert restored.get_measure("binge_count").match == "1"
        assert restored.get_measure("session_minutes").default_agg == AggregateFunction.SUM


class TestRecordParser:
    def test_field_types(self, two_user_csv):
        records = parse_records(two_user_csv)
        assert len(records) == 4
        first = records[0]
        assert first["user_id"] == "U01"
        assert first["hour"] == "8"
        assert first["day_type"] == "weekday"
        assert first["session_minutes"] == 7
        assert first["completed"] == 0
        assert first["recommended"] == "no"

    def test_numeric_looking_ids_stay_text(self):
        records = parse_records("user_id,hour,session_minutes\n007,09,1.5")
        assert records[0]["user_id"] == "007"
        assert records[0]["hour"] == "09"
        assert records[0]["session_minutes"] == 1.5

    def test_large_integers_kept_exact(self):
        records = parse_records("user_id,views,session_minutes\nU01,99999999999999999999,2.0")
        assert records[0]["views"] == 99999999999999999999
        assert isinstance(records[0]["views"], int)
        assert records[0]["session_minutes"] == 2
        assert isinstance(records[0]["session_minutes"], int)

    def test_blank_lines_skipped(self):
        text = "\n\n" + HEADER + "\n\nU01,8,weekday,mobile,music,7,no,0,0\n   \n"
        records = parse_records(text)
        assert len(records) == 1
        assert records[0]["user_id"] == "U01"

    def test_short_row_filled_with_empty_text(self):
        records = parse_records(make_csv("U05,10,weekday"))
        record = records[0]
        assert record["device"] == ""
        assert record["content_type"] == ""
        assert record["is_binge"] == ""
        assert record["session_minutes"] == 0

    def test_extra_values_dropped(self):
        records = parse_records(make_csv("U06,1,weekday,mobile,music,5,no,0,0,EXTRA"))
        assert len(records[0]) == 9
        assert "EXTRA" not in records[0].values()

    def test_bad_duration_defaults_to_zero(self):
        records = parse_records(make_csv("U07,1,weekday,mobile,music,abc,no,0,0"))
        assert records[0]["session_minutes"] == 0

    def test_missing_duration_column(self):
        records = parse_records("user_id,content_type\nU01,music")
        assert records[0]["session_minutes"] == 0

    def test_records_are_read_only(self, two_user_csv):
        record = parse_records(two_user_csv)[0]
        with pytest.raises(TypeError):
            record["session_minutes"] = 99

    def test_empty_input(self):
        assert parse_records("") == []
        assert parse_records(HEADER) == []

    def test_split_rows_pads_and_truncates(self):
        headers, rows = split_rows("a,b,c\n1\n1,2,3,4")
        assert headers == ["a", "b", "c"]
        assert rows == [["1", "", ""], ["1", "2", "3"]]


class TestOrdering:
    def test_numeric_aware(self):
        assert sort_entities(["U10", "U2", "U1"]) == ["U1", "U2", "U10"]

    def test_case_insensitive_and_distinct(self):
        assert sort_entities(["U10", "u2", "U1", "U1"]) == ["U1", "u2", "U10"]

    def test_mixed_shapes(self):
        assert sort_entities(["b", "10", "a2", "2"]) == ["2", "10", "a2", "b"]


class TestCubeBuilder:
    def test_aggregates_pair_into_one_cell(self):
        cube = build_cube(make_csv(
            "U01,8,weekday,mobile,music,7,no,0,0",
            "U01,9,weekday,mobile,music,12,yes,1,1",
        ))
        assert len(cube.cells) == 1
        cell = cube.cells[0]
        assert cell.id == "music-U01"
        assert cell.metrics["session_minutes"] == 19
        assert cell.metrics["completed_count"] == 1
        assert cell.metrics["binge_count"] == 1
        assert cell.metrics["is_recommended_count"] == 1

    def test_cells_are_sparse(self, two_user_csv):
        cube = build_cube(two_user_csv)
        assert sorted(c.id for c in cube.cells) == ["music-U01", "news-U02", "video-U01"]

    def test_details_keep_input_order(self, two_user_csv):
        cube = build_cube(two_user_csv)
        music = cube.get_cell("music-U01")
        assert [r["session_minutes"] for r in music.details] == [7, 12]

    def test_grid_coordinates(self, two_user_csv):
        cube = build_cube(two_user_csv)
        assert cube.get_cell("music-U01").grid == (0, 0, 0)
        assert cube.get_cell("video-U01").grid == (4, 0, 0)
        assert cube.get_cell("news-U02").grid == (1, 1, 0)

    def test_grid_position_formula(self):
        assert grid_position(2, 0, 8) == (2, 0, 0)
        assert grid_position(2, 8, 8) == (2, 0, 1)
        assert grid_position(0, 19, 8) == (0, 3, 2)

    def test_normalization_bounds(self, two_user_csv):
        cube = build_cube(two_user_csv)
        assert cube.min_value == 6
        assert cube.max_value == 40
        assert cube.get_cell("news-U02").normalized == 0.0
        assert cube.get_cell("video-U01").normalized == 1.0
        assert cube.get_cell("music-U01").normalized == pytest.approx((19 - 6) / (40 - 6))

    def test_degenerate_range(self):
        cube = build_cube(make_csv(
            "U01,8,weekday,mobile,music,10,no,0,0",
            "U02,8,weekday,mobile,news,10,no,0,0",
        ))
        assert [c.normalized for c in cube.cells] == [0.5, 0.5]

    def test_normalize_function(self):
        assert normalize([]).size == 0
        assert list(normalize([3, 3])) == [0.5, 0.5]
        assert list(normalize([0, 5, 10])) == [0.0, 0.5, 1.0]

    def test_pages(self, nine_user_csv):
        cube = build_cube(nine_user_csv, page_size=8)
        assert cube.page_count == 2
        assert cube.page_labels == ("U1 - U8", "U9 - U9")
        assert cube.row_labels == tuple(f"U{i}" for i in range(1, 9))
        last = cube.get_cell("music-U9")
        assert last.grid == (0, 0, 1)
        assert last.page_label == "Group 2"

    def test_category_order_override(self, two_user_csv):
        cube = build_cube(two_user_csv, category_order=["video", "music"])
        assert cube.categories == ("video", "music")
        assert cube.get_cell("video-U01").grid == (0, 0, 0)
        assert cube.get_cell("news-U02") is None

    def test_unknown_category_keeps_entity_index(self):
        cube = build_cube(make_csv(
            "U01,8,weekday,mobile,analytics,7,no,0,0",
            "U02,8,weekday,mobile,music,9,no,0,0",
        ))
        assert cube.entities == ("U01", "U02")
        assert [c.id for c in cube.cells] == ["music-U02"]
        assert cube.cells[0].grid == (0, 1, 0)

    def test_empty_records(self):
        cube = CubeBuilder().build([])
        assert cube.cells == ()
        assert cube.row_labels == ()
        assert cube.page_labels == ()
        assert cube.entities == ()
        assert cube.is_empty

    def test_deterministic_rebuild(self, two_user_csv):
        first = build_cube(two_user_csv).to_dict()
        second = build_cube(two_user_csv).to_dict()
        assert first == second

    def test_custom_measure(self, two_user_csv):
        config = CubeConfig(measures=[
            Measure("session_minutes", "session_minutes", AggregateFunction.SUM),
            Measure("sessions", "user_id", AggregateFunction.COUNT),
        ])
        cube = CubeBuilder(config).build(parse_records(two_user_csv, config))
        assert cube.get_cell("music-U01").metrics["sessions"] == 2

    def test_sample_dataset(self, sample_cube):
        assert sample_cube.entity_count == 40
        assert len(sample_cube.cells) == 40
        assert sample_cube.page_count == 5
        assert sample_cube.page_labels[0] == "U01 - U08"
        assert sample_cube.page_labels[-1] == "U33 - U40"
        assert sample_cube.get_cell("news-U09").grid == (1, 0, 1)
        assert sample_cube.get_cell("news-U02").normalized == 0.0
        assert sample_cube.get_cell("video-U31").normalized == 1.0

    def test_weights_in_range_and_grids_distinct(self, sample_cube):
        weights = np.array([c.normalized for c in sample_cube.cells])
        assert np.all((weights >= 0) & (weights <= 1))
        grids = [c.grid for c in sample_cube.cells]
        assert len(set(grids)) == len(grids)


class TestCubeView:
    def test_empty_predicate_keeps_everything(self, sample_cube):
        view = filter_cube(sample_cube, "")
        assert list(view.cells) == list(sample_cube.cells)
        assert view is not sample_cube
        assert filter_cube(sample_cube, "   ").cells == sample_cube.cells

    def test_case_insensitive_trimmed_match(self, sample_cube):
        view = filter_cube(sample_cube, "  u1 ")
        assert {c.entity_id for c in view.cells} == {f"U1{i}" for i in range(10)}

    def test_no_match(self, sample_cube):
        view = filter_cube(sample_cube, "zzz")
        assert view.cells == ()
        assert compute_stats(view.cells).to_dict() == {
            "userCount": 0, "totalHours": 0, "avgMin": 0, "totalBinge": 0
        }

    def test_view_keeps_axes_and_weights(self, sample_cube):
        view = filter_cube(sample_cube, "U12")
        assert view.categories == sample_cube.categories
        assert view.row_labels == sample_cube.row_labels
        assert view.page_labels == sample_cube.page_labels
        assert len(view.cells) == 1
        assert view.cells[0] is sample_cube.get_cell("video-U12")
        assert view.cells[0].normalized == sample_cube.get_cell("video-U12").normalized

    def test_source_untouched(self, sample_cube):
        before = len(sample_cube.cells)
        filter_cube(sample_cube, "U0")
        assert len(sample_cube.cells) == before

    def test_entity_filter(self):
        f = EntityFilter(" U0 ")
        assert f.matches("u01")
        assert not f.matches("U10")
        assert EntityFilter().is_empty
        assert EntityFilter.from_dict(f.to_dict()) == f

    def test_apply_agrees_with_matches(self, sample_cube):
        f = EntityFilter("u3")
        kept = f.apply(sample_cube.cells)
        assert kept == [c for c in sample_cube.cells if f.matches(c.entity_id)]
        assert {c.entity_id for c in kept} == {f"U3{i}" for i in range(10)}


class TestStats:
    def test_empty(self):
        assert compute_stats([]).to_dict() == {
            "userCount": 0, "totalHours": 0, "avgMin": 0, "totalBinge": 0
        }

    def test_per_user_average(self):
        cube = build_cube(make_csv(
            "U1,8,weekday,mobile,music,90,no,0,1",
            "U2,8,weekday,mobile,music,60,no,0,1",
            "U2,8,weekday,mobile,video,0,no,0,1",
        ))
        stats = compute_stats(cube.cells)
        assert stats.user_count == 2
        assert stats.total_hours == 3
        assert stats.avg_min == 75
        assert stats.total_binge == 3

    def test_round_half_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(2.4) == 2
        assert round_half_up(0) == 0

    def test_sample_dataset(self, sample_cube):
        stats = compute_stats(sample_cube.cells)
        assert stats.to_dict() == {
            "userCount": 40, "totalHours": 24, "avgMin": 35, "totalBinge": 14
        }


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
