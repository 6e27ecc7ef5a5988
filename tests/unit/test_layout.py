"""Tests for stage box layout."""

from __future__ import annotations

from conftest import make_job

from gitlab_pipeview.layout import (
    CONNECTOR_WIDTH,
    MIN_STAGE_WIDTH,
    TOP_MARGIN,
    WRAP_MARGIN,
    calculate_layout,
    fit_layout,
    needs_multirow,
    stage_ideal_width,
)
from gitlab_pipeview.models.pipelines import Stage


def _stage(name: str, *jobs: str) -> Stage:
    return Stage(name, tuple(make_job(i, j, name) for i, j in enumerate(jobs, start=1)))


def _stages(count: int, jobs: int = 1) -> list[Stage]:
    return [_stage(f"s{i}", *[f"j{k}" for k in range(jobs)]) for i in range(count)]


class TestIdealWidth:
    def test_minimum(self):
        assert stage_ideal_width(_stage("a", "b")) == MIN_STAGE_WIDTH

    def test_header_chrome(self):
        assert stage_ideal_width(_stage("integration-tests")) == len("integration-tests") + 8

    def test_job_chrome(self):
        assert stage_ideal_width(_stage("t", "a-rather-long-job-name")) == 22 + 5


class TestCalculateLayout:
    def test_empty(self):
        layout = calculate_layout([], 80)
        assert layout.boxes == ()
        assert layout.total_height == 0

    def test_single_row_centred(self):
        layout = calculate_layout(_stages(3, jobs=2), 80)
        assert not layout.wrapped
        assert [b.width for b in layout.boxes] == [16, 16, 16]
        used = 3 * 16 + 2 * CONNECTOR_WIDTH
        assert layout.boxes[0].x == (80 - used) // 2
        assert layout.boxes[1].x == layout.boxes[0].right + CONNECTOR_WIDTH
        assert {b.height for b in layout.boxes} == {4}
        assert layout.total_height == 4

    def test_row_height_follows_tallest_stage(self):
        stages = [_stage("a", "x"), _stage("b", "x", "y", "z")]
        layout = calculate_layout(stages, 80)
        assert [b.height for b in layout.boxes] == [5, 5]

    def test_shrinks_before_wrapping(self):
        stages = [_stage("a", "j" * 35), _stage("b", "k" * 35)]
        layout = calculate_layout(stages, 60)
        assert not layout.wrapped
        assert [b.width for b in layout.boxes] == [27, 27]
        assert layout.total_width <= 60

    def test_wraps_when_minimums_overflow(self):
        layout = calculate_layout(_stages(5), 60)
        assert layout.wrapped
        assert layout.row_count > 1
        assert all(b.right <= 60 for b in layout.boxes)

    def test_later_rows_indented_by_margin(self):
        layout = calculate_layout(_stages(4), 40)
        second_row = [b for b in layout.boxes if b.y > 0]
        assert second_row
        assert all(b.x >= WRAP_MARGIN for b in second_row)

    def test_gap_row_between_rows(self):
        layout = calculate_layout(_stages(2), 30)
        first, second = layout.boxes
        assert second.y == first.bottom + 1
        assert layout.total_height == second.bottom

    def test_wrap_never_below_minimum_width(self):
        layout = calculate_layout(_stages(2), 10)
        assert all(b.width == MIN_STAGE_WIDTH for b in layout.boxes)
        assert layout.row_count == 2

    def test_offset(self):
        layout = calculate_layout(_stages(1), 40, x=3, y=2)
        assert layout.boxes[0].y == 2
        assert layout.boxes[0].x == 3 + (40 - 16) // 2

    def test_end_to_end_narrow_viewport(self, running_details):
        layout = calculate_layout(running_details.stages, 30)
        assert layout.row_count == 2
        build, test = layout.boxes
        assert (build.x, build.y, build.width, build.height) == (7, 0, 16, 3)
        assert (test.x, test.y, test.width, test.height) == (8, 4, 16, 4)
        assert layout.total_height == 8


class TestNeedsMultirow:
    def test_fits(self):
        assert not needs_multirow(_stages(3), 80)

    def test_shrink_is_enough(self):
        stages = [_stage("a", "j" * 35), _stage("b", "k" * 35)]
        assert not needs_multirow(stages, 60)

    def test_overflow(self):
        assert needs_multirow(_stages(5), 60)

    def test_empty(self):
        assert not needs_multirow([], 1)


class TestFitLayout:
    def test_top_margin(self):
        layout, content_height = fit_layout(_stages(2), 80, 20)
        assert layout.boxes[0].y == TOP_MARGIN
        assert content_height == TOP_MARGIN + 3

    def test_reserves_scrollbar_column_when_too_tall(self):
        stages = _stages(6, jobs=3)
        short, content_height = fit_layout(stages, 45, 5)
        assert content_height > 5
        assert short.total_width <= 44
