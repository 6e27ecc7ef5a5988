"""Tests for job trace parsing."""

from __future__ import annotations

from gitlab_pipeview.log_parser import (
    ansi_style,
    format_duration,
    job_log_as_text,
    parse_ansi_to_styled,
    parse_job_log,
    strip_ansi,
    strip_log_prefix,
)
from gitlab_pipeview.render import theme
from gitlab_pipeview.render.grid import Style

TS = "2024-01-01T12:34:56.123456Z 00O "


class TestPrefix:
    def test_strips_timestamp_prefix(self):
        assert strip_log_prefix(f"{TS}hello world") == ("12:34:56", "hello world")

    def test_append_stream_marker(self):
        assert strip_log_prefix("2024-01-01T12:34:56.123456Z 01E+ tail") == ("12:34:56", "tail")

    def test_plain_line_untouched(self):
        line = "Running with gitlab-runner"
        assert strip_log_prefix(line) == (None, line)

    def test_short_line_untouched(self):
        assert strip_log_prefix("2024-01-01T12:34:56Z x") == (None, "2024-01-01T12:34:56Z x")


class TestAnsi:
    def test_strip_ansi(self):
        assert strip_ansi("\x1b[32;1mOK\x1b[0;m done\x1b[0K") == "OK done"

    def test_reset_codes(self):
        for code in ("0", "", "0;"):
            assert ansi_style(code) == Style()

    def test_colours(self):
        assert ansi_style("32") == Style(fg=theme.NORD14)
        assert ansi_style("0;31") == Style(fg=theme.NORD11)
        assert ansi_style("90") == Style(fg=theme.NORD3)

    def test_bold_colour_both_orders(self):
        expected = Style(fg=theme.NORD14, bold=True)
        assert ansi_style("32;1") == expected
        assert ansi_style("1;32") == expected

    def test_bold_only(self):
        assert ansi_style("1") == Style(bold=True)

    def test_unknown_resets(self):
        assert ansi_style("38;5;208") == Style()

    def test_styled_runs(self):
        runs = parse_ansi_to_styled("\x1b[32;1mOK\x1b[0;m done")
        assert runs == [("OK", Style(fg=theme.NORD14, bold=True)), (" done", Style())]

    def test_empty_text_gives_one_run(self):
        assert parse_ansi_to_styled("") == [("", Style())]


class TestDuration:
    def test_minutes_and_seconds(self):
        assert format_duration(65) == "01:05"

    def test_negative_saturates(self):
        assert format_duration(-5) == "00:00"


class TestParseJobLog:
    def test_plain_lines_skip_blanks(self):
        lines = parse_job_log("first\n\n   \nsecond\r\n")
        assert [line.content for line in lines] == ["first", "second"]
        assert all(line.timestamp is None for line in lines)

    def test_timestamps_kept(self):
        lines = parse_job_log(f"{TS}\x1b[36mStep one\x1b[0m")
        assert lines[0].timestamp == "12:34:56"
        assert lines[0].content == "Step one"
        assert lines[0].styled[0] == ("Step one", Style(fg=theme.NORD8))

    def test_section_duration_attached_to_last_line(self):
        raw = "\n".join(
            [
                "section_start:1700000000:build_script\r\x1b[0KRunning build",
                "compiling",
                "section_end:1700000065:build_script\r\x1b[0K",
                "after",
            ]
        )
        lines = parse_job_log(raw)
        assert [line.content for line in lines] == ["Running build", "compiling", "after"]
        assert lines[1].duration == "01:05"
        assert lines[0].duration is None
        assert lines[2].duration is None

    def test_build_section_duration(self):
        raw = "section_start:100:build\r\x1b[0K\ncompiling\nsection_end:145:build\r\x1b[0K\n"
        lines = parse_job_log(raw)
        assert [line.content for line in lines] == ["compiling"]
        assert lines[0].duration == "00:45"

    def test_clear_line_only_lines_dropped(self):
        lines = parse_job_log("a\n\x1b[0K\n\x1b[0K\x1b[0m\nb")
        assert [line.content for line in lines] == ["a", "b"]

    def test_section_with_options(self):
        raw = (
            "section_start:10:prepare[collapsed=true]\r\x1b[0KPreparing\n"
            "section_end:12:prepare\r\x1b[0K"
        )
        lines = parse_job_log(raw)
        assert lines[0].content == "Preparing"
        assert lines[0].duration == "00:02"

    def test_unmatched_end_ignored(self):
        lines = parse_job_log("text\nsection_end:5:unknown\r\x1b[0K")
        assert [line.duration for line in lines] == [None]

    def test_carriage_return_overwrite(self):
        lines = parse_job_log("progress 10%\rprogress 100%")
        assert lines[0].content == "progress 100%"

    def test_markers_hidden_from_content(self):
        lines = parse_job_log("a section_start:1:x\r\x1b[0K b")
        assert all("section_" not in line.content for line in lines)


def test_job_log_as_text():
    lines = parse_job_log(
        "\n".join(
            [f"{TS}start"]
            + [f"line {n}" for n in range(2, 10)]
            + ["section_start:0:s\r\x1b[0Kdone", "section_end:90:s\r\x1b[0K"]
        )
    )
    text = job_log_as_text(lines).split("\n")
    assert text[0] == " 1 12:34:56  start"
    assert text[1] == " 2           line 2"
    assert text[9] == "10           done 01:30"
