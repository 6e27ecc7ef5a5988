"""Parse raw GitLab job traces into timestamped, styled log lines.

A trace interleaves ANSI SGR styling, GitLab's ``section_start:<epoch>:<name>``
/ ``section_end:<epoch>:<name>`` markers and, on newer runners, a per-line
``2024-01-01T12:00:00.000000Z 00O `` timestamp prefix. Parsing never fails:
anything unrecognised degrades to unstyled text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from .render import theme
from .render.grid import Style

SECTION_RE = re.compile(r"section_(start|end):(\d+):([^\r\n\x1b\[\s]*)(?:\[[^\]]*\])?")
CLEAR_LINE_RE = re.compile(r"\x1b\[0?K")
CSI_RE = re.compile(r"\x1b\[([0-9;]*)([@-~])")
ANSI_RE = re.compile(r"\x1b(?:\[[0-9;?]*[@-~]|.)?")

_PALETTE = {
    "31": theme.NORD11,
    "32": theme.NORD14,
    "33": theme.NORD13,
    "34": theme.NORD10,
    "35": theme.NORD15,
    "36": theme.NORD8,
    "37": theme.NORD4,
    "90": theme.NORD3,
}

StyledRun = tuple[str, Style]


@dataclass
class LogLine:
    content: str
    styled: list[StyledRun] = field(default_factory=list)
    timestamp: str | None = None
    duration: str | None = None


def strip_log_prefix(line: str) -> tuple[str | None, str]:
    """Split off a ``YYYY-MM-DDTHH:MM:SS.ffffffZ <stream> `` prefix, keeping ``HH:MM:SS``."""
    if len(line) > 32 and line[:4].isdigit() and line[4] == "-" and line[10] == "T":
        ts = line[11:19]
        pos = line.find(" ", 28)
        if pos != -1:
            return ts, line[pos + 1 :]
        return ts, line
    return None, line


def strip_ansi(text: str) -> str:
    return ANSI_RE.sub("", text)


def format_duration(seconds: int) -> str:
    seconds = max(0, seconds)
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


def ansi_style(code: str) -> Style:
    """Map one SGR parameter string (``"32;1"``) to a style; unknown codes reset."""
    parts = code.split(";")
    if parts in (["0"], [""], ["0", ""]):
        return Style()
    if parts == ["1"]:
        return Style(bold=True)
    if len(parts) == 2 and parts[0] == "0" and parts[1] in _PALETTE:
        return Style(fg=_PALETTE[parts[1]])
    if len(parts) == 2 and parts[0] == "1" and parts[1] in _PALETTE:
        parts = [parts[1], "1"]
    if parts[0] in _PALETTE:
        if len(parts) == 1:
            return Style(fg=_PALETTE[parts[0]])
        if parts[1:] == ["1"]:
            return Style(fg=_PALETTE[parts[0]], bold=True)
    return Style()


def parse_ansi_to_styled(text: str) -> list[StyledRun]:
    """Split *text* into ``(run, style)`` pairs, changing style only at SGR codes."""
    runs: list[StyledRun] = []
    style = Style()
    pos = 0
    for match in CSI_RE.finditer(text):
        chunk = strip_ansi(text[pos : match.start()])
        if chunk:
            runs.append((chunk, style))
        if match.group(2) == "m":
            style = ansi_style(match.group(1))
        pos = match.end()
    tail = strip_ansi(text[pos:])
    if tail:
        runs.append((tail, style))
    if not runs:
        runs.append(("", Style()))
    return runs


def _visible_part(text: str) -> str:
    """Apply carriage returns the way a terminal would: the last non-empty overwrite wins."""
    text = CLEAR_LINE_RE.sub("", text)
    for part in reversed(text.split("\r")):
        if strip_ansi(part).strip():
            return part
    return ""


class _TraceParser:
    def __init__(self) -> None:
        self.lines: list[LogLine] = []
        self.section_starts: dict[str, int] = {}

    def emit(self, timestamp: str | None, text: str) -> None:
        visible = _visible_part(text)
        if not visible:
            return
        self.lines.append(
            LogLine(
                content=strip_ansi(visible),
                styled=parse_ansi_to_styled(visible),
                timestamp=timestamp,
            )
        )

    def marker(self, kind: str, epoch: int, name: str) -> None:
        if kind == "start":
            self.section_starts[name] = epoch
            return
        start = self.section_starts.pop(name, None)
        if start is not None and self.lines:
            self.lines[-1].duration = format_duration(epoch - start)

    def feed(self, raw_line: str) -> None:
        timestamp, body = strip_log_prefix(raw_line.rstrip("\r"))
        pos = 0
        for match in SECTION_RE.finditer(body):
            self.emit(timestamp, body[pos : match.start()])
            self.marker(match.group(1), int(match.group(2)), match.group(3))
            pos = match.end()
        self.emit(timestamp, body[pos:])


def parse_job_log(raw: str) -> list[LogLine]:
    parser = _TraceParser()
    for raw_line in raw.split("\n"):
        parser.feed(raw_line)
    return parser.lines


def job_log_as_text(lines: list[LogLine]) -> str:
    """Plain-text rendering with line numbers, timestamps and section durations."""
    width = len(str(max(len(lines), 1)))
    out = []
    for idx, line in enumerate(lines, start=1):
        ts = line.timestamp or " " * 8
        text = f"{idx:>{width}} {ts}  {line.content}"
        if line.duration:
            text = f"{text} {line.duration}"
        out.append(text)
    return "\n".join(out)
