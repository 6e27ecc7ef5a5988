"""Pipeline colouring of commit hashes already drawn in a commit list row."""

from __future__ import annotations

from ..models.pipelines import PipelineStatus
from . import theme
from .animation import sweep_color
from .grid import Grid, Style

SHA_LENGTH = 7
GRAPH_SWEEP_SPEED = 8


def overlay_commit_hash(
    grid: Grid,
    y: int,
    sha: str,
    status: PipelineStatus,
    tick: int,
    start: int = 0,
    end: int | None = None,
) -> bool:
    """Recolour the first occurrence of ``sha[:7]`` in row *y*; returns whether it was found.

    Active pipelines get a fast sweep; others the plain status colour. Only
    styles change, never the characters.
    """
    short = sha[:SHA_LENGTH]
    x = grid.find(y, short, start, end)
    if x is None:
        return False
    base = theme.graph_status_rgb(status)
    for offset in range(len(short)):
        if status.is_active:
            fg = sweep_color(base, offset, len(short), tick, speed=GRAPH_SWEEP_SPEED)
        else:
            fg = base
        grid.patch_style(x + offset, y, Style(fg=fg))
    return True
