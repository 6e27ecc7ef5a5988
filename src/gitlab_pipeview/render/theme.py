"""Nord colour palette and pipeline status colours.

Based on the Nord color palette: https://www.nordtheme.com/
"""

from __future__ import annotations

from ..models.pipelines import PipelineStatus, Stage
from .grid import RGB

# Polar Night
NORD0: RGB = (46, 52, 64)
NORD1: RGB = (59, 66, 82)
NORD2: RGB = (67, 76, 94)
NORD3: RGB = (76, 86, 106)
# Snow Storm
NORD4: RGB = (216, 222, 233)
NORD5: RGB = (229, 233, 240)
NORD6: RGB = (236, 239, 244)
# Frost
NORD7: RGB = (143, 188, 187)
NORD8: RGB = (136, 192, 208)
NORD9: RGB = (129, 161, 193)
NORD10: RGB = (94, 129, 172)
# Aurora
NORD11: RGB = (191, 97, 106)
NORD12: RGB = (208, 135, 112)
NORD13: RGB = (235, 203, 139)
NORD14: RGB = (163, 190, 140)
NORD15: RGB = (180, 142, 173)

BORDER = NORD3
TEXT = NORD4
TEXT_DIM = NORD3
TEXT_BRIGHT = NORD6
ACCENT = NORD8
ERROR = NORD11
# Stages mixing a true failure with passing jobs
MIXED = NORD12

_STATUS_RGB: dict[PipelineStatus, RGB] = {
    PipelineStatus.SUCCESS: NORD14,
    PipelineStatus.RUNNING: NORD8,
    PipelineStatus.PENDING: NORD13,
    PipelineStatus.WAITING_FOR_RESOURCE: NORD13,
    PipelineStatus.PREPARING: NORD13,
    PipelineStatus.FAILED: NORD11,
    PipelineStatus.CANCELED: NORD8,
    PipelineStatus.CANCELING: NORD8,
    PipelineStatus.SKIPPED: NORD3,
    PipelineStatus.MANUAL: NORD15,
    PipelineStatus.CREATED: NORD4,
    PipelineStatus.SCHEDULED: NORD4,
}

# The commit list uses its own, bluer, mapping for in-progress pipelines.
_GRAPH_RGB: dict[PipelineStatus, RGB] = {
    **_STATUS_RGB,
    PipelineStatus.RUNNING: NORD10,
    PipelineStatus.PENDING: NORD10,
    PipelineStatus.PREPARING: NORD10,
    PipelineStatus.WAITING_FOR_RESOURCE: NORD12,
    PipelineStatus.SKIPPED: NORD12,
    PipelineStatus.MANUAL: NORD12,
}


def status_rgb(status: PipelineStatus) -> RGB:
    return _STATUS_RGB[status]


def graph_status_rgb(status: PipelineStatus) -> RGB:
    return _GRAPH_RGB[status]


def stage_rgb(stage: Stage) -> RGB:
    if stage.has_mixed_failure:
        return MIXED
    return status_rgb(stage.status)
