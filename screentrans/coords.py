import math
from typing import Optional
from .models import BoundingBox, CaptureRegion

def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))

def to_screen_bbox(bbox: BoundingBox, region: Optional[CaptureRegion] = None) -> BoundingBox:
    """Map an image-local bbox to screen coordinates.

    The captured image is assumed to be 1:1 with the screen area it came from,
    so only the region origin is added. Width and height pass through.
    """
    offset_x = region.x if region is not None else 0
    offset_y = region.y if region is not None else 0
    return BoundingBox(
        x=_round_half_up(bbox.x + offset_x),
        y=_round_half_up(bbox.y + offset_y),
        w=bbox.w,
        h=bbox.h,
    )
