"""Map the on-screen capture guide onto source-frame pixels.

The camera preview is rendered with "cover" scaling: the frame is scaled
uniformly until it fills the viewport, centered, and the overflow is cut off.
The guide overlay is positioned in viewport coordinates, so cropping the raw
frame with the guide's numbers would grab the wrong region as soon as the
camera resolution differs from the viewport.
"""

from __future__ import annotations

from pricescan.core.exceptions import InvalidFrameError
from pricescan.domain.scan.models import GuideRect, Size, SourceCropRect


def _clip_to_viewport(guide: GuideRect, viewport: Size) -> GuideRect:
    left = max(guide.x, 0.0)
    top = max(guide.y, 0.0)
    right = min(guide.x + guide.width, viewport.width)
    bottom = min(guide.y + guide.height, viewport.height)
    if right <= left or bottom <= top:
        raise InvalidFrameError(
            "guide rectangle does not intersect the viewport",
            guide=guide.model_dump(),
        )
    return GuideRect(x=left, y=top, width=right - left, height=bottom - top)


def cover_scale(frame_size: Size, viewport_size: Size) -> float:
    return max(viewport_size.width / frame_size.width, viewport_size.height / frame_size.height)


def map_to_source(frame_size: Size, viewport_size: Size, guide_rect: GuideRect) -> SourceCropRect:
    """Translate ``guide_rect`` (viewport space) into a clamped source-pixel rect.

    Raises:
        InvalidFrameError: frame or viewport has a zero dimension (camera not
            ready), or the guide lies entirely outside the viewport.
    """
    if frame_size.width <= 0 or frame_size.height <= 0:
        raise InvalidFrameError(
            "frame has zero size", width=frame_size.width, height=frame_size.height
        )
    if viewport_size.width <= 0 or viewport_size.height <= 0:
        raise InvalidFrameError(
            "viewport has zero size", width=viewport_size.width, height=viewport_size.height
        )

    guide = _clip_to_viewport(guide_rect, viewport_size)

    scale = cover_scale(frame_size, viewport_size)
    displayed_w = frame_size.width * scale
    displayed_h = frame_size.height * scale
    offset_x = (displayed_w - viewport_size.width) / 2
    offset_y = (displayed_h - viewport_size.height) / 2

    src_x = (guide.x + offset_x) / scale
    src_y = (guide.y + offset_y) / scale
    src_w = guide.width / scale
    src_h = guide.height / scale

    left = min(max(src_x, 0.0), frame_size.width)
    top = min(max(src_y, 0.0), frame_size.height)
    right = min(max(src_x + src_w, 0.0), frame_size.width)
    bottom = min(max(src_y + src_h, 0.0), frame_size.height)

    return SourceCropRect(x=left, y=top, width=right - left, height=bottom - top)
