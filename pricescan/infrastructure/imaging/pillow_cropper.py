from __future__ import annotations

import io
import logging

from PIL import Image

from pricescan.core.exceptions import InvalidFrameError
from pricescan.domain.ports.frame_source_port import FrameCropperPort
from pricescan.domain.scan.models import Frame, SourceCropRect

logger = logging.getLogger(__name__)


class PillowFrameCropper(FrameCropperPort):
    """Crop a raw frame to the mapped source rect and encode it as JPEG."""

    def __init__(self, quality: int = 85) -> None:
        self.quality = quality

    def _to_image(self, frame: Frame) -> Image.Image:
        try:
            return Image.frombytes(frame.mode, (frame.width, frame.height), frame.pixels)
        except ValueError as exc:
            raise InvalidFrameError(
                "pixel buffer does not match frame size",
                width=frame.width,
                height=frame.height,
                mode=frame.mode,
            ) from exc

    def crop(self, frame: Frame, rect: SourceCropRect) -> bytes:
        image = self._to_image(frame)
        left, upper, right, lower = rect.to_box()
        right = min(right, frame.width)
        lower = min(lower, frame.height)
        if right <= left or lower <= upper:
            raise InvalidFrameError("crop region is empty", box=(left, upper, right, lower))
        cropped = image.crop((left, upper, right, lower))
        if cropped.mode not in ("RGB", "L"):
            cropped = cropped.convert("RGB")

        buf = io.BytesIO()
        cropped.save(buf, format="JPEG", quality=self.quality)
        data = buf.getvalue()
        logger.debug(
            "frame_cropped",
            extra={"box": (left, upper, right, lower), "jpeg_bytes": len(data)},
        )
        return data
