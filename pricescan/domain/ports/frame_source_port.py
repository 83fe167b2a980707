"""FrameSourcePort protocol for the camera collaborator."""

from __future__ import annotations

from typing import Protocol

from pricescan.domain.scan.models import Frame, GuideRect, SourceCropRect, ViewportGeometry


class FrameSourcePort(Protocol):
    """Provides the current frame and the overlay geometry on demand."""

    def capture_frame(self) -> Frame: ...

    def guide_rect(self) -> GuideRect: ...

    def viewport(self) -> ViewportGeometry: ...


class FrameCropperPort(Protocol):
    """Crops a frame to a source rect and encodes the result."""

    def crop(self, frame: Frame, rect: SourceCropRect) -> bytes: ...
