"""Domain models for the scan pipeline."""

from __future__ import annotations

import base64
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict


@dataclass(frozen=True)
class Frame:
    """Immutable pixel buffer as delivered by the camera collaborator.

    ``pixels`` is raw, row-major data in the given Pillow ``mode``.
    """

    pixels: bytes = field(repr=False)
    width: int
    height: int
    captured_at: float
    mode: str = "RGB"

    @property
    def size(self) -> "Size":
        return Size(width=self.width, height=self.height)


class Size(BaseModel):
    model_config = ConfigDict(frozen=True)

    width: float
    height: float


class GuideRect(BaseModel):
    """Capture-guide overlay in display coordinates, relative to the viewport's top-left."""

    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    width: float
    height: float


class ViewportGeometry(BaseModel):
    """Display container geometry.

    ``displayed_size`` is the scaled frame size as rendered, when the frame
    source knows it; the mapper recomputes it from cover scaling regardless.
    """

    model_config = ConfigDict(frozen=True)

    width: float
    height: float
    left: float = 0.0
    top: float = 0.0
    displayed_size: Optional[Size] = None

    @property
    def size(self) -> Size:
        return Size(width=self.width, height=self.height)


class SourceCropRect(BaseModel):
    """Rectangle in source-frame pixel coordinates, already clamped to the frame."""

    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    width: float
    height: float

    def to_box(self) -> tuple[int, int, int, int]:
        """Integer (left, upper, right, lower) pixel box, at least one pixel wide and tall."""
        left = int(self.x)
        upper = int(self.y)
        right = max(left + 1, int(round(self.x + self.width)))
        lower = max(upper + 1, int(round(self.y + self.height)))
        return left, upper, right, lower


_DATA_URL_PREFIX = re.compile(r"^data:[^,]*,")


def strip_data_url_prefix(content: str) -> str:
    """``data:image/jpeg;base64,AAAA`` -> ``AAAA``; bare base64 is returned unchanged."""
    return _DATA_URL_PREFIX.sub("", content.strip(), count=1)


@dataclass(frozen=True)
class ImagePayload:
    """Encoded still image; ``content`` may carry a ``data:<mime>;base64,`` prefix."""

    content: str = field(repr=False)

    @classmethod
    def from_bytes(cls, data: bytes, mime_type: str = "image/jpeg") -> "ImagePayload":
        encoded = base64.b64encode(data).decode("ascii")
        return cls(content=f"data:{mime_type};base64,{encoded}")


@dataclass(frozen=True)
class TextPayload:
    text: str


RecognitionPayload = Union[ImagePayload, TextPayload]


class RecognitionResult(BaseModel):
    """Structured price/name guess, from the remote service or the heuristic parser."""

    model_config = ConfigDict(frozen=True)

    price_candidate: Optional[int] = None
    product_name_candidate: Optional[str] = None
    raw_text: str = ""

    @property
    def has_price(self) -> bool:
        return self.price_candidate is not None and self.price_candidate > 0


class ScanRecord(BaseModel):
    """Terminal artifact handed to the cart collaborator."""

    model_config = ConfigDict(frozen=True)

    name: str
    price: int


class DedupState(BaseModel):
    last_accepted_price: Optional[int] = None
    last_accepted_at: Optional[float] = None


class ScanState(str, Enum):
    IDLE = "idle"
    CAPTURING = "capturing"
    AWAITING_RESULT = "awaiting_result"
    EVALUATING = "evaluating"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    FAILED = "failed"


class OutcomeStatus(str, Enum):
    ACCEPTED = "accepted"
    DUPLICATE = "duplicate"
    FAILED = "failed"
    SKIPPED = "skipped"


class ResultSource(str, Enum):
    REMOTE = "remote"
    HEURISTIC = "heuristic"
    NONE = "none"


class ScanOutcome(BaseModel):
    """Per-cycle outcome; ``message`` is the transient notification text."""

    model_config = ConfigDict(frozen=True)

    status: OutcomeStatus
    message: str
    record: Optional[ScanRecord] = None
    result: Optional[RecognitionResult] = None
    source: ResultSource = ResultSource.NONE
