"""CartPort and NotifierPort protocols for the UI-side collaborators."""

from __future__ import annotations

from typing import Protocol

from pricescan.domain.scan.models import ScanRecord


class CartPort(Protocol):
    """Running shopping cart; receives one record per accepted scan."""

    def add(self, record: ScanRecord) -> None: ...


class NotifierPort(Protocol):
    """Transient, non-blocking status messages for the scanning UI."""

    def notify(self, message: str) -> None: ...
