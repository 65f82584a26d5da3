"""Radio driver interfaces."""

from __future__ import annotations

from typing import Protocol

from hygroscan.core.model import AdvertisementRecord


class ScanListener(Protocol):
    def on_state_change(self, state: str) -> None:
        """Adapter power state changed, e.g. ``poweredOn`` or ``poweredOff``."""

    def on_scan_start(self) -> None:
        """The radio started scanning."""

    def on_scan_stop(self) -> None:
        """The radio stopped scanning, whether requested or not."""

    def on_warning(self, message: str) -> None:
        """The radio stack reported a non-fatal condition."""

    def on_scan_failed(self, error: Exception) -> None:
        """A start-scan command was rejected after it was issued."""

    def on_advertisement(self, record: AdvertisementRecord) -> None:
        """An advertisement was observed."""


class RadioDriver(Protocol):
    def subscribe(self, listener: ScanListener) -> None:
        """Register the listener that receives lifecycle signals and advertisements."""

    def start_scan(self) -> None:
        """Request scanning. The outcome is reported through the listener."""

    def stop_scan(self) -> None:
        """Request that scanning stops. The outcome is reported through the listener."""
