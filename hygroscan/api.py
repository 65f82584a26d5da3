"""Stable public API for building tooling on top of hygroscan.

This module is the supported integration surface for third-party callers.
Avoid importing from private/internal modules unless intentionally depending on
non-stable internals.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from hygroscan.core.config import LoadedConfig, load_config
from hygroscan.core.dispatcher import EVENT_NAMES, Subscriber
from hygroscan.core.errors import (
    ConfigError,
    ConfigLoadError,
    ConfigValidationError,
    DecodeError,
    DecryptionFailed,
    DriverError,
    HygroscanError,
    MalformedEventPayload,
    MalformedFrame,
    MissingBindKey,
    ScanStartError,
    SubscriptionError,
    TruncatedFrame,
    UnknownEventType,
)
from hygroscan.core.events import decode_event
from hygroscan.core.frame import SERVICE_DATA_UUID, build_frame, decode_frame
from hygroscan.core.model import (
    AdvertisementRecord,
    Battery,
    ChangeEvent,
    DecodedFrame,
    EventEnvelope,
    EventType,
    Fertility,
    FrameControl,
    Humidity,
    Illuminance,
    Moisture,
    ReadingContext,
    ScannerConfig,
    ScanState,
    SensorReading,
    Temperature,
    Unknown,
)
from hygroscan.core.service import SensorScanner
from hygroscan.core.supervisor import CallLater
from hygroscan.transports.base import RadioDriver, ScanListener
from hygroscan.transports.bleak_scanner import BleakRadioDriver

__all__ = [
    "HygroscanError",
    "DecodeError",
    "TruncatedFrame",
    "MalformedFrame",
    "MissingBindKey",
    "DecryptionFailed",
    "MalformedEventPayload",
    "UnknownEventType",
    "ConfigError",
    "ConfigLoadError",
    "ConfigValidationError",
    "DriverError",
    "ScanStartError",
    "SubscriptionError",
    "AdvertisementRecord",
    "Battery",
    "ChangeEvent",
    "DecodedFrame",
    "EventEnvelope",
    "EventType",
    "Fertility",
    "FrameControl",
    "Humidity",
    "Illuminance",
    "Moisture",
    "ReadingContext",
    "ScannerConfig",
    "ScanState",
    "SensorReading",
    "Temperature",
    "Unknown",
    "EVENT_NAMES",
    "SERVICE_DATA_UUID",
    "LoadedConfig",
    "load_config",
    "build_frame",
    "RadioDriver",
    "ScanListener",
    "BleakRadioDriver",
    "DecodeResult",
    "Client",
]


@dataclass(frozen=True)
class DecodeResult:
    """A decoded frame and the readings carried by its event, if any."""

    frame: DecodedFrame
    readings: tuple[SensorReading, ...]


class Client:
    """Public client for interacting with hygroscan core capabilities.

    A `Client` instance wraps scan supervision and advertisement decoding for
    one radio driver behind a stable API intended for third-party tools
    (dashboards/services/scripts).
    """

    def __init__(
        self,
        driver: RadioDriver,
        config: ScannerConfig,
        *,
        call_later: CallLater | None = None,
    ) -> None:
        self._scanner = SensorScanner(driver, config, call_later=call_later)

    @property
    def state(self) -> ScanState:
        return self._scanner.state

    def subscribe(self, event_name: str, callback: Subscriber) -> Callable[[], None]:
        return self._scanner.subscribe(event_name, callback)

    def stop(self) -> None:
        self._scanner.stop()

    @staticmethod
    def decode(
        raw: bytes,
        *,
        bind_key: bytes | None = None,
        address: str | None = None,
        strict: bool = True,
    ) -> DecodeResult:
        frame = decode_frame(raw, bind_key, address=address)
        readings: tuple[SensorReading, ...] = ()
        if frame.event is not None:
            readings = decode_event(frame.event.event_type, frame.event.payload, strict=strict)
        return DecodeResult(frame=frame, readings=readings)
