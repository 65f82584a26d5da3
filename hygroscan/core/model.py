"""Core data models used across decoder, supervisor, dispatcher, and CLI."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import ClassVar, Union

from hygroscan.core.errors import ConfigValidationError

BIND_KEY_LENGTH = 16


@dataclass(frozen=True)
class AdvertisementRecord:
    identifier: str
    address: str | None
    rssi: int | None
    service_data: dict[str, bytes] = field(default_factory=dict)
    local_name: str | None = None


@dataclass(frozen=True)
class FrameControl:
    is_factory_new: bool = False
    is_connected: bool = False
    is_central: bool = False
    is_encrypted: bool = False
    has_mac_address: bool = False
    has_capabilities: bool = False
    has_event: bool = False
    has_custom_data: bool = False
    has_subtitle: bool = False
    has_binding: bool = False
    version: int = 0

    FLAGS: ClassVar[tuple[str, ...]] = (
        "is_factory_new",
        "is_connected",
        "is_central",
        "is_encrypted",
        "has_mac_address",
        "has_capabilities",
        "has_event",
        "has_custom_data",
        "has_subtitle",
        "has_binding",
    )

    @classmethod
    def from_int(cls, value: int) -> FrameControl:
        flags = {name: bool(value & (1 << bit)) for bit, name in enumerate(cls.FLAGS)}
        return cls(version=(value >> 12) & 0x0F, **flags)

    def to_int(self) -> int:
        value = (self.version & 0x0F) << 12
        for bit, name in enumerate(self.FLAGS):
            if getattr(self, name):
                value |= 1 << bit
        return value


@dataclass(frozen=True)
class EventEnvelope:
    event_type: int
    length: int
    payload: bytes


@dataclass(frozen=True)
class DecodedFrame:
    frame_control: FrameControl
    product_id: int
    frame_counter: int
    device_address: str | None = None
    capabilities: int | None = None
    event: EventEnvelope | None = None
    custom_data: bytes | None = None


class EventType(enum.IntEnum):
    TEMPERATURE = 0x1004
    HUMIDITY = 0x1006
    ILLUMINANCE = 0x1007
    MOISTURE = 0x1008
    FERTILITY = 0x1009
    BATTERY = 0x100A
    TEMPERATURE_AND_HUMIDITY = 0x100D


@dataclass(frozen=True)
class Temperature:
    celsius: float
    event_name: ClassVar[str] = "temperature"

    @property
    def value(self) -> float:
        return self.celsius


@dataclass(frozen=True)
class Humidity:
    percent_rh: float
    event_name: ClassVar[str] = "humidity"

    @property
    def value(self) -> float:
        return self.percent_rh


@dataclass(frozen=True)
class Battery:
    percent: int
    event_name: ClassVar[str] = "battery"

    @property
    def value(self) -> int:
        return self.percent


@dataclass(frozen=True)
class Illuminance:
    lux: int
    event_name: ClassVar[str] = "illuminance"

    @property
    def value(self) -> int:
        return self.lux


@dataclass(frozen=True)
class Moisture:
    percent: int
    event_name: ClassVar[str] = "moisture"

    @property
    def value(self) -> int:
        return self.percent


@dataclass(frozen=True)
class Fertility:
    micro_siemens_per_cm: int
    event_name: ClassVar[str] = "fertility"

    @property
    def value(self) -> int:
        return self.micro_siemens_per_cm


@dataclass(frozen=True)
class Unknown:
    code: int
    event_name: ClassVar[str] = "unknown"

    @property
    def value(self) -> int:
        return self.code


SensorReading = Union[Temperature, Humidity, Battery, Illuminance, Moisture, Fertility, Unknown]

READING_EVENTS: tuple[str, ...] = (
    Temperature.event_name,
    Humidity.event_name,
    Battery.event_name,
    Illuminance.event_name,
    Moisture.event_name,
    Fertility.event_name,
)


@dataclass(frozen=True)
class ReadingContext:
    identifier: str | None
    address: str | None


@dataclass(frozen=True)
class ChangeEvent:
    envelope: EventEnvelope
    readings: tuple[SensorReading, ...]


class ScanState(enum.Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    RESTART_PENDING = "restart_pending"


@dataclass(frozen=True)
class ScannerConfig:
    discover_interval_s: float
    address: str | None = None
    force_discovering: bool = True
    restart_delay_s: float = 600.0
    bind_key: bytes | None = None

    def __post_init__(self) -> None:
        if self.discover_interval_s <= 0:
            raise ConfigValidationError("discover_interval_s must be positive")
        if self.restart_delay_s <= 0:
            raise ConfigValidationError("restart_delay_s must be positive")
        if self.bind_key is not None and len(self.bind_key) != BIND_KEY_LENGTH:
            raise ConfigValidationError(
                f"bind_key must be exactly {BIND_KEY_LENGTH} bytes, got {len(self.bind_key)}"
            )
