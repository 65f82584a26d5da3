"""Event payload decoding into typed sensor readings."""

from __future__ import annotations

from collections.abc import Callable

from hygroscan.core.errors import MalformedEventPayload, UnknownEventType
from hygroscan.core.model import (
    Battery,
    EventType,
    Fertility,
    Humidity,
    Illuminance,
    Moisture,
    SensorReading,
    Temperature,
    Unknown,
)


def _int(payload: bytes, start: int, size: int, *, signed: bool = False) -> int:
    return int.from_bytes(payload[start : start + size], "little", signed=signed)


def _temperature(payload: bytes) -> tuple[SensorReading, ...]:
    return (Temperature(celsius=_int(payload, 0, 2, signed=True) / 10),)


def _humidity(payload: bytes) -> tuple[SensorReading, ...]:
    return (Humidity(percent_rh=_int(payload, 0, 2) / 10),)


def _battery(payload: bytes) -> tuple[SensorReading, ...]:
    return (Battery(percent=payload[0]),)


def _temperature_and_humidity(payload: bytes) -> tuple[SensorReading, ...]:
    return (
        Temperature(celsius=_int(payload, 0, 2, signed=True) / 10),
        Humidity(percent_rh=_int(payload, 2, 2) / 10),
    )


def _illuminance(payload: bytes) -> tuple[SensorReading, ...]:
    return (Illuminance(lux=_int(payload, 0, 3)),)


def _moisture(payload: bytes) -> tuple[SensorReading, ...]:
    return (Moisture(percent=payload[0]),)


def _fertility(payload: bytes) -> tuple[SensorReading, ...]:
    return (Fertility(micro_siemens_per_cm=_int(payload, 0, 2)),)


_LAYOUTS: dict[EventType, tuple[int, Callable[[bytes], tuple[SensorReading, ...]]]] = {
    EventType.TEMPERATURE: (2, _temperature),
    EventType.HUMIDITY: (2, _humidity),
    EventType.BATTERY: (1, _battery),
    EventType.TEMPERATURE_AND_HUMIDITY: (4, _temperature_and_humidity),
    EventType.ILLUMINANCE: (3, _illuminance),
    EventType.MOISTURE: (1, _moisture),
    EventType.FERTILITY: (2, _fertility),
}


def decode_event(event_type: int, payload: bytes, *, strict: bool = True) -> tuple[SensorReading, ...]:
    """Decode an event payload into one or more readings.

    Temperature-and-humidity events yield two readings, every other known
    type yields one. Unknown codes raise UnknownEventType unless ``strict`` is
    false, in which case a single Unknown reading is returned.
    """
    try:
        kind = EventType(event_type)
    except ValueError:
        if strict:
            raise UnknownEventType(event_type) from None
        return (Unknown(code=event_type),)

    size, decoder = _LAYOUTS[kind]
    if len(payload) != size:
        raise MalformedEventPayload(
            f"{kind.name.lower()} payload must be {size} bytes, found {len(payload)}"
        )
    return decoder(bytes(payload))
