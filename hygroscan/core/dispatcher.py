"""Advertisement routing from raw records to subscriber notifications."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from hygroscan.core.errors import DecodeError, SubscriptionError
from hygroscan.core.events import decode_event
from hygroscan.core.filter import extract_service_data, matches_address
from hygroscan.core.frame import SERVICE_DATA_UUID, decode_frame
from hygroscan.core.model import (
    READING_EVENTS,
    AdvertisementRecord,
    ChangeEvent,
    ReadingContext,
    ScannerConfig,
)

CHANGE_EVENT = "change"
ERROR_EVENT = "error"
EVENT_NAMES: tuple[str, ...] = READING_EVENTS + (CHANGE_EVENT, ERROR_EVENT)
LOGGER = logging.getLogger(__name__)

Subscriber = Callable[[Any, ReadingContext], None]


class Dispatcher:
    def __init__(self, config: ScannerConfig, *, service_uuid: str = SERVICE_DATA_UUID) -> None:
        self._config = config
        self._service_uuid = service_uuid
        self._subscribers: dict[str, list[Subscriber]] = {name: [] for name in EVENT_NAMES}

    def subscribe(self, event_name: str, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback`` for ``event_name`` and return an unsubscribe function."""
        subscribers = self._subscribers.get(event_name)
        if subscribers is None:
            available = ", ".join(EVENT_NAMES)
            raise SubscriptionError(f"Unknown event '{event_name}'. Available: {available}")
        subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in subscribers:
                subscribers.remove(callback)

        return _unsubscribe

    def report_error(self, error: Exception, context: ReadingContext | None = None) -> None:
        self._emit(ERROR_EVENT, error, context or ReadingContext(identifier=None, address=None))

    def handle_advertisement(self, record: AdvertisementRecord) -> None:
        if not matches_address(record, self._config.address):
            return

        service_data = extract_service_data(record, self._service_uuid)
        if service_data is None:
            return

        LOGGER.debug(
            "[%s] Discovered peripheral id=%s local_name=%s rssi=%s service_data=%s",
            record.address or record.identifier,
            record.identifier,
            record.local_name,
            record.rssi,
            service_data.hex(),
        )

        context = ReadingContext(identifier=record.identifier, address=record.address)
        try:
            frame = decode_frame(service_data, self._config.bind_key, address=record.address)
            if frame.event is None:
                LOGGER.debug("[%s] No event", record.address or record.identifier)
                return
            readings = decode_event(frame.event.event_type, frame.event.payload)
        except DecodeError as exc:
            LOGGER.warning("[%s] Could not decode advertisement: %s", record.address or record.identifier, exc)
            self._emit(ERROR_EVENT, exc, context)
            return

        for reading in readings:
            self._emit(reading.event_name, reading.value, context)
        self._emit(CHANGE_EVENT, ChangeEvent(envelope=frame.event, readings=readings), context)

    def _emit(self, event_name: str, value: Any, context: ReadingContext) -> None:
        for callback in list(self._subscribers[event_name]):
            try:
                callback(value, context)
            except Exception:
                LOGGER.exception("Subscriber for '%s' failed", event_name)
