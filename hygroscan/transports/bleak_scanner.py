"""BLE scanning driver implementation using bleak."""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Callable
from typing import Any

from bleak import BleakScanner

from hygroscan.core.errors import ScanStartError
from hygroscan.core.model import AdvertisementRecord
from hygroscan.transports.base import ScanListener

_MAC_RE = re.compile(r"^[0-9A-F]{2}(?::[0-9A-F]{2}){5}$", re.IGNORECASE)
LOGGER = logging.getLogger(__name__)


class BleakRadioDriver:
    """Radio driver backed by a bleak scanner.

    bleak exposes no adapter power notifications, so ``open`` reports
    ``poweredOn`` once the scanner exists and ``close`` reports
    ``poweredOff``. Scan commands run as tasks on the current loop, one at a
    time, and each brings the scanner to the most recently requested state.
    Outcomes are reported through the listener.
    """

    def __init__(
        self,
        *,
        adapter: str | None = None,
        scanner_factory: Callable[..., Any] | None = None,
    ) -> None:
        self._adapter = adapter
        self._scanner_factory = scanner_factory or BleakScanner
        self._listener: ScanListener | None = None
        self._scanner: Any = None
        self._scanning = False
        self._wanted = False
        self._lock = asyncio.Lock()
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def scanning(self) -> bool:
        return self._scanning

    def subscribe(self, listener: ScanListener) -> None:
        self._listener = listener

    async def open(self) -> None:
        kwargs: dict[str, Any] = {"detection_callback": self._handle_detection}
        if self._adapter:
            kwargs["adapter"] = self._adapter
        self._scanner = self._scanner_factory(**kwargs)
        if self._listener is not None:
            self._listener.on_state_change("poweredOn")

    async def close(self) -> None:
        await self.wait_idle()
        self._wanted = False
        await self._apply()
        if self._listener is not None:
            self._listener.on_state_change("poweredOff")
        await self.wait_idle()
        self._scanner = None

    async def wait_idle(self) -> None:
        """Wait for pending scan commands to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def start_scan(self) -> None:
        if self._scanner is None:
            raise ScanStartError("Radio driver is not open")
        self._wanted = True
        self._spawn(self._apply())

    def stop_scan(self) -> None:
        if self._scanner is None:
            return
        self._wanted = False
        self._spawn(self._apply())

    def _spawn(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _apply(self) -> None:
        async with self._lock:
            if self._wanted and not self._scanning:
                await self._start()
            elif not self._wanted and self._scanning:
                await self._stop()

    async def _start(self) -> None:
        try:
            await self._scanner.start()
        except Exception as exc:
            LOGGER.debug("bleak scanner failed to start: %s", exc)
            self._wanted = False
            if self._listener is not None:
                self._listener.on_scan_failed(exc)
            return
        self._scanning = True
        if not self._wanted:
            # A stop arrived while starting; the queued command reports it.
            LOGGER.debug("bleak scanner started after a stop was requested")
            return
        if self._listener is not None:
            self._listener.on_scan_start()

    async def _stop(self) -> None:
        try:
            await self._scanner.stop()
        except Exception as exc:
            if self._listener is not None:
                self._listener.on_warning(f"Stopping the scanner failed: {exc}")
        finally:
            self._scanning = False
        if self._wanted:
            # A start arrived while stopping; the queued command reports it.
            LOGGER.debug("bleak scanner stopped after a start was requested")
            return
        if self._listener is not None:
            self._listener.on_scan_stop()

    def _handle_detection(self, device: Any, advertisement_data: Any) -> None:
        if self._listener is None:
            return
        address = device.address if device.address and _MAC_RE.match(device.address) else None
        record = AdvertisementRecord(
            identifier=device.address,
            address=address,
            rssi=advertisement_data.rssi,
            service_data={uuid: bytes(data) for uuid, data in (advertisement_data.service_data or {}).items()},
            local_name=advertisement_data.local_name,
        )
        self._listener.on_advertisement(record)
