"""Scan lifecycle supervision.

The supervisor is the only component that commands the radio driver's scan.
It runs one scan window of ``discover_interval_s`` after the adapter powers
on and, when ``force_discovering`` is enabled, schedules a new window
``restart_delay_s`` after any scan stop, requested or not.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any, Protocol

from hygroscan.core.errors import ScanStartError
from hygroscan.core.model import ScanState, ScannerConfig
from hygroscan.transports.base import RadioDriver

POWERED_ON = "poweredOn"
LOGGER = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> Any:
        """Cancel the pending callback."""


CallLater = Callable[[float, Callable[[], None]], TimerHandle]
ErrorCallback = Callable[[Exception], None]


def _loop_call_later(delay_s: float, callback: Callable[[], None]) -> TimerHandle:
    return asyncio.get_running_loop().call_later(delay_s, callback)


class DiscoverySupervisor:
    def __init__(
        self,
        driver: RadioDriver,
        config: ScannerConfig,
        *,
        call_later: CallLater | None = None,
        on_error: ErrorCallback | None = None,
    ) -> None:
        self._driver = driver
        self._config = config
        self._call_later = call_later or _loop_call_later
        self._on_error = on_error
        self._state = ScanState.IDLE
        # One slot for both timers: arming always replaces what was armed.
        self._timer: TimerHandle | None = None
        self._generation = 0

    @property
    def state(self) -> ScanState:
        return self._state

    @property
    def timer_armed(self) -> bool:
        return self._timer is not None

    def handle_state_change(self, adapter_state: str) -> None:
        if adapter_state == POWERED_ON:
            if self._state is ScanState.SCANNING:
                LOGGER.debug("Adapter reported %s while already scanning", adapter_state)
                return
            self._begin_scan()
            return

        LOGGER.info("Stop scanning. (%s)", adapter_state)
        if self._state is ScanState.IDLE:
            return
        was_scanning = self._state is ScanState.SCANNING
        self._cancel_timer()
        self._state = ScanState.IDLE
        # The radio is already off while a restart is pending.
        if was_scanning:
            self._driver.stop_scan()

    def handle_scan_start(self) -> None:
        LOGGER.debug("Started scanning.")

    def handle_scan_stop(self) -> None:
        LOGGER.debug("Stopped scanning.")
        if self._state is not ScanState.SCANNING:
            return
        # Scanning was stopped by the radio stack before the window elapsed.
        self._cancel_timer()
        self._settle_after_scan()

    def handle_warning(self, message: str) -> None:
        LOGGER.info("Warning: %s", message)

    def handle_scan_failed(self, error: Exception) -> None:
        if self._state is not ScanState.SCANNING:
            LOGGER.debug("Ignoring late scan failure: %s", error)
            return
        self._fail_start(error)

    def stop(self) -> None:
        """Stop scanning immediately and forget any pending timer."""
        self._cancel_timer()
        self._state = ScanState.IDLE
        self._driver.stop_scan()

    def _begin_scan(self) -> None:
        self._cancel_timer()
        LOGGER.debug("Start scanning.")
        self._state = ScanState.SCANNING
        try:
            self._driver.start_scan()
        except Exception as exc:
            self._fail_start(exc)
            return
        if self._state is ScanState.SCANNING:
            self._arm(self._config.discover_interval_s, self._on_window_elapsed)

    def _fail_start(self, error: Exception) -> None:
        self._cancel_timer()
        self._state = ScanState.IDLE
        failure = error if isinstance(error, ScanStartError) else ScanStartError(f"Start scanning failed: {error}")
        LOGGER.error("%s", failure)
        if self._on_error is not None:
            self._on_error(failure)

    def _on_window_elapsed(self) -> None:
        LOGGER.debug("Scan complete after %ss", self._config.discover_interval_s)
        self._settle_after_scan()
        self._driver.stop_scan()

    def _settle_after_scan(self) -> None:
        if self._config.force_discovering:
            self._state = ScanState.RESTART_PENDING
            self._arm(self._config.restart_delay_s, self._on_restart_due)
        else:
            self._state = ScanState.IDLE

    def _on_restart_due(self) -> None:
        LOGGER.debug("Restarting scan.")
        self._begin_scan()

    def _arm(self, delay_s: float, callback: Callable[[], None]) -> None:
        self._cancel_timer()
        generation = self._generation

        def _fire() -> None:
            if generation != self._generation:
                return
            self._timer = None
            self._generation += 1
            callback()

        self._timer = self._call_later(delay_s, _fire)

    def _cancel_timer(self) -> None:
        self._generation += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
