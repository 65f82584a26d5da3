"""Service layer used by CLI and API frontends."""

from __future__ import annotations

from collections.abc import Callable

from hygroscan.core.dispatcher import Dispatcher, Subscriber
from hygroscan.core.model import AdvertisementRecord, ScanState, ScannerConfig
from hygroscan.core.supervisor import CallLater, DiscoverySupervisor
from hygroscan.transports.base import RadioDriver


class SensorScanner:
    """Listener registered on a radio driver.

    Lifecycle signals go to the supervisor, advertisements go to the
    dispatcher. Supervisor failures are reported on the dispatcher's error
    channel.
    """

    def __init__(
        self,
        driver: RadioDriver,
        config: ScannerConfig,
        *,
        call_later: CallLater | None = None,
    ) -> None:
        self.config = config
        self.dispatcher = Dispatcher(config)
        self.supervisor = DiscoverySupervisor(
            driver,
            config,
            call_later=call_later,
            on_error=self.dispatcher.report_error,
        )
        driver.subscribe(self)

    @property
    def state(self) -> ScanState:
        return self.supervisor.state

    def subscribe(self, event_name: str, callback: Subscriber) -> Callable[[], None]:
        return self.dispatcher.subscribe(event_name, callback)

    def stop(self) -> None:
        self.supervisor.stop()

    def on_state_change(self, state: str) -> None:
        self.supervisor.handle_state_change(state)

    def on_scan_start(self) -> None:
        self.supervisor.handle_scan_start()

    def on_scan_stop(self) -> None:
        self.supervisor.handle_scan_stop()

    def on_warning(self, message: str) -> None:
        self.supervisor.handle_warning(message)

    def on_scan_failed(self, error: Exception) -> None:
        self.supervisor.handle_scan_failed(error)

    def on_advertisement(self, record: AdvertisementRecord) -> None:
        self.dispatcher.handle_advertisement(record)
