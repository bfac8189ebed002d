"""
RESIBOX_PROJECT
Copyright (c) 2026. All rights reserved.
File: resibox/services/hardware_manager.py
Description: Coordinates the solenoid lock driver and mirrors the store's unlock flag onto it.
"""
import logging
import threading
from typing import Any, Dict, Optional, Type

from resibox.core.config import Settings
from resibox.core.exceptions import StoreReadError
from resibox.core.records import UNLOCK_PATH
from resibox.drivers.mock_lock_driver import MockLockDriver
from resibox.hardware.solenoid_controller import SolenoidController
from resibox.interfaces.lock_interface import ILockDriver
from resibox.interfaces.store_interface import IRemoteStore


class HardwareManager:
    """Coordinates hardware interactions (solenoid lock).

    When the lock bridge is enabled a background thread polls
    solenoid-lock/unlock and energizes or releases the solenoid whenever the
    flag changes. A failed read leaves the solenoid as it is.
    """

    def __init__(
        self,
        settings: Settings,
        store: IRemoteStore,
        lock_driver_class: Optional[Type[ILockDriver]] = None,
    ) -> None:
        self.settings = settings
        self.store = store
        self._logger = logging.getLogger(__name__)

        if lock_driver_class is not None:
            driver_class = lock_driver_class
        elif settings.SIMULATION_MODE:
            driver_class = MockLockDriver
        else:
            driver_class = SolenoidController
        self.lock_driver: ILockDriver = driver_class()

        self.bridge_thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._last_flag: Optional[bool] = None
        self._lock = threading.Lock()

    def start_all_drivers(self) -> Dict[str, str]:
        """Connect the lock driver and start the bridge; never raises on hardware faults."""
        if self.bridge_thread and self.bridge_thread.is_alive():
            self.shutdown()

        status = {"lock": "disconnected", "bridge": "disabled"}
        port = "MOCK_PORT" if self.settings.SIMULATION_MODE else self.settings.LOCK_PORT

        try:
            if self.lock_driver.connect(port, self.settings.LOCK_BAUD_RATE):
                status["lock"] = "simulated" if self.settings.SIMULATION_MODE else "connected"
                self._logger.info(f"Lock driver connected on {port}")
            else:
                status["lock"] = "failed"
                self._logger.warning("Lock driver connection failed. Running in degraded mode.")
        except (ValueError, OSError) as e:
            status["lock"] = "error"
            self._logger.error(f"Lock driver connection error: {e}")

        if self.settings.LOCK_BRIDGE_ENABLED:
            self._stop_event.clear()
            self.bridge_thread = threading.Thread(
                target=self._lock_bridge_loop,
                name="LockBridge",
                daemon=True
            )
            self.bridge_thread.start()
            status["bridge"] = "running"

        return status

    def sync_lock_once(self) -> Optional[bool]:
        """Read the unlock flag and drive the solenoid if it changed.

        Returns:
            The flag value read, or None if the read failed.
        """
        try:
            raw = self.store.get(UNLOCK_PATH)
        except StoreReadError as e:
            self._logger.error(f"Lock bridge read failed: {e}")
            return None

        flag = raw is True
        with self._lock:
            changed = flag != self._last_flag
            self._last_flag = flag
        if changed:
            if flag:
                ok = self.lock_driver.energize()
                self._logger.info(f"Solenoid energized (delivered={ok})")
            else:
                ok = self.lock_driver.release()
                self._logger.info(f"Solenoid released (delivered={ok})")
            if not ok:
                # Retry the command on the next poll
                with self._lock:
                    self._last_flag = None
        return flag

    def _lock_bridge_loop(self) -> None:
        """Background loop mirroring the store flag onto the lock driver."""
        self._logger.info("Lock bridge loop started")
        while not self._stop_event.wait(self.settings.LOCK_POLL_INTERVAL_S):
            try:
                self.sync_lock_once()
            except Exception as e:
                self._logger.error(f"Lock bridge loop error: {e}")
        self._logger.info("Lock bridge loop stopped")

    def get_status(self) -> Dict[str, Any]:
        """Return current lock driver status plus bridge state."""
        status = dict(self.lock_driver.get_status())
        status["bridge_running"] = bool(self.bridge_thread and self.bridge_thread.is_alive())
        with self._lock:
            status["last_flag"] = self._last_flag
        return status

    def shutdown(self) -> None:
        """Stop the bridge, release the solenoid and disconnect."""
        self._logger.info("Shutting down hardware manager...")
        self._stop_event.set()

        if self.bridge_thread and self.bridge_thread.is_alive():
            self.bridge_thread.join(timeout=3.0)
            if self.bridge_thread.is_alive():
                self._logger.warning("Lock bridge thread did not terminate; continuing shutdown")
        self.bridge_thread = None

        try:
            self.lock_driver.disconnect()
            self._logger.info("Lock driver disconnected")
        except OSError as e:
            self._logger.error(f"Error disconnecting lock driver: {e}")

        with self._lock:
            self._last_flag = None
        self._logger.info("Hardware shutdown complete")
