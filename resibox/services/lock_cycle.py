"""
RESIBOX_PROJECT
Copyright (c) 2026. All rights reserved.
File: resibox/services/lock_cycle.py
Description: Timed unlock state machine owning the solenoid-lock/unlock flag.
"""

import logging
import threading
from typing import Callable, Optional

from resibox.core.exceptions import StoreWriteError
from resibox.core.records import UNLOCK_PATH
from resibox.core.state import TrackerState
from resibox.interfaces.store_interface import IRemoteStore

LOCKED = "locked"
UNLOCKING = "unlocking"
OPEN = "open"
RELOCKING = "relocking"

DEFAULT_UNLOCK_WINDOW_S = 20.0


class UnlockCycle:
    """Drives locked -> unlocking -> open -> relocking -> locked.

    The open window is held by a timer, not by the caller, so the
    reconciliation loop keeps detecting scans while the box is open. Only one
    cycle is in flight at a time:

    - a request while unlocking or open restarts the window;
    - a request while relocking is queued and reopens once locked.

    Store write failures are logged and reported; the cycle always proceeds
    to the relock.
    """

    def __init__(
        self,
        store: IRemoteStore,
        state: Optional[TrackerState] = None,
        window_s: float = DEFAULT_UNLOCK_WINDOW_S,
        on_relocked: Optional[Callable[[], None]] = None,
        timer_factory: Callable[..., threading.Timer] = threading.Timer,
    ) -> None:
        if window_s <= 0:
            raise ValueError("window_s must be positive")

        self.store = store
        self.state = state
        self.window_s = window_s
        self.on_relocked = on_relocked
        self._timer_factory = timer_factory
        self._logger = logging.getLogger(__name__)

        self._lock = threading.Lock()
        self._phase = LOCKED
        self._timer: Optional[threading.Timer] = None
        self._generation = 0
        self._pending = False
        self.cycles_started = 0

    @property
    def phase(self) -> str:
        with self._lock:
            return self._phase

    def request_unlock(self) -> bool:
        """Open the lock for one window.

        Returns:
            True if a new cycle started, False if the request was folded into
            the cycle already in flight.
        """
        with self._lock:
            if self._phase == OPEN:
                self._arm_timer_locked()
                self._logger.info(f"Unlock window restarted ({self.window_s}s)")
                return False
            if self._phase == UNLOCKING:
                # The window is armed as soon as the unlock write returns
                return False
            if self._phase == RELOCKING:
                self._pending = True
                return False
            self._phase = UNLOCKING
            self._generation += 1
            generation = self._generation
            self.cycles_started += 1

        self._publish_phase(UNLOCKING)
        self._write_flag(True)

        with self._lock:
            if self._phase != UNLOCKING or self._generation != generation:
                # shutdown() took over while the unlock write was in flight
                self._logger.info("Unlock cycle aborted before the window opened")
                return True
            self._phase = OPEN
            self._arm_timer_locked()
        self._publish_phase(OPEN)
        self._logger.info(f"Lock open for {self.window_s}s")
        return True

    def _arm_timer_locked(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
        self._generation += 1
        generation = self._generation
        self._timer = self._timer_factory(self.window_s, self._on_window_elapsed, args=(generation,))
        self._timer.daemon = True
        self._timer.start()

    def _on_window_elapsed(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or self._phase != OPEN:
                return
            self._timer = None
            self._phase = RELOCKING
        self._relock()

    def _relock(self) -> None:
        """Finish a relock; the caller has already moved the phase to RELOCKING."""
        self._publish_phase(RELOCKING)
        self._write_flag(False)

        with self._lock:
            self._phase = LOCKED
            reopen = self._pending
            self._pending = False
        self._publish_phase(LOCKED)
        self._logger.info("Lock closed")

        if self.on_relocked:
            try:
                self.on_relocked()
            except Exception as e:
                self._logger.error(f"on_relocked callback raised: {e}")
        if reopen:
            self.request_unlock()

    def _write_flag(self, value: bool) -> None:
        try:
            self.store.set(UNLOCK_PATH, value)
        except StoreWriteError as e:
            self._logger.error(f"Failed to set {UNLOCK_PATH}={value}: {e}")
            if self.state is not None:
                self.state.report_error("write", str(e), UNLOCK_PATH)

    def _publish_phase(self, phase: str) -> None:
        if self.state is not None:
            self.state.set_lock_phase(phase)

    def shutdown(self) -> None:
        """Cancel a pending window and relock immediately if open."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._generation += 1
            self._pending = False
            must_relock = self._phase in (UNLOCKING, OPEN)
            if must_relock:
                self._phase = RELOCKING
        if must_relock:
            self._relock()
