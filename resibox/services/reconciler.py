"""
RESIBOX_PROJECT
Copyright (c) 2026. All rights reserved.
File: resibox/services/reconciler.py
Description: Polling loop that turns remote scan state into local side effects.

Two policies share one loop:

    NotifyReconciler  -- watches resi/*/scanned set by the scanner and posts
                         one notification per record, guarded by
                         resi/*/alreadyNotified.
    UnlockReconciler  -- matches unscanned records against scanned_codes,
                         flips resi/*/scanned itself, notifies, and opens the
                         solenoid lock through an UnlockCycle.
"""

import logging
import threading
from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, List, Optional

from resibox.core.exceptions import StoreError, StoreReadError, StoreWriteError
from resibox.core.records import (
    RESI_PATH,
    SCANNED_CODES_PATH,
    ResiStatus,
    TrackingRecord,
    parse_records,
    parse_scanned_codes,
    record_path,
)
from resibox.core.state import TrackerState
from resibox.interfaces.store_interface import IRemoteStore
from resibox.services.lock_cycle import UnlockCycle
from resibox.services.notifier import NotificationCenter

NOTIFY_TITLE = "Resi Terverifikasi"
NOTIFY_MESSAGE = "Nomor resi {number} berhasil dipindai."
STATUS_SCANNED = "📦 Nomor resi {number} berhasil dipindai."
STATUS_FETCH_FAILED = "❌ Gagal memuat data: {reason}"


@dataclass
class CycleReport:
    """Outcome of one reconciliation cycle.

    Attributes:
        ok: False when the fetch failed and no record was reconciled.
        records_seen: Records parsed from the snapshot.
        notified: Tracking numbers a notification was posted for.
        writes: Store paths written successfully.
        unlocks_requested: Unlock requests handed to the UnlockCycle.
        failures: Messages of the failures recorded this cycle.
    """
    ok: bool = True
    records_seen: int = 0
    notified: List[str] = field(default_factory=list)
    writes: List[str] = field(default_factory=list)
    unlocks_requested: int = 0
    failures: List[str] = field(default_factory=list)


class ReconciliationLoop(ABC):
    """Base polling loop: wait, fetch the full snapshot, reconcile, publish.

    Subclasses provide _prepare() for extra per-cycle reads and
    _reconcile_record() for the per-record policy.
    """

    def __init__(
        self,
        store: IRemoteStore,
        state: TrackerState,
        notifier: NotificationCenter,
        interval_s: float,
    ) -> None:
        if interval_s <= 0:
            raise ValueError("interval_s must be positive")

        self.store = store
        self.state = state
        self.notifier = notifier
        self.interval_s = interval_s
        self.cycles_run = 0
        self._logger = logging.getLogger(__name__)
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    # --- Lifecycle ---

    def start(self) -> None:
        """Start the loop on a daemon thread; a running loop is left alone."""
        if self._thread and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run,
            name=type(self).__name__,
            daemon=True,
        )
        self._thread.start()

    def stop(self, timeout: float = 3.0) -> None:
        """Signal the loop to exit and wait for the current cycle to finish."""
        self._stop_event.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                self._logger.warning("Reconciliation thread did not terminate; continuing shutdown")
        self._thread = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self) -> None:
        self._logger.info(f"{type(self).__name__} started (every {self.interval_s}s)")
        while not self._stop_event.wait(self.interval_s):
            try:
                self.run_cycle()
            except Exception as e:
                # The next wake-up is unconditional
                self._logger.exception(f"Reconciliation cycle crashed: {e}")
        self._logger.info(f"{type(self).__name__} stopped")

    # --- One cycle ---

    def run_cycle(self) -> CycleReport:
        """Run a single fetch/reconcile/publish iteration synchronously."""
        report = CycleReport()
        self.cycles_run += 1
        try:
            records = parse_records(self.store.get(RESI_PATH))
            context = self._prepare()
        except StoreReadError as e:
            self._on_fetch_failed(e, report)
            return report

        report.records_seen = len(records)
        statuses: List[ResiStatus] = []
        for record in records:
            self._logger.debug(
                f"number={record.number}, scanned={record.scanned}, "
                f"alreadyNotified={record.already_notified}"
            )
            statuses.append(self._reconcile_record(record, context, report))

        self.state.replace_records(statuses)
        return report

    def _prepare(self) -> Any:
        return None

    @abstractmethod
    def _reconcile_record(self, record: TrackingRecord, context: Any,
                          report: CycleReport) -> ResiStatus:
        """Apply the mode policy to one record and return its display entry."""
        pass

    # --- Shared helpers ---

    def _on_fetch_failed(self, error: StoreError, report: CycleReport) -> None:
        report.ok = False
        report.failures.append(str(error))
        self._logger.error(f"Failed to load data: {error}")
        self.state.report_error("fetch", str(error), RESI_PATH)
        self.state.update_status(status_message=STATUS_FETCH_FAILED.format(reason=error))

    def _write(self, path: str, value: Any, report: CycleReport) -> bool:
        try:
            self.store.set(path, value)
        except StoreWriteError as e:
            report.failures.append(str(e))
            self._logger.error(f"Failed to write {path}: {e}")
            self.state.report_error("write", str(e), path)
            return False
        report.writes.append(path)
        return True

    def _announce(self, number: str, report: CycleReport) -> None:
        self.notifier.show_notification(NOTIFY_TITLE, NOTIFY_MESSAGE.format(number=number))
        self._logger.info(f"Notification shown for resi: {number}")
        report.notified.append(number)
        self.state.update_status(
            status_message=STATUS_SCANNED.format(number=number),
            is_resi_found=True,
        )


class NotifyReconciler(ReconciliationLoop):
    """Posts one notification per record the scanner marked as scanned."""

    def _reconcile_record(self, record: TrackingRecord, context: Any,
                          report: CycleReport) -> ResiStatus:
        if record.scanned and not record.already_notified:
            self._announce(record.number, report)
            # A failed guard write is retried implicitly by the next cycle
            self._write(record_path(record.key, "alreadyNotified"), True, report)
        return ResiStatus(record.number, record.scanned, record.photo_urls, record.key)


class UnlockReconciler(ReconciliationLoop):
    """Matches scanned codes to unscanned records and opens the lock.

    Scanned codes are never marked consumed. Within one cycle each code entry
    matches at most one record (the first in store order); a second record
    sharing the number is matched on a later cycle.
    """

    def __init__(
        self,
        store: IRemoteStore,
        state: TrackerState,
        notifier: NotificationCenter,
        interval_s: float,
        unlock_cycle: UnlockCycle,
    ) -> None:
        super().__init__(store, state, notifier, interval_s)
        self.unlock_cycle = unlock_cycle

    def stop(self, timeout: float = 3.0) -> None:
        super().stop(timeout)
        self.unlock_cycle.shutdown()

    def _prepare(self) -> Counter:
        return Counter(parse_scanned_codes(self.store.get(SCANNED_CODES_PATH)))

    def _reconcile_record(self, record: TrackingRecord, context: Counter,
                          report: CycleReport) -> ResiStatus:
        if record.scanned or context[record.number] <= 0:
            return ResiStatus(record.number, record.scanned, record.photo_urls, record.key)

        context[record.number] -= 1
        if not self._write(record_path(record.key, "scanned"), True, report):
            return ResiStatus(record.number, False, record.photo_urls, record.key)

        self._announce(record.number, report)
        self.unlock_cycle.request_unlock()
        report.unlocks_requested += 1
        return ResiStatus(record.number, True, record.photo_urls, record.key)


def build_reconciler(
    mode: str,
    store: IRemoteStore,
    state: TrackerState,
    notifier: NotificationCenter,
    interval_s: float,
    unlock_window_s: float = 20.0,
) -> ReconciliationLoop:
    """Create the reconciliation loop for a RECONCILE_MODE.

    In 'unlock' mode the UnlockCycle clears the found flag when it relocks.

    Raises:
        ValueError: If mode is not 'notify' or 'unlock'.
    """
    if mode == "notify":
        return NotifyReconciler(store, state, notifier, interval_s)
    if mode == "unlock":
        cycle = UnlockCycle(
            store,
            state,
            window_s=unlock_window_s,
            on_relocked=lambda: state.update_status(is_resi_found=False),
        )
        return UnlockReconciler(store, state, notifier, interval_s, cycle)
    raise ValueError(f"Unknown reconcile mode '{mode}'")
