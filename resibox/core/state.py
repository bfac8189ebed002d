"""
RESIBOX_PROJECT
Copyright (c) 2026. All rights reserved.
File: resibox/core/state.py
Description: Central definitions for tracker state management.
"""

import logging
import threading
from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Deque, Dict, List, Optional, Tuple

from resibox.core.records import ResiStatus

MAX_ERRORS = 50

VALID_ERROR_KINDS = {"fetch", "write", "validation"}
VALID_LOCK_PHASES = {"locked", "unlocking", "open", "relocking"}


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class OperationError:
    """Typed failure record published on the error channel.

    Attributes:
        kind: 'fetch', 'write' or 'validation'.
        message: Human readable description.
        path: Store path involved, if any.
        at: UTC timestamp of the failure.
    """
    kind: str
    message: str
    path: Optional[str] = None
    at: str = field(default_factory=_utc_now)


@dataclass(frozen=True)
class TrackerSnapshot:
    """Immutable view of the tracker state handed to subscribers."""
    records: Tuple[ResiStatus, ...]
    status_message: str
    is_resi_found: bool
    lock_phase: str
    errors: Tuple[OperationError, ...]
    last_cycle_at: Optional[str]
    timestamp: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "records": [r.to_dict() for r in self.records],
            "status_message": self.status_message,
            "is_resi_found": self.is_resi_found,
            "lock_phase": self.lock_phase,
            "errors": [asdict(e) for e in self.errors],
            "last_cycle_at": self.last_cycle_at,
            "timestamp": self.timestamp,
        }


Subscriber = Callable[[TrackerSnapshot], None]


class TrackerState:
    """Thread-safe state container for tracker data.

    Single writer per field group (the reconciliation loop owns the record
    list, the unlock cycle owns the lock phase); readers only ever see
    immutable snapshots. Every mutation is followed by a publish to the
    registered subscribers, outside the lock.
    """

    def __init__(self) -> None:
        """Initialize the TrackerState with empty, locked defaults."""
        self._lock = threading.Lock()
        self._logger = logging.getLogger(__name__)
        self._subscribers: List[Subscriber] = []

        self._records: Tuple[ResiStatus, ...] = ()
        self._status_message = ""
        self._is_resi_found = False
        self._lock_phase = "locked"
        self._errors: Deque[OperationError] = deque(maxlen=MAX_ERRORS)
        self._last_cycle_at: Optional[str] = None

    # --- Subscription ---

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a snapshot listener.

        Args:
            callback: Called with a TrackerSnapshot after every mutation.

        Returns:
            A callable that removes the listener.
        """
        if not callable(callback):
            raise TypeError("callback must be callable")

        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def _publish(self) -> None:
        with self._lock:
            listeners = list(self._subscribers)
        if not listeners:
            return
        snapshot = self.get_snapshot()
        for listener in listeners:
            try:
                listener(snapshot)
            except Exception as e:
                self._logger.error(f"State subscriber raised: {e}")

    # --- Mutations ---

    def replace_records(self, records: List[ResiStatus]) -> None:
        """Replace the displayed record list with the one built this cycle."""
        for record in records:
            if not isinstance(record, ResiStatus):
                raise TypeError("All elements must be ResiStatus instances")

        with self._lock:
            self._records = tuple(records)
            self._last_cycle_at = _utc_now()
        self._publish()

    def update_status(
        self,
        status_message: Optional[str] = None,
        is_resi_found: Optional[bool] = None,
    ) -> None:
        """Updates the status line and/or the found flag.

        Only fields provided as arguments are updated.
        """
        with self._lock:
            if status_message is not None:
                self._status_message = status_message
            if is_resi_found is not None:
                self._is_resi_found = is_resi_found
        self._publish()

    def clear_feedback(self) -> None:
        """Reset status line and found flag, as when the user edits the input."""
        self.update_status(status_message="", is_resi_found=False)

    def set_lock_phase(self, phase: str) -> None:
        """Record the unlock cycle phase.

        Raises:
            ValueError: If phase is not a known lock phase.
        """
        if phase not in VALID_LOCK_PHASES:
            raise ValueError(f"Invalid lock phase '{phase}'. Must be one of: {sorted(VALID_LOCK_PHASES)}")

        with self._lock:
            self._lock_phase = phase
        self._publish()

    def report_error(self, kind: str, message: str, path: Optional[str] = None) -> OperationError:
        """Append a typed failure to the error channel.

        Raises:
            ValueError: If kind is not fetch, write or validation.
        """
        if kind not in VALID_ERROR_KINDS:
            raise ValueError(f"Invalid error kind '{kind}'")

        error = OperationError(kind=kind, message=message, path=path)
        with self._lock:
            self._errors.append(error)
        self._publish()
        return error

    # --- Reads ---

    def get_snapshot(self) -> TrackerSnapshot:
        """Returns an immutable copy of the current state."""
        with self._lock:
            return TrackerSnapshot(
                records=self._records,
                status_message=self._status_message,
                is_resi_found=self._is_resi_found,
                lock_phase=self._lock_phase,
                errors=tuple(self._errors),
                last_cycle_at=self._last_cycle_at,
                timestamp=_utc_now(),
            )

    def get_errors(self, kind: Optional[str] = None) -> List[OperationError]:
        """Returns recorded errors, oldest first, optionally filtered by kind."""
        with self._lock:
            errors = list(self._errors)
        if kind is None:
            return errors
        return [e for e in errors if e.kind == kind]
