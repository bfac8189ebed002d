"""
RESIBOX_PROJECT
Copyright (c) 2026. All rights reserved.
File: resibox/services/submission.py
Description: Validation and persistence of newly entered tracking numbers.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional

from resibox.core.exceptions import StoreError, ValidationError
from resibox.core.records import RESI_PATH
from resibox.core.state import TrackerState
from resibox.interfaces.store_interface import IRemoteStore

MSG_SAVED = "✅ Nomor resi berhasil disimpan."
MSG_EMPTY = "⚠️ Nomor resi kosong."
MSG_SAVE_FAILED = "❌ Gagal menyimpan resi: {reason}"

logger = logging.getLogger(__name__)


def create_record(store: IRemoteStore, number: str) -> str:
    """Write a new, unscanned tracking record.

    The number is stored exactly as given: no trimming, no case folding and
    no duplicate check.

    Args:
        store: Remote store to write to.
        number: Tracking number.

    Returns:
        The store-generated key of the new record.

    Raises:
        ValidationError: If number is empty or not a string.
        StoreWriteError: If the store rejects the write.
    """
    if not isinstance(number, str):
        raise ValidationError("Tracking number must be a string", details={"value": number})
    if not number:
        raise ValidationError("Tracking number is empty")

    key = store.push(RESI_PATH, {"number": number, "scanned": False})
    logger.info(f"Stored resi {number} as {RESI_PATH}/{key}")
    return key


class SubmissionService:
    """Runs submissions on a worker thread and reports back through callbacks.

    Status messages and typed errors are also published to the TrackerState so
    any subscribed surface sees the outcome.
    """

    def __init__(
        self,
        store: IRemoteStore,
        state: TrackerState,
        executor: Optional[ThreadPoolExecutor] = None,
    ) -> None:
        self.store = store
        self.state = state
        self._owns_executor = executor is None
        self.executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="Submit_Worker")

    def submit(
        self,
        number: str,
        on_success: Optional[Callable[[str], None]] = None,
        on_error: Optional[Callable[[Exception], None]] = None,
        on_empty: Optional[Callable[[], None]] = None,
    ) -> Optional[Future]:
        """Validate synchronously, then write asynchronously.

        Returns:
            The Future of the write, or None when the input was empty.
        """
        if not number:
            self.state.update_status(status_message=MSG_EMPTY)
            self.state.report_error("validation", "Tracking number is empty")
            if on_empty:
                on_empty()
            return None

        future = self.executor.submit(create_record, self.store, number)
        future.add_done_callback(
            lambda f: self._on_write_complete(f, number, on_success, on_error)
        )
        return future

    def _on_write_complete(
        self,
        future: Future,
        number: str,
        on_success: Optional[Callable[[str], None]],
        on_error: Optional[Callable[[Exception], None]],
    ) -> None:
        exc = future.exception()
        if exc is None:
            self.state.update_status(status_message=MSG_SAVED)
            if on_success:
                on_success(future.result())
            return

        logger.error(f"Failed to store resi {number}: {exc}")
        kind = "validation" if isinstance(exc, ValidationError) else "write"
        path = RESI_PATH if isinstance(exc, StoreError) else None
        self.state.report_error(kind, str(exc), path)
        self.state.update_status(status_message=MSG_SAVE_FAILED.format(reason=exc))
        if on_error:
            on_error(exc)

    def shutdown(self) -> None:
        if self._owns_executor:
            self.executor.shutdown(wait=True)
