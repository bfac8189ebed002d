# test_state.py
# Unit tests for the tracker state container

import unittest
from dataclasses import FrozenInstanceError

from resibox.core.records import ResiStatus
from resibox.core.state import MAX_ERRORS, TrackerState


class TestTrackerState(unittest.TestCase):
    def setUp(self):
        self.state = TrackerState()

    def test_initial_snapshot(self):
        snapshot = self.state.get_snapshot()
        self.assertEqual(snapshot.records, ())
        self.assertEqual(snapshot.status_message, "")
        self.assertFalse(snapshot.is_resi_found)
        self.assertEqual(snapshot.lock_phase, "locked")
        self.assertIsNone(snapshot.last_cycle_at)

    def test_replace_records_is_full_replace(self):
        self.state.replace_records([ResiStatus("A", False), ResiStatus("B", True)])
        self.state.replace_records([ResiStatus("C", False)])
        snapshot = self.state.get_snapshot()
        self.assertEqual([r.resi for r in snapshot.records], ["C"])
        self.assertIsNotNone(snapshot.last_cycle_at)

    def test_replace_records_type_check(self):
        with self.assertRaises(TypeError):
            self.state.replace_records([{"resi": "A"}])

    def test_snapshot_is_immutable(self):
        snapshot = self.state.get_snapshot()
        with self.assertRaises(FrozenInstanceError):
            snapshot.status_message = "changed"

    def test_subscribers_receive_snapshots(self):
        received = []
        unsubscribe = self.state.subscribe(received.append)

        self.state.update_status(status_message="hello", is_resi_found=True)
        self.assertEqual(len(received), 1)
        self.assertEqual(received[0].status_message, "hello")
        self.assertTrue(received[0].is_resi_found)

        unsubscribe()
        self.state.update_status(status_message="again")
        self.assertEqual(len(received), 1)

    def test_failing_subscriber_does_not_reach_writer(self):
        def broken(snapshot):
            raise RuntimeError("boom")

        seen = []
        self.state.subscribe(broken)
        self.state.subscribe(seen.append)
        self.state.update_status(status_message="ok")
        self.assertEqual(len(seen), 1)

    def test_partial_status_update(self):
        self.state.update_status(status_message="msg", is_resi_found=True)
        self.state.update_status(is_resi_found=False)
        snapshot = self.state.get_snapshot()
        self.assertEqual(snapshot.status_message, "msg")
        self.assertFalse(snapshot.is_resi_found)

    def test_clear_feedback(self):
        self.state.update_status(status_message="msg", is_resi_found=True)
        self.state.clear_feedback()
        snapshot = self.state.get_snapshot()
        self.assertEqual(snapshot.status_message, "")
        self.assertFalse(snapshot.is_resi_found)

    def test_lock_phase_validation(self):
        self.state.set_lock_phase("open")
        self.assertEqual(self.state.get_snapshot().lock_phase, "open")
        with self.assertRaises(ValueError):
            self.state.set_lock_phase("ajar")

    def test_error_channel(self):
        self.state.report_error("fetch", "down", "resi")
        self.state.report_error("write", "denied", "resi/k/scanned")
        self.assertEqual(len(self.state.get_errors()), 2)
        fetch_errors = self.state.get_errors("fetch")
        self.assertEqual(len(fetch_errors), 1)
        self.assertEqual(fetch_errors[0].path, "resi")
        with self.assertRaises(ValueError):
            self.state.report_error("network", "nope")

    def test_error_channel_is_bounded(self):
        for i in range(MAX_ERRORS + 10):
            self.state.report_error("fetch", f"error {i}")
        errors = self.state.get_errors()
        self.assertEqual(len(errors), MAX_ERRORS)
        self.assertEqual(errors[-1].message, f"error {MAX_ERRORS + 9}")

    def test_snapshot_to_dict(self):
        self.state.replace_records([ResiStatus("A", True, ("u1",), "k1")])
        data = self.state.get_snapshot().to_dict()
        self.assertEqual(data["records"], [{"resi": "A", "is_scanned": True, "photo_urls": ["u1"], "key": "k1"}])


if __name__ == '__main__':
    unittest.main()
