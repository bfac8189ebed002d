# test_api_server.py
# Unit tests for the HTTP API

import unittest
from concurrent.futures import Future
from unittest.mock import Mock

from resibox.api.server import APIServer
from resibox.core.exceptions import StoreWriteError
from resibox.core.records import ResiStatus
from resibox.core.state import TrackerState
from resibox.database.local_store import LocalTreeStore
from resibox.services.notifier import NotificationCenter
from resibox.services.submission import SubmissionService


class InlineExecutor:
    def submit(self, fn, *args, **kwargs):
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future

    def shutdown(self, wait=True):
        pass


class TestAPIServer(unittest.TestCase):
    def setUp(self):
        self.store = LocalTreeStore("sqlite:///:memory:")
        self.state = TrackerState()
        self.notifier = NotificationCenter()
        self.submission = SubmissionService(self.store, self.state, executor=InlineExecutor())
        self.hardware = Mock()
        self.hardware.get_status.return_value = {"connected": True, "energized": False}
        self.server = APIServer(self.state, self.submission, self.notifier, self.hardware)
        self.app = self.server.create_app()
        self.client = self.app.test_client()

    def tearDown(self):
        self.server.stop()
        self.store.close()

    def test_submit_resi(self):
        response = self.client.post("/api/resi", json={"number": "RESI123"})
        self.assertEqual(response.status_code, 201)
        body = response.get_json()
        self.assertEqual(body["number"], "RESI123")
        self.assertFalse(body["scanned"])
        self.assertEqual(self.store.get(f"resi/{body['key']}/number"), "RESI123")

    def test_submit_empty(self):
        response = self.client.post("/api/resi", json={"number": ""})
        self.assertEqual(response.status_code, 400)
        self.assertIsNone(self.store.get("resi"))

    def test_submit_requires_json(self):
        response = self.client.post("/api/resi", data="RESI123")
        self.assertEqual(response.status_code, 400)

    def test_submit_non_string(self):
        response = self.client.post("/api/resi", json={"number": 123})
        self.assertEqual(response.status_code, 400)

    def test_submit_store_failure(self):
        store = Mock()
        store.push.side_effect = StoreWriteError("denied")
        self.server.submission = SubmissionService(store, self.state, executor=InlineExecutor())
        response = self.client.post("/api/resi", json={"number": "RESI123"})
        self.assertEqual(response.status_code, 502)

    def test_submit_pending(self):
        submission = Mock()
        submission.submit.return_value = Future()
        self.server.submission = submission
        self.server.submit_timeout_s = 0.01
        response = self.client.post("/api/resi", json={"number": "RESI123"})
        self.assertEqual(response.status_code, 202)

    def test_list_and_photos(self):
        self.state.replace_records([
            ResiStatus("A", True, ("https://img/a.jpg",), "k1"),
            ResiStatus("B", False, (), "k2"),
        ])
        response = self.client.get("/api/resi")
        self.assertEqual([r["resi"] for r in response.get_json()], ["A", "B"])

        response = self.client.get("/api/resi/k1/photos")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.headers["Cache-Control"], "no-store")
        self.assertEqual(response.get_json()["photo_urls"], ["https://img/a.jpg"])

        self.assertEqual(self.client.get("/api/resi/missing/photos").status_code, 404)

    def test_status_and_clear(self):
        self.state.update_status(status_message="📦 found", is_resi_found=True)
        body = self.client.get("/api/status").get_json()
        self.assertEqual(body["status_message"], "📦 found")
        self.assertTrue(body["is_resi_found"])

        self.assertEqual(self.client.post("/api/status/clear").status_code, 200)
        self.assertFalse(self.client.get("/api/status").get_json()["is_resi_found"])

    def test_notifications(self):
        self.notifier.show_notification("Resi Terverifikasi", "Nomor resi A berhasil dipindai.")
        body = self.client.get("/api/notifications").get_json()
        self.assertEqual(body[0]["title"], "Resi Terverifikasi")

        self.assertEqual(self.client.delete(f"/api/notifications/{body[0]['notification_id']}").status_code, 200)
        self.assertEqual(self.client.delete("/api/notifications/99").status_code, 404)

    def test_errors_filter(self):
        self.state.report_error("fetch", "down", "resi")
        self.state.report_error("write", "denied", "resi/k1/scanned")
        body = self.client.get("/api/errors?kind=write").get_json()
        self.assertEqual(len(body), 1)
        self.assertEqual(body[0]["path"], "resi/k1/scanned")
        self.assertEqual(self.client.get("/api/errors?kind=bogus").status_code, 400)

    def test_lock(self):
        self.state.set_lock_phase("open")
        body = self.client.get("/api/lock").get_json()
        self.assertEqual(body["phase"], "open")
        self.assertTrue(body["driver"]["connected"])

    def test_json_error_handlers(self):
        response = self.client.get("/api/unknown")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.get_json()["error"], "Resource not found")
        self.assertEqual(self.client.put("/api/resi").status_code, 405)

    def test_state_changes_are_pushed(self):
        self.server.socketio = Mock()
        self.state.update_status(status_message="hello")
        event, payload = self.server.socketio.emit.call_args.args
        self.assertEqual(event, "tracker_update")
        self.assertEqual(payload["status_message"], "hello")

        self.notifier.show_notification("T", "M")
        event, payload = self.server.socketio.emit.call_args.args
        self.assertEqual(event, "notification")
        self.assertEqual(payload["message"], "M")

    def test_recreated_app_pushes_each_notification_once(self):
        self.server.create_app()
        self.server.socketio = Mock()
        self.notifier.show_notification("T", "M")
        events = [c.args[0] for c in self.server.socketio.emit.call_args_list]
        self.assertEqual(events.count("notification"), 1)

    def test_stop_detaches_push_channels(self):
        self.server.socketio = Mock()
        self.server.stop()
        self.state.update_status(status_message="after stop")
        self.notifier.show_notification("T", "M")
        self.server.socketio.emit.assert_not_called()


if __name__ == '__main__':
    unittest.main()
