# test_hardware_manager.py
# Unit tests for the hardware manager and its lock bridge

import time
import unittest
from unittest.mock import Mock

from resibox.core.config import Settings
from resibox.core.exceptions import StoreReadError
from resibox.database.local_store import LocalTreeStore
from resibox.drivers.mock_lock_driver import MockLockDriver
from resibox.hardware.solenoid_controller import SolenoidController
from resibox.services.hardware_manager import HardwareManager


def make_settings(**overrides):
    raw = {
        "STORE_BACKEND": "local",
        "LOCAL_DB_URL": "sqlite:///:memory:",
        "RECONCILE_MODE": "unlock",
        "SIMULATION_MODE": True,
        "LOCK_BRIDGE_ENABLED": False,
        "LOCK_POLL_INTERVAL_S": 0.01,
        "API_HOST": "127.0.0.1",
        "API_PORT": 5000,
    }
    raw.update(overrides)
    return Settings.from_dict(raw)


class TestHardwareManager(unittest.TestCase):
    def setUp(self):
        self.store = LocalTreeStore("sqlite:///:memory:")
        self.manager = HardwareManager(make_settings(), self.store)

    def tearDown(self):
        self.manager.shutdown()
        self.store.close()

    def history(self):
        return [c["command"] for c in self.manager.lock_driver.get_command_history()]

    def test_driver_selection(self):
        self.assertIsInstance(self.manager.lock_driver, MockLockDriver)
        real = HardwareManager(make_settings(SIMULATION_MODE=False), self.store)
        self.assertIsInstance(real.lock_driver, SolenoidController)

    def test_start_in_simulation(self):
        status = self.manager.start_all_drivers()
        self.assertEqual(status, {"lock": "simulated", "bridge": "disabled"})
        self.assertTrue(self.manager.get_status()["connected"])

    def test_failed_connection_is_degraded(self):
        driver_class = Mock()
        driver_class.return_value.connect.return_value = False
        manager = HardwareManager(make_settings(), self.store, lock_driver_class=driver_class)
        self.assertEqual(manager.start_all_drivers()["lock"], "failed")

    def test_sync_follows_flag_changes(self):
        self.manager.start_all_drivers()

        self.assertFalse(self.manager.sync_lock_once())
        self.assertEqual(self.history(), ["LOCK"])

        self.store.set("solenoid-lock/unlock", True)
        self.assertTrue(self.manager.sync_lock_once())
        self.assertTrue(self.manager.sync_lock_once())
        self.assertEqual(self.history(), ["LOCK", "UNLOCK"])

        self.store.set("solenoid-lock/unlock", False)
        self.manager.sync_lock_once()
        self.assertEqual(self.history(), ["LOCK", "UNLOCK", "LOCK"])

    def test_read_failure_leaves_solenoid(self):
        store = Mock()
        store.get.side_effect = StoreReadError("offline")
        manager = HardwareManager(make_settings(), store)
        manager.start_all_drivers()
        self.assertIsNone(manager.sync_lock_once())
        self.assertEqual(manager.lock_driver.get_command_history(), [])

    def test_undelivered_command_retried(self):
        self.store.set("solenoid-lock/unlock", True)
        # Not connected yet, so the first command is dropped
        self.manager.sync_lock_once()
        self.assertIsNone(self.manager.get_status()["last_flag"])

        self.manager.lock_driver.connect("MOCK_PORT", 9600)
        self.manager.sync_lock_once()
        self.assertEqual(self.history(), ["UNLOCK"])

    def test_bridge_thread(self):
        manager = HardwareManager(make_settings(LOCK_BRIDGE_ENABLED=True), self.store)
        self.store.set("solenoid-lock/unlock", True)
        status = manager.start_all_drivers()
        self.assertEqual(status["bridge"], "running")

        deadline = time.monotonic() + 3.0
        while not manager.lock_driver.get_status()["energized"] and time.monotonic() < deadline:
            time.sleep(0.01)
        self.assertTrue(manager.lock_driver.get_status()["energized"])

        manager.shutdown()
        self.assertFalse(manager.get_status()["bridge_running"])
        self.assertFalse(manager.lock_driver.get_status()["energized"])


if __name__ == '__main__':
    unittest.main()
