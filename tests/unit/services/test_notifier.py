# test_notifier.py
# Unit tests for the notification center

import unittest

from resibox.services.notifier import (
    RESI_CHANNEL_ID,
    RESI_CHANNEL_NAME,
    RESI_NOTIFICATION_ID,
    NotificationCenter,
)


class TestNotificationCenter(unittest.TestCase):
    def setUp(self):
        self.center = NotificationCenter()

    def test_show_notification_creates_channel(self):
        self.assertIsNone(self.center.get_channel(RESI_CHANNEL_ID))
        posted = self.center.show_notification("Resi Terverifikasi", "Nomor resi A berhasil dipindai.")
        channel = self.center.get_channel(RESI_CHANNEL_ID)
        self.assertEqual(channel.name, RESI_CHANNEL_NAME)
        self.assertEqual(posted.notification_id, RESI_NOTIFICATION_ID)
        self.assertTrue(posted.auto_cancel)

    def test_same_id_replaces_previous(self):
        self.center.show_notification("T", "first")
        self.center.show_notification("T", "second")
        active = self.center.get_active()
        self.assertEqual(len(active), 1)
        self.assertEqual(active[0].message, "second")

    def test_create_channel_is_idempotent(self):
        first = self.center.create_channel("c", "Channel", "high")
        second = self.center.create_channel("c", "Renamed", "low")
        self.assertIs(first, second)
        with self.assertRaises(ValueError):
            self.center.create_channel("d", "Other", "urgent")

    def test_notify_unknown_channel(self):
        with self.assertRaises(KeyError):
            self.center.notify(2, "missing", "T", "M")

    def test_sinks_receive_posts(self):
        received = []

        def broken(notification):
            raise RuntimeError("sink down")

        self.center.add_sink(broken)
        self.center.add_sink(received.append)
        self.center.show_notification("T", "M")
        self.assertEqual([n.message for n in received], ["M"])

        with self.assertRaises(TypeError):
            self.center.add_sink("not callable")

    def test_removed_sink_stops_receiving(self):
        received = []
        remove = self.center.add_sink(received.append)
        self.center.show_notification("T", "first")
        remove()
        remove()
        self.center.show_notification("T", "second")
        self.assertEqual([n.message for n in received], ["first"])

    def test_dismiss(self):
        self.center.show_notification("T", "M")
        self.assertTrue(self.center.dismiss(RESI_NOTIFICATION_ID))
        self.assertFalse(self.center.dismiss(RESI_NOTIFICATION_ID))
        self.assertEqual(self.center.get_active(), [])


if __name__ == '__main__':
    unittest.main()
