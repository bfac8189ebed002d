# test_solenoid_controller.py
# Unit tests for the serial solenoid controller

import unittest
from unittest.mock import Mock, call, patch

import serial

from resibox.hardware.solenoid_controller import SolenoidController


class TestSolenoidController(unittest.TestCase):
    def setUp(self):
        self.controller = SolenoidController()

    @patch('resibox.hardware.solenoid_controller.time.sleep')
    @patch('resibox.hardware.solenoid_controller.serial.Serial')
    def test_connect_success(self, mock_serial, mock_sleep):
        mock_serial_instance = Mock()
        mock_serial_instance.is_open = True
        mock_serial.return_value = mock_serial_instance

        result = self.controller.connect('/dev/ttyUSB0', 9600)
        self.assertTrue(result)
        self.assertEqual(mock_serial.call_args.kwargs['port'], '/dev/ttyUSB0')
        self.assertEqual(mock_serial.call_args.kwargs['baudrate'], 9600)
        mock_serial_instance.write.assert_called_with(b'K')
        self.assertTrue(self.controller.get_status()['connected'])

    @patch('resibox.hardware.solenoid_controller.time.sleep')
    @patch('resibox.hardware.solenoid_controller.serial.Serial')
    def test_connect_failure(self, mock_serial, mock_sleep):
        mock_serial.side_effect = serial.SerialException("No such port")

        result = self.controller.connect('/dev/ttyUSB0', 9600)
        self.assertFalse(result)
        self.assertFalse(self.controller.get_status()['connected'])

    def test_connect_validation(self):
        with self.assertRaises(ValueError):
            self.controller.connect('', 9600)
        with self.assertRaises(ValueError):
            self.controller.connect('/dev/ttyUSB0', -1)

    @patch('resibox.hardware.solenoid_controller.time.sleep')
    @patch('resibox.hardware.solenoid_controller.serial.Serial')
    def test_energize_and_release(self, mock_serial, mock_sleep):
        mock_serial_instance = Mock()
        mock_serial_instance.is_open = True
        mock_serial.return_value = mock_serial_instance
        self.controller.connect('/dev/ttyUSB0', 9600)
        mock_serial_instance.write.reset_mock()

        self.assertTrue(self.controller.energize())
        self.assertTrue(self.controller.get_status()['energized'])
        self.assertTrue(self.controller.release())
        self.assertFalse(self.controller.get_status()['energized'])
        mock_serial_instance.write.assert_has_calls([call(b'U'), call(b'L')])

    def test_commands_without_connection(self):
        self.assertFalse(self.controller.energize())
        self.assertFalse(self.controller.release())

    @patch('resibox.hardware.solenoid_controller.time.sleep')
    @patch('resibox.hardware.solenoid_controller.serial.Serial')
    def test_write_error_drops_connection(self, mock_serial, mock_sleep):
        mock_serial_instance = Mock()
        mock_serial_instance.is_open = True
        mock_serial.return_value = mock_serial_instance
        self.controller.connect('/dev/ttyUSB0', 9600)

        mock_serial_instance.write.side_effect = serial.SerialException("cable pulled")
        self.assertFalse(self.controller.energize())
        self.assertFalse(self.controller.get_status()['connected'])

    @patch('resibox.hardware.solenoid_controller.time.sleep')
    @patch('resibox.hardware.solenoid_controller.serial.Serial')
    def test_disconnect_releases_first(self, mock_serial, mock_sleep):
        mock_serial_instance = Mock()
        mock_serial_instance.is_open = True
        mock_serial.return_value = mock_serial_instance
        self.controller.connect('/dev/ttyUSB0', 9600)
        self.controller.energize()

        self.controller.disconnect()
        mock_serial_instance.write.assert_called_with(b'L')
        mock_serial_instance.close.assert_called_once()
        self.assertFalse(self.controller.get_status()['energized'])


if __name__ == '__main__':
    unittest.main()
