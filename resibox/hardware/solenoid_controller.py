# resibox/hardware/solenoid_controller.py
import logging
import threading
import time
from typing import Any, ClassVar, Dict, Optional

import serial

from resibox.interfaces.lock_interface import ILockDriver


class SolenoidController(ILockDriver):
    """Serial driver for the parcel box solenoid lock.

    The microcontroller on the other end accepts single ASCII command bytes:
    'U' energizes the solenoid (lock open), 'L' releases it, 'K' is a no-op
    probe used to verify the link.
    """

    _CMD_MAP: ClassVar[Dict[str, str]] = {
        'unlock': 'U',
        'lock':   'L',
    }

    def __init__(self) -> None:
        self.serial_conn: Optional[serial.Serial] = None
        self.is_connected: bool = False
        self.is_energized: bool = False
        self._port: Optional[str] = None
        self._baudrate: Optional[int] = None
        self._io_lock = threading.Lock()
        self.logger = logging.getLogger("SolenoidController")

    def connect(self, port: str, baud: int = 9600) -> bool:
        if not isinstance(port, str) or not port:
            raise ValueError("port must be a non-empty string")
        if not isinstance(baud, int) or baud <= 0:
            raise ValueError("baudrate must be a positive integer")
        with self._io_lock:
            if self.is_connected and self.serial_conn and self.serial_conn.is_open:
                return True
            try:
                self.serial_conn = serial.Serial(
                    port=port,
                    baudrate=baud,
                    timeout=2,
                    write_timeout=1,
                    bytesize=serial.EIGHTBITS,
                    parity=serial.PARITY_NONE,
                    stopbits=serial.STOPBITS_ONE
                )
                # Boards reset when the port opens
                time.sleep(2)
                self.serial_conn.reset_input_buffer()
                self.serial_conn.reset_output_buffer()
                self._port = port
                self._baudrate = baud
                if not self._test_connection():
                    self.serial_conn.close()
                    self.serial_conn = None
                    return False
                self.is_connected = True
                self.logger.info(f"Connected to solenoid controller on {port} @ {baud}")
                return True
            except (serial.SerialException, OSError) as e:
                self.logger.error(f"Connection failed: {e}")
                self.is_connected = False
                self.serial_conn = None
                return False

    def _test_connection(self) -> bool:
        try:
            self.serial_conn.write(b'K')
            self.serial_conn.flush()
            time.sleep(0.1)
            self.serial_conn.reset_input_buffer()
            return True
        except (serial.SerialException, OSError) as e:
            self.logger.error(f"Connection test failed: {e}")
            return False

    def _send(self, command: str) -> bool:
        char_cmd = self._CMD_MAP[command]
        with self._io_lock:
            if not self.is_connected or not self.serial_conn or not self.serial_conn.is_open:
                self.logger.error("Cannot send command: solenoid controller not connected")
                return False
            try:
                self.serial_conn.write(char_cmd.encode('ascii'))
                self.serial_conn.flush()
                self.logger.debug(f"Sent command: '{char_cmd}'")
                return True
            except (serial.SerialException, OSError) as e:
                self.logger.error(f"Serial error sending command: {e}")
                self._close_locked()
                return False

    def energize(self) -> bool:
        if self._send('unlock'):
            self.is_energized = True
            return True
        return False

    def release(self) -> bool:
        if self._send('lock'):
            self.is_energized = False
            return True
        return False

    def _close_locked(self) -> None:
        if self.serial_conn:
            try:
                self.serial_conn.close()
            except (serial.SerialException, OSError) as e:
                self.logger.warning(f"Error closing serial port: {e}")
        self.serial_conn = None
        self.is_connected = False

    def disconnect(self) -> None:
        with self._io_lock:
            if self.serial_conn and self.serial_conn.is_open:
                # Never leave the coil energized on an unattended box
                try:
                    self.serial_conn.write(b'L')
                    self.serial_conn.flush()
                    self.is_energized = False
                except (serial.SerialException, OSError) as e:
                    self.logger.warning(f"Could not release solenoid on disconnect: {e}")
                self._close_locked()
                self.logger.info("Solenoid controller disconnected")

    def get_status(self) -> Dict[str, Any]:
        return {
            'connected': self.is_connected,
            'energized': self.is_energized,
            'port': self._port,
            'baudrate': self._baudrate,
        }
