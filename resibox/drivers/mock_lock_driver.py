"""Mock Lock Driver for Simulation.

This module provides a simulation-safe implementation of the ILockDriver
interface. It logs commands and keeps a history of actions without
accessing physical hardware.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List

from resibox.interfaces.lock_interface import ILockDriver


class MockLockDriver(ILockDriver):
    """Mock implementation of the solenoid driver for testing and simulation."""

    def __init__(self) -> None:
        """Initialize the mock driver."""
        self._connected = False
        self._energized = False
        self._command_history: List[Dict[str, Any]] = []
        self._logger = logging.getLogger(__name__)

    def connect(self, port: str, baud: int) -> bool:
        """Simulate a hardware connection.

        Raises:
            ValueError: If port is empty or baud is non-positive.
        """
        if not isinstance(port, str) or not port:
            raise ValueError("Port must be non-empty string")

        if not isinstance(baud, int) or baud <= 0:
            raise ValueError("Baud must be positive integer")

        self._logger.info(f"[MOCK] Lock connected to {port} @ {baud}")
        self._connected = True
        return True

    def _record(self, command: str) -> bool:
        if not self._connected:
            self._logger.warning(f"[MOCK] Lock command {command} ignored: not connected")
            return False
        self._command_history.append({
            "command": command,
            "timestamp": datetime.now().isoformat(),
        })
        self._logger.info(f"[MOCK] Lock command: {command}")
        return True

    def energize(self) -> bool:
        if self._record("UNLOCK"):
            self._energized = True
            return True
        return False

    def release(self) -> bool:
        if self._record("LOCK"):
            self._energized = False
            return True
        return False

    def disconnect(self) -> None:
        if self._connected and self._energized:
            self.release()
        self._connected = False
        self._logger.info("[MOCK] Lock disconnected")

    def get_status(self) -> Dict[str, Any]:
        return {
            "connected": self._connected,
            "energized": self._energized,
            "port": "MOCK_PORT",
        }

    def get_command_history(self) -> List[Dict[str, Any]]:
        """Return a copy of the recorded commands, oldest first."""
        return list(self._command_history)

    def clear_history(self) -> None:
        self._command_history.clear()
