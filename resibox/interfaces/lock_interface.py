"""Lock Interface Definition.

This module defines the abstract base class for solenoid lock drivers,
ensuring consistent API surfaces for the serial controller and mock driver.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict


class ILockDriver(ABC):
    """Abstract base class for solenoid lock driver implementations."""

    @abstractmethod
    def connect(self, port: str, baud: int) -> bool:
        """Establish connection to the lock controller.

        Args:
            port: Serial port identifier (e.g., '/dev/ttyUSB0', 'COM3').
            baud: Baud rate for communication (e.g., 9600, 115200).

        Returns:
            True if connection was successful, False otherwise.

        Raises:
            ValueError: If parameters are invalid.
        """
        pass

    @abstractmethod
    def energize(self) -> bool:
        """Energize the solenoid, opening the lock.

        Returns:
            True if the command was delivered.
        """
        pass

    @abstractmethod
    def release(self) -> bool:
        """De-energize the solenoid, locking again.

        Returns:
            True if the command was delivered.
        """
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Safely release the solenoid and disconnect."""
        pass

    @abstractmethod
    def get_status(self) -> Dict[str, Any]:
        """Return connection and energized state."""
        pass
