"""Remote Store Interface Definition.

This module defines the abstract base class for the tree-structured
key/value store shared with the scanner and the lock controller. Paths are
slash separated ("resi/<key>/scanned"); values are JSON-compatible.
"""

from abc import ABC, abstractmethod
from typing import Any


class IRemoteStore(ABC):
    """Abstract base class for remote store implementations.

    Implementations raise StoreReadError from get() and StoreWriteError from
    set()/push(); they never return partial results.
    """

    @abstractmethod
    def get(self, path: str) -> Any:
        """Read the value at a path.

        Args:
            path: Slash separated store path.

        Returns:
            The JSON value stored at the path, or None if nothing is stored.

        Raises:
            StoreReadError: If the read fails.
        """
        pass

    @abstractmethod
    def set(self, path: str, value: Any) -> None:
        """Replace the value at a path. Setting None removes the node.

        Raises:
            StoreWriteError: If the write fails.
        """
        pass

    @abstractmethod
    def push(self, path: str, value: Any) -> str:
        """Append a child with a store-generated key.

        Args:
            path: Collection path (e.g., 'resi').
            value: JSON value of the new child.

        Returns:
            The generated key.

        Raises:
            StoreWriteError: If the write fails.
        """
        pass

    def close(self) -> None:
        """Release connections held by the store."""
        pass
