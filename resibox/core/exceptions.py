"""
RESIBOX_PROJECT
Copyright (c) 2026. All rights reserved.
File: resibox/core/exceptions.py
Description: Exception hierarchy for store access and input validation.
"""

from typing import Any, Dict, Optional


class ResiboxError(Exception):
    """Base exception for all resibox errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class StoreError(ResiboxError):
    """Base class for remote store failures."""
    pass


class StoreReadError(StoreError):
    """Raised when a fetch fails or the fetched data does not match the schema."""
    pass


class StoreWriteError(StoreError):
    """Raised when a set or push does not complete."""
    pass


class ValidationError(ResiboxError):
    """Raised when user input is rejected before touching the store."""
    pass
