"""resibox: parcel receipt tracking with scan reconciliation and a solenoid lock."""

__version__ = "1.0.0"
