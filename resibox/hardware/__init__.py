"""Hardware driver modules for resibox."""

from .solenoid_controller import SolenoidController

__all__ = ["SolenoidController"]
