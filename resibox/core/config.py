"""
RESIBOX_PROJECT
Copyright (c) 2026. All rights reserved.
File: resibox/core/config.py
Description: Configuration management for the receipt tracking service.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

VALID_BACKENDS = {"firebase", "local"}
VALID_MODES = {"notify", "unlock"}
VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

# Wake-up interval per reconciliation mode when POLL_INTERVAL_S is omitted.
DEFAULT_POLL_INTERVALS = {"notify": 2.0, "unlock": 1.0}

_DEFAULTS: Dict[str, Any] = {
    "FIREBASE_URL": None,
    "FIREBASE_AUTH": None,
    "LOCAL_DB_URL": "sqlite:///data/resibox.db",
    "POLL_INTERVAL_S": None,
    "UNLOCK_WINDOW_S": 20.0,
    "STORE_TIMEOUT_S": 10.0,
    "LOCK_PORT": "/dev/ttyUSB0",
    "LOCK_BAUD_RATE": 9600,
    "LOCK_BRIDGE_ENABLED": False,
    "LOCK_POLL_INTERVAL_S": 0.5,
    "LOG_LEVEL": "INFO",
}


def _positive_number(config_data: Dict[str, Any], key: str) -> float:
    value = config_data.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ValueError(f"Invalid value for {key}: expected positive number, got {value!r}")
    return float(value)


@dataclass(frozen=True)
class Settings:
    """Immutable application settings container.

    Attributes:
        STORE_BACKEND: 'firebase' for the shared realtime database, 'local'
            for the SQLite tree store.
        FIREBASE_URL: Root URL of the realtime database (firebase backend).
        FIREBASE_AUTH: Optional database secret or ID token.
        LOCAL_DB_URL: SQLAlchemy URL of the local tree store.
        RECONCILE_MODE: 'notify' (flag watcher) or 'unlock' (scan matcher
            driving the solenoid lock).
        POLL_INTERVAL_S: Seconds between reconciliation cycles.
        UNLOCK_WINDOW_S: Seconds the lock stays open per unlock cycle.
        STORE_TIMEOUT_S: Timeout applied to remote store HTTP calls.
        SIMULATION_MODE: If True, uses the mock lock driver.
        LOCK_PORT: Serial port of the solenoid controller.
        LOCK_BAUD_RATE: Baud rate of the solenoid controller.
        LOCK_BRIDGE_ENABLED: Mirror the store's unlock flag onto the driver.
        LOCK_POLL_INTERVAL_S: Seconds between unlock flag polls.
        API_HOST: Host address to bind the API server.
        API_PORT: Port number to bind the API server.
        LOG_LEVEL: Root logging level.
    """
    STORE_BACKEND: str
    FIREBASE_URL: Optional[str]
    FIREBASE_AUTH: Optional[str]
    LOCAL_DB_URL: str
    RECONCILE_MODE: str
    POLL_INTERVAL_S: float
    UNLOCK_WINDOW_S: float
    STORE_TIMEOUT_S: float
    SIMULATION_MODE: bool
    LOCK_PORT: str
    LOCK_BAUD_RATE: int
    LOCK_BRIDGE_ENABLED: bool
    LOCK_POLL_INTERVAL_S: float
    API_HOST: str
    API_PORT: int
    LOG_LEVEL: str

    @classmethod
    def load_from_file(cls, filepath: str = "config/settings.json") -> "Settings":
        """Loads and validates settings from a JSON file.

        Args:
            filepath: Path to the configuration JSON file.
                Defaults to "config/settings.json".

        Returns:
            A new instance of Settings with validated values.

        Raises:
            FileNotFoundError: If the config file does not exist.
            json.JSONDecodeError: If the file contains invalid JSON.
            ValueError: If required keys are missing or values are invalid.
        """
        try:
            with open(filepath, 'r') as f:
                config_data = json.load(f)
        except FileNotFoundError:
            raise FileNotFoundError(f"Configuration file not found at {filepath}")
        except json.JSONDecodeError as e:
            raise json.JSONDecodeError("Malformed JSON in config file", e.doc, e.pos)

        if not isinstance(config_data, dict):
            raise ValueError("Configuration root must be a JSON object")
        return cls.from_dict(config_data)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Settings":
        """Validates a configuration mapping and applies defaults.

        Raises:
            ValueError: If required keys are missing or values are invalid.
        """
        config_data = dict(_DEFAULTS)
        config_data.update(raw)

        required_keys = [
            "STORE_BACKEND", "RECONCILE_MODE", "SIMULATION_MODE", "API_HOST", "API_PORT"
        ]
        for key in required_keys:
            if key not in config_data:
                raise ValueError(f"Missing required configuration key: {key}")

        backend = config_data["STORE_BACKEND"]
        if backend not in VALID_BACKENDS:
            raise ValueError(f"STORE_BACKEND must be one of {sorted(VALID_BACKENDS)}, got {backend!r}")
        if backend == "firebase":
            url = config_data.get("FIREBASE_URL")
            if not isinstance(url, str) or not url.startswith("https://"):
                raise ValueError("FIREBASE_URL must be an https:// URL when STORE_BACKEND is 'firebase'")
        if not isinstance(config_data["LOCAL_DB_URL"], str) or not config_data["LOCAL_DB_URL"].startswith("sqlite:///"):
            raise ValueError("LOCAL_DB_URL must be a SQLite URL (sqlite:///path)")

        mode = config_data["RECONCILE_MODE"]
        if mode not in VALID_MODES:
            raise ValueError(f"RECONCILE_MODE must be one of {sorted(VALID_MODES)}, got {mode!r}")
        if config_data["POLL_INTERVAL_S"] is None:
            config_data["POLL_INTERVAL_S"] = DEFAULT_POLL_INTERVALS[mode]

        for key in ("SIMULATION_MODE", "LOCK_BRIDGE_ENABLED"):
            if not isinstance(config_data.get(key), bool):
                raise ValueError(f"Invalid type for {key}: expected bool")

        api_port = config_data.get("API_PORT")
        if isinstance(api_port, bool) or not isinstance(api_port, int):
            raise ValueError(f"Invalid type for API_PORT: expected int, got {type(api_port)}")
        if not (1024 <= api_port <= 65535):
            raise ValueError(f"API_PORT must be 1024-65535, got {api_port}")

        lock_baud = config_data.get("LOCK_BAUD_RATE")
        if isinstance(lock_baud, bool) or not isinstance(lock_baud, int) or lock_baud <= 0:
            raise ValueError("Invalid type for LOCK_BAUD_RATE: expected positive int")

        log_level = str(config_data.get("LOG_LEVEL", "")).upper()
        if log_level not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid LOG_LEVEL: {config_data.get('LOG_LEVEL')!r}")

        return cls(
            STORE_BACKEND=backend,
            FIREBASE_URL=config_data.get("FIREBASE_URL"),
            FIREBASE_AUTH=config_data.get("FIREBASE_AUTH"),
            LOCAL_DB_URL=config_data["LOCAL_DB_URL"],
            RECONCILE_MODE=mode,
            POLL_INTERVAL_S=_positive_number(config_data, "POLL_INTERVAL_S"),
            UNLOCK_WINDOW_S=_positive_number(config_data, "UNLOCK_WINDOW_S"),
            STORE_TIMEOUT_S=_positive_number(config_data, "STORE_TIMEOUT_S"),
            SIMULATION_MODE=config_data["SIMULATION_MODE"],
            LOCK_PORT=config_data["LOCK_PORT"],
            LOCK_BAUD_RATE=lock_baud,
            LOCK_BRIDGE_ENABLED=config_data["LOCK_BRIDGE_ENABLED"],
            LOCK_POLL_INTERVAL_S=_positive_number(config_data, "LOCK_POLL_INTERVAL_S"),
            API_HOST=config_data["API_HOST"],
            API_PORT=api_port,
            LOG_LEVEL=log_level,
        )
