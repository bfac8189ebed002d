"""
RESIBOX_PROJECT
Copyright (c) 2026. All rights reserved.
File: resibox/core/records.py
Description: Tracking record schema and snapshot parsing for the 'resi' tree.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from resibox.core.exceptions import StoreReadError

RESI_PATH = "resi"
SCANNED_CODES_PATH = "scanned_codes"
UNLOCK_PATH = "solenoid-lock/unlock"


def record_path(key: str, field_name: Optional[str] = None) -> str:
    """Build the store path of a record or of one of its fields."""
    if field_name is None:
        return f"{RESI_PATH}/{key}"
    return f"{RESI_PATH}/{key}/{field_name}"


@dataclass(frozen=True)
class TrackingRecord:
    """A tracking number persisted under resi/{key}.

    Attributes:
        key: Store-generated identifier.
        number: Tracking number as entered by the user.
        scanned: True once an external scan was matched to the number.
        already_notified: True once a notification was posted for the scan.
        photo_urls: Image URLs attached after scanning, in store order.
    """
    key: str
    number: str
    scanned: bool = False
    already_notified: bool = False
    photo_urls: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ResiStatus:
    """Display entry for one record."""
    resi: str
    is_scanned: bool
    photo_urls: Tuple[str, ...] = field(default_factory=tuple)
    key: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "resi": self.resi,
            "is_scanned": self.is_scanned,
            "photo_urls": list(self.photo_urls),
            "key": self.key,
        }


def _optional_bool(key: str, node: Dict[str, Any], name: str) -> bool:
    value = node.get(name)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise StoreReadError(
            f"Field '{name}' of resi/{key} is not a boolean",
            details={"key": key, "field": name, "value": value},
        )
    return value


def _photo_urls(key: str, raw: Any) -> Tuple[str, ...]:
    if raw is None:
        return ()
    if isinstance(raw, dict):
        entries = list(raw.values())
    elif isinstance(raw, list):
        entries = raw
    else:
        raise StoreReadError(
            f"Field 'photoUrl' of resi/{key} is not a list",
            details={"key": key, "value": raw},
        )

    urls: List[str] = []
    for entry in entries:
        # Firebase arrays come back with null holes for removed indexes
        if entry is None:
            continue
        if not isinstance(entry, str):
            raise StoreReadError(
                f"Photo URL under resi/{key} is not a string",
                details={"key": key, "value": entry},
            )
        urls.append(entry)
    return tuple(urls)


def parse_record(key: str, node: Any) -> Optional[TrackingRecord]:
    """Convert one child of the 'resi' collection into a TrackingRecord.

    Args:
        key: Child key under 'resi'.
        node: Raw JSON value stored at resi/{key}.

    Returns:
        The parsed record, or None when the child has no tracking number.

    Raises:
        StoreReadError: If a present field has the wrong type.
    """
    if not isinstance(node, dict):
        return None

    number = node.get("number")
    if number is None:
        return None
    if not isinstance(number, str):
        raise StoreReadError(
            f"Field 'number' of resi/{key} is not a string",
            details={"key": key, "value": number},
        )

    return TrackingRecord(
        key=key,
        number=number,
        scanned=_optional_bool(key, node, "scanned"),
        already_notified=_optional_bool(key, node, "alreadyNotified"),
        photo_urls=_photo_urls(key, node.get("photoUrl")),
    )


def parse_records(snapshot: Any) -> List[TrackingRecord]:
    """Parse the full 'resi' collection, preserving store iteration order.

    Collections with sequential integer keys come back from the realtime
    database as arrays; their children are keyed by index and null holes
    are skipped.

    Raises:
        StoreReadError: If the collection or any child fails to deserialize.
    """
    if snapshot is None:
        return []
    if isinstance(snapshot, list):
        children = [(str(i), node) for i, node in enumerate(snapshot) if node is not None]
    elif isinstance(snapshot, dict):
        children = list(snapshot.items())
    else:
        raise StoreReadError(
            "The 'resi' collection is neither an object nor an array",
            details={"type": type(snapshot).__name__},
        )

    records: List[TrackingRecord] = []
    for key, node in children:
        record = parse_record(key, node)
        if record is not None:
            records.append(record)
    return records


def parse_scanned_codes(snapshot: Any) -> List[str]:
    """Collect the 'data' values of the scanned_codes collection in store order.

    Children without a string 'data' value are ignored.
    """
    if isinstance(snapshot, dict):
        nodes = list(snapshot.values())
    elif isinstance(snapshot, list):
        nodes = snapshot
    else:
        return []
    codes: List[str] = []
    for node in nodes:
        if isinstance(node, dict) and isinstance(node.get("data"), str):
            codes.append(node["data"])
    return codes
