"""Local tree store backed by SQLite.

Implements IRemoteStore on top of the store_nodes table so the service can
run without the shared realtime database (simulation mode, tests, a single
box on a LAN). Path semantics follow the realtime database: setting None
removes a node, empty objects vanish, and children iterate in key order.
"""

import copy
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from resibox.core.exceptions import StoreReadError, StoreWriteError
from resibox.database.core import init_db, session_scope
from resibox.database.models import StoreNode
from resibox.database.push_ids import generate_push_key
from resibox.interfaces.store_interface import IRemoteStore


def split_path(path: str) -> List[str]:
    """Split a slash separated path, ignoring empty segments.

    Raises:
        ValueError: If the path has no segments.
    """
    if not isinstance(path, str):
        raise ValueError("path must be a string")
    segments = [s for s in path.strip("/").split("/") if s]
    if not segments:
        raise ValueError("path must name at least one collection")
    return segments


def _prune(value: Any) -> Any:
    """Drop None children and empty objects, as the realtime database does."""
    if isinstance(value, dict):
        pruned = {}
        for k, v in value.items():
            v = _prune(v)
            if v is not None:
                pruned[k] = v
        return pruned or None
    return value


class LocalTreeStore(IRemoteStore):
    """Thread-safe IRemoteStore over a SQLAlchemy session factory."""

    def __init__(self, database_url: str = "sqlite:///data/resibox.db") -> None:
        """Initialize the engine and schema.

        Args:
            database_url: SQLite URL; 'sqlite:///:memory:' keeps everything in process.

        Raises:
            ValueError: If the URL is not a SQLite URL.
            RuntimeError: If the database cannot be initialised.
        """
        self.database_url = database_url
        self._engine, self._session_factory = init_db(database_url)
        self._logger = logging.getLogger(__name__)

    def get(self, path: str) -> Any:
        segments = split_path(path)
        try:
            with session_scope(self._session_factory) as session:
                if len(segments) == 1:
                    rows = session.scalars(
                        select(StoreNode)
                        .where(StoreNode.collection == segments[0])
                        .order_by(StoreNode.key)
                    ).all()
                    if not rows:
                        return None
                    return {row.key: copy.deepcopy(row.value) for row in rows}

                node = session.get(StoreNode, (segments[0], segments[1]))
                if node is None:
                    return None
                value = copy.deepcopy(node.value)
        except SQLAlchemyError as e:
            raise StoreReadError(f"Local store read failed for '{path}': {e}", details={"path": path}) from e

        for segment in segments[2:]:
            if isinstance(value, dict):
                value = value.get(segment)
            elif isinstance(value, list) and segment.isdigit() and int(segment) < len(value):
                value = value[int(segment)]
            else:
                return None
        return value

    def set(self, path: str, value: Any) -> None:
        segments = split_path(path)
        value = _prune(copy.deepcopy(value))
        try:
            with session_scope(self._session_factory) as session:
                if len(segments) == 1:
                    self._replace_collection(session, segments[0], value, path)
                elif len(segments) == 2:
                    self._write_node(session, segments[0], segments[1], value)
                else:
                    node = session.get(StoreNode, (segments[0], segments[1]))
                    current = copy.deepcopy(node.value) if node is not None else None
                    updated = _prune(self._assign(current, segments[2:], value))
                    self._write_node(session, segments[0], segments[1], updated, node)
        except StoreWriteError:
            raise
        except SQLAlchemyError as e:
            raise StoreWriteError(f"Local store write failed for '{path}': {e}", details={"path": path}) from e
        self._logger.debug(f"set {path} = {value!r}")

    def push(self, path: str, value: Any) -> str:
        split_path(path)
        key = generate_push_key()
        self.set(f"{path.strip('/')}/{key}", value)
        return key

    def close(self) -> None:
        self._engine.dispose()

    # --- Helpers ---

    @staticmethod
    def _replace_collection(session, collection: str, value: Any, path: str) -> None:
        if value is not None and not isinstance(value, dict):
            raise StoreWriteError(
                f"Cannot store a leaf value at collection path '{path}'",
                details={"path": path},
            )
        session.execute(delete(StoreNode).where(StoreNode.collection == collection))
        for key, child in (value or {}).items():
            session.add(StoreNode(collection=collection, key=key, value=child))

    @staticmethod
    def _write_node(session, collection: str, key: str, value: Any,
                    node: Optional[StoreNode] = None) -> None:
        if node is None:
            node = session.get(StoreNode, (collection, key))
        if value is None:
            if node is not None:
                session.delete(node)
            return
        if node is None:
            session.add(StoreNode(collection=collection, key=key, value=value))
        else:
            # JSON columns only notice reassignment, never in-place mutation
            node.value = value

    @staticmethod
    def _assign(current: Any, segments: List[str], value: Any) -> Any:
        root: Dict[str, Any] = current if isinstance(current, dict) else {}
        cursor = root
        for segment in segments[:-1]:
            child = cursor.get(segment)
            if isinstance(child, list):
                child = {str(i): v for i, v in enumerate(child) if v is not None}
                cursor[segment] = child
            elif not isinstance(child, dict):
                child = {}
                cursor[segment] = child
            cursor = child
        if value is None:
            cursor.pop(segments[-1], None)
        else:
            cursor[segments[-1]] = value
        return root
