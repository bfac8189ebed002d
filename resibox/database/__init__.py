"""Database package public exports.

Exposes initialisation, session management, the ORM model, and the local
tree store.
"""

from resibox.database.core import init_db, session_scope
from resibox.database.local_store import LocalTreeStore
from resibox.database.models import Base, StoreNode
from resibox.database.push_ids import generate_push_key

__all__ = [
    "init_db",
    "session_scope",
    "Base",
    "StoreNode",
    "LocalTreeStore",
    "generate_push_key",
]
