"""
Storage layer: the ``LeagueStore`` interface, its backends and the
tombstone set.

Usage:
    from matchledger.storage import build_store
    store = build_store(settings)
"""
from matchledger.storage.base import BackendError, LeagueStore
from matchledger.storage.memory import MemoryStore
from matchledger.storage.rest import RestStore
from matchledger.storage.sql import SqlStore
from matchledger.storage.fallback import FallbackStore
from matchledger.storage.tombstones import LocalStorage, TombstoneSet, TOMBSTONE_KEY
from matchledger.storage.factory import build_store

__all__ = [
    "BackendError",
    "LeagueStore",
    "MemoryStore",
    "RestStore",
    "SqlStore",
    "FallbackStore",
    "LocalStorage",
    "TombstoneSet",
    "TOMBSTONE_KEY",
    "build_store",
]
