"""Draft persistence: durable key/value backends and the per-work-item draft store."""

from work_equipment.store.backends import DurableStore, InMemoryStore, JsonFileStore
from work_equipment.store.draft_store import DRAFT_KEY_PREFIX, DraftStore

__all__ = [
    "DRAFT_KEY_PREFIX",
    "DraftStore",
    "DurableStore",
    "InMemoryStore",
    "JsonFileStore",
]
