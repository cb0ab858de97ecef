"""Store — persistence и per-token конкурентность ReserveState."""

from .backends import InMemoryBackend, JsonFileBackend, PersistenceBackend
from .reserve_store import ReserveStore

__all__ = [
    "InMemoryBackend",
    "JsonFileBackend",
    "PersistenceBackend",
    "ReserveStore",
]
