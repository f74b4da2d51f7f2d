"""Record stores for durable data.

- MemoryRecordStore: In-memory storage for development/testing
- SQLiteRecordStore: Relational storage in a local SQLite file
- RedisRecordStore: Redis-based storage for production
- RecordStore: Abstract interface shared by all stores
"""

from semantic_search.core.storage.base import RecordStore
from semantic_search.core.storage.memory import MemoryRecordStore
from semantic_search.core.storage.redis import RedisRecordStore
from semantic_search.core.storage.sqlite import SQLiteRecordStore

__all__ = [
    "RecordStore",
    "MemoryRecordStore",
    "RedisRecordStore",
    "SQLiteRecordStore",
]
