"""
Content: read-only question access for the scheduling engine.

Core modules:
- store: ContentStore contract and the SQL-backed implementation
- http_store: REST content store client
- cache: TTL cache owned by a store instance
"""

from .cache import TTLCache
from .store import ContentStore, SqlContentStore, question_from_row, seed_questions

__all__ = [
    "ContentStore",
    "SqlContentStore",
    "TTLCache",
    "question_from_row",
    "seed_questions",
]
