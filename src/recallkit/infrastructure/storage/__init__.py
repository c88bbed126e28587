from .json_store import JsonFileStore, MemoryStore
from .repositories import KeyValueQuestionRepository, KeyValueReviewRepository

__all__ = [
    "JsonFileStore",
    "MemoryStore",
    "KeyValueQuestionRepository",
    "KeyValueReviewRepository",
]
