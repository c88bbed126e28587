"""
Ports (interfaces) for persistence.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod
from typing import Any

from .models import Question, ReviewMetadata


class KeyValueStore(ABC):
    """
    Minimal JSON key-value store.

    Implementations:
        - JsonFileStore: one JSON document on disk.
        - MemoryStore: in-process dict, used by tests and dry runs.
    """

    @abstractmethod
    def get(self, key: str) -> Any | None:
        """Return the stored JSON value, or None if absent or unreadable."""

    @abstractmethod
    def set(self, key: str, value: Any) -> bool:
        """
        Store a JSON-serializable value.

        Returns:
            False if the write failed (e.g. quota exceeded). Callers must
            surface this to the user.
        """

    @abstractmethod
    def remove(self, key: str) -> None:
        pass


class ReviewRepository(ABC):
    """
    Whole-map persistence for review metadata, keyed by question ID.

    Concurrent writers follow last-writer-wins semantics.
    """

    @abstractmethod
    def load_all(self) -> dict[str, ReviewMetadata]:
        pass

    @abstractmethod
    def save_all(self, metadata: dict[str, ReviewMetadata]) -> bool:
        pass


class QuestionRepository(ABC):
    @abstractmethod
    def load_all(self) -> list[Question]:
        pass

    @abstractmethod
    def save_all(self, questions: list[Question]) -> bool:
        pass
