"""
Service Factory
Centralizes wiring of the store, repositories and services from config.
"""

from dataclasses import dataclass

from recallkit.application.config import STORE_FILE_NAME, AppConfig
from recallkit.application.library_service import QuestionLibrary
from recallkit.application.review_service import ReviewService
from recallkit.domain.ports import KeyValueStore
from recallkit.infrastructure.storage import (
    JsonFileStore,
    KeyValueQuestionRepository,
    KeyValueReviewRepository,
)


@dataclass
class Services:
    store: KeyValueStore
    library: QuestionLibrary
    reviews: ReviewService


def build_services(config: AppConfig, store: KeyValueStore | None = None) -> Services:
    """
    Returns the library and review services sharing one store.

    A store may be passed in explicitly (tests); otherwise the JSON file named
    by the config is used.
    """
    if store is None:
        store_file = config.store_file or config.data_dir / STORE_FILE_NAME
        store = JsonFileStore(store_file, max_bytes=config.max_store_bytes)

    return Services(
        store=store,
        library=QuestionLibrary(KeyValueQuestionRepository(store)),
        reviews=ReviewService(KeyValueReviewRepository(store)),
    )
