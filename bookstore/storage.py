"""Persistence for the book collection.

The whole collection is read and rewritten on every call; there is no
caching and no locking, so concurrent writers race and the last one wins.
"""

import json
import logging
from pathlib import Path
from typing import Protocol

from pydantic import TypeAdapter, ValidationError

from .errors import StorageError
from .models import Book

logger = logging.getLogger(__name__)

_collection = TypeAdapter(list[Book])


class BookStorage(Protocol):
    def load(self) -> list[Book]: ...

    def save(self, books: list[Book]) -> None: ...


def dump_books(books: list[Book]) -> str:
    return json.dumps(_collection.dump_python(books, mode="json", exclude_unset=True), indent=2, ensure_ascii=False)


class JsonFileStorage:
    def __init__(self, path: str | Path, raise_on_write_error: bool = False):
        self.path = Path(path)
        self.raise_on_write_error = raise_on_write_error

    def load(self) -> list[Book]:
        """Return the stored books; a missing, empty or unparsable file reads as an empty list."""
        if not self.path.exists():
            return []
        try:
            raw = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.error("storage.read_failed", extra={"path": str(self.path), "error": str(exc)})
            return []
        if not raw.strip():
            return []
        try:
            return _collection.validate_json(raw)
        except ValidationError as exc:
            logger.error(
                "storage.parse_failed",
                extra={"path": str(self.path), "errors": exc.error_count()},
            )
            return []

    def save(self, books: list[Book]) -> None:
        try:
            self.path.write_text(dump_books(books), encoding="utf-8")
        except OSError as exc:
            logger.error("storage.write_failed", extra={"path": str(self.path), "error": str(exc)})
            if self.raise_on_write_error:
                raise StorageError("Failed to persist books.") from exc
            return
        logger.debug("storage.saved", extra={"path": str(self.path), "count": len(books)})


class InMemoryStorage:
    def __init__(self, books: list[Book] | None = None):
        self.books: list[Book] = [book.model_copy(deep=True) for book in books or []]
        self.saves = 0

    def load(self) -> list[Book]:
        return [book.model_copy(deep=True) for book in self.books]

    def save(self, books: list[Book]) -> None:
        self.books = [book.model_copy(deep=True) for book in books]
        self.saves += 1
