import logging
import math

from .errors import ConflictError, NotFoundError, ValidationError
from .models import MUTABLE_FIELDS, Book, BookQuery, CreateBook, UpdateBook
from .storage import BookStorage

logger = logging.getLogger(__name__)


def parse_number(raw: str | None, message: str) -> float | None:
    """Parse an optional numeric query value; empty values count as absent."""
    if raw is None or not raw.strip():
        return None
    if "_" in raw:
        raise ValidationError(message)
    try:
        value = float(raw)
    except ValueError as exc:
        raise ValidationError(message) from exc
    if not math.isfinite(value):
        raise ValidationError(message)
    return value


def parse_book_id(raw: str) -> int:
    raw = raw.strip()
    if not (raw.isascii() and raw.isdigit()) or int(raw) <= 0:
        raise ValidationError("Invalid book ID.")
    return int(raw)


def build_query(
    genre: str | None = None,
    year: str | None = None,
    page: str | None = None,
    limit: str | None = None,
) -> BookQuery:
    return BookQuery(
        genre=genre or None,
        year=parse_number(year, "Invalid year format. It should be a number."),
        page=parse_number(page, "Page and limit must be numbers."),
        limit=parse_number(limit, "Page and limit must be numbers."),
    )


def paginate(books: list[Book], page: float, limit: float) -> list[Book]:
    """Slice one page out of ``books``.

    Bounds are truncated toward zero and clamped to the list, so a page before
    the first one is empty rather than counted back from the end.
    """
    start = (page - 1) * limit
    end = start + limit
    return books[_clamp(start, len(books)) : _clamp(end, len(books))]


def _clamp(bound: float, size: int) -> int:
    return int(min(max(bound, 0), size))


def _folded(value) -> str | None:
    return value.lower() if isinstance(value, str) else None


def _index_of(books: list[Book], book_id: int) -> int:
    for index, book in enumerate(books):
        if book.id == book_id:
            return index
    raise NotFoundError()


def _find_title(books: list[Book], title: str) -> Book | None:
    title = title.lower()
    return next((book for book in books if _folded(book.title) == title), None)


class BookService:
    def __init__(self, storage: BookStorage):
        self.storage = storage

    def list(self, query: BookQuery) -> list[Book]:
        books = self.storage.load()
        if query.genre:
            genre = query.genre.lower()
            books = [book for book in books if _folded(book.genre) == genre]
        if query.year is not None:
            books = [book for book in books if book.year == query.year]
        if query.paginated:
            books = paginate(books, query.page, query.limit)
        return books

    def get(self, book_id: int) -> Book:
        for book in self.storage.load():
            if book.id == book_id:
                return book
        raise NotFoundError()

    def create(self, payload: CreateBook) -> Book:
        missing = payload.missing_fields()
        if missing:
            raise ValidationError(f"The following fields are required: {', '.join(missing)}.")

        books = self.storage.load()
        existing = _find_title(books, payload.title)
        if existing is not None:
            raise ConflictError(
                f'A book titled "{payload.title}" already exists with ID {existing.id}. '
                "Please choose a different title."
            )

        book = Book(
            id=max((item.id for item in books if isinstance(item.id, int)), default=0) + 1,
            **payload.model_dump(include=set(MUTABLE_FIELDS)),
        )
        books.append(book)
        self.storage.save(books)
        logger.info("book.created", extra={"book_id": book.id})
        return book

    def update(self, book_id: int, payload: UpdateBook) -> Book:
        if not payload.has_changes():
            raise ValidationError("At least one field (title, author, year, genre, pages) must be updated.")

        books = self.storage.load()
        index = _index_of(books, book_id)
        changes = payload.changes()
        if "title" in changes:
            existing = _find_title(books, changes["title"])
            if existing is not None and existing.id != book_id:
                raise ConflictError(
                    f'A book titled "{changes["title"]}" already exists with ID {existing.id}. '
                    "Please choose a different title."
                )

        books[index] = Book.model_validate({**books[index].model_dump(exclude_unset=True), **changes})
        self.storage.save(books)
        logger.info("book.updated", extra={"book_id": book_id, "fields": sorted(changes)})
        return books[index]

    def delete(self, book_id: int) -> None:
        books = self.storage.load()
        _index_of(books, book_id)
        self.storage.save([book for book in books if book.id != book_id])
        logger.info("book.deleted", extra={"book_id": book_id})
