import json
import logging

import pytest

from bookstore.errors import StorageError
from bookstore.models import Book
from bookstore.storage import InMemoryStorage, JsonFileStorage

RAW = """[
  {
    "id": 1,
    "title": "Kürk Mantolu Madonna",
    "author": "Sabahattin Ali",
    "year": 1943,
    "genre": "Novel",
    "pages": 160
  },
  {
    "id": 2,
    "title": "Dune",
    "author": "Frank Herbert",
    "year": 1965,
    "genre": "Science Fiction",
    "pages": 412.5,
    "isbn": "978-0441013593"
  }
]"""


def test_load_missing_file_returns_empty(tmp_path):
    assert JsonFileStorage(tmp_path / "absent.json").load() == []


@pytest.mark.parametrize("content", ["", "   \n"])
def test_load_empty_file_returns_empty(tmp_path, content):
    path = tmp_path / "books.json"
    path.write_text(content, encoding="utf-8")
    assert JsonFileStorage(path).load() == []


@pytest.mark.parametrize("content", ["[{", '{"id": 1}', "[1, 2]"])
def test_load_unusable_file_logs_and_returns_empty(tmp_path, caplog, content):
    path = tmp_path / "books.json"
    path.write_text(content, encoding="utf-8")

    with caplog.at_level(logging.ERROR, logger="bookstore.storage"):
        assert JsonFileStorage(path).load() == []
    assert any(record.getMessage() == "storage.parse_failed" for record in caplog.records)


def test_load_parses_books_and_keeps_extra_keys(tmp_path):
    path = tmp_path / "books.json"
    path.write_text(RAW, encoding="utf-8")

    books = JsonFileStorage(path).load()
    assert [book.id for book in books] == [1, 2]
    assert books[1].pages == 412.5
    assert books[1].model_dump()["isbn"] == "978-0441013593"


def test_save_of_load_is_byte_identical(tmp_path):
    path = tmp_path / "books.json"
    path.write_text(RAW, encoding="utf-8")
    storage = JsonFileStorage(path)

    storage.save(storage.load())
    assert path.read_text(encoding="utf-8") == RAW


def test_save_writes_pretty_printed_array(tmp_path):
    path = tmp_path / "books.json"
    book = Book(id=1, title="T", author="A", year=2000, genre="G", pages=10)

    JsonFileStorage(path).save([book])
    text = path.read_text(encoding="utf-8")
    assert text.startswith('[\n  {\n    "id": 1,')
    assert json.loads(text) == [book.model_dump()]


def test_save_failure_is_logged_not_raised(tmp_path, caplog):
    storage = JsonFileStorage(tmp_path)
    with caplog.at_level(logging.ERROR, logger="bookstore.storage"):
        storage.save([])
    assert any(record.getMessage() == "storage.write_failed" for record in caplog.records)


def test_save_failure_raises_when_configured(tmp_path):
    storage = JsonFileStorage(tmp_path, raise_on_write_error=True)
    with pytest.raises(StorageError):
        storage.save([])


def test_in_memory_storage_only_changes_on_save():
    book = Book(id=1, title="T", author="A", year=2000, genre="G", pages=10)
    storage = InMemoryStorage([book])

    loaded = storage.load()
    loaded[0].title = "changed"
    loaded.append(book)
    assert [item.title for item in storage.load()] == ["T"]

    storage.save(loaded)
    assert [item.title for item in storage.load()] == ["changed", "T"]
    assert storage.saves == 1


def test_malformed_records_round_trip(tmp_path):
    raw = [
        {"id": 1, "title": "A", "author": "X", "year": 2000, "genre": None, "pages": 10},
        {"id": "two", "title": "B"},
        {"id": 3, "title": "C", "author": "X", "year": "1999", "genre": "G", "pages": "many"},
    ]
    path = tmp_path / "books.json"
    path.write_text(json.dumps(raw, indent=2), encoding="utf-8")
    storage = JsonFileStorage(path)

    books = storage.load()
    assert [book.id for book in books] == [1, "two", 3]
    assert books[2].year == "1999"

    storage.save(books)
    assert json.loads(path.read_text(encoding="utf-8")) == raw
