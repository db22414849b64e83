from typing import Annotated, Any, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    StrictFloat,
    StrictInt,
    StrictStr,
    ValidationError,
    WrapValidator,
    field_validator,
)

MUTABLE_FIELDS = ("title", "author", "year", "genre", "pages")


def _keep_stored(value: Any, handler) -> Any:
    try:
        return handler(value)
    except ValidationError:
        return value


def _as_stored(value):
    return value


# Values read back from the backing file are kept as-is when they do not fit
# the declared type, so a malformed record survives a load/save cycle.
StoredInt = Annotated[Optional[StrictInt], WrapValidator(_keep_stored), PlainSerializer(_as_stored)]
StoredStr = Annotated[Optional[StrictStr], WrapValidator(_keep_stored), PlainSerializer(_as_stored)]
StoredNumber = Annotated[Optional[Union[StrictInt, StrictFloat]], WrapValidator(_keep_stored), PlainSerializer(_as_stored)]


class Book(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: StoredInt = None
    title: StoredStr = None
    author: StoredStr = None
    year: StoredInt = None
    genre: StoredStr = None
    pages: StoredNumber = None


class CreateBook(BaseModel):
    """Creation payload.

    Every field is optional at the model level so that a request missing
    several of them can be rejected with all the names at once.
    """

    model_config = ConfigDict(extra="ignore")

    title: str | None = None
    author: str | None = None
    year: int | None = None
    genre: str | None = None
    pages: int | float | None = None

    def missing_fields(self) -> list[str]:
        missing = []
        for name in MUTABLE_FIELDS:
            value = getattr(self, name)
            if value is None or (isinstance(value, str) and not value.strip()):
                missing.append(name)
        return missing


class UpdateBook(BaseModel):
    # Unknown keys are merged onto the book like the five fields; ``id`` never is.
    model_config = ConfigDict(extra="allow")

    title: str | None = None
    author: str | None = None
    year: int | None = None
    genre: str | None = None
    pages: int | float | None = None

    @field_validator("title", "author", "genre")
    @classmethod
    def not_blank(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            raise ValueError("must not be blank")
        return value

    def has_changes(self) -> bool:
        return any(getattr(self, name) is not None for name in MUTABLE_FIELDS)

    def changes(self) -> dict:
        changes = self.model_dump(exclude_none=True)
        changes.pop("id", None)
        return changes


class BookQuery(BaseModel):
    genre: str | None = None
    year: float | None = None
    page: float | None = None
    limit: float | None = None

    @property
    def paginated(self) -> bool:
        return self.page is not None and self.limit is not None


class BookListResponse(BaseModel):
    success: bool = True
    books: list[Book]


class BookResponse(BaseModel):
    success: bool = True
    book: Book


class BookCreatedResponse(BaseModel):
    success: bool = True
    message: str = "Book added successfully."
    book: Book


class BookUpdatedResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str = "Book updated successfully."
    updated_book: Book = Field(alias="updatedBook")


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class ErrorResponse(BaseModel):
    success: bool = False
    message: str
