from fastapi import status


class BookStoreError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal Server Error."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(BookStoreError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request."


class NotFoundError(BookStoreError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Book not found."


class ConflictError(BookStoreError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Book already exists."


class InternalError(BookStoreError):
    pass


class StorageError(InternalError):
    pass
