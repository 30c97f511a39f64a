"""
Typed errors raised by the book storage layer.

Each error carries the HTTP status it maps to, so the API layer can turn
any of them into a response without inspecting message text.
"""

from typing import Optional

from fastapi import status


class BookServiceError(Exception):
    """Base class for book service failures."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class InvalidBookIdError(BookServiceError):
    """The identifier is not a valid ObjectId."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, book_id: str):
        super().__init__(f"Invalid book ID '{book_id}'")
        self.book_id = book_id


class BookNotFoundError(BookServiceError):
    """No book matches the identifier."""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, book_id: str):
        super().__init__(f"Book with ID '{book_id}' not found")
        self.book_id = book_id


class EmptyUpdateError(BookServiceError):
    """An update payload named no updatable fields."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self):
        super().__init__("Update payload contains no fields to update")


class StorageError(BookServiceError):
    """The database rejected the operation or could not be reached."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class InvalidBookDataError(BookServiceError):
    """The book could not be encoded as a MongoDB document."""

    status_code = status.HTTP_400_BAD_REQUEST
