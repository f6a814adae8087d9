"""
Error taxonomy for the lending library.

Two kinds of failure reach callers:

- NotFoundError: the referenced book identifier is not registered.
- InvalidOperationError: a lending rule rejected the request. The ``reason``
  attribute says which rule; program logic should branch on it and keep the
  message for display and logging.

Every failure aborts the operation before any state is changed.
"""

from enum import Enum


class InvalidOperationReason(str, Enum):
    """Which lending rule rejected an operation."""

    BOOK_IS_FREE = "book_is_free"
    ALREADY_IN_QUEUE = "already_in_queue"
    ALREADY_HOLDS = "already_holds"
    BOOK_IS_HELD = "book_is_held"
    QUEUE_NOT_EMPTY = "queue_not_empty"
    NOT_HOLDER = "not_holder"


class LibraryError(Exception):
    """Base exception for lending library operations."""


class NotFoundError(LibraryError):
    """Raised when a book identifier is not registered."""

    def __init__(self, book_id: str):
        super().__init__(f"Book {book_id} not found")
        self.book_id = book_id


class InvalidOperationError(LibraryError):
    """Raised when a lending rule rejects an enqueue, checkout or return."""

    def __init__(self, reason: InvalidOperationReason, message: str):
        super().__init__(message)
        self.reason = reason
