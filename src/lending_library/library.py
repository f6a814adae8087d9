"""
Book library: catalog plus per-book lending state.

This module provides the data access layer that MCP tools and resources work
against. It has two parts:

1. **BookLibrary**: the interface every library implementation conforms to.
   Test doubles implement it structurally; no inheritance is required.
2. **InMemoryBookLibrary**: the reference implementation. It owns one
   BookRecord per registered book and delegates every transition to the
   lending state machine.

Thread safety: each record has its own lock, so the check-then-mutate steps
of enqueue/checkout/return never interleave for one book. Registration and
identifier assignment share a separate registry lock.
"""

import logging
import threading
from collections.abc import Generator
from contextlib import contextmanager
from datetime import datetime
from typing import Protocol, runtime_checkable

from . import lending
from .errors import NotFoundError
from .models.book import Book, BookInfo, BookRecord

logger = logging.getLogger(__name__)


@runtime_checkable
class BookLibrary(Protocol):
    """Operations a lending library exposes to its callers."""

    def add_book(self, book: Book) -> str:
        """Register a book and return its new identifier."""
        ...

    def get_book_by_id(self, book_id: str) -> BookInfo:
        """Return a snapshot of a book and its lending state."""
        ...

    def enqueue(self, book_id: str, user: str) -> int:
        """Put a user in the waiting queue of a held book; return their 1-based position."""
        ...

    def checkout_book(self, book_id: str, user: str) -> None:
        """Hand a free book to a user."""
        ...

    def return_book(self, book_id: str, user: str) -> str | None:
        """Return a book; the next waiting user, if any, becomes holder."""
        ...


class InMemoryBookLibrary:
    """
    Reference BookLibrary keeping all state in memory.

    Nothing is persisted; a library lives as long as the object does.
    """

    def __init__(self, id_prefix: str = "book"):
        """
        Initialize an empty library.

        Args:
            id_prefix: Prefix for generated book identifiers
        """
        self.id_prefix = id_prefix
        self._records: dict[str, BookRecord] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._records)

    # Catalog

    def add_book(self, book: Book) -> str:
        """
        Register a book in the FREE state.

        Returns:
            The new book identifier
        """
        with self._registry_lock:
            book_id = self._generate_book_id()
            self._records[book_id] = BookRecord(book_id=book_id, book=book)
            self._locks[book_id] = threading.Lock()

        logger.info("Book registered | book_id=%s title=%s", book_id, book.title)
        return book_id

    def get_book_by_id(self, book_id: str) -> BookInfo:
        """
        Get a snapshot of a book.

        Raises:
            NotFoundError: If the identifier is unknown
        """
        with self._locked_record(book_id) as record:
            return record.snapshot()

    # Circulation

    def enqueue(self, book_id: str, user: str) -> int:
        """
        Put a user in the waiting queue of a held book.

        Returns:
            The user's 1-based queue position, taken under the record lock

        Raises:
            NotFoundError: If the identifier is unknown
            InvalidOperationError: If a queue rule rejects the request
        """
        with self._locked_record(book_id) as record:
            lending.enqueue(record, user)
            position = len(record.queue)

        logger.info("User enqueued | book_id=%s user=%s position=%d", book_id, user, position)
        return position

    def checkout_book(self, book_id: str, user: str) -> None:
        """
        Hand a free book to a user.

        Raises:
            NotFoundError: If the identifier is unknown
            InvalidOperationError: If the book is held or has waiters
        """
        with self._locked_record(book_id) as record:
            lending.checkout(record, user)

        logger.info("Book checked out | book_id=%s user=%s", book_id, user)

    def return_book(self, book_id: str, user: str) -> str | None:
        """
        Return a book held by ``user``.

        Returns:
            The user promoted from the queue, or None if the book is free

        Raises:
            NotFoundError: If the identifier is unknown
            InvalidOperationError: If the book is free or held by someone else
        """
        with self._locked_record(book_id) as record:
            next_holder = lending.release(record, user)

        if next_holder is None:
            logger.info("Book returned | book_id=%s user=%s now=free", book_id, user)
        else:
            logger.info(
                "Book returned | book_id=%s user=%s next_holder=%s", book_id, user, next_holder
            )
        return next_holder

    # Internal helpers

    @contextmanager
    def _locked_record(self, book_id: str) -> Generator[BookRecord, None, None]:
        """Yield a record while holding its lock, or raise NotFoundError."""
        lock = self._locks.get(book_id)
        if lock is None:
            raise NotFoundError(book_id)
        with lock:
            yield self._records[book_id]

    def _generate_book_id(self) -> str:
        """Generate unique book ID. Caller must hold the registry lock."""
        timestamp = datetime.now().strftime("%Y%m%d%H%M%S")
        return f"{self.id_prefix}_{timestamp}{len(self._records) + 1:04d}"
