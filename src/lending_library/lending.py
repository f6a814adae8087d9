"""
Lending state machine for a single book.

Each book is either FREE (no holder, empty queue) or HELD (one holder, zero
or more waiting users). The transitions are:

- checkout: FREE -> HELD, only when the queue is empty
- enqueue:  HELD -> HELD, appends a user to the tail of the queue
- release:  HELD -> HELD (queue head becomes holder) or HELD -> FREE

A held book cannot be checked out by anyone, including the user at the front
of the queue. Only a return hands the book to the next waiting user.

Every function validates all of its preconditions before touching the record,
so a raised InvalidOperationError always leaves the record unchanged. Callers
are responsible for serializing access to a record.
"""

from enum import Enum

from .errors import InvalidOperationError, InvalidOperationReason
from .models.book import BookRecord


class BookState(str, Enum):
    """Lending state of a book."""

    FREE = "free"
    HELD = "held"


def state_of(record: BookRecord) -> BookState:
    """Classify a record as FREE or HELD."""
    return BookState.FREE if record.holder is None else BookState.HELD


def enqueue(record: BookRecord, user: str) -> None:
    """
    Put a user at the tail of the waiting queue.

    Raises:
        InvalidOperationError: If the book is free, the user already waits,
            or the user holds the book. Checked in that order.
    """
    if record.holder is None:
        raise InvalidOperationError(
            InvalidOperationReason.BOOK_IS_FREE,
            "Cannot enqueue if book is free and queue is empty. Checkout book instead.",
        )

    if user in record.queue:
        raise InvalidOperationError(
            InvalidOperationReason.ALREADY_IN_QUEUE,
            f"User '{user}' is already in queue",
        )

    if user == record.holder:
        raise InvalidOperationError(
            InvalidOperationReason.ALREADY_HOLDS,
            f"Cannot enqueue user '{user}' for book '{record.book.title}' "
            f"with id '{record.book_id}', which user holds",
        )

    record.queue.append(user)


def checkout(record: BookRecord, user: str) -> None:
    """
    Hand a free book to a user.

    Raises:
        InvalidOperationError: If the book is held (by this user or anyone
            else) or somebody is waiting for it.
    """
    if record.holder == user:
        raise InvalidOperationError(
            InvalidOperationReason.ALREADY_HOLDS,
            f"User '{user}' already holds book '{record.book.title}' "
            f"with id '{record.book_id}'",
        )

    if record.holder is not None:
        raise InvalidOperationError(
            InvalidOperationReason.BOOK_IS_HELD,
            f"Cannot checkout book '{record.book.title}' with id '{record.book_id}': "
            "it is held by another user. Enqueue instead.",
        )

    # Unreachable while enqueue rejects free books; kept so checkout never
    # skips anyone who is waiting.
    if record.queue:
        raise InvalidOperationError(
            InvalidOperationReason.QUEUE_NOT_EMPTY,
            f"Cannot checkout book '{record.book.title}' with id '{record.book_id}': "
            f"{len(record.queue)} user(s) are waiting for it",
        )

    record.holder = user


def release(record: BookRecord, user: str) -> str | None:
    """
    Return a book held by ``user``.

    The first waiting user, if any, becomes the new holder.

    Returns:
        The new holder, or None if the book is now free.

    Raises:
        InvalidOperationError: If the book is not checked out or ``user`` is
            not its holder.
    """
    if record.holder is None:
        raise InvalidOperationError(
            InvalidOperationReason.BOOK_IS_FREE,
            f"Cannot return book '{record.book.title}' with id '{record.book_id}': "
            "it is not checked out",
        )

    if record.holder != user:
        raise InvalidOperationError(
            InvalidOperationReason.NOT_HOLDER,
            f"User '{user}' cannot return book '{record.book.title}' "
            f"with id '{record.book_id}', which user does not hold",
        )

    record.holder = record.queue.pop(0) if record.queue else None
    return record.holder
