"""
Tests for the in-memory book library.

These tests verify:
1. Registration and lookup by identifier
2. The lending scenarios end to end through the BookLibrary interface
3. Unknown identifiers fail before any lending rule is checked
4. Per-book locking under concurrent callers
5. Test doubles conform to the interface and are caught by the scenarios
"""

import re
import threading

import pytest

from lending_library.errors import (
    InvalidOperationError,
    InvalidOperationReason,
    LibraryError,
    NotFoundError,
)
from lending_library.library import BookLibrary, InMemoryBookLibrary
from lending_library.models.book import Book


def check_register_and_lookup(library: BookLibrary) -> None:
    """A registered book can be found by its id with its title."""
    book_id = library.add_book(Book(title="Книга1"))
    assert library.get_book_by_id(book_id).book.title == "Книга1"


def check_enqueue_on_held_book(library: BookLibrary) -> None:
    """A second user can wait for a held book."""
    book_id = library.add_book(Book(title="Книга1"))
    library.checkout_book(book_id, "User0")
    library.enqueue(book_id, "User1")
    assert library.get_book_by_id(book_id).queue == ("User1",)


class TestCatalog:
    """Registration and lookup."""

    def test_add_and_get_book(self, library):
        book_id = library.add_book(Book(title="Книга1"))

        info = library.get_book_by_id(book_id)

        assert info.book.title == "Книга1"
        assert info.book_id == book_id
        assert info.holder is None
        assert info.queue == ()
        assert info.is_available

    def test_identifiers_are_unique(self, library):
        ids = {library.add_book(Book(title=f"Книга{i}")) for i in range(50)}
        assert len(ids) == 50
        assert len(library) == 50

    def test_identifier_format(self):
        library = InMemoryBookLibrary(id_prefix="testbook")
        book_id = library.add_book(Book(title="Книга1"))
        assert re.fullmatch(r"testbook_\d{14}0001", book_id)

    def test_same_title_twice_gets_two_records(self, library):
        first = library.add_book(Book(title="Книга1"))
        second = library.add_book(Book(title="Книга1"))

        library.checkout_book(first, "User0")

        assert first != second
        assert library.get_book_by_id(second).is_available

    def test_unknown_book(self, library):
        with pytest.raises(NotFoundError) as exc_info:
            library.get_book_by_id("book_missing")
        assert exc_info.value.book_id == "book_missing"

    def test_snapshot_not_affected_by_later_operations(self, library, held_book_id):
        before = library.get_book_by_id(held_book_id)

        library.enqueue(held_book_id, "User1")

        assert before.queue == ()
        assert library.get_book_by_id(held_book_id).queue == ("User1",)


class TestLendingScenarios:
    """The lending rules through the library interface."""

    def test_enqueue_on_free_book_fails(self, library, book_id):
        with pytest.raises(InvalidOperationError) as exc_info:
            library.enqueue(book_id, "User1")

        assert exc_info.value.reason == InvalidOperationReason.BOOK_IS_FREE
        assert "Checkout book instead" in str(exc_info.value)
        assert library.get_book_by_id(book_id).queue == ()

    def test_enqueue_when_book_is_held(self, library, held_book_id):
        library.enqueue(held_book_id, "User1")

        assert library.get_book_by_id(held_book_id).queue == ("User1",)

    def test_enqueue_when_queue_is_not_empty(self, library, held_book_id):
        assert library.enqueue(held_book_id, "User1") == 1
        assert library.enqueue(held_book_id, "User2") == 2

        assert library.get_book_by_id(held_book_id).queue == ("User1", "User2")

    def test_enqueue_twice_fails(self, library, held_book_id):
        library.enqueue(held_book_id, "User1")

        with pytest.raises(InvalidOperationError) as exc_info:
            library.enqueue(held_book_id, "User1")

        assert exc_info.value.reason == InvalidOperationReason.ALREADY_IN_QUEUE
        assert str(exc_info.value) == "User 'User1' is already in queue"
        assert library.get_book_by_id(held_book_id).queue == ("User1",)

    def test_holder_cannot_enqueue(self, library, book_id):
        library.checkout_book(book_id, "User1")

        with pytest.raises(InvalidOperationError) as exc_info:
            library.enqueue(book_id, "User1")

        assert exc_info.value.reason == InvalidOperationReason.ALREADY_HOLDS
        assert str(exc_info.value) == (
            f"Cannot enqueue user 'User1' for book 'Книга1' with id '{book_id}', "
            "which user holds"
        )
        info = library.get_book_by_id(book_id)
        assert info.holder == "User1"
        assert info.queue == ()

    def test_first_in_queue_cannot_checkout_held_book(self, library, held_book_id):
        """Checkout is only legal on a free book; only a return promotes.

        The historical test for this case enqueued on a *free* book and then
        expected checkout to fail with the "book is free" message, while its
        description said the first user in the queue should be able to check
        the book out. Enqueue on a free book is rejected, so that state cannot
        be reached; here the intended flow is exercised on a held book and the
        queued user gets the book through a return instead.
        """
        library.enqueue(held_book_id, "User1")

        with pytest.raises(InvalidOperationError) as exc_info:
            library.checkout_book(held_book_id, "User1")
        assert exc_info.value.reason == InvalidOperationReason.BOOK_IS_HELD

        assert library.return_book(held_book_id, "User0") == "User1"
        assert library.get_book_by_id(held_book_id).holder == "User1"

    def test_not_first_in_queue_cannot_checkout(self, library, held_book_id):
        library.enqueue(held_book_id, "User1")
        library.enqueue(held_book_id, "User2")

        with pytest.raises(InvalidOperationError) as exc_info:
            library.checkout_book(held_book_id, "User2")

        assert exc_info.value.reason == InvalidOperationReason.BOOK_IS_HELD
        assert library.get_book_by_id(held_book_id).queue == ("User1", "User2")

    def test_return_serves_queue_in_order(self, library, held_book_id):
        library.enqueue(held_book_id, "User1")
        library.enqueue(held_book_id, "User2")

        assert library.return_book(held_book_id, "User0") == "User1"
        assert library.return_book(held_book_id, "User1") == "User2"
        assert library.return_book(held_book_id, "User2") is None
        assert library.get_book_by_id(held_book_id).is_available

    def test_returned_user_can_enqueue_again(self, library, held_book_id):
        library.enqueue(held_book_id, "User1")
        library.return_book(held_book_id, "User0")

        library.enqueue(held_book_id, "User0")

        info = library.get_book_by_id(held_book_id)
        assert info.holder == "User1"
        assert info.queue == ("User0",)

    def test_return_by_other_user_fails(self, library, held_book_id):
        with pytest.raises(InvalidOperationError) as exc_info:
            library.return_book(held_book_id, "User1")

        assert exc_info.value.reason == InvalidOperationReason.NOT_HOLDER
        assert library.get_book_by_id(held_book_id).holder == "User0"


class TestNotFound:
    """Unknown identifiers are reported before any lending rule."""

    @pytest.mark.parametrize(
        "operation",
        [
            lambda lib: lib.enqueue("book_missing", "User1"),
            lambda lib: lib.checkout_book("book_missing", "User1"),
            lambda lib: lib.return_book("book_missing", "User1"),
        ],
        ids=["enqueue", "checkout_book", "return_book"],
    )
    def test_unknown_book(self, library, book_id, operation):
        with pytest.raises(NotFoundError):
            operation(library)

        assert library.get_book_by_id(book_id).is_available


class TestConcurrency:
    """Per-book locking."""

    def test_concurrent_enqueues(self, library, held_book_id):
        users = [f"User{i}" for i in range(1, 41)]
        rejected: list[str] = []
        barrier = threading.Barrier(len(users) * 2)

        def worker(user: str) -> None:
            barrier.wait()
            try:
                library.enqueue(held_book_id, user)
            except InvalidOperationError:
                rejected.append(user)

        threads = [threading.Thread(target=worker, args=(user,)) for user in users * 2]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        queue = library.get_book_by_id(held_book_id).queue
        assert sorted(queue) == sorted(users)
        assert sorted(rejected) == sorted(users)

    def test_concurrent_checkout_has_one_winner(self, library, book_id):
        winners: list[str] = []
        barrier = threading.Barrier(20)

        def worker(user: str) -> None:
            barrier.wait()
            try:
                library.checkout_book(book_id, user)
                winners.append(user)
            except InvalidOperationError:
                pass

        threads = [threading.Thread(target=worker, args=(f"User{i}",)) for i in range(20)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(winners) == 1
        assert library.get_book_by_id(book_id).holder == winners[0]


class TestInterface:
    """Implementations conform to BookLibrary by structure."""

    def test_in_memory_library_conforms(self, library):
        assert isinstance(library, BookLibrary)

    def test_always_failing_double_conforms(self, failing_library):
        assert isinstance(failing_library, BookLibrary)

    @pytest.mark.parametrize("library", ["in_memory"], indirect=True)
    def test_registration_scenario_passes(self, library):
        check_register_and_lookup(library)

    @pytest.mark.parametrize("library", ["always_fails"], indirect=True)
    def test_registration_scenario_rejects_always_failing_double(self, library):
        with pytest.raises(LibraryError):
            check_register_and_lookup(library)

    @pytest.mark.parametrize("library", ["always_fails"], indirect=True)
    def test_held_book_scenario_rejects_always_failing_double(self, library):
        with pytest.raises(LibraryError):
            check_enqueue_on_held_book(library)
