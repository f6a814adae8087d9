"""Test configuration and fixtures for the Lending Library MCP Server.

Provides:
1. Isolated libraries - each test gets a fresh in-memory library
2. Configuration overrides - test-specific server configurations
3. A conforming test double that rejects every operation
"""

import os
from collections.abc import Generator

import pytest

from lending_library.config import LibraryConfig, reset_config
from lending_library.errors import LibraryError
from lending_library.library import InMemoryBookLibrary
from lending_library.models.book import Book, BookInfo

# === Pytest Configuration ===


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "mcp_protocol: mark test as testing MCP protocol wiring")


# === Test Doubles ===


class AlwaysFailsBookLibrary:
    """BookLibrary that rejects every request.

    Conforms to the interface by structure. Scenario tests must detect it.
    """

    def add_book(self, book: Book) -> str:
        raise LibraryError("Always fails")

    def get_book_by_id(self, book_id: str) -> BookInfo:
        raise LibraryError("Always fails")

    def enqueue(self, book_id: str, user: str) -> int:
        raise LibraryError("Always fails")

    def checkout_book(self, book_id: str, user: str) -> None:
        raise LibraryError("Always fails")

    def return_book(self, book_id: str, user: str) -> str | None:
        raise LibraryError("Always fails")


# === Library Fixtures ===


LIBRARY_FACTORIES = {
    "in_memory": InMemoryBookLibrary,
    "always_fails": AlwaysFailsBookLibrary,
}


@pytest.fixture
def library(request):
    """Provide an empty library for each test.

    Defaults to InMemoryBookLibrary; parametrize indirectly with a
    LIBRARY_FACTORIES key to run a test against another implementation.
    """
    factory = LIBRARY_FACTORIES[getattr(request, "param", "in_memory")]
    return factory()


@pytest.fixture
def book_id(library: InMemoryBookLibrary) -> str:
    """Register 'Книга1' in the test library."""
    return library.add_book(Book(title="Книга1"))


@pytest.fixture
def held_book_id(library: InMemoryBookLibrary, book_id: str) -> str:
    """A book checked out by User0 with nobody waiting."""
    library.checkout_book(book_id, "User0")
    return book_id


@pytest.fixture
def failing_library() -> AlwaysFailsBookLibrary:
    return AlwaysFailsBookLibrary()


# === Configuration Fixtures ===


@pytest.fixture
def clean_env() -> Generator[None, None, None]:
    """Provide a clean environment without LENDING_LIBRARY_* variables."""
    original_env = os.environ.copy()

    for key in list(os.environ.keys()):
        if key.startswith("LENDING_LIBRARY_"):
            del os.environ[key]

    yield

    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def test_config(clean_env) -> Generator[LibraryConfig, None, None]:
    """Provide a test-specific MCP server configuration."""
    reset_config()

    config = LibraryConfig(
        server_name="test-lending-library",
        server_version="0.0.1-test",
        debug=True,
        log_level="DEBUG",
        book_id_prefix="testbook",
    )

    yield config

    reset_config()
