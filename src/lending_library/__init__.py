"""
Lending Library MCP Server Package.

A lending library in which every book is either available or held by exactly
one user, with a first-come-first-served queue of users waiting for it.

Key Components:
- lending: the per-book state machine (enqueue, checkout, return)
- library: the BookLibrary interface and its in-memory implementation
- models: Pydantic models for books and their lending state
- config: Configuration management with pydantic-settings
- tools / resources: the MCP surface served by FastMCP
"""

__version__ = "0.1.0"

from .errors import InvalidOperationError, InvalidOperationReason, LibraryError, NotFoundError
from .library import BookLibrary, InMemoryBookLibrary
from .models import Book, BookInfo

__all__ = [
    "Book",
    "BookInfo",
    "BookLibrary",
    "InMemoryBookLibrary",
    "InvalidOperationError",
    "InvalidOperationReason",
    "LibraryError",
    "NotFoundError",
    "__version__",
]
