"""
Lending Library MCP Server Models.

Pydantic models for the catalog:
- Book: the immutable catalog entry (a title)
- BookRecord: per-book lending state owned by the library
- BookInfo: read-only snapshot handed to callers
"""

from .book import Book, BookInfo, BookRecord

__all__ = [
    "Book",
    "BookInfo",
    "BookRecord",
]
