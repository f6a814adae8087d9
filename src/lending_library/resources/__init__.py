"""Lending Library MCP Resources Package

Read-only endpoints over the catalog. State changes go through tools.
"""

from .books import build_book_resources

__all__ = [
    "build_book_resources",
]
