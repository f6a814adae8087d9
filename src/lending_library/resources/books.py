"""Book Resources - Lending State Access

Exposes a book and its lending state as a read-only resource.

Resources:
- library://books/{book_id} - Title, current holder and waiting queue
"""

import logging
from typing import Any

from fastmcp.exceptions import ResourceError

from ..errors import NotFoundError
from ..library import BookLibrary

logger = logging.getLogger(__name__)


async def get_book_handler(library: BookLibrary, book_id: str) -> dict[str, Any]:
    """Returns details for a specific book.

    Client requests library://books/{book_id} to see who holds the book and
    who is waiting for it.
    """
    try:
        logger.debug("MCP Resource Request - books/%s", book_id)
        info = library.get_book_by_id(book_id)
    except NotFoundError as e:
        raise ResourceError(f"Book not found: {book_id}") from e
    except Exception as e:
        logger.exception("Error in books/{book_id} resource")
        raise ResourceError(f"Failed to retrieve book details: {e!s}") from e

    data = info.model_dump(mode="json")
    data["is_available"] = info.is_available
    return data


def build_book_resources(library: BookLibrary) -> list[dict[str, Any]]:
    """Bind the book resources to one library for registration with FastMCP."""

    async def get_book(book_id: str) -> dict[str, Any]:
        return await get_book_handler(library, book_id)

    return [
        {
            "uri_template": "library://books/{book_id}",
            "name": "Book Details",
            "description": (
                "Get a book by id: its title, the user holding it and the queue "
                "of users waiting for it"
            ),
            "mime_type": "application/json",
            "handler": get_book,
        },
    ]
