"""
Circulation tools for the Lending Library MCP Server.

MCP tools that change library state:
1. add_book: Register a new title in the catalog
2. enqueue: Join the waiting queue of a held book
3. checkout_book: Take a free book
4. return_book: Give a book back, handing it to the next waiting user

Every handler follows the same pattern:
- validate the raw arguments against a Pydantic input schema
- run the operation against the library it was built with
- answer with a text message plus structured ``data``, or an ``isError``
  result naming the failure kind and, for rule violations, the reason

Handlers never raise into FastMCP; errors are part of the tool result so an
LLM client can read them and adapt.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from ..errors import InvalidOperationError, NotFoundError
from ..library import BookLibrary
from ..models.book import Book

logger = logging.getLogger(__name__)

ToolResult = dict[str, Any]


# =============================================================================
# INPUT SCHEMAS
# =============================================================================


class AddBookInput(BaseModel):
    """Input schema for the add_book tool."""

    title: str = Field(
        ...,
        description="Title of the book to register",
        min_length=1,
        max_length=500,
        examples=["Книга1", "The Pragmatic Programmer"],
    )


class BookUserInput(BaseModel):
    """
    Input schema shared by the circulation tools.

    Every circulation operation names one book and one user.
    """

    book_id: str = Field(
        ...,
        description="Identifier returned by add_book",
        min_length=1,
        examples=["book_202401150930000001"],
    )

    user: str = Field(
        ...,
        description="Identifier of the user performing the operation",
        min_length=1,
        max_length=200,
        examples=["User0", "User1"],
    )

    @field_validator("user")
    @classmethod
    def validate_user(cls, v: str) -> str:
        """Reject blank user identifiers."""
        if not v.strip():
            raise ValueError("User cannot be blank")
        return v


class EnqueueInput(BookUserInput):
    """Input schema for the enqueue tool."""


class CheckoutBookInput(BookUserInput):
    """Input schema for the checkout_book tool."""


class ReturnBookInput(BookUserInput):
    """Input schema for the return_book tool. ``user`` must be the holder."""


# =============================================================================
# RESPONSE HELPERS
# =============================================================================


def _error_result(text: str, data: dict[str, Any] | None = None) -> ToolResult:
    """Build an MCP error result."""
    result: ToolResult = {
        "isError": True,
        "content": [{"type": "text", "text": text}],
    }
    if data is not None:
        result["data"] = data
    return result


def _not_found_result(error: NotFoundError) -> ToolResult:
    return _error_result(str(error), {"error": "not_found", "book_id": error.book_id})


def _invalid_operation_result(error: InvalidOperationError) -> ToolResult:
    return _error_result(
        str(error), {"error": "invalid_operation", "reason": error.reason.value}
    )


def _book_data(library: BookLibrary, book_id: str) -> dict[str, Any]:
    """Snapshot of a book for the structured part of a response."""
    return library.get_book_by_id(book_id).model_dump(mode="json")


# =============================================================================
# HANDLERS
# =============================================================================


async def add_book_handler(library: BookLibrary, arguments: dict[str, Any]) -> ToolResult:
    """Handler for the add_book tool."""
    try:
        params = AddBookInput.model_validate(arguments)
        book = Book(title=params.title)
    except ValidationError as e:
        logger.warning("Invalid add_book parameters: %s", e)
        return _error_result(f"Invalid add_book parameters: {e}")

    try:
        book_id = library.add_book(book)
        data = _book_data(library, book_id)
    except Exception as e:
        logger.exception("Add book failed")
        return _error_result(f"Add book failed: {e!s}", {"error": "unexpected"})

    return {
        "content": [{
            "type": "text",
            "text": f"Successfully added book '{book.title}' with id '{book_id}'.",
        }],
        "data": {"book": data},
    }


async def enqueue_handler(library: BookLibrary, arguments: dict[str, Any]) -> ToolResult:
    """
    Handler for the enqueue tool.

    Queueing is only possible while somebody holds the book; for a free book
    the client is told to check it out instead.
    """
    try:
        params = EnqueueInput.model_validate(arguments)
    except ValidationError as e:
        logger.warning("Invalid enqueue parameters: %s", e)
        return _error_result(f"Invalid enqueue parameters: {e}")

    try:
        position = library.enqueue(params.book_id, params.user)
        data = _book_data(library, params.book_id)
    except NotFoundError as e:
        logger.info("Enqueue failed - book not found: %s", e)
        return _not_found_result(e)
    except InvalidOperationError as e:
        logger.info("Enqueue failed - %s: %s", e.reason.value, e)
        return _invalid_operation_result(e)
    except Exception as e:
        logger.exception("Enqueue failed")
        return _error_result(f"Enqueue failed: {e!s}", {"error": "unexpected"})

    # ``data`` is read after the lock is released and may already show the
    # user promoted to holder; the position is the one assigned on enqueue.
    return {
        "content": [{
            "type": "text",
            "text": (
                f"User '{params.user}' is waiting for book '{data['book']['title']}'. "
                f"Queue position: {position}"
            ),
        }],
        "data": {"book": data, "queue_position": position},
    }


async def checkout_book_handler(library: BookLibrary, arguments: dict[str, Any]) -> ToolResult:
    """
    Handler for the checkout_book tool.

    Only a free book with nobody waiting can be checked out.
    """
    try:
        params = CheckoutBookInput.model_validate(arguments)
    except ValidationError as e:
        logger.warning("Invalid checkout parameters: %s", e)
        return _error_result(f"Invalid checkout parameters: {e}")

    try:
        library.checkout_book(params.book_id, params.user)
        data = _book_data(library, params.book_id)
    except NotFoundError as e:
        logger.info("Checkout failed - book not found: %s", e)
        return _not_found_result(e)
    except InvalidOperationError as e:
        logger.info("Checkout failed - %s: %s", e.reason.value, e)
        return _invalid_operation_result(e)
    except Exception as e:
        logger.exception("Checkout failed")
        return _error_result(f"Checkout failed: {e!s}", {"error": "unexpected"})

    return {
        "content": [{
            "type": "text",
            "text": (
                f"Successfully checked out book '{data['book']['title']}' "
                f"to user '{params.user}'."
            ),
        }],
        "data": {"book": data},
    }


async def return_book_handler(library: BookLibrary, arguments: dict[str, Any]) -> ToolResult:
    """
    Handler for the return_book tool.

    The response says who holds the book next so the client does not need a
    second round trip.
    """
    try:
        params = ReturnBookInput.model_validate(arguments)
    except ValidationError as e:
        logger.warning("Invalid return parameters: %s", e)
        return _error_result(f"Invalid return parameters: {e}")

    try:
        next_holder = library.return_book(params.book_id, params.user)
        data = _book_data(library, params.book_id)
    except NotFoundError as e:
        logger.info("Return failed - book not found: %s", e)
        return _not_found_result(e)
    except InvalidOperationError as e:
        logger.info("Return failed - %s: %s", e.reason.value, e)
        return _invalid_operation_result(e)
    except Exception as e:
        logger.exception("Return failed")
        return _error_result(f"Return failed: {e!s}", {"error": "unexpected"})

    message = f"Successfully returned book '{data['book']['title']}'."
    if next_holder is None:
        message += " The book is now available."
    else:
        message += f" Now held by next user in queue: '{next_holder}'."

    return {
        "content": [{"type": "text", "text": message}],
        "data": {"book": data, "next_holder": next_holder},
    }


# =============================================================================
# TOOL REGISTRATION
# =============================================================================


def build_circulation_tools(library: BookLibrary) -> list[dict[str, Any]]:
    """
    Bind the handlers to one library for registration with FastMCP.

    FastMCP derives each tool's input schema from the handler signature, so
    every entry wraps its handler in a function with explicit parameters.
    """

    async def add_book(title: str) -> ToolResult:
        return await add_book_handler(library, {"title": title})

    async def enqueue(book_id: str, user: str) -> ToolResult:
        return await enqueue_handler(library, {"book_id": book_id, "user": user})

    async def checkout_book(book_id: str, user: str) -> ToolResult:
        return await checkout_book_handler(library, {"book_id": book_id, "user": user})

    async def return_book(book_id: str, user: str) -> ToolResult:
        return await return_book_handler(library, {"book_id": book_id, "user": user})

    tools: list[tuple[str, str, Callable[..., Awaitable[ToolResult]]]] = [
        (
            "add_book",
            "Register a book by title. Returns the new book id; the book starts available.",
            add_book,
        ),
        (
            "enqueue",
            (
                "Join the waiting queue of a book someone else holds. Fails if the book "
                "is free (check it out instead), if the user already waits, or if the "
                "user holds the book."
            ),
            enqueue,
        ),
        (
            "checkout_book",
            (
                "Check out a free book nobody is waiting for. Held books cannot be "
                "checked out, not even by the first user in the queue."
            ),
            checkout_book,
        ),
        (
            "return_book",
            (
                "Return a book the user holds. The first user in the queue, if any, "
                "becomes the new holder; otherwise the book becomes available."
            ),
            return_book,
        ),
    ]

    return [
        {"name": name, "description": description, "handler": handler}
        for name, description, handler in tools
    ]
