"""
Book models for the Lending Library MCP Server.

A book is a title and nothing more. Each registered book gets a BookRecord
holding its lending state (current holder and waiting queue); callers only
ever see BookInfo, a frozen snapshot of that record.

Books are exposed as resources via:
- library://books/{book_id}
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Book(BaseModel):
    """
    Represents a book in the library catalog.

    Immutable once created; the lending state lives in BookRecord.
    """

    title: str = Field(
        ...,
        description="The title of the book",
        min_length=1,
        max_length=500,
        examples=["Книга1", "The Pragmatic Programmer"],
    )

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """Reject titles that are only whitespace."""
        if not v.strip():
            raise ValueError("Title cannot be blank")
        return v

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={"example": {"title": "Книга1"}},
    )


class BookRecord(BaseModel):
    """
    Lending state of one registered book.

    Owned by the library; mutated only by the lending state machine.
    Invariants:
    - no holder implies an empty queue
    - no user waits twice
    - the holder never waits for their own book
    """

    book_id: str = Field(..., description="Identifier assigned at registration")
    book: Book
    holder: str | None = Field(
        default=None,
        description="User currently holding the book; None when available",
    )
    queue: list[str] = Field(
        default_factory=list,
        description="Users waiting for the book, first in line first",
    )

    @model_validator(mode="after")
    def validate_lending_state(self) -> "BookRecord":
        """Check the queue invariants on construction."""
        self.check_invariants()
        return self

    def check_invariants(self) -> None:
        """Raise ValueError if the record is in an impossible state."""
        if self.holder is None and self.queue:
            raise ValueError("A free book cannot have a waiting queue")
        if len(set(self.queue)) != len(self.queue):
            raise ValueError("A user cannot wait in the queue twice")
        if self.holder is not None and self.holder in self.queue:
            raise ValueError("The holder cannot wait in the queue")

    def snapshot(self) -> "BookInfo":
        """Return a read-only copy of the current state."""
        return BookInfo(
            book_id=self.book_id,
            book=self.book,
            holder=self.holder,
            queue=tuple(self.queue),
        )


class BookInfo(BaseModel):
    """Read-only view of a book and its lending state."""

    book_id: str
    book: Book
    holder: str | None = None
    queue: tuple[str, ...] = ()

    @property
    def is_available(self) -> bool:
        """Check if the book can be checked out right now."""
        return self.holder is None and not self.queue

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "book_id": "book_202401150930000001",
                "book": {"title": "Книга1"},
                "holder": "User0",
                "queue": ["User1", "User2"],
            }
        },
    )
