"""Lending Library MCP Server - Core Server Implementation

Builds a FastMCP server around one explicitly constructed library and runs it
over stdio.

Tools (state changes): add_book, enqueue, checkout_book, return_book
Resources (read-only): library://books/{book_id}
"""

import logging
import signal
import sys
from typing import Any

from fastmcp import FastMCP

from .config import LibraryConfig, get_config
from .library import BookLibrary, InMemoryBookLibrary
from .resources import build_book_resources
from .tools import build_circulation_tools

logger = logging.getLogger(__name__)

INSTRUCTIONS = (
    "Lending Library MCP Server - every book is either available or held by one "
    "user, with a first-come-first-served queue of waiting users. Use add_book to "
    "register titles, checkout_book to take a free book, enqueue to wait for a held "
    "book and return_book to hand it back. Read library://books/{book_id} to see "
    "who holds a book and who is waiting."
)


def configure_logging(config: LibraryConfig) -> None:
    """Send log records to stderr; stdout carries the stdio transport."""
    logging.basicConfig(
        level=logging.DEBUG if config.debug else config.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    if not config.debug:
        # Reduce protocol noise but keep important messages
        logging.getLogger("fastmcp").setLevel(logging.WARNING)


def create_server(
    library: BookLibrary | None = None,
    config: LibraryConfig | None = None,
) -> FastMCP:
    """Create a FastMCP server bound to ``library``.

    Args:
        library: Library the tools operate on. A fresh in-memory library is
            created when omitted.
        config: Server configuration. Defaults to the process configuration.
    """
    config = config or get_config()
    if library is None:
        library = InMemoryBookLibrary(id_prefix=config.book_id_prefix)

    mcp = FastMCP(
        name=config.server_name,
        version=config.server_version,
        instructions=INSTRUCTIONS,
    )

    tools = build_circulation_tools(library)
    for tool in tools:
        mcp.tool(name=tool["name"], description=tool["description"])(tool["handler"])
    logger.info("Registered %d circulation tools", len(tools))

    resources = build_book_resources(library)
    for resource in resources:
        mcp.resource(
            resource["uri_template"],
            name=resource["name"],
            description=resource["description"],
            mime_type=resource["mime_type"],
        )(resource["handler"])
    logger.info("Registered %d book resources", len(resources))

    return mcp


def run_stdio_server(mcp: FastMCP, config: LibraryConfig) -> None:
    """Run the MCP server using stdio transport."""
    logger.info("Starting %s v%s on stdio transport", config.server_name, config.server_version)

    def signal_handler(signum: int, _frame: Any) -> None:
        logger.info("Received signal %s, initiating shutdown...", signum)
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        logger.info("MCP Server ready and waiting for connections...")
        mcp.run(transport="stdio")
    except Exception:
        logger.exception("Fatal error in MCP server")
        sys.exit(1)


def main() -> None:
    """Main entry point for the MCP server.

    Started via ``python -m lending_library.server`` or the
    ``lending-library-mcp`` console script.
    """
    config = get_config()
    configure_logging(config)

    try:
        logger.info("=" * 60)
        logger.info("Lending Library MCP Server")
        logger.info("Version: %s", config.server_version)
        logger.info("Transport: %s", config.transport)
        logger.info("Debug Mode: %s", config.debug)
        logger.info("=" * 60)

        if config.transport != "stdio":
            # TODO: add http_host/http_port settings and serve streamable_http
            logger.error("Unsupported transport: %s", config.transport)
            sys.exit(1)

        run_stdio_server(create_server(config=config), config)

    except KeyboardInterrupt:
        logger.info("Server stopped by user")


if __name__ == "__main__":
    main()
