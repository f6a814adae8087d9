"""Configuration management for the Lending Library MCP Server.

Settings come from environment variables prefixed with ``LENDING_LIBRARY_``
or from a ``.env`` file, validated with pydantic-settings.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LibraryConfig(BaseSettings):
    """MCP server configuration.

    Covers:
    - server name and version for the protocol handshake
    - transport selection
    - logging
    - book identifier format
    """

    model_config = SettingsConfigDict(
        # Use LENDING_LIBRARY_ prefix for all env vars
        env_prefix="LENDING_LIBRARY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Server Metadata ===

    server_name: str = Field(
        default="lending-library",
        description="MCP server name used in protocol handshake",
        pattern=r"^[a-z0-9-]+$",
    )

    server_version: str = Field(
        default="0.1.0",
        description="Server version for capability negotiation",
        pattern=r"^\d+\.\d+\.\d+(-[a-zA-Z0-9.]+)?$",
    )

    # === Transport Configuration ===

    transport: str = Field(
        default="stdio",
        description="Primary transport mechanism",
        pattern=r"^(stdio|streamable_http)$",
    )

    # === Catalog Configuration ===

    book_id_prefix: str = Field(
        default="book",
        description="Prefix for generated book identifiers",
        pattern=r"^[a-z][a-z0-9]*$",
        max_length=20,
    )

    # === Development Configuration ===

    debug: bool = Field(
        default=False,
        description="Enable debug logging for protocol messages",
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
        pattern=r"^(DEBUG|INFO|WARNING|ERROR)$",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: object) -> object:
        """Accept lowercase level names from the environment."""
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("server_name")
    @classmethod
    def validate_server_name(cls, v: str) -> str:
        """Validate server name length.

        MCP clients use server names for identification and routing.
        """
        if len(v) < 3:
            raise ValueError("Server name must be at least 3 characters")
        if len(v) > 50:
            raise ValueError("Server name must not exceed 50 characters")
        return v

    # === Computed Properties ===

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.debug or self.log_level == "DEBUG"

    @property
    def server_info(self) -> dict[str, str]:
        """Get server information for the MCP handshake."""
        return {
            "name": self.server_name,
            "version": self.server_version,
            "transport": self.transport,
        }


# === Global Configuration Instance ===
# Only the entry point reads this; library values are always passed explicitly.


class _ConfigStore:
    """Internal storage for configuration singleton."""

    _instance: LibraryConfig | None = None


def get_config() -> LibraryConfig:
    """Get or create the process configuration."""
    if _ConfigStore._instance is None:  # type: ignore[reportPrivateUsage]
        _ConfigStore._instance = LibraryConfig()  # type: ignore[reportPrivateUsage]
    return _ConfigStore._instance  # type: ignore[reportPrivateUsage]


def reset_config() -> None:
    """Reset configuration (useful for testing)."""
    _ConfigStore._instance = None  # type: ignore[reportPrivateUsage]
