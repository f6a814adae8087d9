"""
MCP Tools for the Lending Library Server.

Tools are the actions with side effects: registering books and moving them
between users. Read-only access lives in the resources package.
"""

from .circulation import build_circulation_tools

__all__ = [
    "build_circulation_tools",
]
