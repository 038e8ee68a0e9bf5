"""
Terminal UI for the chat REPL.
"""

from .console import ConsolePermissionHandler, ConsoleUI

__all__ = ["ConsoleUI", "ConsolePermissionHandler"]
