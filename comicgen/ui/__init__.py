"""User interface module."""

from .terminal_ui import TerminalUI, open_file

__all__ = ["TerminalUI", "open_file"]
