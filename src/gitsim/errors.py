"""Exceptions raised inside command handlers.

They never cross the interpreter boundary: the dispatcher turns them into
`error` output lines and keeps the caller's snapshot.
"""

from __future__ import annotations


class CommandError(Exception):
    """A precondition violation reported to the learner.

    Args:
        message: The error line, worded like the real tool.
        hints: Optional plain `output` lines shown after the error.
    """

    def __init__(self, message: str, hints: list[str] | None = None):
        super().__init__(message)
        self.message = message
        self.hints = hints or []


class NotARepositoryError(CommandError):
    """Raised for git verbs run before `git init`."""

    def __init__(self) -> None:
        super().__init__("fatal: not a git repository (or any of the parent directories): .git")
