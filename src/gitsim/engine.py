"""Stateful driver around the pure interpreter.

A UI (or the CLI) holds one `Simulator`: it keeps the current snapshot,
routes the open session's editable buffer into each command, and keeps
undo/redo history of accepted snapshots.
"""

import logging

from .context import HashGenerator
from .dispatch import execute
from .models import CommandResult, ConflictSession, RebaseSession, RepositoryState

logger = logging.getLogger(__name__)


class Simulator:
    """Current snapshot plus undo/redo history."""

    def __init__(self, state: RepositoryState | None = None, new_hash: HashGenerator | None = None):
        self._state = state if state is not None else RepositoryState()
        self._new_hash = new_hash
        self._undo: list[RepositoryState] = []
        self._redo: list[RepositoryState] = []

    @property
    def state(self) -> RepositoryState:
        return self._state

    @property
    def session_text(self) -> str | None:
        """Editable buffer of the open session (conflict resolution or todo list)."""
        session = self._state.session
        if isinstance(session, ConflictSession):
            return session.resolved
        if isinstance(session, RebaseSession):
            return session.todo_text
        return None

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    def run(self, line: str) -> CommandResult:
        """Execute one line; a changed snapshot becomes current and is undoable."""
        session = self._state.session
        result = execute(
            line,
            self._state,
            rebase_text=session.todo_text if isinstance(session, RebaseSession) else None,
            conflict_text=session.resolved if isinstance(session, ConflictSession) else None,
            new_hash=self._new_hash,
        )
        if result.state is not self._state and result.state != self._state:
            self._undo.append(self._state)
            self._redo.clear()
            self._state = result.state
        if result.directive is not None:
            logger.debug(f"Session directive: {result.directive.kind}")
        return result

    def edit(self, text: str) -> None:
        """Replace the open session's buffer.

        Raises:
            ValueError: If no session is open
        """
        session = self._state.session
        if isinstance(session, ConflictSession):
            session = session.model_copy(update={"resolved": text})
        elif isinstance(session, RebaseSession):
            session = session.model_copy(update={"todo_text": text})
        else:
            raise ValueError("No conflict or rebase session is open")
        self._state = self._state.model_copy(update={"session": session})

    def undo(self) -> bool:
        """Step back one accepted command. Returns False if there is nothing to undo."""
        if not self._undo:
            return False
        self._redo.append(self._state)
        self._state = self._undo.pop()
        return True

    def redo(self) -> bool:
        if not self._redo:
            return False
        self._undo.append(self._state)
        self._state = self._redo.pop()
        return True

    def reset(self, state: RepositoryState | None = None) -> None:
        """Start over from `state` (or an empty snapshot), dropping history."""
        self._state = state if state is not None else RepositoryState()
        self._undo.clear()
        self._redo.clear()
        logger.debug("Simulator reset")
