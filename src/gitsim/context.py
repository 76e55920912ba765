"""Per-invocation context handed to every command handler."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from .constants import MAX_HASH_ATTEMPTS
from .errors import CommandError
from .models import RepositoryState, SessionDirective
from .output import Output

logger = logging.getLogger(__name__)

HashGenerator = Callable[[], str]


class HashSource:
    """Wraps a hash generator so every issued hash is new to the snapshot.

    Re-draws on collision with any hash already in `state` or issued earlier
    in the same command.
    """

    def __init__(self, generator: HashGenerator, state: RepositoryState):
        self._generator = generator
        self._taken = state.all_hashes()

    def __call__(self) -> str:
        for _ in range(MAX_HASH_ATTEMPTS):
            candidate = self._generator()
            if candidate not in self._taken:
                self._taken.add(candidate)
                return candidate
            logger.debug(f"Hash collision on {candidate}, drawing again")
        raise RuntimeError(f"hash generator produced {MAX_HASH_ATTEMPTS} colliding values")


@dataclass
class CommandContext:
    """Everything a handler may read or write.

    `state` is a private deep copy: handlers mutate it freely and the
    dispatcher returns it as the new snapshot unless a CommandError escapes.
    """

    state: RepositoryState
    verb: str
    args: list[str]
    rest: str
    new_hash: HashSource
    out: Output = field(default_factory=Output)
    rebase_text: str | None = None
    conflict_text: str | None = None
    directive: SessionDirective | None = None
    clear: bool = False

    def require_no_session(self, action: str) -> None:
        """Reject `action` while a conflict or interactive rebase is open."""
        if self.state.conflict_state is not None:
            raise CommandError(
                f"error: {action} is not possible because you have unmerged files.",
                ["hint: Fix them up in the work tree, and then use 'git add <file>'",
                 "hint: as appropriate to mark resolution and make a commit."],
            )
        if self.state.rebase_in_progress:
            raise CommandError(
                f"error: cannot {action}: an interactive rebase is in progress.",
                ["hint: use 'git rebase --continue' or 'git rebase --abort'"],
            )
