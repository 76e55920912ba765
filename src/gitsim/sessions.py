"""The two modal sub-sessions: merge conflict and interactive rebase.

Both are held in `RepositoryState.session`, so at most one can be open.
Functions here mutate the handler's private state copy and return the
directive the UI needs to open or close its editor.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable

from .constants import MARKER_OURS, MARKER_SEPARATOR, MARKER_THEIRS
from .models import (
    Commit,
    ConflictSession,
    OpenConflict,
    OpenRebase,
    PendingConflict,
    RebaseSession,
    RepositoryState,
)

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Conflict sub-session
# ─────────────────────────────────────────────────────────────────────────────


def conflict_buffer(ours: str, theirs: str, branch: str) -> str:
    """Two-sided view of a conflicted file with standard delimiters."""
    return "\n".join([MARKER_OURS, ours, MARKER_SEPARATOR, theirs, f"{MARKER_THEIRS} {branch}"])


def has_markers(text: str) -> bool:
    return any(
        line.startswith((MARKER_OURS[:7], MARKER_THEIRS)) or line == MARKER_SEPARATOR
        for line in text.splitlines()
    )


def open_conflict(state: RepositoryState, pending: PendingConflict) -> OpenConflict:
    """Enter the conflict sub-session for a scenario-declared conflict."""
    buffer = conflict_buffer(pending.ours, pending.theirs, pending.branch)
    state.session = ConflictSession(
        file=pending.file,
        ours=pending.ours,
        theirs=pending.theirs,
        branch=pending.branch,
        resolved=buffer,
        previous=state.working_directory.get(pending.file),
    )
    state.working_directory[pending.file] = buffer
    logger.debug(f"Conflict session opened on {pending.file} (merging {pending.branch})")
    return OpenConflict(file=pending.file, ours=pending.ours, theirs=pending.theirs, resolved=buffer)


def resolve_conflict(state: RepositoryState, text: str | None) -> str:
    """Write and stage the resolution, closing the session.

    Args:
        state: Snapshot with an open conflict session
        text: Resolution from the external editor; falls back to the
              session's own buffer when None

    Returns:
        The staged content
    """
    session = state.conflict_state
    assert session is not None
    content = text if text is not None else session.resolved
    state.working_directory[session.file] = content
    state.staged_files[session.file] = content
    state.merge_head = session.branch
    state.pending_conflict = None
    state.session = None
    logger.debug(f"Conflict on {session.file} resolved")
    return content


def abort_conflict(state: RepositoryState) -> None:
    """Drop the conflict session and put the working copy back as it was."""
    session = state.conflict_state
    assert session is not None
    if session.previous is None:
        state.working_directory.pop(session.file, None)
    else:
        state.working_directory[session.file] = session.previous
    state.session = None
    state.merge_head = None
    logger.debug(f"Conflict on {session.file} aborted")


# ─────────────────────────────────────────────────────────────────────────────
# Interactive-rebase sub-session
# ─────────────────────────────────────────────────────────────────────────────

ACTIONS = {
    "pick": "pick", "p": "pick",
    "reword": "reword", "r": "reword",
    "edit": "edit", "e": "edit",
    "squash": "squash", "s": "squash",
    "fixup": "fixup", "f": "fixup",
    "drop": "drop", "d": "drop",
}
_TODO_LINE = re.compile(r"^(\w+)\s+(\S+)(?:\s+(.*))?$")

TODO_HELP = """
# Rebase commands:
# p, pick <commit> = use commit
# r, reword <commit> = use commit, but edit the commit message
# e, edit <commit> = use commit (stopping for amend is not simulated)
# s, squash <commit> = use commit, but meld into previous commit
# f, fixup <commit> = like "squash", but discard this commit's log message
# d, drop <commit> = remove commit
#
# These lines can be re-ordered; they are executed from top to bottom.
# For reword, the text after the hash becomes the new message."""


@dataclass(frozen=True)
class TodoLine:
    action: str  # normalised: pick/reword/edit/squash/fixup/drop
    ref: str
    message: str


def build_todo(commits: list[Commit]) -> str:
    """Render the editable todo list, oldest commit first."""
    lines = [f"pick {c.hash} {c.message}" for c in commits]
    return "\n".join(lines) + "\n" + TODO_HELP


def parse_todo(text: str) -> list[TodoLine]:
    """Parse todo text; comments, blank and unparseable lines are ignored."""
    todo = []
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        m = _TODO_LINE.match(line)
        if m is None or m.group(1) not in ACTIONS:
            logger.debug(f"Ignoring todo line {line!r}")
            continue
        todo.append(TodoLine(ACTIONS[m.group(1)], m.group(2), (m.group(3) or "").strip()))
    return todo


def open_rebase(
    state: RepositoryState,
    commits: list[Commit],
    base_commit: str | None,
    target: str | None,
) -> OpenRebase:
    """Enter the interactive-rebase sub-session over `commits` (oldest first)."""
    todo_text = build_todo(commits)
    state.session = RebaseSession(
        commits=[c.model_copy(deep=True) for c in commits],
        base_commit=base_commit,
        target=target,
        todo_text=todo_text,
    )
    logger.debug(f"Rebase session opened over {len(commits)} commits (base={base_commit})")
    return OpenRebase(commits=commits, todo_text=todo_text)


def _find(commits: list[Commit], ref: str) -> Commit | None:
    matches = [c for c in commits if c.hash == ref]
    if not matches:
        matches = [c for c in commits if c.hash.startswith(ref)]
    return matches[0] if len(matches) == 1 else None


def apply_todo(session: RebaseSession, text: str, new_hash: Callable[[], str]) -> list[Commit]:
    """Replay the todo list in document order and return the rewritten commits.

    Every retained commit gets a fresh hash. squash/fixup fold into the
    previous retained commit; on the first line, or with nothing retained
    yet, they are treated as pick. edit behaves like pick.
    """
    processed: list[Commit] = []
    for index, line in enumerate(parse_todo(text)):
        commit = _find(session.commits, line.ref)
        if commit is None:
            logger.debug(f"Todo line references unknown commit {line.ref}; skipped")
            continue
        if line.action == "drop":
            continue

        if line.action in ("squash", "fixup") and index > 0 and processed:
            last = processed[-1]
            if line.action == "squash":
                last.message = f"{last.message}\n\n{line.message or commit.message}"
            last.files = {**last.files, **commit.files}
            continue

        message = commit.message
        if line.action == "reword" and line.message:
            message = line.message
        processed.append(
            commit.model_copy(update={"hash": new_hash(), "message": message, "files": dict(commit.files)})
        )
    return processed


def finish_rebase(state: RepositoryState, processed: list[Commit]) -> None:
    """Splice the rewritten commits after the base and close the session."""
    session = state.rebase_session
    assert session is not None
    if session.base_commit is None:
        kept: list[Commit] = []
    else:
        index = next((i for i, c in enumerate(state.commits) if c.hash == session.base_commit), None)
        if index is None:
            kept = state.commits[: max(len(state.commits) - len(session.commits), 0)]
        else:
            kept = state.commits[: index + 1]
    state.commits = kept + processed
    state.session = None
    logger.debug(f"Rebase finished: {len(processed)} commits after base {session.base_commit}")
