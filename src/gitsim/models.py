"""Core data models for the simulated repository.

Uses Pydantic v2 for validation, ULID randomness for commit hashes.
Curriculum snapshots may be supplied with camelCase keys; fields are
snake_case in Python.
"""

from __future__ import annotations

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel
from ulid import ULID

from .constants import DEFAULT_BRANCH, HASH_LENGTH


def generate_hash() -> str:
    """Generate a short hex commit hash from a ULID's random bits."""
    return ULID().hex[-HASH_LENGTH:]


class _Model(BaseModel):
    """Base model accepting both snake_case and camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Commit(_Model):
    """A recorded commit. `files` is what was staged when it was made."""

    hash: str
    message: str
    files: dict[str, str] = Field(default_factory=dict)
    branch: str | None = None
    author: str | None = None

    def short(self) -> str:
        return self.hash[:HASH_LENGTH]

    def matches(self, ref: str) -> bool:
        """Exact hash or (4+ char) prefix match."""
        return self.hash == ref or (len(ref) >= 4 and self.hash.startswith(ref))


class StashEntry(_Model):
    """Snapshot of the working directory at stash time."""

    files: dict[str, str] = Field(default_factory=dict)
    branch: str = DEFAULT_BRANCH
    message: str = ""


class TagRef(_Model):
    annotated: bool = False
    hash: str | None = None
    message: str | None = None


class ReflogEntry(_Model):
    hash: str
    action: str = "commit"
    message: str = ""


class PendingConflict(_Model):
    """Scenario-declared conflict that `merge <branch>` will hit."""

    branch: str
    file: str
    ours: str
    theirs: str


class Worktree(_Model):
    path: str
    branch: str
    hash: str


class Submodule(_Model):
    url: str
    path: str


# ─────────────────────────────────────────────────────────────────────────────
# Sessions
# ─────────────────────────────────────────────────────────────────────────────


class ConflictSession(_Model):
    """An unresolved merge conflict on a single file.

    `resolved` is the editable buffer; `previous` is the working copy of the
    file before the merge started (None if it was not in the working copy).
    """

    kind: Literal["conflict"] = "conflict"
    file: str
    ours: str
    theirs: str
    branch: str
    resolved: str = ""
    previous: str | None = None


class RebaseSession(_Model):
    """An interactive rebase waiting for its todo list."""

    kind: Literal["rebase"] = "rebase"
    commits: list[Commit] = Field(default_factory=list)  # oldest first
    base_commit: str | None = None
    target: str | None = None
    todo_text: str = ""


Session = Annotated[Union[ConflictSession, RebaseSession], Field(discriminator="kind")]


# ─────────────────────────────────────────────────────────────────────────────
# Repository State
# ─────────────────────────────────────────────────────────────────────────────


class RepositoryState(_Model):
    """Full in-memory snapshot of a simulated working copy.

    Handlers never mutate a caller's snapshot; the dispatcher hands them a
    deep copy and returns it as the new state.
    """

    initialized: bool = False
    current_branch: str = DEFAULT_BRANCH
    branches: list[str] = Field(default_factory=lambda: [DEFAULT_BRANCH])

    files: dict[str, str] = Field(default_factory=dict)
    staged_files: dict[str, str] = Field(default_factory=dict)
    working_directory: dict[str, str] = Field(default_factory=dict)

    commits: list[Commit] = Field(default_factory=list)  # oldest first
    feature_commits: list[Commit] = Field(default_factory=list)
    feature_branch: str = "feature"
    feature_branch_base: str | None = None

    stash: list[StashEntry] = Field(default_factory=list)  # last is newest
    session: Optional[Session] = None
    pending_conflict: PendingConflict | None = None
    merge_head: str | None = None

    remotes: dict[str, str] = Field(default_factory=dict)
    remote_commits: dict[str, list[Commit]] = Field(default_factory=dict)
    remote_branches: dict[str, str] = Field(default_factory=dict)
    upstreams: dict[str, str] = Field(default_factory=dict)
    diverged: bool = False

    tags: dict[str, TagRef] = Field(default_factory=dict)
    rebase_target: str | None = None
    reflog: list[ReflogEntry] = Field(default_factory=list)

    detached_head: bool = False
    head: str | None = None
    bisecting: bool = False
    worktrees: list[Worktree] = Field(default_factory=list)
    submodules: list[Submodule] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _lift_legacy_session(cls, data):
        """Accept the flat `conflictState` / `rebaseInProgress` snapshot shape."""
        if not isinstance(data, dict) or data.get("session") is not None:
            return data
        data = dict(data)
        conflict = data.pop("conflictState", None) or data.pop("conflict_state", None)
        in_progress = data.pop("rebaseInProgress", None) or data.pop("rebase_in_progress", None)
        rebase_commits = data.pop("rebaseCommits", None) or data.pop("rebase_commits", None) or []
        base = data.pop("rebaseBaseCommit", None) or data.pop("rebase_base_commit", None)
        if conflict:
            data["session"] = {"kind": "conflict", "branch": "MERGE_HEAD", **conflict}
        elif in_progress:
            data["session"] = {"kind": "rebase", "commits": rebase_commits, "base_commit": base}
        return data

    @model_validator(mode="after")
    def _check_branches(self) -> "RepositoryState":
        if len(set(self.branches)) != len(self.branches):
            raise ValueError(f"duplicate branch names: {self.branches}")
        if self.current_branch not in self.branches:
            raise ValueError(f"current branch '{self.current_branch}' is not in {self.branches}")
        return self

    # --- session views ---

    @property
    def conflict_state(self) -> ConflictSession | None:
        return self.session if isinstance(self.session, ConflictSession) else None

    @property
    def rebase_session(self) -> RebaseSession | None:
        return self.session if isinstance(self.session, RebaseSession) else None

    @property
    def rebase_in_progress(self) -> bool:
        return self.rebase_session is not None

    @property
    def rebase_commits(self) -> list[Commit]:
        return self.rebase_session.commits if self.rebase_session else []

    @property
    def rebase_base_commit(self) -> str | None:
        return self.rebase_session.base_commit if self.rebase_session else None

    # --- derived views ---

    @property
    def head_commit(self) -> Commit | None:
        return self.commits[-1] if self.commits else None

    def find_commit(self, ref: str) -> Commit | None:
        """Find a commit on the current lineage by hash or prefix."""
        for commit in reversed(self.commits):
            if commit.matches(ref):
                return commit
        return None

    def all_hashes(self) -> set[str]:
        """Every hash the snapshot knows about, for freshness checks."""
        hashes = {c.hash for c in self.commits}
        hashes.update(c.hash for c in self.feature_commits)
        for commits in self.remote_commits.values():
            hashes.update(c.hash for c in commits)
        hashes.update(e.hash for e in self.reflog)
        hashes.update(c.hash for c in self.rebase_commits)
        return hashes

    def modified_paths(self) -> list[str]:
        """Tracked paths whose working copy differs from the index.

        The index is the staged copy when there is one, else the last commit,
        so a freshly staged path is not also reported as modified.
        """
        return [
            path for path, content in self.working_directory.items()
            if path in self.files and content != self.staged_files.get(path, self.files[path])
        ]

    def untracked_paths(self) -> list[str]:
        return [
            path for path in self.working_directory
            if path not in self.files and path not in self.staged_files
        ]

    def read_file(self, path: str) -> str | None:
        """Content as seen on disk: working copy, then committed, then staged."""
        for layer in (self.working_directory, self.files, self.staged_files):
            if path in layer:
                return layer[path]
        return None


# ─────────────────────────────────────────────────────────────────────────────
# Interpreter output
# ─────────────────────────────────────────────────────────────────────────────

LineKind = Literal["input", "output", "error", "success", "warning", "system"]


class OutputLine(_Model):
    kind: LineKind
    text: str


class OpenConflict(_Model):
    kind: Literal["open-conflict"] = "open-conflict"
    file: str
    ours: str
    theirs: str
    resolved: str


class OpenRebase(_Model):
    kind: Literal["open-rebase"] = "open-rebase"
    commits: list[Commit]
    todo_text: str


class CloseSession(_Model):
    kind: Literal["close-session"] = "close-session"


SessionDirective = Annotated[
    Union[OpenConflict, OpenRebase, CloseSession], Field(discriminator="kind")
]


class CommandResult(_Model):
    """What one command produced: the next snapshot plus display lines."""

    state: RepositoryState
    lines: list[OutputLine] = Field(default_factory=list)
    directive: Optional[SessionDirective] = None
    clear: bool = False

    @property
    def output(self) -> list[OutputLine]:
        """Lines excluding the echoed input."""
        return [line for line in self.lines if line.kind != "input"]

    @property
    def texts(self) -> list[str]:
        return [line.text for line in self.output]

    @property
    def errors(self) -> list[str]:
        return [line.text for line in self.lines if line.kind == "error"]
