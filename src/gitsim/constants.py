"""Tunables shared by the interpreter.

Kept in one place so handlers and tests agree on wording and defaults.
"""

# --- Repository defaults ---
DEFAULT_BRANCH = "main"
DEFAULT_REMOTE = "origin"
WORKTREE_PATH = "/home/user/project"
DEFAULT_COMMIT_MESSAGE = "Commit message"

# --- Hashes ---
HASH_LENGTH = 7
MAX_HASH_ATTEMPTS = 64  # re-draws before giving up on a colliding generator

# --- Interactive rebase ---
DEFAULT_REBASE_WINDOW = 4  # commits offered by a bare `rebase -i`

# --- Conflict markers ---
MARKER_OURS = "<<<<<<< HEAD"
MARKER_SEPARATOR = "======="
MARKER_THEIRS = ">>>>>>>"

# --- Inspection ---
BLAME_AUTHORS = ("alice", "bob", "charlie")
