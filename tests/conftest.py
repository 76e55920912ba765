"""Shared fixtures for gitsim tests."""

import itertools

import pytest

from gitsim.dispatch import execute
from gitsim.models import Commit, PendingConflict, RepositoryState


class HashSequence:
    """Deterministic hash generator: h000001, h000002, ..."""

    def __init__(self, prefix: str = "h"):
        self.prefix = prefix
        self._counter = itertools.count(1)

    def __call__(self) -> str:
        return f"{self.prefix}{next(self._counter):06d}"


# --- Fixtures ---


@pytest.fixture
def hashes():
    return HashSequence()


@pytest.fixture
def run(hashes):
    """Run command lines in order, threading the state; returns the last result.

    Extra keyword arguments (rebase_text, conflict_text) go to every call.
    """
    def _run(state, *lines, **payloads):
        result = None
        for line in lines:
            result = execute(line, state, new_hash=hashes, **payloads)
            state = result.state
        return result
    return _run


@pytest.fixture
def repo():
    """Initialized, empty repository."""
    return RepositoryState(initialized=True)


@pytest.fixture
def repo_with_commits():
    """Three commits on main and a clean working copy."""
    commits = [
        Commit(hash="aaa1111", message="Initial commit", files={"README.md": "# Project"}, author="alice"),
        Commit(hash="bbb2222", message="Add app", files={"app.py": "print('hi')"}, author="bob"),
        Commit(hash="ccc3333", message="Update readme", files={"README.md": "# Project\nMore"}, author="alice"),
    ]
    return RepositoryState(
        initialized=True,
        commits=commits,
        files={"README.md": "# Project\nMore", "app.py": "print('hi')"},
    )


@pytest.fixture
def conflict_scenario():
    """main and feature-a both changed config.txt; merging feature-a conflicts."""
    return RepositoryState(
        initialized=True,
        branches=["main", "feature-a"],
        files={"config.txt": "port=3000"},
        commits=[Commit(hash="base111", message="Initial commit", files={"config.txt": "port=3000"}, branch="main")],
        pending_conflict=PendingConflict(branch="feature-a", file="config.txt", ours="port=3000", theirs="port=8080"),
    )


@pytest.fixture
def wip_scenario():
    """A base commit followed by three WIP commits and a finishing commit."""
    commits = [
        Commit(hash="base000", message="Project setup", files={"setup.py": "setup()"}),
        Commit(hash="wip1111", message="WIP", files={"a.txt": "a"}),
        Commit(hash="wip2222", message="WIP again", files={"b.txt": "b"}),
        Commit(hash="wip3333", message="More WIP", files={"c.txt": "c"}),
        Commit(hash="finish1", message="Finished feature", files={"d.txt": "d"}),
    ]
    files = {}
    for commit in commits:
        files.update(commit.files)
    return RepositoryState(initialized=True, commits=commits, files=files)


@pytest.fixture
def feature_scenario():
    """On `feature`, branched from main at a1b2c3 while main moved on."""
    return RepositoryState(
        initialized=True,
        current_branch="feature",
        branches=["main", "feature"],
        commits=[
            Commit(hash="a1b2c3d", message="Initial commit", branch="main", files={"main.txt": "Main content"}),
            Commit(hash="g7h8i9j", message="Main update", branch="main", files={"main.txt": "Updated"}),
            Commit(hash="d4e5f6a", message="Feature work", branch="feature", files={"feature.txt": "Feature"}),
        ],
        feature_branch_base="a1b2c3d",
        feature_commits=[
            Commit(hash="d4e5f6a", message="Feature work", branch="feature", files={"feature.txt": "Feature"}),
        ],
        files={"main.txt": "Updated", "feature.txt": "Feature"},
    )


@pytest.fixture
def cherry_scenario():
    """On main; the feature branch holds a hotfix worth cherry-picking."""
    return RepositoryState(
        initialized=True,
        branches=["main", "feature"],
        commits=[Commit(hash="main111", message="Main work", branch="main")],
        feature_commits=[
            Commit(hash="feat111", message="Feature commit 1", branch="feature"),
            Commit(hash="hotfix1", message="Important hotfix", branch="feature", files={"fix.txt": "fix"}),
            Commit(hash="feat222", message="Feature commit 2", branch="feature"),
        ],
    )


@pytest.fixture
def remote_scenario():
    """Local main with origin configured; origin has one extra commit."""
    local = [Commit(hash="aaa1111", message="Initial commit", files={"README.md": "# Repo"})]
    remote = local + [Commit(hash="rem2222", message="Remote change", files={"remote.txt": "from origin"})]
    return RepositoryState(
        initialized=True,
        commits=local,
        files={"README.md": "# Repo"},
        remotes={"origin": "https://github.com/team/repo.git"},
        remote_commits={"origin": remote},
    )
