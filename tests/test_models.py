"""Tests for the repository snapshot models."""

import pytest
from pydantic import ValidationError

from gitsim.models import (
    CommandResult,
    Commit,
    ConflictSession,
    OutputLine,
    RebaseSession,
    RepositoryState,
    generate_hash,
)


class TestCommit:
    def test_matches_exact_and_prefix(self):
        """A commit matches its full hash or a prefix of four or more characters."""
        commit = Commit(hash="abc1234", message="x")
        assert commit.matches("abc1234")
        assert commit.matches("abc1")
        assert not commit.matches("abc")
        assert not commit.matches("abd1")

    def test_generate_hash_shape(self):
        """Generated hashes are seven lowercase hex digits."""
        value = generate_hash()
        assert len(value) == 7
        int(value, 16)
        assert value == value.lower()


class TestRepositoryState:
    def test_defaults(self):
        """A fresh snapshot is uninitialized on main with empty collections."""
        state = RepositoryState()
        assert state.initialized is False
        assert state.current_branch == "main"
        assert state.branches == ["main"]
        assert state.commits == []
        assert state.feature_commits == []
        assert state.reflog == []
        assert state.diverged is False
        assert state.session is None
        assert state.conflict_state is None
        assert state.rebase_in_progress is False

    def test_accepts_camel_case_snapshot(self):
        """Curriculum snapshots use camelCase keys."""
        state = RepositoryState.model_validate({
            "initialized": True,
            "currentBranch": "main",
            "branches": ["main", "feature"],
            "stagedFiles": {"a.txt": "A"},
            "workingDirectory": {"b.txt": "B"},
            "featureBranchBase": "abc1234",
            "featureCommits": [{"hash": "f1", "message": "feat", "files": {}}],
        })
        assert state.staged_files == {"a.txt": "A"}
        assert state.working_directory == {"b.txt": "B"}
        assert state.feature_branch_base == "abc1234"
        assert state.feature_commits[0].hash == "f1"

    def test_current_branch_must_exist(self):
        """current_branch outside branches is rejected."""
        with pytest.raises(ValidationError):
            RepositoryState(current_branch="dev", branches=["main"])

    def test_duplicate_branches_rejected(self):
        with pytest.raises(ValidationError):
            RepositoryState(branches=["main", "main"])

    def test_flat_conflict_state_becomes_session(self):
        """The flat conflictState shape is lifted into the session variant."""
        state = RepositoryState.model_validate({
            "conflictState": {"file": "f.txt", "ours": "a", "theirs": "b", "resolved": "x"},
        })
        assert isinstance(state.session, ConflictSession)
        assert state.conflict_state.file == "f.txt"
        assert state.rebase_in_progress is False

    def test_flat_rebase_state_becomes_session(self):
        state = RepositoryState.model_validate({
            "rebaseInProgress": True,
            "rebaseCommits": [{"hash": "c1", "message": "one"}],
            "rebaseBaseCommit": "c0",
        })
        assert isinstance(state.session, RebaseSession)
        assert state.rebase_in_progress is True
        assert [c.hash for c in state.rebase_commits] == ["c1"]
        assert state.rebase_base_commit == "c0"

    def test_json_round_trip_keeps_session(self):
        """Dumping by alias and validating again preserves the tagged session."""
        state = RepositoryState(
            initialized=True,
            session=RebaseSession(commits=[Commit(hash="c1", message="one")], base_commit="c0", todo_text="pick c1 one"),
        )
        restored = RepositoryState.model_validate_json(state.model_dump_json(by_alias=True))
        assert restored == state

    def test_status_sets_are_disjoint(self):
        """A staged path is not also reported as modified or untracked."""
        state = RepositoryState(
            files={"a.txt": "1"},
            staged_files={"a.txt": "2", "new.txt": "n"},
            working_directory={"a.txt": "2", "new.txt": "n", "scratch.txt": "s"},
        )
        assert state.modified_paths() == []
        assert state.untracked_paths() == ["scratch.txt"]

    def test_read_file_prefers_working_copy(self):
        state = RepositoryState(files={"a.txt": "old"}, working_directory={"a.txt": "new"})
        assert state.read_file("a.txt") == "new"
        assert state.read_file("missing.txt") is None

    def test_all_hashes_covers_every_history(self):
        state = RepositoryState(
            commits=[Commit(hash="c1", message="")],
            feature_commits=[Commit(hash="f1", message="")],
            remote_commits={"origin": [Commit(hash="r1", message="")]},
        )
        assert state.all_hashes() == {"c1", "f1", "r1"}


class TestCommandResult:
    def test_output_excludes_input_echo(self):
        result = CommandResult(
            state=RepositoryState(),
            lines=[OutputLine(kind="input", text="$ ls"), OutputLine(kind="error", text="boom")],
        )
        assert result.texts == ["boom"]
        assert result.errors == ["boom"]
