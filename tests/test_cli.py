"""Tests for CLI commands."""

import json

from click.testing import CliRunner

from gitsim.cli import cli, dump_state, load_state
from gitsim.models import Commit, RepositoryState


runner = CliRunner()


def test_run_prints_output():
    """Test running a short session from an empty snapshot."""
    result = runner.invoke(cli, ["run", "git init", "echo hi > a.txt", "git status"])
    assert result.exit_code == 0
    assert "Initialized empty Git repository" in result.output
    assert "Untracked files:" in result.output


def test_run_dump():
    """Test --dump prints the final snapshot with camelCase keys."""
    result = runner.invoke(cli, ["run", "git init", "git branch -a", "--dump"])
    assert result.exit_code == 0
    data = json.loads(result.output[result.output.index("{"):])
    assert data["initialized"] is True
    assert data["currentBranch"] == "main"


def test_state_file_round_trip(tmp_path):
    """Test --state loads a snapshot and --save writes it back."""
    path = tmp_path / "state.json"
    state = RepositoryState(initialized=True, commits=[Commit(hash="abc1234", message="Initial commit")])
    path.write_text(dump_state(state))

    result = runner.invoke(cli, ["--state", str(path), "run", "git branch topic", "--save"])
    assert result.exit_code == 0
    assert load_state(path).branches == ["main", "topic"]


def test_save_needs_state():
    """Test --save without --state fails."""
    result = runner.invoke(cli, ["run", "git init", "--save"])
    assert result.exit_code == 1


def test_invalid_state_file(tmp_path):
    """Test a malformed snapshot exits with an error."""
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"commits": "not a list"}))
    result = runner.invoke(cli, ["--state", str(path), "run", "git status"])
    assert result.exit_code == 1
    assert "invalid snapshot" in result.output


def test_missing_state_file_starts_fresh(tmp_path):
    """Test a nonexistent --state path means an empty snapshot."""
    result = runner.invoke(cli, ["--state", str(tmp_path / "none.json"), "run", "git status"])
    assert result.exit_code == 0
    assert "not a git repository" in result.output


def test_repl_quit():
    """Test the REPL runs commands until :quit."""
    result = runner.invoke(cli, ["repl"], input="git init\n:undo\n:redo\n:quit\n")
    assert result.exit_code == 0
    assert "Initialized empty Git repository" in result.output
    assert "Undone" in result.output
    assert "Redone" in result.output


def test_repl_eof():
    """Test the REPL exits cleanly at end of input."""
    result = runner.invoke(cli, ["repl"], input="pwd\n")
    assert result.exit_code == 0
    assert "/home/user/project" in result.output


def test_repl_edit_without_session():
    """Test :edit with nothing open."""
    result = runner.invoke(cli, ["repl"], input=":edit\n:quit\n")
    assert "No conflict or rebase session is open" in result.output
