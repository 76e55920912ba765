"""Tests for the stash family."""

from gitsim.dispatch import execute


def _dirty(state):
    return state.model_copy(update={
        "working_directory": {"app.py": "wip"},
        "staged_files": {"new.txt": "n"},
    })


class TestStash:
    def test_push_saves_and_cleans(self, repo_with_commits):
        result = execute("git stash", _dirty(repo_with_commits))
        state = result.state
        assert state.working_directory == {}
        assert state.staged_files == {}
        assert len(state.stash) == 1
        assert state.stash[0].files == {"app.py": "wip", "new.txt": "n"}
        assert result.texts == ["Saved working directory and index state WIP on main: ccc3333 Update readme"]

    def test_push_with_message(self, repo_with_commits):
        result = execute('git stash push -m "halfway"', _dirty(repo_with_commits))
        assert result.state.stash[0].message == "On main: halfway"

    def test_save_message(self, repo_with_commits):
        result = execute("git stash save quick fix", _dirty(repo_with_commits))
        assert result.state.stash[0].message == "On main: quick fix"

    def test_nothing_to_save(self, repo_with_commits):
        result = execute("git stash", repo_with_commits)
        assert result.texts == ["No local changes to save"]
        assert result.state.stash == []

    def test_list_newest_first(self, repo_with_commits):
        state = execute('git stash push -m "first"', _dirty(repo_with_commits)).state
        state = execute('git stash push -m "second"', _dirty(state)).state
        assert execute("git stash list", state).texts == ["stash@{0}: On main: second", "stash@{1}: On main: first"]

    def test_pop_restores_and_drops(self, repo_with_commits):
        stashed = execute("git stash", _dirty(repo_with_commits)).state
        result = execute("git stash pop", stashed)
        assert result.state.working_directory == {"app.py": "wip", "new.txt": "n"}
        assert result.state.stash == []
        assert result.texts[-1] == "Dropped refs/stash@{0}"

    def test_apply_keeps_entry(self, repo_with_commits):
        stashed = execute("git stash", _dirty(repo_with_commits)).state
        result = execute("git stash apply", stashed)
        assert result.state.working_directory["app.py"] == "wip"
        assert len(result.state.stash) == 1

    def test_pop_empty(self, repo_with_commits):
        assert execute("git stash pop", repo_with_commits).errors == ["error: No stash entries found."]

    def test_drop_and_clear(self, repo_with_commits):
        state = execute("git stash", _dirty(repo_with_commits)).state
        state = execute("git stash", _dirty(state)).state
        dropped = execute("git stash drop stash@{1}", state)
        assert len(dropped.state.stash) == 1
        cleared = execute("git stash clear", state)
        assert cleared.state.stash == []

    def test_invalid_reference(self, repo_with_commits):
        state = execute("git stash", _dirty(repo_with_commits)).state
        assert execute("git stash pop stash@{3}", state).errors == ["error: stash@{3} is not a valid reference"]
