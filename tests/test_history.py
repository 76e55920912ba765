"""Tests for log, diff, show, tag, blame, reflog and bisect."""

from gitsim.dispatch import execute
from gitsim.models import Commit, ReflogEntry, RepositoryState


def _log_state():
    commits = [
        Commit(hash="c000001", message="Add config", author="Alice", files={"config.py": "DEBUG = True"}),
        Commit(hash="c000002", message="Add api", author="Bob", files={"api.py": "def get(): pass"}),
        Commit(hash="c000003", message="Tune config", author="alice", files={"config.py": "DEBUG = False"}),
        Commit(hash="c000004", message="Docs", author="Carol", files={"README.md": "docs"}),
    ]
    return RepositoryState(initialized=True, commits=commits)


class TestLog:
    def test_oneline_newest_first(self):
        texts = execute("git log --oneline", _log_state()).texts
        assert texts == ["c000004 Docs", "c000003 Tune config", "c000002 Add api", "c000001 Add config"]

    def test_graph_prefix(self):
        texts = execute("git log --oneline --graph", _log_state()).texts
        assert texts[0] == "* c000004 Docs"

    def test_count_forms(self):
        """-N, -n N and --max-count N all limit to the most recent N."""
        for line in ("git log --oneline -2", "git log --oneline -n 2", "git log --oneline --max-count 2",
                     "git log --oneline --max-count=2"):
            assert execute(line, _log_state()).texts == ["c000004 Docs", "c000003 Tune config"], line

    def test_author_filter_case_insensitive(self):
        texts = execute("git log --oneline --author=ALICE", _log_state()).texts
        assert texts == ["c000003 Tune config", "c000001 Add config"]

    def test_pickaxe_filter(self):
        texts = execute('git log --oneline -S "DEBUG"', _log_state()).texts
        assert texts == ["c000003 Tune config", "c000001 Add config"]

    def test_filters_compose_limit_last(self):
        """Limit applies after filtering and keeps the most recent match."""
        texts = execute("git log --oneline --author alice -S DEBUG -1", _log_state()).texts
        assert texts == ["c000003 Tune config"]

    def test_full_format(self):
        texts = execute("git log -1", _log_state()).texts
        assert texts[:4] == ["commit c000004", "Author: Carol", "", "    Docs"]

    def test_no_commits(self, repo):
        result = execute("git log", repo)
        assert result.errors == ["fatal: your current branch 'main' does not have any commits yet"]

    def test_remote_branch_history(self, remote_scenario):
        texts = execute("git log --oneline origin/main", remote_scenario).texts
        assert texts == ["rem2222 Remote change", "aaa1111 Initial commit"]

    def test_named_feature_branch(self, cherry_scenario):
        texts = execute("git log --oneline feature", cherry_scenario).texts
        assert texts == ["feat222 Feature commit 2", "hotfix1 Important hotfix", "feat111 Feature commit 1"]

    def test_unknown_ref(self):
        result = execute("git log nowhere", _log_state())
        assert result.errors[0].startswith("fatal: ambiguous argument 'nowhere'")


class TestDiff:
    def test_unstaged_diff(self, repo_with_commits):
        state = repo_with_commits.model_copy(update={"working_directory": {"app.py": "print('bye')"}})
        texts = execute("git diff", state).texts
        assert texts[0] == "diff --git a/app.py b/app.py"
        assert "-print('hi')" in texts
        assert "+print('bye')" in texts

    def test_staged_diff(self, repo_with_commits):
        state = repo_with_commits.model_copy(update={"staged_files": {"new.txt": "hello"}})
        texts = execute("git diff --cached", state).texts
        assert "new file mode 100644" in texts
        assert "+hello" in texts
        assert execute("git diff", state).texts == ["(no differences)"]

    def test_stat(self, repo_with_commits):
        state = repo_with_commits.model_copy(update={"working_directory": {"app.py": "print('bye')"}})
        texts = execute("git diff --stat", state).texts
        assert texts == [" app.py | 2 +-", " 1 file(s) changed, 1 insertion(s)(+), 1 deletion(s)(-)"]

    def test_nothing_staged(self, repo_with_commits):
        assert execute("git diff --staged", repo_with_commits).texts == ["(no staged changes)"]


class TestShowAndTag:
    def test_show_commit(self, repo_with_commits):
        texts = execute("git show bbb2222", repo_with_commits).texts
        assert texts[0] == "commit bbb2222"
        assert "    Add app" in texts

    def test_show_bad_object(self, repo_with_commits):
        assert execute("git show zzz9999", repo_with_commits).errors == ["fatal: bad object zzz9999"]

    def test_tag_lifecycle(self, repo_with_commits):
        created = execute("git tag v1.0", repo_with_commits)
        assert created.texts == ["Created tag 'v1.0'"]
        assert created.state.tags["v1.0"].hash == "ccc3333"
        assert execute("git tag", created.state).texts == ["v1.0"]

        duplicate = execute("git tag v1.0", created.state)
        assert duplicate.errors == ["fatal: tag 'v1.0' already exists"]

        deleted = execute("git tag -d v1.0", created.state)
        assert deleted.state.tags == {}

    def test_annotated_tag(self, repo_with_commits):
        result = execute('git tag -a v2.0 -m "Release"', repo_with_commits)
        tag = result.state.tags["v2.0"]
        assert tag.annotated is True
        assert tag.message == "Release"
        shown = execute("git show v2.0", result.state).texts
        assert shown[0] == "tag v2.0"
        assert "Tagger: Developer <dev@example.com>" in shown

    def test_tag_specific_commit(self, repo_with_commits):
        result = execute("git tag old aaa1111", repo_with_commits)
        assert result.state.tags["old"].hash == "aaa1111"

    def test_no_tags(self, repo_with_commits):
        assert execute("git tag", repo_with_commits).texts == ["(no tags)"]


class TestBlameReflogBisect:
    def test_blame(self, repo_with_commits):
        texts = execute("git blame README.md", repo_with_commits).texts
        assert len(texts) == 2
        assert texts[0].startswith("aaa1111 (alice")
        assert texts[0].endswith(") # Project")

    def test_blame_missing(self, repo_with_commits):
        assert execute("git blame nope", repo_with_commits).errors == ["fatal: no such path 'nope' in HEAD"]

    def test_reflog_derived(self, repo_with_commits):
        texts = execute("git reflog", repo_with_commits).texts
        assert texts[0] == "ccc3333 HEAD@{0}: commit: Update readme"
        assert texts[-1] == "aaa1111 HEAD@{2}: commit: Initial commit"

    def test_reflog_from_scenario(self, repo_with_commits):
        state = repo_with_commits.model_copy(update={
            "reflog": [ReflogEntry(hash="lost222", action="commit", message="HEAD@{1}: commit: Lost work")],
        })
        assert execute("git reflog", state).texts == ["lost222 HEAD@{1}: commit: Lost work"]

    def test_bisect_flow(self, repo_with_commits):
        before = execute("git bisect bad", repo_with_commits)
        assert before.errors == ['You need to start by "git bisect start"']

        started = execute("git bisect start", repo_with_commits)
        assert started.state.bisecting is True
        good = execute("git bisect good", started.state)
        assert good.output[-1].kind == "success"

        reset = execute("git bisect reset", started.state)
        assert reset.state.bisecting is False
        assert reset.texts[-1] == "Switched to branch 'main'"
