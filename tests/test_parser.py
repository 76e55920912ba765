"""Tests for the tokenizer and the declarative flag grammar."""

import pytest

from gitsim.errors import CommandError
from gitsim.parser import Flag, parse_command, parse_flags, parse_revision, tokenize

COMMIT_FLAGS = (
    Flag("message", ("-m", "--message"), takes_value=True),
    Flag("all", ("-a", "--all")),
    Flag("amend", ("--amend",)),
)


class TestTokenize:
    def test_quoted_message_is_one_token(self):
        assert tokenize('git commit -m "Fix the bug"') == ["git", "commit", "-m", "Fix the bug"]

    def test_unbalanced_quote_falls_back_to_whitespace(self):
        """An unterminated quote does not raise."""
        assert tokenize('git commit -m "oops') == ["git", "commit", "-m", '"oops']


class TestParseCommand:
    def test_blank_line(self):
        assert parse_command("   ") is None

    def test_git_verb_and_args(self):
        parsed = parse_command('  git commit -m "msg"  ')
        assert parsed.program == "git"
        assert parsed.verb == "commit"
        assert parsed.args == ["-m", "msg"]
        assert parsed.raw == 'git commit -m "msg"'
        assert parsed.rest == '-m "msg"'

    @pytest.mark.parametrize("line", ["git", "git --help", "git help"])
    def test_help_forms(self, line):
        assert parse_command(line).verb == "help"

    def test_shell_verb(self):
        parsed = parse_command("echo hello > a.txt")
        assert parsed.program == "shell"
        assert parsed.verb == "echo"
        assert parsed.rest == "hello > a.txt"


class TestParseFlags:
    def test_short_flag_with_separate_value(self):
        flags = parse_flags(["-m", "hello world"], COMMIT_FLAGS)
        assert flags.get("message") == "hello world"

    def test_long_flag_equals_and_space_forms(self):
        assert parse_flags(["--message=x"], COMMIT_FLAGS).get("message") == "x"
        assert parse_flags(["--message", "y"], COMMIT_FLAGS).get("message") == "y"

    def test_bundled_short_flags(self):
        """`-am msg` sets both -a and -m."""
        flags = parse_flags(["-am", "msg"], COMMIT_FLAGS)
        assert flags.has("all")
        assert flags.get("message") == "msg"

    def test_attached_value(self):
        assert parse_flags(["-mmsg"], COMMIT_FLAGS).get("message") == "msg"

    def test_order_does_not_matter(self):
        a = parse_flags(["--amend", "-m", "x", "file"], COMMIT_FLAGS)
        b = parse_flags(["file", "-m", "x", "--amend"], COMMIT_FLAGS)
        assert a.values == b.values
        assert a.positionals == b.positionals == ["file"]

    def test_double_dash_ends_flags(self):
        flags = parse_flags(["--", "-a"], COMMIT_FLAGS)
        assert flags.positionals == ["-a"]
        assert not flags.has("all")

    def test_count_flag(self):
        assert parse_flags(["-3"], (), count_dest="max_count").get("max_count") == 3

    def test_unknown_flags_are_collected(self):
        flags = parse_flags(["--weird", "-z"], COMMIT_FLAGS)
        assert flags.unknown == ["--weird", "-z"]

    def test_missing_value_raises(self):
        with pytest.raises(CommandError):
            parse_flags(["-m"], COMMIT_FLAGS)


class TestParseRevision:
    @pytest.mark.parametrize("ref,steps", [
        ("HEAD", 0), ("@", 0), ("HEAD~", 1), ("HEAD~3", 3), ("HEAD^", 1), ("HEAD^^", 2),
    ])
    def test_relative_refs(self, ref, steps):
        assert parse_revision(ref) == steps

    def test_non_relative(self):
        assert parse_revision("main") is None
        assert parse_revision("abc1234") is None
