"""The handful of shell commands the terminal understands.

They act only on the simulated working copy; nothing touches the real
filesystem.
"""

from __future__ import annotations

import re

from .constants import WORKTREE_PATH
from .context import CommandContext
from .errors import CommandError
from .parser import tokenize
from .sessions import conflict_buffer

SHELL_USAGE = [
    ("system", "Available commands:"),
    ("output", "  Git: init, status, add, commit, log, diff, branch, checkout, switch, merge,"),
    ("output", "       stash, rebase, reset, restore, revert, cherry-pick, tag, show, remote,"),
    ("output", "       fetch, pull, push, clone, blame, bisect, reflog, worktree, submodule"),
    ("output", "  Shell: ls, cat, pwd, echo, rm, mkdir, clear, help"),
]

_REDIRECT = re.compile(r"""^(?P<text>(?:"[^"]*"|'[^']*'|[^'">])*?)\s*(?P<op>>>?)\s*(?P<path>\S+)\s*$""")


def cmd_help(ctx: CommandContext) -> None:
    for kind, text in SHELL_USAGE:
        ctx.out.emit(kind, text)


def cmd_ls(ctx: CommandContext) -> None:
    state = ctx.state
    paths = set(state.files) | set(state.working_directory) | set(state.staged_files)
    if state.initialized and any(arg.startswith("-") and "a" in arg for arg in ctx.args):
        paths.add(".git/")
    if not paths:
        ctx.out.out("(empty directory)")
    for path in sorted(paths):
        ctx.out.out(path)


def cmd_cat(ctx: CommandContext) -> None:
    """Print files; the conflicted file shows its two-sided marker view."""
    state = ctx.state
    if not ctx.args:
        raise CommandError("cat: missing file operand")
    conflict = state.conflict_state
    for path in ctx.args:
        if conflict is not None and path == conflict.file:
            text = conflict_buffer(conflict.ours, conflict.theirs, conflict.branch)
        else:
            text = state.read_file(path)
        if text is None:
            ctx.out.error(f"cat: {path}: No such file or directory")
            continue
        for line in text.split("\n"):
            ctx.out.out(line)


def cmd_pwd(ctx: CommandContext) -> None:
    ctx.out.out(WORKTREE_PATH)


def cmd_echo(ctx: CommandContext) -> None:
    """Print text, or write it with `>` / append it with `>>`."""
    state = ctx.state
    m = _REDIRECT.match(ctx.rest)
    if m is None:
        ctx.out.out(" ".join(ctx.args))
        return

    text = " ".join(tokenize(m.group("text")))
    path = m.group("path")
    existing = state.read_file(path)
    if m.group("op") == ">>" and existing:
        state.working_directory[path] = f"{existing}\n{text}"
    else:
        state.working_directory[path] = text
    ctx.out.success(f"{'Updated' if existing is not None else 'Created'} {path}")


def cmd_rm(ctx: CommandContext) -> None:
    state = ctx.state
    recursive = any(arg.startswith("-") and "r" in arg.lower() for arg in ctx.args)
    paths = [arg for arg in ctx.args if not arg.startswith("-")]
    if not paths:
        raise CommandError("rm: missing operand")
    for path in paths:
        prefix = path.rstrip("/") + "/"
        matched = [p for p in state.working_directory if p == path or (recursive and p.startswith(prefix))]
        if not matched and path not in state.files:
            ctx.out.error(f"rm: {path}: No such file or directory")
            continue
        for p in matched:
            del state.working_directory[p]
        ctx.out.success(f"Removed {path}")


def cmd_mkdir(ctx: CommandContext) -> None:
    dirs = [arg for arg in ctx.args if not arg.startswith("-")]
    if not dirs:
        raise CommandError("mkdir: missing operand")
    for name in dirs:
        ctx.out.success(f"Created directory {name}")


def cmd_clear(ctx: CommandContext) -> None:
    ctx.clear = True
