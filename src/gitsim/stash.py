"""The stash family: push/save, list, pop, apply, drop, clear."""

from __future__ import annotations

import logging
import re

from .context import CommandContext
from .errors import CommandError
from .models import StashEntry
from .parser import Flag, parse_flags

logger = logging.getLogger(__name__)

PUSH_FLAGS = (
    Flag("message", ("-m", "--message"), takes_value=True),
    Flag("keep_index", ("-k", "--keep-index")),
    Flag("include_untracked", ("-u", "--include-untracked")),
)

_STASH_REF = re.compile(r"^(?:stash@\{(\d+)\}|(\d+))$")


def _index(ctx: CommandContext, args: list[str]) -> int:
    """Position (0 = newest) named by `stash@{n}` or `n`; defaults to 0."""
    if not ctx.state.stash:
        raise CommandError("error: No stash entries found.")
    if not args:
        return 0
    m = _STASH_REF.match(args[0])
    if m is None:
        raise CommandError(f"error: '{args[0]}' is not a stash-like commit")
    n = int(m.group(1) or m.group(2))
    if n >= len(ctx.state.stash):
        raise CommandError(f"error: stash@{{{n}}} is not a valid reference")
    return n


def _push(ctx: CommandContext, args: list[str], save_message: bool = False) -> None:
    state = ctx.state
    ctx.require_no_session("stash")
    flags = parse_flags(args, PUSH_FLAGS)
    message = " ".join(flags.positionals) if save_message and flags.positionals else flags.get("message")

    changes = {**state.staged_files, **state.working_directory}
    if not changes:
        ctx.out.out("No local changes to save")
        return

    branch = state.current_branch
    if message:
        description = f"On {branch}: {message}"
    else:
        head = state.head_commit
        description = f"WIP on {branch}: {head.short()} {head.message}" if head else f"WIP on {branch}"

    state.stash.append(StashEntry(files=changes, branch=branch, message=description))
    state.working_directory = {}
    if not flags.has("keep_index"):
        state.staged_files = {}
    logger.debug(f"Stashed {len(changes)} path(s) from {branch}")
    ctx.out.success(f"Saved working directory and index state {description}")


def _apply(ctx: CommandContext, args: list[str], drop: bool) -> None:
    state = ctx.state
    n = _index(ctx, args)
    entry = state.stash[-1 - n]
    state.working_directory.update(entry.files)

    ctx.out.out(f"On branch {state.current_branch}")
    for path in entry.files:
        label = "modified" if path in state.files else "new file"
        ctx.out.warning(f"\t{label}:   {path}")
    if drop:
        del state.stash[-1 - n]
        ctx.out.success(f"Dropped refs/stash@{{{n}}}")


def cmd_stash(ctx: CommandContext) -> None:
    """Dispatch on the stash sub-command; bare `stash` and flag-only forms push."""
    state = ctx.state
    sub = ctx.args[0] if ctx.args and not ctx.args[0].startswith("-") else "push"
    rest = ctx.args[1:] if ctx.args and sub == ctx.args[0] else list(ctx.args)

    if sub == "push":
        _push(ctx, rest)
    elif sub == "save":
        _push(ctx, rest, save_message=True)
    elif sub == "list":
        if not state.stash:
            ctx.out.out("(no stashes)")
        for i, entry in enumerate(reversed(state.stash)):
            ctx.out.out(f"stash@{{{i}}}: {entry.message}")
    elif sub == "pop":
        _apply(ctx, rest, drop=True)
    elif sub == "apply":
        _apply(ctx, rest, drop=False)
    elif sub == "drop":
        n = _index(ctx, rest)
        del state.stash[-1 - n]
        ctx.out.success(f"Dropped refs/stash@{{{n}}}")
    elif sub == "clear":
        state.stash = []
    else:
        raise CommandError(f"error: unknown subcommand: {sub}", ["usage: git stash list | push | save | pop | apply | drop | clear"])
