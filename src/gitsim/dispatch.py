"""The interpreter entry point: one command line in, one result out.

`execute` is a pure reducer over `RepositoryState`. It never raises and
never mutates the snapshot it is given.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from . import branching, history, lifecycle, remote, rewrite, shell, staging, stash, workspace
from .context import CommandContext, HashGenerator, HashSource
from .errors import CommandError, NotARepositoryError
from .models import CommandResult, RepositoryState, generate_hash
from .output import Output
from .parser import parse_command

logger = logging.getLogger(__name__)

Handler = Callable[[CommandContext], None]


@dataclass(frozen=True)
class Command:
    handler: Handler
    needs_repo: bool = True


GIT_COMMANDS: dict[str, Command] = {
    "help": Command(lifecycle.cmd_git_help, needs_repo=False),
    "init": Command(lifecycle.cmd_init, needs_repo=False),
    "clone": Command(remote.cmd_clone, needs_repo=False),
    "status": Command(lifecycle.cmd_status),
    # staging
    "add": Command(staging.cmd_add),
    "commit": Command(staging.cmd_commit),
    "restore": Command(staging.cmd_restore),
    "reset": Command(staging.cmd_reset),
    # history
    "log": Command(history.cmd_log),
    "diff": Command(history.cmd_diff),
    "show": Command(history.cmd_show),
    "tag": Command(history.cmd_tag),
    "blame": Command(history.cmd_blame),
    "reflog": Command(history.cmd_reflog),
    "bisect": Command(history.cmd_bisect),
    # branching
    "branch": Command(branching.cmd_branch),
    "checkout": Command(branching.cmd_checkout),
    "switch": Command(branching.cmd_checkout),
    "merge": Command(branching.cmd_merge),
    # rewriting
    "rebase": Command(rewrite.cmd_rebase),
    "cherry-pick": Command(rewrite.cmd_cherry_pick),
    "revert": Command(rewrite.cmd_revert),
    "stash": Command(stash.cmd_stash),
    # collaboration
    "remote": Command(remote.cmd_remote),
    "fetch": Command(remote.cmd_fetch),
    "pull": Command(remote.cmd_pull),
    "push": Command(remote.cmd_push),
    "worktree": Command(workspace.cmd_worktree),
    "submodule": Command(workspace.cmd_submodule),
}

SHELL_COMMANDS: dict[str, Command] = {
    "help": Command(shell.cmd_help, needs_repo=False),
    "--help": Command(shell.cmd_help, needs_repo=False),
    "ls": Command(shell.cmd_ls, needs_repo=False),
    "cat": Command(shell.cmd_cat, needs_repo=False),
    "pwd": Command(shell.cmd_pwd, needs_repo=False),
    "echo": Command(shell.cmd_echo, needs_repo=False),
    "rm": Command(shell.cmd_rm, needs_repo=False),
    "mkdir": Command(shell.cmd_mkdir, needs_repo=False),
    "clear": Command(shell.cmd_clear, needs_repo=False),
}


def _unrecognized(raw: str, state: RepositoryState, out: Output) -> CommandResult:
    out.error(f"Command not recognized: {raw}")
    out.out("Type 'help' or 'git --help' for available commands.")
    return CommandResult(state=state, lines=out.lines)


def execute(
    line: str,
    state: RepositoryState,
    *,
    rebase_text: str | None = None,
    conflict_text: str | None = None,
    new_hash: HashGenerator | None = None,
) -> CommandResult:
    """Run one command line against a snapshot.

    Args:
        line: Raw terminal input
        state: Current snapshot; never mutated
        rebase_text: Edited todo list while an interactive rebase is open
        conflict_text: Edited resolution while a conflict is open
        new_hash: Hash generator; defaults to `generate_hash`

    Returns:
        CommandResult whose `lines` start with the `$ <line>` echo. On a
        precondition failure the result carries the original snapshot.
    """
    out = Output()
    parsed = parse_command(line)
    if parsed is None:
        return CommandResult(state=state)
    out.input(f"$ {parsed.raw}")

    table = GIT_COMMANDS if parsed.program == "git" else SHELL_COMMANDS
    command = table.get(parsed.verb)
    if command is None:
        logger.debug(f"No handler for {parsed.program} verb {parsed.verb!r}")
        return _unrecognized(parsed.raw, state, out)

    working = state.model_copy(deep=True)
    ctx = CommandContext(
        state=working,
        verb=parsed.verb,
        args=list(parsed.args),
        rest=parsed.rest,
        new_hash=HashSource(new_hash or generate_hash, state),
        out=out,
        rebase_text=rebase_text,
        conflict_text=conflict_text,
    )

    try:
        if parsed.program == "git" and command.needs_repo and not state.initialized:
            raise NotARepositoryError()
        logger.debug(f"Dispatching {parsed.program} {parsed.verb} {parsed.args}")
        command.handler(ctx)
    except CommandError as e:
        out.error(e.message)
        for hint in e.hints:
            out.out(hint)
        return CommandResult(state=state, lines=out.lines)
    except Exception:
        logger.exception(f"Handler for '{parsed.verb}' failed on {parsed.raw!r}")
        out.error(f"error: internal error while running '{parsed.verb}'")
        return CommandResult(state=state, lines=out.lines)

    if ctx.clear:
        return CommandResult(state=ctx.state, clear=True)
    return CommandResult(state=ctx.state, lines=out.lines, directive=ctx.directive)
