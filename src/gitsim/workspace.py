"""Linked worktrees and submodules."""

from __future__ import annotations

import posixpath

from .constants import DEFAULT_BRANCH, WORKTREE_PATH
from .context import CommandContext
from .errors import CommandError
from .models import RepositoryState, Submodule, Worktree
from .parser import Flag, parse_flags
from .remote import repo_name

WORKTREE_ADD_FLAGS = (
    Flag("new_branch", ("-b",), takes_value=True),
    Flag("force", ("-f", "--force")),
)

SUBMODULE_FLAGS = (
    Flag("init", ("--init",)),
    Flag("recursive", ("--recursive",)),
    Flag("remote", ("--remote",)),
)

_NULL_HASH = "0000000"


def _head_hash(state: RepositoryState) -> str:
    head = state.head_commit
    return head.hash if head else _NULL_HASH


def _checked_out_at(state: RepositoryState, branch: str) -> str | None:
    if branch == state.current_branch and not state.detached_head:
        return WORKTREE_PATH
    return next((wt.path for wt in state.worktrees if wt.branch == branch), None)


def cmd_worktree(ctx: CommandContext) -> None:
    """worktree list | add <path> [<branch>] | add -b <new> <path> | remove <path>"""
    state = ctx.state
    sub = ctx.args[0] if ctx.args else "list"
    args = ctx.args[1:]

    if sub == "list":
        ctx.out.out(f"{WORKTREE_PATH}  {_head_hash(state)} [{state.current_branch}]")
        for wt in state.worktrees:
            ctx.out.out(f"{wt.path}  {wt.hash} [{wt.branch}]")
        return

    if sub == "add":
        flags = parse_flags(args, WORKTREE_ADD_FLAGS)
        if not flags.positionals:
            raise CommandError("usage: git worktree add [-b <new-branch>] <path> [<commit-ish>]")
        path = flags.positionals[0]
        if path == WORKTREE_PATH or any(wt.path == path for wt in state.worktrees):
            raise CommandError(f"fatal: '{path}' already exists")

        new_branch = flags.get("new_branch")
        if new_branch is not None:
            if new_branch in state.branches:
                raise CommandError(f"fatal: a branch named '{new_branch}' already exists")
            branch, created = new_branch, True
        elif len(flags.positionals) > 1:
            branch, created = flags.positionals[1], False
            if branch not in state.branches:
                raise CommandError(f"fatal: invalid reference: {branch}")
        else:
            branch = posixpath.basename(path.rstrip("/"))
            created = branch not in state.branches

        holder = _checked_out_at(state, branch)
        if holder is not None and not flags.has("force"):
            raise CommandError(f"fatal: '{branch}' is already checked out at '{holder}'")

        if created:
            state.branches.append(branch)
            ctx.out.success(f"Preparing worktree (new branch '{branch}')")
        else:
            ctx.out.success(f"Preparing worktree (checking out '{branch}')")
        head = state.head_commit
        state.worktrees.append(Worktree(path=path, branch=branch, hash=_head_hash(state)))
        ctx.out.out(f"HEAD is now at {_head_hash(state)} {head.message if head else ''}".rstrip())
        return

    if sub in ("remove", "rm"):
        if not args:
            raise CommandError("usage: git worktree remove <path>")
        path = args[-1]
        remaining = [wt for wt in state.worktrees if wt.path != path]
        if len(remaining) == len(state.worktrees):
            raise CommandError(f"fatal: '{path}' is not a working tree")
        state.worktrees = remaining
        ctx.out.success("Worktree removed")
        return

    if sub == "prune":
        return

    raise CommandError(f"error: unknown subcommand: {sub}", ["usage: git worktree list | add | remove | prune"])


def _gitmodules(submodules: list[Submodule]) -> str:
    blocks = [f'[submodule "{s.path}"]\n\tpath = {s.path}\n\turl = {s.url}' for s in submodules]
    return "\n".join(blocks)


def cmd_submodule(ctx: CommandContext) -> None:
    """submodule [status] | add <url> [<path>] | init | update [--init] [--recursive]"""
    state = ctx.state
    sub = ctx.args[0] if ctx.args and not ctx.args[0].startswith("-") else "status"
    flags = parse_flags(ctx.args[1:] if ctx.args and sub == ctx.args[0] else ctx.args, SUBMODULE_FLAGS)

    if sub == "status":
        if not state.submodules:
            ctx.out.out("(no submodules)")
        for s in state.submodules:
            ctx.out.out(f" {_NULL_HASH} {s.path} (heads/{DEFAULT_BRANCH})")
    elif sub == "add":
        if not flags.positionals:
            raise CommandError("usage: git submodule add <repository> [<path>]")
        url = flags.positionals[0]
        path = flags.positionals[1] if len(flags.positionals) > 1 else repo_name(url)
        if any(s.path == path for s in state.submodules) or path in state.files:
            raise CommandError(f"fatal: '{path}' already exists in the index")
        state.submodules.append(Submodule(url=url, path=path))
        state.staged_files[".gitmodules"] = _gitmodules(state.submodules)
        ctx.out.out(f"Cloning into '{WORKTREE_PATH}/{path}'...")
        ctx.out.success("Submodule added")
    elif sub == "init":
        for s in state.submodules:
            ctx.out.success(f"Submodule '{s.path}' ({s.url}) registered for path '{s.path}'")
    elif sub in ("update", "sync"):
        for s in state.submodules:
            if flags.has("init"):
                ctx.out.success(f"Submodule '{s.path}' ({s.url}) registered for path '{s.path}'")
            ctx.out.success(f"Submodule path '{s.path}': checked out '{_NULL_HASH}'")
    else:
        raise CommandError(f"error: unknown subcommand: {sub}", ["usage: git submodule [status] | add | init | update"])
