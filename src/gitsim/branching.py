"""Branching and merging: branch, checkout / switch, merge."""

from __future__ import annotations

import logging

from .constants import WORKTREE_PATH
from .context import CommandContext
from .errors import CommandError
from .models import CloseSession, Commit, RepositoryState
from .parser import Flag, parse_flags, parse_revision
from .sessions import abort_conflict, open_conflict

logger = logging.getLogger(__name__)

BRANCH_FLAGS = (
    Flag("all", ("-a", "--all")),
    Flag("remotes", ("-r", "--remotes")),
    Flag("delete", ("-d", "--delete", "-D")),
    Flag("list", ("-l", "--list")),
)

CHECKOUT_FLAGS = (
    Flag("create", ("-b", "-c", "--create")),
    Flag("force_create", ("-B", "-C", "--force-create")),
    Flag("detach", ("--detach",)),
    Flag("force", ("-f", "--force")),
)

MERGE_FLAGS = (
    Flag("abort", ("--abort",)),
    Flag("no_ff", ("--no-ff",)),
    Flag("ff_only", ("--ff-only",)),
    Flag("squash", ("--squash",)),
    Flag("message", ("-m", "--message"), takes_value=True),
)


def _switch(state: RepositoryState, name: str) -> None:
    state.current_branch = name
    state.detached_head = False
    state.head = None


# ─────────────────────────────────────────────────────────────────────────────
# branch
# ─────────────────────────────────────────────────────────────────────────────


def cmd_branch(ctx: CommandContext) -> None:
    """List, create or delete branches."""
    state = ctx.state
    flags = parse_flags(ctx.args, BRANCH_FLAGS)
    names = flags.positionals

    if flags.has("delete"):
        if not names:
            raise CommandError("fatal: branch name required")
        for name in names:
            if name == state.current_branch:
                ctx.out.error(f"error: Cannot delete branch '{name}' checked out at '{WORKTREE_PATH}'")
            elif name not in state.branches:
                ctx.out.error(f"error: branch '{name}' not found.")
            else:
                state.branches.remove(name)
                if name == state.feature_branch:
                    state.feature_commits = []
                ctx.out.success(f"Deleted branch {name}")
        return

    if not names or flags.has("list"):
        if not flags.has("remotes"):
            for name in state.branches:
                if name == state.current_branch and not state.detached_head:
                    ctx.out.success(f"* {name}")
                else:
                    ctx.out.out(f"  {name}")
        if flags.has("all"):
            for ref in state.remote_branches:
                ctx.out.out(f"  remotes/{ref}")
        elif flags.has("remotes"):
            for ref in state.remote_branches:
                ctx.out.out(f"  {ref}")
        return

    name = names[0]
    if name in state.branches:
        raise CommandError(f"fatal: A branch named '{name}' already exists.")
    state.branches.append(name)
    ctx.out.success(f"Created branch '{name}'")


# ─────────────────────────────────────────────────────────────────────────────
# checkout / switch
# ─────────────────────────────────────────────────────────────────────────────


def _detach_target(state: RepositoryState, ref: str) -> str | None:
    """Hash to detach at if `ref` names a known commit or reflog entry."""
    steps = parse_revision(ref)
    if steps is not None:
        return state.commits[-1 - steps].hash if steps < len(state.commits) else None
    for commit in [*state.commits, *state.feature_commits]:
        if commit.matches(ref):
            return ref
    for entry in state.reflog:
        if entry.hash == ref or (len(ref) >= 4 and entry.hash.startswith(ref)):
            return ref
    return None


def _checkout_paths(ctx: CommandContext, paths: list[str]) -> None:
    state = ctx.state
    restored = 0
    for path in paths:
        index = state.staged_files.get(path, state.files.get(path))
        if index is None:
            ctx.out.error(f"error: pathspec '{path}' did not match any file(s) known to git")
            continue
        state.working_directory[path] = index
        restored += 1
    if restored:
        ctx.out.warning(f"Updated {restored} path(s) from the index")


def cmd_checkout(ctx: CommandContext) -> None:
    """Switch branches, create-and-switch, detach at a commit, or restore paths."""
    state = ctx.state
    if "--" in ctx.args:
        _checkout_paths(ctx, ctx.args[ctx.args.index("--") + 1:])
        return

    flags = parse_flags(ctx.args, CHECKOUT_FLAGS)
    if not flags.positionals:
        raise CommandError(f"fatal: you must specify a branch to {ctx.verb}")
    name = flags.positionals[-1]
    ctx.require_no_session(ctx.verb)

    if flags.has("create") or flags.has("force_create"):
        if name in state.branches and not flags.has("force_create"):
            raise CommandError(f"fatal: A branch named '{name}' already exists.")
        if name not in state.branches:
            state.branches.append(name)
        _switch(state, name)
        ctx.out.success(f"Switched to a new branch '{name}'")
        return

    if name in state.branches and not flags.has("detach"):
        if name == state.current_branch and not state.detached_head:
            ctx.out.out(f"Already on '{name}'")
            return
        _switch(state, name)
        ctx.out.success(f"Switched to branch '{name}'")
        return

    target = _detach_target(state, name)
    if target is None:
        raise CommandError(f"error: pathspec '{name}' did not match any file(s) known to git")

    state.detached_head = True
    state.head = target
    ctx.out.warning(f"Note: switching to '{name}'.")
    ctx.out.out("")
    ctx.out.out('You are in "detached HEAD" state.')
    ctx.out.out("You can look around, make experimental changes and commit them,")
    ctx.out.out("and you can discard any commits you make in this state")
    ctx.out.out("without impacting any branches by switching back to a branch.")
    logger.debug(f"HEAD detached at {target}")


# ─────────────────────────────────────────────────────────────────────────────
# merge
# ─────────────────────────────────────────────────────────────────────────────


def _incoming(state: RepositoryState, name: str) -> list[Commit] | None:
    """Commits the named branch would bring in, or None if it is not mergeable."""
    if name == state.feature_branch and name in state.branches:
        return list(state.feature_commits)
    if name in state.branches:
        return []
    remote = name.split("/", 1)[0] if "/" in name else None
    if remote is not None and (remote in state.remote_commits or name in state.remote_branches):
        return list(state.remote_commits.get(remote, []))
    return None


def cmd_merge(ctx: CommandContext) -> None:
    """Fold a branch into the current one, or open the conflict sub-session.

    The merge is a union of commits and files; only a scenario-declared
    pending conflict produces a conflict.
    """
    state = ctx.state
    flags = parse_flags(ctx.args, MERGE_FLAGS)

    if flags.has("abort"):
        if state.conflict_state is None:
            raise CommandError("fatal: There is no merge to abort (MERGE_HEAD missing).")
        abort_conflict(state)
        ctx.directive = CloseSession()
        ctx.out.success("Merge aborted; working tree restored.")
        return

    if not flags.positionals:
        raise CommandError("fatal: No commit specified and merge.defaultToUpstream not set.")
    name = flags.positionals[0]
    ctx.require_no_session("merge")

    pending = state.pending_conflict
    if pending is not None and name == pending.branch:
        ctx.directive = open_conflict(state, pending)
        ctx.out.out(f"Auto-merging {pending.file}")
        ctx.out.error(f"CONFLICT (content): Merge conflict in {pending.file}")
        ctx.out.error("Automatic merge failed; fix conflicts and then commit the result.")
        ctx.out.system("Conflict editor opened. Resolve the conflict in the editor.")
        return

    if name == state.current_branch:
        ctx.out.out("Already up to date.")
        return

    incoming = _incoming(state, name)
    if incoming is None:
        raise CommandError(f"merge: {name} - not something we can merge")

    known = {c.hash for c in state.commits}
    new = [c for c in incoming if c.hash not in known]
    if not new:
        ctx.out.out("Already up to date.")
        return

    head = state.head_commit
    fast_forward = head is None or head.hash == state.feature_branch_base or any(c.hash == head.hash for c in incoming)
    if flags.has("ff_only") and not fast_forward:
        raise CommandError("fatal: Not possible to fast-forward, aborting.")

    folded: dict[str, str] = {}
    for commit in new:
        folded.update(commit.files)

    if flags.has("squash"):
        state.staged_files.update(folded)
        ctx.out.out("Squash commit -- not updating HEAD")
        return

    state.commits.extend(c.model_copy(deep=True) for c in new)
    state.files.update(folded)
    if fast_forward and not flags.has("no_ff"):
        ctx.out.success("Fast-forward")
    else:
        ctx.out.success("Merge made by the 'ort' strategy.")
    if folded:
        ctx.out.out(f" {len(folded)} file(s) changed")
    logger.debug(f"Merged {len(new)} commit(s) from {name} into {state.current_branch}")
