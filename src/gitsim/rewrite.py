"""History rewriting: rebase (plain and interactive), cherry-pick, revert.

Every commit these handlers produce gets a hash from the context's hash
source, so rewritten history never reuses an identifier.
"""

from __future__ import annotations

import logging

from .constants import DEFAULT_BRANCH, DEFAULT_REBASE_WINDOW
from .context import CommandContext
from .errors import CommandError
from .history import resolve_commit
from .models import CloseSession, Commit, RepositoryState
from .parser import Flag, parse_flags, parse_revision
from .sessions import apply_todo, finish_rebase, open_rebase

logger = logging.getLogger(__name__)

REBASE_FLAGS = (
    Flag("interactive", ("-i", "--interactive")),
    Flag("continue", ("--continue",)),
    Flag("abort", ("--abort",)),
)

CHERRY_PICK_FLAGS = (Flag("no_commit", ("-n", "--no-commit")),)

REVERT_FLAGS = (Flag("no_edit", ("--no-edit",)),)


def _known_branch(state: RepositoryState, name: str) -> bool:
    return name in state.branches or name in state.remote_branches or name == DEFAULT_BRANCH


# ─────────────────────────────────────────────────────────────────────────────
# rebase
# ─────────────────────────────────────────────────────────────────────────────


def _interactive_window(state: RepositoryState, target: str | None) -> tuple[list[Commit], str | None]:
    """Commits (oldest first) an interactive rebase offers, plus the base hash."""
    commits = state.commits
    steps = parse_revision(target) if target is not None else None

    if target is None or steps is not None:
        count = min(DEFAULT_REBASE_WINDOW, len(commits)) if target is None else steps
        if count > len(commits):
            raise CommandError(f"fatal: invalid upstream '{target}'")
        if count == 0:
            return [], None
        base_index = len(commits) - count - 1
        return commits[-count:], commits[base_index].hash if base_index >= 0 else None

    if not _known_branch(state, target):
        raise CommandError(f"fatal: invalid upstream '{target}'")

    # Divergence point: the trailing run of commits that do not belong to the target.
    split = len(commits)
    while split > 0 and commits[split - 1].branch not in (None, target):
        split -= 1
    if split == len(commits):
        return list(commits), None
    return commits[split:], commits[split - 1].hash if split > 0 else None


def _rebase_continue(ctx: CommandContext) -> None:
    state = ctx.state
    session = state.rebase_session
    if session is None:
        raise CommandError("error: No rebase in progress?")
    text = ctx.rebase_text if ctx.rebase_text is not None else session.todo_text
    processed = apply_todo(session, text, ctx.new_hash)
    finish_rebase(state, processed)
    ctx.directive = CloseSession()
    ctx.out.success(f"Successfully rebased and updated refs/heads/{state.current_branch}.")


def _rebase_abort(ctx: CommandContext) -> None:
    state = ctx.state
    if state.rebase_session is None:
        raise CommandError("error: No rebase in progress?")
    state.session = None
    ctx.directive = CloseSession()
    ctx.out.out("Rebase aborted")


def _rebase_onto(ctx: CommandContext, target: str) -> None:
    """Replay the current branch's exclusive commits on top of `target`."""
    state = ctx.state
    branch = state.current_branch
    on_feature = branch == state.feature_branch and bool(state.feature_commits)

    if on_feature:
        base = [
            c for c in state.commits
            if c.branch in (None, target) or c.hash == state.feature_branch_base
        ]
        exclusive = list(state.feature_commits)
    else:
        base = [c for c in state.commits if c.branch in (None, target)]
        exclusive = [c for c in state.commits if c.branch not in (None, target)]

    state.rebase_target = target
    if not exclusive:
        ctx.out.out(f"Current branch {branch} is up to date.")
        return

    rebased = [c.model_copy(update={"hash": ctx.new_hash()}, deep=True) for c in exclusive]
    state.commits = base + rebased
    if on_feature:
        state.feature_commits = [c.model_copy(deep=True) for c in rebased]
        state.feature_branch_base = base[-1].hash if base else None
    logger.debug(f"Rebased {len(rebased)} commit(s) of {branch} onto {target}")
    ctx.out.success(f"Successfully rebased and updated refs/heads/{branch}.")


def cmd_rebase(ctx: CommandContext) -> None:
    """Plain rebase, `-i` (opens the todo editor), `--continue` and `--abort`."""
    state = ctx.state
    flags = parse_flags(ctx.args, REBASE_FLAGS)

    if flags.has("continue"):
        _rebase_continue(ctx)
        return
    if flags.has("abort"):
        _rebase_abort(ctx)
        return

    ctx.require_no_session("rebase")
    target = flags.positionals[0] if flags.positionals else None

    if flags.has("interactive"):
        window, base = _interactive_window(state, target)
        if not window:
            raise CommandError("fatal: no commits to rebase")
        ctx.directive = open_rebase(state, window, base, target)
        ctx.out.system("Interactive rebase started. Edit the todo list and save to continue.")
        ctx.out.out(f"Rebasing {len(window)} commit(s); finish with 'git rebase --continue'.")
        return

    if target is None:
        upstream = state.upstreams.get(state.current_branch)
        if upstream is None:
            raise CommandError(
                "There is no tracking information for the current branch.",
                ["Please specify which branch you want to rebase against."],
            )
        target = upstream
    if not _known_branch(state, target):
        raise CommandError(f"fatal: invalid upstream '{target}'")
    _rebase_onto(ctx, target)


# ─────────────────────────────────────────────────────────────────────────────
# cherry-pick / revert
# ─────────────────────────────────────────────────────────────────────────────


def _pickable(state: RepositoryState, ref: str) -> Commit | None:
    for commit in state.feature_commits:
        if commit.matches(ref):
            return commit
    return None


def cmd_cherry_pick(ctx: CommandContext) -> None:
    """Copy feature-branch commits onto the current branch with new hashes."""
    state = ctx.state
    flags = parse_flags(ctx.args, CHERRY_PICK_FLAGS)
    if not flags.positionals:
        raise CommandError("fatal: empty commit set passed")
    ctx.require_no_session("cherry-pick")

    sources = []
    for ref in flags.positionals:
        source = _pickable(state, ref)
        if source is None:
            raise CommandError(f"fatal: bad revision '{ref}'")
        sources.append(source)

    for source in sources:
        if flags.has("no_commit"):
            state.staged_files.update(source.files)
            continue
        picked = source.model_copy(
            update={"hash": ctx.new_hash(), "branch": state.current_branch}, deep=True
        )
        state.commits.append(picked)
        state.files.update(picked.files)
        ctx.out.success(f"[{state.current_branch} {picked.hash}] {picked.message}")
        if picked.files:
            ctx.out.out(f" {len(picked.files)} file(s) changed")


def cmd_revert(ctx: CommandContext) -> None:
    """Append a commit that records the undo of an earlier one.

    Content is not inverted; the new commit carries no files.
    """
    state = ctx.state
    flags = parse_flags(ctx.args, REVERT_FLAGS)
    ref = flags.positionals[0] if flags.positionals else "HEAD"
    ctx.require_no_session("revert")

    target = resolve_commit(state, ref)
    if target is None:
        raise CommandError(f"fatal: bad revision '{ref}'")

    message = f'Revert "{target.message}"'
    commit = Commit(hash=ctx.new_hash(), message=message, branch=state.current_branch)
    state.commits.append(commit)
    ctx.out.success(f"[{state.current_branch} {commit.hash}] {message}")
