"""Staging and commit handlers: add, commit, restore, reset."""

from __future__ import annotations

import logging

from .constants import DEFAULT_COMMIT_MESSAGE
from .context import CommandContext
from .errors import CommandError
from .models import CloseSession, Commit, RepositoryState
from .parser import Flag, parse_flags, parse_revision
from .sessions import has_markers, resolve_conflict

logger = logging.getLogger(__name__)

ADD_FLAGS = (
    Flag("all", ("-A", "--all")),
    Flag("update", ("-u", "--update")),
    Flag("force", ("-f", "--force")),
    Flag("verbose", ("-v", "--verbose")),
)

COMMIT_FLAGS = (
    Flag("message", ("-m", "--message"), takes_value=True),
    Flag("all", ("-a", "--all")),
    Flag("amend", ("--amend",)),
    Flag("no_edit", ("--no-edit",)),
    Flag("allow_empty", ("--allow-empty",)),
    Flag("author", ("--author",), takes_value=True),
)

RESTORE_FLAGS = (
    Flag("staged", ("--staged", "-S")),
    Flag("worktree", ("--worktree", "-W")),
)

RESET_FLAGS = (
    Flag("soft", ("--soft",)),
    Flag("mixed", ("--mixed",)),
    Flag("hard", ("--hard",)),
)


def _stage_conflict(ctx: CommandContext) -> None:
    resolve_conflict(ctx.state, ctx.conflict_text)
    ctx.directive = CloseSession()


def _expand(state: RepositoryState, path: str) -> list[str]:
    """Working-copy paths a pathspec names: the file itself or a directory's contents."""
    if path in state.working_directory:
        return [path]
    prefix = path.rstrip("/") + "/"
    return [p for p in state.working_directory if p.startswith(prefix)]


# ─────────────────────────────────────────────────────────────────────────────
# add
# ─────────────────────────────────────────────────────────────────────────────


def cmd_add(ctx: CommandContext) -> None:
    """Stage everything, tracked modifications only, or an explicit path list.

    Staging the conflicted file consumes the conflict session's resolution.
    """
    state = ctx.state
    flags = parse_flags(ctx.args, ADD_FLAGS)
    paths = flags.positionals
    conflict = state.conflict_state

    if flags.has("all") or "." in paths:
        changes = dict(state.working_directory)
        if conflict is not None:
            changes.pop(conflict.file, None)
            _stage_conflict(ctx)
        state.staged_files.update(changes)
        count = len(changes) + (1 if conflict is not None else 0)
        if count:
            ctx.out.success(f"Added {count} file(s) to staging area")
        else:
            ctx.out.out("Nothing to add")
        return

    if flags.has("update"):
        modified = state.modified_paths()
        if conflict is not None:
            modified = [p for p in modified if p != conflict.file]
            _stage_conflict(ctx)
        for path in modified:
            state.staged_files[path] = state.working_directory[path]
        count = len(modified) + (1 if conflict is not None else 0)
        if count:
            ctx.out.success(f"Updated {count} file(s)")
        else:
            ctx.out.out("Nothing to update")
        return

    if not paths:
        raise CommandError("Nothing specified, nothing added.", ["hint: Maybe you wanted to say 'git add .'?"])

    added = 0
    for path in paths:
        if conflict is not None and path == conflict.file:
            _stage_conflict(ctx)
            conflict = None
            added += 1
            continue
        matched = _expand(state, path)
        if matched:
            for p in matched:
                state.staged_files[p] = state.working_directory[p]
            added += len(matched)
        elif path in state.files:
            continue  # unchanged tracked file: nothing to stage
        else:
            ctx.out.error(f"fatal: pathspec '{path}' did not match any files")
    if added:
        ctx.out.success(f"Added {added} file(s) to staging area")


# ─────────────────────────────────────────────────────────────────────────────
# commit
# ─────────────────────────────────────────────────────────────────────────────


def cmd_commit(ctx: CommandContext) -> None:
    """Record staged content as a new commit (or replace the last with --amend)."""
    state = ctx.state
    flags = parse_flags(ctx.args, COMMIT_FLAGS)
    branch = state.current_branch

    conflict = state.conflict_state
    if conflict is not None:
        text = ctx.conflict_text if ctx.conflict_text is not None else conflict.resolved
        if has_markers(text):
            raise CommandError(
                "error: Committing is not possible because you have unmerged files.",
                ["hint: Fix them up in the work tree, and then use 'git add <file>'",
                 "hint: as appropriate to mark resolution and make a commit."],
            )
        _stage_conflict(ctx)

    if flags.has("all"):
        for path in state.modified_paths():
            state.staged_files[path] = state.working_directory[path]

    staged = dict(state.staged_files)

    if flags.has("amend"):
        if not state.commits:
            raise CommandError("fatal: You have nothing to amend.")
        last = state.commits[-1]
        message = flags.get("message") or last.message
        amended = Commit(
            hash=ctx.new_hash(),
            message=message,
            files={**last.files, **staged},
            branch=last.branch or branch,
            author=flags.get("author") or last.author,
        )
        state.commits[-1] = amended
        ctx.out.success(f"[{branch} {amended.hash}] {message} (amended)")
    else:
        if not staged and not flags.has("allow_empty"):
            hints = []
            if state.modified_paths() or state.untracked_paths():
                hints = ['no changes added to commit (use "git add" and/or "git commit -a")']
            raise CommandError("nothing to commit, working tree clean", hints)
        default = f"Merge branch '{state.merge_head}'" if state.merge_head else DEFAULT_COMMIT_MESSAGE
        message = flags.get("message") or default
        commit = Commit(
            hash=ctx.new_hash(),
            message=message,
            files=staged,
            branch=branch,
            author=flags.get("author"),
        )
        root = " (root-commit)" if not state.commits else ""
        state.commits.append(commit)
        ctx.out.success(f"[{branch}{root} {commit.hash}] {message}")

    state.files.update(staged)
    state.staged_files = {}
    state.merge_head = None
    if staged:
        ctx.out.out(f" {len(staged)} file(s) changed")
    logger.debug(f"Committed {len(staged)} file(s) on {branch}")


# ─────────────────────────────────────────────────────────────────────────────
# restore
# ─────────────────────────────────────────────────────────────────────────────


def cmd_restore(ctx: CommandContext) -> None:
    """Unstage (--staged) and/or discard working-copy edits (default)."""
    state = ctx.state
    flags = parse_flags(ctx.args, RESTORE_FLAGS)
    paths = flags.positionals
    if not paths:
        raise CommandError("fatal: you must specify path(s) to restore")

    staged_mode = flags.has("staged")
    worktree_mode = flags.has("worktree") or not staged_mode
    if "." in paths:
        paths = sorted(set(state.staged_files) | set(state.modified_paths())) if staged_mode else state.modified_paths()

    for path in paths:
        known = path in state.files or path in state.staged_files or path in state.working_directory
        if not known:
            ctx.out.error(f"error: pathspec '{path}' did not match any file(s) known to git")
            continue
        if staged_mode and path in state.staged_files:
            del state.staged_files[path]
            ctx.out.success(f"Unstaged '{path}'")
        if worktree_mode:
            index = state.staged_files.get(path, state.files.get(path))
            if index is None:
                ctx.out.error(f"error: pathspec '{path}' did not match any file(s) known to git")
                continue
            state.working_directory[path] = index
            ctx.out.success(f"Restored '{path}'")


# ─────────────────────────────────────────────────────────────────────────────
# reset
# ─────────────────────────────────────────────────────────────────────────────


def _steps_back(state: RepositoryState, ref: str) -> int | None:
    """How many commits `ref` is behind HEAD, or None if it is not a revision."""
    steps = parse_revision(ref)
    if steps is not None:
        return steps
    for index, commit in enumerate(reversed(state.commits)):
        if commit.matches(ref):
            return index
    return None


def pop_commits(state: RepositoryState, steps: int) -> dict[str, str]:
    """Drop the last `steps` commits and roll `files` back for the paths they touched.

    Returns:
        The popped commits' files merged oldest to newest
    """
    if steps == 0:
        return {}
    popped = state.commits[-steps:]
    state.commits = state.commits[:-steps]
    changed: dict[str, str] = {}
    for commit in popped:
        changed.update(commit.files)
    for path in changed:
        earlier = next((c.files[path] for c in reversed(state.commits) if path in c.files), None)
        if earlier is None:
            state.files.pop(path, None)
        else:
            state.files[path] = earlier
    return changed


def _head_description(state: RepositoryState) -> str:
    head = state.head_commit
    return f"{head.hash} {head.message}" if head else "(no commits)"


def cmd_reset(ctx: CommandContext) -> None:
    """Move HEAD back (soft / mixed / hard) or unstage individual paths."""
    state = ctx.state
    flags = parse_flags(ctx.args, RESET_FLAGS)
    positionals = list(flags.positionals)

    ref = None
    steps = 0
    if positionals:
        candidate = _steps_back(state, positionals[0])
        if candidate is not None:
            ref, steps = positionals.pop(0), candidate

    mode = "hard" if flags.has("hard") else "soft" if flags.has("soft") else "mixed"

    if positionals:
        if mode != "mixed":
            raise CommandError(f"fatal: Cannot do {mode} reset with paths.")
        unstaged = [p for p in positionals if state.staged_files.pop(p, None) is not None]
        if unstaged:
            ctx.out.success("Unstaged changes after reset:")
            for path in unstaged:
                ctx.out.out(f"M\t{path}")
        return

    if steps and steps >= len(state.commits):
        raise CommandError(
            f"fatal: ambiguous argument '{ref}': unknown revision or path not in the working tree."
        )

    changed = pop_commits(state, steps)
    if mode == "soft":
        state.staged_files.update(changed)
        ctx.out.success(f"HEAD is now at {_head_description(state)}")
    elif mode == "hard":
        state.staged_files = {}
        state.working_directory = {}
        state.merge_head = None
        if state.conflict_state is not None:
            state.session = None
            ctx.directive = CloseSession()
        ctx.out.warning(f"HEAD is now at {_head_description(state)}")
    else:
        previously_staged = state.staged_files
        state.working_directory.update(previously_staged)
        state.working_directory.update(changed)
        state.staged_files = {}
        touched = list(dict.fromkeys([*changed, *previously_staged]))
        if touched:
            ctx.out.success("Unstaged changes after reset:")
            for path in touched:
                ctx.out.out(f"M\t{path}")
    logger.debug(f"reset --{mode} moved HEAD back {steps} commit(s)")
