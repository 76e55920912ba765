"""History inspection: log, diff, show, tag, blame, reflog, bisect."""

from __future__ import annotations

import difflib
import logging
import math

from .constants import BLAME_AUTHORS
from .context import CommandContext
from .errors import CommandError
from .models import Commit, RepositoryState, TagRef
from .output import Output
from .parser import Flag, parse_flags, parse_revision

logger = logging.getLogger(__name__)

LOG_FLAGS = (
    Flag("oneline", ("--oneline",)),
    Flag("graph", ("--graph",)),
    Flag("all", ("--all",)),
    Flag("stat", ("--stat",)),
    Flag("patch", ("-p", "--patch")),
    Flag("decorate", ("--decorate",)),
    Flag("max_count", ("-n", "--max-count"), takes_value=True),
    Flag("author", ("--author",), takes_value=True),
    Flag("pickaxe", ("-S",), takes_value=True),
)

DIFF_FLAGS = (
    Flag("staged", ("--staged", "--cached")),
    Flag("stat", ("--stat",)),
    Flag("name_only", ("--name-only",)),
)

TAG_FLAGS = (
    Flag("annotate", ("-a", "--annotate")),
    Flag("message", ("-m", "--message"), takes_value=True),
    Flag("delete", ("-d", "--delete")),
    Flag("list", ("-l", "--list")),
)


def resolve_commit(state: RepositoryState, ref: str) -> Commit | None:
    """Resolve HEAD-relative refs, tags and hashes (current lineage, then the feature branch)."""
    steps = parse_revision(ref)
    if steps is not None:
        if steps < len(state.commits):
            return state.commits[-1 - steps]
        return None
    if ref in state.tags and state.tags[ref].hash:
        ref = state.tags[ref].hash
    found = state.find_commit(ref)
    if found is None:
        found = next((c for c in reversed(state.feature_commits) if c.matches(ref)), None)
    return found


def _unique(commits: list[Commit]) -> list[Commit]:
    seen: set[str] = set()
    result = []
    for commit in commits:
        if commit.hash not in seen:
            seen.add(commit.hash)
            result.append(commit)
    return result


def branch_history(state: RepositoryState, target: str | None, include_all: bool = False) -> list[Commit]:
    """Commits reachable from `target` (default HEAD), oldest first.

    Only the current lineage and the scenario's single feature branch are
    modelled; any other local branch shows the current lineage.

    Raises:
        CommandError: For refs that name nothing
    """
    feature = state.feature_branch
    on_feature = state.current_branch == feature and bool(state.feature_commits)

    if target is None or target == "HEAD":
        if include_all:
            return _unique(state.commits + state.feature_commits)
        if on_feature:
            return _feature_lineage(state)
        return list(state.commits)

    remote = target.split("/", 1)[0] if "/" in target else None
    if remote is not None and remote in state.remote_commits:
        return list(state.remote_commits[remote])
    if target in state.remote_branches:
        return []
    if target == feature and state.feature_commits:
        return list(state.feature_commits)
    if target in state.branches:
        if on_feature and target != feature:
            return [c for c in state.commits if c.branch in (None, target)]
        return list(state.commits)

    raise CommandError(
        f"fatal: ambiguous argument '{target}': unknown revision or path not in the working tree."
    )


def _feature_lineage(state: RepositoryState) -> list[Commit]:
    """Base commits up to the feature branch point, then the feature commits."""
    base = state.feature_branch_base
    index = next((i for i, c in enumerate(state.commits) if c.hash == base), None)
    if index is not None:
        shared = state.commits[: index + 1]
    else:
        shared = [c for c in state.commits if c.branch in (None, "main")]
    return _unique(shared + state.feature_commits)


# ─────────────────────────────────────────────────────────────────────────────
# log
# ─────────────────────────────────────────────────────────────────────────────


def cmd_log(ctx: CommandContext) -> None:
    """Show history newest first; author, pickaxe and count filters compose.

    The count limit applies last, keeping the most recent N matches.
    """
    state = ctx.state
    flags = parse_flags(ctx.args, LOG_FLAGS, count_dest="max_count")
    target = flags.positionals[0] if flags.positionals else None

    limit = None
    if flags.has("max_count"):
        try:
            limit = int(flags.get("max_count"))
        except ValueError:
            raise CommandError(f"fatal: '{flags.get('max_count')}': not an integer")

    commits = branch_history(state, target, include_all=flags.has("all"))
    if not commits:
        raise CommandError(
            f"fatal: your current branch '{state.current_branch}' does not have any commits yet"
        )

    if author := flags.get("author"):
        needle = author.lower()
        commits = [c for c in commits if c.author and needle in c.author.lower()]
    if pickaxe := flags.get("pickaxe"):
        commits = [c for c in commits if any(pickaxe in content for content in c.files.values())]
    if limit is not None:
        commits = commits[-limit:] if limit > 0 else []

    graph = flags.has("graph")
    for index, commit in enumerate(reversed(commits)):
        decoration = ""
        if flags.has("decorate") and index == 0 and target is None:
            decoration = f" (HEAD -> {state.current_branch})"
        if flags.has("oneline"):
            prefix = "* " if graph else ""
            ctx.out.out(f"{prefix}{commit.hash}{decoration} {commit.message.splitlines()[0] if commit.message else ''}")
            continue
        if graph and index > 0:
            ctx.out.out("|")
        ctx.out.warning(f"{'* ' if graph else ''}commit {commit.hash}{decoration}")
        if commit.author:
            ctx.out.out(f"Author: {commit.author}")
        ctx.out.out("")
        for line in commit.message.splitlines() or [""]:
            ctx.out.out(f"    {line}")
        ctx.out.out("")
        if flags.has("stat"):
            ctx.out.out(f" {len(commit.files)} file(s) changed")
        if flags.has("patch"):
            for path, content in commit.files.items():
                render_diff(ctx.out, path, None, content)


# ─────────────────────────────────────────────────────────────────────────────
# diff
# ─────────────────────────────────────────────────────────────────────────────


def render_diff(out: Output, path: str, old: str | None, new: str | None) -> None:
    """Unified diff for one path; None means the file is absent on that side."""
    out.out(f"diff --git a/{path} b/{path}")
    if old is None:
        out.out("new file mode 100644")
    elif new is None:
        out.out("deleted file mode 100644")
    a = (old or "").splitlines()
    b = (new or "").splitlines()
    fromfile = f"a/{path}" if old is not None else "/dev/null"
    tofile = f"b/{path}" if new is not None else "/dev/null"
    for line in difflib.unified_diff(a, b, fromfile=fromfile, tofile=tofile, lineterm=""):
        if line.startswith("---"):
            out.error(line)
        elif line.startswith("+++"):
            out.success(line)
        elif line.startswith("@@"):
            out.system(line)
        elif line.startswith("+"):
            out.success(line)
        elif line.startswith("-"):
            out.error(line)
        else:
            out.out(line)


def _diffstat(old: str | None, new: str | None) -> tuple[int, int]:
    a = (old or "").splitlines()
    b = (new or "").splitlines()
    insertions = deletions = 0
    for line in difflib.unified_diff(a, b, lineterm="", n=0):
        if line.startswith(("+++", "---", "@@")):
            continue
        if line.startswith("+"):
            insertions += 1
        elif line.startswith("-"):
            deletions += 1
    return insertions, deletions


def cmd_diff(ctx: CommandContext) -> None:
    """Unstaged changes (working copy vs index) or, with --staged, index vs last commit."""
    state = ctx.state
    flags = parse_flags(ctx.args, DIFF_FLAGS)
    paths = flags.positionals

    if flags.has("staged"):
        targets = paths or list(state.staged_files)
        pairs = [(p, state.files.get(p), state.staged_files[p]) for p in targets if p in state.staged_files]
        empty = "(no staged changes)"
    else:
        targets = paths or state.modified_paths()
        pairs = []
        for path in targets:
            if path not in state.working_directory or path not in state.files:
                continue
            index = state.staged_files.get(path, state.files[path])
            if state.working_directory[path] != index:
                pairs.append((path, index, state.working_directory[path]))
        empty = "(no differences)"

    if not pairs:
        ctx.out.out(empty)
        return

    if flags.has("name_only"):
        for path, _, _ in pairs:
            ctx.out.out(path)
        return

    if flags.has("stat"):
        total_ins = total_del = 0
        for path, old, new in pairs:
            ins, dels = _diffstat(old, new)
            total_ins += ins
            total_del += dels
            ctx.out.out(f" {path} | {ins + dels} {'+' * ins}{'-' * dels}")
        ctx.out.out(
            f" {len(pairs)} file(s) changed, {total_ins} insertion(s)(+), {total_del} deletion(s)(-)"
        )
        return

    for path, old, new in pairs:
        render_diff(ctx.out, path, old, new)


# ─────────────────────────────────────────────────────────────────────────────
# show / tag
# ─────────────────────────────────────────────────────────────────────────────


def _show_commit(out: Output, commit: Commit) -> None:
    out.warning(f"commit {commit.hash}")
    if commit.author:
        out.out(f"Author: {commit.author}")
    out.out("")
    for line in commit.message.splitlines() or [""]:
        out.out(f"    {line}")
    out.out("")
    for path, content in commit.files.items():
        render_diff(out, path, None, content)


def cmd_show(ctx: CommandContext) -> None:
    state = ctx.state
    target = ctx.args[0] if ctx.args else "HEAD"

    tag = state.tags.get(target)
    if tag is not None:
        ctx.out.warning(f"tag {target}")
        if tag.annotated:
            ctx.out.out("Tagger: Developer <dev@example.com>")
            if tag.message:
                ctx.out.out("")
                ctx.out.out(tag.message)
        ctx.out.out("")
        commit = resolve_commit(state, tag.hash) if tag.hash else None
        if commit is not None:
            _show_commit(ctx.out, commit)
        else:
            ctx.out.out(f"commit {tag.hash}")
        return

    commit = resolve_commit(state, target)
    if commit is None:
        raise CommandError(f"fatal: bad object {target}")
    _show_commit(ctx.out, commit)


def cmd_tag(ctx: CommandContext) -> None:
    """List, create (lightweight or annotated) and delete tags."""
    state = ctx.state
    flags = parse_flags(ctx.args, TAG_FLAGS)
    names = flags.positionals

    if flags.has("delete"):
        if not names:
            raise CommandError("fatal: tag name required")
        for name in names:
            tag = state.tags.pop(name, None)
            if tag is None:
                ctx.out.error(f"error: tag '{name}' not found.")
            else:
                ctx.out.success(f"Deleted tag '{name}' (was {(tag.hash or '')[:7]})")
        return

    if not names or flags.has("list"):
        if not state.tags:
            ctx.out.out("(no tags)")
        for name in sorted(state.tags):
            ctx.out.out(name)
        return

    name = names[0]
    ref = names[1] if len(names) > 1 else "HEAD"
    if name in state.tags:
        raise CommandError(f"fatal: tag '{name}' already exists")
    commit = resolve_commit(state, ref)
    if commit is None:
        raise CommandError(f"fatal: Failed to resolve '{ref}' as a valid ref.")

    annotated = flags.has("annotate") or flags.has("message")
    state.tags[name] = TagRef(annotated=annotated, hash=commit.hash, message=flags.get("message"))
    if annotated:
        ctx.out.success(f"Created annotated tag '{name}'")
    else:
        ctx.out.success(f"Created tag '{name}'")


# ─────────────────────────────────────────────────────────────────────────────
# blame / reflog / bisect
# ─────────────────────────────────────────────────────────────────────────────


def cmd_blame(ctx: CommandContext) -> None:
    state = ctx.state
    if not ctx.args:
        raise CommandError("usage: git blame <file>")
    path = ctx.args[-1]
    if path not in state.files:
        raise CommandError(f"fatal: no such path '{path}' in HEAD")

    commits = state.commits
    for i, line in enumerate(state.files[path].split("\n")):
        commit = commits[min(i, len(commits) - 1)] if commits else None
        author = (commit.author if commit else None) or BLAME_AUTHORS[i % len(BLAME_AUTHORS)]
        short = commit.short() if commit else "0000000"
        ctx.out.out(f"{short} ({author:<8} 2024-01-{i % 28 + 1:02d}) {line}")


def cmd_reflog(ctx: CommandContext) -> None:
    """Scenario reflog entries if present, otherwise one line per commit."""
    state = ctx.state
    if state.reflog:
        for entry in state.reflog:
            ctx.out.out(f"{entry.hash[:7]} {entry.message}")
        return
    for i, commit in enumerate(reversed(state.commits)):
        summary = commit.message.splitlines()[0] if commit.message else ""
        ctx.out.out(f"{commit.short()} HEAD@{{{i}}}: commit: {summary}")


def cmd_bisect(ctx: CommandContext) -> None:
    """Narrate a binary search over the commit list without computing reachability."""
    state = ctx.state
    sub = ctx.args[0] if ctx.args else ""
    commits = state.commits

    if sub == "start":
        state.bisecting = True
        ctx.out.success("Bisecting: started")
    elif sub in ("good", "bad", "old", "new"):
        if not state.bisecting:
            raise CommandError('You need to start by "git bisect start"')
        half = len(commits) // 2
        left = half if sub in ("bad", "new") else len(commits) // 4
        steps = max(1, math.ceil(math.log2(left + 1)))
        plural = "revision" if left == 1 else "revisions"
        ctx.out.out(f"Bisecting: {left} {plural} left to test after this (roughly {steps} step{'s' if steps > 1 else ''})")
        if sub in ("good", "old") and commits:
            candidate = commits[min(half, len(commits) - 1)]
            ctx.out.success(f"[{candidate.hash}] {candidate.message}")
    elif sub == "reset":
        if not state.bisecting:
            ctx.out.out("We are not bisecting.")
            return
        state.bisecting = False
        head = state.head_commit
        if head is not None:
            ctx.out.success(f"Previous HEAD position was {head.short()}")
        ctx.out.success(f"Switched to branch '{state.current_branch}'")
    else:
        raise CommandError("usage: git bisect [start|bad|good|reset]")
