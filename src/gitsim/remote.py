"""Simulated collaboration: remote, fetch, pull, push, clone.

No network is involved. A remote's history is `remote_commits[name]`
(its default branch), and `remote_branches` maps `remote/branch` to the
tip hash last seen locally.
"""

from __future__ import annotations

import logging

from .constants import DEFAULT_BRANCH, DEFAULT_REMOTE
from .context import CommandContext
from .errors import CommandError
from .models import Commit, RepositoryState
from .parser import Flag, parse_flags

logger = logging.getLogger(__name__)

REMOTE_FLAGS = (Flag("verbose", ("-v", "--verbose")),)

FETCH_FLAGS = (
    Flag("all", ("--all",)),
    Flag("prune", ("-p", "--prune")),
)

PULL_FLAGS = (
    Flag("rebase", ("-r", "--rebase")),
    Flag("ff_only", ("--ff-only",)),
)

PUSH_FLAGS = (
    Flag("force", ("-f", "--force")),
    Flag("force_with_lease", ("--force-with-lease",)),
    Flag("set_upstream", ("-u", "--set-upstream")),
)

CLONE_FLAGS = (
    Flag("branch", ("-b", "--branch"), takes_value=True),
    Flag("depth", ("--depth",), takes_value=True),
)

NO_REMOTE = "fatal: No remote repository configured"
_EMPTY_TIP = "0000000"


def _require_remote(state: RepositoryState, name: str | None, fatal: str = NO_REMOTE) -> str:
    """Resolve which remote to talk to, defaulting to origin (or the only one)."""
    if not state.remotes:
        raise CommandError(fatal)
    if name is None:
        return DEFAULT_REMOTE if DEFAULT_REMOTE in state.remotes else next(iter(state.remotes))
    if name not in state.remotes:
        raise CommandError(
            f"fatal: '{name}' does not appear to be a git repository",
            ["fatal: Could not read from remote repository."],
        )
    return name


def _transfer_banner(ctx: CommandContext, objects: int) -> None:
    ctx.out.out(f"remote: Enumerating objects: {objects}, done.")
    ctx.out.out(f"remote: Counting objects: 100% ({objects}/{objects}), done.")


# ─────────────────────────────────────────────────────────────────────────────
# remote
# ─────────────────────────────────────────────────────────────────────────────


def cmd_remote(ctx: CommandContext) -> None:
    """List (`-v` for URLs), add, or remove configured remotes."""
    state = ctx.state
    flags = parse_flags(ctx.args, REMOTE_FLAGS)
    words = flags.positionals

    if not words:
        if not state.remotes:
            ctx.out.out("(no remotes configured)")
        for name, url in state.remotes.items():
            if flags.has("verbose"):
                ctx.out.out(f"{name}\t{url} (fetch)")
                ctx.out.out(f"{name}\t{url} (push)")
            else:
                ctx.out.out(name)
        return

    sub = words[0]
    if sub == "add":
        if len(words) < 3:
            raise CommandError("usage: git remote add <name> <url>")
        name, url = words[1], words[2]
        if name in state.remotes:
            raise CommandError(f"error: remote {name} already exists.")
        state.remotes[name] = url
        ctx.out.success(f"Added remote '{name}'")
    elif sub in ("remove", "rm"):
        if len(words) < 2:
            raise CommandError("usage: git remote remove <name>")
        name = words[1]
        if name not in state.remotes:
            raise CommandError(f"error: No such remote: '{name}'")
        del state.remotes[name]
        state.remote_commits.pop(name, None)
        prefix = f"{name}/"
        state.remote_branches = {k: v for k, v in state.remote_branches.items() if not k.startswith(prefix)}
        state.upstreams = {k: v for k, v in state.upstreams.items() if not v.startswith(prefix)}
        ctx.out.success(f"Removed remote '{name}'")
    elif sub == "get-url":
        if len(words) < 2 or words[1] not in state.remotes:
            raise CommandError(f"error: No such remote '{words[1] if len(words) > 1 else ''}'")
        ctx.out.out(state.remotes[words[1]])
    else:
        raise CommandError(f"error: unknown subcommand: {sub}", ["usage: git remote [-v] | add <name> <url> | remove <name>"])


# ─────────────────────────────────────────────────────────────────────────────
# fetch / pull
# ─────────────────────────────────────────────────────────────────────────────


def _fetch_one(ctx: CommandContext, remote: str) -> None:
    """Update `remote/<default>` to the remote's tip and report the ref move."""
    state = ctx.state
    history = state.remote_commits.get(remote, [])
    head = state.head_commit
    tip = history[-1].hash if history else (head.hash if head else _EMPTY_TIP)
    ref = f"{remote}/{DEFAULT_BRANCH}"
    previous = state.remote_branches.get(ref)

    ctx.out.success(f"From {state.remotes[remote]}")
    if previous is None:
        ctx.out.out(f" * [new branch]      {DEFAULT_BRANCH}       -> {ref}")
    elif previous != tip:
        ctx.out.out(f"   {previous[:7]}..{tip[:7]}  {DEFAULT_BRANCH}       -> {ref}")
    state.remote_branches[ref] = tip


def cmd_fetch(ctx: CommandContext) -> None:
    """Refresh remote-tracking refs; never touches commits, files or the working copy."""
    state = ctx.state
    flags = parse_flags(ctx.args, FETCH_FLAGS)
    if flags.has("all"):
        if not state.remotes:
            raise CommandError(NO_REMOTE)
        remotes = list(state.remotes)
    else:
        remotes = [_require_remote(state, flags.positionals[0] if flags.positionals else None)]

    _transfer_banner(ctx, 5)
    ctx.out.out("remote: Compressing objects: 100% (3/3), done.")
    for remote in remotes:
        _fetch_one(ctx, remote)
    logger.debug(f"Fetched {remotes}")


def cmd_pull(ctx: CommandContext) -> None:
    """Fetch, then fold the remote's history into the current branch.

    `--rebase` only changes the report; history is folded the same way.
    """
    state = ctx.state
    flags = parse_flags(ctx.args, PULL_FLAGS)
    remote = _require_remote(state, flags.positionals[0] if flags.positionals else None)
    ctx.require_no_session("pull")

    known = {c.hash for c in state.commits}
    incoming = [c for c in state.remote_commits.get(remote, []) if c.hash not in known]
    if flags.has("ff_only") and state.diverged:
        raise CommandError("fatal: Not possible to fast-forward, aborting.")

    _transfer_banner(ctx, 3)
    branch = state.current_branch
    history = state.remote_commits.get(remote, [])
    if history:
        state.remote_branches[f"{remote}/{DEFAULT_BRANCH}"] = history[-1].hash

    if not incoming:
        state.diverged = False
        ctx.out.out("Already up to date.")
        return

    folded: dict[str, str] = {}
    for commit in incoming:
        folded.update(commit.files)
    state.commits.extend(c.model_copy(deep=True) for c in incoming)
    state.files.update(folded)

    if flags.has("rebase"):
        ctx.out.success(f"Successfully rebased and updated refs/heads/{branch}.")
    elif state.diverged:
        ctx.out.success("Merge made by the 'ort' strategy.")
    else:
        ctx.out.success("Fast-forward")
    for path in folded:
        ctx.out.out(f" {path} | 1 +")
    if folded:
        ctx.out.out(f" {len(folded)} file(s) changed")
    state.diverged = False
    logger.debug(f"Pulled {len(incoming)} commit(s) from {remote}")


# ─────────────────────────────────────────────────────────────────────────────
# push
# ─────────────────────────────────────────────────────────────────────────────


def cmd_push(ctx: CommandContext) -> None:
    """Publish the current branch; a diverged history needs --force."""
    state = ctx.state
    flags = parse_flags(ctx.args, PUSH_FLAGS)
    words = flags.positionals
    remote = _require_remote(state, words[0] if words else None, fatal="fatal: No configured push destination.")
    branch = words[1] if len(words) > 1 else state.current_branch
    url = state.remotes[remote]
    forced = flags.has("force") or flags.has("force_with_lease")

    head = state.head_commit
    if head is None:
        raise CommandError(f"error: src refspec {branch} does not match any", [f"error: failed to push some refs to '{url}'"])

    if state.diverged and not forced:
        ctx.out.error(f"To {url}")
        ctx.out.error(f" ! [rejected]        {branch} -> {branch} (non-fast-forward)")
        ctx.out.error(f"error: failed to push some refs to '{url}'")
        ctx.out.out("hint: Updates were rejected because the tip of your current branch is behind")
        ctx.out.out("hint: its remote counterpart. If you want to force update, use --force or --force-with-lease")
        return

    ref = f"{remote}/{branch}"
    previous = state.remote_branches.get(ref)
    ctx.out.out("Enumerating objects: 5, done.")
    ctx.out.out("Counting objects: 100% (5/5), done.")
    ctx.out.out("Writing objects: 100% (3/3), 300 bytes | 300.00 KiB/s, done.")
    ctx.out.success(f"To {url}")
    if forced and state.diverged:
        ctx.out.warning(f" + {(previous or _EMPTY_TIP)[:7]}...{head.hash} {branch} -> {branch} (forced update)")
    elif previous is None:
        ctx.out.success(f" * [new branch]      {branch} -> {branch}")
    elif previous == head.hash:
        ctx.out.out("Everything up-to-date")
    else:
        ctx.out.success(f"   {previous[:7]}..{head.hash}  {branch} -> {branch}")

    state.remote_branches[ref] = head.hash
    if branch == DEFAULT_BRANCH:
        state.remote_commits[remote] = [c.model_copy(deep=True) for c in state.commits]
    if forced:
        state.diverged = False
    if flags.has("set_upstream"):
        state.upstreams[branch] = ref
        ctx.out.out(f"branch '{branch}' set up to track '{ref}'.")


# ─────────────────────────────────────────────────────────────────────────────
# clone
# ─────────────────────────────────────────────────────────────────────────────


def repo_name(url: str) -> str:
    """Last path segment of a clone URL without its `.git` suffix."""
    tail = url.rstrip("/").split("/")[-1].split(":")[-1]
    if tail.endswith(".git"):
        tail = tail[: -len(".git")]
    return tail or "repo"


def cmd_clone(ctx: CommandContext) -> None:
    """Replace the snapshot with a freshly cloned repository.

    The history is canned: a README named after the repository and one
    follow-up commit.
    """
    flags = parse_flags(ctx.args, CLONE_FLAGS)
    if not flags.positionals:
        raise CommandError("fatal: You must specify a repository to clone.")
    url = flags.positionals[0]
    name = repo_name(url)
    directory = flags.positionals[1] if len(flags.positionals) > 1 else name
    branch = flags.get("branch") or DEFAULT_BRANCH

    commits = [
        Commit(hash=ctx.new_hash(), message="Initial commit", files={"README.md": f"# {name}"}, branch=branch),
        Commit(hash=ctx.new_hash(), message="Add features", files={"app.js": "code"}, branch=branch),
    ]
    files: dict[str, str] = {}
    for commit in commits:
        files.update(commit.files)

    ref = f"{DEFAULT_REMOTE}/{branch}"
    ctx.state = RepositoryState(
        initialized=True,
        current_branch=branch,
        branches=[branch],
        files=files,
        commits=commits,
        remotes={DEFAULT_REMOTE: url},
        remote_commits={DEFAULT_REMOTE: [c.model_copy(deep=True) for c in commits]},
        remote_branches={ref: commits[-1].hash},
        upstreams={branch: ref},
    )
    ctx.out.out(f"Cloning into '{directory}'...")
    _transfer_banner(ctx, 10)
    ctx.out.success("Receiving objects: 100% (10/10), done.")
    logger.debug(f"Cloned {url} into {directory}")
