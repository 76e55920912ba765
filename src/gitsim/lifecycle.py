"""Repository lifecycle: init, status and the git usage text."""

from __future__ import annotations

from .constants import DEFAULT_BRANCH, WORKTREE_PATH
from .context import CommandContext

GIT_USAGE = [
    ("system", "usage: git <command> [<args>]"),
    ("output", ""),
    ("output", "Common Git commands:"),
    ("output", ""),
    ("output", "start a working area:"),
    ("output", "   clone      Clone a repository into a new directory"),
    ("output", "   init       Create an empty Git repository"),
    ("output", ""),
    ("output", "work on the current change:"),
    ("output", "   add        Add file contents to the index"),
    ("output", "   restore    Restore working tree files"),
    ("output", "   stash      Stash the changes in a dirty working directory away"),
    ("output", ""),
    ("output", "examine the history and state:"),
    ("output", "   diff       Show changes between commits"),
    ("output", "   log        Show commit logs"),
    ("output", "   show       Show various types of objects"),
    ("output", "   status     Show the working tree status"),
    ("output", "   blame      Show what revision and author last modified each line"),
    ("output", "   bisect     Use binary search to find the commit that introduced a bug"),
    ("output", ""),
    ("output", "grow, mark and tweak your history:"),
    ("output", "   branch     List, create, or delete branches"),
    ("output", "   commit     Record changes to the repository"),
    ("output", "   merge      Join two or more development histories"),
    ("output", "   rebase     Reapply commits on top of another base"),
    ("output", "   reset      Reset current HEAD to the specified state"),
    ("output", "   revert     Revert some existing commits"),
    ("output", "   tag        Create, list, delete or verify tags"),
    ("output", ""),
    ("output", "collaborate:"),
    ("output", "   fetch      Download objects and refs from another repository"),
    ("output", "   pull       Fetch from and integrate with another repository"),
    ("output", "   push       Update remote refs along with associated objects"),
    ("output", "   remote     Manage set of tracked repositories"),
]


def cmd_git_help(ctx: CommandContext) -> None:
    for kind, text in GIT_USAGE:
        ctx.out.emit(kind, text)


def cmd_init(ctx: CommandContext) -> None:
    """Create the repository; re-running it keeps history."""
    state = ctx.state
    if state.initialized:
        ctx.out.out(f"Reinitialized existing Git repository in {WORKTREE_PATH}/.git/")
        return
    state.initialized = True
    state.branches = [DEFAULT_BRANCH]
    state.current_branch = DEFAULT_BRANCH
    ctx.out.success(f"Initialized empty Git repository in {WORKTREE_PATH}/.git/")


def cmd_status(ctx: CommandContext) -> None:
    """Derive staged / modified / untracked sets and print them.

    Status is never stored; it is computed from files, staged_files and
    working_directory on every call.
    """
    state = ctx.state
    out = ctx.out

    if state.detached_head:
        out.warning(f"HEAD detached at {state.head}")
    else:
        out.out(f"On branch {state.current_branch}")

    if state.rebase_in_progress:
        onto = state.rebase_session.target or state.rebase_target or state.rebase_base_commit
        out.warning(f"interactive rebase in progress; onto {onto}")
        out.out('  (use "git rebase --continue" once you are satisfied with your changes)')
    if state.diverged and state.remotes:
        out.warning(f"Your branch and 'origin/{state.current_branch}' have diverged.")
        out.out('  (use "git pull" to merge the remote branch into yours)')

    staged = list(state.staged_files)
    modified = state.modified_paths()
    untracked = state.untracked_paths()
    conflict = state.conflict_state

    if conflict is not None:
        out.out("")
        out.error("You have unmerged paths.")
        out.out('  (fix conflicts and run "git commit")')
        out.out('  (use "git merge --abort" to abort the merge)')
        out.out("")
        out.out("Unmerged paths:")
        out.out('  (use "git add <file>..." to mark resolution)')
        out.error(f"\tboth modified:   {conflict.file}")
        modified = [p for p in modified if p != conflict.file]
        untracked = [p for p in untracked if p != conflict.file]
    elif state.merge_head and staged:
        out.out("")
        out.out("All conflicts fixed but you are still merging.")
        out.out('  (use "git commit" to conclude merge)')

    if staged:
        out.out("")
        out.success("Changes to be committed:")
        out.out('  (use "git restore --staged <file>..." to unstage)')
        for path in staged:
            label = "modified" if path in state.files else "new file"
            out.success(f"\t{label}:   {path}")

    if modified:
        out.out("")
        out.warning("Changes not staged for commit:")
        out.out('  (use "git add <file>..." to update what will be committed)')
        out.out('  (use "git restore <file>..." to discard changes in working directory)')
        for path in modified:
            out.warning(f"\tmodified:   {path}")

    if untracked:
        out.out("")
        out.out("Untracked files:")
        out.out('  (use "git add <file>..." to include in what will be committed)')
        for path in untracked:
            out.warning(f"\t{path}")

    if not staged and not modified and not untracked and conflict is None:
        if not state.commits:
            out.out("")
            out.out("No commits yet")
        out.out("")
        out.out("nothing to commit, working tree clean")
