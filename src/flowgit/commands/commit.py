"""Commit commands - modify, and the staging flow shared with create."""

from typing import List, Optional

from flowgit.commands.context import Context
from flowgit.git.repository import StatusEntry
from flowgit.utils.logging import cout, die, info, success, warning
from flowgit.utils.ui import menu_choose, menu_choose_many

STAGE_ALL = "Stage all changes"
STAGE_SELECT = "Select files to stage"
STAGE_CANCEL = "Cancel"
STAGING_CHOICES = [STAGE_ALL, STAGE_SELECT, STAGE_CANCEL]


def choose_files(entries: List[StatusEntry]) -> List[str]:
    """Let the user pick files to stage, returns their paths."""
    labels = ["{} {}".format(e.status, e.path) for e in entries]
    chosen = menu_choose_many(labels, title="Select files to stage (space to toggle, enter to accept)")
    return [entries[i].path for i in chosen]


def handle_staging(ctx: Context) -> Optional[bool]:
    """Make sure something is staged when the user wants it to be.

    Returns whether there are staged changes, or None if the user cancelled.
    Already staged changes are used as they are, without asking.
    """
    entries = ctx.repo.status()
    if any(e.staged for e in entries):
        return True
    if not entries:
        return False

    cout("You have unstaged changes:\n")
    for e in entries:
        cout("  {} {}\n", e.status, e.path, fg="yellow")
    choice = STAGING_CHOICES[menu_choose(STAGING_CHOICES, title="What would you like to do?")]
    if choice == STAGE_CANCEL:
        info("Cancelled")
        return None
    if choice == STAGE_ALL:
        ctx.repo.stage_all()
        success("Staged all changes")
        return True

    paths = choose_files(entries)
    if not paths:
        info("No files selected")
        return None
    ctx.repo.stage_files(paths)
    success("Staged {} file(s)", len(paths))
    return True


def cmd_modify(ctx: Context, args):
    """Amend the last commit with the working tree changes."""
    current_branch = ctx.current_branch()
    if ctx.repo.last_commit_message() is None:
        die("No commits to amend")
    if not ctx.repo.status():
        die("No changes to amend")

    staged = handle_staging(ctx)
    if staged is None:
        return
    if not staged:
        die("No staged changes to amend")

    if ctx.repo.has_remote_counterpart(current_branch):
        warning("Branch has been pushed. You'll need to force push (flowgit submit does it for you).")

    ctx.repo.amend()
    message = ctx.repo.last_commit_message() or ""
    success("Amended commit: {}", message.split("\n")[0])
