"""Branch commands - create, checkout."""

import re

from flowgit.commands.commit import handle_staging
from flowgit.commands.context import Context
from flowgit.stack.tree import pick_branch
from flowgit.utils.errors import PortExecutionFailure
from flowgit.utils.logging import cout, die, info, success
from flowgit.utils.types import BranchName
from flowgit.utils.ui import confirm, prompt

MAX_BRANCH_NAME = 50


def commit_message_to_branch_name(message: str) -> BranchName:
    """Kebab-case a commit message into a branch name."""
    name = message.lower().strip()
    name = re.sub(r"[^a-z0-9\s-]", "", name)
    name = re.sub(r"\s+", "-", name)
    name = re.sub(r"-+", "-", name).strip("-")
    # Cutting may leave a dangling dash
    return BranchName(name[:MAX_BRANCH_NAME].rstrip("-"))


def branch_name_completer(prefix, parsed_args, **kwargs):
    """argcomplete completer for local branch names."""
    from flowgit.git.repository import GitRepository
    return [b for b in GitRepository().all_branches() if b.startswith(prefix)]


def cmd_create(ctx: Context, args):
    """Create a branch on top of the current one and commit staged changes to it."""
    current_branch = ctx.current_branch()

    staged = handle_staging(ctx)
    if staged is None:
        return
    if not staged and not confirm("No changes to commit. Create empty branch?", False):
        info("Cancelled")
        return

    message = args.message or prompt("Commit message: ")
    name = commit_message_to_branch_name(message)
    if not name:
        die("Cannot derive a branch name from '{}'", message)
    if ctx.repo.branch_exists(name):
        die("Branch '{}' already exists", name)

    ctx.repo.create_branch(name)
    if staged:
        ctx.repo.commit(message)
    ctx.registry.add_tracked(name)
    ctx.registry.set_parent(name, current_branch)

    committed = " and committed changes" if staged else ""
    if current_branch != ctx.trunk:
        success("Created branch '{}' (parent: {}){}", name, current_branch, committed)
    else:
        success("Created branch '{}'{}", name, committed)


def checkout_by_name(ctx: Context, name: BranchName):
    if ctx.repo.branch_exists(name):
        ctx.repo.checkout(name)
        ctx.registry.add_tracked(name)
        success("Switched to branch '{}'", name)
        return

    cout("Fetching branch from remote...\n")
    try:
        ctx.repo.fetch()
        ctx.repo.checkout_remote_branch(name)
    except PortExecutionFailure:
        die("Branch '{}' not found", name)
    ctx.registry.add_tracked(name)
    success("Switched to branch '{}'", name)


def cmd_checkout(ctx: Context, args):
    """Checkout a branch by name, or pick one of the tracked branches."""
    if args.name is not None:
        checkout_by_name(ctx, BranchName(args.name))
        return

    if not ctx.registry.get_tracked():
        die("No tracked branches. Use 'flowgit co <branch-name>' to checkout a branch.")
    selected = pick_branch(ctx.registry, ctx.repo)
    if selected is None:
        info("No other tracked branches to switch to")
        return
    if selected == ctx.repo.current_branch():
        info("Already on '{}'", selected)
        return
    ctx.repo.checkout(selected)
    success("Switched to branch '{}'", selected)
