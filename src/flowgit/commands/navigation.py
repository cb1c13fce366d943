"""Navigation commands - log, up, down, com."""

from flowgit.commands.context import Context
from flowgit.stack.tree import get_all_stacks_as_forest, print_forest
from flowgit.utils.errors import PortExecutionFailure
from flowgit.utils.logging import IS_TERMINAL, cout, die, info, success, warning
from flowgit.utils.ui import menu_choose


def cmd_log(ctx: Context, args):
    """Show every tracked stack, trunk at the bottom."""
    statuses = {}
    if args.pr:
        if ctx.tracker.authenticated():
            try:
                statuses = ctx.tracker.batch_list_all()
            except (PortExecutionFailure, ValueError) as e:
                warning("Could not fetch PR statuses: {}", e)
        else:
            warning("GitHub CLI not authenticated, skipping PR status")
    print()
    print_forest(get_all_stacks_as_forest(ctx.registry), current=ctx.repo.current_branch(), statuses=statuses)
    print()


def cmd_branch_up(ctx: Context, args):
    """Move up in the stack (away from trunk)."""
    current_branch = ctx.current_branch()
    children = sorted(ctx.registry.get_children(current_branch))
    if not children:
        info("Branch {} is already at the top of the stack", current_branch)
        return
    if len(children) > 1:
        if not IS_TERMINAL:
            die("Branch {} has multiple children: {}", current_branch, ", ".join(children))
        cout("Branch {} has {} children, choose one\n", current_branch, len(children), fg="green")
        labels = ["{} ({})".format(c, ctx.repo.branch_subject(c) or "No commits") for c in children]
        child = children[menu_choose(labels)]
    else:
        child = children[0]
    ctx.repo.checkout(child)
    success("Switched to branch '{}'", child)


def cmd_branch_down(ctx: Context, args):
    """Move down in the stack (towards trunk)."""
    current_branch = ctx.current_branch()
    if current_branch == ctx.trunk:
        info("Already at trunk ({})", ctx.trunk)
        return
    parent = ctx.registry.get_parent(current_branch) or ctx.trunk
    ctx.repo.checkout(parent)
    success("Switched to branch '{}'", parent)


def cmd_com(ctx: Context, args):
    """Checkout trunk and pull it when it has a remote counterpart."""
    ctx.repo.checkout(ctx.trunk)
    if ctx.repo.has_remote_counterpart(ctx.trunk):
        ctx.repo.pull()
        success("Switched to {} and pulled latest", ctx.trunk)
    else:
        success("Switched to {}", ctx.trunk)
