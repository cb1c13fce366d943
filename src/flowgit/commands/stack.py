"""Stack commands - restack, sync, submit."""

from flowgit.commands.context import Context
from flowgit.stack.models import SubmitScope
from flowgit.stack.restack import RestackEngine
from flowgit.stack.submit import SubmitEngine
from flowgit.stack.sync import SyncEngine
from flowgit.utils.logging import cout, die
from flowgit.utils.types import BranchName


def cmd_restack(ctx: Context, args):
    """Rebase the current branch onto its parent, or onto a new one."""
    target = BranchName(args.target) if args.target else None
    RestackEngine(ctx.repo, ctx.registry).restack(ctx.current_branch(), target, cascade=args.children)


def cmd_sync(ctx: Context, args):
    SyncEngine(ctx.repo, ctx.registry, ctx.tracker).sync()


def cmd_submit(ctx: Context, args):
    """Push the stack up to the current branch and open PRs for it."""
    scope = SubmitScope.CURRENT_ONLY if args.current else SubmitScope.FULL_STACK
    engine = SubmitEngine(ctx.repo, ctx.registry, ctx.tracker, describer=ctx.describer())
    report = engine.submit(ctx.current_branch(), scope)
    failures = report.failures
    if failures:
        for r in failures:
            cout("  - {}: {}\n", r.branch, r.error, fg="red")
        die("{} of {} branch(es) failed to submit", len(failures), len(report.branches))
