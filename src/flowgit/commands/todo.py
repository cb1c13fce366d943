"""Todo command - PRs and branches that need attention."""

import dataclasses
from typing import Dict, List, Tuple, Union

from flowgit.commands.branch import checkout_by_name
from flowgit.commands.context import Context
from flowgit.stack.models import CheckState, ReviewItem
from flowgit.utils.errors import PortExecutionFailure, TrackerAuthMissing
from flowgit.utils.logging import IS_TERMINAL, cout, error, fmt, info, success, warning
from flowgit.utils.types import BranchName
from flowgit.utils.ui import menu_choose

REVIEW_REQUESTED_QUERY = "review-requested:@me state:open"
MY_PRS_QUERY = "author:@me state:open"

NEEDS_MY_REVIEW = "PRs needing your review"
CHANGES_REQUESTED = "Your PRs with change requests"
AWAITING_REVIEW = "Your PRs awaiting review"
APPROVED = "Your approved PRs"
DRAFT = "Your draft PRs"
CATEGORY_ORDER = [NEEDS_MY_REVIEW, CHANGES_REQUESTED, AWAITING_REVIEW, APPROVED, DRAFT]
LOCAL_BRANCHES = "Local branches without a PR"

CHECKOUT = "Checkout branch"
OPEN_IN_BROWSER = "Open in browser"
CREATE_PR = "Create PR"
CANCEL = "Cancel"
PR_ACTIONS = [CHECKOUT, OPEN_IN_BROWSER, CANCEL]
BRANCH_ACTIONS = [CHECKOUT, CREATE_PR, CANCEL]

CHECK_MARKS = {
    CheckState.FAILING: ("✗", "red"),
    CheckState.PENDING: ("⋯", "yellow"),
    CheckState.PASSING: ("✓", "green"),
    CheckState.NONE: ("○", "gray"),
}

Entry = Union[ReviewItem, BranchName]


@dataclasses.dataclass
class TodoList:
    categories: List[Tuple[str, List[ReviewItem]]]
    branches_without_pr: List[BranchName]

    @property
    def empty(self) -> bool:
        return not self.categories and not self.branches_without_pr

    def entries(self) -> List[Entry]:
        """Selectable rows, in display order."""
        items: List[Entry] = [item for _, group in self.categories for item in group]
        return items + list(self.branches_without_pr)


def category_for(item: ReviewItem) -> str:
    """Bucket for one of my own open PRs."""
    if item.is_draft:
        return DRAFT
    if item.review_decision == "CHANGES_REQUESTED":
        return CHANGES_REQUESTED
    if item.review_decision == "APPROVED":
        return APPROVED
    return AWAITING_REVIEW


def _search(ctx: Context, query: str) -> List[ReviewItem]:
    try:
        return ctx.tracker.search(query)
    except (PortExecutionFailure, ValueError) as e:
        warning("PR search '{}' failed: {}", query, e)
        return []


def build_todo(ctx: Context) -> TodoList:
    groups: Dict[str, List[ReviewItem]] = {c: [] for c in CATEGORY_ORDER}
    groups[NEEDS_MY_REVIEW].extend(_search(ctx, REVIEW_REQUESTED_QUERY))
    for item in _search(ctx, MY_PRS_QUERY):
        groups[category_for(item)].append(item)

    with_pr = {item.branch for group in groups.values() for item in group}
    branches = sorted(b for b in ctx.registry.get_tracked() if b != ctx.trunk and b not in with_pr)
    return TodoList([(c, groups[c]) for c in CATEGORY_ORDER if groups[c]], branches)


def format_item(item: ReviewItem, *, colorize: bool) -> str:
    mark, color = CHECK_MARKS[item.checks]
    parts = [fmt("{}", mark, color=colorize, fg=color), "#{}".format(item.number), item.title]
    if item.comments:
        parts.append("({} comment{})".format(item.comments, "" if item.comments == 1 else "s"))
    if item.is_draft:
        parts.append(fmt("{}", "[Draft]", color=colorize, fg="gray"))
    return " ".join(parts)


def print_todo(todo: TodoList):
    from flowgit.utils.logging import COLOR_STDOUT
    for title, group in todo.categories:
        cout("\n{}\n", title, style="bold")
        for item in group:
            cout("  {}\n", format_item(item, colorize=COLOR_STDOUT))
            cout("      {}\n", item.url, fg="gray")
    if todo.branches_without_pr:
        cout("\n{}\n", LOCAL_BRANCHES, style="bold")
        for b in todo.branches_without_pr:
            cout("  {}\n", b)
    cout("\n")


def handle_pr(ctx: Context, item: ReviewItem) -> bool:
    """Run an action on a PR. Returns whether the todo menu is done."""
    action = PR_ACTIONS[menu_choose(PR_ACTIONS, title="PR #{}: {}".format(item.number, item.title))]
    if action == CANCEL:
        return False
    try:
        if action == CHECKOUT:
            checkout_by_name(ctx, item.branch)
        else:
            ctx.tracker.open_in_browser(item.number)
    except PortExecutionFailure as e:
        error("{}", e.args[0])
        return False
    return True


def handle_branch(ctx: Context, branch: BranchName) -> bool:
    """Run an action on a local branch. Returns whether the todo menu is done."""
    action = BRANCH_ACTIONS[menu_choose(BRANCH_ACTIONS, title="Branch {}".format(branch))]
    if action == CANCEL:
        return False
    try:
        if action == CHECKOUT:
            ctx.repo.checkout(branch)
            success("Switched to branch '{}'", branch)
        else:
            info("Opening PR creation for {}...", branch)
            ctx.tracker.open_create_page(branch)
    except PortExecutionFailure as e:
        error("{}", e.args[0])
        return False
    return True


def cmd_todo(ctx: Context, args):
    """List PRs waiting on me and tracked branches with no PR, then act on one."""
    if not ctx.tracker.authenticated():
        raise TrackerAuthMissing()

    cout("Fetching PRs and branch status...\n")
    todo = build_todo(ctx)
    if todo.empty:
        success("All caught up! No PRs or branches need attention")
        return
    print_todo(todo)
    if not IS_TERMINAL:
        return

    entries = todo.entries()
    labels = [
        format_item(e, colorize=False) if isinstance(e, ReviewItem) else "{} (no PR)".format(e)
        for e in entries
    ]
    # Cancelling an action goes back to the list
    while True:
        chosen = entries[menu_choose(labels, title="Select a PR or branch")]
        if isinstance(chosen, ReviewItem):
            done = handle_pr(ctx, chosen)
        else:
            done = handle_branch(ctx, chosen)
        if done:
            return
