"""Tree formatting and traversal for flowgit stacks."""

from typing import TYPE_CHECKING, Dict, Generator, List, Mapping, NewType, Optional, Set

from flowgit.stack.models import PRStatus
from flowgit.stack.registry import StackRegistry
from flowgit.utils.logging import fmt
from flowgit.utils.types import BranchName

if TYPE_CHECKING:
    from flowgit.git.repository import Repository

# branch -> subtree of its children
BranchesTree = NewType("BranchesTree", Dict[BranchName, "BranchesTree"])
BranchesTreeForest = NewType("BranchesTreeForest", List[BranchesTree])


def make_subtree(registry: StackRegistry, b: BranchName, seen: Set[BranchName]) -> BranchesTree:
    """Create a subtree for a branch's children."""
    seen.add(b)
    return BranchesTree({
        c: make_subtree(registry, c, seen)
        for c in sorted(registry.get_children(b))
        if c not in seen
    })


def make_tree(registry: StackRegistry, b: BranchName, seen: Optional[Set[BranchName]] = None) -> BranchesTree:
    """Create a tree rooted at a branch."""
    if seen is None:
        seen = set()
    return BranchesTree({b: make_subtree(registry, b, seen)})


def get_all_stacks_as_forest(registry: StackRegistry) -> BranchesTreeForest:
    """Trunk's tree first, then trees for tracked branches with no reachable parent."""
    seen: Set[BranchName] = set()
    forest = BranchesTreeForest([make_tree(registry, registry.trunk, seen)])
    tracked = registry.get_tracked()
    for b in sorted(tracked):
        if b in seen:
            continue
        parent = registry.get_parent(b)
        if parent is None or (parent != registry.trunk and parent not in tracked):
            forest.append(make_tree(registry, b, seen))
    return forest


def depth_first(tree: BranchesTree) -> Generator[BranchName, None, None]:
    """Iterate over a tree in depth-first order."""
    for branch, children in tree.items():
        yield branch
        yield from depth_first(children)


def forest_depth_first(forest: BranchesTreeForest) -> Generator[BranchName, None, None]:
    for tree in forest:
        yield from depth_first(tree)


def format_name(
    b: BranchName,
    *,
    current: Optional[BranchName],
    statuses: Mapping[BranchName, PRStatus],
    colorize: bool,
) -> str:
    """Format a branch name with current-branch and PR state markers."""
    prefix = ""
    fg = "green"
    if b == current:
        prefix = fmt("* ", color=colorize, fg="cyan")
        fg = "cyan"
    suffix = ""
    status = statuses.get(b)
    if status is not None:
        if status.is_merged:
            suffix = fmt(" (merged)", color=colorize, fg="magenta")
        elif status.is_closed:
            suffix = fmt(" (closed)", color=colorize, fg="red")
        else:
            suffix = fmt(" (open)", color=colorize, fg="blue")
    return prefix + fmt("{}", b, color=colorize, fg=fg) + suffix


def format_tree(
    tree: BranchesTree,
    *,
    current: Optional[BranchName] = None,
    statuses: Optional[Mapping[BranchName, PRStatus]] = None,
    colorize: bool = False,
):
    """Format a tree for display."""
    statuses = statuses or {}
    return {
        format_name(branch, current=current, statuses=statuses, colorize=colorize): format_tree(
            children, current=current, statuses=statuses, colorize=colorize
        )
        for branch, children in tree.items()
    }


def render_tree(tree: BranchesTree, **kwargs) -> str:
    """Render a tree upside down, so trunk is at the bottom like in `flowgit down`."""
    from flowgit.utils.ui import ASCII_TREE
    s = ASCII_TREE(format_tree(tree, **kwargs))
    return "\n".join(reversed([line for line in s.split("\n") if line]))


def print_tree(tree: BranchesTree, **kwargs):
    # Read at call time, --color may have changed it
    from flowgit.utils.logging import COLOR_STDOUT
    print(render_tree(tree, colorize=COLOR_STDOUT, **kwargs))


def print_forest(trees: BranchesTreeForest, **kwargs):
    """Print multiple trees."""
    for i, t in enumerate(trees):
        if i != 0:
            print()
        print_tree(t, **kwargs)


def pick_branch(registry: StackRegistry, repo: "Repository", title: str = "Checkout a branch") -> Optional[BranchName]:
    """Pick a tracked branch from the same upside-down tree `flowgit log` draws.

    Returns None when there is nothing but the current branch to pick.
    """
    from flowgit.utils.ui import menu_choose
    current = repo.current_branch()
    names: List[BranchName] = []
    labels: List[str] = []
    for tree in get_all_stacks_as_forest(registry):
        # asciitree draws one line per node, in depth-first order
        branches = list(depth_first(tree))
        lines = render_tree(tree, current=current).split("\n")[::-1]
        for b, line in reversed(list(zip(branches, lines))):
            names.append(b)
            subject = repo.branch_subject(b)
            labels.append("{}  {}".format(line, subject) if subject else line)

    if all(b == current for b in names):
        return None
    cursor = names.index(current) if current in names else 0
    return names[menu_choose(labels, title=title, cursor_index=cursor)]
