"""Restack: rebase a branch onto its parent, optionally moving it and its descendants."""

from typing import List, Optional, Set, Tuple

from flowgit.git.repository import Repository
from flowgit.stack.models import RestackResult
from flowgit.stack.registry import StackRegistry
from flowgit.utils.errors import (
    CannotRestackTrunk, PortExecutionFailure, RebaseConflict, SelfReparent, TargetNotFound
)
from flowgit.utils.logging import cout, info, warning
from flowgit.utils.types import BranchName, ConfirmFn


class RestackEngine:
    def __init__(self, repo: Repository, registry: StackRegistry, confirm: Optional[ConfirmFn] = None):
        self.repo = repo
        self.registry = registry
        if confirm is None:
            from flowgit.utils.ui import confirm
        self.confirm = confirm

    @property
    def trunk(self) -> BranchName:
        return self.registry.trunk

    def restack(
        self,
        branch: BranchName,
        target: Optional[BranchName] = None,
        *,
        cascade: Optional[bool] = None,
    ) -> RestackResult:
        """Rebase branch onto target (which becomes its parent) or its recorded parent.

        cascade=None asks once whether descendants should follow when there are
        any. A conflict raises RebaseConflict and leaves the tree mid-rebase;
        nothing already done is rolled back.
        """
        if branch == self.trunk:
            raise CannotRestackTrunk(self.trunk)

        recorded = self.registry.get_parent(branch)
        if target is not None and target == branch:
            raise SelfReparent(branch)
        reparent = target is not None and target != recorded
        if reparent and not self.repo.branch_exists(target):
            raise TargetNotFound(branch, target)
        parent = target or recorded or self.trunk

        result = RestackResult(branch=branch, parent=parent, reparented=reparent)
        original = self.repo.current_branch()
        try:
            if reparent:
                self.registry.set_parent(branch, parent)
                self.registry.add_tracked(branch)
                info("Recorded {} as parent of {}", parent, branch)

            if original != branch:
                self.repo.checkout(branch)
            self._fetch()
            result.parent_updated = self._update_parent(branch, parent)

            cout("Rebasing {} onto {}\n", branch, parent, fg="green")
            try:
                self.repo.rebase(parent)
            except PortExecutionFailure:
                raise RebaseConflict(branch, parent)

            children = sorted(self.registry.get_children(branch))
            if children and self._should_cascade(branch, children, cascade):
                self._rebase_descendants(branch, children, result)

            self._restore(original)
        except KeyboardInterrupt:
            self._restore(original)
            raise

        cout("✓ Restacked {} branch(es)\n", result.count, fg="green")
        return result

    def _should_cascade(self, branch: BranchName, children: List[BranchName], cascade: Optional[bool]) -> bool:
        if cascade is not None:
            return cascade
        cout("{} has children: {}\n", branch, ", ".join(children))
        return self.confirm("Rebase children branches too?", True)

    def _rebase_descendants(self, branch: BranchName, children: List[BranchName], result: RestackResult):
        # Pre-order depth-first walk; the worklist is LIFO so push children reversed
        work: List[Tuple[BranchName, BranchName, int]] = [(c, branch, 1) for c in reversed(children)]
        seen: Set[BranchName] = {branch}
        while work:
            child, onto, depth = work.pop()
            if child in seen or child == self.trunk:
                continue
            seen.add(child)

            cout("{}Rebasing {} onto {}\n", "  " * depth, child, onto, fg="green")
            self.repo.checkout(child)
            try:
                self.repo.rebase(onto)
            except PortExecutionFailure:
                raise RebaseConflict(child, onto, rebased=[branch] + result.rebased_children)
            result.rebased_children.append(child)
            result.depths[child] = depth

            grandchildren = sorted(self.registry.get_children(child))
            work.extend((g, child, depth + 1) for g in reversed(grandchildren))

    def _fetch(self):
        try:
            self.repo.fetch()
        except PortExecutionFailure as e:
            warning("Failed to fetch, continuing without it: {}", e.args[0])

    def _update_parent(self, branch: BranchName, parent: BranchName) -> bool:
        """Pull parent from its remote if it has one. Failures only warn."""
        if not self.repo.has_remote_counterpart(parent):
            return False
        updated = False
        try:
            self.repo.checkout(parent)
            self.repo.pull()
            updated = True
            info("Updated {}", parent)
        except PortExecutionFailure as e:
            warning("Could not update {}: {}", parent, e.args[0])
        if self.repo.current_branch() != branch:
            self.repo.checkout(branch)
        return updated

    def _restore(self, original: Optional[BranchName]):
        if original is None or self.repo.current_branch() == original:
            return
        try:
            self.repo.checkout(original)
        except PortExecutionFailure as e:
            warning("Could not return to {}: {}", original, e.args[0])
