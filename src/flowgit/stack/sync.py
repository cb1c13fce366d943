"""Sync: reconcile trunk and tracked branches with the remote and the tracker."""

from typing import Dict, List, Optional

from flowgit.git.repository import Repository
from flowgit.pr.tracker import Tracker
from flowgit.stack.models import PRStatus, SyncReport
from flowgit.stack.registry import StackRegistry
from flowgit.utils.errors import PortExecutionFailure, TrunkUpdateFailure
from flowgit.utils.logging import cout, error, info, separator, success, warning
from flowgit.utils.types import BranchName, ConfirmFn

MERGED = "merged"
CLOSED = "closed"
FAST_FORWARDED = "fast_forwarded"
DIVERGED = "diverged"
UNTOUCHED = "untouched"


class SyncEngine:
    def __init__(
        self,
        repo: Repository,
        registry: StackRegistry,
        tracker: Tracker,
        confirm: Optional[ConfirmFn] = None,
    ):
        self.repo = repo
        self.registry = registry
        self.tracker = tracker
        if confirm is None:
            from flowgit.utils.ui import confirm
        self.confirm = confirm

    @property
    def trunk(self) -> BranchName:
        return self.registry.trunk

    def sync(self) -> SyncReport:
        """Fetch, update trunk, classify tracked branches and offer cleanup.

        Only a failure to update trunk is fatal. Anything that goes wrong with
        a single branch downgrades that branch to diverged.
        """
        report = SyncReport()
        start = self.repo.current_branch()
        try:
            self._fetch()
            self._update_trunk(start)
            self._return_to(start)

            statuses = self._pr_statuses()
            separator()
            for branch in sorted(self.registry.get_tracked() - {self.trunk}):
                self._classify(branch, statuses, start, report)
            self._return_to(start)

            self._offer_deletion(report.merged, "Merged branches:", "Delete merged branches?", True, report)
            self._offer_deletion(
                report.closed, "Branches with closed PRs (not merged):",
                "Delete branches with closed PRs?", False, report,
            )
            self._return_to(start)
        except KeyboardInterrupt:
            self._return_to(start)
            raise

        self._print_summary(report)
        return report

    def _fetch(self):
        cout("Fetching from remote...\n")
        try:
            self.repo.fetch(prune=True)
        except PortExecutionFailure as e:
            warning("Failed to fetch: {}", e.args[0])

    def _update_trunk(self, start: Optional[BranchName]):
        try:
            self.repo.checkout(self.trunk)
            self.repo.pull()
        except PortExecutionFailure as e:
            self._return_to(start)
            raise TrunkUpdateFailure(self.trunk, e.args[0])
        success("Updated {}", self.trunk)

    def _pr_statuses(self) -> Dict[BranchName, PRStatus]:
        if not self.tracker.authenticated():
            warning("GitHub CLI not authenticated, skipping PR status checks")
            return {}
        try:
            statuses = self.tracker.batch_list_all()
        except (PortExecutionFailure, ValueError) as e:
            warning("Could not fetch PR statuses: {}", e)
            return {}
        info("Checked {} PR(s)", len(statuses))
        return statuses

    def _classify(
        self,
        branch: BranchName,
        statuses: Dict[BranchName, PRStatus],
        start: Optional[BranchName],
        report: SyncReport,
    ):
        try:
            if not self.repo.branch_exists(branch):
                info("{} no longer exists, untracking", branch)
                self.registry.remove_tracked(branch)
                self.registry.clear_parent(branch)
                report.dropped.append(branch)
                return
            bucket = self._bucket_for(branch, statuses, start)
        except PortExecutionFailure as e:
            warning("Could not sync {}: {}", branch, e.args[0])
            bucket = DIVERGED
        getattr(report, bucket).append(branch)

    def _bucket_for(
        self, branch: BranchName, statuses: Dict[BranchName, PRStatus], start: Optional[BranchName]
    ) -> str:
        if self.repo.merged_into(branch, self.trunk):
            return MERGED

        status = statuses.get(branch)
        if status is not None:
            if status.is_merged:
                return MERGED
            if status.is_closed:
                return CLOSED

        # Pushed before, remote ref gone after the pruning fetch
        remote_exists = self.repo.has_remote_counterpart(branch)
        if not remote_exists and self.repo.had_upstream_ever(branch):
            return MERGED

        counts = self.repo.ahead_behind(branch) if remote_exists else None
        if counts is None or counts.behind == 0:
            return UNTOUCHED
        if counts.ahead > 0:
            return DIVERGED

        self.repo.checkout(branch)
        try:
            self.repo.pull()
        finally:
            self._return_to(start)
        success("Fast-forwarded {} ({} commits)", branch, counts.behind)
        return FAST_FORWARDED

    def _offer_deletion(
        self, branches: List[BranchName], title: str, question: str, default: bool, report: SyncReport
    ):
        if not branches:
            return
        separator()
        info(title)
        for b in branches:
            cout("  - {}\n", b)
        if not self.confirm(question, default):
            return
        for b in branches:
            self.delete_cleanly(b, report)

    def delete_cleanly(self, branch: BranchName, report: SyncReport):
        """Adopt children to the grandparent, delete the ref and untrack.

        Children are moved before the ref goes away, so they never point at a
        branch that no longer exists.
        """
        try:
            if self.repo.current_branch() == branch:
                self.repo.checkout(self.trunk)

            grandparent = self.registry.get_parent(branch) or self.trunk
            for child in sorted(self.registry.get_children(branch)):
                self.registry.set_parent(child, grandparent)
                info("  Updated {} to point to {}", child, grandparent)

            try:
                self.repo.delete_branch(branch)
            except PortExecutionFailure:
                # Squash-merged branches have no merge commit, so -d refuses
                self.repo.delete_branch(branch, force=True)

            self.registry.remove_tracked(branch)
            self.registry.clear_parent(branch)
        except PortExecutionFailure as e:
            error("Failed to delete {}: {}", branch, e.args[0])
            report.failed_deletions[branch] = e.args[0]
            return
        report.deleted.append(branch)
        success("Deleted {}", branch)

    def _return_to(self, branch: Optional[BranchName]):
        if branch is None or self.repo.current_branch() == branch:
            return
        if not self.repo.branch_exists(branch):
            return
        try:
            self.repo.checkout(branch)
        except PortExecutionFailure as e:
            warning("Could not return to {}: {}", branch, e.args[0])

    def _print_summary(self, report: SyncReport):
        if report.diverged:
            separator()
            warning("Diverged branches (manual rebase needed):")
            for b in report.diverged:
                cout("  - {}\n", b)

        separator()
        if report.deleted:
            success(
                "Cleaned up {} branch(es), fast-forwarded {} branch(es)",
                len(report.deleted), len(report.fast_forwarded),
            )
        else:
            success("Fast-forwarded {} tracked branch(es)", len(report.fast_forwarded))
