"""Submit: push a stack root-first and make sure every branch has a PR on its parent."""

from typing import Optional

from flowgit.git.repository import Repository
from flowgit.pr.description import DescriptionGenerator
from flowgit.pr.tracker import Tracker
from flowgit.stack.models import (
    AheadBehind, BranchSubmitResult, PushAction, SubmitReport, SubmitScope
)
from flowgit.stack.registry import StackRegistry
from flowgit.utils.errors import (
    CannotSubmitTrunk, DescriptionGenerationFailure, PortExecutionFailure,
    PullRequestCreationFailure, TrackerAuthMissing
)
from flowgit.utils.logging import cout, error, info, separator, success, warning
from flowgit.utils.types import BranchName, ConfirmFn


class SubmitEngine:
    def __init__(
        self,
        repo: Repository,
        registry: StackRegistry,
        tracker: Tracker,
        confirm: Optional[ConfirmFn] = None,
        describer: Optional[DescriptionGenerator] = None,
    ):
        self.repo = repo
        self.registry = registry
        self.tracker = tracker
        self.describer = describer
        if confirm is None:
            from flowgit.utils.ui import confirm
        self.confirm = confirm

    @property
    def trunk(self) -> BranchName:
        return self.registry.trunk

    def submit(self, branch: BranchName, scope: SubmitScope = SubmitScope.FULL_STACK) -> SubmitReport:
        if branch == self.trunk:
            raise CannotSubmitTrunk(self.trunk)
        if not self.tracker.authenticated():
            raise TrackerAuthMissing()

        if scope == SubmitScope.CURRENT_ONLY:
            branches = [branch]
        else:
            branches = self.registry.stack_to_trunk(branch)

        if len(branches) > 1:
            info("Submitting {} branches in stack:", len(branches))
            for b in branches:
                cout("  - {}\n", b)
            separator()

        try:
            self.repo.fetch()
        except PortExecutionFailure as e:
            warning("Failed to fetch: {}", e.args[0])

        report = SubmitReport([
            BranchSubmitResult(branch=b, base=self.registry.get_parent(b) or self.trunk)
            for b in branches
        ])
        # Root first, so each PR base already exists remotely
        for result in report.branches:
            self._push(result)

        separator()
        for result in report.branches:
            if result.push == PushAction.FAILED:
                continue
            self._ensure_pull_request(result)
        return report

    def _push(self, result: BranchSubmitResult):
        b = result.branch
        try:
            if not self.repo.has_remote_counterpart(b):
                cout("Pushing {} to remote...\n", b)
                self.repo.push(b, set_upstream=True)
                result.push = PushAction.CREATED
                success("Pushed {}", b)
                return

            counts = self.repo.ahead_behind(b) or AheadBehind(0, 0)
            if counts.behind > 0:
                info("Remote has changes on '{}', force pushing...", b)
                self.repo.push(b, force=True)
                result.push = PushAction.FORCE_PUSHED
                success("Force pushed {}", b)
            elif counts.ahead > 0:
                self.repo.push(b)
                result.push = PushAction.PUSHED
                success("Pushed {}", b)
            else:
                result.push = PushAction.UP_TO_DATE
                info("{} is up to date", b)
        except PortExecutionFailure as e:
            result.push = PushAction.FAILED
            result.error = e.args[0]
            error("Failed to push {}: {}", b, e.args[0])

    def _can_describe(self) -> bool:
        return self.describer is not None and self.describer.is_available()

    def _ensure_pull_request(self, result: BranchSubmitResult):
        b = result.branch
        existing = self.tracker.find_request_for(b)
        if existing is not None:
            result.pull_request = existing
            success("PR #{}: {}", existing.number, existing.title)
            cout("  {}\n", existing.url)
            if self._can_describe() and self.confirm("Update PR description?", False):
                self._regenerate_description(result)
            return

        title = self.repo.first_unique_commit_message(b, result.base) or b
        body = ""
        if self._can_describe():
            cout("Generating PR description...\n")
            try:
                body = self.describer.generate(b, result.base, title)
            except DescriptionGenerationFailure as e:
                warning("{}", e.args[0])

        try:
            pr = self.tracker.create(title, body, result.base, b)
        except PullRequestCreationFailure as e:
            if "already exists" in e.reason:
                success("Updated existing PR for branch '{}'", b)
                return
            result.error = e.args[0]
            error("{}", e.args[0])
            return
        result.pull_request = pr
        result.created = True
        success("Created PR #{}: {} ({} → {})", pr.number, pr.title, b, result.base)
        cout("  {}\n", pr.url)

    def _regenerate_description(self, result: BranchSubmitResult):
        pr = result.pull_request
        assert pr is not None and self.describer is not None
        try:
            body = self.describer.generate(result.branch, result.base, pr.title)
            self.tracker.update_description(pr.number, body)
        except (DescriptionGenerationFailure, PortExecutionFailure) as e:
            warning("{}", e.args[0])
            return
        result.description_updated = True
        success("Updated PR description")
