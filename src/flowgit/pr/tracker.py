"""Tracker port and its GitHub (`gh` CLI) implementation."""

import json
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from flowgit.stack.models import CheckState, PRStatus, PullRequest, ReviewItem
from flowgit.utils.errors import PortExecutionFailure, PullRequestCreationFailure
from flowgit.utils.logging import debug
from flowgit.utils.shell import run, run_always_return, succeeds
from flowgit.utils.types import DEFAULT_BATCH_LIMIT, DEFAULT_REMOTE, BranchName, CmdArgs

PR_FIELDS = ["number", "title", "url", "state", "mergedAt", "headRefName", "baseRefName"]

# When a head branch has several PRs, the first state in this list wins
_STATE_PRIORITY = ["OPEN", "MERGED", "CLOSED"]

SEARCH_FIELDS = [
    "number", "title", "url", "headRefName", "isDraft", "reviewDecision", "statusCheckRollup", "comments",
]
SEARCH_LIMIT = 100

_FAILED_CONCLUSIONS = {"FAILURE", "ERROR", "TIMED_OUT", "ACTION_REQUIRED"}
_PENDING_STATES = {"IN_PROGRESS", "QUEUED", "PENDING", "REQUESTED", "WAITING", "EXPECTED"}


class Tracker(ABC):
    """Capabilities the engines need from the review tracker."""

    @abstractmethod
    def authenticated(self) -> bool: ...

    @abstractmethod
    def find_request_for(self, branch: BranchName) -> Optional[PullRequest]:
        """The open PR for branch, else its most relevant PR in any state."""

    @abstractmethod
    def batch_list_all(self) -> Dict[BranchName, PRStatus]:
        """PR states for all head branches in a single query."""

    @abstractmethod
    def create(self, title: str, body: str, base: BranchName, head: BranchName) -> PullRequest:
        """Open a PR. Raises PullRequestCreationFailure."""

    @abstractmethod
    def update_description(self, number: int, body: str): ...

    @abstractmethod
    def search(self, query: str) -> List[ReviewItem]:
        """Open PRs matching a search query such as "review-requested:@me"."""

    @abstractmethod
    def open_in_browser(self, number: int): ...

    @abstractmethod
    def open_create_page(self, head: BranchName):
        """Open the web form for a new PR from head."""


def _state_rank(state: str) -> int:
    try:
        return _STATE_PRIORITY.index(state)
    except ValueError:
        return len(_STATE_PRIORITY)


def pick_most_relevant(prs: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Pick the open PR if there is one, then merged, then closed."""
    if not prs:
        return None
    return min(prs, key=lambda pr: _state_rank(pr.get("state", "")))


def to_pull_request(data: Dict[str, Any]) -> PullRequest:
    state = data.get("state", "")
    head = data.get("headRefName")
    base = data.get("baseRefName")
    return PullRequest(
        number=int(data["number"]),
        title=data.get("title", ""),
        url=data.get("url", ""),
        state=state,
        merged=state == "MERGED" or bool(data.get("mergedAt")),
        head_branch=BranchName(head) if head else None,
        base_branch=BranchName(base) if base else None,
    )


def _check_outcome(check: Dict[str, Any]) -> CheckState:
    # Check runs carry status/conclusion, commit statuses only a state
    status = check.get("status")
    result = check.get("conclusion") or check.get("state")
    if result in _FAILED_CONCLUSIONS:
        return CheckState.FAILING
    if status in _PENDING_STATES or result in _PENDING_STATES:
        return CheckState.PENDING
    if status is not None and status != "COMPLETED" and not result:
        return CheckState.PENDING
    return CheckState.PASSING


def check_state(rollup: Any) -> CheckState:
    """Fold a statusCheckRollup into one state: any failure, else any pending, else passing."""
    if not isinstance(rollup, list):
        return CheckState.NONE
    checks = [c for c in rollup if isinstance(c, dict) and (c.get("name") or c.get("context"))]
    if not checks:
        return CheckState.NONE
    outcomes = {_check_outcome(c) for c in checks}
    for state in (CheckState.FAILING, CheckState.PENDING):
        if state in outcomes:
            return state
    return CheckState.PASSING


def to_review_item(data: Dict[str, Any]) -> ReviewItem:
    return ReviewItem(
        number=int(data["number"]),
        title=data.get("title", ""),
        url=data.get("url", ""),
        branch=BranchName(data.get("headRefName", "")),
        is_draft=bool(data.get("isDraft")),
        review_decision=data.get("reviewDecision") or None,
        checks=check_state(data.get("statusCheckRollup")),
        comments=len(data.get("comments") or []),
    )


class GitHubTracker(Tracker):
    """Tracker port backed by the GitHub CLI."""

    def __init__(self, remote: str = DEFAULT_REMOTE, batch_limit: int = DEFAULT_BATCH_LIMIT):
        self.remote = remote
        self.batch_limit = batch_limit

    def authenticated(self) -> bool:
        return succeeds(CmdArgs(["gh", "auth", "status"]))

    def _list_for_head(self, head: str) -> List[Dict[str, Any]]:
        out = run(
            CmdArgs([
                "gh", "pr", "list", "--head", head, "--state", "all",
                "--json", ",".join(PR_FIELDS),
            ]),
            check=False,
        )
        if not out:
            return []
        return json.loads(out)

    def find_request_for(self, branch: BranchName) -> Optional[PullRequest]:
        # Head matching can be name-scoped, so retry with the remote prefix
        for head in (branch, "{}/{}".format(self.remote, branch)):
            pr = pick_most_relevant(self._list_for_head(head))
            if pr is not None:
                return to_pull_request(pr)
        return None

    def batch_list_all(self) -> Dict[BranchName, PRStatus]:
        data = json.loads(
            run_always_return(
                CmdArgs([
                    "gh", "pr", "list", "--state", "all",
                    "--limit", str(self.batch_limit),
                    "--json", "headRefName,state,mergedAt",
                ])
            )
        )
        by_head: Dict[str, List[Dict[str, Any]]] = {}
        for pr in data:
            by_head.setdefault(pr["headRefName"], []).append(pr)

        statuses: Dict[BranchName, PRStatus] = {}
        for head, prs in by_head.items():
            pr = pick_most_relevant(prs)
            assert pr is not None
            statuses[BranchName(head)] = PRStatus(
                state=pr["state"],
                merged=pr["state"] == "MERGED" or bool(pr.get("mergedAt")),
            )
        debug("Fetched PR status for {} branch(es)", len(statuses))
        return statuses

    def create(self, title: str, body: str, base: BranchName, head: BranchName) -> PullRequest:
        try:
            out = run_always_return(
                CmdArgs([
                    "gh", "pr", "create", "--title", title, "--body", body,
                    "--base", base, "--head", head,
                ])
            )
            url = out.split("\n")[-1].strip()
            data = json.loads(
                run_always_return(CmdArgs(["gh", "pr", "view", url, "--json", ",".join(PR_FIELDS)]))
            )
        except PortExecutionFailure as e:
            raise PullRequestCreationFailure(head, e.stderr or e.args[0])
        return to_pull_request(data)

    def update_description(self, number: int, body: str):
        run(CmdArgs(["gh", "pr", "edit", str(number), "--body", body]))

    def search(self, query: str) -> List[ReviewItem]:
        data = json.loads(
            run_always_return(
                CmdArgs([
                    "gh", "pr", "list", "--search", query,
                    "--json", ",".join(SEARCH_FIELDS), "--limit", str(SEARCH_LIMIT),
                ])
            )
            or "[]"
        )
        return [to_review_item(pr) for pr in data]

    def open_in_browser(self, number: int):
        run(CmdArgs(["gh", "pr", "view", str(number), "--web"]), out=True)

    def open_create_page(self, head: BranchName):
        run(CmdArgs(["gh", "pr", "create", "--web", "--head", head]), out=True)
