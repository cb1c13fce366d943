"""Stack data models for flowgit."""

import dataclasses
import enum
from typing import Dict, List, NamedTuple, Optional

from flowgit.utils.types import BranchName


@dataclasses.dataclass(frozen=True)
class PullRequest:
    """A pull request as reported by the tracker. Never persisted."""
    number: int
    title: str
    url: str
    state: str
    merged: bool = False
    head_branch: Optional[BranchName] = None
    base_branch: Optional[BranchName] = None

    @property
    def is_open(self) -> bool:
        return self.state == "OPEN"


@dataclasses.dataclass(frozen=True)
class PRStatus:
    """State of a branch's pull request from the batched tracker query."""
    state: str
    merged: bool

    @property
    def is_merged(self) -> bool:
        return self.merged or self.state == "MERGED"

    @property
    def is_closed(self) -> bool:
        return self.state == "CLOSED" and not self.merged


class CheckState(enum.Enum):
    """Combined CI state of a pull request."""
    FAILING = "failing"
    PENDING = "pending"
    PASSING = "passing"
    NONE = "none"


@dataclasses.dataclass(frozen=True)
class ReviewItem:
    """An open pull request found by a tracker search, for the todo list."""
    number: int
    title: str
    url: str
    branch: BranchName
    is_draft: bool = False
    review_decision: Optional[str] = None
    checks: CheckState = CheckState.NONE
    comments: int = 0


class AheadBehind(NamedTuple):
    """Commit counts of a local branch relative to its remote counterpart."""
    ahead: int
    behind: int


class SubmitScope(enum.Enum):
    CURRENT_ONLY = "current"
    FULL_STACK = "stack"


@dataclasses.dataclass
class RestackResult:
    """What a restack did."""
    branch: BranchName
    parent: BranchName
    reparented: bool = False
    parent_updated: bool = False
    # Descendants in the order they were rebased, with their depth below branch
    rebased_children: List[BranchName] = dataclasses.field(default_factory=list)
    depths: Dict[BranchName, int] = dataclasses.field(default_factory=dict)

    @property
    def count(self) -> int:
        return 1 + len(self.rebased_children)


@dataclasses.dataclass
class SyncReport:
    """Classification and outcome of a sync.

    dropped, merged, closed, fast_forwarded, diverged and untouched partition
    the tracked branches (trunk excluded).
    """
    dropped: List[BranchName] = dataclasses.field(default_factory=list)
    merged: List[BranchName] = dataclasses.field(default_factory=list)
    closed: List[BranchName] = dataclasses.field(default_factory=list)
    fast_forwarded: List[BranchName] = dataclasses.field(default_factory=list)
    diverged: List[BranchName] = dataclasses.field(default_factory=list)
    untouched: List[BranchName] = dataclasses.field(default_factory=list)
    deleted: List[BranchName] = dataclasses.field(default_factory=list)
    failed_deletions: Dict[BranchName, str] = dataclasses.field(default_factory=dict)

    def buckets(self) -> Dict[str, List[BranchName]]:
        return {
            "dropped": self.dropped,
            "merged": self.merged,
            "closed": self.closed,
            "fast_forwarded": self.fast_forwarded,
            "diverged": self.diverged,
            "untouched": self.untouched,
        }


class PushAction(enum.Enum):
    CREATED = "created"
    FORCE_PUSHED = "force-pushed"
    PUSHED = "pushed"
    UP_TO_DATE = "up-to-date"
    FAILED = "failed"


@dataclasses.dataclass
class BranchSubmitResult:
    branch: BranchName
    base: BranchName
    push: Optional[PushAction] = None
    pull_request: Optional[PullRequest] = None
    created: bool = False
    description_updated: bool = False
    error: Optional[str] = None


@dataclasses.dataclass
class SubmitReport:
    branches: List[BranchSubmitResult] = dataclasses.field(default_factory=list)

    @property
    def failures(self) -> List[BranchSubmitResult]:
        return [r for r in self.branches if r.error is not None]
