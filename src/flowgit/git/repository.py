"""Repository port and its git implementation.

Queries report expected absence as None/False. Commands that change the
repository raise PortExecutionFailure when git refuses them.
"""

import dataclasses
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from flowgit.stack.models import AheadBehind
from flowgit.utils.logging import info
from flowgit.utils.shell import remove_prefix, run, run_multiline, succeeds
from flowgit.utils.types import DEFAULT_REMOTE, BranchName, CmdArgs, PathName


@dataclasses.dataclass(frozen=True)
class StatusEntry:
    """One line of `git status --porcelain`."""
    path: str
    status: str
    staged: bool


class Repository(ABC):
    """Capabilities the stack engines need from version control."""

    @abstractmethod
    def is_repo(self) -> bool: ...

    @abstractmethod
    def current_branch(self) -> Optional[BranchName]: ...

    @abstractmethod
    def branch_exists(self, name: BranchName) -> bool: ...

    @abstractmethod
    def checkout(self, name: BranchName): ...

    @abstractmethod
    def create_branch(self, name: BranchName): ...

    @abstractmethod
    def commit(self, message: str): ...

    @abstractmethod
    def amend(self): ...

    @abstractmethod
    def fetch(self, prune: bool = False): ...

    @abstractmethod
    def pull(self):
        """Fast-forward the checked-out branch from its remote counterpart."""

    @abstractmethod
    def push(self, name: BranchName, set_upstream: bool = False, force: bool = False):
        """Push a branch. force is lease-protected."""

    @abstractmethod
    def rebase(self, onto: BranchName):
        """Rebase the checked-out branch onto another."""

    @abstractmethod
    def has_remote_counterpart(self, name: BranchName) -> bool: ...

    @abstractmethod
    def had_upstream_ever(self, name: BranchName) -> bool:
        """Whether the branch was ever pushed with an upstream configured."""

    @abstractmethod
    def ahead_behind(self, name: BranchName) -> Optional[AheadBehind]:
        """Compare with the remote counterpart, None if there is none."""

    @abstractmethod
    def merged_into(self, name: BranchName, target: BranchName) -> bool: ...

    @abstractmethod
    def delete_branch(self, name: BranchName, force: bool = False): ...

    @abstractmethod
    def first_unique_commit_message(self, name: BranchName, parent: BranchName) -> Optional[str]:
        """Subject of the oldest commit on name that is not on parent."""

    # Used by the command layer

    @abstractmethod
    def all_branches(self) -> List[BranchName]: ...

    @abstractmethod
    def checkout_remote_branch(self, name: BranchName):
        """Create a local branch from its remote counterpart and check it out."""

    @abstractmethod
    def branch_subject(self, name: BranchName) -> Optional[str]: ...

    @abstractmethod
    def last_commit_message(self) -> Optional[str]: ...

    @abstractmethod
    def status(self) -> List[StatusEntry]: ...

    @abstractmethod
    def stage_all(self): ...

    @abstractmethod
    def stage_files(self, paths: Sequence[str]): ...


def get_top_level_dir() -> Optional[PathName]:
    """Get the top-level directory of the git repository, if any."""
    p = run(CmdArgs(["git", "rev-parse", "--show-toplevel"]), check=False)
    if p is None:
        return None
    return PathName(p)


def parse_status(output: str) -> List[StatusEntry]:
    """Parse `git status --porcelain` output."""
    entries = []
    for line in output.split("\n"):
        if not line.strip():
            continue
        status = line[:2]
        path = line[2:].lstrip(" ")
        entries.append(StatusEntry(path, status, status[0] not in (" ", "?")))
    return entries


class GitRepository(Repository):
    """Repository port backed by the git CLI."""

    def __init__(self, remote: str = DEFAULT_REMOTE, cwd: Optional[str] = None):
        self.remote = remote
        self.cwd = cwd

    def _git(self, *args: str, **kwargs) -> Optional[str]:
        return run(CmdArgs(["git", *args]), cwd=self.cwd, **kwargs)

    def _git_ok(self, *args: str) -> bool:
        return succeeds(CmdArgs(["git", *args]), cwd=self.cwd)

    def _remote_ref(self, name: BranchName) -> str:
        return "refs/remotes/{}/{}".format(self.remote, name)

    def is_repo(self) -> bool:
        return self._git_ok("rev-parse", "--git-dir")

    def current_branch(self) -> Optional[BranchName]:
        s = self._git("symbolic-ref", "-q", "HEAD", check=False)
        if s:
            return BranchName(remove_prefix(s, "refs/heads/"))
        return None

    def branch_exists(self, name: BranchName) -> bool:
        return self._git_ok("rev-parse", "--verify", "--quiet", "refs/heads/{}".format(name))

    def checkout(self, name: BranchName):
        info("Checking out branch {}", name)
        self._git("checkout", name)

    def create_branch(self, name: BranchName):
        self._git("checkout", "-b", name)

    def commit(self, message: str):
        self._git("commit", "-m", message)

    def amend(self):
        self._git("commit", "--amend", "--no-edit")

    def fetch(self, prune: bool = False):
        args = ["fetch"]
        if prune:
            args.append("--prune")
        args.append(self.remote)
        self._git(*args)

    def pull(self):
        # Explicit refspec so branches without upstream config still pull
        branch = self.current_branch()
        if branch is None:
            self._git("pull", "--ff-only")
        else:
            self._git("pull", "--ff-only", self.remote, branch)

    def push(self, name: BranchName, set_upstream: bool = False, force: bool = False):
        args = ["push"]
        if set_upstream:
            args.append("-u")
        if force:
            args.append("--force-with-lease")
        args.extend([self.remote, name])
        self._git(*args)

    def rebase(self, onto: BranchName):
        self._git("rebase", onto)

    def has_remote_counterpart(self, name: BranchName) -> bool:
        return self._git_ok("rev-parse", "--verify", "--quiet", self._remote_ref(name))

    def had_upstream_ever(self, name: BranchName) -> bool:
        return self._git("config", "--get", "branch.{}.merge".format(name), check=False) is not None

    def ahead_behind(self, name: BranchName) -> Optional[AheadBehind]:
        if not self.has_remote_counterpart(name):
            return None
        out = self._git(
            "rev-list", "--left-right", "--count",
            "{}/{}...{}".format(self.remote, name, name),
            check=False,
        )
        if not out:
            return None
        behind, ahead = (int(x) for x in out.split())
        return AheadBehind(ahead=ahead, behind=behind)

    def merged_into(self, name: BranchName, target: BranchName) -> bool:
        out = self._git("branch", "--merged", target, "--format", "%(refname:short)", check=False)
        if out is None:
            return False
        return name in {b.strip() for b in out.split("\n")}

    def delete_branch(self, name: BranchName, force: bool = False):
        self._git("branch", "-D" if force else "-d", name)

    def first_unique_commit_message(self, name: BranchName, parent: BranchName) -> Optional[str]:
        out = self._git("log", "{}..{}".format(parent, name), "--reverse", "--format=%s", check=False)
        if out:
            return out.split("\n")[0].strip()
        return self.branch_subject(name)

    def all_branches(self) -> List[BranchName]:
        branches = run_multiline(
            CmdArgs(["git", "for-each-ref", "--format", "%(refname:short)", "refs/heads"]),
            cwd=self.cwd,
        )
        assert branches is not None
        return [BranchName(b) for b in branches.split("\n") if b]

    def checkout_remote_branch(self, name: BranchName):
        self._git("checkout", "-b", name, "--track", "{}/{}".format(self.remote, name))

    def branch_subject(self, name: BranchName) -> Optional[str]:
        return self._git("log", "-1", "--format=%s", name, check=False) or None

    def last_commit_message(self) -> Optional[str]:
        return self._git("log", "-1", "--format=%B", check=False) or None

    def status(self) -> List[StatusEntry]:
        out = run_multiline(CmdArgs(["git", "status", "--porcelain"]), cwd=self.cwd)
        return parse_status(out or "")

    def stage_all(self):
        self._git("add", "-A")

    def stage_files(self, paths: Sequence[str]):
        self._git("add", "--", *paths)
