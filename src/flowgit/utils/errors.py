"""Error taxonomy for flowgit.

Every error is an ExitException, so the entry point reports it the same way
as a plain die(): logged in red, exit status 1. Messages follow the
str.format convention used by die().
"""

from typing import Optional

from flowgit.utils.logging import ExitException


class FlowgitError(ExitException):
    """Base class for all flowgit errors."""


class NotARepository(FlowgitError):
    def __init__(self):
        super().__init__("Not in a git repository")


class CannotRestackTrunk(FlowgitError):
    def __init__(self, trunk: str):
        super().__init__("Cannot restack trunk branch ({})", trunk)
        self.trunk = trunk


class CannotSubmitTrunk(FlowgitError):
    def __init__(self, trunk: str):
        super().__init__("Cannot submit from trunk branch ({})", trunk)
        self.trunk = trunk


class SelfReparent(FlowgitError):
    def __init__(self, branch: str):
        super().__init__("Branch {} cannot be its own parent", branch)
        self.branch = branch


class TargetNotFound(FlowgitError):
    def __init__(self, branch: str, target: str):
        super().__init__("Cannot move {} onto {}: branch {} does not exist", branch, target, target)
        self.branch = branch
        self.target = target


class RebaseConflict(FlowgitError):
    """A rebase stopped on conflicts; the working tree is left as git left it."""

    def __init__(self, branch: str, onto: str, rebased: Optional[list] = None):
        msg = (
            "Rebase of {} onto {} failed. Resolve the conflicts, run "
            "`git rebase --continue`, then run `flowgit restack` again"
        )
        args = [branch, onto]
        if rebased:
            msg += " (already rebased: {})"
            args.append(", ".join(rebased))
        super().__init__(msg, *args)
        self.branch = branch
        self.onto = onto
        self.rebased = list(rebased or [])


class TrunkUpdateFailure(FlowgitError):
    def __init__(self, trunk: str, reason: str):
        super().__init__("Failed to update {}: {}", trunk, reason)
        self.trunk = trunk


class TrackerAuthMissing(FlowgitError):
    def __init__(self):
        super().__init__('GitHub CLI not authenticated. Run "gh auth login" first.')


class PullRequestCreationFailure(FlowgitError):
    def __init__(self, branch: str, reason: str):
        super().__init__("Failed to create PR for {}: {}", branch, reason)
        self.branch = branch
        self.reason = reason


class DescriptionGenerationFailure(FlowgitError):
    def __init__(self, reason: str):
        super().__init__("Could not generate PR description: {}", reason)


class PortExecutionFailure(FlowgitError):
    """A wrapped git/gh command exited unsuccessfully."""

    def __init__(self, command: str, returncode: int, stderr: str):
        if returncode < 0:
            super().__init__("Killed by signal {}: {}. Stderr was:\n{}", -returncode, command, stderr)
        else:
            super().__init__("Exited with status {}: {}. Stderr was:\n{}", returncode, command, stderr)
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
