"""FlowGit - stacked branches on top of git and gh."""

from .main import main

from .utils.logging import die, cout, debug, info, warning, error, fmt, ExitException
from .utils.types import BranchName, CmdArgs
from .utils.config import FlowgitConfig, get_config, read_config
from .utils.errors import (
    FlowgitError, CannotRestackTrunk, CannotSubmitTrunk, SelfReparent, TargetNotFound,
    RebaseConflict, TrunkUpdateFailure, TrackerAuthMissing, PullRequestCreationFailure,
    PortExecutionFailure, DescriptionGenerationFailure, NotARepository
)

from .git.repository import Repository, GitRepository
from .git.config_store import KeyValueStore, GitConfigStore
from .pr.tracker import Tracker, GitHubTracker

from .stack.models import (
    PullRequest, PRStatus, AheadBehind, SubmitScope, RestackResult, SyncReport, SubmitReport,
    CheckState, ReviewItem
)
from .stack.registry import StackRegistry
from .stack.restack import RestackEngine
from .stack.sync import SyncEngine
from .stack.submit import SubmitEngine


def runner():
    main()
