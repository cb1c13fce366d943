"""Wiring shared by every command handler."""

import dataclasses
from typing import Optional

from flowgit.git.config_store import GitConfigStore
from flowgit.git.repository import GitRepository, Repository, get_top_level_dir
from flowgit.pr.description import DescriptionGenerator
from flowgit.pr.tracker import GitHubTracker, Tracker
from flowgit.stack.registry import StackRegistry
from flowgit.utils.config import FlowgitConfig
from flowgit.utils.errors import NotARepository
from flowgit.utils.logging import die
from flowgit.utils.types import BranchName


@dataclasses.dataclass
class Context:
    repo: Repository
    registry: StackRegistry
    tracker: Tracker
    config: FlowgitConfig

    @property
    def trunk(self) -> BranchName:
        return self.registry.trunk

    def current_branch(self) -> BranchName:
        b = self.repo.current_branch()
        if b is None:
            die("Not on a branch (detached HEAD?)")
        return b

    def describer(self) -> Optional[DescriptionGenerator]:
        if not self.config.generate_description:
            return None
        return DescriptionGenerator(self.config.description_command, get_top_level_dir())


def make_context(config: FlowgitConfig) -> Context:
    repo = GitRepository(remote=config.remote)
    if not repo.is_repo():
        raise NotARepository()
    return Context(
        repo=repo,
        registry=StackRegistry(GitConfigStore(), trunk=config.trunk),
        tracker=GitHubTracker(remote=config.remote, batch_limit=config.batch_limit),
        config=config,
    )
