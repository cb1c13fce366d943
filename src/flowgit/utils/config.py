"""Configuration management for flowgit."""

import configparser
import dataclasses
import os
from typing import Optional

from flowgit.utils.logging import debug
from flowgit.utils.types import DEFAULT_BATCH_LIMIT, DEFAULT_REMOTE, DEFAULT_TRUNK, BranchName


@dataclasses.dataclass
class FlowgitConfig:
    """Configuration options for flowgit."""
    skip_confirm: bool = False
    trunk: BranchName = DEFAULT_TRUNK
    remote: str = DEFAULT_REMOTE
    generate_description: bool = True
    description_command: str = "claude"
    batch_limit: int = DEFAULT_BATCH_LIMIT

    def read_one_config(self, config_path: str):
        """Read configuration from a single file."""
        rawconfig = configparser.ConfigParser()
        rawconfig.read(config_path)
        if rawconfig.has_section("UI"):
            self.skip_confirm = rawconfig.getboolean("UI", "skip_confirm", fallback=self.skip_confirm)

        if rawconfig.has_section("GIT"):
            self.trunk = BranchName(rawconfig.get("GIT", "trunk", fallback=self.trunk))
            self.remote = rawconfig.get("GIT", "remote", fallback=self.remote)

        if rawconfig.has_section("PR"):
            self.generate_description = rawconfig.getboolean(
                "PR", "generate_description", fallback=self.generate_description
            )
            self.description_command = rawconfig.get(
                "PR", "description_command", fallback=self.description_command
            )
            self.batch_limit = rawconfig.getint("PR", "batch_limit", fallback=self.batch_limit)


# Global config singleton
CONFIG: Optional[FlowgitConfig] = None


def get_config() -> FlowgitConfig:
    """Get the global configuration, loading it if necessary."""
    global CONFIG
    if CONFIG is None:
        CONFIG = read_config()
    return CONFIG


def read_config() -> FlowgitConfig:
    """Read configuration from config files."""
    config = FlowgitConfig()
    config_paths = [os.path.expanduser("~/.flowgitconfig")]

    from flowgit.git.repository import get_top_level_dir
    root_dir = get_top_level_dir()
    if root_dir is not None:
        config_paths.append(f"{root_dir}/.flowgitconfig")
    else:
        debug("Not in a git repository, skipping repo-level config")

    for p in config_paths:
        # Root dir config overwrites home directory config
        if os.path.exists(p):
            config.read_one_config(p)

    return config
