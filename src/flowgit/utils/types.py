"""Type aliases and constants for flowgit."""

import logging
from typing import Callable, List, NewType

# Type aliases
BranchName = NewType("BranchName", str)
PathName = NewType("PathName", str)
CmdArgs = NewType("CmdArgs", List[str])

# Constants
DEFAULT_TRUNK = BranchName("main")
DEFAULT_REMOTE = "origin"
# Batched PR query looks at this many of the newest PRs, any author
DEFAULT_BATCH_LIMIT = 1000

# git config namespace owned by the stack registry
CONFIG_NAMESPACE = "flowgit"
TRACKED_KEY = f"{CONFIG_NAMESPACE}.tracked"
PARENT_KEY_FMT = CONFIG_NAMESPACE + ".branch.{}.parent"

# Log levels
LOGLEVELS = {
    "critical": logging.CRITICAL,
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}

# (question, default) -> answer; engines take one so prompts can be scripted
ConfirmFn = Callable[[str, bool], bool]
