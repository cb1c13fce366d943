"""Key/value storage on top of `git config`."""

from abc import ABC, abstractmethod
from typing import Optional

from flowgit.utils.shell import run
from flowgit.utils.types import CmdArgs


class KeyValueStore(ABC):
    """String key/value storage used by the stack registry."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]: ...

    @abstractmethod
    def set(self, key: str, value: str): ...

    @abstractmethod
    def unset(self, key: str):
        """Remove a key. Removing a missing key is not an error."""


class GitConfigStore(KeyValueStore):
    """Repository-local git config."""

    def __init__(self, cwd: Optional[str] = None):
        self.cwd = cwd

    def get(self, key: str) -> Optional[str]:
        value = run(CmdArgs(["git", "config", "--get", key]), check=False, cwd=self.cwd)
        return value or None

    def set(self, key: str, value: str):
        run(CmdArgs(["git", "config", key, value]), cwd=self.cwd)

    def unset(self, key: str):
        # Exit status 5 means the key was already absent
        run(CmdArgs(["git", "config", "--unset", key]), check=False, cwd=self.cwd)
