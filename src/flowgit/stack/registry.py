"""Stack registry: the tracked-branch set and parent pointers.

Pure data access over a KeyValueStore. Nothing here checks that refs exist
or that parent chains are acyclic; the engines own that.
"""

from typing import List, Optional, Set

from flowgit.git.config_store import KeyValueStore
from flowgit.utils.types import DEFAULT_TRUNK, PARENT_KEY_FMT, TRACKED_KEY, BranchName


class StackRegistry:
    """Parent pointers and tracked set for one repository."""

    def __init__(self, store: KeyValueStore, trunk: BranchName = DEFAULT_TRUNK):
        self.store = store
        self.trunk = trunk

    def _read_tracked(self) -> List[BranchName]:
        raw = self.store.get(TRACKED_KEY)
        if not raw:
            return []
        return [BranchName(b.strip()) for b in raw.split(",") if b.strip()]

    def _write_tracked(self, branches: List[BranchName]):
        if branches:
            self.store.set(TRACKED_KEY, ",".join(branches))
        else:
            self.store.unset(TRACKED_KEY)

    def get_tracked(self) -> Set[BranchName]:
        return set(self._read_tracked())

    def is_tracked(self, name: BranchName) -> bool:
        return name == self.trunk or name in self.get_tracked()

    def add_tracked(self, name: BranchName):
        tracked = self._read_tracked()
        if name not in tracked:
            tracked.append(name)
            self._write_tracked(tracked)

    def remove_tracked(self, name: BranchName):
        tracked = self._read_tracked()
        if name in tracked:
            self._write_tracked([b for b in tracked if b != name])

    def get_parent(self, name: BranchName) -> Optional[BranchName]:
        if name == self.trunk:
            return None
        parent = self.store.get(PARENT_KEY_FMT.format(name))
        return BranchName(parent) if parent else None

    def set_parent(self, name: BranchName, parent: BranchName):
        self.store.set(PARENT_KEY_FMT.format(name), parent)

    def clear_parent(self, name: BranchName):
        self.store.unset(PARENT_KEY_FMT.format(name))

    def get_children(self, name: BranchName) -> Set[BranchName]:
        return {b for b in self._read_tracked() if b != name and self.get_parent(b) == name}

    def stack_to_trunk(self, name: BranchName) -> List[BranchName]:
        """Root-first list of branches from just above trunk up to name.

        A missing parent counts as trunk. The walk is bounded by the size of
        the tracked set so a corrupted, cyclic chain still terminates.
        """
        stack: List[BranchName] = []
        max_hops = len(self._read_tracked()) + 1
        current: Optional[BranchName] = name
        while current and current != self.trunk and len(stack) < max_hops:
            if current in stack:
                break
            stack.insert(0, current)
            current = self.get_parent(current)
        return stack
