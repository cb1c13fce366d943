#!/usr/bin/env python3
"""Tests for flowgit.stack.restack module."""

import unittest

from flowgit.stack.registry import StackRegistry
from flowgit.stack.restack import RestackEngine
from flowgit.tests.fakes import FakeRepository, MemoryStore, ScriptedConfirm
from flowgit.utils.errors import (
    CannotRestackTrunk, RebaseConflict, SelfReparent, TargetNotFound
)
from flowgit.utils.types import BranchName


def make_stack(repo, registry, chain):
    """Create branches on top of each other, each with its own file."""
    parent = "main"
    for name in chain:
        repo.make_branch(name, parent, "Add " + name)
        registry.add_tracked(BranchName(name))
        registry.set_parent(BranchName(name), BranchName(parent))
        parent = name


class RestackTestCase(unittest.TestCase):
    def setUp(self):
        self.repo = FakeRepository()
        self.store = MemoryStore()
        self.registry = StackRegistry(self.store)
        make_stack(self.repo, self.registry, ["A", "B", "C"])
        self.repo.head = "A"
        self.confirm = ScriptedConfirm()
        self.engine = RestackEngine(self.repo, self.registry, confirm=self.confirm)


class TestRestackCascade(RestackTestCase):
    def setUp(self):
        super().setUp()
        self.repo.add_remote_commit("main", "Upstream change", {"m.txt": "m"})

    def test_cascade_brings_trunk_changes_to_every_descendant(self):
        result = self.engine.restack(BranchName("A"), cascade=True)

        for b in ["A", "B", "C"]:
            self.assertEqual(self.repo.files(b).get("m.txt"), "m", b)
        self.assertEqual(self.repo.files("C"), {
            "README.md": "hello", "m.txt": "m", "A.txt": "A", "B.txt": "B", "C.txt": "C",
        })
        # Patches already on the rebased parent are not replayed twice
        self.assertEqual(
            self.repo.messages("C"),
            ["initial commit", "Upstream change", "Add A", "Add B", "Add C"],
        )
        self.assertEqual(result.rebased_children, ["B", "C"])
        self.assertEqual(result.depths, {"B": 1, "C": 2})
        self.assertEqual(result.count, 3)
        self.assertTrue(result.parent_updated)
        self.assertEqual(self.repo.head, "A")

    def test_prompt_asked_once_and_defaults_to_yes(self):
        self.engine.restack(BranchName("A"))
        self.assertEqual(self.confirm.questions, ["Rebase children branches too?"])
        self.assertIn("m.txt", self.repo.files("C"))

    def test_declining_cascade_only_rebases_branch(self):
        self.confirm.answers["children"] = False
        result = self.engine.restack(BranchName("A"))
        self.assertIn("m.txt", self.repo.files("A"))
        self.assertNotIn("m.txt", self.repo.files("B"))
        self.assertEqual(result.rebased_children, [])

    def test_no_prompt_without_children(self):
        self.repo.head = "C"
        self.engine.restack(BranchName("C"))
        self.assertEqual(self.confirm.questions, [])

    def test_preorder_over_siblings(self):
        self.repo.make_branch("D", "A", "Add D")
        self.registry.add_tracked(BranchName("D"))
        self.registry.set_parent(BranchName("D"), BranchName("A"))
        result = self.engine.restack(BranchName("A"), cascade=True)
        self.assertEqual(result.rebased_children, ["B", "C", "D"])
        self.assertIn("m.txt", self.repo.files("D"))

    def test_restores_starting_branch(self):
        self.repo.head = "C"
        self.engine.restack(BranchName("A"), cascade=True)
        self.assertEqual(self.repo.head, "C")

    def test_rerun_is_a_noop(self):
        self.engine.restack(BranchName("A"), cascade=True)
        before = {b: list(self.repo.branches[b]) for b in ["A", "B", "C"]}
        self.engine.restack(BranchName("A"), cascade=True)
        self.assertEqual({b: self.repo.branches[b] for b in ["A", "B", "C"]}, before)

    def test_fetch_failure_only_warns(self):
        self.repo.fail_fetch = True
        self.engine.restack(BranchName("A"), cascade=False)
        self.assertIn("m.txt", self.repo.files("A"))

    def test_parent_update_failure_only_warns(self):
        self.repo.fail_pull.add("main")
        result = self.engine.restack(BranchName("A"), cascade=False)
        self.assertFalse(result.parent_updated)
        self.assertEqual(self.repo.head, "A")


class TestReparent(RestackTestCase):
    def test_reparent_onto_trunk(self):
        self.repo.head = "B"
        self.repo.add_commit("main", "Trunk change", {"t.txt": "t"})
        result = self.engine.restack(BranchName("B"), BranchName("main"), cascade=True)

        self.assertTrue(result.reparented)
        self.assertEqual(self.registry.get_parent(BranchName("B")), "main")
        self.assertEqual(self.registry.get_children(BranchName("A")), set())
        self.assertEqual(self.registry.get_children(BranchName("main")), {"A", "B"})
        self.assertIn("t.txt", self.repo.files("B"))
        self.assertIn("t.txt", self.repo.files("C"))

    def test_target_equal_to_recorded_parent_is_not_a_reparent(self):
        self.repo.head = "B"
        result = self.engine.restack(BranchName("B"), BranchName("A"), cascade=False)
        self.assertFalse(result.reparented)

    def test_reparent_tracks_branch(self):
        self.repo.make_branch("loose", "main", "Add loose")
        self.repo.head = "loose"
        self.engine.restack(BranchName("loose"), BranchName("C"))
        self.assertIn("loose", self.registry.get_tracked())
        self.assertEqual(self.registry.get_parent(BranchName("loose")), "C")
        self.assertIn("C.txt", self.repo.files("loose"))


class TestRestackValidation(RestackTestCase):
    def test_trunk_cannot_be_restacked(self):
        with self.assertRaises(CannotRestackTrunk):
            self.engine.restack(BranchName("main"))
        self.assertEqual(self.repo.calls, [])

    def test_self_reparent_rejected_without_mutation(self):
        before = dict(self.store.data)
        with self.assertRaises(SelfReparent):
            self.engine.restack(BranchName("A"), BranchName("A"))
        self.assertEqual(self.store.data, before)
        self.assertEqual(self.repo.calls, [])

    def test_missing_target_rejected_without_mutation(self):
        before = dict(self.store.data)
        with self.assertRaises(TargetNotFound):
            self.engine.restack(BranchName("B"), BranchName("nope"))
        self.assertEqual(self.store.data, before)
        self.assertEqual(self.repo.calls, [])


class TestRestackConflicts(RestackTestCase):
    def setUp(self):
        super().setUp()
        self.repo.add_commit("main", "Trunk change", {"t.txt": "t"})

    def test_conflict_on_branch(self):
        self.repo.conflicts.add("A")
        with self.assertRaises(RebaseConflict) as cm:
            self.engine.restack(BranchName("A"), cascade=True)
        self.assertEqual(cm.exception.branch, "A")
        self.assertEqual(cm.exception.onto, "main")
        self.assertIn("git rebase --continue", str(cm.exception))
        self.assertEqual(self.repo.called("rebase"), [("rebase", "A", "main")])

    def test_conflict_in_cascade_stops_remaining_nodes(self):
        self.repo.conflicts.add("B")
        c_before = list(self.repo.branches["C"])
        with self.assertRaises(RebaseConflict) as cm:
            self.engine.restack(BranchName("A"), cascade=True)

        self.assertEqual(cm.exception.branch, "B")
        self.assertEqual(cm.exception.onto, "A")
        self.assertEqual(cm.exception.rebased, ["A"])
        self.assertEqual(self.repo.branches["C"], c_before)
        # Left on the conflicted branch, nothing rolled back
        self.assertEqual(self.repo.head, "B")
        self.assertIn("t.txt", self.repo.files("A"))

    def test_abort_restores_starting_branch(self):
        self.repo.head = "C"
        self.confirm.answers["children"] = KeyboardInterrupt()
        with self.assertRaises(KeyboardInterrupt):
            self.engine.restack(BranchName("A"))
        self.assertEqual(self.repo.head, "C")


if __name__ == "__main__":
    unittest.main()
