#!/usr/bin/env python3
"""Tests for flowgit.stack.sync module."""

import unittest

from flowgit.stack.models import PRStatus
from flowgit.stack.registry import StackRegistry
from flowgit.stack.sync import SyncEngine
from flowgit.tests.fakes import FakeRepository, FakeTracker, MemoryStore, ScriptedConfirm
from flowgit.utils.errors import TrunkUpdateFailure
from flowgit.utils.types import BranchName


class SyncTestCase(unittest.TestCase):
    def setUp(self):
        self.repo = FakeRepository()
        self.registry = StackRegistry(MemoryStore())
        self.tracker = FakeTracker()
        self.confirm = ScriptedConfirm()
        self.engine = SyncEngine(self.repo, self.registry, self.tracker, confirm=self.confirm)

    def branch(self, name, parent="main", publish=True):
        self.repo.make_branch(name, parent, "Add " + name)
        self.registry.add_tracked(BranchName(name))
        self.registry.set_parent(BranchName(name), BranchName(parent))
        if publish:
            self.repo.publish(name)

    def assertPartition(self, report):
        buckets = report.buckets()
        seen = [b for branches in buckets.values() for b in branches]
        self.assertEqual(len(seen), len(set(seen)), buckets)
        self.assertEqual(set(seen), self.tracked_before - {"main"})


class TestSquashMergedStack(SyncTestCase):
    def setUp(self):
        super().setUp()
        self.branch("A")
        self.branch("B", "A")
        self.branch("C", "B")
        self.repo.head = "C"
        self.repo.squash_merge("A")
        self.tracked_before = self.registry.get_tracked()

    def test_merged_by_tracker_is_deleted_and_children_adopted(self):
        self.tracker.statuses[BranchName("A")] = PRStatus("MERGED", True)
        report = self.engine.sync()

        self.assertEqual(report.merged, ["A"])
        self.assertEqual(report.deleted, ["A"])
        self.assertNotIn("A", self.repo.branches)
        self.assertNotIn("A", self.registry.get_tracked())
        self.assertIsNone(self.registry.get_parent(BranchName("A")))
        # Adoption moves direct children only
        self.assertEqual(self.registry.get_parent(BranchName("B")), "main")
        self.assertEqual(self.registry.get_parent(BranchName("C")), "B")
        self.assertIn("Squashed A", self.repo.messages("main"))
        self.assertEqual(self.repo.head, "C")
        self.assertPartition(report)

    def test_vanished_remote_implies_merged_without_tracker(self):
        self.tracker.is_authenticated = False
        report = self.engine.sync()
        self.assertEqual(report.merged, ["A"])
        self.assertEqual(sorted(report.untouched), ["B", "C"])
        self.assertPartition(report)

    def test_declining_keeps_everything(self):
        self.tracker.statuses[BranchName("A")] = PRStatus("MERGED", True)
        self.confirm.answers["merged"] = False
        report = self.engine.sync()
        self.assertEqual(report.merged, ["A"])
        self.assertEqual(report.deleted, [])
        self.assertIn("A", self.repo.branches)
        self.assertEqual(self.registry.get_parent(BranchName("B")), "A")

    def test_deleting_checked_out_branch_moves_to_trunk(self):
        self.repo.head = "A"
        report = self.engine.sync()
        self.assertEqual(report.deleted, ["A"])
        self.assertEqual(self.repo.head, "main")

    def test_squash_merged_branch_needs_force_delete(self):
        # Not an ancestor of anything checked out once trunk is current
        self.repo.head = "main"
        self.engine.sync()
        self.assertEqual(
            self.repo.called("delete_branch"),
            [("delete_branch", "A", False), ("delete_branch", "A", True)],
        )

    def test_delete_failure_does_not_stop_others(self):
        self.repo.fail_delete.add("A")
        self.tracker.statuses[BranchName("B")] = PRStatus("MERGED", True)
        report = self.engine.sync()
        self.assertEqual(sorted(report.merged), ["A", "B"])
        self.assertIn("A", report.failed_deletions)
        self.assertEqual(report.deleted, ["B"])
        self.assertIn("A", self.registry.get_tracked())
        # B was adopted by main before the delete of A was attempted
        self.assertEqual(self.registry.get_parent(BranchName("C")), "main")
        self.assertNotIn("B", self.registry.get_tracked())

    def test_children_adopted_before_ref_is_removed(self):
        self.tracker.statuses[BranchName("A")] = PRStatus("MERGED", True)
        parents_at_delete = []
        delete_branch = self.repo.delete_branch

        def spy(name, force=False):
            parents_at_delete.append((name, self.registry.get_parent(BranchName("B"))))
            return delete_branch(name, force=force)

        self.repo.delete_branch = spy
        self.engine.sync()
        self.assertTrue(parents_at_delete)
        self.assertEqual(parents_at_delete[0], ("A", "main"))


class TestClassification(SyncTestCase):
    def test_merged_into_trunk(self):
        self.branch("A")
        self.repo.branches["main"] = list(self.repo.branches["A"])
        self.repo.remote["main"] = list(self.repo.branches["A"])
        self.tracked_before = self.registry.get_tracked()
        report = self.engine.sync()
        self.assertEqual(report.merged, ["A"])
        self.assertPartition(report)

    def test_closed_defaults_to_keep(self):
        self.branch("A")
        self.tracker.statuses[BranchName("A")] = PRStatus("CLOSED", False)
        report = self.engine.sync()
        self.assertEqual(report.closed, ["A"])
        self.assertEqual(report.deleted, [])
        self.assertIn("A", self.repo.branches)
        self.assertIn("Delete branches with closed PRs?", self.confirm.questions)

    def test_closed_deleted_when_confirmed(self):
        self.branch("A")
        self.tracker.statuses[BranchName("A")] = PRStatus("CLOSED", False)
        self.confirm.answers["closed"] = True
        report = self.engine.sync()
        self.assertEqual(report.deleted, ["A"])

    def test_behind_only_is_fast_forwarded(self):
        self.branch("A")
        self.repo.add_remote_commit("A", "Review fix", {"fix.txt": "x"})
        self.repo.head = "main"
        report = self.engine.sync()
        self.assertEqual(report.fast_forwarded, ["A"])
        self.assertIn("fix.txt", self.repo.files("A"))
        self.assertEqual(self.repo.head, "main")

    def test_ahead_only_is_untouched(self):
        self.branch("A")
        self.repo.add_commit("A", "Local work", {"w.txt": "w"})
        before = list(self.repo.branches["A"])
        report = self.engine.sync()
        self.assertEqual(report.untouched, ["A"])
        self.assertEqual(self.repo.branches["A"], before)

    def test_ahead_and_behind_is_diverged(self):
        self.branch("A")
        self.repo.add_commit("A", "Local work", {"w.txt": "w"})
        self.repo.add_remote_commit("A", "Remote work", {"r.txt": "r"})
        report = self.engine.sync()
        self.assertEqual(report.diverged, ["A"])

    def test_failed_fast_forward_is_diverged(self):
        self.branch("A")
        self.repo.add_remote_commit("A", "Review fix", {"fix.txt": "x"})
        self.repo.fail_pull.add("A")
        self.repo.head = "main"
        report = self.engine.sync()
        self.assertEqual(report.diverged, ["A"])
        self.assertEqual(self.repo.head, "main")

    def test_never_pushed_is_untouched(self):
        self.branch("A", publish=False)
        report = self.engine.sync()
        self.assertEqual(report.untouched, ["A"])

    def test_missing_ref_is_dropped(self):
        self.branch("A")
        self.registry.add_tracked(BranchName("gone"))
        self.registry.set_parent(BranchName("gone"), BranchName("main"))
        self.tracked_before = self.registry.get_tracked()
        report = self.engine.sync()
        self.assertEqual(report.dropped, ["gone"])
        self.assertNotIn("gone", self.registry.get_tracked())
        self.assertIsNone(self.registry.get_parent(BranchName("gone")))
        self.assertPartition(report)

    def test_tracker_failure_is_tolerated(self):
        self.branch("A")
        self.tracker.fail_batch = True
        report = self.engine.sync()
        self.assertEqual(report.untouched, ["A"])

    def test_every_bucket_at_once_partitions(self):
        self.branch("merged")
        self.repo.squash_merge("merged")
        self.branch("closed")
        self.tracker.statuses[BranchName("closed")] = PRStatus("CLOSED", False)
        self.branch("ff")
        self.repo.add_remote_commit("ff", "Fix", {"ff2.txt": "x"})
        self.branch("div")
        self.repo.add_commit("div", "L", {"l.txt": "l"})
        self.repo.add_remote_commit("div", "R", {"r.txt": "r"})
        self.branch("quiet")
        self.registry.add_tracked(BranchName("gone"))
        self.tracked_before = self.registry.get_tracked()

        report = self.engine.sync()
        self.assertEqual(report.merged, ["merged"])
        self.assertEqual(report.closed, ["closed"])
        self.assertEqual(report.fast_forwarded, ["ff"])
        self.assertEqual(report.diverged, ["div"])
        self.assertEqual(report.untouched, ["quiet"])
        self.assertEqual(report.dropped, ["gone"])
        self.assertPartition(report)


class TestTrunkUpdate(SyncTestCase):
    def test_trunk_is_pulled(self):
        self.repo.add_remote_commit("main", "Upstream", {"u.txt": "u"})
        self.engine.sync()
        self.assertIn("u.txt", self.repo.files("main"))
        self.assertEqual(self.repo.called("fetch"), [("fetch", True)])

    def test_trunk_failure_is_fatal(self):
        self.branch("A")
        self.repo.head = "A"
        self.repo.fail_pull.add("main")
        with self.assertRaises(TrunkUpdateFailure):
            self.engine.sync()
        self.assertEqual(self.repo.head, "A")
        self.assertEqual(self.repo.called("delete_branch"), [])

    def test_fetch_failure_only_warns(self):
        self.branch("A")
        self.repo.fail_fetch = True
        report = self.engine.sync()
        self.assertEqual(report.untouched, ["A"])


if __name__ == "__main__":
    unittest.main()
