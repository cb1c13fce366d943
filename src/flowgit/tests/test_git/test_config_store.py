#!/usr/bin/env python3
"""Tests for flowgit.git.config_store module."""

import unittest
from unittest.mock import patch

from flowgit.git.config_store import GitConfigStore


class TestGitConfigStore(unittest.TestCase):
    @patch("flowgit.git.config_store.run")
    def test_get(self, mock_run):
        mock_run.return_value = "a,b"
        self.assertEqual(GitConfigStore().get("flowgit.tracked"), "a,b")
        mock_run.assert_called_once_with(["git", "config", "--get", "flowgit.tracked"], check=False, cwd=None)

    @patch("flowgit.git.config_store.run")
    def test_get_missing_or_empty_is_none(self, mock_run):
        mock_run.return_value = None
        self.assertIsNone(GitConfigStore().get("flowgit.tracked"))
        mock_run.return_value = ""
        self.assertIsNone(GitConfigStore().get("flowgit.tracked"))

    @patch("flowgit.git.config_store.run")
    def test_set(self, mock_run):
        GitConfigStore(cwd="/repo").set("flowgit.branch.b.parent", "a")
        mock_run.assert_called_once_with(["git", "config", "flowgit.branch.b.parent", "a"], cwd="/repo")

    @patch("flowgit.git.config_store.run")
    def test_unset_tolerates_missing_key(self, mock_run):
        mock_run.return_value = None
        GitConfigStore().unset("flowgit.tracked")
        mock_run.assert_called_once_with(["git", "config", "--unset", "flowgit.tracked"], check=False, cwd=None)


if __name__ == "__main__":
    unittest.main()
