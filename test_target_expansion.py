#!/usr/bin/env python3
"""
Unit tests for target expansion.

Organization targets scan their directory; repository targets yield
themselves plus foldouts, filtered by whether a working copy exists.
"""

import json
import shutil
import sys
import tempfile
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from testing_fakes import make_working_copy
from tugboat.config import Target
from tugboat.errors import TargetPathError, ManifestFormatError
from tugboat.git_sync.foldout import MANIFEST_NAME
from tugboat.git_sync.targets import (
    ExpansionMode, expand_targets, expand_organization, expand_repository, organization_keys
)


class TestExpandOrganization(unittest.TestCase):

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        self.org_dir = self.temp_dir / "acme"
        self.org_dir.mkdir()
        self.target = Target(name="acme", provider="gitea", org="acme", path=str(self.org_dir))

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_only_git_subdirectories(self):
        make_working_copy(self.org_dir / "beta")
        make_working_copy(self.org_dir / "alpha")
        (self.org_dir / "plain").mkdir()
        (self.org_dir / "notes.txt").write_text("x")
        (self.org_dir / "fake").mkdir()
        (self.org_dir / "fake" / ".git").write_text("gitdir: elsewhere")

        locations = expand_organization(self.target)
        self.assertEqual([loc.name for loc in locations], ["alpha", "beta"])
        for loc in locations:
            self.assertEqual(loc.target, "acme")
            self.assertEqual(loc.org, "acme")
            self.assertEqual(loc.provider, "gitea")
            self.assertFalse(loc.foldout)
        print("  ✓ Only subdirectories with a .git directory are included")

    def test_missing_path_is_fatal(self):
        missing = Target(name="gone", provider="gitea", org="acme", path=str(self.temp_dir / "nope"))
        with self.assertRaises(TargetPathError) as ctx:
            expand_targets([missing])
        self.assertIn("gone", str(ctx.exception))
        print("  ✓ Missing target path raises TargetPathError")

    def test_clone_mode_skips_org_targets(self):
        make_working_copy(self.org_dir / "alpha")
        self.assertEqual(expand_targets([self.target], ExpansionMode.CLONE), [])


class TestExpandRepository(unittest.TestCase):

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        self.repo_dir = self.temp_dir / "app"
        self.repo_dir.mkdir()
        self.target = Target(name="app", provider="github", org="acme", repo="app", path=str(self.repo_dir))

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _manifest(self, repos):
        (self.repo_dir / MANIFEST_NAME).write_text(json.dumps({"repos": repos}))

    def test_status_mode_includes_existing_foldouts(self):
        make_working_copy(self.repo_dir)
        self._manifest([
            {"name": "acme/api"},
            {"name": "tools/cli", "target": "vendor/cli"},
            {"name": "acme/docs"},
        ])
        make_working_copy(self.repo_dir / "api")
        make_working_copy(self.repo_dir / "vendor" / "cli")

        locations = expand_repository(self.target, ExpansionMode.STATUS)
        self.assertEqual([loc.name for loc in locations], ["app", "api", "cli"])
        self.assertEqual(locations[2].org, "tools")
        self.assertEqual(locations[2].path, self.repo_dir / "vendor" / "cli")
        self.assertTrue(locations[1].foldout)
        print("  ✓ STATUS yields parent and existing foldouts with their own org")

    def test_clone_mode_yields_missing_only(self):
        make_working_copy(self.repo_dir)
        self._manifest([{"name": "acme/api"}, {"name": "acme/docs"}])
        make_working_copy(self.repo_dir / "api")

        locations = expand_repository(self.target, ExpansionMode.CLONE)
        self.assertEqual([loc.name for loc in locations], ["docs"])
        print("  ✓ CLONE yields only foldouts not yet checked out")

    def test_status_and_clone_partition_foldouts(self):
        make_working_copy(self.repo_dir)
        self._manifest([{"name": "acme/a"}, {"name": "acme/b"}, {"name": "acme/c"}])
        make_working_copy(self.repo_dir / "b")

        present = {loc.path for loc in expand_repository(self.target, ExpansionMode.STATUS)}
        missing = {loc.path for loc in expand_repository(self.target, ExpansionMode.CLONE)}
        self.assertFalse(present & missing)
        self.assertEqual(len(present | missing), 4)

    def test_parent_not_a_working_copy(self):
        locations = expand_repository(self.target, ExpansionMode.STATUS)
        self.assertEqual(locations, [])
        locations = expand_repository(self.target, ExpansionMode.CLONE)
        self.assertEqual([loc.name for loc in locations], ["app"])

    def test_malformed_manifest_aborts(self):
        make_working_copy(self.repo_dir)
        self._manifest([{"name": "just-a-name"}])
        with self.assertRaises(ManifestFormatError):
            expand_repository(self.target, ExpansionMode.STATUS)

    def test_missing_repository_path_is_fatal_in_status_mode(self):
        target = Target(name="x", provider="github", org="acme", repo="x", path=str(self.temp_dir / "x"))
        with self.assertRaises(TargetPathError):
            expand_repository(target, ExpansionMode.STATUS)
        self.assertEqual(len(expand_repository(target, ExpansionMode.CLONE)), 1)


class TestOrganizationKeys(unittest.TestCase):

    def test_keys_include_targets_and_foldout_orgs(self):
        temp_dir = Path(tempfile.mkdtemp())
        try:
            repo_dir = make_working_copy(temp_dir / "app")
            (repo_dir / MANIFEST_NAME).write_text(json.dumps({"repos": [{"name": "tools/cli"}]}))
            make_working_copy(repo_dir / "cli")
            targets = [
                Target(name="app", provider="github", org="acme", repo="app", path=str(repo_dir)),
                Target(name="empty-org", provider="gitea", org="infra", path=str(temp_dir)),
            ]
            locations = expand_targets(targets)
            keys = organization_keys(targets, locations)
            self.assertEqual(keys, [("github", "acme"), ("gitea", "infra"), ("github", "tools")])
        finally:
            shutil.rmtree(temp_dir, ignore_errors=True)
        print("  ✓ Organization keys are distinct, first-seen order")


if __name__ == "__main__":
    unittest.main(verbosity=2)
