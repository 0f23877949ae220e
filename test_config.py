#!/usr/bin/env python3
"""
Unit tests for configuration parsing, discovery and v1 -> v2 migration.
"""

import json
import os
import shutil
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

sys.path.insert(0, str(Path(__file__).parent))

from tugboat.config import (
    Config, Target, detect_version, parse_config, find_config_path,
    load_configuration, migrate_config_file, DEFAULT_GITHUB_API_URL,
)
from tugboat.errors import ConfigurationError

V2 = {
    "providers": {
        "gitea": {"type": "gitea", "api_url": "https://gitea.acme.com/", "token": "g-token"},
        "github": {"type": "github", "token": "ghp", "options": {
            "clone": {"protocol": "ssh"}, "sync": {"ff_only": False}}},
    },
    "targets": [
        {"provider": "gitea", "org": "acme-infra", "path": "~/acme/infra", "name": "infra"},
        {"provider": "github", "org": "acme", "repo": "mobile-app", "path": "/srv/mobile"},
    ],
    "workers": 8,
}

V1 = {
    "gitea_url": "https://gitea.acme.com/",
    "gitea_token": "secret",
    "organizations": [{"name": "acme", "path": "/srv/acme"}],
}


class TestDetectVersion(unittest.TestCase):

    def test_versions(self):
        self.assertEqual(detect_version(V2), 2)
        self.assertEqual(detect_version(V1), 1)
        self.assertEqual(detect_version({"version": 2, "targets": []}), 2)
        with self.assertRaises(ConfigurationError):
            detect_version({"targets": []})
        with self.assertRaises(ConfigurationError):
            detect_version([])


class TestParseConfig(unittest.TestCase):

    def test_v2(self):
        result = parse_config(V2)
        config = result.config
        self.assertEqual(result.version, 2)
        self.assertFalse(result.is_deprecated)
        self.assertEqual(config.workers, 8)
        self.assertEqual(config.providers["gitea"].api_url, "https://gitea.acme.com")
        self.assertEqual(config.providers["github"].api_url, DEFAULT_GITHUB_API_URL)
        self.assertEqual(config.providers["github"].clone.protocol, "ssh")

        infra, mobile = config.targets
        self.assertTrue(infra.is_organization)
        self.assertEqual(infra.path, str(Path("~/acme/infra").expanduser().absolute()))
        self.assertEqual(mobile.name, "mobile-app")
        self.assertFalse(mobile.is_organization)
        self.assertTrue(config.ff_only_for(infra))
        self.assertFalse(config.ff_only_for(mobile))
        print("  ✓ v2 config parsed with defaults")

    def test_v1_migrated_and_deprecated(self):
        result = parse_config(V1)
        self.assertEqual(result.version, 1)
        self.assertTrue(result.is_deprecated)
        target = result.config.targets[0]
        self.assertEqual((target.name, target.provider, target.org, target.path), ("acme", "gitea", "acme", "/srv/acme"))
        self.assertEqual(result.config.providers["gitea"].api_url, "https://gitea.acme.com")

        round_trip = parse_config(json.loads(result.config.to_json()))
        self.assertEqual(round_trip.version, 2)
        self.assertEqual(round_trip.config.targets, result.config.targets)
        print("  ✓ v1 config converted to v2")

    def test_validation_errors(self):
        cases = [
            {"providers": {}, "targets": V2["targets"]},
            {"providers": {"x": {"type": "bitbucket", "token": "t"}}, "targets": []},
            {"providers": {"g": {"type": "gitea", "token": "t"}}, "targets": [{"provider": "g", "org": "o", "path": "/p"}]},
            {"providers": {"g": {"type": "github"}}, "targets": [{"provider": "g", "org": "o", "path": "/p"}]},
            {"providers": V2["providers"], "targets": []},
            {"providers": V2["providers"], "targets": [{"provider": "nope", "org": "o", "path": "/p"}]},
            {"providers": V2["providers"], "targets": [{"provider": "gitea", "path": "/p"}]},
            {"providers": V2["providers"], "targets": [{"provider": "gitea", "org": "o"}]},
            {"providers": V2["providers"], "targets": [
                {"provider": "gitea", "org": "o", "path": "/a"},
                {"provider": "gitea", "org": "o", "path": "/b"},
            ]},
        ]
        with patch.dict(os.environ, {"GITEA_TOKEN": ""}):
            for doc in cases:
                with self.assertRaises(ConfigurationError, msg=json.dumps(doc)):
                    parse_config(doc)
        print(f"  ✓ {len(cases)} invalid documents rejected")

    def test_gitea_token_from_environment(self):
        doc = {"providers": {"g": {"type": "gitea", "api_url": "https://g"}},
               "targets": [{"provider": "g", "org": "o", "path": "/p"}]}
        with patch.dict(os.environ, {"GITEA_TOKEN": "from-env"}):
            self.assertEqual(parse_config(doc).config.providers["g"].token, "from-env")

    def test_config_dataclass_validation(self):
        with self.assertRaises(ValueError):
            Config(log_level="LOUD")
        with self.assertRaises(ConfigurationError):
            Config(workers=-1)
        config = Config(targets=[Target(name="a", provider="g", org="o", path="/p")], log_level="debug")
        self.assertEqual(config.log_level, "DEBUG")
        self.assertIsNotNone(config.get_target("a"))
        self.assertIsNone(config.get_target("b"))


class TestLoadConfiguration(unittest.TestCase):

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _write(self, name, data):
        path = self.temp_dir / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data))
        return path

    def test_env_var_wins(self):
        path = self._write("custom.json", V2)
        with patch.dict(os.environ, {"TUGBOAT_CONFIG": str(path)}):
            self.assertEqual(find_config_path(), path)

    def test_xdg_then_home(self):
        xdg = self.temp_dir / "xdg"
        home = self.temp_dir / "home"
        home.mkdir()
        env = {"TUGBOAT_CONFIG": "", "XDG_CONFIG_HOME": str(xdg)}
        with patch.dict(os.environ, env), patch("tugboat.config.Path.home", return_value=home):
            self.assertIsNone(find_config_path())
            legacy = self._write("home/.tugboat.json", V2)
            self.assertEqual(find_config_path(), legacy)
            xdg_path = self._write("xdg/tugboat/config.json", V2)
            self.assertEqual(find_config_path(), xdg_path)

    def test_load_with_overrides(self):
        path = self._write("config.json", V2)
        env = {"TUGBOAT_LOG_LEVEL": "debug", "TUGBOAT_GIT_RETRY_ATTEMPTS": "5"}
        with patch.dict(os.environ, env), patch("tugboat.config.load_dotenv"):
            result = load_configuration(path)
        self.assertEqual(result.config.log_level, "DEBUG")
        self.assertEqual(result.config.git_retry_attempts, 5)
        self.assertEqual(result.config_path, path)

    def test_v1_load_warns(self):
        path = self._write("config.json", V1)
        with patch("tugboat.config.load_dotenv"), self.assertLogs('tugboat.config', level='WARNING') as logs:
            result = load_configuration(path)
        self.assertTrue(result.is_deprecated)
        self.assertTrue(any("deprecated" in line for line in logs.output))

    def test_unreadable_and_malformed(self):
        with patch("tugboat.config.load_dotenv"):
            with self.assertRaises(ConfigurationError):
                load_configuration(self.temp_dir / "absent.json")
            bad = self.temp_dir / "bad.json"
            bad.write_text("{")
            with self.assertRaises(ConfigurationError):
                load_configuration(bad)

    def test_migrate_file(self):
        path = self._write("config.json", V1)
        self.assertTrue(migrate_config_file(path))
        backup = path.with_name("config.json.bak")
        self.assertEqual(json.loads(backup.read_text()), V1)
        migrated = json.loads(path.read_text())
        self.assertEqual(migrated["version"], 2)
        self.assertEqual(detect_version(migrated), 2)
        self.assertFalse(migrate_config_file(path))
        print("  ✓ v1 file migrated in place with backup")


if __name__ == "__main__":
    unittest.main(verbosity=2)
