#!/usr/bin/env python3
"""
Unit tests for the error hierarchy and structured error responses.
"""

import sys
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from tugboat.errors import (
    TugboatError, ConfigurationError, UnknownTargetError, TargetPathError,
    ManifestFormatError, InvalidFoldoutError, ProviderError, ErrorCategory, ErrorHandler,
)


class TestHierarchy(unittest.TestCase):

    def test_all_rooted_at_tugboat_error(self):
        for cls in (ConfigurationError, UnknownTargetError, TargetPathError,
                    ManifestFormatError, InvalidFoldoutError, ProviderError):
            self.assertTrue(issubclass(cls, TugboatError), cls.__name__)
        self.assertTrue(issubclass(ConfigurationError, ValueError))

    def test_messages(self):
        self.assertEqual(str(UnknownTargetError(["a", "b"])), "unknown targets: a, b")
        err = TargetPathError("acme", "/srv/acme")
        self.assertEqual(str(err), "target 'acme' path does not exist: /srv/acme")
        self.assertEqual(err.target_name, "acme")


class TestErrorHandler(unittest.TestCase):

    def setUp(self):
        self.handler = ErrorHandler()

    def test_classification(self):
        cases = [
            (ConfigurationError("x"), ErrorCategory.CONFIGURATION, "CONFIG_INVALID"),
            (UnknownTargetError(["x"]), ErrorCategory.TARGET, "TARGET_UNKNOWN"),
            (TargetPathError("t", "/p"), ErrorCategory.TARGET, "TARGET_PATH_MISSING"),
            (ManifestFormatError("x"), ErrorCategory.FOLDOUT, "FOLDOUT_MALFORMED"),
            (InvalidFoldoutError("x"), ErrorCategory.FOLDOUT, "FOLDOUT_INVALID"),
            (ProviderError("x"), ErrorCategory.PROVIDER, "PROVIDER_ERROR"),
            (PermissionError("x"), ErrorCategory.SYSTEM, "FILE_IO_ERROR"),
            (RuntimeError("x"), ErrorCategory.SYSTEM, "GENERAL_ERROR"),
        ]
        for error, category, code in cases:
            self.assertEqual(self.handler.classify(error), (category, code))
        print(f"  ✓ {len(cases)} error types classified")

    def test_handle_command_error(self):
        with self.assertLogs('tugboat.error_handler', level='WARNING'):
            response = self.handler.handle_command_error(ProviderError("API error (status 500)"), "sync",
                                                         {"targets": ["acme"]})
        data = response.to_dict()
        self.assertEqual(data["error"], "sync failed")
        self.assertEqual(data["error_code"], "PROVIDER_ERROR")
        self.assertEqual(data["category"], "provider")
        self.assertEqual(data["context"], {"targets": ["acme"]})
        self.assertIn("timestamp", data)

    def test_success_response(self):
        response = self.handler.create_success_response("status", {"n": 1})
        self.assertTrue(response["success"])
        self.assertEqual(response["data"], {"n": 1})


if __name__ == "__main__":
    unittest.main(verbosity=2)
