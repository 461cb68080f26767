# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tests for environment-driven CLI settings."""
from __future__ import annotations

import unittest

from domxml.cli.settings import DEFAULT_URI, Settings
from domxml.core.exceptions import Fatal


class TestSettingsFromEnv(unittest.TestCase):
    def test_defaults(self):
        s = Settings.from_env({})
        self.assertEqual(s.uri, DEFAULT_URI)
        self.assertEqual(s.uri, "qemu+tcp://10.30.0.1/system")
        self.assertEqual(s.connect_timeout_s, 2.0)
        self.assertEqual(s.verbose, 0)
        self.assertIsNone(s.log_file)
        self.assertFalse(s.json_logs)

    def test_overrides(self):
        s = Settings.from_env(
            {
                "DOMXML_URI": " qemu:///system ",
                "DOMXML_CONNECT_TIMEOUT": "0.5",
                "DOMXML_VERBOSE": "2",
                "DOMXML_LOG_FILE": "/tmp/domxml.log",
                "DOMXML_JSON_LOGS": "yes",
            }
        )
        self.assertEqual(s.uri, "qemu:///system")
        self.assertEqual(s.connect_timeout_s, 0.5)
        self.assertEqual(s.verbose, 2)
        self.assertEqual(s.log_file, "/tmp/domxml.log")
        self.assertTrue(s.json_logs)

    def test_blank_values_fall_back(self):
        s = Settings.from_env({"DOMXML_URI": "", "DOMXML_CONNECT_TIMEOUT": " ", "DOMXML_JSON_LOGS": ""})
        self.assertEqual(s.uri, DEFAULT_URI)
        self.assertEqual(s.connect_timeout_s, 2.0)
        self.assertFalse(s.json_logs)

    def test_invalid_values(self):
        for env in (
            {"DOMXML_CONNECT_TIMEOUT": "soon"},
            {"DOMXML_CONNECT_TIMEOUT": "0"},
            {"DOMXML_VERBOSE": "loud"},
            {"DOMXML_VERBOSE": "-1"},
            {"DOMXML_JSON_LOGS": "maybe"},
        ):
            with self.subTest(env=env):
                with self.assertRaises(Fatal) as ctx:
                    Settings.from_env(env)
                self.assertEqual(ctx.exception.code, 2)
                self.assertIn(next(iter(env)), ctx.exception.msg)
                self.assertEqual(ctx.exception.context, {"variable": next(iter(env))})

    def test_parse_error_keeps_cause(self):
        with self.assertRaises(Fatal) as ctx:
            Settings.from_env({"DOMXML_CONNECT_TIMEOUT": "soon"})
        self.assertIsInstance(ctx.exception.cause, ValueError)
        self.assertIs(ctx.exception.__cause__, ctx.exception.cause)

    def test_reads_process_environment(self):
        from unittest import mock

        with mock.patch.dict("os.environ", {"DOMXML_URI": "test:///default"}, clear=True):
            self.assertEqual(Settings.from_env().uri, "test:///default")
