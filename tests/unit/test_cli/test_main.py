# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tests for the `domxml` command (libvirt session faked)."""
from __future__ import annotations

import io
import logging
from contextlib import contextmanager
from unittest import mock

import pytest

pytest.importorskip("libvirt")

from domxml.cli import main as main_mod  # noqa: E402
from domxml.cli.settings import Settings  # noqa: E402
from domxml.connection.session import DomainSummary  # noqa: E402
from domxml.core.exceptions import HypervisorError, wrap_hypervisor  # noqa: E402
from domxml.libvirt.codec import decode, encode  # noqa: E402
from domxml.libvirt.sample import sample_descriptor  # noqa: E402


class FakeSession:
    def __init__(self, domains=(), version="8.0.0", fail_on=None):
        self._domains = list(domains)
        self._version = version
        self._fail_on = fail_on
        self.disconnected = False

    def version(self):
        if self._fail_on == "version":
            raise wrap_hypervisor("failed to retrieve libvirt version", None)
        return self._version

    def list_domains(self):
        if self._fail_on == "list":
            raise wrap_hypervisor("failed to retrieve domains", None)
        return self._domains


def _fake_connect(session, calls):
    @contextmanager
    def fake(uri, *, timeout_s, logger):
        calls.append((uri, timeout_s))
        try:
            yield session
        finally:
            session.disconnected = True

    return fake


@pytest.fixture
def logger():
    return logging.getLogger("dxtest.cli")


@pytest.mark.unit
class TestRun:
    def test_report_layout(self, logger):
        session = FakeSession(
            domains=[
                DomainSummary(7, "web01", "4b8d5f0e-6c2a-4e39-9f41-2d7a0c5e8b13"),
                DomainSummary(None, "db01", "00000000-0000-0000-0000-000000000001"),
            ],
            version="8.2.1",
        )
        calls = []
        out = io.StringIO()
        settings = Settings(uri="qemu+tcp://kvm01/system", connect_timeout_s=1.5)

        with mock.patch.object(main_mod, "connect", _fake_connect(session, calls)):
            rc = main_mod.run(settings, logger, out=out)

        assert rc == 0
        assert calls == [("qemu+tcp://kvm01/system", 1.5)]
        assert session.disconnected

        sep = "-" * 56
        expected_head = (
            "Version: 8.2.1\n"
            "ID\tName\t\tUUID\n"
            f"{sep}\n"
            "7\tweb01\t4b8d5f0e6c2a4e399f412d7a0c5e8b13\n"
            "-\tdb01\t00000000000000000000000000000001\n"
            f"{sep}\n"
            "Printing XML...\n"
        )
        text = out.getvalue()
        assert text.startswith(expected_head)

        xml = text[len(expected_head):]
        assert xml.encode("utf-8") == encode(sample_descriptor())
        assert decode(xml) == sample_descriptor()

    def test_empty_listing(self, logger):
        out = io.StringIO()
        with mock.patch.object(main_mod, "connect", _fake_connect(FakeSession(), [])):
            main_mod.run(Settings(), logger, out=out)
        lines = out.getvalue().splitlines()
        assert lines[1:4] == ["ID\tName\t\tUUID", "-" * 56, "-" * 56]

    def test_rpc_failure_stops_output_and_disconnects(self, logger):
        session = FakeSession(fail_on="list")
        out = io.StringIO()
        with mock.patch.object(main_mod, "connect", _fake_connect(session, [])):
            with pytest.raises(HypervisorError) as exc_info:
                main_mod.run(Settings(), logger, out=out)

        assert exc_info.value.code == 4
        assert session.disconnected
        assert "Printing XML" not in out.getvalue()


@pytest.mark.unit
class TestMain:
    def test_success_exit_code(self, monkeypatch):
        monkeypatch.delenv("DOMXML_URI", raising=False)
        with mock.patch.object(main_mod, "run", return_value=0) as run:
            with pytest.raises(SystemExit) as exc_info:
                main_mod.main([])
        assert exc_info.value.code == 0
        settings = run.call_args[0][0]
        assert settings.uri == "qemu+tcp://10.30.0.1/system"

    def test_hypervisor_error_exit_code(self, capsys):
        err = wrap_hypervisor("failed to connect", ConnectionRefusedError(), uri="qemu+tcp://10.30.0.1/system")
        with mock.patch.object(main_mod, "run", side_effect=err):
            with pytest.raises(SystemExit) as exc_info:
                main_mod.main([])
        assert exc_info.value.code == 4
        assert "failed to connect" in capsys.readouterr().err

    def test_bad_environment(self, monkeypatch, capsys):
        monkeypatch.setenv("DOMXML_CONNECT_TIMEOUT", "soon")
        with mock.patch.object(main_mod, "run") as run:
            with pytest.raises(SystemExit) as exc_info:
                main_mod.main([])
        assert exc_info.value.code == 2
        run.assert_not_called()
        assert "DOMXML_CONNECT_TIMEOUT" in capsys.readouterr().err

    def test_interrupt(self):
        with mock.patch.object(main_mod, "run", side_effect=KeyboardInterrupt):
            with pytest.raises(SystemExit) as exc_info:
                main_mod.main([])
        assert exc_info.value.code == 130

    def test_unexpected_error(self):
        with mock.patch.object(main_mod, "run", side_effect=RuntimeError("bug")):
            with pytest.raises(SystemExit) as exc_info:
                main_mod.main([])
        assert exc_info.value.code == 1

    def test_no_flags_accepted(self):
        with pytest.raises(SystemExit) as exc_info:
            main_mod.main(["--uri", "x"])
        assert exc_info.value.code == 2

    def test_help(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main_mod.main(["--help"])
        assert exc_info.value.code == 0
        assert "DOMXML_URI" in capsys.readouterr().out
