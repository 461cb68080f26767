# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tests for the libvirt session wrapper (binding mocked)."""
from __future__ import annotations

from unittest import mock

import pytest

libvirt = pytest.importorskip("libvirt")

from domxml.connection import session as session_mod  # noqa: E402
from domxml.connection.session import (  # noqa: E402
    DomainSummary,
    HypervisorSession,
    connect,
    format_lib_version,
    tcp_endpoint,
)
from domxml.core.exceptions import HypervisorError  # noqa: E402

URI = "qemu+tcp://10.30.0.1/system"


def _dom(dom_id, name, uuid):
    d = mock.Mock()
    d.ID.return_value = dom_id
    d.name.return_value = name
    d.UUIDString.return_value = uuid
    return d


@pytest.fixture
def conn():
    c = mock.Mock()
    c.getLibVersion.return_value = 8000000 + 2 * 1000 + 1
    c.listAllDomains.return_value = [
        _dom(7, "web01", "4b8d5f0e-6c2a-4e39-9f41-2d7a0c5e8b13"),
        _dom(-1, "db01", "00000000-0000-0000-0000-000000000001"),
    ]
    c.lookupByName.return_value.XMLDesc.return_value = "<domain type='kvm'/>"
    return c


@pytest.fixture
def no_dial():
    with mock.patch.object(session_mod, "dial_endpoint") as dial:
        yield dial


@pytest.mark.unit
class TestHelpers:
    def test_format_lib_version(self):
        assert format_lib_version(8002001) == "8.2.1"
        assert format_lib_version(10000000) == "10.0.0"

    def test_tcp_endpoint(self):
        assert tcp_endpoint(URI) == ("10.30.0.1", 16509)
        assert tcp_endpoint("qemu+tcp://kvm01:16600/system") == ("kvm01", 16600)
        assert tcp_endpoint("qemu:///system") is None
        assert tcp_endpoint("qemu+ssh://root@kvm01/system") is None

    def test_uuid_hex(self):
        s = DomainSummary(1, "web01", "4b8d5f0e-6c2a-4e39-9f41-2d7a0c5e8b13")
        assert s.uuid_hex == "4b8d5f0e6c2a4e399f412d7a0c5e8b13"


@pytest.mark.unit
class TestSession:
    def test_version(self, conn):
        assert HypervisorSession(conn, URI).version() == "8.2.1"

    def test_list_domains(self, conn):
        domains = HypervisorSession(conn, URI).list_domains()
        assert domains == [
            DomainSummary(7, "web01", "4b8d5f0e-6c2a-4e39-9f41-2d7a0c5e8b13"),
            DomainSummary(None, "db01", "00000000-0000-0000-0000-000000000001"),
        ]

    def test_domain_xml(self, conn):
        assert HypervisorSession(conn, URI).domain_xml("web01") == b"<domain type='kvm'/>"
        conn.lookupByName.assert_called_once_with("web01")

    def test_rpc_error_is_wrapped(self, conn):
        conn.listAllDomains.side_effect = libvirt.libvirtError("rpc broke")
        with pytest.raises(HypervisorError) as exc_info:
            HypervisorSession(conn, URI).list_domains()
        assert exc_info.value.code == 4
        assert exc_info.value.msg == "failed to retrieve domains"
        assert isinstance(exc_info.value.cause, libvirt.libvirtError)

    def test_disconnect_is_idempotent(self, conn):
        s = HypervisorSession(conn, URI)
        s.disconnect()
        s.disconnect()
        conn.close.assert_called_once_with()
        assert not s.connected

    def test_use_after_disconnect(self, conn):
        s = HypervisorSession(conn, URI)
        s.disconnect()
        with pytest.raises(HypervisorError):
            s.version()


@pytest.mark.unit
class TestConnect:
    def test_dial_then_open(self, conn):
        sock = mock.Mock()
        with mock.patch.object(session_mod.socket, "create_connection", return_value=sock) as dial, \
                mock.patch.object(session_mod.libvirt, "open", return_value=conn) as opener:
            with connect(URI, timeout_s=0.5) as s:
                assert s.version() == "8.2.1"

        dial.assert_called_once_with(("10.30.0.1", 16509), timeout=0.5)
        sock.close.assert_called_once_with()
        opener.assert_called_once_with(URI)
        conn.close.assert_called_once_with()

    def test_dial_failure(self):
        with mock.patch.object(session_mod.socket, "create_connection", side_effect=ConnectionRefusedError()), \
                mock.patch.object(session_mod.libvirt, "open") as opener:
            with pytest.raises(HypervisorError) as exc_info:
                with connect(URI):
                    pass
        assert "failed to dial libvirt" in exc_info.value.msg
        opener.assert_not_called()

    def test_open_failure(self, no_dial):
        with mock.patch.object(session_mod.libvirt, "open", side_effect=libvirt.libvirtError("no daemon")):
            with pytest.raises(HypervisorError) as exc_info:
                with connect(URI):
                    pass
        assert exc_info.value.msg == "failed to connect"

    def test_local_uri_skips_dial(self, conn):
        with mock.patch.object(session_mod, "dial_endpoint") as dial, \
                mock.patch.object(session_mod.libvirt, "open", return_value=conn):
            with connect("qemu:///system"):
                pass
        dial.assert_not_called()

    def test_disconnect_on_error(self, conn, no_dial):
        with mock.patch.object(session_mod.libvirt, "open", return_value=conn):
            with pytest.raises(RuntimeError):
                with connect(URI):
                    raise RuntimeError("boom")
        conn.close.assert_called_once_with()

    def test_original_error_wins_over_disconnect_failure(self, conn, no_dial):
        conn.close.side_effect = libvirt.libvirtError("close failed")
        with mock.patch.object(session_mod.libvirt, "open", return_value=conn):
            with pytest.raises(RuntimeError):
                with connect(URI):
                    raise RuntimeError("boom")

    def test_disconnect_failure_on_clean_exit(self, conn, no_dial):
        conn.close.side_effect = libvirt.libvirtError("close failed")
        with mock.patch.object(session_mod.libvirt, "open", return_value=conn):
            with pytest.raises(HypervisorError) as exc_info:
                with connect(URI):
                    pass
        assert exc_info.value.msg == "failed to disconnect"
