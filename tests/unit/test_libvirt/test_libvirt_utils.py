# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tests for the libvirt value canonicalisers."""
from __future__ import annotations

import uuid

import pytest

from domxml.libvirt.libvirt_utils import (
    canonical_mac,
    canonical_uuid,
    format_pci_field,
    join_network_uri,
    parse_decimal,
    parse_pci_field,
    parse_yes_no,
    split_network_uri,
    yes_no,
)

U = "4b8d5f0e-6c2a-4e39-9f41-2d7a0c5e8b13"


@pytest.mark.unit
class TestUuid:
    @pytest.mark.parametrize(
        "value",
        [
            U,
            U.upper(),
            U.replace("-", ""),
            uuid.UUID(U),
            uuid.UUID(U).bytes,
        ],
    )
    def test_accepted_forms(self, value):
        assert canonical_uuid(value) == U

    @pytest.mark.parametrize("value", ["", "not-a-uuid", U[:-1], "z" * 32, b"\x00" * 15])
    def test_rejected(self, value):
        with pytest.raises(ValueError):
            canonical_uuid(value)


@pytest.mark.unit
class TestMac:
    @pytest.mark.parametrize(
        "value",
        ["a4:58:3b:0a:fd:3b", "A4:58:3B:0A:FD:3B", "a4-58-3b-0a-fd-3b", bytes.fromhex("a4583b0afd3b")],
    )
    def test_accepted_forms(self, value):
        assert canonical_mac(value) == "a4:58:3b:0a:fd:3b"

    @pytest.mark.parametrize("value", ["a4:58:3b:0a:fd", "a4583b0afd3b", "g4:58:3b:0a:fd:3b", b"\x01\x02"])
    def test_rejected(self, value):
        with pytest.raises(ValueError):
            canonical_mac(value)


@pytest.mark.unit
class TestDecimal:
    def test_plain(self):
        assert parse_decimal("2048") == 2048
        assert parse_decimal(" 7 ") == 7

    @pytest.mark.parametrize("text", ["", "-1", "+1", "0x10", "1_000", "1.5", "abc"])
    def test_rejected(self, text):
        with pytest.raises(ValueError):
            parse_decimal(text)


@pytest.mark.unit
class TestPci:
    def test_widths(self):
        assert format_pci_field("domain", 0) == "0x0000"
        assert format_pci_field("bus", 0) == "0x00"
        assert format_pci_field("slot", 3) == "0x03"
        assert format_pci_field("function", 0) == "0x0"

    def test_parse(self):
        assert parse_pci_field("slot", "0x1f") == 0x1F
        assert parse_pci_field("domain", "0X00AB") == 0xAB

    @pytest.mark.parametrize(
        "name,text",
        [("slot", "0x20"), ("function", "0x8"), ("bus", "3"), ("bus", "0x"), ("domain", "-0x1")],
    )
    def test_rejected(self, name, text):
        with pytest.raises(ValueError):
            parse_pci_field(name, text)


@pytest.mark.unit
class TestNetworkUri:
    def test_split(self):
        assert split_network_uri("nbd://storage01:10809/vm-root") == ("nbd", "storage01", 10809, "vm-root")
        assert split_network_uri("rbd://ceph-mon/pool/image") == ("rbd", "ceph-mon", None, "pool/image")

    def test_ipv6_host(self):
        uri = join_network_uri("iscsi", "fd00::1", 3260, "iqn.2024-01.lab:t0/1")
        assert uri == "iscsi://[fd00::1]:3260/iqn.2024-01.lab:t0/1"
        assert split_network_uri(uri) == ("iscsi", "fd00::1", 3260, "iqn.2024-01.lab:t0/1")

    @pytest.mark.parametrize(
        "uri",
        [
            "/var/lib/libvirt/images/x",
            "nbd://host",
            "nbd://host/",
            "nbd://user:pw@host/x",
            "nbd://host/x?y=1",
            "nbd://HOST/x",
        ],
    )
    def test_rejected(self, uri):
        with pytest.raises(ValueError):
            split_network_uri(uri)


@pytest.mark.unit
def test_yes_no():
    assert yes_no(True) == "yes"
    assert yes_no(False) == "no"
    assert parse_yes_no("yes") is True
    assert parse_yes_no("no") is False
    with pytest.raises(ValueError):
        parse_yes_no("true")
