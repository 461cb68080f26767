# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# domxml/libvirt/libvirt_utils.py
"""Shared libvirt value helpers

Canonical forms used on the wire: hyphenated lower-case UUIDs, lower-case
colon-separated MACs, fixed-width PCI hex fields and plain decimals.
Each helper raises ValueError; callers turn that into ValidationError or
DecodeError depending on where the value came from.
"""
from __future__ import annotations

import re
import uuid as _uuid
from typing import Optional, Tuple, Union
from urllib.parse import urlsplit

_DECIMAL_RE = re.compile(r"[0-9]+")
_MAC_RE = re.compile(r"[0-9a-f]{2}([:-][0-9a-f]{2}){5}")
_HEX_RE = re.compile(r"0x[0-9a-f]+")

# PCI field -> (wire width in hex digits, max value)
PCI_FIELDS = {
    "domain": (4, 0xFFFF),
    "bus": (2, 0xFF),
    "slot": (2, 0x1F),
    "function": (1, 0x7),
}


def canonical_uuid(value: Union[str, bytes, _uuid.UUID]) -> str:
    """Return the 36-char lower-case hyphenated form of a UUID.

    Accepts a uuid.UUID, 16 raw bytes, or a 32/36-char hex string.

    Example:
        >>> canonical_uuid("6F2C1D6E8A3B4C5D9E0F1A2B3C4D5E6F")
        '6f2c1d6e-8a3b-4c5d-9e0f-1a2b3c4d5e6f'
    """
    if isinstance(value, _uuid.UUID):
        return str(value)
    if isinstance(value, (bytes, bytearray)):
        if len(value) != 16:
            raise ValueError(f"raw UUID must be 16 bytes, got {len(value)}")
        return str(_uuid.UUID(bytes=bytes(value)))
    s = str(value).strip()
    if len(s) not in (32, 36):
        raise ValueError(f"not a UUID: {value!r}")
    return str(_uuid.UUID(s))


def canonical_mac(value: Union[str, bytes]) -> str:
    """Return the lower-case colon form of a MAC address.

    Example:
        >>> canonical_mac("A4-58-3B-0A-FD-3B")
        'a4:58:3b:0a:fd:3b'
    """
    if isinstance(value, (bytes, bytearray)):
        if len(value) != 6:
            raise ValueError(f"raw MAC must be 6 bytes, got {len(value)}")
        return ":".join(f"{b:02x}" for b in value)
    s = str(value).strip().lower()
    if not _MAC_RE.fullmatch(s):
        raise ValueError(f"not a MAC address: {value!r}")
    return s.replace("-", ":")


def parse_decimal(text: str) -> int:
    """Parse a plain non-negative decimal; no sign, hex, octal or underscores."""
    s = (text or "").strip()
    if not _DECIMAL_RE.fullmatch(s):
        raise ValueError(f"not a decimal integer: {text!r}")
    return int(s, 10)


def format_pci_field(name: str, value: int) -> str:
    width, _ = PCI_FIELDS[name]
    return f"0x{value:0{width}x}"


def parse_pci_field(name: str, text: str) -> int:
    """Parse a `0x`-prefixed PCI address field and range-check it."""
    s = (text or "").strip().lower()
    if not _HEX_RE.fullmatch(s):
        raise ValueError(f"PCI {name} must be 0x-prefixed hex, got {text!r}")
    value = int(s, 16)
    check_pci_field(name, value)
    return value


def check_pci_field(name: str, value: int) -> None:
    _, top = PCI_FIELDS[name]
    if not isinstance(value, int) or isinstance(value, bool) or not 0 <= value <= top:
        raise ValueError(f"PCI {name} must be in 0..{top:#x}, got {value!r}")


def join_network_uri(protocol: str, host: str, port: Optional[int], name: str) -> str:
    hostpart = f"[{host}]" if ":" in host else host
    portpart = f":{port}" if port is not None else ""
    return f"{protocol}://{hostpart}{portpart}/{name}"


def split_network_uri(uri: str) -> Tuple[str, str, Optional[int], str]:
    """Split `protocol://host[:port]/name` into its parts.

    Only the canonical spelling is accepted (lower-case host, no user info,
    query or fragment) so that join_network_uri() gives back the same string.

    Example:
        >>> split_network_uri("nbd://storage01:10809/vm-root")
        ('nbd', 'storage01', 10809, 'vm-root')
    """
    parts = urlsplit(uri)
    name = parts.path[1:] if parts.path.startswith("/") else ""
    if not parts.scheme or not parts.hostname or not name:
        raise ValueError(f"network source must look like protocol://host[:port]/name, got {uri!r}")
    if parts.username or parts.password or parts.query or parts.fragment:
        raise ValueError(f"network source takes no credentials, query or fragment: {uri!r}")
    port = parts.port
    if join_network_uri(parts.scheme, parts.hostname, port, name) != uri:
        raise ValueError(f"network source is not in canonical form: {uri!r}")
    return parts.scheme, parts.hostname, port, name


def yes_no(flag: bool) -> str:
    return "yes" if flag else "no"


def parse_yes_no(text: str) -> bool:
    s = (text or "").strip().lower()
    if s == "yes":
        return True
    if s == "no":
        return False
    raise ValueError(f"expected 'yes' or 'no', got {text!r}")


__all__ = [
    "PCI_FIELDS",
    "canonical_mac",
    "canonical_uuid",
    "check_pci_field",
    "format_pci_field",
    "join_network_uri",
    "parse_decimal",
    "parse_pci_field",
    "parse_yes_no",
    "split_network_uri",
    "yes_no",
]
