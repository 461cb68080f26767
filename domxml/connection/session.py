# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# domxml/connection/session.py
"""
Hypervisor connection: a thin session over the libvirt binding.

The session is scoped: use `with connect(uri) as session:` so the connection
is closed on every exit path. Nothing here is cached at module level.
"""
from __future__ import annotations

import logging
import socket
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple
from urllib.parse import urlsplit

import libvirt

from ..core.exceptions import HypervisorError, wrap_hypervisor
from ..core.logger import Log

LIBVIRT_TCP_PORT = 16509
DEFAULT_CONNECT_TIMEOUT_S = 2.0


@dataclass(frozen=True)
class DomainSummary:
    """One row of the domain listing. id is None for inactive domains."""
    id: Optional[int]
    name: str
    uuid: str

    @property
    def uuid_hex(self) -> str:
        return self.uuid.replace("-", "")


def format_lib_version(v: int) -> str:
    """libvirt encodes versions as major * 1_000_000 + minor * 1_000 + release."""
    return f"{v // 1000000}.{(v // 1000) % 1000}.{v % 1000}"


def tcp_endpoint(uri: str) -> Optional[Tuple[str, int]]:
    """(host, port) for plain-TCP transports like qemu+tcp://host/system, else None."""
    parts = urlsplit(uri)
    if not parts.scheme.endswith("+tcp") or not parts.hostname:
        return None
    return parts.hostname, parts.port or LIBVIRT_TCP_PORT


def dial_endpoint(host: str, port: int, timeout_s: float) -> None:
    """Fail fast if the daemon port is not reachable within timeout_s."""
    try:
        sock = socket.create_connection((host, port), timeout=timeout_s)
    except OSError as e:
        raise wrap_hypervisor(f"failed to dial libvirt at {host}:{port}", e, host=host, port=port) from e
    sock.close()


class HypervisorSession:
    def __init__(self, conn: "libvirt.virConnect", uri: str, logger: Optional[logging.Logger] = None):
        self._conn: Optional["libvirt.virConnect"] = conn
        self.uri = uri
        self.logger = logger or logging.getLogger("domxml")

    @property
    def connected(self) -> bool:
        return self._conn is not None

    def _require(self) -> "libvirt.virConnect":
        if self._conn is None:
            raise wrap_hypervisor("session is disconnected", None, uri=self.uri)
        return self._conn

    def version(self) -> str:
        conn = self._require()
        try:
            return format_lib_version(conn.getLibVersion())
        except libvirt.libvirtError as e:
            raise wrap_hypervisor("failed to retrieve libvirt version", e, uri=self.uri) from e

    def list_domains(self) -> List[DomainSummary]:
        conn = self._require()
        try:
            out: List[DomainSummary] = []
            for dom in conn.listAllDomains(0):
                dom_id = dom.ID()
                out.append(DomainSummary(id=dom_id if dom_id >= 0 else None, name=dom.name(), uuid=dom.UUIDString()))
        except libvirt.libvirtError as e:
            raise wrap_hypervisor("failed to retrieve domains", e, uri=self.uri) from e
        self.logger.debug("Listed %d domain(s)", len(out))
        return out

    def domain_xml(self, name: str) -> bytes:
        """The daemon's current XML for domain `name`, ready for codec.decode()."""
        conn = self._require()
        try:
            return conn.lookupByName(name).XMLDesc(0).encode("utf-8")
        except libvirt.libvirtError as e:
            raise wrap_hypervisor(f"failed to fetch XML for domain {name!r}", e, uri=self.uri, domain=name) from e

    def disconnect(self) -> None:
        if self._conn is None:
            return
        conn, self._conn = self._conn, None
        try:
            conn.close()
        except libvirt.libvirtError as e:
            raise wrap_hypervisor("failed to disconnect", e, uri=self.uri) from e
        self.logger.debug("Disconnected from %s", self.uri)


def open_session(
    uri: str,
    *,
    timeout_s: float = DEFAULT_CONNECT_TIMEOUT_S,
    logger: Optional[logging.Logger] = None,
) -> HypervisorSession:
    logger = logger or logging.getLogger("domxml")
    log = Log.bind(logger, uri=uri)

    endpoint = tcp_endpoint(uri)
    if endpoint is not None:
        dial_endpoint(endpoint[0], endpoint[1], timeout_s)

    log.debug("Opening libvirt connection")
    try:
        conn = libvirt.open(uri)
    except libvirt.libvirtError as e:
        raise wrap_hypervisor("failed to connect", e, uri=uri) from e
    if conn is None:
        raise wrap_hypervisor("failed to connect", None, uri=uri)
    return HypervisorSession(conn, uri, logger)


@contextmanager
def connect(
    uri: str,
    *,
    timeout_s: float = DEFAULT_CONNECT_TIMEOUT_S,
    logger: Optional[logging.Logger] = None,
) -> Iterator[HypervisorSession]:
    """
    Open a session and close it on exit.

    A disconnect failure is raised on the normal path; if the body already
    failed, the disconnect failure is logged and the original error wins.
    """
    session = open_session(uri, timeout_s=timeout_s, logger=logger)
    try:
        yield session
    except BaseException:
        try:
            session.disconnect()
        except HypervisorError as e:
            session.logger.warning("Disconnect after failure also failed: %s", e)
        raise
    session.disconnect()


__all__ = [
    "DomainSummary",
    "HypervisorSession",
    "connect",
    "format_lib_version",
    "open_session",
    "dial_endpoint",
    "tcp_endpoint",
]
