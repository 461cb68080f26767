# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# domxml/libvirt/model.py
"""
Domain descriptor model.

A DomainDescriptor is a frozen tree of small specs. Each spec checks its own
value domain on construction (raising ValidationError naming the field);
cross-entity rules (required name/uuid, alias uniqueness, non-empty boot order)
are checked by DomainDescriptor.validate(). Trees are never mutated: use
replace() to derive a new one.
"""
from __future__ import annotations

import dataclasses
import ipaddress
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

from ..core.exceptions import ValidationError
from ..core.xml_utils import find_illegal_xml_char
from .libvirt_utils import canonical_mac, canonical_uuid, check_pci_field, parse_pci_field, split_network_uri

AUTO_PORT = "auto"

MEMORY_UNITS = ("bytes", "KiB", "MiB", "GiB")
VCPU_PLACEMENTS = ("static", "auto")
HYPERVISOR_MODES = ("hvm", "xen", "linux", "exe")
BOOT_DEVICES = ("hd", "fd", "cdrom", "network")
CLOCK_OFFSETS = ("utc", "localtime", "variable")
DISK_KINDS = ("file", "block", "network")
DISK_DEVICES = ("disk", "cdrom")
DISK_BUSES = ("virtio", "ide", "scsi", "sata", "usb", "fdc", "xen", "sd")
INTERFACE_KINDS = ("bridge", "network", "direct")
GRAPHICS_PROTOCOLS = ("vnc", "spice", "none")
LISTEN_KINDS = ("address", "network", "none")

Port = Union[int, str]


# --------------------------------------------------------------------------------------
# Checks
# --------------------------------------------------------------------------------------

def _choice(value: Any, choices: Tuple[str, ...], *, field: str) -> None:
    if value not in choices:
        raise ValidationError(field=field, reason=f"must be one of {', '.join(choices)}; got {value!r}")


def _text(value: Any, *, field: str, optional: bool = False) -> None:
    if value is None and optional:
        return
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(field=field, reason=f"must be a non-empty string; got {value!r}")
    bad = find_illegal_xml_char(value)
    if bad is not None:
        raise ValidationError(field=field, reason=f"character {bad!r} cannot be carried in XML; got {value!r}")


def _int_at_least(value: Any, minimum: int, *, field: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        raise ValidationError(field=field, reason=f"must be an integer >= {minimum}; got {value!r}")


def _port_ok(port: Any) -> bool:
    if port == AUTO_PORT:
        return True
    return isinstance(port, int) and not isinstance(port, bool) and 0 <= port <= 65535


def _set(obj: Any, name: str, value: Any) -> None:
    # frozen dataclasses normalise in __post_init__
    object.__setattr__(obj, name, value)


# --------------------------------------------------------------------------------------
# Specs
# --------------------------------------------------------------------------------------

@dataclass(frozen=True)
class MemorySpec:
    quantity: int
    unit: str = "KiB"

    def __post_init__(self) -> None:
        _int_at_least(self.quantity, 1, field="memory")
        _choice(self.unit, MEMORY_UNITS, field="memory")


@dataclass(frozen=True)
class VcpuSpec:
    count: int
    placement: str = "static"

    def __post_init__(self) -> None:
        _int_at_least(self.count, 1, field="vcpu")
        _choice(self.placement, VCPU_PLACEMENTS, field="vcpu")


@dataclass(frozen=True)
class BootSpec:
    """<os>: guest type, arch/machine, and boot devices in priority order."""
    hypervisor_mode: str = "hvm"
    arch: Optional[str] = None
    machine: Optional[str] = None
    devices: Tuple[str, ...] = ("hd",)

    def __post_init__(self) -> None:
        _choice(self.hypervisor_mode, HYPERVISOR_MODES, field="boot.type")
        _text(self.arch, field="boot.arch", optional=True)
        _text(self.machine, field="boot.machine", optional=True)
        if isinstance(self.devices, str):
            raise ValidationError(field="boot.dev", reason="devices must be a sequence of boot device names")
        devices = tuple(self.devices)
        for dev in devices:
            _choice(dev, BOOT_DEVICES, field="boot.dev")
        _set(self, "devices", devices)


@dataclass(frozen=True)
class ClockSpec:
    offset: str = "utc"

    def __post_init__(self) -> None:
        _choice(self.offset, CLOCK_OFFSETS, field="clock")


@dataclass(frozen=True)
class DriverSpec:
    name: str = "qemu"
    format: str = "raw"

    def __post_init__(self) -> None:
        _text(self.name, field="disk.driver")
        _text(self.format, field="disk.driver")


@dataclass(frozen=True)
class TargetSpec:
    dev: str
    bus: Optional[str] = None

    def __post_init__(self) -> None:
        _text(self.dev, field="disk.target")
        if self.bus is not None:
            _choice(self.bus, DISK_BUSES, field="disk.target")


@dataclass(frozen=True)
class DiskDevice:
    """
    One <disk>. `source` depends on `kind`:
      - file    => image path
      - block   => block device path
      - network => protocol://host[:port]/name
    A cdrom may have source=None: the tray is empty.
    """
    source: Optional[str]
    target: TargetSpec
    kind: str = "file"
    device: str = "disk"
    driver: DriverSpec = field(default_factory=DriverSpec)
    alias: Optional[str] = None

    def __post_init__(self) -> None:
        _choice(self.kind, DISK_KINDS, field="disk.type")
        _choice(self.device, DISK_DEVICES, field="disk.device")
        if self.source is None:
            if self.device != "cdrom":
                raise ValidationError(field="disk.source", reason="only a cdrom can have no source (empty tray)")
        else:
            _text(self.source, field="disk.source")
        if self.kind == "network" and self.source is not None:
            try:
                split_network_uri(self.source)
            except ValueError as e:
                raise ValidationError(field="disk.source", reason=str(e), cause=e) from e
        if not isinstance(self.target, TargetSpec):
            raise ValidationError(field="disk.target", reason="must be a TargetSpec")
        if not isinstance(self.driver, DriverSpec):
            raise ValidationError(field="disk.driver", reason="must be a DriverSpec")
        _text(self.alias, field="disk.alias", optional=True)


@dataclass(frozen=True)
class PciAddress:
    """Pinned guest PCI address; fields accept ints or 0x-prefixed hex strings."""
    domain: int = 0
    bus: int = 0
    slot: int = 0
    function: int = 0

    def __post_init__(self) -> None:
        for name in ("domain", "bus", "slot", "function"):
            value = getattr(self, name)
            try:
                if isinstance(value, str):
                    value = parse_pci_field(name, value)
                    _set(self, name, value)
                else:
                    check_pci_field(name, value)
            except ValueError as e:
                raise ValidationError(field="interface.address", reason=str(e), cause=e) from e


@dataclass(frozen=True)
class NetworkInterfaceDevice:
    """
    One <interface>. `source` is the bridge name (bridge), virtual network
    name (network) or host device (direct). `address` is None unless the
    guest PCI slot must stay fixed across reboots.
    """
    mac: str
    source: str
    kind: str = "bridge"
    target: Optional[str] = None
    model: Optional[str] = None
    alias: Optional[str] = None
    address: Optional[PciAddress] = None

    def __post_init__(self) -> None:
        _choice(self.kind, INTERFACE_KINDS, field="interface.type")
        try:
            _set(self, "mac", canonical_mac(self.mac))
        except (TypeError, ValueError) as e:
            raise ValidationError(field="interface.mac", reason=str(e), cause=e) from e
        _text(self.source, field="interface.source")
        _text(self.target, field="interface.target", optional=True)
        _text(self.model, field="interface.model", optional=True)
        _text(self.alias, field="interface.alias", optional=True)
        if self.address is not None and not isinstance(self.address, PciAddress):
            raise ValidationError(field="interface.address", reason="must be a PciAddress")


@dataclass(frozen=True)
class ListenSpec:
    kind: str = "address"
    address: Optional[str] = None

    def __post_init__(self) -> None:
        _choice(self.kind, LISTEN_KINDS, field="graphics.listen")
        if self.kind == "address" and self.address is None:
            raise ValidationError(field="graphics.listen", reason="listen type 'address' needs an address")
        if self.kind == "none" and self.address is not None:
            raise ValidationError(field="graphics.listen", reason="listen type 'none' takes no address")
        if self.address is not None and self.address != "*":
            try:
                ipaddress.ip_address(self.address)
            except ValueError as e:
                raise ValidationError(
                    field="graphics.listen", reason=f"not an IP literal or '*': {self.address!r}", cause=e
                ) from e


@dataclass(frozen=True)
class GraphicsDevice:
    protocol: str = "vnc"
    port: Port = AUTO_PORT
    autoport: bool = True
    listen: Optional[ListenSpec] = None

    def __post_init__(self) -> None:
        _choice(self.protocol, GRAPHICS_PROTOCOLS, field="graphics.type")
        if not _port_ok(self.port):
            raise ValidationError(field="graphics.port", reason=f"must be 0..65535 or {AUTO_PORT!r}; got {self.port!r}")
        if not isinstance(self.autoport, bool):
            raise ValidationError(field="graphics.autoport", reason=f"must be a bool; got {self.autoport!r}")
        if self.listen is not None and not isinstance(self.listen, ListenSpec):
            raise ValidationError(field="graphics.listen", reason="must be a ListenSpec")


@dataclass(frozen=True)
class DeviceSet:
    emulator: Optional[str] = None
    disks: Tuple[DiskDevice, ...] = ()
    interface: Optional[NetworkInterfaceDevice] = None
    graphics: Optional[GraphicsDevice] = None

    def __post_init__(self) -> None:
        _text(self.emulator, field="devices.emulator", optional=True)
        disks = tuple(self.disks)
        for d in disks:
            if not isinstance(d, DiskDevice):
                raise ValidationError(field="disk", reason=f"expected DiskDevice, got {type(d).__name__}")
        _set(self, "disks", disks)

    def aliases(self) -> List[str]:
        """Every device alias, in document order."""
        out = [d.alias for d in self.disks if d.alias is not None]
        if self.interface is not None and self.interface.alias is not None:
            out.append(self.interface.alias)
        return out


# --------------------------------------------------------------------------------------
# Root
# --------------------------------------------------------------------------------------

@dataclass(frozen=True)
class DomainDescriptor:
    memory: MemorySpec
    vcpu: VcpuSpec
    domain_type: str = "kvm"
    id: Optional[int] = None
    name: Optional[str] = None
    uuid: Optional[str] = None
    boot: Optional[BootSpec] = None
    clock: Optional[ClockSpec] = None
    devices: DeviceSet = field(default_factory=DeviceSet)

    def __post_init__(self) -> None:
        _text(self.domain_type, field="type")
        if self.id is not None:
            _int_at_least(self.id, 0, field="id")
        _text(self.name, field="name", optional=True)
        if self.uuid is not None:
            try:
                _set(self, "uuid", canonical_uuid(self.uuid))
            except (TypeError, ValueError) as e:
                raise ValidationError(field="uuid", reason=str(e), cause=e) from e
        if not isinstance(self.memory, MemorySpec):
            raise ValidationError(field="memory", reason="must be a MemorySpec")
        if not isinstance(self.vcpu, VcpuSpec):
            raise ValidationError(field="vcpu", reason="must be a VcpuSpec")

    def validate(self, *, for_define: bool = True) -> None:
        """
        Raise the first ValidationError found, in this order:
          name, uuid (only when for_define) -> memory -> vcpu -> device aliases
          -> boot order -> graphics port.
        """
        if for_define:
            if not self.name or not self.name.strip():
                raise ValidationError(field="name", reason="required to define a domain")
            if not self.uuid:
                raise ValidationError(field="uuid", reason="required to define a domain")

        _int_at_least(self.memory.quantity, 1, field="memory")
        _int_at_least(self.vcpu.count, 1, field="vcpu")

        seen: set = set()
        for disk in self.devices.disks:
            if disk.alias is None:
                continue
            if disk.alias in seen:
                raise ValidationError(field="disk.alias", reason=f"duplicate alias {disk.alias!r}")
            seen.add(disk.alias)
        iface = self.devices.interface
        if iface is not None and iface.alias is not None and iface.alias in seen:
            raise ValidationError(field="interface.alias", reason=f"duplicate alias {iface.alias!r}")

        if self.boot is not None and not self.boot.devices:
            raise ValidationError(field="boot", reason="at least one boot device is required")

        gfx = self.devices.graphics
        if gfx is not None and not _port_ok(gfx.port):
            raise ValidationError(field="graphics.port", reason=f"must be 0..65535 or {AUTO_PORT!r}; got {gfx.port!r}")

    def is_valid(self, *, for_define: bool = True) -> bool:
        try:
            self.validate(for_define=for_define)
        except ValidationError:
            return False
        return True

    def replace(self, **changes: Any) -> "DomainDescriptor":
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Plain nested dict/list form (YAML/JSON friendly)."""
        return _plain(self)


def _plain(obj: Any) -> Any:
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: _plain(getattr(obj, f.name)) for f in dataclasses.fields(obj)}
    if isinstance(obj, (list, tuple)):
        return [_plain(x) for x in obj]
    return obj



__all__ = [
    "AUTO_PORT",
    "BootSpec",
    "ClockSpec",
    "DeviceSet",
    "DiskDevice",
    "DomainDescriptor",
    "DriverSpec",
    "GraphicsDevice",
    "ListenSpec",
    "MemorySpec",
    "NetworkInterfaceDevice",
    "PciAddress",
    "TargetSpec",
    "VcpuSpec",
]
