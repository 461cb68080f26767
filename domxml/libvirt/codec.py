# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# domxml/libvirt/codec.py
"""
Domain XML codec.

encode(): DomainDescriptor -> bytes. Validates first, then renders through
schema.build() so attribute and element order always follow the schema tables.
Output is deterministic: same descriptor, same bytes.

decode(): bytes -> DomainDescriptor. Parsed with defusedxml. Unknown elements
and attributes are ignored so newer daemons can add fields. decode() does not
run validate(); a daemon-reported domain may legitimately lack a UUID.
"""
from __future__ import annotations

import xml.etree.ElementTree as ET
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional, Tuple, TypeVar, Union

from defusedxml import DefusedXmlException
from defusedxml.ElementTree import fromstring as _safe_fromstring

from ..core.exceptions import DecodeError, DecodeErrorKind, ValidationError
from ..core.xml_utils import Node, write_document
from .libvirt_utils import (
    PCI_FIELDS,
    canonical_mac,
    canonical_uuid,
    format_pci_field,
    join_network_uri,
    parse_decimal,
    parse_pci_field,
    parse_yes_no,
    split_network_uri,
)
from .model import (
    AUTO_PORT,
    BOOT_DEVICES,
    CLOCK_OFFSETS,
    DISK_BUSES,
    DISK_DEVICES,
    DISK_KINDS,
    GRAPHICS_PROTOCOLS,
    HYPERVISOR_MODES,
    INTERFACE_KINDS,
    LISTEN_KINDS,
    MEMORY_UNITS,
    VCPU_PLACEMENTS,
    BootSpec,
    ClockSpec,
    DeviceSet,
    DiskDevice,
    DomainDescriptor,
    DriverSpec,
    GraphicsDevice,
    ListenSpec,
    MemorySpec,
    NetworkInterfaceDevice,
    PciAddress,
    TargetSpec,
    VcpuSpec,
)
from .schema import DISK_SOURCE_ATTR, INTERFACE_SOURCE_ATTR, build

T = TypeVar("T")

# libvirt reports port='-1' while autoport allocation is pending
_WIRE_AUTO_PORT = "-1"
_WIRE_INACTIVE_ID = "-1"


# --------------------------------------------------------------------------------------
# Encode
# --------------------------------------------------------------------------------------

def _encode_os(boot: BootSpec) -> Node:
    return build(
        "os",
        children={
            "os.type": build("os.type", {"arch": boot.arch, "machine": boot.machine}, text=boot.hypervisor_mode),
            "os.boot": [build("os.boot", {"dev": dev}) for dev in boot.devices],
        },
    )


def _encode_disk(disk: DiskDevice) -> Node:
    # An empty cdrom tray has no <source>
    source = None
    if disk.source is not None and disk.kind == "network":
        protocol, host, port, name = split_network_uri(disk.source)
        source = build(
            "disk.source",
            {"protocol": protocol, "name": name},
            children={"disk.source.host": build("disk.source.host", {"name": host, "port": port})},
        )
    elif disk.source is not None:
        source = build("disk.source", {DISK_SOURCE_ATTR[disk.kind]: disk.source})

    return build(
        "disk",
        {"type": disk.kind, "device": disk.device},
        children={
            "disk.driver": build("disk.driver", {"name": disk.driver.name, "type": disk.driver.format}),
            "disk.source": source,
            "disk.target": build("disk.target", {"dev": disk.target.dev, "bus": disk.target.bus}),
            "alias": build("alias", {"name": disk.alias}) if disk.alias is not None else None,
        },
    )


def _encode_interface(iface: NetworkInterfaceDevice) -> Node:
    address = None
    if iface.address is not None:
        address = build(
            "interface.address",
            {"type": "pci", **{f: format_pci_field(f, getattr(iface.address, f)) for f in PCI_FIELDS}},
        )

    return build(
        "interface",
        {"type": iface.kind},
        children={
            "interface.mac": build("interface.mac", {"address": iface.mac}),
            "interface.source": build("interface.source", {INTERFACE_SOURCE_ATTR[iface.kind]: iface.source}),
            "interface.target": build("interface.target", {"dev": iface.target}) if iface.target is not None else None,
            "interface.model": build("interface.model", {"type": iface.model}) if iface.model is not None else None,
            "alias": build("alias", {"name": iface.alias}) if iface.alias is not None else None,
            "interface.address": address,
        },
    )


def _encode_graphics(gfx: GraphicsDevice) -> Node:
    listen_attr = None
    listen_node = None
    if gfx.listen is not None:
        if gfx.listen.kind == "address":
            listen_attr = gfx.listen.address
        listen_node = build("graphics.listen", {"type": gfx.listen.kind, "address": gfx.listen.address})

    return build(
        "graphics",
        {
            "type": gfx.protocol,
            "port": _WIRE_AUTO_PORT if gfx.port == AUTO_PORT else gfx.port,
            "autoport": gfx.autoport,
            "listen": listen_attr,
        },
        children={"graphics.listen": listen_node},
    )


def _encode_devices(devices: DeviceSet) -> Node:
    return build(
        "devices",
        children={
            "emulator": build("emulator", text=devices.emulator) if devices.emulator is not None else None,
            "disk": [_encode_disk(d) for d in devices.disks],
            "interface": _encode_interface(devices.interface) if devices.interface is not None else None,
            "graphics": _encode_graphics(devices.graphics) if devices.graphics is not None else None,
        },
    )


def to_node(descriptor: DomainDescriptor) -> Node:
    """Build the element tree for `descriptor` without validating it."""
    d = descriptor
    return build(
        "domain",
        {"type": d.domain_type, "id": d.id},
        children={
            "name": build("name", text=d.name) if d.name is not None else None,
            "uuid": build("uuid", text=d.uuid) if d.uuid is not None else None,
            "memory": build("memory", {"unit": d.memory.unit}, text=str(d.memory.quantity)),
            "vcpu": build("vcpu", {"placement": d.vcpu.placement}, text=str(d.vcpu.count)),
            "os": _encode_os(d.boot) if d.boot is not None else None,
            "clock": build("clock", {"offset": d.clock.offset}) if d.clock is not None else None,
            "devices": _encode_devices(d.devices),
        },
    )


def encode(descriptor: DomainDescriptor, *, for_define: bool = True) -> bytes:
    """
    Validate `descriptor` and render it as domain XML (UTF-8 bytes).

    for_define=False relaxes the name/uuid requirement so templates can be
    rendered. Raises ValidationError before producing any output.
    """
    descriptor.validate(for_define=for_define)
    return write_document(to_node(descriptor))


# --------------------------------------------------------------------------------------
# Decode
# --------------------------------------------------------------------------------------

def _child_path(parent: str, tag: str) -> str:
    return f"{parent}/{tag}" if parent else tag


def _mismatch(path: str, reason: str, cause: Optional[BaseException] = None) -> DecodeError:
    return DecodeError(
        kind=DecodeErrorKind.SCHEMA_MISMATCH,
        path=path,
        msg=f"schema mismatch at {path or '<domain>'}: {reason}",
        cause=cause,
    )


class _Reader:
    """An element plus its path from <domain>, with typed accessors."""

    def __init__(self, el: ET.Element, path: str):
        self.el = el
        self.path = path

    def attr_path(self, name: str) -> str:
        return _child_path(self.path, f"@{name}")

    def child(self, tag: str) -> Optional["_Reader"]:
        found = self.el.find(tag)
        return _Reader(found, _child_path(self.path, tag)) if found is not None else None

    def require(self, tag: str) -> "_Reader":
        found = self.child(tag)
        if found is None:
            raise _mismatch(_child_path(self.path, tag), f"missing <{tag}>")
        return found

    def children(self, tag: str) -> List["_Reader"]:
        found = self.el.findall(tag)
        return [_Reader(el, _child_path(self.path, f"{tag}[{i}]")) for i, el in enumerate(found, start=1)]

    def attr(self, name: str, *, required: bool = False, default: Optional[str] = None) -> Optional[str]:
        value = self.el.get(name)
        if value is None:
            if required:
                raise _mismatch(self.attr_path(name), f"missing attribute {name!r}")
            return default
        return value

    def choice(self, name: str, choices: Tuple[str, ...], *, required: bool = False, default: Optional[str] = None) -> Optional[str]:
        value = self.attr(name, required=required, default=default)
        if value is not None and value not in choices:
            raise _mismatch(self.attr_path(name), f"{value!r} is not one of {', '.join(choices)}")
        return value

    def convert_attr(self, name: str, fn: Callable[[str], T], *, required: bool = False) -> Optional[T]:
        value = self.attr(name, required=required)
        if value is None:
            return None
        try:
            return fn(value)
        except ValueError as e:
            raise _mismatch(self.attr_path(name), str(e), e) from e

    def text(self, *, required: bool = False) -> Optional[str]:
        value = self.el.text
        if value is None or value == "":
            if required:
                raise _mismatch(self.path, "missing text content")
            return None
        return value

    def convert_text(self, fn: Callable[[str], T]) -> T:
        value = self.text(required=True)
        try:
            return fn(value)  # type: ignore[arg-type]
        except ValueError as e:
            raise _mismatch(self.path, str(e), e) from e

    @contextmanager
    def building(self) -> Iterator[None]:
        """Report model-level rejections as a mismatch at this element."""
        try:
            yield
        except ValidationError as e:
            raise _mismatch(self.path, e.msg, e) from e


def _decode_boot(r: _Reader) -> BootSpec:
    type_r = r.require("type")
    mode = type_r.text(required=True)
    if mode not in HYPERVISOR_MODES:
        raise _mismatch(type_r.path, f"{mode!r} is not one of {', '.join(HYPERVISOR_MODES)}")
    devices = tuple(b.choice("dev", BOOT_DEVICES, required=True) for b in r.children("boot"))
    with r.building():
        return BootSpec(
            hypervisor_mode=mode,
            arch=type_r.attr("arch"),
            machine=type_r.attr("machine"),
            devices=devices,  # type: ignore[arg-type]
        )


def _decode_disk_source(r: _Reader, kind: str, device: str) -> Optional[str]:
    src = r.child("source")
    if src is None:
        if device == "cdrom":
            return None
        raise _mismatch(_child_path(r.path, "source"), "missing <source>")
    if kind != "network":
        return src.attr(DISK_SOURCE_ATTR[kind], required=True)  # type: ignore[return-value]

    protocol = src.attr("protocol", required=True)
    name = src.attr("name", required=True)
    host = src.require("host")
    host_name = host.attr("name", required=True)
    port = host.convert_attr("port", parse_decimal)
    uri = join_network_uri(protocol, host_name, port, name)  # type: ignore[arg-type]
    try:
        split_network_uri(uri)
    except ValueError as e:
        raise _mismatch(src.path, str(e), e) from e
    return uri


def _decode_disk(r: _Reader) -> DiskDevice:
    kind = r.choice("type", DISK_KINDS, required=True)
    device = r.choice("device", DISK_DEVICES, required=True)

    driver = DriverSpec()
    drv = r.child("driver")
    if drv is not None:
        with drv.building():
            driver = DriverSpec(name=drv.attr("name", default="qemu"), format=drv.attr("type", default="raw"))  # type: ignore[arg-type]

    source = _decode_disk_source(r, kind, device)  # type: ignore[arg-type]

    tgt = r.require("target")
    with tgt.building():
        target = TargetSpec(dev=tgt.attr("dev", required=True), bus=tgt.choice("bus", DISK_BUSES))  # type: ignore[arg-type]

    alias_r = r.child("alias")
    alias = alias_r.attr("name", required=True) if alias_r is not None else None

    with r.building():
        return DiskDevice(
            source=source,
            target=target,
            kind=kind,  # type: ignore[arg-type]
            device=device,  # type: ignore[arg-type]
            driver=driver,
            alias=alias,
        )


def _decode_address(r: _Reader) -> Optional[PciAddress]:
    # Only PCI addresses are modelled; other address types are ignored.
    if r.attr("type") != "pci":
        return None
    values = {}
    for name in PCI_FIELDS:
        values[name] = r.convert_attr(name, lambda s, n=name: parse_pci_field(n, s)) or 0
    return PciAddress(**values)


def _decode_interface(r: _Reader) -> NetworkInterfaceDevice:
    kind = r.choice("type", INTERFACE_KINDS, required=True)

    mac_r = r.require("mac")
    mac = mac_r.convert_attr("address", canonical_mac, required=True)

    src = r.require("source")
    source = src.attr(INTERFACE_SOURCE_ATTR[kind], required=True)  # type: ignore[index]

    target_r = r.child("target")
    model_r = r.child("model")
    alias_r = r.child("alias")
    address_r = r.child("address")

    with r.building():
        return NetworkInterfaceDevice(
            mac=mac,  # type: ignore[arg-type]
            source=source,  # type: ignore[arg-type]
            kind=kind,  # type: ignore[arg-type]
            target=target_r.attr("dev", required=True) if target_r is not None else None,
            model=model_r.attr("type", required=True) if model_r is not None else None,
            alias=alias_r.attr("name", required=True) if alias_r is not None else None,
            address=_decode_address(address_r) if address_r is not None else None,
        )


def _parse_port(text: str) -> Union[int, str]:
    if text.strip() == _WIRE_AUTO_PORT:
        return AUTO_PORT
    port = parse_decimal(text)
    if port > 65535:
        raise ValueError(f"port out of range: {port}")
    return port


def _decode_graphics(r: _Reader) -> GraphicsDevice:
    protocol = r.choice("type", GRAPHICS_PROTOCOLS, required=True)
    port = r.convert_attr("port", _parse_port)
    if port is None:
        port = AUTO_PORT
    autoport = r.convert_attr("autoport", parse_yes_no)
    if autoport is None:
        autoport = port == AUTO_PORT

    listen: Optional[ListenSpec] = None
    listen_r = r.child("listen")
    if listen_r is not None:
        with listen_r.building():
            listen = ListenSpec(kind=listen_r.choice("type", LISTEN_KINDS, default="address"), address=listen_r.attr("address"))  # type: ignore[arg-type]
    else:
        addr = r.attr("listen")
        if addr is not None:
            with r.building():
                listen = ListenSpec(kind="address", address=addr)

    with r.building():
        return GraphicsDevice(protocol=protocol, port=port, autoport=autoport, listen=listen)  # type: ignore[arg-type]


def _decode_devices(r: _Reader) -> DeviceSet:
    emulator_r = r.child("emulator")
    # The model holds one interface and one graphics device; extra ones are ignored.
    iface_r = r.child("interface")
    gfx_r = r.child("graphics")

    with r.building():
        return DeviceSet(
            emulator=emulator_r.text(required=True) if emulator_r is not None else None,
            disks=tuple(_decode_disk(d) for d in r.children("disk")),
            interface=_decode_interface(iface_r) if iface_r is not None else None,
            graphics=_decode_graphics(gfx_r) if gfx_r is not None else None,
        )


def _parse_id(text: str) -> Optional[int]:
    if text.strip() == _WIRE_INACTIVE_ID:
        return None
    return parse_decimal(text)


def _parse_root(data: Union[bytes, str]) -> ET.Element:
    raw = data.encode("utf-8") if isinstance(data, str) else bytes(data)
    try:
        return _safe_fromstring(raw, forbid_dtd=True)
    except ET.ParseError as e:
        raise DecodeError(kind=DecodeErrorKind.MALFORMED, msg=f"malformed domain XML: {e}", cause=e) from e
    except DefusedXmlException as e:
        raise DecodeError(kind=DecodeErrorKind.MALFORMED, msg=f"forbidden XML construct: {e}", cause=e) from e


def decode(data: Union[bytes, str]) -> DomainDescriptor:
    """
    Parse domain XML into a DomainDescriptor.

    Raises DecodeError(kind=MALFORMED) for markup that is not well formed and
    DecodeError(kind=SCHEMA_MISMATCH, path=...) when a required element or
    attribute is missing or holds a value outside its type's domain.
    """
    root_el = _parse_root(data)
    if root_el.tag != "domain":
        raise _mismatch("", f"root element must be <domain>, got <{root_el.tag}>")
    root = _Reader(root_el, "")

    domain_type = root.attr("type", required=True)
    dom_id = root.convert_attr("id", _parse_id)

    name_r = root.child("name")
    uuid_r = root.child("uuid")

    mem_r = root.require("memory")
    mem_unit = mem_r.choice("unit", MEMORY_UNITS, default="KiB")
    with mem_r.building():
        memory = MemorySpec(quantity=mem_r.convert_text(parse_decimal), unit=mem_unit)  # type: ignore[arg-type]

    vcpu_r = root.require("vcpu")
    placement = vcpu_r.choice("placement", VCPU_PLACEMENTS, default="static")
    with vcpu_r.building():
        vcpu = VcpuSpec(count=vcpu_r.convert_text(parse_decimal), placement=placement)  # type: ignore[arg-type]

    os_r = root.child("os")
    boot = _decode_boot(os_r) if os_r is not None else None

    clock_r = root.child("clock")
    clock = None
    if clock_r is not None:
        clock = ClockSpec(offset=clock_r.choice("offset", CLOCK_OFFSETS, default="utc"))  # type: ignore[arg-type]

    devices_r = root.child("devices")
    devices = _decode_devices(devices_r) if devices_r is not None else DeviceSet()

    uuid = uuid_r.convert_text(canonical_uuid) if uuid_r is not None else None

    with root.building():
        return DomainDescriptor(
            memory=memory,
            vcpu=vcpu,
            domain_type=domain_type,  # type: ignore[arg-type]
            id=dom_id,
            name=name_r.text() if name_r is not None else None,
            uuid=uuid,
            boot=boot,
            clock=clock,
            devices=devices,
        )


__all__ = [
    "decode",
    "encode",
    "to_node",
]
