# SPDX-License-Identifier: LGPL-3.0-or-later
# domxml/libvirt/__init__.py
from .codec import decode, encode
from .model import (
    AUTO_PORT,
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
from .template import descriptor_from_mapping, dump_template, load_template

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
    "decode",
    "descriptor_from_mapping",
    "dump_template",
    "encode",
    "load_template",
]
