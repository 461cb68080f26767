# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# domxml/__init__.py
"""
domxml - libvirt domain descriptor model and XML codec

Usage as a library:

    from domxml import DomainDescriptor, MemorySpec, VcpuSpec, encode, decode

    dom = DomainDescriptor(
        name="web01",
        uuid="4b8d5f0e-6c2a-4e39-9f41-2d7a0c5e8b13",
        memory=MemorySpec(2048, "MiB"),
        vcpu=VcpuSpec(2),
    )
    xml_bytes = encode(dom)
    assert decode(xml_bytes) == dom

Talking to libvirtd lives in domxml.connection (needs libvirt-python).
"""

__version__ = "0.1.0"

from .core.exceptions import DecodeError, DecodeErrorKind, DomXmlError, HypervisorError, ValidationError
from .libvirt import (
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
    decode,
    descriptor_from_mapping,
    encode,
    load_template,
)

__all__ = [
    "__version__",

    # Model
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

    # Codec
    "decode",
    "encode",

    # Templates
    "descriptor_from_mapping",
    "load_template",

    # Errors
    "DecodeError",
    "DecodeErrorKind",
    "DomXmlError",
    "HypervisorError",
    "ValidationError",
]
