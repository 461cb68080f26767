# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# domxml/libvirt/sample.py
"""The demo domain printed by the `domxml` command."""
from __future__ import annotations

from .model import (
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

SAMPLE_NAME = "mahakam-libvirt-spike"
SAMPLE_UUID = "4b8d5f0e-6c2a-4e39-9f41-2d7a0c5e8b13"
_IMAGES = "/var/lib/libvirt/images"


def sample_descriptor() -> DomainDescriptor:
    driver = DriverSpec(name="qemu", format="qcow2")

    disks = (
        DiskDevice(
            kind="file",
            device="disk",
            driver=driver,
            source=f"{_IMAGES}/mahakam-test-vm",
            target=TargetSpec(dev="vda", bus="virtio"),
            alias="virtio-disk0",
        ),
        DiskDevice(
            kind="file",
            device="disk",
            driver=driver,
            source=f"{_IMAGES}/mahakam-test-vm-secondary",
            target=TargetSpec(dev="vdb", bus="virtio"),
            alias="virtio-disk1",
        ),
    )

    interface = NetworkInterfaceDevice(
        kind="bridge",
        mac="a4:58:3b:0a:fd:3b",
        source="virbr0",
        target="vnet21",
        model="virtio",
        alias="net0",
        address=PciAddress(domain=0x0000, bus=0x00, slot=0x03, function=0x0),
    )

    graphics = GraphicsDevice(
        protocol="spice",
        port=5921,
        autoport=True,
        listen=ListenSpec(kind="address", address="127.0.0.1"),
    )

    return DomainDescriptor(
        domain_type="kvm",
        id=1234,
        name=SAMPLE_NAME,
        uuid=SAMPLE_UUID,
        memory=MemorySpec(quantity=2048, unit="KiB"),
        vcpu=VcpuSpec(count=2, placement="static"),
        boot=BootSpec(hypervisor_mode="hvm", arch="x86_64", machine="pc-i440fx-bionic", devices=("hd",)),
        clock=ClockSpec(offset="utc"),
        devices=DeviceSet(
            emulator="/usr/bin/kvm-spice",
            disks=disks,
            interface=interface,
            graphics=graphics,
        ),
    )
