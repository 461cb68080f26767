# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# domxml/libvirt/template.py
"""
Descriptor templates.

A template is the plain-mapping form of a DomainDescriptor (what
DomainDescriptor.to_dict() returns), usually kept as YAML:

    memory: {quantity: 2048, unit: MiB}
    vcpu: {count: 2}
    boot: {arch: x86_64, machine: q35, devices: [hd]}
    devices:
      disks:
        - source: /var/lib/libvirt/images/web01.qcow2
          target: {dev: vda, bus: virtio}
          driver: {format: qcow2}

name/uuid may be left out; fill them in with descriptor.replace() before
encoding for define.
"""
from __future__ import annotations

import dataclasses
from pathlib import Path
from typing import Any, Dict, Mapping, Union

import yaml

from ..core.exceptions import ValidationError
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

# field name -> spec type ([type] for an ordered list of that type)
_NESTED: Dict[type, Dict[str, Any]] = {
    DomainDescriptor: {
        "memory": MemorySpec,
        "vcpu": VcpuSpec,
        "boot": BootSpec,
        "clock": ClockSpec,
        "devices": DeviceSet,
    },
    DeviceSet: {
        "disks": [DiskDevice],
        "interface": NetworkInterfaceDevice,
        "graphics": GraphicsDevice,
    },
    DiskDevice: {"driver": DriverSpec, "target": TargetSpec},
    NetworkInterfaceDevice: {"address": PciAddress},
    GraphicsDevice: {"listen": ListenSpec},
}


def _build(cls: type, data: Any, where: str) -> Any:
    if isinstance(data, cls):
        return data
    if not isinstance(data, Mapping):
        raise ValidationError(field=where, reason=f"expected a mapping, got {type(data).__name__}")

    known = {f.name for f in dataclasses.fields(cls)}
    unknown = sorted(str(k) for k in data if k not in known)
    if unknown:
        raise ValidationError(field=where, reason=f"unknown key(s): {', '.join(unknown)}")

    nested = _NESTED.get(cls, {})
    kwargs: Dict[str, Any] = {}
    for key, value in data.items():
        spec = nested.get(key)
        sub = f"{where}.{key}"
        if value is None or spec is None:
            kwargs[key] = value
        elif isinstance(spec, list):
            if not isinstance(value, (list, tuple)):
                raise ValidationError(field=sub, reason=f"expected a list, got {type(value).__name__}")
            kwargs[key] = tuple(_build(spec[0], item, f"{sub}[{i}]") for i, item in enumerate(value))
        else:
            kwargs[key] = _build(spec, value, sub)

    try:
        return cls(**kwargs)
    except TypeError as e:
        # missing required keys
        raise ValidationError(field=where, reason=str(e), cause=e) from e


def descriptor_from_mapping(data: Mapping[str, Any]) -> DomainDescriptor:
    """Build a DomainDescriptor from its plain-mapping form."""
    return _build(DomainDescriptor, data, "domain")


def load_template(path: Union[str, Path]) -> DomainDescriptor:
    """Load a YAML descriptor template."""
    p = Path(path)
    try:
        with p.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValidationError(field="template", reason=f"{p}: not valid YAML: {e}", cause=e) from e

    if not isinstance(data, Mapping):
        raise ValidationError(field="template", reason=f"{p}: top level must be a mapping")
    return descriptor_from_mapping(data)


def dump_template(descriptor: DomainDescriptor) -> str:
    """Render `descriptor` as YAML in the shape load_template() reads."""
    return yaml.safe_dump(descriptor.to_dict(), sort_keys=False, default_flow_style=False)


__all__ = [
    "descriptor_from_mapping",
    "dump_template",
    "load_template",
]
