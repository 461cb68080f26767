# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# domxml/libvirt/schema.py
"""
Element layout of the libvirt domain XML subset we speak.

libvirtd parses these documents strictly, so attribute and child order is part
of the contract. Every element type lists its attributes and child element
types in wire order; the encoder builds nodes only through build(), which
consults these tables, so the order never depends on dict or dataclass layout.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Optional, Tuple, Union

from ..core.xml_utils import Node
from .libvirt_utils import yes_no


@dataclass(frozen=True)
class ElementSchema:
    tag: str
    attrs: Tuple[str, ...] = ()
    children: Tuple[str, ...] = ()


# Keys are element *types*; the same tag (source, target, ...) has a different
# layout under different parents.
ELEMENTS: Dict[str, ElementSchema] = {
    "domain": ElementSchema(
        "domain",
        attrs=("type", "id"),
        children=("name", "uuid", "memory", "vcpu", "os", "clock", "devices"),
    ),
    "name": ElementSchema("name"),
    "uuid": ElementSchema("uuid"),
    "memory": ElementSchema("memory", attrs=("unit",)),
    "vcpu": ElementSchema("vcpu", attrs=("placement",)),
    "os": ElementSchema("os", children=("os.type", "os.boot")),
    "os.type": ElementSchema("type", attrs=("arch", "machine")),
    "os.boot": ElementSchema("boot", attrs=("dev",)),
    "clock": ElementSchema("clock", attrs=("offset",)),
    "devices": ElementSchema("devices", children=("emulator", "disk", "interface", "graphics")),
    "emulator": ElementSchema("emulator"),
    "disk": ElementSchema(
        "disk",
        attrs=("type", "device"),
        children=("disk.driver", "disk.source", "disk.target", "alias"),
    ),
    "disk.driver": ElementSchema("driver", attrs=("name", "type")),
    "disk.source": ElementSchema("source", attrs=("file", "dev", "protocol", "name"), children=("disk.source.host",)),
    "disk.source.host": ElementSchema("host", attrs=("name", "port")),
    "disk.target": ElementSchema("target", attrs=("dev", "bus")),
    "alias": ElementSchema("alias", attrs=("name",)),
    "interface": ElementSchema(
        "interface",
        attrs=("type",),
        children=(
            "interface.mac",
            "interface.source",
            "interface.target",
            "interface.model",
            "alias",
            "interface.address",
        ),
    ),
    "interface.mac": ElementSchema("mac", attrs=("address",)),
    "interface.source": ElementSchema("source", attrs=("bridge", "network", "dev")),
    "interface.target": ElementSchema("target", attrs=("dev",)),
    "interface.model": ElementSchema("model", attrs=("type",)),
    "interface.address": ElementSchema("address", attrs=("type", "domain", "bus", "slot", "function")),
    "graphics": ElementSchema("graphics", attrs=("type", "port", "autoport", "listen"), children=("graphics.listen",)),
    "graphics.listen": ElementSchema("listen", attrs=("type", "address")),
}

# Which <source> attribute carries the locator, per backend kind.
DISK_SOURCE_ATTR = {"file": "file", "block": "dev"}
INTERFACE_SOURCE_ATTR = {"bridge": "bridge", "network": "network", "direct": "dev"}

AttrValue = Union[str, int, bool, None]
ChildValue = Union[Node, Iterable[Node], None]


def _render(value: Union[str, int, bool]) -> str:
    if isinstance(value, bool):
        return yes_no(value)
    if isinstance(value, int):
        return str(value)
    return value


def build(
    kind: str,
    attrs: Optional[Mapping[str, AttrValue]] = None,
    *,
    text: Optional[str] = None,
    children: Optional[Mapping[str, ChildValue]] = None,
) -> Node:
    """
    Build a Node of element type `kind`.

    Attributes whose value is None are omitted; the rest are emitted in the
    schema's order. `children` maps child element types to a node, a list of
    nodes, or None. Unknown attribute or child names are a programming error.
    """
    schema = ELEMENTS[kind]
    attrs = dict(attrs or {})
    children = dict(children or {})

    unknown = sorted(set(attrs) - set(schema.attrs))
    if unknown:
        raise KeyError(f"<{schema.tag}> ({kind}) has no attribute(s): {', '.join(unknown)}")
    unknown = sorted(set(children) - set(schema.children))
    if unknown:
        raise KeyError(f"<{schema.tag}> ({kind}) has no child element(s): {', '.join(unknown)}")

    node = Node(
        schema.tag,
        [(name, _render(attrs[name])) for name in schema.attrs if attrs.get(name) is not None],
        text=text,
    )
    for child_kind in schema.children:
        value = children.get(child_kind)
        if value is None:
            continue
        if isinstance(value, Node):
            node.append(value)
        else:
            for child in value:
                node.append(child)
    return node


__all__ = [
    "DISK_SOURCE_ATTR",
    "ELEMENTS",
    "INTERFACE_SOURCE_ATTR",
    "ElementSchema",
    "build",
]
