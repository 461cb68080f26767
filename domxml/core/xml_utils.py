# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
"""Shared XML escaping and writing utilities

Escaping goes through xml.sax.saxutils with the two quote entities added, so
all five reserved characters are encoded in both text and attribute contexts.
Whitespace that a parser would normalise (CR in text; TAB, LF, CR in
attributes) is written as character references so it survives a reparse.

`Node` + `write_document()` is a tiny deterministic writer: attributes are
emitted in the order they were given (callers pass them already ordered),
children in list order, two-space indentation, double-quoted attributes.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple
from xml.sax.saxutils import escape as _sax_escape

# Chars outside XML 1.0 `Char`: C0 controls other than TAB, LF, CR; surrogates; U+FFFE, U+FFFF
_XML_ILLEGAL_RE = re.compile("[^\u0009\u000a\u000d\u0020-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]")


def xml_escape(s: object) -> str:
    """Escape string for XML text content.

    Args:
        s: Object to escape (will be converted to string)

    Returns:
        Escaped XML string with &, <, >, ', " encoded as entities and CR as
        &#13; (a parser would otherwise normalise it to LF)

    Example:
        >>> xml_escape("a < b & c > d")
        'a &lt; b &amp; c &gt; d'
        >>> xml_escape('say "hello"')
        'say &quot;hello&quot;'
    """
    return _sax_escape(str(s), entities={"'": "&apos;", '"': "&quot;", "\r": "&#13;"})


def xml_escape_attr(s: object) -> str:
    """Escape string for XML attribute values.

    Like xml_escape(), plus TAB and LF as character references: attribute
    value normalisation turns raw whitespace characters into spaces.

    Example:
        >>> xml_escape_attr("/images/a\\tb.qcow2")
        '/images/a&#9;b.qcow2'
    """
    return _sax_escape(
        str(s),
        entities={"'": "&apos;", '"': "&quot;", "\t": "&#9;", "\n": "&#10;", "\r": "&#13;"},
    )


def find_illegal_xml_char(s: str) -> Optional[str]:
    """Return the first character XML 1.0 cannot carry at all, or None."""
    m = _XML_ILLEGAL_RE.search(s)
    return m.group(0) if m else None


@dataclass
class Node:
    """One element: ordered attributes, then either text or child elements."""
    tag: str
    attrs: List[Tuple[str, str]] = field(default_factory=list)
    children: List["Node"] = field(default_factory=list)
    text: Optional[str] = None

    def append(self, child: "Node") -> "Node":
        self.children.append(child)
        return child


def _open_tag(node: Node) -> str:
    attrs = "".join(f' {k}="{xml_escape_attr(v)}"' for k, v in node.attrs)
    return f"<{node.tag}{attrs}"


def _write(node: Node, depth: int, out: List[str], indent: str) -> None:
    pad = indent * depth
    head = _open_tag(node)

    if node.children:
        out.append(f"{pad}{head}>")
        for child in node.children:
            _write(child, depth + 1, out, indent)
        out.append(f"{pad}</{node.tag}>")
        return

    if node.text is not None and node.text != "":
        out.append(f"{pad}{head}>{xml_escape(node.text)}</{node.tag}>")
    else:
        out.append(f"{pad}{head}/>")


def write_document(root: Node, *, indent: str = "  ") -> bytes:
    """
    Render `root` as UTF-8 bytes (no XML declaration, trailing newline).

    Elements carry either text or children, never both; the writer does not
    support mixed content.
    """
    out: List[str] = []
    _write(root, 0, out, indent)
    return ("\n".join(out) + "\n").encode("utf-8")


__all__ = [
    "Node",
    "find_illegal_xml_char",
    "write_document",
    "xml_escape",
    "xml_escape_attr",
]
