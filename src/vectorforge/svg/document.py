"""Arena representation of an SVG document.

Markup is parsed once with :mod:`xml.etree.ElementTree` and flattened
into a list of :class:`SvgNode` records that reference each other by
index.  Structural passes edit that list (re-parenting, detaching,
rewriting attributes) and :meth:`SvgDocument.serialize` writes it back
to text.  Detached nodes stay in the arena, flagged ``removed``, so
indices remain stable for the lifetime of the document.
"""

from __future__ import annotations

import io
import re
import xml.etree.ElementTree as ET
from collections.abc import Iterator
from dataclasses import dataclass, field
from xml.sax.saxutils import escape, quoteattr

from vectorforge.errors import SvgParseError

SVG_NS = "http://www.w3.org/2000/svg"
XML_NS = "http://www.w3.org/XML/1998/namespace"

DRAWABLE_TAGS = frozenset(
    {"path", "circle", "rect", "polygon", "polyline", "ellipse", "line"}
)
# Containers whose content is only rendered where it is referenced.
RESOURCE_TAGS = frozenset(
    {"defs", "mask", "clipPath", "pattern", "symbol", "marker"}
)
NON_RENDERED_TAGS = frozenset({"defs", "style", "title", "desc", "metadata"})

_DECLARATION_RE = re.compile(r"^\s*<\?xml[^>]*\?>\s*")
_NUMBER_LIST_RE = re.compile(r"[\s,]+")
_LENGTH_RE = re.compile(
    r"^\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)\s*(px|%)?\s*$"
)


@dataclass
class SvgNode:
    """One element of the document arena."""

    tag: str
    attrs: dict[str, str] = field(default_factory=dict)
    parent: int | None = None
    children: list[int] = field(default_factory=list)
    text: str = ""
    tail: str = ""
    removed: bool = False

    def paint(self, name: str) -> str | None:
        """Effective ``fill``/``stroke`` value; an inline ``style`` wins."""
        style = self.attrs.get("style")
        if style:
            match = re.search(rf"(?:^|;)\s*{re.escape(name)}\s*:\s*([^;]+)", style)
            if match:
                return match.group(1).strip()
        return self.attrs.get(name)


def format_number(value: float) -> str:
    """Format a coordinate compactly: ``10.0`` -> ``10``, ``2.50`` -> ``2.5``."""
    text = f"{value:.4f}".rstrip("0").rstrip(".")
    return "0" if text in ("-0", "") else text


def parse_length(value: str | None, reference: float) -> float | None:
    """Parse an SVG length (plain, ``px`` or ``%`` of *reference*)."""
    if value is None:
        return None
    match = _LENGTH_RE.match(value)
    if not match:
        return None
    number = float(match.group(1))
    if match.group(2) == "%":
        return number * reference / 100.0
    return number


class SvgDocument:
    """A parsed SVG document stored as an index-addressed node arena.

    Attributes:
        nodes: Every node ever created for this document, including
            detached ones.
        root: Index of the root ``<svg>`` element.
        namespaces: Prefix → URI declarations found while parsing.
        has_declaration: Whether the source started with ``<?xml ...?>``.
    """

    def __init__(
        self,
        nodes: list[SvgNode],
        root: int = 0,
        namespaces: dict[str, str] | None = None,
        has_declaration: bool = False,
    ) -> None:
        self.nodes = nodes
        self.root = root
        self.namespaces = dict(namespaces or {})
        self.has_declaration = has_declaration

    # -- parsing ------------------------------------------------------------

    @classmethod
    def parse(cls, markup: str) -> "SvgDocument":
        """Parse SVG markup into an arena.

        Raises:
            SvgParseError: If the markup is not well-formed XML or its root
                element is not ``<svg>``.
        """
        has_declaration = bool(_DECLARATION_RE.match(markup))
        body = _DECLARATION_RE.sub("", markup, count=1)

        namespaces: dict[str, str] = {}
        try:
            events = ET.iterparse(
                io.BytesIO(body.encode("utf-8")), events=("start-ns",)
            )
            for _event, (prefix, uri) in events:
                namespaces.setdefault(prefix, uri)
            root_element = events.root  # type: ignore[attr-defined]
        except ET.ParseError as exc:
            raise SvgParseError(f"Malformed SVG markup: {exc}") from exc

        prefixes = {uri: prefix for prefix, uri in namespaces.items()}
        prefixes.setdefault(XML_NS, "xml")

        def qualify(name: str) -> str:
            if not name.startswith("{"):
                return name
            uri, local = name[1:].split("}", 1)
            prefix = prefixes.get(uri)
            if not prefix:
                return local
            return f"{prefix}:{local}"

        nodes: list[SvgNode] = []

        def build(element: ET.Element, parent: int | None) -> int:
            idx = len(nodes)
            nodes.append(
                SvgNode(
                    tag=qualify(element.tag),
                    attrs={qualify(k): v for k, v in element.attrib.items()},
                    parent=parent,
                    text=element.text or "",
                    tail=element.tail or "",
                )
            )
            for child in element:
                if not isinstance(child.tag, str):
                    continue
                nodes[idx].children.append(build(child, idx))
            return idx

        build(root_element, None)
        if nodes[0].tag != "svg":
            raise SvgParseError(f"Root element must be <svg>, got <{nodes[0].tag}>")
        nodes[0].tail = ""

        return cls(nodes, 0, namespaces, has_declaration)

    # -- traversal ----------------------------------------------------------

    def live_children(self, idx: int) -> list[int]:
        """Indices of the non-removed children of node *idx*."""
        return [c for c in self.nodes[idx].children if not self.nodes[c].removed]

    def iter(self, start: int | None = None) -> Iterator[int]:
        """Depth-first pre-order walk over live nodes below *start*."""
        stack = [self.root if start is None else start]
        while stack:
            idx = stack.pop()
            node = self.nodes[idx]
            if node.removed:
                continue
            yield idx
            stack.extend(reversed(node.children))

    def find_all(self, tag: str) -> list[int]:
        """Indices of live nodes with the given tag, in document order."""
        return [idx for idx in self.iter() if self.nodes[idx].tag == tag]

    def ancestors(self, idx: int) -> Iterator[int]:
        """Walk from the parent of *idx* up to the root."""
        parent = self.nodes[idx].parent
        while parent is not None:
            yield parent
            parent = self.nodes[parent].parent

    def in_resource(self, idx: int) -> bool:
        """True when node *idx* lives inside a ``<defs>``, ``<mask>`` or similar."""
        return any(self.nodes[a].tag in RESOURCE_TAGS for a in self.ancestors(idx))

    # -- mutation -----------------------------------------------------------

    def add_node(
        self,
        tag: str,
        attrs: dict[str, str] | None = None,
        parent: int | None = None,
        position: int | None = None,
    ) -> int:
        """Create a node, attach it under *parent*, and return its index."""
        idx = len(self.nodes)
        self.nodes.append(SvgNode(tag=tag, attrs=dict(attrs or {}), parent=parent))
        if parent is not None:
            siblings = self.nodes[parent].children
            siblings.insert(len(siblings) if position is None else position, idx)
        return idx

    def move(self, idx: int, new_parent: int) -> None:
        """Re-parent node *idx* as the last child of *new_parent*."""
        node = self.nodes[idx]
        if node.parent is not None:
            self.nodes[node.parent].children.remove(idx)
        node.parent = new_parent
        self.nodes[new_parent].children.append(idx)

    def remove(self, idx: int) -> None:
        """Detach node *idx* (and implicitly its subtree) from the document."""
        if idx == self.root:
            raise ValueError("Cannot remove the root <svg> element")
        node = self.nodes[idx]
        if node.parent is not None:
            self.nodes[node.parent].children.remove(idx)
        node.removed = True

    def replace_with(self, idx: int, replacement: int) -> None:
        """Put *replacement* in the position of *idx* and detach *idx*."""
        old = self.nodes[idx]
        if old.parent is None:
            raise ValueError("Cannot replace the root <svg> element")
        new = self.nodes[replacement]
        if new.parent is not None:
            self.nodes[new.parent].children.remove(replacement)
        siblings = self.nodes[old.parent].children
        siblings[siblings.index(idx)] = replacement
        new.parent = old.parent
        old.parent = None
        old.removed = True

    # -- geometry -----------------------------------------------------------

    def view_box(self) -> tuple[float, float, float, float] | None:
        """Return ``(min_x, min_y, width, height)`` of the root canvas.

        Falls back to the numeric ``width``/``height`` attributes when there
        is no ``viewBox``.
        """
        attrs = self.nodes[self.root].attrs
        raw = attrs.get("viewBox")
        if raw:
            parts = [p for p in _NUMBER_LIST_RE.split(raw.strip()) if p]
            if len(parts) == 4:
                try:
                    min_x, min_y, width, height = (float(p) for p in parts)
                except ValueError:
                    return None
                if width > 0 and height > 0:
                    return (min_x, min_y, width, height)
            return None

        width = attrs.get("width")
        height = attrs.get("height")
        if width is None or height is None or "%" in width or "%" in height:
            return None
        w = parse_length(width, 0.0)
        h = parse_length(height, 0.0)
        if w is None or h is None or w <= 0 or h <= 0:
            return None
        return (0.0, 0.0, w, h)

    # -- serialization ------------------------------------------------------

    def serialize(self) -> str:
        """Write the live tree back to indented SVG markup."""
        lines: list[str] = []
        if self.has_declaration:
            lines.append('<?xml version="1.0" encoding="UTF-8"?>')
        self._write(self.root, 0, lines)
        return "\n".join(lines)

    def _namespace_attrs(self) -> str:
        parts: list[str] = []
        for prefix, uri in self.namespaces.items():
            name = f"xmlns:{prefix}" if prefix else "xmlns"
            parts.append(f" {name}={quoteattr(uri)}")
        return "".join(parts)

    def _write(self, idx: int, depth: int, lines: list[str]) -> None:
        node = self.nodes[idx]
        indent = "  " * depth
        attrs = "".join(f" {k}={quoteattr(v)}" for k, v in node.attrs.items())
        if idx == self.root:
            attrs = self._namespace_attrs() + attrs
        tail = escape(node.tail.strip())
        children = self.live_children(idx)
        text = node.text if node.text.strip() else ""

        if not children and not text:
            lines.append(f"{indent}<{node.tag}{attrs} />{tail}")
            return
        if not children:
            lines.append(
                f"{indent}<{node.tag}{attrs}>{escape(text)}</{node.tag}>{tail}"
            )
            return

        lines.append(f"{indent}<{node.tag}{attrs}>{escape(text.strip())}")
        for child in children:
            self._write(child, depth + 1, lines)
        lines.append(f"{indent}</{node.tag}>{tail}")
