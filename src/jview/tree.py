"""Addressable node tree built from a parsed JSON value.

Nodes live in a flat arena keyed by id. A node holds the ids of its children
and the id of its parent, so upward walks never need an owning reference.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass, field

from jview._value import JsonValue, NodeKind, kind_of

logger = logging.getLogger(__name__)

ROOT_ID = "root"

PathSegment = str | int


def _escape_segment(segment: PathSegment) -> str:
    if isinstance(segment, int):
        return str(segment)
    return segment.replace("\\", "\\\\").replace(".", "\\.")


def node_id(path: tuple[PathSegment, ...] | list[PathSegment]) -> str:
    """Stable id for *path*: ``"root"`` or segments joined by ``.``.

    Keys containing ``.`` or ``\\`` are escaped so that ``{"a.b": 1}`` and
    ``{"a": {"b": 1}}`` get different ids.
    """
    if not path:
        return ROOT_ID
    joined = ".".join(_escape_segment(s) for s in path)
    if joined == ROOT_ID:
        # top-level key "root" must not shadow the document root
        return "\\" + ROOT_ID
    return joined


_IDENT_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*\Z")


def json_path(path: tuple[PathSegment, ...]) -> str:
    """JSONPath-style label for a node path, e.g. ``$.user.tags[0]``."""
    parts = ["$"]
    for seg in path:
        if isinstance(seg, int):
            parts.append(f"[{seg}]")
        elif _IDENT_RE.match(seg):
            parts.append(f".{seg}")
        else:
            parts.append(f"[{json.dumps(seg, ensure_ascii=False)}]")
    return "".join(parts)


@dataclass(eq=False)
class Node:
    id: str
    path: tuple[PathSegment, ...]
    kind: NodeKind
    depth: int
    value: JsonValue
    parent: str | None = None
    index: int = 0  # position among siblings
    children: list[str] = field(default_factory=list)

    @property
    def key(self) -> PathSegment | None:
        return self.path[-1] if self.path else None

    @property
    def collapsible(self) -> bool:
        return self.kind is not NodeKind.PRIMITIVE and bool(self.children)


@dataclass
class Tree:
    nodes: dict[str, Node]
    root_id: str = ROOT_ID

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, nid: object) -> bool:
        return nid in self.nodes

    def __getitem__(self, nid: str) -> Node:
        return self.nodes[nid]

    @property
    def root(self) -> Node:
        return self.nodes[self.root_id]

    def get(self, nid: str) -> Node | None:
        return self.nodes.get(nid)

    def children_of(self, node: Node) -> list[Node]:
        return [self.nodes[c] for c in node.children]

    def parent_of(self, node: Node) -> Node | None:
        if node.parent is None:
            return None
        return self.nodes[node.parent]

    def ancestors(self, nid: str) -> Iterator[Node]:
        """Yield the ancestors of *nid*, nearest first."""
        node = self.nodes[nid]
        while node.parent is not None:
            node = self.nodes[node.parent]
            yield node

    def is_last_child(self, node: Node) -> bool:
        parent = self.parent_of(node)
        if parent is None:
            return True
        return node.index == len(parent.children) - 1

    def walk(self) -> Iterator[Node]:
        """Pre-order traversal of every node."""
        stack = [self.root_id]
        while stack:
            node = self.nodes[stack.pop()]
            yield node
            stack.extend(reversed(node.children))

    def collapsible_ids(self) -> frozenset[str]:
        return frozenset(n.id for n in self.nodes.values() if n.collapsible)


def build_tree(value: JsonValue) -> Tree:
    """Convert *value* into a node arena. Never fails for a JSON value."""
    nodes: dict[str, Node] = {}

    def build(
        val: JsonValue,
        path: tuple[PathSegment, ...],
        parent: str | None,
        index: int,
    ) -> str:
        nid = node_id(path)
        node = Node(
            id=nid,
            path=path,
            kind=kind_of(val),
            depth=len(path),
            value=val,
            parent=parent,
            index=index,
        )
        nodes[nid] = node
        if node.kind is NodeKind.OBJECT:
            for i, (k, v) in enumerate(val.items()):
                node.children.append(build(v, path + (k,), nid, i))
        elif node.kind is NodeKind.ARRAY:
            for i, v in enumerate(val):
                node.children.append(build(v, path + (i,), nid, i))
        return nid

    build(value, (), None, 0)
    logger.debug("built tree with %d nodes", len(nodes))
    return Tree(nodes=nodes)
