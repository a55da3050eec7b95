"""Visibility projection: the ordered lines shown for a tree and expand set."""

from __future__ import annotations

from collections.abc import Collection, Iterator
from dataclasses import dataclass

from jview._format import DEFAULT_CONFIG, DisplayConfig, indent_text, key_prefix, scalar_text
from jview._value import NodeKind, brackets, collapsed_summary
from jview.tree import Node, Tree


@dataclass(frozen=True)
class NodeLine:
    node_id: str
    depth: int
    rendered_text: str
    trailing_comma: bool
    opens: bool = False  # 펼쳐진 컨테이너의 여는 괄호 라인

    @property
    def closing(self) -> bool:
        return False


@dataclass(frozen=True)
class ClosingMarkerLine:
    of_node_id: str
    depth: int
    bracket_char: str
    trailing_comma: bool
    rendered_text: str

    @property
    def node_id(self) -> str:
        return self.of_node_id

    @property
    def closing(self) -> bool:
        return True


VisibleLine = NodeLine | ClosingMarkerLine


class Projection:
    """Ordered visible lines plus an index from line anchor to position."""

    def __init__(self, lines: list[VisibleLine]) -> None:
        self.lines = lines
        self._index: dict[tuple[str, bool], int] = {
            (line.node_id, line.closing): i for i, line in enumerate(lines)
        }

    def __len__(self) -> int:
        return len(self.lines)

    def __getitem__(self, idx: int) -> VisibleLine:
        return self.lines[idx]

    def __iter__(self) -> Iterator[VisibleLine]:
        return iter(self.lines)

    def index_of(self, node_id: str, closing: bool = False) -> int | None:
        return self._index.get((node_id, closing))

    def contains(self, node_id: str, closing: bool = False) -> bool:
        return (node_id, closing) in self._index

    def texts(self) -> list[str]:
        return [line.rendered_text for line in self.lines]


def _node_line(
    tree: Tree, node: Node, is_open: bool, config: DisplayConfig
) -> NodeLine:
    comma = not tree.is_last_child(node)
    head = indent_text(node.depth, config) + key_prefix(node.key, config)
    if node.kind is NodeKind.PRIMITIVE or not node.collapsible:
        body = scalar_text(node.value, config)
    elif is_open:
        body = brackets(node.kind)[0]
    else:
        body = collapsed_summary(node.kind)
    # 여는 괄호 라인의 쉼표는 닫는 괄호 라인에 붙는다
    text = head + body + ("," if comma and not is_open else "")
    return NodeLine(
        node_id=node.id,
        depth=node.depth,
        rendered_text=text,
        trailing_comma=comma,
        opens=is_open,
    )


def _closing_line(tree: Tree, node: Node, config: DisplayConfig) -> ClosingMarkerLine:
    comma = not tree.is_last_child(node)
    close_ch = brackets(node.kind)[1]
    return ClosingMarkerLine(
        of_node_id=node.id,
        depth=node.depth,
        bracket_char=close_ch,
        trailing_comma=comma,
        rendered_text=indent_text(node.depth, config) + close_ch + ("," if comma else ""),
    )


def project(
    tree: Tree,
    expanded: Collection[str],
    config: DisplayConfig | None = None,
) -> Projection:
    """Pre-order walk emitting one line per visible node and one closing
    marker per expanded container. Ids in *expanded* that do not name a
    collapsible node are ignored.
    """
    config = config or DEFAULT_CONFIG
    lines: list[VisibleLine] = []
    nodes = tree.nodes

    def visit(node: Node) -> None:
        is_open = node.collapsible and node.id in expanded
        lines.append(_node_line(tree, node, is_open, config))
        if is_open:
            for child_id in node.children:
                visit(nodes[child_id])
            lines.append(_closing_line(tree, node, config))

    visit(tree.root)
    return Projection(lines)


def canonical_projection(tree: Tree, config: DisplayConfig | None = None) -> Projection:
    """Fully expanded projection: the canonical serialized form of the document."""
    return project(tree, tree.collapsible_ids(), config)


# -- Viewport ------------------------------------------------------------


@dataclass(frozen=True)
class LineWindow:
    start: int
    end: int
    lines: list[VisibleLine]
    total: int

    @property
    def has_scroll_up(self) -> bool:
        return self.start > 0

    @property
    def has_scroll_down(self) -> bool:
        return self.end < self.total


def window(projection: Projection, scroll_offset: int, count: int) -> LineWindow:
    """Slice ``[scroll_offset, scroll_offset + count)`` clamped to the projection."""
    total = len(projection)
    start = max(0, min(scroll_offset, max(0, total - 1)))
    end = min(total, start + max(0, count))
    return LineWindow(start=start, end=end, lines=projection.lines[start:end], total=total)


def scroll_to_reveal(scroll_offset: int, line_index: int, height: int, margin: int = 0) -> int:
    """Smallest scroll change that keeps *line_index* inside the viewport.

    *margin* lines of context are kept above and below the line when the
    viewport is tall enough.
    """
    height = max(1, height)
    margin = max(0, min(margin, (height - 1) // 2))
    if line_index - margin < scroll_offset:
        scroll_offset = line_index - margin
    elif line_index + margin >= scroll_offset + height:
        scroll_offset = line_index + margin - height + 1
    return max(0, scroll_offset)


def center_scroll(line_index: int, height: int, ratio: float = 0.33) -> int:
    """Scroll offset placing *line_index* at *ratio* of the viewport (default 1/3)."""
    offset = int(max(1, height) * ratio)
    return max(0, line_index - offset)
