"""Cursor and expand/collapse reducer over the projected line list.

``apply`` is a pure function: it takes a ``NavState`` and an action and
returns a new state plus an optional line index the caller should scroll to.
Every re-projection is followed by cursor recovery, so the cursor always
names a line of the current projection (or is ``None`` when nothing is
visible).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum, auto

from jview._format import DEFAULT_CONFIG, DisplayConfig
from jview._value import JsonValue
from jview.projection import Projection, project
from jview.tree import Node, Tree, build_tree, node_id

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10


class ActionType(Enum):
    MOVE_UP = auto()
    MOVE_DOWN = auto()
    TOGGLE_NODE = auto()
    EXPAND_NODE = auto()
    COLLAPSE_NODE = auto()
    EXPAND_ALL = auto()
    COLLAPSE_ALL = auto()
    PAGE_UP = auto()
    PAGE_DOWN = auto()
    GOTO_TOP = auto()
    GOTO_BOTTOM = auto()


@dataclass(frozen=True)
class NavAction:
    type: ActionType
    count: int = DEFAULT_PAGE_SIZE  # page size for PAGE_UP / PAGE_DOWN
    node_id: str | None = None  # node actions: target instead of the cursor


@dataclass(frozen=True)
class Cursor:
    node_id: str
    line_index: int
    closing: bool = False  # 닫는 괄호 라인 위의 커서


@dataclass(frozen=True)
class NavState:
    tree: Tree
    expanded: frozenset[str]
    lines: Projection
    cursor: Cursor | None
    config: DisplayConfig = DEFAULT_CONFIG


@dataclass(frozen=True)
class NavResult:
    state: NavState
    scroll_hint: int | None = None


# -- Construction ----------------------------------------------------------


def _first_line_cursor(lines: Projection) -> Cursor | None:
    if not len(lines):
        return None
    line = lines[0]
    return Cursor(line.node_id, 0, line.closing)


def initial_state(
    document: JsonValue | Tree,
    config: DisplayConfig | None = None,
    expanded: frozenset[str] | None = None,
) -> NavState:
    """Fresh state for a loaded document; everything expanded by default."""
    config = config or DEFAULT_CONFIG
    tree = document if isinstance(document, Tree) else build_tree(document)
    if expanded is None:
        expanded = tree.collapsible_ids()
    else:
        expanded = frozenset(expanded) & tree.collapsible_ids()
    lines = project(tree, expanded, config)
    return NavState(
        tree=tree,
        expanded=expanded,
        lines=lines,
        cursor=_first_line_cursor(lines),
        config=config,
    )


def replace_document(state: NavState, document: JsonValue) -> NavState:
    """Rebuild the tree for a new document, keeping the view where possible.

    Nodes the user had collapsed stay collapsed if they still exist; all other
    collapsible nodes start expanded. The cursor moves to the deepest surviving
    prefix of its old path.
    """
    tree = build_tree(document)
    old_collapsed = state.tree.collapsible_ids() - state.expanded
    expanded = tree.collapsible_ids() - old_collapsed
    lines = project(tree, expanded, state.config)
    cursor = None
    if state.cursor is not None and state.cursor.node_id in state.tree:
        path = state.tree[state.cursor.node_id].path
        closing = state.cursor.closing
        for cut in range(len(path), -1, -1):
            nid = node_id(path[:cut])
            idx = lines.index_of(nid, closing)
            if idx is not None:
                cursor = Cursor(nid, idx, closing)
                break
            closing = False
            idx = lines.index_of(nid)
            if idx is not None:
                cursor = Cursor(nid, idx)
                break
    if cursor is None:
        cursor = _first_line_cursor(lines)
    logger.debug("document replaced: %d nodes, cursor %s", len(tree), cursor)
    return NavState(tree=tree, expanded=expanded, lines=lines, cursor=cursor, config=state.config)


# -- Queries ---------------------------------------------------------------


def cursor_node(state: NavState) -> Node | None:
    if state.cursor is None:
        return None
    return state.tree.get(state.cursor.node_id)


def is_expanded(state: NavState, nid: str) -> bool:
    return nid in state.expanded


def _cursor_index(state: NavState) -> int:
    """Position of the cursor in the current lines, -1 if it is not there."""
    cur = state.cursor
    if cur is None:
        return -1
    idx = state.lines.index_of(cur.node_id, cur.closing)
    return -1 if idx is None else idx


# -- Recovery --------------------------------------------------------------


def _recover_cursor(tree: Tree, lines: Projection, cursor: Cursor | None) -> Cursor | None:
    """Re-anchor *cursor* on *lines*.

    Same line if still visible; otherwise the owner of a closing marker; then
    the nearest visible ancestor; then the first line.
    """
    if cursor is None:
        return _first_line_cursor(lines)
    idx = lines.index_of(cursor.node_id, cursor.closing)
    if idx is not None:
        if idx == cursor.line_index:
            return cursor
        return replace(cursor, line_index=idx)
    if cursor.node_id not in tree:
        return _first_line_cursor(lines)
    if cursor.closing:
        idx = lines.index_of(cursor.node_id)
        if idx is not None:
            return Cursor(cursor.node_id, idx)
    for ancestor in tree.ancestors(cursor.node_id):
        idx = lines.index_of(ancestor.id)
        if idx is not None:
            logger.debug("cursor %s hidden, moved to %s", cursor.node_id, ancestor.id)
            return Cursor(ancestor.id, idx)
    logger.debug("cursor %s has no visible ancestor", cursor.node_id)
    return _first_line_cursor(lines)


def _reproject(state: NavState, expanded: frozenset[str]) -> NavState:
    lines = project(state.tree, expanded, state.config)
    cursor = _recover_cursor(state.tree, lines, state.cursor)
    return replace(state, expanded=expanded, lines=lines, cursor=cursor)


def _changed_hint(before: NavState, after: NavState) -> int | None:
    """Hint the new cursor line when re-projection moved it."""
    if after.cursor is None:
        return None
    if before.cursor is None or before.cursor != after.cursor:
        return after.cursor.line_index
    return None


# -- Actions ---------------------------------------------------------------


def _move_to(state: NavState, idx: int) -> NavResult:
    line = state.lines[idx]
    cursor = Cursor(line.node_id, idx, line.closing)
    return NavResult(replace(state, cursor=cursor), idx)


def _move_by(state: NavState, delta: int) -> NavResult:
    if state.cursor is None or not len(state.lines):
        return NavResult(state)
    idx = _cursor_index(state)
    if idx < 0:
        # 커서가 투영에 없으면 첫 줄로
        return _move_to(state, 0)
    new_idx = max(0, min(len(state.lines) - 1, idx + delta))
    if new_idx == idx:
        return NavResult(state)
    return _move_to(state, new_idx)


def _target_node(state: NavState, action: NavAction) -> Node | None:
    nid = action.node_id
    if nid is None:
        if state.cursor is None:
            return None
        # closing marker 위에서는 그 소유 노드를 대상으로 한다
        nid = state.cursor.node_id
    return state.tree.get(nid)


def _set_node(state: NavState, action: NavAction, want: bool | None) -> NavResult:
    """Expand (True), collapse (False) or toggle (None) the target node."""
    node = _target_node(state, action)
    if node is None or not node.collapsible:
        return NavResult(state)
    currently = node.id in state.expanded
    new_value = (not currently) if want is None else want
    if new_value == currently:
        return NavResult(state)
    if new_value:
        expanded = state.expanded | {node.id}
    else:
        expanded = state.expanded - {node.id}
    new_state = _reproject(state, expanded)
    return NavResult(new_state, _changed_hint(state, new_state))


def _expand_all(state: NavState) -> NavResult:
    return NavResult(_reproject(state, state.tree.collapsible_ids()))


def _collapse_all(state: NavState) -> NavResult:
    new_state = _reproject(state, frozenset())
    if new_state.cursor is None:
        return NavResult(new_state)
    was_visible = state.cursor is not None and new_state.lines.contains(
        state.cursor.node_id, state.cursor.closing
    )
    return NavResult(new_state, new_state.cursor.line_index if was_visible else 0)


def apply(state: NavState, action: NavAction | ActionType) -> NavResult:
    """Apply one navigation action. No-op actions return *state* unchanged."""
    if isinstance(action, ActionType):
        action = NavAction(action)
    kind = action.type
    if kind is ActionType.MOVE_UP:
        return _move_by(state, -1)
    if kind is ActionType.MOVE_DOWN:
        return _move_by(state, 1)
    if kind is ActionType.PAGE_UP:
        return _move_by(state, -action.count)
    if kind is ActionType.PAGE_DOWN:
        return _move_by(state, action.count)
    if kind is ActionType.GOTO_TOP:
        if not len(state.lines):
            return NavResult(state)
        return _move_to(state, 0)
    if kind is ActionType.GOTO_BOTTOM:
        if not len(state.lines):
            return NavResult(state)
        return _move_to(state, len(state.lines) - 1)
    if kind is ActionType.TOGGLE_NODE:
        return _set_node(state, action, None)
    if kind is ActionType.EXPAND_NODE:
        return _set_node(state, action, True)
    if kind is ActionType.COLLAPSE_NODE:
        return _set_node(state, action, False)
    if kind is ActionType.EXPAND_ALL:
        return _expand_all(state)
    if kind is ActionType.COLLAPSE_ALL:
        return _collapse_all(state)
    raise ValueError(f"unknown navigation action: {kind!r}")


def reveal_node(state: NavState, nid: str, closing: bool = False) -> NavResult:
    """Expand every collapsed ancestor of *nid* and put the cursor on it."""
    if nid not in state.tree:
        return NavResult(state)
    hidden = {a.id for a in state.tree.ancestors(nid)} - state.expanded
    if closing and state.tree[nid].collapsible:
        hidden.add(nid)
    new_state = state
    if hidden:
        new_state = _reproject(state, state.expanded | hidden)
    idx = new_state.lines.index_of(nid, closing)
    if idx is None:
        return NavResult(new_state, _changed_hint(state, new_state))
    return NavResult(replace(new_state, cursor=Cursor(nid, idx, closing)), idx)
