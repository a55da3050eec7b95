"""Fold/collapse mixin for JsonTreeView."""

from __future__ import annotations

from jview.navigation import ActionType, NavAction, apply, cursor_node


class FoldMixin:
    """Expand/collapse commands bound to z-prefixed and arrow keys."""

    def _apply(self, action: NavAction | ActionType) -> None:
        result = apply(self._nav, action)
        self._nav = result.state
        if result.scroll_hint is not None:
            self._reveal_line(result.scroll_hint)

    def _toggle_fold(self) -> None:
        """za / Enter: 커서 노드 토글."""
        node = cursor_node(self._nav)
        if node is None or not node.collapsible:
            self.status_msg = "nothing to fold"
            return
        self._apply(ActionType.TOGGLE_NODE)

    def _open_fold(self) -> None:
        """zo / l: 커서 노드 펼치기."""
        self._apply(ActionType.EXPAND_NODE)

    def _close_fold(self) -> None:
        """zc / h: fold 접기.

        On a leaf or an already collapsed node, the enclosing container is
        collapsed instead and the cursor lands on it.
        """
        state = self._nav
        node = cursor_node(state)
        if node is None:
            return
        if node.collapsible and node.id in state.expanded:
            self._apply(ActionType.COLLAPSE_NODE)
            return
        if node.parent is None:
            return
        self._apply(NavAction(ActionType.COLLAPSE_NODE, node_id=node.parent))

    def _fold_all(self) -> None:
        """zM: 모든 노드 접기."""
        self._apply(ActionType.COLLAPSE_ALL)

    def _unfold_all(self) -> None:
        """zR: 모든 fold 해제."""
        self._apply(ActionType.EXPAND_ALL)

    def _collapsed_summary_text(self, node_id: str) -> str:
        """Hint shown after a collapsed container, e.g. ``(3 keys)``."""
        node = self._nav.tree.get(node_id)
        if node is None or not node.collapsible or node.id in self._nav.expanded:
            return ""
        count = len(node.children)
        unit = "keys" if isinstance(node.value, dict) else "items"
        if count == 1:
            unit = unit[:-1]
        return f" ({count} {unit})"
