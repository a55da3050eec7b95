"""Search mixin for JsonTreeView."""

from __future__ import annotations

from dataclasses import replace

from jview.navigation import reveal_node
from jview.projection import center_scroll
from jview.search import SearchSession


class SearchMixin:
    """Search-related methods for JsonTreeView."""

    def _handle_search(self, event) -> None:
        key = event.key
        char = event.character

        if key == "escape":
            from jview.widget import ViewMode

            self._mode = ViewMode.NORMAL
            self._search_buffer = ""
            self._search_history_idx = -1
            self.status_msg = ""
            return

        if key == "enter":
            from jview.widget import ViewMode

            if self._search_buffer:
                self._add_to_search_history(self._search_buffer)
                self._execute_search()
            self._mode = ViewMode.NORMAL
            self._search_history_idx = -1
            return

        if key == "backspace":
            if self._search_buffer:
                self._search_buffer = self._search_buffer[:-1]
                self._search_history_idx = -1
            else:
                from jview.widget import ViewMode

                self._mode = ViewMode.NORMAL
                self._search_history_idx = -1
            return

        if key == "tab":
            self._search = replace(self._search, scope=self._search.scope.next())
            return
        if key == "ctrl+r":
            self._search = replace(self._search, regex_mode=not self._search.regex_mode)
            return

        if key == "up":
            self._search_history_prev()
            return
        if key == "down":
            self._search_history_next()
            return

        if char and char.isprintable():
            self._search_buffer += char
            self._search_history_idx = -1

    def _add_to_search_history(self, pattern: str) -> None:
        """최근 검색어를 맨 앞에 둔다 (중복 제거, 최대 개수 유지)."""
        if not pattern:
            return
        history = [p for p in self._search_history if p != pattern]
        history.insert(0, pattern)
        self._search_history = history[: self._search_history_max]

    def _search_history_prev(self) -> None:
        """Up: step to an older entry."""
        idx = self._search_history_idx + 1
        if idx < len(self._search_history):
            self._search_history_idx = idx
            self._search_buffer = self._search_history[idx]

    def _search_history_next(self) -> None:
        """Down: step to a newer entry, then back to an empty prompt."""
        if self._search_history_idx < 0:
            return
        idx = self._search_history_idx - 1
        self._search_history_idx = idx
        self._search_buffer = self._search_history[idx] if idx >= 0 else ""

    def _cursor_canonical_line(self) -> int:
        """Cursor position in the fully expanded document."""
        cursor = self._nav.cursor
        if cursor is None:
            return 0
        idx = self._canonical_lines().index_of(cursor.node_id, cursor.closing)
        return 0 if idx is None else idx

    def _execute_search(self) -> None:
        """Run the search and jump to the match nearest the cursor."""
        session = self._search
        self._search = SearchSession.run(
            self._nav.tree,
            self._search_buffer,
            session.scope,
            session.regex_mode,
            config=self.config,
            case_sensitive=session.case_sensitive,
        )
        self._after_search_update()

    def _after_search_update(self) -> None:
        if not self._search.matches:
            self.status_msg = f"Pattern not found: {self._search.term}"
            return
        self._search = self._search.nearest(
            self._cursor_canonical_line(), self._search_forward
        )
        self._goto_current_match()

    def _goto_current_match(self) -> None:
        """Move cursor to the current match and update status."""
        match = self._search.current
        if match is None:
            return
        result = reveal_node(self._nav, match.node_id, match.closing)
        self._nav = result.state
        if self._nav.cursor is not None:
            self._scroll_top = center_scroll(
                self._nav.cursor.line_index, self._visible_height()
            )
        self.status_msg = (
            f"/{self._search.term}  [{self._search.navigation_info()}]"
        )

    def _goto_next_match(self) -> None:
        """Go to the next search match."""
        if not self._search.matches:
            if self._search.term:
                self.status_msg = f"Pattern not found: {self._search.term}"
            else:
                self.status_msg = "No previous search"
            return
        self._search = self._search.next()
        self._goto_current_match()

    def _goto_prev_match(self) -> None:
        """Go to the previous search match."""
        if not self._search.matches:
            if self._search.term:
                self.status_msg = f"Pattern not found: {self._search.term}"
            else:
                self.status_msg = "No previous search"
            return
        self._search = self._search.previous()
        self._goto_current_match()

    def _cycle_search_scope(self) -> None:
        """Switch scope and re-run the current search, if any."""
        if self._search.term:
            self._search = self._search.cycle_scope(self._nav.tree, self.config)
            self._after_search_update()
            return
        self._search = replace(self._search, scope=self._search.scope.next())
        self.status_msg = f"Search scope: {self._search.scope.display_name}"

    def _toggle_search_regex(self) -> None:
        if self._search.term:
            self._search = self._search.toggle_regex(self._nav.tree, self.config)
            self._after_search_update()
            return
        self._search = replace(self._search, regex_mode=not self._search.regex_mode)
        self.status_msg = "regex on" if self._search.regex_mode else "regex off"

    def _clear_search(self) -> None:
        session = self._search
        self._search = SearchSession(
            scope=session.scope,
            regex_mode=session.regex_mode,
            case_sensitive=session.case_sensitive,
        )
        self.status_msg = ""
