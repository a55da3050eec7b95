"""Collapsible JSON tree viewer widget."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum, auto

from rich.text import Text
from textual import events
from textual.message import Message
from textual.widget import Widget

from jview._fold import FoldMixin
from jview._format import DEFAULT_CONFIG, DisplayConfig
from jview._search import SearchMixin
from jview._value import JsonValue
from jview.navigation import (
    ActionType,
    NavAction,
    NavState,
    cursor_node,
    initial_state,
    replace_document,
)
from jview.projection import (
    NodeLine,
    Projection,
    canonical_projection,
    scroll_to_reveal,
    window,
)
from jview.search import SearchSession
from jview.tree import json_path


class ViewMode(Enum):
    NORMAL = auto()
    SEARCH = auto()


class JsonTreeView(FoldMixin, SearchMixin, Widget, can_focus=True):
    """A read-only, collapsible JSON outline.

    Supported keys:
      NORMAL: j k  Ctrl-f Ctrl-b Ctrl-d Ctrl-u  gg G
              Enter Space za  l zo  h zc  zR zM
              / ?  n N  S Ctrl-r  L  Esc  r q
      SEARCH: typing / Backspace / Tab (scope) / Ctrl-r (regex)
              Up Down (history) / Enter / Escape
    """

    DEFAULT_CSS = """
    JsonTreeView {
        height: 1fr;
        background: $surface;
        padding: 0 1;
    }
    """

    # -- Messages ----------------------------------------------------------

    @dataclass
    class Quit(Message):
        pass

    @dataclass
    class Reload(Message):
        pass

    # -- Init --------------------------------------------------------------

    def __init__(
        self,
        document: JsonValue = None,
        *,
        config: DisplayConfig | None = None,
        collapsed: bool = False,
        show_line_numbers: bool = True,
        scroll_margin: int = 2,
        name: str | None = None,
        id: str | None = None,
        classes: str | None = None,
    ) -> None:
        super().__init__(name=name, id=id, classes=classes)
        self.config: DisplayConfig = config or DEFAULT_CONFIG
        self._nav: NavState = initial_state(
            document, self.config, frozenset() if collapsed else None
        )
        self._canonical: Projection | None = None
        self._mode: ViewMode = ViewMode.NORMAL
        self.pending: str = ""
        self.status_msg: str = ""
        self.show_line_numbers: bool = show_line_numbers
        self._scroll_top: int = 0
        self._scroll_margin: int = scroll_margin
        # Search state
        self._search: SearchSession = SearchSession()
        self._search_buffer: str = ""
        self._search_forward: bool = True  # True for /, False for ?
        self._search_history: list[str] = []
        self._search_history_idx: int = -1  # -1 = new search
        self._search_history_max: int = 50

    # -- Public API --------------------------------------------------------

    @property
    def state(self) -> NavState:
        return self._nav

    @property
    def search_session(self) -> SearchSession:
        return self._search

    @property
    def document(self) -> JsonValue:
        return self._nav.tree.root.value

    def set_document(self, document: JsonValue) -> None:
        """Replace the document, keeping collapsed nodes and cursor where possible."""
        self._nav = replace_document(self._nav, document)
        self._canonical = None
        if self._search.term:
            self._search = self._search.refresh(self._nav.tree, self.config)
        else:
            self._search = SearchSession(
                scope=self._search.scope, regex_mode=self._search.regex_mode
            )
        self.refresh()

    def get_history(self) -> dict:
        """Get search history for persistence."""
        return {"search": self._search_history[:]}

    def set_history(self, history: dict) -> None:
        if "search" in history:
            self._search_history = history["search"][: self._search_history_max]

    # -- Helpers -----------------------------------------------------------

    def _canonical_lines(self) -> Projection:
        if self._canonical is None:
            self._canonical = canonical_projection(self._nav.tree, self.config)
        return self._canonical

    def _visible_height(self) -> int:
        return max(1, self.content_region.height - 2)

    def _reveal_line(self, line_index: int) -> None:
        self._scroll_top = scroll_to_reveal(
            self._scroll_top, line_index, self._visible_height(), self._scroll_margin
        )

    # =====================================================================
    # Rendering
    # =====================================================================

    _BRACKET = frozenset("{}[]")
    _DIGIT = frozenset("0123456789.-+eE")
    _KEYWORD_RE = re.compile(r"true|false|null")
    _SUMMARY_RE = re.compile(r"[{\[]\.\.\.[}\]],?$")
    _MODE_STYLE = {
        ViewMode.NORMAL: "bold white on dark_green",
        ViewMode.SEARCH: "bold white on dark_magenta",
    }
    _CURSOR_BG = "on grey23"

    def render(self) -> Text:
        width = self.content_region.width
        height = self.content_region.height
        if height < 3 or width < 10:
            return Text("(too small)")

        content_height = height - 2
        lines = self._nav.lines
        total = len(lines)
        cursor = self._nav.cursor
        cursor_idx = cursor.line_index if cursor is not None else -1
        if cursor is not None:
            self._scroll_top = scroll_to_reveal(
                self._scroll_top, cursor_idx, content_height, self._scroll_margin
            )
        view = window(lines, self._scroll_top, content_height)

        ln_width = len(str(total)) if self.show_line_numbers else 0
        prefix_w = ln_width + 1 if ln_width else 0
        avail = max(1, width - prefix_w)
        hits_by_anchor = self._search.by_anchor() if self._search.matches else {}
        current_match = self._search.current_index
        compute_styles = self._compute_line_styles
        result = Text()
        result_append = result.append

        for offset, line in enumerate(view.lines):
            line_idx = view.start + offset
            text = line.rendered_text
            styles = compute_styles(text)
            is_cursor_line = line_idx == cursor_idx

            summary = ""
            if isinstance(line, NodeLine) and not line.opens:
                summary = self._collapsed_summary_text(line.node_id)
                if summary:
                    m = self._SUMMARY_RE.search(text)
                    if m:
                        for c in range(m.start(), m.start() + 5):
                            styles[c] = "dim italic"
            if is_cursor_line:
                styles = [f"{s} {self._CURSOR_BG}" for s in styles]
            hits = hits_by_anchor.get((line.node_id, line.closing))
            if hits:
                for m_start, m_end, mi in hits:
                    style = (
                        "black on yellow" if mi == current_match else "black on dark_goldenrod"
                    )
                    for c in range(m_start, min(m_end, len(text))):
                        styles[c] = style

            if ln_width:
                result_append(
                    f"{line_idx + 1:>{ln_width}} ",
                    style="bold cyan" if is_cursor_line else "dim cyan",
                )
            # Render line, batching consecutive chars with the same style
            end_col = min(len(text), avail)
            col = 0
            while col < end_col:
                sty = styles[col]
                end = col + 1
                while end < end_col and styles[end] == sty:
                    end += 1
                result_append(text[col:end], style=sty)
                col = end
            if summary and end_col + len(summary) <= avail:
                result_append(summary, style="dim italic")
            result_append("\n")

        rows_used = len(view.lines)
        # Fill remaining rows with ~
        if rows_used < content_height:
            tilde_line = f"{'~':>{max(1, prefix_w - 1)}} \n"
            while rows_used < content_height:
                result_append(tilde_line, style="dim blue")
                rows_used += 1

        # status bar
        mode = self._mode
        mode_label = f" {mode.name} "
        result_append(mode_label, style=self._MODE_STYLE[mode])
        if self.pending:
            result_append(f"  {self.pending}", style="bold yellow")

        session = self._search
        flags = session.scope.display_name + (" .*" if session.regex_mode else "")
        search_info = f" [{flags}] {session.navigation_info()} " if session.term else ""
        pos = f" Ln {cursor_idx + 1}/{total} "
        status_msg = self.status_msg
        spacer_len = max(
            0,
            width
            - len(mode_label)
            - len(self.pending)
            - len(search_info)
            - len(pos)
            - len(status_msg)
            - 4,
        )
        result_append(f"  {status_msg}")
        if spacer_len:
            result_append(" " * spacer_len)
        if search_info:
            result_append(search_info, style="magenta")
        result_append(pos, style="bold")

        if mode == ViewMode.SEARCH:
            prefix = "/" if self._search_forward else "?"
            result_append(f"\n{prefix}{self._search_buffer}", style="bold magenta")
            result_append(" ", style="reverse")
            result_append(f"  [{flags}]", style="dim")
        else:
            node = cursor_node(self._nav)
            label = json_path(node.path) if node is not None else ""
            result_append(f"\n{label}", style="dim")

        return result

    # -- Syntax colouring helpers ------------------------------------------

    def _compute_line_styles(self, line: str) -> list[str]:
        """Compute syntax highlight styles for every character in *line*."""
        n = len(line)
        if n == 0:
            return []

        BRACKET = self._BRACKET
        DIGIT = self._DIGIT

        styles = ["white"] * n
        is_in_str = [False] * n

        # Single pass: track string regions and first unquoted colon
        in_str = False
        escaped = False
        first_colon = -1
        for i, ch in enumerate(line):
            if in_str:
                is_in_str[i] = True
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_str = False
            elif ch == '"':
                in_str = True
                is_in_str[i] = True
            elif ch == ":" and first_colon == -1:
                first_colon = i

        for i, ch in enumerate(line):
            if is_in_str[i]:
                styles[i] = "cyan" if first_colon == -1 or i < first_colon else "green"
            elif ch in BRACKET:
                styles[i] = "bold white"
            elif ch in DIGIT:
                styles[i] = "yellow"

        # 문자열이 아닌 곳의 keyword
        for m in self._KEYWORD_RE.finditer(line):
            ms, me = m.start(), m.end()
            if not is_in_str[ms]:
                for j in range(ms, me):
                    styles[j] = "magenta"

        return styles

    # =====================================================================
    # Key handling
    # =====================================================================

    def on_key(self, event: events.Key) -> None:
        event.prevent_default()
        event.stop()

        if self._mode == ViewMode.NORMAL:
            self._handle_normal(event)
        elif self._mode == ViewMode.SEARCH:
            self._handle_search(event)

        self.refresh()

    # -- NORMAL ------------------------------------------------------------

    def _handle_normal(self, event: events.Key) -> None:
        key = event.key
        char = event.character or ""

        if self.pending:
            self._handle_pending(char, key)
            return

        self.status_msg = ""
        vh = self._visible_height()

        # movement
        if char == "j" or key == "down":
            self._apply(ActionType.MOVE_DOWN)
        elif char == "k" or key == "up":
            self._apply(ActionType.MOVE_UP)
        elif key == "pagedown" or key == "ctrl+f":
            self._apply(NavAction(ActionType.PAGE_DOWN, count=vh))
        elif key == "pageup" or key == "ctrl+b":
            self._apply(NavAction(ActionType.PAGE_UP, count=vh))
        elif key == "ctrl+d":
            self._apply(NavAction(ActionType.PAGE_DOWN, count=max(1, vh // 2)))
        elif key == "ctrl+u":
            self._apply(NavAction(ActionType.PAGE_UP, count=max(1, vh // 2)))
        elif char == "G" or key == "end":
            self._apply(ActionType.GOTO_BOTTOM)
        elif key == "home":
            self._apply(ActionType.GOTO_TOP)
        # folding
        elif key == "enter" or key == "space":
            self._toggle_fold()
        elif char == "l" or key == "right":
            self._open_fold()
        elif char == "h" or key == "left":
            self._close_fold()
        # search
        elif char == "/" or char == "?":
            self._mode = ViewMode.SEARCH
            self._search_forward = char == "/"
            self._search_buffer = ""
            self._search_history_idx = -1
        elif char == "n":
            self._goto_next_match()
        elif char == "N":
            self._goto_prev_match()
        elif char == "S":
            self._cycle_search_scope()
        elif key == "ctrl+r":
            self._toggle_search_regex()
        elif key == "escape":
            self._clear_search()
        # view
        elif char == "L":
            self.show_line_numbers = not self.show_line_numbers
        elif char == "q":
            self.post_message(self.Quit())
        elif char == "r":
            self.post_message(self.Reload())
        elif char in ("g", "z"):
            self.pending = char

    def _handle_pending(self, char: str, key: str) -> None:
        p = self.pending
        self.pending = ""
        if key == "escape":
            return
        if p == "g":
            if char == "g":
                self._apply(ActionType.GOTO_TOP)
        elif p == "z":
            if char == "a":
                self._toggle_fold()
            elif char == "o":
                self._open_fold()
            elif char == "c":
                self._close_fold()
            elif char == "R":
                self._unfold_all()
            elif char == "M":
                self._fold_all()
