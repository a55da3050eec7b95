"""Scoped literal/pattern search over the canonical serialized document."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass, replace
from enum import Enum

from jview._format import DisplayConfig
from jview._value import JsonValue
from jview.projection import Projection, VisibleLine, canonical_projection
from jview.tree import Tree, build_tree

logger = logging.getLogger(__name__)

_INDEX_LABEL_RE = re.compile(r"\[\d+\] ")


class SearchScope(Enum):
    ALL = "all"
    KEYS = "keys"
    VALUES = "values"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()

    def next(self) -> SearchScope:
        """All -> Keys -> Values -> All."""
        order = list(SearchScope)
        return order[(order.index(self) + 1) % len(order)]


@dataclass(frozen=True)
class SearchMatch:
    line_index: int
    column_start: int
    column_end: int
    match_text: str
    context_line: str
    node_id: str = ""  # canonical line anchor
    closing: bool = False


# -- Line splitting --------------------------------------------------------


def _quoted_end(line: str, start: int) -> int:
    """Index of the quote closing the string opened at *start*, or -1."""
    i = start + 1
    n = len(line)
    while i < n:
        ch = line[i]
        if ch == "\\":
            i += 2
            continue
        if ch == '"':
            return i
        i += 1
    return -1


def _value_end(line: str) -> int:
    # 줄 끝 쉼표는 구조 문자
    return len(line) - 1 if line.endswith(",") else len(line)


def split_key_value(line: str) -> tuple[tuple[int, int], tuple[int, int]] | None:
    """Split a serialized ``key: value`` line into key and value column spans.

    The key is the first quote-terminated string token followed by a colon,
    so colons inside values (URLs, timestamps) never move the boundary. An
    ``[i] `` array index label also counts as a key. Returns ``None`` for
    lines without a key.
    """
    start = len(line) - len(line.lstrip())
    if start >= len(line):
        return None
    m = _INDEX_LABEL_RE.match(line, start)
    if m:
        key_end = m.end() - 1
        value_start = m.end()
        return (start, key_end), (value_start, max(value_start, _value_end(line)))
    if line[start] != '"':
        return None
    close = _quoted_end(line, start)
    if close < 0:
        return None
    i = close + 1
    while i < len(line) and line[i] in " \t":
        i += 1
    if i >= len(line) or line[i] != ":":
        return None
    i += 1
    while i < len(line) and line[i] in " \t":
        i += 1
    return (start, close + 1), (i, max(i, _value_end(line)))


def _segments(line: str, scope: SearchScope) -> list[tuple[int, int]]:
    if scope is SearchScope.ALL:
        return [(0, len(line))]
    # Keys / Values 는 key: value 라인에서만 찾는다
    split = split_key_value(line)
    if split is None:
        return []
    return [split[0] if scope is SearchScope.KEYS else split[1]]


# -- Matching --------------------------------------------------------------


def compile_term(
    term: str, regex_mode: bool, case_sensitive: bool = False
) -> re.Pattern[str] | None:
    """Compile a regex *term*.

    Returns ``None`` when *term* is to be searched literally: always outside
    regex mode, and for a malformed pattern in regex mode.
    """
    if not regex_mode:
        return None
    try:
        return re.compile(term, 0 if case_sensitive else re.IGNORECASE)
    except re.error as e:
        logger.debug("invalid pattern %r (%s), searching literally", term, e)
        return None


def _find_spans(
    segment: str,
    term: str,
    pattern: re.Pattern[str] | None,
    case_sensitive: bool,
) -> Iterator[tuple[int, int]]:
    """Match spans inside *segment*, relative to its start."""
    if pattern is not None:
        for m in pattern.finditer(segment):
            if m.end() > m.start():
                yield m.start(), m.end()
        return
    # literal: every occurrence, overlapping ones included
    haystack = segment if case_sensitive else segment.lower()
    needle = term if case_sensitive else term.lower()
    pos = haystack.find(needle)
    while pos != -1:
        yield pos, pos + len(needle)
        pos = haystack.find(needle, pos + 1)


def _line_matches(
    line: str,
    line_index: int,
    span: tuple[int, int],
    anchor: VisibleLine | None,
    term: str,
    pattern: re.Pattern[str] | None,
    case_sensitive: bool,
) -> list[SearchMatch]:
    offset = span[0]
    found = []
    for start, end in _find_spans(line[offset : span[1]], term, pattern, case_sensitive):
        found.append(
            SearchMatch(
                line_index=line_index,
                column_start=offset + start,
                column_end=offset + end,
                match_text=line[offset + start : offset + end],
                context_line=line,
                node_id=anchor.node_id if anchor is not None else "",
                closing=anchor.closing if anchor is not None else False,
            )
        )
    return found


def search_lines(
    lines: Projection | list[str],
    term: str,
    scope: SearchScope = SearchScope.ALL,
    regex_mode: bool = False,
    case_sensitive: bool = False,
    max_results: int | None = None,
) -> list[SearchMatch]:
    """Search already serialized lines, ordered by (line, column).

    Each key or value segment is matched on its own, so ``^`` and ``$``
    anchor to the segment rather than the line.
    """
    if not term.strip():
        return []
    pattern = compile_term(term, regex_mode, case_sensitive)
    anchored = isinstance(lines, Projection)
    results: list[SearchMatch] = []
    for line_index, item in enumerate(lines):
        text = item.rendered_text if anchored else item
        anchor = item if anchored else None
        for span in _segments(text, scope):
            results.extend(
                _line_matches(text, line_index, span, anchor, term, pattern, case_sensitive)
            )
        if max_results is not None and len(results) >= max_results:
            return results[:max_results]
    return results


def search(
    document: JsonValue | Tree,
    term: str,
    scope: SearchScope = SearchScope.ALL,
    regex_mode: bool = False,
    *,
    config: DisplayConfig | None = None,
    case_sensitive: bool = False,
    max_results: int | None = None,
) -> list[SearchMatch]:
    """Find *term* in the canonical serialization of *document*.

    Line indices refer to the fully expanded projection; each match also
    carries the node id of its line so it can be located in any projection.
    """
    if not term.strip():
        return []
    tree = document if isinstance(document, Tree) else build_tree(document)
    lines = canonical_projection(tree, config)
    return search_lines(lines, term, scope, regex_mode, case_sensitive, max_results)


# -- Session ---------------------------------------------------------------


@dataclass(frozen=True)
class SearchSession:
    term: str = ""
    scope: SearchScope = SearchScope.ALL
    regex_mode: bool = False
    case_sensitive: bool = False
    matches: tuple[SearchMatch, ...] = ()
    current_index: int = -1

    @classmethod
    def run(
        cls,
        document: JsonValue | Tree,
        term: str,
        scope: SearchScope = SearchScope.ALL,
        regex_mode: bool = False,
        *,
        config: DisplayConfig | None = None,
        case_sensitive: bool = False,
    ) -> SearchSession:
        matches = tuple(
            search(
                document,
                term,
                scope,
                regex_mode,
                config=config,
                case_sensitive=case_sensitive,
            )
        )
        return cls(
            term=term,
            scope=scope,
            regex_mode=regex_mode,
            case_sensitive=case_sensitive,
            matches=matches,
            current_index=0 if matches else -1,
        )

    def refresh(
        self, document: JsonValue | Tree, config: DisplayConfig | None = None
    ) -> SearchSession:
        """Recompute the matches for a changed document or parameter."""
        return SearchSession.run(
            document,
            self.term,
            self.scope,
            self.regex_mode,
            config=config,
            case_sensitive=self.case_sensitive,
        )

    def with_term(
        self, document: JsonValue | Tree, term: str, config: DisplayConfig | None = None
    ) -> SearchSession:
        return replace(self, term=term).refresh(document, config)

    def with_scope(
        self, document: JsonValue | Tree, scope: SearchScope, config: DisplayConfig | None = None
    ) -> SearchSession:
        return replace(self, scope=scope).refresh(document, config)

    def cycle_scope(
        self, document: JsonValue | Tree, config: DisplayConfig | None = None
    ) -> SearchSession:
        return self.with_scope(document, self.scope.next(), config)

    def toggle_regex(
        self, document: JsonValue | Tree, config: DisplayConfig | None = None
    ) -> SearchSession:
        return replace(self, regex_mode=not self.regex_mode).refresh(document, config)

    @property
    def current(self) -> SearchMatch | None:
        if not self.matches or self.current_index < 0:
            return None
        return self.matches[self.current_index]

    def next(self) -> SearchSession:
        if not self.matches:
            return self
        return replace(self, current_index=(self.current_index + 1) % len(self.matches))

    def previous(self) -> SearchSession:
        if not self.matches:
            return self
        idx = self.current_index - 1 if self.current_index > 0 else len(self.matches) - 1
        return replace(self, current_index=idx)

    def nearest(self, line_index: int, forward: bool = True) -> SearchSession:
        """Select the first match at/after (or at/before) *line_index*, wrapping."""
        if not self.matches:
            return self
        if forward:
            for i, m in enumerate(self.matches):
                if m.line_index >= line_index:
                    return replace(self, current_index=i)
            return replace(self, current_index=0)
        for i in range(len(self.matches) - 1, -1, -1):
            if self.matches[i].line_index <= line_index:
                return replace(self, current_index=i)
        return replace(self, current_index=len(self.matches) - 1)

    def navigation_info(self) -> str:
        if not self.matches or self.current_index < 0:
            return "No matches"
        return f"{self.current_index + 1}/{len(self.matches)}"

    def by_line(self) -> dict[int, list[tuple[int, int, int]]]:
        """Row-indexed lookup: line -> [(start, end, match_index)]."""
        rows: dict[int, list[tuple[int, int, int]]] = {}
        for mi, m in enumerate(self.matches):
            rows.setdefault(m.line_index, []).append((m.column_start, m.column_end, mi))
        return rows

    def by_anchor(self) -> dict[tuple[str, bool], list[tuple[int, int, int]]]:
        """Same as :meth:`by_line` but keyed by the (node_id, closing) anchor."""
        rows: dict[tuple[str, bool], list[tuple[int, int, int]]] = {}
        for mi, m in enumerate(self.matches):
            rows.setdefault((m.node_id, m.closing), []).append(
                (m.column_start, m.column_end, mi)
            )
        return rows
