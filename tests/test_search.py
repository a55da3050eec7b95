"""Tests for scoped search and search sessions."""

from jview._format import DisplayConfig
from jview.search import (
    SearchScope,
    SearchSession,
    compile_term,
    search,
    search_lines,
    split_key_value,
)

URL_DOC = {"url": "https://x.com:8080/p"}

DOC = {
    "name": "Alpha",
    "alias": "alpha-two",
    "items": ["alpha", "beta", {"alpha": 1}],
    "count": 10,
}


class TestSplitKeyValue:
    def test_simple(self):
        line = '  "url": "https://x.com:8080/p",'
        (ks, ke), (vs, ve) = split_key_value(line)
        assert line[ks:ke] == '"url"'
        assert line[vs:ve] == '"https://x.com:8080/p"'

    def test_escaped_quote_in_key(self):
        line = '  "a\\":b": 1'
        (ks, ke), (vs, ve) = split_key_value(line)
        assert line[ks:ke] == '"a\\":b"'
        assert line[vs:ve] == "1"

    def test_no_key(self):
        assert split_key_value('  "alpha",') is None
        assert split_key_value("  }") is None
        assert split_key_value("") is None

    def test_index_label_is_key(self):
        line = '  [2] "x"'
        (ks, ke), (vs, ve) = split_key_value(line)
        assert line[ks:ke] == "[2]"
        assert line[vs:ve] == '"x"'


class TestScopes:
    def test_keys_scope_url(self):
        matches = search(URL_DOC, "url", SearchScope.KEYS)
        assert len(matches) == 1
        m = matches[0]
        assert m.line_index == 1
        assert m.context_line[m.column_start : m.column_end] == "url"
        assert m.column_start == 3

    def test_values_scope_url(self):
        matches = search(URL_DOC, "https", SearchScope.VALUES)
        assert len(matches) == 1
        assert matches[0].column_start == len('  "url": "')

    def test_keys_scope_ignores_value_text(self):
        assert search(URL_DOC, "https", SearchScope.KEYS) == []
        assert search(URL_DOC, "8080", SearchScope.KEYS) == []

    def test_values_scope_ignores_key_text(self):
        assert search(URL_DOC, "url", SearchScope.VALUES) == []

    def test_all_scope(self):
        matches = search(DOC, "alpha")
        assert [m.line_index for m in matches] == [1, 2, 4, 7]

    def test_values_skip_bare_array_elements(self):
        """key 가 없는 배열 원소 라인은 Values 대상이 아니다."""
        matches = search(DOC, "alpha", SearchScope.VALUES)
        assert [m.line_index for m in matches] == [1, 2]
        assert search({"k": ["zed"]}, "zed", SearchScope.VALUES) == []

    def test_values_with_index_labels(self):
        cfg = DisplayConfig(show_array_indices=True)
        matches = search({"k": ["zed"]}, "zed", SearchScope.VALUES, config=cfg)
        assert len(matches) == 1
        assert matches[0].match_text == "zed"

    def test_regex_anchors_to_value_segment(self):
        matches = search(URL_DOC, "^\"https", SearchScope.VALUES, regex_mode=True)
        assert len(matches) == 1
        assert matches[0].column_start == len('  "url": ')

    def test_regex_anchors_to_key_segment(self):
        matches = search(URL_DOC, "^\"url\"$", SearchScope.KEYS, regex_mode=True)
        assert len(matches) == 1
        assert search(URL_DOC, "p\"$", SearchScope.KEYS, regex_mode=True) == []

    def test_lookbehind_does_not_see_key(self):
        assert search(URL_DOC, r"(?<=: )\"", SearchScope.VALUES, regex_mode=True) == []

    def test_keys_scope(self):
        matches = search(DOC, "alpha", SearchScope.KEYS)
        assert [m.line_index for m in matches] == [7]
        assert matches[0].node_id == "items.2.alpha"

    def test_structural_lines_skipped_in_values(self):
        matches = search({"a": []}, "[", SearchScope.VALUES)
        assert [m.line_index for m in matches] == [1]
        assert search([{"k": 1}], "{", SearchScope.VALUES) == []

    def test_trailing_comma_not_a_value(self):
        assert search({"a": 1, "b": 2}, ",", SearchScope.VALUES) == []

    def test_scope_cycle(self):
        assert SearchScope.ALL.next() is SearchScope.KEYS
        assert SearchScope.KEYS.next() is SearchScope.VALUES
        assert SearchScope.VALUES.next() is SearchScope.ALL
        assert SearchScope.KEYS.display_name == "Keys"


class TestMatching:
    def test_case_insensitive(self):
        matches = search({"k": "ABC abc"}, "abc")
        assert len(matches) == 2

    def test_case_sensitive(self):
        matches = search({"k": "ABC abc"}, "abc", case_sensitive=True)
        assert len(matches) == 1

    def test_empty_or_blank_term(self):
        assert search(DOC, "") == []
        assert search(DOC, "   ") == []

    def test_literal_special_chars(self):
        matches = search({"k": "a.b a+b"}, "a.b")
        assert len(matches) == 1
        assert matches[0].match_text == "a.b"

    def test_regex_mode(self):
        matches = search({"k": "a1 a22 b3"}, r"a\d+", regex_mode=True)
        assert [m.match_text for m in matches] == ["a1", "a22"]

    def test_invalid_regex_falls_back_to_literal(self):
        doc = {"k": "x [unclosed y", "z": "[UNCLOSED"}
        regex = search(doc, "[unclosed", regex_mode=True)
        literal = search(doc, "[unclosed", regex_mode=False)
        assert regex == literal
        assert len(regex) == 2

    def test_compile_term(self):
        assert compile_term("a.c", regex_mode=False) is None
        assert compile_term("(", regex_mode=True) is None
        assert compile_term(r"\d+", regex_mode=True).search("x12")
        assert compile_term("ABC", regex_mode=True).search("abc")
        assert not compile_term("ABC", regex_mode=True, case_sensitive=True).search("abc")

    def test_zero_width_matches_dropped(self):
        assert search({"k": "v"}, "^", regex_mode=True) == []

    def test_literal_overlapping(self):
        matches = search({"k": "aaa"}, "aa")
        assert [(m.column_start, m.column_end) for m in matches] == [(8, 10), (9, 11)]

    def test_literal_overlapping_case_insensitive(self):
        matches = search({"k": "AaAa"}, "aa")
        assert [m.column_start for m in matches] == [8, 9, 10]

    def test_regex_non_overlapping(self):
        matches = search({"k": "aaaa"}, "aa", regex_mode=True)
        assert [m.column_start for m in matches] == [8, 10]

    def test_ordering(self):
        matches = search({"ab": "ab ab", "c": ["ab"]}, "ab")
        positions = [(m.line_index, m.column_start) for m in matches]
        assert positions == sorted(positions)
        assert len(matches) == 4

    def test_max_results(self):
        matches = search(list(range(100)), "1", max_results=5)
        assert len(matches) == 5

    def test_search_lines_plain_strings(self):
        matches = search_lines(['"k": "v"', "x"], "v")
        assert len(matches) == 1
        assert matches[0].node_id == ""

    def test_respects_config(self):
        cfg = DisplayConfig(indent=4)
        matches = search({"k": "v"}, "k", config=cfg)
        assert matches[0].column_start == 5

    def test_match_anchor(self):
        matches = search({"a": {"b": 1}}, "}")
        assert [(m.node_id, m.closing) for m in matches] == [("a", True), ("root", True)]


class TestSession:
    def test_run_selects_first(self):
        session = SearchSession.run(DOC, "alpha")
        assert session.current_index == 0
        assert session.navigation_info() == "1/4"

    def test_empty_session(self):
        session = SearchSession.run(DOC, "zzz")
        assert session.current_index == -1
        assert session.current is None
        assert session.navigation_info() == "No matches"
        assert session.next() is session
        assert session.previous() is session

    def test_next_wraps(self):
        session = SearchSession.run(DOC, "alpha")
        for _ in range(4):
            session = session.next()
        assert session.current_index == 0

    def test_previous_wraps(self):
        session = SearchSession.run(DOC, "alpha").previous()
        assert session.current_index == 3
        assert session.navigation_info() == "4/4"

    def test_cycle_scope_recomputes(self):
        session = SearchSession.run(DOC, "alpha")
        session = session.cycle_scope(DOC)
        assert session.scope is SearchScope.KEYS
        assert len(session.matches) == 1
        session = session.cycle_scope(DOC)
        assert session.scope is SearchScope.VALUES
        assert len(session.matches) == 2

    def test_toggle_regex_recomputes(self):
        session = SearchSession.run({"k": "a.c abc"}, "a.c")
        assert len(session.matches) == 1
        session = session.toggle_regex({"k": "a.c abc"})
        assert session.regex_mode
        assert len(session.matches) == 2

    def test_with_term(self):
        session = SearchSession().with_term(DOC, "beta")
        assert len(session.matches) == 1
        assert session.current.match_text == "beta"

    def test_nearest(self):
        session = SearchSession.run(DOC, "alpha")  # lines 1, 2, 4, 7
        assert session.nearest(3).current.line_index == 4
        assert session.nearest(8).current.line_index == 1
        assert session.nearest(3, forward=False).current.line_index == 2
        assert session.nearest(0, forward=False).current.line_index == 7

    def test_by_line(self):
        session = SearchSession.run({"alpha": "alpha"}, "alpha")
        assert session.by_line() == {1: [(3, 8, 0), (12, 17, 1)]}
        assert session.by_anchor() == {("alpha", False): [(3, 8, 0), (12, 17, 1)]}
