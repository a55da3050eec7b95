"""Tests for document loading and the jv command line."""

import asyncio
import io
import json
import sys

import pytest

from jview import app as jv_app
from jview.app import JsonViewerApp, load_document
from jview.widget import JsonTreeView


class TestLoadDocument:
    def test_load_file(self, tmp_path):
        path = tmp_path / "doc.json"
        path.write_text('{"a": [1, 2], "한글": true}', encoding="utf-8")
        assert load_document(str(path)) == {"a": [1, 2], "한글": True}

    def test_load_stdin(self, monkeypatch):
        monkeypatch.setattr(sys, "stdin", io.StringIO("[null]"))
        assert load_document("-") == [None]

    def test_invalid_json_raises(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{broken", encoding="utf-8")
        with pytest.raises(json.JSONDecodeError):
            load_document(str(path))


class TestMain:
    def _run(self, monkeypatch, *argv):
        monkeypatch.setattr(sys, "argv", ["jv", *argv])
        with pytest.raises(SystemExit) as exc:
            jv_app.main()
        return exc.value.code

    def test_missing_file(self, monkeypatch, capsys, tmp_path):
        missing = tmp_path / "nope.json"
        assert self._run(monkeypatch, str(missing)) == 1
        assert capsys.readouterr().err.startswith(f"jv: {missing}: No such file")

    def test_invalid_json(self, monkeypatch, capsys, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("[1,", encoding="utf-8")
        assert self._run(monkeypatch, str(path)) == 1
        assert "invalid JSON" in capsys.readouterr().err

    def test_builds_app_from_flags(self, monkeypatch, tmp_path):
        """실제 TUI 를 띄우지 않고 run() 에 전달되는 설정만 확인."""
        path = tmp_path / "doc.json"
        path.write_text('{"a": 1}', encoding="utf-8")
        seen = []
        monkeypatch.setattr(JsonViewerApp, "run", lambda self: seen.append(self))
        monkeypatch.setattr(
            sys, "argv", ["jv", str(path), "--indent", "4", "--show-indices", "--collapsed"]
        )
        jv_app.main()
        (app,) = seen
        assert app.initial_document == {"a": 1}
        assert app.view_config.indent == 4
        assert app.view_config.show_array_indices
        assert app.start_collapsed
        assert app.source_path == str(path)


class TestRunApp:
    """pilot 으로 실제 화면을 그려 본다."""

    def test_render_status_and_summary(self):
        async def drive():
            app = JsonViewerApp({"alpha": [1, 2], "beta": {"gamma": "a"}})
            async with app.run_test(size=(80, 24)) as pilot:
                view = app.query_one(JsonTreeView)
                await pilot.press("slash", "a", "enter")
                text = view.render().plain
                assert "NORMAL" in text
                assert "[All]" in text
                await pilot.press("z", "M")
                assert view.state.lines.texts() == ["{...}"]
                assert "{...} (2 keys)" in view.render().plain
                await pilot.press("L")
                assert not view.show_line_numbers

        asyncio.run(drive())

    def test_r_reloads_file(self, tmp_path):
        path = tmp_path / "doc.json"
        path.write_text('{"a": 1}', encoding="utf-8")

        async def drive():
            app = JsonViewerApp(load_document(str(path)), path=str(path))
            async with app.run_test(size=(80, 24)) as pilot:
                view = app.query_one(JsonTreeView)
                path.write_text('{"a": 2, "b": [true]}', encoding="utf-8")
                await pilot.press("r")
                await pilot.pause()
                assert view.document == {"a": 2, "b": [True]}

        asyncio.run(drive())
