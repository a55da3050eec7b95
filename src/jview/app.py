"""Terminal JSON viewer application."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from textual.app import App, ComposeResult
from textual.widgets import Header, Static

from ._format import DisplayConfig
from ._value import JsonValue
from .widget import JsonTreeView

logger = logging.getLogger(__name__)


def load_document(path: str) -> JsonValue:
    """Read and parse *path*; ``-`` reads standard input.

    Raises ``OSError`` or ``json.JSONDecodeError``.
    """
    if path == "-":
        text = sys.stdin.read()
    else:
        text = Path(path).read_text(encoding="utf-8")
    value = json.loads(text)
    logger.debug("loaded %s (%d chars)", path, len(text))
    return value


class JsonViewerApp(App):
    """TUI app that wraps the JsonTreeView widget."""

    CSS = """
    Screen {
        layout: vertical;
    }
    #viewer {
        height: 1fr;
        border: solid $accent;
    }
    #help-bar {
        height: auto;
        max-height: 4;
        padding: 0 1;
        color: $text-muted;
        background: $surface;
        border-top: solid $accent 50%;
    }
    """

    TITLE = "JSON Viewer"
    BINDINGS = []

    def __init__(
        self,
        document: JsonValue = None,
        *,
        path: str | None = None,
        config: DisplayConfig | None = None,
        collapsed: bool = False,
    ) -> None:
        super().__init__()
        self.initial_document = document
        self.source_path = path
        self.view_config = config
        self.start_collapsed = collapsed

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        yield JsonTreeView(
            self.initial_document,
            config=self.view_config,
            collapsed=self.start_collapsed,
            id="viewer",
        )
        yield Static(
            "[b]Move:[/b] j k  gg G  Ctrl-d/u  PgUp/PgDn"
            "   [b]Fold:[/b] Enter za  l zo  h zc  zR zM\n"
            "[b]Search:[/b] / ?  n N  S [dim]scope[/]  Ctrl-r [dim]regex[/]"
            "   [b]View:[/b] L [dim]line numbers[/]  r [dim]reload[/]  q [dim]quit[/]",
            id="help-bar",
        )

    def on_mount(self) -> None:
        if self.source_path and self.source_path != "-":
            self.sub_title = self.source_path
        self.query_one("#viewer").focus()

    def on_json_tree_view_quit(self) -> None:
        self.exit()

    def on_json_tree_view_reload(self) -> None:
        self.action_reload()

    def action_reload(self) -> None:
        if not self.source_path or self.source_path == "-":
            self.notify("Nothing to reload", severity="warning")
            return
        try:
            document = load_document(self.source_path)
        except (OSError, ValueError) as e:
            logger.debug("reload of %s failed: %s", self.source_path, e)
            self.notify(f"Reload failed: {e}", severity="error", timeout=6)
            return
        self.query_one("#viewer", JsonTreeView).set_document(document)
        self.notify(f"Reloaded {self.source_path}")


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="jv",
        description="Collapsible JSON viewer with vim-style keybindings",
    )
    parser.add_argument("file", help="JSON file to view ('-' for stdin)")
    parser.add_argument(
        "--indent",
        type=int,
        default=2,
        help="Indentation width (default: 2)",
    )
    parser.add_argument(
        "--tabs",
        action="store_true",
        help="Indent with tabs instead of spaces",
    )
    parser.add_argument(
        "--max-value-length",
        type=int,
        default=None,
        metavar="N",
        help="Truncate serialized values longer than N characters",
    )
    parser.add_argument(
        "--show-indices",
        action="store_true",
        help="Prefix array elements with their [index]",
    )
    parser.add_argument(
        "--collapsed",
        action="store_true",
        help="Start with every node collapsed",
    )
    parser.add_argument(
        "--log-file",
        metavar="PATH",
        help="Write debug log records to PATH",
    )
    args = parser.parse_args()

    if args.indent < 0:
        parser.error("--indent must not be negative")
    if args.max_value_length is not None and args.max_value_length < 4:
        parser.error("--max-value-length must be at least 4")

    if args.log_file:
        logging.basicConfig(
            filename=args.log_file,
            level=logging.DEBUG,
            format="%(asctime)s %(name)s %(levelname)s %(message)s",
        )

    if args.file != "-" and not Path(args.file).exists():
        print(f"jv: {args.file}: No such file", file=sys.stderr)
        sys.exit(1)
    try:
        document = load_document(args.file)
    except json.JSONDecodeError as e:
        print(f"jv: {args.file}: invalid JSON: {e}", file=sys.stderr)
        sys.exit(1)
    except (OSError, UnicodeDecodeError) as e:
        print(f"jv: {args.file}: {e}", file=sys.stderr)
        sys.exit(1)

    config = DisplayConfig(
        indent=args.indent,
        use_tabs=args.tabs,
        max_value_length=args.max_value_length,
        show_array_indices=args.show_indices,
    )
    app = JsonViewerApp(
        document,
        path=args.file,
        config=config,
        collapsed=args.collapsed,
    )
    app.run()


if __name__ == "__main__":
    main()
