"""Line formatting rules shared by the projector and the canonical serialization."""

from __future__ import annotations

import json
from dataclasses import dataclass

from jview._value import JsonValue

_ELLIPSIS = "..."


@dataclass(frozen=True)
class DisplayConfig:
    """Read-only formatting input supplied by the caller."""

    indent: int = 2
    use_tabs: bool = False
    max_value_length: int | None = None  # None: 자르지 않음
    show_array_indices: bool = False

    @property
    def indent_unit(self) -> str:
        return "\t" if self.use_tabs else " " * self.indent


DEFAULT_CONFIG = DisplayConfig()


def indent_text(depth: int, config: DisplayConfig = DEFAULT_CONFIG) -> str:
    return config.indent_unit * depth


def key_prefix(key: str | int | None, config: DisplayConfig = DEFAULT_CONFIG) -> str:
    """Prefix rendered before a node's value.

    Object members get ``"key": `` (quoted and escaped the way ``json.dumps``
    does), array elements get nothing unless indices are shown, and the root
    has no key at all.
    """
    if key is None:
        return ""
    if isinstance(key, int):
        return f"[{key}] " if config.show_array_indices else ""
    return json.dumps(key, ensure_ascii=False) + ": "


def scalar_text(value: JsonValue, config: DisplayConfig = DEFAULT_CONFIG) -> str:
    """JSON literal for a primitive or an empty container."""
    text = json.dumps(value, ensure_ascii=False)
    limit = config.max_value_length
    if limit is not None and len(text) > limit:
        keep = max(0, limit - len(_ELLIPSIS))
        text = text[:keep] + _ELLIPSIS
    return text
