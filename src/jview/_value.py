"""JSON value model shared by the tree, projection and search modules."""

from __future__ import annotations

from enum import Enum, auto
from typing import Union

# json.loads 결과 그대로: dict 순서 = key 삽입 순서
JsonValue = Union[
    dict[str, "JsonValue"], list["JsonValue"], str, int, float, bool, None
]


class NodeKind(Enum):
    OBJECT = auto()
    ARRAY = auto()
    PRIMITIVE = auto()


_BRACKETS = {
    NodeKind.OBJECT: ("{", "}"),
    NodeKind.ARRAY: ("[", "]"),
}


def kind_of(value: JsonValue) -> NodeKind:
    """Classify a value. Empty containers keep their container kind."""
    if isinstance(value, dict):
        return NodeKind.OBJECT
    if isinstance(value, list):
        return NodeKind.ARRAY
    return NodeKind.PRIMITIVE


def is_collapsible(value: JsonValue) -> bool:
    """Non-empty object/array만 접을 수 있다."""
    return kind_of(value) is not NodeKind.PRIMITIVE and len(value) > 0


def brackets(kind: NodeKind) -> tuple[str, str]:
    if kind is NodeKind.PRIMITIVE:
        raise ValueError("primitive values have no brackets")
    return _BRACKETS[kind]


def collapsed_summary(kind: NodeKind) -> str:
    """Text shown in place of a collapsed container's children."""
    open_ch, close_ch = brackets(kind)
    return f"{open_ch}...{close_ch}"
