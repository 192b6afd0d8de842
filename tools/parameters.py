# where: wordpress/tools/parameters.py
# what: Parameter source that turns Dify tool parameters into per-item values.
# why: Handlers read fields by (name, item index) without knowing how the host delivered them.

from __future__ import annotations

import json
from typing import Any, Mapping, Protocol

# ツールレベルの制御用パラメータ（アイテムのフィールドとしては扱わない）
CONTROL_PARAMETERS = frozenset({"operation", "items", "continue_on_fail", "file"})


class ParameterSource(Protocol):
    @property
    def item_count(self) -> int: ...

    def get_parameter(self, name: str, item_index: int, default: Any = None) -> Any: ...

    def get_input_item(self, item_index: int) -> dict[str, Any]: ...


def parse_items(raw: Any) -> list[dict[str, Any]]:
    """Parse the optional ``items`` parameter (JSON array of objects)."""
    if raw is None or raw == "":
        return []

    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ValueError(f"itemsはJSON配列で指定してください: {exc}") from exc

    if isinstance(raw, Mapping):
        raw = [raw]

    if not isinstance(raw, list):
        raise ValueError("itemsはJSON配列で指定してください")

    items: list[dict[str, Any]] = []
    for index, item in enumerate(raw):
        if not isinstance(item, Mapping):
            raise ValueError(f"items[{index}] はオブジェクトである必要があります")
        items.append(dict(item))
    return items


class ToolParameterSource:
    """Per-item view over tool parameters.

    Values in an item override the tool-level parameter of the same name. A value
    of ``None`` (or a missing key) means the field was not provided.
    """

    def __init__(self, tool_parameters: Mapping[str, Any], items: list[dict[str, Any]] | None = None) -> None:
        self._tool_parameters = dict(tool_parameters)
        self._items = items or []

    @classmethod
    def from_tool_parameters(cls, tool_parameters: Mapping[str, Any]) -> "ToolParameterSource":
        return cls(tool_parameters, parse_items(tool_parameters.get("items")))

    @property
    def item_count(self) -> int:
        return len(self._items) or 1

    def get_items(self) -> list[dict[str, Any]]:
        return [dict(item) for item in self._items]

    def get_parameter(self, name: str, item_index: int, default: Any = None) -> Any:
        self._check_index(item_index)
        if self._items:
            item = self._items[item_index]
            if item.get(name) is not None:
                return item[name]

        value = self._tool_parameters.get(name)
        if value is None:
            return default
        return value

    def get_input_item(self, item_index: int) -> dict[str, Any]:
        self._check_index(item_index)
        if self._items:
            return dict(self._items[item_index])
        return {
            key: value
            for key, value in self._tool_parameters.items()
            if key not in CONTROL_PARAMETERS and value is not None
        }

    def _check_index(self, item_index: int) -> None:
        if item_index < 0 or item_index >= self.item_count:
            raise IndexError(f"item index out of range: {item_index}")
