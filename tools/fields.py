# where: wordpress/tools/fields.py
# what: Field shaping helpers for WordPress REST API request bodies.
# why: Keep the dispatcher focused on routing while these rules stay testable on their own.

from __future__ import annotations

import json
import re
from typing import Any, Iterable, Mapping

from .errors import ValidationError

_LEADING_INT = re.compile(r"[+-]?[0-9]+")


def parse_id_list(raw: Any) -> list[int]:
    """Parse a comma-separated list of numeric IDs such as ``"1, 2,3"``.

    Each token is parsed leniently (``"12abc"`` becomes ``12``) and tokens without
    leading digits are dropped. Category or tag names are not resolved to IDs.
    """
    if raw is None:
        return []
    if isinstance(raw, (list, tuple)):
        tokens = [str(token) for token in raw]
    else:
        tokens = str(raw).split(",")

    ids: list[int] = []
    for token in tokens:
        match = _LEADING_INT.match(token.strip())
        if match:
            ids.append(int(match.group(0)))
    return ids


def fold_custom_fields(entries: Any) -> dict[str, Any]:
    """Fold ``[{"key": ..., "value": ...}, ...]`` into a WordPress ``meta`` map."""
    if entries is None or entries == "":
        return {}

    if isinstance(entries, str):
        try:
            entries = json.loads(entries)
        except json.JSONDecodeError as exc:
            raise ValueError(f"カスタムフィールドはJSON形式で指定してください: {exc}") from exc

    if isinstance(entries, Mapping):
        if "properties" in entries:
            entries = entries.get("properties") or []
        else:
            # {"meta_key": "value"} 形式もそのまま受け付ける
            entries = [{"key": key, "value": value} for key, value in entries.items()]

    if not isinstance(entries, (list, tuple)):
        raise ValueError("カスタムフィールドの形式が不正です")

    meta: dict[str, Any] = {}
    for entry in entries:
        if not isinstance(entry, Mapping):
            continue
        key = entry.get("key")
        if not key:
            continue
        value = entry.get("value")
        meta[str(key)] = "" if value is None else value
    return meta


def require_identifier(value: Any, field: str, item_index: int) -> str:
    """Return a required identifier as a string or fail before any request is made."""
    text = "" if value is None else str(value).strip()
    if not text:
        raise ValidationError(
            field,
            f"{field} を指定してください (item {item_index})",
            item_index=item_index,
        )
    return text


def collect_present(pairs: Iterable[tuple[str, Any]]) -> dict[str, Any]:
    """Keep every field that was provided, including explicit empty strings."""
    return {name: value for name, value in pairs if value is not None}


def collect_non_empty(pairs: Iterable[tuple[str, Any]]) -> dict[str, Any]:
    """Keep only fields with a non-empty value."""
    return {name: value for name, value in pairs if value not in (None, "")}
