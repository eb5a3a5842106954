"""Narrowing untyped data from TOML and JSON files.

`tomllib` and `json` hand back `object`; these helpers turn the parts relkit
reads into typed values, or None when a value has the wrong shape. Strings
are stripped and blank ones count as missing.
"""

from __future__ import annotations

from typing import Mapping, TypeGuard, cast

StrDict = dict[str, object]


def is_str_dict(obj: object) -> TypeGuard[StrDict]:
    return isinstance(obj, dict) and all(
        isinstance(k, str) for k in cast(dict[object, object], obj)
    )


def as_str_dict(obj: object) -> StrDict | None:
    return obj if is_str_dict(obj) else None


def get_table(table: Mapping[str, object], key: str) -> StrDict | None:
    """Sub-table under key, e.g. `[branches]` in relkit.toml."""
    return as_str_dict(table.get(key))


def _text(value: object) -> str | None:
    if isinstance(value, str) and (stripped := value.strip()):
        return stripped
    return None


def get_str(table: Mapping[str, object], key: str) -> str | None:
    return _text(table.get(key))


def get_str_list(table: Mapping[str, object], key: str) -> list[str] | None:
    """All-or-nothing: one blank or non-string item rejects the whole list."""
    value = table.get(key)
    if not isinstance(value, list):
        return None
    items = [_text(item) for item in cast(list[object], value)]
    if any(item is None for item in items):
        return None
    return [item for item in items if item is not None]
