from __future__ import annotations

import json
from pathlib import Path
from typing import Iterator, Mapping, TypeAlias

from taurus.order_contract import sort_once

JSONValue: TypeAlias = str | int | float | bool | None | list["JSONValue"] | dict[str, "JSONValue"]
JSONObject: TypeAlias = dict[str, JSONValue]


def canonicalize_json(value: object) -> object:
    if isinstance(value, Mapping):
        normalized_items = [
            (str(key), canonicalize_json(item_value))
            for key, item_value in value.items()
        ]
        ordered_items = sort_once(
            normalized_items,
            source="json_io.canonicalize_json.mapping_items",
            # Sort key is lexical mapping-key text for canonical JSON shape.
            key=lambda item: item[0],
        )
        return {
            key: item_value
            for key, item_value in ordered_items
        }
    if isinstance(value, (list, tuple)):
        return [canonicalize_json(item) for item in value]
    return value


def dump_json_pretty(payload: object) -> str:
    return json.dumps(canonicalize_json(payload), indent=2, sort_keys=False)


def iter_jsonl(path: Path) -> Iterator[tuple[int, str]]:
    """Yield (line number, stripped text) for every non-blank line."""
    with path.open("r", encoding="utf-8") as handle:
        for line_no, raw in enumerate(handle, start=1):
            line = raw.strip()
            if not line:
                continue
            yield line_no, line


def load_json_object_text(text: str) -> JSONObject | None:
    try:
        payload = json.loads(text)
    except (TypeError, ValueError):
        return None
    if not isinstance(payload, Mapping):
        return None
    return {str(key): payload[key] for key in payload}
