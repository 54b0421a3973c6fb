"""Webhook body serialisation."""

from __future__ import annotations

import json
from typing import Any

FORMATS = ("json", "jsonl", "textl")


def _dumps(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def format_body(body: Any, *, format: str, final_newline: bool = False) -> str:
    """Serialise ``body`` for upload; unsupported input yields an empty string."""

    suffix = "\n" if final_newline else ""
    if format == "json":
        return _dumps(body) + suffix
    if format == "jsonl" and isinstance(body, list):
        return "\n".join(_dumps(item) for item in body) + suffix
    if format == "textl" and isinstance(body, list):
        return "\n".join(item for item in body if isinstance(item, str)) + suffix
    return ""
