"""
JSON serialization helpers for job result payloads and stored records.

Uses orjson for speed; result payloads are canonicalized first so that
dataclasses, pydantic models and objects exposing ``to_dict`` round-trip as
plain JSON values.
"""

from __future__ import annotations

import dataclasses
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

import orjson


def _type_id(obj_type: type) -> str:
    return f"{obj_type.__module__}.{obj_type.__name__}"


def canonicalize(obj: Any) -> Any:
    """
    Convert complex objects into JSON-friendly structures.
    """
    if isinstance(obj, dict):
        return {str(k): canonicalize(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [canonicalize(v) for v in obj]
    if isinstance(obj, (set, frozenset)):
        return sorted(canonicalize(v) for v in obj)
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, (UUID, Decimal)):
        return str(obj)
    if isinstance(obj, type):
        return {"__type__": _type_id(obj)}
    if dataclasses.is_dataclass(obj):
        return canonicalize(dataclasses.asdict(obj))
    if hasattr(obj, "model_dump") and callable(obj.model_dump):
        return canonicalize(obj.model_dump(mode="json"))  # Pydantic v2
    if hasattr(obj, "to_dict") and callable(obj.to_dict):
        return canonicalize(obj.to_dict())
    return obj


def dumps_payload(payload: Any) -> str:
    """Serialize a job result payload to a JSON string."""
    return orjson.dumps(canonicalize(payload)).decode("utf-8")


def loads_payload(data: str | bytes | None) -> Any:
    """Deserialize a stored result payload. ``None`` stays ``None``."""
    if data is None:
        return None
    return orjson.loads(data)


def dumps_record(data: dict[str, Any]) -> str:
    """Serialize an already JSON-friendly record dict."""
    return orjson.dumps(data).decode("utf-8")


def loads_record(data: str | bytes) -> dict[str, Any]:
    """Deserialize a record dict."""
    return orjson.loads(data)


__all__ = [
    "canonicalize",
    "dumps_payload",
    "loads_payload",
    "dumps_record",
    "loads_record",
]
