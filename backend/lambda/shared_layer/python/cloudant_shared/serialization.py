"""cloudant_shared.serialization — JSON decoding/encoding helpers.

Schema checks raise ``ValueError`` with a short diagnostic; each caller wraps
it in the stage-specific ``PipelineError``.
"""

from __future__ import annotations

import datetime as dt
import json
from typing import Any, Dict, Mapping, Union

_KINDS = {
    "string": (str,),
    "boolean": (bool,),
    "integer": (int,),
    "object": (dict,),
    "array": (list,),
}


def _loads_object(raw: Union[str, bytes]) -> Dict[str, Any]:
    """Decode JSON text that must hold an object."""
    try:
        parsed = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError, TypeError) as exc:
        raise ValueError(str(exc)) from exc
    if not isinstance(parsed, dict):
        raise ValueError(f"expected a JSON object, got {type(parsed).__name__}")
    return parsed


def _require_field(obj: Mapping[str, Any], name: str, kind: str) -> Any:
    """Return ``obj[name]`` if present and of JSON type ``kind``."""
    if name not in obj:
        raise ValueError(f"missing field `{name}`")
    value = obj[name]
    ok = isinstance(value, _KINDS[kind])
    # bool is an int subclass; JSON keeps them apart.
    if kind == "integer" and isinstance(value, bool):
        ok = False
    if not ok:
        raise ValueError(f"invalid type for field `{name}`: expected {kind}")
    return value


def _optional_field(obj: Mapping[str, Any], name: str, kind: str) -> Any:
    if obj.get(name) is None:
        return None
    return _require_field(obj, name, kind)


def _dumps(payload: Any) -> str:
    """Compact, order-preserving, ASCII-only JSON; equal inputs give equal bytes."""
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=True)


def _now_z() -> str:
    """Current UTC timestamp in ISO 8601 format with Z suffix."""
    return dt.datetime.now(dt.timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
