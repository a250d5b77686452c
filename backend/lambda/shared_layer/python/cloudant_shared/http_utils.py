"""cloudant_shared.http_utils — Response envelope building and emission.

Every invocation ends with exactly one envelope on stdout:

    {"statusCode": "200 OK", "body": {"err": false, "msg": "...", "data": {...}}}
    {"statusCode": "200 OK", "body": {"err": true, "msg": "..."}}

The status line never changes; ``body.err`` is the only outcome signal.
"""

from __future__ import annotations

import sys
from typing import Any, Dict, Optional, TextIO

from .config import EXIT_OK, STATUS_LINE
from .serialization import _dumps

__all__ = ["_emit", "_error", "_response", "_success"]


def _response(body: Dict[str, Any]) -> Dict[str, Any]:
    return {"statusCode": STATUS_LINE, "body": body}


def _success(message: str, key: str, payload: Any) -> Dict[str, Any]:
    """Success envelope; ``key`` is ``data`` for listings, ``inserted_record`` for writes."""
    return _response({"err": False, "msg": message, key: payload})


def _error(message: str) -> Dict[str, Any]:
    return _response({"err": True, "msg": message})


def _emit(envelope: Dict[str, Any], stream: Optional[TextIO] = None) -> int:
    """Write the envelope as one JSON line and return the process exit code."""
    out = stream if stream is not None else sys.stdout
    out.write(_dumps(envelope) + "\n")
    out.flush()
    return EXIT_OK
