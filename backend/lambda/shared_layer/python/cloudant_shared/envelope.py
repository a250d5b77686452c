"""cloudant_shared.envelope — Decode the raw web-action invocation payload.

The host passes the whole HTTP request as one JSON object, merged with the
action's default parameters:

    {
        "iam_apikey": "<secret>",
        "db_url": "https://<account>.cloudantnosqldb.appdomain.cloud",
        "database": "todos",
        "__ow_method": "post",
        "__ow_query": "",
        "__ow_body": "eyJ0YXNrIjoid3JpdGUgZG9jcyIsImRvbmUiOmZhbHNlfQ==",
        "__ow_headers": {"content-type": "application/json", ...},
        "__ow_path": ""
    }

Only ``iam_apikey``, ``db_url`` and ``database`` (plus ``__ow_body`` for
writes) are interpreted. ``__ow_*`` transport keys are carried as an opaque
bag; any other custom parameter is ignored.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from .errors import Base64Error, DecodeError
from .serialization import _loads_object, _optional_field, _require_field

__all__ = [
    "DocumentRequestBody",
    "InvocationRequest",
    "decode_document",
    "decode_invocation",
    "parse_invocation_params",
]

_TRANSPORT_PREFIX = "__ow_"
_BODY_KEY = "__ow_body"


@dataclass(frozen=True)
class InvocationRequest:
    api_key: str = field(repr=False)
    db_url: str
    database: str
    raw_body: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DocumentRequestBody:
    task: str
    done: bool
    doc_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = {}
        if self.doc_id is not None:
            doc["_id"] = self.doc_id
        doc["task"] = self.task
        doc["done"] = self.done
        return doc


def decode_invocation(raw: Optional[str], *, require_body: bool = False) -> InvocationRequest:
    """Decode the raw argument string into an ``InvocationRequest``.

    Raises DecodeError on malformed JSON, a non-object payload, or a missing
    or mistyped required field. Nothing is defaulted.
    """
    try:
        params = _loads_object(raw if raw is not None else "")
    except ValueError as exc:
        raise DecodeError(f"Failure parsing raw HTTP request: {exc}") from exc
    return parse_invocation_params(params, require_body=require_body)


def parse_invocation_params(
    params: Mapping[str, Any], *, require_body: bool = False
) -> InvocationRequest:
    """Build an ``InvocationRequest`` from already-decoded parameters."""
    if not isinstance(params, Mapping):
        raise DecodeError(
            "Failure parsing raw HTTP request: expected a JSON object, "
            f"got {type(params).__name__}"
        )
    try:
        api_key = _require_field(params, "iam_apikey", "string")
        db_url = _require_field(params, "db_url", "string")
        database = _require_field(params, "database", "string")
        if require_body:
            raw_body = _require_field(params, _BODY_KEY, "string")
        else:
            raw_body = _optional_field(params, _BODY_KEY, "string")
    except ValueError as exc:
        raise DecodeError(f"Failure parsing raw HTTP request: {exc}") from exc

    metadata = {
        key: value
        for key, value in params.items()
        if key.startswith(_TRANSPORT_PREFIX) and key != _BODY_KEY
    }
    return InvocationRequest(
        api_key=api_key,
        db_url=db_url,
        database=database,
        raw_body=raw_body,
        metadata=metadata,
    )


def decode_document(raw_body: str) -> DocumentRequestBody:
    """base64 → bytes → JSON → ``DocumentRequestBody``; both steps must succeed."""
    try:
        data = base64.b64decode(raw_body, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise Base64Error(f"Failure decoding base64 body: {exc}") from exc

    try:
        obj = _loads_object(data)
        doc_id = _optional_field(obj, "_id", "string")
        task = _require_field(obj, "task", "string")
        done = _require_field(obj, "done", "boolean")
    except ValueError as exc:
        raise DecodeError(f"Failure deserializing decoded bytes: {exc}") from exc
    return DocumentRequestBody(task=task, done=done, doc_id=doc_id)
