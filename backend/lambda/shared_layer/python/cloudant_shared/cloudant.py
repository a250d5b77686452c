"""cloudant_shared.cloudant — Minimal Cloudant REST client.

Example GET {db_url}/{database}/_all_docs response:
    {
        "offset": 0,
        "rows": [
            {
                "id": "exampleid",
                "key": "exampleid",
                "value": {"rev": "1-967a00dff5e02add41819138abb3284d"}
            }
        ],
        "total_rows": 1
    }

Example POST {db_url}/{database} response:
    {"id": "exampleid", "ok": true, "rev": "1-967a00dff5e02add41819138abb3284d"}
"""

from __future__ import annotations

import http.client
import logging
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from . import config
from .envelope import DocumentRequestBody
from .errors import ResponseDecodeError, TransportError
from .iam import BearerToken
from .serialization import _dumps, _loads_object, _require_field

logger = logging.getLogger(__name__)

__all__ = [
    "AllDocsResult",
    "DocumentSummary",
    "WriteResult",
    "fetch_all_docs",
    "insert_document",
]


@dataclass(frozen=True)
class DocumentSummary:
    id: str
    key: str
    rev: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "key": self.key, "value": {"rev": self.rev}}

    @classmethod
    def from_row(cls, row: Any) -> "DocumentSummary":
        if not isinstance(row, dict):
            raise ValueError("invalid type for row: expected object")
        value = _require_field(row, "value", "object")
        return cls(
            id=_require_field(row, "id", "string"),
            key=_require_field(row, "key", "string"),
            rev=_require_field(value, "rev", "string"),
        )


@dataclass(frozen=True)
class AllDocsResult:
    offset: int
    rows: List[DocumentSummary]
    total_rows: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "offset": self.offset,
            "rows": [row.to_dict() for row in self.rows],
            "total_rows": self.total_rows,
        }

    @classmethod
    def from_response(cls, payload: Dict[str, Any]) -> "AllDocsResult":
        return cls(
            offset=_require_field(payload, "offset", "integer"),
            rows=[DocumentSummary.from_row(r) for r in _require_field(payload, "rows", "array")],
            total_rows=_require_field(payload, "total_rows", "integer"),
        )


@dataclass(frozen=True)
class WriteResult:
    id: str
    ok: bool
    rev: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "ok": self.ok, "rev": self.rev}

    @classmethod
    def from_response(cls, payload: Dict[str, Any]) -> "WriteResult":
        return cls(
            id=_require_field(payload, "id", "string"),
            ok=_require_field(payload, "ok", "boolean"),
            rev=_require_field(payload, "rev", "string"),
        )


_ALLOWED_SCHEMES = ("http", "https")


def _database_url(db_url: str, database: str, *suffix: str) -> str:
    scheme = urllib.parse.urlsplit(db_url).scheme.lower()
    if scheme not in _ALLOWED_SCHEMES:
        raise TransportError(
            f"Failure querying Cloudant: unsupported URL scheme {scheme or 'none'!r}"
        )
    parts = [db_url.rstrip("/"), urllib.parse.quote(database, safe="")]
    parts.extend(suffix)
    return "/".join(parts)


def _call(
    method: str,
    url: str,
    headers: Dict[str, str],
    timeout: Optional[float],
    data: Optional[bytes] = None,
) -> Dict[str, Any]:
    """Send one request and decode its JSON object body, all or nothing."""
    try:
        req = urllib.request.Request(url, data=data, method=method, headers=headers)
        with urllib.request.urlopen(req, timeout=timeout or config.HTTP_TIMEOUT_SECONDS) as resp:
            status = int(getattr(resp, "status", 200) or 200)
            raw_body = resp.read()
    except urllib.error.HTTPError as exc:
        logger.warning("Cloudant %s %s rejected: http_%s", method, url, exc.code)
        raise TransportError(f"Failure querying Cloudant: {exc}") from exc
    except (OSError, ValueError, http.client.HTTPException) as exc:
        reason = getattr(exc, "reason", exc)
        logger.warning("Cloudant %s %s failed: %s", method, url, reason)
        raise TransportError(f"Failure querying Cloudant: {reason}") from exc

    if status < 200 or status >= 300:
        raise TransportError(f"Failure querying Cloudant: http_{status}")

    try:
        return _loads_object(raw_body)
    except ValueError as exc:
        raise ResponseDecodeError(f"Failure deserializing Cloudant response: {exc}") from exc


def fetch_all_docs(
    token: BearerToken,
    db_url: str,
    database: str,
    *,
    timeout: Optional[float] = None,
) -> AllDocsResult:
    """GET /{database}/_all_docs."""
    payload = _call(
        "GET",
        _database_url(db_url, database, "_all_docs"),
        {
            "Authorization": token.authorization,
            "Accept": "application/json",
        },
        timeout,
    )
    try:
        result = AllDocsResult.from_response(payload)
    except ValueError as exc:
        raise ResponseDecodeError(f"Failure deserializing Cloudant response: {exc}") from exc
    logger.info("Cloudant listing returned %d of %d rows", len(result.rows), result.total_rows)
    return result


def insert_document(
    token: BearerToken,
    db_url: str,
    database: str,
    document: DocumentRequestBody,
    *,
    timeout: Optional[float] = None,
) -> WriteResult:
    """POST /{database} with the document as the JSON body."""
    payload = _call(
        "POST",
        _database_url(db_url, database),
        {
            "Authorization": token.authorization,
            "Accept": "application/json",
            "Content-Type": "application/json",
        },
        timeout,
        data=_dumps(document.to_dict()).encode("utf-8"),
    )
    try:
        result = WriteResult.from_response(payload)
    except ValueError as exc:
        raise ResponseDecodeError(f"Failure deserializing Cloudant response: {exc}") from exc
    logger.info("Cloudant insert stored id=%s rev=%s", result.id, result.rev)
    return result
