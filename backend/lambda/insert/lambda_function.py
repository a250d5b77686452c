"""insert/lambda_function.py — Insert one to-do document into Cloudant.

Web action (IBM Cloud Functions docker skeleton). The host runs this module
with one argument: the raw HTTP request as JSON, merged with the action's
default parameters. The request body arrives base64-encoded in ``__ow_body``:

    {"_id": "optional-id", "task": "write docs", "done": false}

Parameters:
    iam_apikey   IBM Cloud IAM API key
    db_url       Cloudant base URL
    database     database name
    __ow_body    base64 JSON document (required)
    __ow_*       other raw request metadata (ignored)

Flow:
    decode request + body → exchange API key for IAM token → POST /{database}

Output (stdout, always exit 0):
    {"statusCode": "200 OK", "body": {"err": false, "msg": "insert execution complete!",
     "inserted_record": {"id": "...", "ok": true, "rev": "..."}}}
    {"statusCode": "200 OK", "body": {"err": true, "msg": "<stage failure>"}}
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Callable, Dict, List, Mapping, Optional

from cloudant_shared.cloudant import insert_document
from cloudant_shared.config import configure_logging
from cloudant_shared.envelope import (
    InvocationRequest,
    decode_document,
    decode_invocation,
    parse_invocation_params,
)
from cloudant_shared.http_utils import _emit
from cloudant_shared.iam import exchange_api_key
from cloudant_shared.pipeline import Stage, execute

logger = logging.getLogger()

COMPONENT = "insert"
SUCCESS_MSG = "insert execution complete!"

# ---------------------------------------------------------------------------
# Stages
# ---------------------------------------------------------------------------


def _decode_with_body(read_request: Callable[[], InvocationRequest]):
    def _decode(ctx: Dict[str, Any]):
        request = read_request()
        ctx["document"] = decode_document(request.raw_body)
        return request

    return _decode


def _authenticate(ctx: Dict[str, Any]):
    return exchange_api_key(ctx["decode"].api_key)


def _store(ctx: Dict[str, Any]):
    request = ctx["decode"]
    return insert_document(
        ctx["authenticate"], request.db_url, request.database, ctx["document"]
    )


def _run(read_request: Callable[[], InvocationRequest]) -> Dict[str, Any]:
    stages: List[Stage] = [
        Stage("decode", _decode_with_body(read_request)),
        Stage("authenticate", _authenticate),
        Stage("call", _store),
    ]
    return execute(
        COMPONENT,
        stages,
        {},
        result_stage="call",
        result_key="inserted_record",
        success_msg=SUCCESS_MSG,
    )


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def invoke(raw: Optional[str]) -> Dict[str, Any]:
    """Run the action on the raw argument string and return the envelope."""
    return _run(lambda: decode_invocation(raw, require_body=True))


def handler(params: Mapping[str, Any], context: Any = None) -> Dict[str, Any]:
    """Native runtime entry: parameters arrive already decoded."""
    return _run(lambda: parse_invocation_params(params, require_body=True))


def main(argv: Optional[List[str]] = None) -> int:
    configure_logging()
    args = sys.argv if argv is None else argv
    raw = args[1] if len(args) > 1 else None
    logger.info("%s invoked", COMPONENT)
    return _emit(invoke(raw))


if __name__ == "__main__":
    sys.exit(main())
