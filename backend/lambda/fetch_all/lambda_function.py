"""fetch_all/lambda_function.py — List every document of a Cloudant database.

Web action (IBM Cloud Functions docker skeleton). The host runs this module
with one argument: the raw HTTP request as JSON, merged with the action's
default parameters.

Parameters:
    iam_apikey   IBM Cloud IAM API key
    db_url       Cloudant base URL
    database     database name
    __ow_*       raw request metadata (ignored)

Flow:
    decode request → exchange API key for IAM token → GET /{database}/_all_docs

Output (stdout, always exit 0):
    {"statusCode": "200 OK", "body": {"err": false, "msg": "fetch_all execution complete!",
     "data": {"offset": 0, "rows": [...], "total_rows": N}}}
    {"statusCode": "200 OK", "body": {"err": true, "msg": "<stage failure>"}}
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Callable, Dict, List, Mapping, Optional

from cloudant_shared.cloudant import fetch_all_docs
from cloudant_shared.config import configure_logging
from cloudant_shared.envelope import InvocationRequest, decode_invocation, parse_invocation_params
from cloudant_shared.http_utils import _emit
from cloudant_shared.iam import exchange_api_key
from cloudant_shared.pipeline import Stage, execute

logger = logging.getLogger()

COMPONENT = "fetch_all"
SUCCESS_MSG = "fetch_all execution complete!"

# ---------------------------------------------------------------------------
# Stages
# ---------------------------------------------------------------------------


def _authenticate(ctx: Dict[str, Any]):
    return exchange_api_key(ctx["decode"].api_key)


def _query(ctx: Dict[str, Any]):
    request = ctx["decode"]
    return fetch_all_docs(ctx["authenticate"], request.db_url, request.database)


def _run(read_request: Callable[[], InvocationRequest]) -> Dict[str, Any]:
    stages: List[Stage] = [
        Stage("decode", lambda ctx: read_request()),
        Stage("authenticate", _authenticate),
        Stage("call", _query),
    ]
    return execute(
        COMPONENT,
        stages,
        {},
        result_stage="call",
        result_key="data",
        success_msg=SUCCESS_MSG,
    )


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def invoke(raw: Optional[str]) -> Dict[str, Any]:
    """Run the action on the raw argument string and return the envelope."""
    return _run(lambda: decode_invocation(raw))


def handler(params: Mapping[str, Any], context: Any = None) -> Dict[str, Any]:
    """Native runtime entry: parameters arrive already decoded."""
    return _run(lambda: parse_invocation_params(params))


def main(argv: Optional[List[str]] = None) -> int:
    configure_logging()
    args = sys.argv if argv is None else argv
    raw = args[1] if len(args) > 1 else None
    logger.info("%s invoked", COMPONENT)
    return _emit(invoke(raw))


if __name__ == "__main__":
    sys.exit(main())
