"""cloudant_shared.config — Environment configuration and logging setup.

Optional environment variables:
    IAM_TOKEN_URL          — default: https://iam.cloud.ibm.com/identity/token
    HTTP_TIMEOUT_SECONDS   — per-request socket timeout, default: 30
    LOG_LEVEL              — default: INFO
"""

from __future__ import annotations

import logging
import os
import sys

__all__ = [
    "EXIT_OK",
    "HTTP_TIMEOUT_SECONDS",
    "IAM_GRANT_TYPE",
    "IAM_TOKEN_URL",
    "LOG_LEVEL",
    "STATUS_LINE",
    "configure_logging",
]


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name, "")
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


# ---------------------------------------------------------------------------
# Configuration (read from env; callers may override at import time)
# ---------------------------------------------------------------------------

IAM_TOKEN_URL: str = os.environ.get(
    "IAM_TOKEN_URL", "https://iam.cloud.ibm.com/identity/token"
)
IAM_GRANT_TYPE = "urn:ibm:params:oauth:grant-type:apikey"
HTTP_TIMEOUT_SECONDS: float = _float_env("HTTP_TIMEOUT_SECONDS", 30.0)
LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO").upper()

# Same for every outcome; body.err carries the result.
STATUS_LINE = "200 OK"
EXIT_OK = 0

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level: str = "") -> None:
    """Route log records to stderr; stdout carries only the response envelope."""
    root = logging.getLogger()
    try:
        root.setLevel(level or LOG_LEVEL)
    except ValueError:
        root.setLevel(logging.INFO)
    for handler in list(root.handlers):
        if getattr(handler, "stream", None) is sys.stdout:
            root.removeHandler(handler)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        root.addHandler(handler)
