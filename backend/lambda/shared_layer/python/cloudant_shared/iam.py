"""cloudant_shared.iam — IBM Cloud IAM API-key → bearer token exchange.

Reference request:
    curl -X POST "https://iam.cloud.ibm.com/identity/token" \
        --header 'Content-Type: application/x-www-form-urlencoded' \
        --header 'Accept: application/json' \
        --data-urlencode 'grant_type=urn:ibm:params:oauth:grant-type:apikey' \
        --data-urlencode 'apikey={api_key}'

Example response:
    {
        "access_token": "<omitted>",
        "refresh_token": "not_supported",
        "token_type": "Bearer",
        "expires_in": 3600,
        "expiration": 1616239535,
        "scope": "ibm openid"
    }

A token is requested on every invocation and dropped when it ends.
"""

from __future__ import annotations

import http.client
import logging
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import jwt

from . import config
from .errors import ResponseDecodeError, TransportError
from .serialization import _loads_object, _require_field

logger = logging.getLogger(__name__)

__all__ = ["BearerToken", "exchange_api_key", "token_claims"]


@dataclass(frozen=True)
class BearerToken:
    access_token: str = field(repr=False)
    refresh_token: str = field(repr=False)
    token_type: str
    expires_in: int
    expiration: int
    scope: str

    @property
    def authorization(self) -> str:
        return f"Bearer {self.access_token}"

    @classmethod
    def from_response(cls, payload: Dict[str, Any]) -> "BearerToken":
        return cls(
            access_token=_require_field(payload, "access_token", "string"),
            refresh_token=_require_field(payload, "refresh_token", "string"),
            token_type=_require_field(payload, "token_type", "string"),
            expires_in=_require_field(payload, "expires_in", "integer"),
            expiration=_require_field(payload, "expiration", "integer"),
            scope=_require_field(payload, "scope", "string"),
        )


def exchange_api_key(
    api_key: str,
    *,
    token_url: Optional[str] = None,
    timeout: Optional[float] = None,
) -> BearerToken:
    """Trade an IAM API key for a short-lived bearer token.

    Raises:
        TransportError: connection failure or any non-2xx answer. The reason
            is logged but not surfaced to the caller.
        ResponseDecodeError: the body is not a complete token response.
    """
    url = token_url or config.IAM_TOKEN_URL
    form = urllib.parse.urlencode(
        {"apikey": api_key, "grant_type": config.IAM_GRANT_TYPE}
    ).encode("utf-8")
    if urllib.parse.urlsplit(url).scheme.lower() not in ("http", "https"):
        logger.warning("IAM token URL has unsupported scheme: %r", url)
        raise TransportError("Failure requesting IAM token")

    try:
        req = urllib.request.Request(
            url,
            method="POST",
            data=form,
            headers={
                "Content-Type": "application/x-www-form-urlencoded",
                "Accept": "application/json",
            },
        )
        with urllib.request.urlopen(req, timeout=timeout or config.HTTP_TIMEOUT_SECONDS) as resp:
            status = int(getattr(resp, "status", 200) or 200)
            raw_body = resp.read()
    except urllib.error.HTTPError as exc:
        logger.warning("IAM token request rejected: http_%s", exc.code)
        raise TransportError("Failure requesting IAM token") from exc
    except (OSError, ValueError, http.client.HTTPException) as exc:
        logger.warning("IAM token request failed: %s", getattr(exc, "reason", exc))
        raise TransportError("Failure requesting IAM token") from exc

    if status < 200 or status >= 300:
        logger.warning("IAM token request returned http_%s", status)
        raise TransportError("Failure requesting IAM token")

    try:
        token = BearerToken.from_response(_loads_object(raw_body))
    except ValueError as exc:
        raise ResponseDecodeError(f"Failure deserializing IAM response: {exc}") from exc

    claims = token_claims(token)
    logger.info(
        "IAM token issued: type=%s expires_in=%s iam_id=%s",
        token.token_type,
        token.expires_in,
        claims.get("iam_id") or claims.get("sub") or "-",
    )
    return token


def token_claims(token: BearerToken) -> Dict[str, Any]:
    """Read the access token's claims without verifying it. Logging only."""
    try:
        return jwt.decode(token.access_token, options={"verify_signature": False})
    except jwt.PyJWTError:
        return {}
