"""cloudant_shared.errors — Stage failures raised inside the action pipeline.

Every failure carries the caller-facing message verbatim; ``error_code`` is
only used for log classification.
"""

from __future__ import annotations

__all__ = [
    "Base64Error",
    "DecodeError",
    "PipelineError",
    "ResponseDecodeError",
    "TransportError",
]


class PipelineError(Exception):
    """Base class for failures that end an invocation with ``err: true``."""

    error_code = "pipeline_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class DecodeError(PipelineError):
    """Malformed top-level invocation payload or nested document body."""

    error_code = "decode_error"


class Base64Error(PipelineError):
    """The raw request body is not valid base64."""

    error_code = "base64_error"


class TransportError(PipelineError):
    """Connection failure or non-2xx response from IAM or Cloudant."""

    error_code = "transport_error"


class ResponseDecodeError(PipelineError):
    """IAM or Cloudant answered with a body that does not match its schema."""

    error_code = "response_decode_error"
