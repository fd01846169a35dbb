"""
Request authentication for RallyBot.
"""

from .signature import (
    AuthError,
    SIGNATURE_HEADER,
    TIMESTAMP_HEADER,
    compute_signature,
    verify_request,
    verify_signature,
)

__all__ = [
    "AuthError",
    "SIGNATURE_HEADER",
    "TIMESTAMP_HEADER",
    "compute_signature",
    "verify_request",
    "verify_signature",
]
