"""
Slack request signature verification.

Slack signs every webhook with an HMAC-SHA256 over ``version:timestamp:body``
using the app's signing secret and sends it as ``<version>=<hexdigest>``.
"""

import hashlib
import hmac
import time
from typing import Mapping, Optional

import structlog

logger = structlog.get_logger(__name__)

SIGNATURE_HEADER = "X-Slack-Signature"
TIMESTAMP_HEADER = "X-Slack-Request-Timestamp"


class AuthError(Exception):
    """Raised when a request fails signature verification."""

    def __init__(self, reason: str = "signature mismatch"):
        super().__init__("Slack authorisation failed.")
        self.reason = reason


def _get_header(headers: Mapping[str, str], name: str) -> Optional[str]:
    """Case-insensitive header lookup."""
    value = headers.get(name)
    if value is not None:
        return value
    lowered = name.lower()
    for key, candidate in headers.items():
        if key.lower() == lowered:
            return candidate
    return None


def compute_signature(version: str, timestamp: str, raw_body: str, signing_secret: str) -> str:
    """Compute the hex HMAC-SHA256 digest Slack expects for a request."""
    basestring = f"{version}:{timestamp}:{raw_body}"
    return hmac.new(
        signing_secret.encode(),
        basestring.encode(),
        hashlib.sha256,
    ).hexdigest()


def verify_signature(signature: str, timestamp: str, raw_body: str, signing_secret: str,
                     version: str = "v0", max_age: Optional[int] = None,
                     now: Optional[float] = None) -> str:
    """Verify a ``<version>=<hexdigest>`` signature and return the digest.

    The header version must equal ``version``. ``max_age`` enables a
    replay window check on ``timestamp``; it is off unless configured.
    """
    supplied_version, separator, supplied = signature.partition("=")
    if not separator or not supplied_version or not supplied:
        raise AuthError("malformed signature header")
    if supplied_version != version:
        raise AuthError("unsupported signature version")

    if max_age is not None:
        try:
            request_time = int(timestamp)
        except ValueError:
            raise AuthError("malformed timestamp") from None
        current = time.time() if now is None else now
        if abs(current - request_time) > max_age:
            raise AuthError("stale timestamp")

    expected = compute_signature(version, timestamp, raw_body, signing_secret)
    if not hmac.compare_digest(expected, supplied):
        raise AuthError("signature mismatch")

    return expected


def verify_request(headers: Mapping[str, str], raw_body: str, signing_secret: str,
                   version: str = "v0", max_age: Optional[int] = None,
                   now: Optional[float] = None) -> str:
    """Verify the Slack signature headers of an inbound request."""
    signature = _get_header(headers, SIGNATURE_HEADER)
    timestamp = _get_header(headers, TIMESTAMP_HEADER)

    if not signature or not timestamp:
        logger.warning("Request missing signature headers")
        raise AuthError("missing signature headers")

    try:
        return verify_signature(signature, timestamp, raw_body, signing_secret,
                                version=version, max_age=max_age, now=now)
    except AuthError as e:
        logger.warning("Request signature rejected", reason=e.reason)
        raise
