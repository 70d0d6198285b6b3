"""
Webhook signature verification.

The platform signs each delivery with HMAC-SHA256 over ``"<timestamp>.<body>"``
and sends ``layercode-signature: t=<timestamp>,v1=<hex digest>``.
"""

import hashlib
import hmac
import logging
import time
from typing import Optional

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "layercode-signature"
DEFAULT_TOLERANCE_SECONDS = 300


def sign_payload(payload: bytes, secret: str, timestamp: Optional[int] = None) -> str:
    """
    Build a signature header value for ``payload``.

    Args:
        payload: Raw request body
        secret: Shared webhook secret
        timestamp: Unix timestamp to sign (defaults to now)

    Returns:
        Header value in ``t=...,v1=...`` form
    """
    if timestamp is None:
        timestamp = int(time.time())
    signed = f"{timestamp}.".encode() + payload
    digest = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def verify_signature(
    payload: bytes,
    signature: Optional[str],
    secret: Optional[str],
    tolerance_seconds: int = DEFAULT_TOLERANCE_SECONDS,
    now: Optional[float] = None
) -> bool:
    """
    Check a signature header against the raw payload bytes.

    Returns:
        True only for a well-formed, fresh signature matching ``secret``
    """
    if not secret or not signature:
        return False

    parts = {}
    for part in signature.split(","):
        key, sep, value = part.strip().partition("=")
        if sep:
            parts[key] = value

    timestamp, digest = parts.get("t"), parts.get("v1")
    if not timestamp or not digest:
        return False

    try:
        timestamp_value = int(timestamp)
    except ValueError:
        return False

    current = time.time() if now is None else now
    if abs(current - timestamp_value) > tolerance_seconds:
        logger.warning("Webhook signature timestamp outside tolerance")
        return False

    expected = sign_payload(payload, secret, timestamp_value).split("v1=", 1)[1]
    return hmac.compare_digest(expected, digest)
