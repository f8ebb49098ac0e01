"""Payment provider webhook signature verification."""

from __future__ import annotations

import hashlib
import hmac
from typing import Optional

import structlog

from booking_engine.errors import AuthenticationError

logger = structlog.get_logger(__name__)

SIGNATURE_HEADER = "paymongo-signature"


def parse_signature_header(header: str) -> dict[str, str]:
    """
    Split a `t=<ts>,te=<test sig>,li=<live sig>` header into its parts.

    Unknown keys are kept; parts without '=' are dropped.
    """
    parts: dict[str, str] = {}
    for part in header.split(","):
        key, sep, value = part.strip().partition("=")
        if sep and key:
            parts[key] = value.strip()
    return parts


def compute_signature(secret: str, timestamp: str, raw_body: bytes) -> str:
    """Hex HMAC-SHA256 of "{timestamp}.{raw_body}"."""
    message = timestamp.encode("utf-8") + b"." + raw_body
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def verify_webhook_signature(
    raw_body: bytes, header: Optional[str], secret: Optional[str]
) -> None:
    """
    Authenticate a webhook delivery.

    The header carries a timestamp and up to two candidate digests (test-mode
    `te` and live-mode `li`); the delivery is authentic if the computed digest
    matches either one.

    Args:
        raw_body: Request body exactly as received
        header: Value of the paymongo-signature header, if any
        secret: Shared webhook secret; None disables verification

    Raises:
        AuthenticationError: Secret configured and the header is missing,
            malformed or matches neither candidate
    """
    if not secret:
        logger.warning("webhook_signature_check_disabled", reason="no webhook secret configured")
        return

    if not header:
        raise AuthenticationError("Missing webhook signature")

    parts = parse_signature_header(header)
    timestamp = parts.get("t")
    candidates = [sig for sig in (parts.get("te"), parts.get("li")) if sig]
    if not timestamp or not candidates:
        raise AuthenticationError("Malformed webhook signature")

    expected = compute_signature(secret, timestamp, raw_body)
    if not any(hmac.compare_digest(expected, candidate) for candidate in candidates):
        raise AuthenticationError("Invalid webhook signature")
