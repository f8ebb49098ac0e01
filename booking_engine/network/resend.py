"""Minimal client for the Resend transactional email API."""

from typing import Any, Dict

import requests
import structlog

from booking_engine.config import EMAIL_FROM, HTTP_TIMEOUT_SECONDS, RESEND_API_KEY

logger = structlog.get_logger(__name__)

RESEND_URL = "https://api.resend.com/emails"


def send_email(to: str, subject: str, html: str) -> Dict[str, Any]:
    """
    Send one HTML email.

    Args:
        to (str): Recipient address.
        subject (str): Subject line.
        html (str): HTML body.

    Returns:
        Dict[str, Any]: Provider response (contains the message id).

    Raises:
        RuntimeError: If RESEND_API_KEY is not configured.
        requests.RequestException: If the provider rejects or the request fails.
    """
    if not RESEND_API_KEY:
        raise RuntimeError("RESEND_API_KEY is not configured")

    res = requests.post(
        RESEND_URL,
        headers={"Authorization": f"Bearer {RESEND_API_KEY}"},
        json={"from": EMAIL_FROM, "to": [to], "subject": subject, "html": html},
        timeout=HTTP_TIMEOUT_SECONDS,
    )
    res.raise_for_status()
    body: Dict[str, Any] = res.json()
    logger.debug("email_sent", to=to, subject=subject, message_id=body.get("id"))
    return body
