"""
Client for the PayMongo checkout-session API with retries, rate-limit
backoff and request metrics.
"""

import base64
import time
from typing import Any, Dict, Optional, cast
from urllib.parse import urljoin

import requests
import structlog

from booking_engine.config import HTTP_TIMEOUT_SECONDS, PAYMONGO_BASE_URL, PAYMONGO_SECRET_KEY
from booking_engine.errors import PaymentGatewayError
from booking_engine.metrics import gateway_latency, gateway_requests

logger = structlog.get_logger(__name__)

MAX_RETRIES = 2
RETRY_DELAY = 1.0
PAYMENT_METHOD_TYPES = ["gcash", "card", "paymaya", "grab_pay"]


def should_retry(res: Optional[requests.Response], err: Optional[Exception]) -> bool:
    """
    Determine whether the request should be retried based on response or error.

    Args:
        res (Optional[requests.Response]): Response object if available.
        err (Optional[Exception]): Exception raised by the request, if any.

    Returns:
        bool: True if the request should be retried, False otherwise.
    """
    if res is not None and res.status_code == 429:
        return True
    if isinstance(err, (requests.Timeout, requests.ConnectionError)):
        return True
    if res is not None and 500 <= res.status_code < 600:
        return True
    return False


def _auth_header() -> str:
    if not PAYMONGO_SECRET_KEY:
        raise PaymentGatewayError("PAYMONGO_SECRET_KEY is not configured")
    token = base64.b64encode(f"{PAYMONGO_SECRET_KEY}:".encode("utf-8")).decode("utf-8")
    return f"Basic {token}"


def _request(method: str, endpoint: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Send one API request, retrying timeouts, 429s and 5xx responses.

    Args:
        method (str): HTTP method.
        endpoint (str): Path relative to PAYMONGO_BASE_URL (e.g. 'checkout_sessions').
        payload (Optional[dict]): JSON body.

    Returns:
        Dict[str, Any]: Decoded JSON response.

    Raises:
        PaymentGatewayError: If the request fails after all retries or the
        provider answers with an error document.
    """
    url = urljoin(PAYMONGO_BASE_URL, endpoint)
    headers = {"Authorization": _auth_header(), "Content-Type": "application/json"}
    metric_endpoint = endpoint.split("/")[0]
    retries = 0

    while True:
        res: Optional[requests.Response] = None
        try:
            start_time = time.time()
            res = requests.request(
                method, url, headers=headers, json=payload, timeout=HTTP_TIMEOUT_SECONDS
            )
            gateway_latency.labels(endpoint=metric_endpoint).observe(time.time() - start_time)
            gateway_requests.labels(
                endpoint=metric_endpoint, status_code=str(res.status_code)
            ).inc()

            if should_retry(res, None) and retries < MAX_RETRIES:
                retries += 1
                logger.warning(
                    "gateway_retrying",
                    endpoint=metric_endpoint,
                    status_code=res.status_code,
                    attempt=retries,
                )
                time.sleep(RETRY_DELAY * retries)
                continue

            body = cast(Dict[str, Any], res.json())
            if body.get("errors") or not res.ok:
                detail = (body.get("errors") or [{}])[0].get("detail") or f"HTTP {res.status_code}"
                logger.error(
                    "gateway_error_response",
                    endpoint=metric_endpoint,
                    status_code=res.status_code,
                    errors=body.get("errors"),
                )
                raise PaymentGatewayError(detail)
            return body

        except requests.RequestException as err:
            logger.warning("gateway_request_failed", endpoint=metric_endpoint, error=str(err))
            retries += 1
            if retries > MAX_RETRIES or not should_retry(res, err):
                raise PaymentGatewayError(f"Could not reach payment gateway: {err}") from err
            time.sleep(RETRY_DELAY * retries)


def create_checkout_session(
    booking_id: str,
    unit_name: str,
    amount: int,
    success_url: str,
    cancel_url: str,
    billing: Dict[str, str],
) -> tuple[str, str]:
    """
    Create a hosted checkout session for a booking's down payment.

    The booking id travels in the session metadata and comes back in the
    checkout_session.payment.paid webhook.

    Args:
        booking_id (str): Booking ID (stored as metadata.booking_id).
        unit_name (str): Shown on the line item.
        amount (int): Amount to charge, in centavos.
        success_url (str): Redirect after payment.
        cancel_url (str): Redirect on cancel.
        billing (dict): name, email, phone.

    Returns:
        tuple[str, str]: (checkout session ID, hosted checkout URL)
    """
    payload = {
        "data": {
            "attributes": {
                "show_line_items": True,
                "line_items": [
                    {
                        "currency": "PHP",
                        "amount": amount,
                        "description": f"Reservation Downpayment for {unit_name}",
                        "name": "Booking Downpayment",
                        "quantity": 1,
                    }
                ],
                "payment_method_types": PAYMENT_METHOD_TYPES,
                "success_url": success_url,
                "cancel_url": cancel_url,
                "description": f"Booking ID: {booking_id} - {unit_name}",
                "billing": billing,
                "metadata": {"booking_id": booking_id},
                "send_email_receipt": True,
            }
        }
    }
    body = _request("POST", "checkout_sessions", payload)
    data = body["data"]
    return data["id"], data["attributes"]["checkout_url"]


def get_checkout_session(session_id: str) -> Dict[str, Any]:
    """Fetch a checkout session's attributes."""
    body = _request("GET", f"checkout_sessions/{session_id}")
    return cast(Dict[str, Any], body.get("data", {}).get("attributes", {}))


def is_session_paid(attributes: Dict[str, Any]) -> bool:
    """
    Decide whether a checkout session has been paid.

    Paid when the payment intent succeeded or any attached payment is 'paid'.
    """
    intent_status = (
        (attributes.get("payment_intent") or {}).get("attributes", {}).get("status")
    )
    payments = attributes.get("payments") or []
    return intent_status == "succeeded" or any(
        (p.get("attributes") or {}).get("status") == "paid" for p in payments
    )
