"""
Prometheus metrics for booking transitions, commission settlement, webhooks,
the stale-booking reaper and outbound payment-gateway calls.

Metrics are exposed via the /metrics endpoint for scraping by Prometheus.

Example:
    >>> from booking_engine.metrics import booking_transitions
    >>> booking_transitions.labels(transition="confirm", outcome="applied").inc()
"""

from __future__ import annotations

from prometheus_client import Counter, Histogram

# =============================================================================
# Booking Lifecycle Metrics
# =============================================================================

booking_transitions = Counter(
    "booking_transitions_total",
    "Booking state machine transition attempts",
    ["transition", "outcome"],
)
"""
Counter for transition attempts.

Labels:
    transition: confirm, cancel or complete
    outcome: applied (state changed) or noop (idempotent, already past that state)
"""

bookings_created = Counter(
    "bookings_created_total",
    "Bookings created through intake",
)

# =============================================================================
# Commission Metrics
# =============================================================================

commissions_created = Counter(
    "commissions_created_total",
    "Commissions derived for bookings",
    ["source"],
)
"""
Labels:
    source: confirm (auto-derived on confirmation), claim (agent self-claim)
        or claim_request (admin-approved claim request)
"""

claim_request_reviews = Counter(
    "claim_request_reviews_total",
    "Admin decisions on agent claim requests",
    ["outcome"],
)
"""
Labels:
    outcome: approved or rejected
"""

commission_settlements = Counter(
    "commission_settlements_total",
    "Commission payout decisions",
    ["outcome"],
)

# =============================================================================
# Webhook & Reaper Metrics
# =============================================================================

webhook_events = Counter(
    "webhook_events_total",
    "Payment provider webhook deliveries",
    ["event_type", "outcome"],
)
"""
Labels:
    event_type: Provider event type (e.g. checkout_session.payment.paid)
    outcome: processed, duplicate, ignored, unauthorized, invalid or failed
"""

reaper_runs = Counter("reaper_runs_total", "Stale-booking sweeps executed")
reaper_cancelled = Counter("reaper_cancelled_total", "Bookings cancelled by the reaper")
reaper_item_failures = Counter(
    "reaper_item_failures_total",
    "Per-booking reaper failures (cancel errors, email errors and email timeouts)",
    ["reason"],
)

# =============================================================================
# Side Effects & Gateway Metrics
# =============================================================================

side_effect_failures = Counter(
    "side_effect_failures_total",
    "Fire-and-forget dispatches that failed and were only logged",
    ["sink"],
)
"""
Labels:
    sink: notification, audit or email
"""

gateway_requests = Counter(
    "gateway_requests_total",
    "Outbound payment gateway requests",
    ["endpoint", "status_code"],
)

gateway_latency = Histogram(
    "gateway_latency_seconds",
    "Outbound payment gateway request latency in seconds",
    ["endpoint"],
    buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, float("inf")),
)
