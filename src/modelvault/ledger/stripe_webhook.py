"""Stripe checkout.session.completed handling for digital purchases."""

import hashlib
import hmac
import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any

from modelvault.common.exceptions import PurchaseValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PurchaseEvent:
    """One product's worth of a completed checkout."""

    session_id: str
    purchaser_id: str
    product_id: str
    asset_refs: list[str] = field(default_factory=list)


def verify_stripe_signature(
    payload: bytes,
    signature_header: str,
    webhook_secret: str,
    tolerance: int = 0,
    now: float | None = None,
) -> bool:
    """Verify Stripe webhook signature (v1 scheme).

    Stripe sends: t=<timestamp>,v1=<signature>[,v1=<signature>...]
    With tolerance > 0, timestamps older or newer than tolerance seconds fail.
    """
    if not signature_header or not webhook_secret:
        return False

    timestamp = ""
    candidates = []
    for item in signature_header.split(","):
        key, _, value = item.partition("=")
        key = key.strip()
        if key == "t":
            timestamp = value.strip()
        elif key == "v1":
            candidates.append(value.strip())
    if not timestamp or not candidates:
        return False

    if tolerance > 0:
        try:
            age = abs((now if now is not None else time.time()) - int(timestamp))
        except ValueError:
            return False
        if age > tolerance:
            return False

    signed_payload = f"{timestamp}.".encode() + payload
    computed = hmac.new(
        webhook_secret.encode(),
        signed_payload,
        hashlib.sha256,
    ).hexdigest()

    return any(hmac.compare_digest(computed, sig) for sig in candidates)


def parse_checkout_completed(event_data: dict[str, Any]) -> list[PurchaseEvent]:
    """Extract purchase events from a Stripe checkout.session.completed event.

    The checkout session carries ``metadata.digitalProductData``, a JSON
    object mapping product id to ``{"buyer": <user id>, "links": [keys]}``.
    A single-product session keys its ledger row by the Stripe session id;
    multi-product sessions use ``<session id>:<product id>`` per product.
    """
    event_type = event_data.get("type", "")
    if event_type != "checkout.session.completed":
        logger.debug("Ignoring Stripe event type: %s", event_type)
        return []

    session = event_data.get("data", {}).get("object", {}) or {}
    stripe_session_id = session.get("id", "")
    metadata = session.get("metadata") or {}
    raw = metadata.get("digitalProductData")
    if not raw:
        logger.info("Checkout %s has no digital products", stripe_session_id)
        return []

    try:
        products = json.loads(raw) if isinstance(raw, str) else raw
    except json.JSONDecodeError as e:
        raise PurchaseValidationError(f"Invalid digitalProductData: {e}") from e
    if not isinstance(products, dict):
        raise PurchaseValidationError("digitalProductData must be a JSON object")
    if not stripe_session_id:
        raise PurchaseValidationError("Checkout session id missing")

    multi = len(products) > 1
    events = []
    for product_id, entry in products.items():
        entry = entry if isinstance(entry, dict) else {}
        links = entry.get("links")
        events.append(PurchaseEvent(
            session_id=f"{stripe_session_id}:{product_id}" if multi else stripe_session_id,
            purchaser_id=entry.get("buyer", ""),
            product_id=product_id,
            asset_refs=list(links) if isinstance(links, list) else [],
        ))
    return events
