from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal
import logging
import uuid
from typing import Any, Optional

from fastapi import HTTPException

from rifa.core.config import settings
from rifa.db import store
from rifa.db.connection import run_transaction
from rifa.integrations.stripe_api import PaymentGatewayError, get_gateway
from rifa.models.schemas import PaymentIntentCreate

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")

WEBHOOK_STATUSES = {
    "payment_intent.succeeded": "succeeded",
    "payment_intent.payment_failed": "failed",
    "payment_intent.processing": "processing",
    "payment_intent.requires_action": "requires_action",
}


def _gateway_failure(action: str) -> HTTPException:
    logger.exception("Payment processor failed to %s", action)
    return HTTPException(status_code=502, detail="Payment processor error")


def create_payment_intent(raffle_id: uuid.UUID, payload: PaymentIntentCreate) -> dict:
    raffle = run_transaction(lambda conn: store.get_raffle(conn, raffle_id))
    if not raffle:
        raise HTTPException(status_code=404, detail="Raffle not found")
    amount = (Decimal(raffle["price_per_number"]) * payload.number_count).quantize(CENTS)
    currency = (raffle.get("currency") or "brl").lower()
    try:
        intent = get_gateway().create_intent(
            amount=int(amount * 100),
            currency=currency,
            metadata={
                "raffle_id": str(raffle_id),
                "number_count": str(payload.number_count),
                "customer_name": payload.customer_name,
            },
            receipt_email=payload.customer_email,
            payment_method=payload.payment_method,
            pix_expires_seconds=settings.pix_expires_seconds,
        )
    except PaymentGatewayError as exc:
        raise _gateway_failure("create a payment intent") from exc

    payment = run_transaction(
        lambda conn: store.insert_payment(
            conn,
            raffle_id=raffle_id,
            payment_intent_id=intent.id,
            amount=amount,
            currency=currency,
            status=intent.status,
            payment_method=payload.payment_method,
            customer_name=payload.customer_name,
            customer_email=payload.customer_email,
        )
    )
    pix = None
    if payload.payment_method == "pix" and intent.pix:
        pix = {
            "qr_code": intent.pix.qr_code,
            "qr_code_data": intent.pix.qr_code_data,
            "expires_at": datetime.now(timezone.utc)
            + timedelta(seconds=settings.pix_expires_seconds),
        }
    return {
        "payment_id": str(payment["id"]),
        "client_secret": intent.client_secret,
        "payment_method": payload.payment_method,
        "amount": amount,
        "currency": currency,
        "pix": pix,
    }


def update_payment_status(payment_intent_id: str, status: str) -> dict:
    row = run_transaction(
        lambda conn: store.update_payment_status(conn, payment_intent_id, status)
    )
    if not row:
        raise HTTPException(status_code=404, detail="Payment not found")
    logger.info("Payment %s is now %s", row["id"], status)
    return {"payment_id": str(row["id"]), "raffle_id": str(row["raffle_id"]), "status": status}


def check_payment_status(payment_intent_id: str) -> dict:
    try:
        intent = get_gateway().retrieve_intent(payment_intent_id)
    except PaymentGatewayError as exc:
        raise _gateway_failure("retrieve a payment intent") from exc
    if intent.status == "succeeded":
        update_payment_status(payment_intent_id, "succeeded")
    return {"status": intent.status, "is_paid": intent.status == "succeeded"}


def attach_payment(conn, raffle_id: uuid.UUID, payment_id: uuid.UUID, purchase_id: uuid.UUID) -> None:
    """Link a payment of ``raffle_id`` to one of its purchases; each side links at most once."""
    payment = store.lock_payment(conn, payment_id)
    if not payment or payment["raffle_id"] != raffle_id:
        raise HTTPException(status_code=404, detail="Payment not found for this raffle")
    if payment["purchase_id"] is not None:
        raise HTTPException(status_code=409, detail="Payment is already linked to a purchase")
    purchase = store.lock_purchase(conn, purchase_id)
    if not purchase or purchase["raffle_id"] != raffle_id:
        raise HTTPException(status_code=404, detail="Purchase not found for this raffle")
    if purchase["payment_id"] is not None:
        raise HTTPException(status_code=409, detail="Purchase already has a payment")
    if not store.link_payment(conn, payment_id, purchase_id):
        raise HTTPException(status_code=409, detail="Payment could not be linked")


def link_payment_to_purchase(
    raffle_id: uuid.UUID, payment_id: uuid.UUID, purchase_id: uuid.UUID
) -> dict:
    run_transaction(lambda conn: attach_payment(conn, raffle_id, payment_id, purchase_id))
    logger.info("Payment %s linked to purchase %s", payment_id, purchase_id)
    return {"payment_id": str(payment_id), "purchase_id": str(purchase_id)}


def handle_webhook_event(event: dict[str, Any]) -> Optional[str]:
    """Apply a verified webhook event; events that match no stored payment are only logged."""
    event_type = event.get("type", "")
    intent = (event.get("data") or {}).get("object") or {}
    status = WEBHOOK_STATUSES.get(event_type)
    if status is None:
        logger.info("Ignoring webhook event %s", event_type)
        return None
    intent_id = intent.get("id")
    if not intent_id:
        logger.warning("Webhook event %s has no payment intent id", event_type)
        return None
    row = run_transaction(lambda conn: store.update_payment_status(conn, intent_id, status))
    if not row:
        logger.warning("Webhook event %s for unknown PaymentIntent %s", event_type, intent_id)
        return None
    logger.info("PaymentIntent %s for %s is %s", intent_id, intent.get("amount"), status)
    return status
