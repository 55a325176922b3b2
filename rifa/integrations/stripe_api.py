"""Thin Stripe REST client plus webhook signature checking.

Only the PaymentIntent calls the raffle flow needs are covered: create (card or
PIX) and retrieve. Amounts are in the smallest currency unit (centavos).
"""
from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
import hashlib
import hmac
import json
import logging
import time
from typing import Any, Optional

import httpx

from rifa.core.config import settings

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE_SECONDS = 300


class PaymentGatewayError(RuntimeError):
    """The payment processor could not be reached or rejected the call."""


class WebhookSignatureError(ValueError):
    """A webhook payload did not carry a valid signature."""


@dataclass(frozen=True)
class PixInstructions:
    qr_code: Optional[str]
    qr_code_data: Optional[str]


@dataclass(frozen=True)
class PaymentIntent:
    id: str
    client_secret: Optional[str]
    status: str
    amount: int
    currency: str
    pix: Optional[PixInstructions] = None


def encode_form(data: dict[str, Any], prefix: str = "") -> dict[str, str]:
    """Flatten nested dicts/lists into Stripe's bracketed form keys."""
    encoded: dict[str, str] = {}
    for key, value in data.items():
        name = f"{prefix}[{key}]" if prefix else str(key)
        if value is None:
            continue
        if isinstance(value, dict):
            encoded.update(encode_form(value, name))
        elif isinstance(value, (list, tuple)):
            encoded.update(encode_form(dict(enumerate(value)), name))
        elif isinstance(value, bool):
            encoded[name] = "true" if value else "false"
        else:
            encoded[name] = str(value)
    return encoded


def parse_intent(payload: dict[str, Any]) -> PaymentIntent:
    next_action = payload.get("next_action") or {}
    qr = next_action.get("display_pix_qr_code")
    pix = None
    if qr:
        pix = PixInstructions(qr_code=qr.get("image_url_png"), qr_code_data=qr.get("data"))
    return PaymentIntent(
        id=payload["id"],
        client_secret=payload.get("client_secret"),
        status=payload.get("status", "unknown"),
        amount=int(payload.get("amount") or 0),
        currency=payload.get("currency", ""),
        pix=pix,
    )


class StripeGateway:
    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_seconds: float = 10.0,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.stripe_secret_key
        self.base_url = (base_url or settings.stripe_api_base).rstrip("/")
        self.timeout_seconds = timeout_seconds

    def _request(self, method: str, path: str, data: Optional[dict[str, Any]] = None) -> dict:
        if not self.api_key:
            raise PaymentGatewayError("Stripe secret key is not configured")
        headers = {"Authorization": f"Bearer {self.api_key}"}
        form = encode_form(data) if data else None
        try:
            with httpx.Client(base_url=self.base_url, timeout=self.timeout_seconds) as client:
                response = client.request(method, path, data=form, headers=headers)
        except httpx.HTTPError as exc:
            raise PaymentGatewayError(f"Stripe request failed: {exc}") from exc
        try:
            payload = response.json()
        except ValueError as exc:
            raise PaymentGatewayError(
                f"Stripe returned a non-JSON response ({response.status_code})"
            ) from exc
        if response.status_code >= 400:
            error = payload.get("error") or {}
            raise PaymentGatewayError(error.get("message") or f"Stripe error {response.status_code}")
        return payload

    def create_intent(
        self,
        *,
        amount: int,
        currency: str,
        metadata: dict[str, str],
        receipt_email: Optional[str] = None,
        payment_method: str = "card",
        pix_expires_seconds: int = 3600,
    ) -> PaymentIntent:
        data: dict[str, Any] = {
            "amount": amount,
            "currency": currency,
            "metadata": metadata,
            "receipt_email": receipt_email,
        }
        if payment_method == "pix":
            data["payment_method_types"] = ["pix"]
            data["payment_method_options"] = {
                "pix": {"expires_after_seconds": pix_expires_seconds}
            }
        else:
            data["automatic_payment_methods"] = {"enabled": True}
        intent = parse_intent(self._request("POST", "/payment_intents", data))
        logger.info("Created PaymentIntent %s (%s %s)", intent.id, intent.amount, intent.currency)
        return intent

    def retrieve_intent(self, intent_id: str) -> PaymentIntent:
        return parse_intent(self._request("GET", f"/payment_intents/{intent_id}"))


@lru_cache(maxsize=1)
def get_gateway() -> StripeGateway:
    return StripeGateway()


def _parse_signature_header(header: str) -> tuple[int, list[str]]:
    timestamp: Optional[int] = None
    signatures: list[str] = []
    for part in header.split(","):
        key, _, value = part.strip().partition("=")
        if key == "t":
            try:
                timestamp = int(value)
            except ValueError as exc:
                raise WebhookSignatureError("Malformed signature timestamp") from exc
        elif key == "v1" and value:
            signatures.append(value)
    if timestamp is None or not signatures:
        raise WebhookSignatureError("Signature header is missing a timestamp or v1 signature")
    return timestamp, signatures


def verify_webhook(
    payload: bytes,
    signature_header: Optional[str],
    secret: str,
    tolerance: int = DEFAULT_TOLERANCE_SECONDS,
    now: Optional[float] = None,
) -> dict[str, Any]:
    """Check a ``Stripe-Signature`` header against the raw body and return the event."""
    if not secret:
        raise WebhookSignatureError("Webhook signing secret is not configured")
    if not signature_header:
        raise WebhookSignatureError("Missing signature header")
    timestamp, signatures = _parse_signature_header(signature_header)
    signed = f"{timestamp}.".encode("utf-8") + payload
    expected = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    if not any(hmac.compare_digest(expected, candidate) for candidate in signatures):
        raise WebhookSignatureError("No signature matches the payload")
    current = time.time() if now is None else now
    if tolerance and abs(current - timestamp) > tolerance:
        raise WebhookSignatureError("Signature timestamp is outside the tolerance window")
    try:
        return json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise WebhookSignatureError("Webhook payload is not valid JSON") from exc
