from __future__ import annotations

from decimal import Decimal
import uuid
from typing import Iterable

from fastapi import HTTPException

from rifa.db.connection import fetch_all, fetch_one

PAYMENT_COLUMNS = """
    id, raffle_id, purchase_id, payment_intent_id, amount, currency, status,
    payment_method, customer_name, customer_email, created_at, updated_at
"""


def _payment_row(row: dict) -> dict:
    return {
        "id": str(row["id"]),
        "raffle_id": str(row["raffle_id"]),
        "purchase_id": str(row["purchase_id"]) if row.get("purchase_id") else None,
        "payment_intent_id": row["payment_intent_id"],
        "amount": row["amount"],
        "currency": row["currency"],
        "status": row["status"],
        "payment_method": row.get("payment_method"),
        "customer_name": row.get("customer_name"),
        "customer_email": row.get("customer_email"),
        "created_at": row["created_at"],
        "updated_at": row["updated_at"],
    }


def get_payment(payment_id: uuid.UUID) -> dict:
    row = fetch_one(f"SELECT {PAYMENT_COLUMNS} FROM payments WHERE id = %s", (payment_id,))
    if not row:
        raise HTTPException(status_code=404, detail="Payment not found")
    return _payment_row(row)


def get_payment_by_intent(payment_intent_id: str) -> dict:
    row = fetch_one(
        f"SELECT {PAYMENT_COLUMNS} FROM payments WHERE payment_intent_id = %s",
        (payment_intent_id,),
    )
    if not row:
        raise HTTPException(status_code=404, detail="Payment not found")
    return _payment_row(row)


def list_payments(raffle_id: uuid.UUID) -> list[dict]:
    rows = fetch_all(
        f"""
        SELECT {PAYMENT_COLUMNS}
        FROM payments
        WHERE raffle_id = %s
        ORDER BY created_at DESC
        """,
        (raffle_id,),
    )
    return [_payment_row(row) for row in rows]


def summarize_payments(payments: Iterable[dict]) -> dict:
    payments = list(payments)
    succeeded = [p for p in payments if p["status"] == "succeeded"]
    failed = [p for p in payments if p["status"] == "failed"]
    pending = len(payments) - len(succeeded) - len(failed)
    total = sum((Decimal(p["amount"]) for p in succeeded), Decimal("0"))
    return {
        "total_amount": total,
        "successful_payments": len(succeeded),
        "failed_payments": len(failed),
        "pending_payments": pending,
        "currency": payments[0]["currency"] if payments else "brl",
    }


def payment_stats(raffle_id: uuid.UUID) -> dict:
    return summarize_payments(list_payments(raffle_id))
