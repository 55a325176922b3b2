from __future__ import annotations

import logging
import uuid
from typing import Iterable

from fastapi import HTTPException

from rifa.cqrs.commands.payments import attach_payment
from rifa.db import store
from rifa.db.connection import run_transaction
from rifa.models.schemas import PurchaseCreate

logger = logging.getLogger(__name__)


def _join(numbers: Iterable[int]) -> str:
    return ", ".join(str(number) for number in numbers)


def find_unavailable(
    requested: Iterable[int], sold: Iterable[int], total_numbers: int
) -> tuple[list[int], list[int]]:
    """Split ``requested`` into numbers outside ``[1, total_numbers]`` and numbers already sold."""
    sold_set = set(sold)
    out_of_range: list[int] = []
    already_sold: list[int] = []
    for number in requested:
        if number < 1 or number > total_numbers:
            out_of_range.append(number)
        elif number in sold_set:
            already_sold.append(number)
    return out_of_range, already_sold


def purchase_numbers(raffle_id: uuid.UUID, payload: PurchaseCreate) -> dict:
    numbers = payload.numbers
    if len(set(numbers)) != len(numbers):
        raise HTTPException(status_code=400, detail="Duplicate numbers are not allowed")

    def _handler(conn):
        raffle = store.lock_raffle(conn, raffle_id)
        if not raffle:
            raise HTTPException(status_code=404, detail="Raffle not found")
        sold = [
            number
            for purchase in store.list_raffle_purchases(conn, raffle_id)
            for number in purchase["numbers"]
        ]
        out_of_range, already_sold = find_unavailable(numbers, sold, raffle["total_numbers"])
        if out_of_range:
            raise HTTPException(
                status_code=400,
                detail={
                    "message": f"Numbers {_join(out_of_range)} are outside the valid range",
                    "numbers": out_of_range,
                },
            )
        if already_sold:
            raise HTTPException(
                status_code=409,
                detail={
                    "message": f"Numbers {_join(already_sold)} are already purchased",
                    "numbers": already_sold,
                },
            )
        purchase = store.insert_purchase(conn, raffle_id, payload.name, payload.cpf, numbers)
        if payload.payment_id:
            attach_payment(conn, raffle_id, payload.payment_id, purchase["id"])
        return purchase

    purchase = run_transaction(_handler)
    logger.info("Purchase %s took numbers %s in raffle %s", purchase["id"], _join(numbers), raffle_id)
    return {
        "purchase_id": str(purchase["id"]),
        "raffle_id": str(raffle_id),
        "numbers": list(purchase["numbers"]),
        "payment_id": str(payload.payment_id) if payload.payment_id else None,
        "created_at": purchase["created_at"],
    }
