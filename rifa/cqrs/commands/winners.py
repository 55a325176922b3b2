from __future__ import annotations

import logging
import random
import uuid
from typing import Iterable, Optional

from fastapi import HTTPException

from rifa.db import store
from rifa.db.connection import run_transaction
from rifa.models.schemas import DrawRequest

logger = logging.getLogger(__name__)

_random = random.Random()


def eligible_entries(purchases: Iterable[dict], drawn: Iterable[int]) -> list[dict]:
    """One entry per sold number that has not been drawn yet."""
    drawn_set = set(drawn)
    entries: list[dict] = []
    for purchase in purchases:
        for number in purchase["numbers"]:
            if number in drawn_set:
                continue
            entries.append(
                {
                    "number": number,
                    "purchase_id": purchase["id"],
                    "name": purchase["name"],
                    "cpf": purchase["cpf"],
                }
            )
    return entries


def winner_out(row: dict) -> dict:
    return {
        "id": str(row["id"]),
        "raffle_id": str(row["raffle_id"]),
        "purchase_id": str(row["purchase_id"]) if row.get("purchase_id") else None,
        "winner_name": row["winner_name"],
        "winner_cpf": row["winner_cpf"],
        "winning_number": row["winning_number"],
        "drawn_at": row["drawn_at"],
        "notes": row.get("notes"),
    }


def draw_winner(
    raffle_id: uuid.UUID, payload: DrawRequest, rng: Optional[random.Random] = None
) -> dict:
    chooser = rng or _random

    def _handler(conn):
        if not store.lock_raffle(conn, raffle_id):
            raise HTTPException(status_code=404, detail="Raffle not found")
        purchases = store.list_raffle_purchases(conn, raffle_id)
        if not purchases:
            raise HTTPException(status_code=400, detail="No purchases found for this raffle")
        entries = eligible_entries(purchases, store.drawn_numbers(conn, raffle_id))
        if not entries:
            raise HTTPException(
                status_code=409, detail="All purchased numbers have already been drawn"
            )
        entry = chooser.choice(entries)
        return store.insert_winner(conn, raffle_id, entry, payload.notes)

    row = run_transaction(_handler)
    logger.info("Raffle %s drew number %s", raffle_id, row["winning_number"])
    return {"winner": winner_out(row)}
