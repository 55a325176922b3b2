from __future__ import annotations

import uuid
from typing import Iterable

from fastapi import HTTPException

from rifa.db.connection import fetch_all, fetch_one


def _parse_uuid(value: str):
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def find_raffle(raffle_ref: str) -> dict:
    """Look a raffle up by uuid or by its short friendly code."""
    raffle_uuid = _parse_uuid(raffle_ref)
    if raffle_uuid is not None:
        sql = "WHERE id = %s"
        params: tuple = (raffle_uuid,)
    else:
        code = str(raffle_ref).strip().upper()
        if not code:
            raise HTTPException(status_code=404, detail="Raffle not found")
        sql = "WHERE friendly_id = %s"
        params = (code,)
    row = fetch_one(
        f"""
        SELECT id, title, total_numbers, price_per_number, currency, friendly_id, created_at
        FROM raffles
        {sql}
        """,
        params,
    )
    if not row:
        raise HTTPException(status_code=404, detail="Raffle not found")
    return row


def resolve_raffle_id(raffle_ref: str) -> uuid.UUID:
    row = find_raffle(raffle_ref)
    raffle_id = row["id"]
    return raffle_id if isinstance(raffle_id, uuid.UUID) else uuid.UUID(str(raffle_id))


def get_raffle(raffle_ref: str) -> dict:
    row = find_raffle(raffle_ref)
    return {
        "id": str(row["id"]),
        "title": row.get("title"),
        "total_numbers": row["total_numbers"],
        "price_per_number": row["price_per_number"],
        "currency": row["currency"],
        "friendly_id": row.get("friendly_id"),
        "created_at": row["created_at"],
    }


def split_numbers(total_numbers: int, sold_lists: Iterable[Iterable[int]]) -> tuple[list[int], list[int]]:
    sold = set()
    for numbers in sold_lists:
        sold.update(numbers)
    available: list[int] = []
    taken: list[int] = []
    for number in range(1, total_numbers + 1):
        if number in sold:
            taken.append(number)
        else:
            available.append(number)
    return available, taken


def list_numbers(raffle_ref: str) -> dict:
    raffle = find_raffle(raffle_ref)
    rows = fetch_all("SELECT numbers FROM purchases WHERE raffle_id = %s", (raffle["id"],))
    available, sold = split_numbers(raffle["total_numbers"], (row["numbers"] or [] for row in rows))
    return {
        "raffle_id": str(raffle["id"]),
        "total_numbers": raffle["total_numbers"],
        "sold_count": len(sold),
        "available_count": len(available),
        "available": available,
        "sold": sold,
    }
