from __future__ import annotations

from datetime import datetime, timezone
import uuid

from rifa.cqrs.queries.raffles import find_raffle
from rifa.db.connection import fetch_all


def mask_cpf(cpf: str) -> str:
    if len(cpf) < 9:
        return "*" * len(cpf)
    return f"{cpf[:3]}*****{cpf[8:]}"


def _purchase_row(row: dict) -> dict:
    return {
        "id": str(row["id"]),
        "raffle_id": str(row["raffle_id"]),
        "name": row["name"],
        "cpf": row["cpf"],
        "numbers": list(row.get("numbers") or []),
        "payment_id": str(row["payment_id"]) if row.get("payment_id") else None,
        "created_at": row["created_at"],
    }


def list_purchases(raffle_id: uuid.UUID) -> list[dict]:
    rows = fetch_all(
        """
        SELECT id, raffle_id, name, cpf, numbers, payment_id, created_at
        FROM purchases
        WHERE raffle_id = %s
        ORDER BY created_at DESC
        """,
        (raffle_id,),
    )
    return [_purchase_row(row) for row in rows]


def export_raffle(raffle_id: uuid.UUID) -> dict:
    raffle = find_raffle(str(raffle_id))
    purchases = [
        {**purchase, "cpf": mask_cpf(purchase["cpf"])}
        for purchase in list_purchases(raffle["id"])
    ]
    return {
        "id": str(raffle["id"]),
        "total_numbers": raffle["total_numbers"],
        "purchases": purchases,
        "exported_at": datetime.now(timezone.utc).isoformat(),
    }


def export_filename(raffle_id) -> str:
    return f"raffle_{str(raffle_id)[:8]}_export.json"
