from __future__ import annotations

import logging
import secrets
import uuid

from fastapi import HTTPException

from rifa.core.config import settings
from rifa.core.security import new_password_hash
from rifa.db import store
from rifa.db.connection import run_transaction
from rifa.models.schemas import RaffleCreate

logger = logging.getLogger(__name__)

FRIENDLY_ID_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
FRIENDLY_ID_LENGTH = 6
FRIENDLY_ID_RETRIES = 5


def generate_friendly_id() -> str:
    return "".join(secrets.choice(FRIENDLY_ID_ALPHABET) for _ in range(FRIENDLY_ID_LENGTH))


def create_raffle(payload: RaffleCreate) -> dict:
    password_hash, password_salt = new_password_hash(payload.admin_password)
    price = payload.price_per_number or settings.default_price_per_number

    def _handler(conn):
        for _ in range(FRIENDLY_ID_RETRIES):
            friendly_id = generate_friendly_id()
            if not store.friendly_id_taken(conn, friendly_id):
                break
        else:
            raise HTTPException(status_code=503, detail="Could not allocate a raffle code")
        return store.insert_raffle(
            conn,
            title=payload.title or None,
            total_numbers=payload.total_numbers,
            price_per_number=price,
            password_hash=password_hash,
            password_salt=password_salt,
            friendly_id=friendly_id,
        )

    row = run_transaction(_handler)
    logger.info("Raffle %s created with %s numbers", row["id"], row["total_numbers"])
    return {"raffle_id": str(row["id"]), "friendly_id": row["friendly_id"]}


def delete_purchase(raffle_id: uuid.UUID, purchase_id: uuid.UUID) -> dict:
    def _handler(conn):
        if not store.delete_purchase(conn, raffle_id, purchase_id):
            raise HTTPException(status_code=404, detail="Purchase not found")

    run_transaction(_handler)
    logger.info("Purchase %s removed from raffle %s", purchase_id, raffle_id)
    return {"status": "deleted", "purchase_id": str(purchase_id)}
