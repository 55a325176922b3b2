"""Row-level statements used inside ``run_transaction`` handlers.

Every function takes an open connection and leaves commit/rollback to the caller.
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
import uuid
from typing import Optional

from rifa.db.connection import row_as_dict, rows_as_dicts


def insert_raffle(
    conn,
    *,
    title: Optional[str],
    total_numbers: int,
    price_per_number: Decimal,
    password_hash: str,
    password_salt: str,
    friendly_id: str,
) -> dict:
    cur = conn.cursor()
    cur.execute(
        """
        INSERT INTO raffles (
            id, title, total_numbers, price_per_number, admin_password_hash,
            admin_password_salt, friendly_id
        ) VALUES (%s, %s, %s, %s, %s, %s, %s)
        RETURNING id, title, total_numbers, price_per_number, currency, friendly_id, created_at
        """,
        (
            uuid.uuid4(),
            title,
            total_numbers,
            price_per_number,
            password_hash,
            password_salt,
            friendly_id,
        ),
    )
    row = row_as_dict(cur)
    cur.close()
    return row


def friendly_id_taken(conn, friendly_id: str) -> bool:
    cur = conn.cursor()
    cur.execute("SELECT 1 FROM raffles WHERE friendly_id = %s", (friendly_id,))
    taken = cur.fetchone() is not None
    cur.close()
    return taken


def get_raffle(conn, raffle_id: uuid.UUID) -> Optional[dict]:
    cur = conn.cursor()
    cur.execute(
        """
        SELECT id, title, total_numbers, price_per_number, currency,
               admin_password_hash, admin_password_salt
        FROM raffles
        WHERE id = %s
        """,
        (raffle_id,),
    )
    row = row_as_dict(cur)
    cur.close()
    return row


def lock_raffle(conn, raffle_id: uuid.UUID) -> Optional[dict]:
    """Select the raffle row ``FOR UPDATE`` so number sales and draws run one at a time."""
    cur = conn.cursor()
    cur.execute(
        """
        SELECT id, title, total_numbers, price_per_number, currency
        FROM raffles
        WHERE id = %s
        FOR UPDATE
        """,
        (raffle_id,),
    )
    row = row_as_dict(cur)
    cur.close()
    return row


def list_raffle_purchases(conn, raffle_id: uuid.UUID) -> list[dict]:
    cur = conn.cursor()
    cur.execute(
        """
        SELECT id, name, cpf, numbers
        FROM purchases
        WHERE raffle_id = %s
        ORDER BY created_at ASC, id ASC
        """,
        (raffle_id,),
    )
    rows = rows_as_dicts(cur)
    cur.close()
    return rows


def insert_purchase(
    conn, raffle_id: uuid.UUID, name: str, cpf: str, numbers: list[int]
) -> dict:
    cur = conn.cursor()
    cur.execute(
        """
        INSERT INTO purchases (id, raffle_id, name, cpf, numbers)
        VALUES (%s, %s, %s, %s, %s)
        RETURNING id, raffle_id, numbers, created_at
        """,
        (uuid.uuid4(), raffle_id, name, cpf, list(numbers)),
    )
    row = row_as_dict(cur)
    cur.close()
    return row


def delete_purchase(conn, raffle_id: uuid.UUID, purchase_id: uuid.UUID) -> bool:
    cur = conn.cursor()
    cur.execute(
        "DELETE FROM purchases WHERE id = %s AND raffle_id = %s RETURNING id",
        (purchase_id, raffle_id),
    )
    if cur.fetchone() is None:
        cur.close()
        return False
    cur.execute(
        """
        UPDATE payments SET purchase_id = NULL, updated_at = now()
        WHERE purchase_id = %s AND raffle_id = %s
        """,
        (purchase_id, raffle_id),
    )
    cur.close()
    return True


def lock_payment(conn, payment_id: uuid.UUID) -> Optional[dict]:
    cur = conn.cursor()
    cur.execute(
        "SELECT id, raffle_id, purchase_id FROM payments WHERE id = %s FOR UPDATE",
        (payment_id,),
    )
    row = row_as_dict(cur)
    cur.close()
    return row


def lock_purchase(conn, purchase_id: uuid.UUID) -> Optional[dict]:
    cur = conn.cursor()
    cur.execute(
        "SELECT id, raffle_id, payment_id FROM purchases WHERE id = %s FOR UPDATE",
        (purchase_id,),
    )
    row = row_as_dict(cur)
    cur.close()
    return row


def link_payment(conn, payment_id: uuid.UUID, purchase_id: uuid.UUID) -> bool:
    """Point an unlinked payment and an unpaid purchase of the same raffle at each other."""
    cur = conn.cursor()
    cur.execute(
        """
        UPDATE payments p
        SET purchase_id = %s, updated_at = now()
        FROM purchases pu
        WHERE p.id = %s AND pu.id = %s AND pu.raffle_id = p.raffle_id
          AND p.purchase_id IS NULL AND pu.payment_id IS NULL
        """,
        (purchase_id, payment_id, purchase_id),
    )
    if cur.rowcount != 1:
        cur.close()
        return False
    cur.execute(
        "UPDATE purchases SET payment_id = %s WHERE id = %s AND payment_id IS NULL",
        (payment_id, purchase_id),
    )
    cur.close()
    return True


def drawn_numbers(conn, raffle_id: uuid.UUID) -> set[int]:
    cur = conn.cursor()
    cur.execute("SELECT winning_number FROM winners WHERE raffle_id = %s", (raffle_id,))
    numbers = {row[0] for row in cur.fetchall()}
    cur.close()
    return numbers


def insert_winner(conn, raffle_id: uuid.UUID, entry: dict, notes: Optional[str]) -> dict:
    cur = conn.cursor()
    cur.execute(
        """
        INSERT INTO winners (
            id, raffle_id, purchase_id, winner_name, winner_cpf, winning_number, notes
        ) VALUES (%s, %s, %s, %s, %s, %s, %s)
        RETURNING id, raffle_id, purchase_id, winner_name, winner_cpf, winning_number,
                  drawn_at, notes
        """,
        (
            uuid.uuid4(),
            raffle_id,
            entry["purchase_id"],
            entry["name"],
            entry["cpf"],
            entry["number"],
            notes,
        ),
    )
    row = row_as_dict(cur)
    cur.close()
    return row


def lock_auth_attempt(conn, ip_address: str, raffle_id: uuid.UUID) -> Optional[dict]:
    cur = conn.cursor()
    cur.execute(
        """
        SELECT ip_address, raffle_id, attempt_count, last_attempt
        FROM auth_attempts
        WHERE ip_address = %s AND raffle_id = %s
        FOR UPDATE
        """,
        (ip_address, raffle_id),
    )
    row = row_as_dict(cur)
    cur.close()
    return row


def reset_auth_attempts(conn, ip_address: str, raffle_id: uuid.UUID, now: datetime) -> None:
    cur = conn.cursor()
    cur.execute(
        """
        UPDATE auth_attempts
        SET attempt_count = 0, last_attempt = %s
        WHERE ip_address = %s AND raffle_id = %s
        """,
        (now, ip_address, raffle_id),
    )
    cur.close()


def record_failed_attempt(
    conn, ip_address: str, raffle_id: uuid.UUID, now: datetime, window_start: datetime
) -> int:
    """Count one failure; a streak whose last failure predates ``window_start`` restarts at 1."""
    cur = conn.cursor()
    cur.execute(
        """
        INSERT INTO auth_attempts (ip_address, raffle_id, attempt_count, last_attempt)
        VALUES (%s, %s, 1, %s)
        ON CONFLICT (ip_address, raffle_id) DO UPDATE
        SET attempt_count = CASE
                WHEN auth_attempts.last_attempt > %s THEN auth_attempts.attempt_count + 1
                ELSE 1
            END,
            last_attempt = EXCLUDED.last_attempt
        RETURNING attempt_count
        """,
        (ip_address, raffle_id, now, window_start),
    )
    count = cur.fetchone()[0]
    cur.close()
    return count


def insert_payment(
    conn,
    *,
    raffle_id: uuid.UUID,
    payment_intent_id: str,
    amount: Decimal,
    currency: str,
    status: str,
    payment_method: str,
    customer_name: str,
    customer_email: Optional[str],
) -> dict:
    cur = conn.cursor()
    cur.execute(
        """
        INSERT INTO payments (
            id, raffle_id, payment_intent_id, amount, currency, status,
            payment_method, customer_name, customer_email
        ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
        RETURNING id, raffle_id, payment_intent_id, amount, currency, status, created_at
        """,
        (
            uuid.uuid4(),
            raffle_id,
            payment_intent_id,
            amount,
            currency,
            status,
            payment_method,
            customer_name,
            customer_email,
        ),
    )
    row = row_as_dict(cur)
    cur.close()
    return row


def update_payment_status(conn, payment_intent_id: str, status: str) -> Optional[dict]:
    cur = conn.cursor()
    cur.execute(
        """
        UPDATE payments
        SET status = %s, updated_at = now()
        WHERE payment_intent_id = %s
        RETURNING id, raffle_id, status
        """,
        (status, payment_intent_id),
    )
    row = row_as_dict(cur)
    cur.close()
    return row
