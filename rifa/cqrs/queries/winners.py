from __future__ import annotations

from rifa.cqrs.commands.winners import winner_out
from rifa.cqrs.queries.raffles import resolve_raffle_id
from rifa.db.connection import fetch_all


def list_winners(raffle_ref: str) -> list[dict]:
    raffle_id = resolve_raffle_id(raffle_ref)
    rows = fetch_all(
        """
        SELECT id, raffle_id, purchase_id, winner_name, winner_cpf, winning_number,
               drawn_at, notes
        FROM winners
        WHERE raffle_id = %s
        ORDER BY drawn_at DESC
        """,
        (raffle_id,),
    )
    return [winner_out(row) for row in rows]
