import uuid

from fastapi import APIRouter, Request

from rifa.api.dependencies import require_admin, require_db
from rifa.cqrs.commands import winners as winners_commands
from rifa.cqrs.queries import winners as winners_queries
from rifa.models.schemas import DrawRequest, DrawResponse, WinnerList

router = APIRouter(prefix="/raffles", tags=["winners"])


@router.post("/{raffle_id}/winners/draw", response_model=DrawResponse, status_code=201)
def draw_winner(raffle_id: uuid.UUID, payload: DrawRequest, request: Request):
    require_admin(request, raffle_id)
    require_db()
    return winners_commands.draw_winner(raffle_id, payload)


@router.get("/{raffle_ref}/winners", response_model=WinnerList)
def list_winners(raffle_ref: str):
    require_db()
    return {"winners": winners_queries.list_winners(raffle_ref)}
