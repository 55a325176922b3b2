from fastapi import APIRouter

from rifa.api.dependencies import require_db
from rifa.cqrs.commands import raffles as raffles_commands
from rifa.cqrs.queries import raffles as raffles_queries
from rifa.models.schemas import RaffleCreate, RaffleCreated, RaffleNumbersResponse, RaffleOut

router = APIRouter(prefix="/raffles", tags=["raffles"])


@router.post("", response_model=RaffleCreated, status_code=201)
def create_raffle(payload: RaffleCreate):
    require_db()
    return raffles_commands.create_raffle(payload)


@router.get("/{raffle_ref}", response_model=RaffleOut)
def get_raffle(raffle_ref: str):
    require_db()
    return raffles_queries.get_raffle(raffle_ref)


@router.get("/{raffle_ref}/numbers", response_model=RaffleNumbersResponse)
def list_numbers(raffle_ref: str):
    require_db()
    return raffles_queries.list_numbers(raffle_ref)
