import json
import uuid

from fastapi import APIRouter, Request, Response
from fastapi.encoders import jsonable_encoder

from rifa.api.dependencies import require_admin, require_db
from rifa.cqrs.commands import purchases as purchases_commands
from rifa.cqrs.commands import raffles as raffles_commands
from rifa.cqrs.queries import purchases as purchases_queries
from rifa.models.schemas import PurchaseCreate, PurchaseDeleted, PurchaseList, PurchaseOut

router = APIRouter(prefix="/raffles/{raffle_id}", tags=["purchases"])


@router.post("/purchases", response_model=PurchaseOut, status_code=201)
def purchase_numbers(raffle_id: uuid.UUID, payload: PurchaseCreate):
    require_db()
    return purchases_commands.purchase_numbers(raffle_id, payload)


@router.get("/purchases", response_model=PurchaseList)
def list_purchases(raffle_id: uuid.UUID, request: Request):
    require_admin(request, raffle_id)
    require_db()
    return {"purchases": purchases_queries.list_purchases(raffle_id)}


@router.delete("/purchases/{purchase_id}", response_model=PurchaseDeleted)
def delete_purchase(raffle_id: uuid.UUID, purchase_id: uuid.UUID, request: Request):
    require_admin(request, raffle_id)
    require_db()
    return raffles_commands.delete_purchase(raffle_id, purchase_id)


@router.get("/export")
def export_raffle(raffle_id: uuid.UUID, request: Request):
    require_admin(request, raffle_id)
    require_db()
    document = purchases_queries.export_raffle(raffle_id)
    filename = purchases_queries.export_filename(raffle_id)
    return Response(
        content=json.dumps(jsonable_encoder(document), indent=2),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
