import uuid

from fastapi import APIRouter, Request

from rifa.api.dependencies import require_admin, require_db
from rifa.cqrs.commands import payments as payments_commands
from rifa.cqrs.queries import payments as payments_queries
from rifa.cqrs.queries.raffles import resolve_raffle_id
from rifa.models.schemas import (
    PaymentIntentCreate,
    PaymentIntentOut,
    PaymentLinked,
    PaymentLinkRequest,
    PaymentList,
    PaymentOut,
    PaymentStats,
    PaymentStatusOut,
)

router = APIRouter(tags=["payments"])


@router.post("/raffles/{raffle_id}/payments", response_model=PaymentIntentOut, status_code=201)
def create_payment_intent(raffle_id: uuid.UUID, payload: PaymentIntentCreate):
    require_db()
    return payments_commands.create_payment_intent(raffle_id, payload)


@router.get("/raffles/{raffle_ref}/payments", response_model=PaymentList)
def list_payments(raffle_ref: str, request: Request):
    require_db()
    raffle_id = resolve_raffle_id(raffle_ref)
    require_admin(request, raffle_id)
    return {"payments": payments_queries.list_payments(raffle_id)}


@router.get("/raffles/{raffle_ref}/payments/stats", response_model=PaymentStats)
def payment_stats(raffle_ref: str, request: Request):
    require_db()
    raffle_id = resolve_raffle_id(raffle_ref)
    require_admin(request, raffle_id)
    return payments_queries.payment_stats(raffle_id)


@router.get("/payments/{payment_id}", response_model=PaymentOut)
def get_payment(payment_id: uuid.UUID):
    require_db()
    return {"payment": payments_queries.get_payment(payment_id)}


@router.get("/payments/intents/{payment_intent_id}", response_model=PaymentOut)
def get_payment_by_intent(payment_intent_id: str):
    require_db()
    return {"payment": payments_queries.get_payment_by_intent(payment_intent_id)}


@router.post("/payments/intents/{payment_intent_id}/check", response_model=PaymentStatusOut)
def check_payment_status(payment_intent_id: str):
    require_db()
    return payments_commands.check_payment_status(payment_intent_id)


@router.post("/raffles/{raffle_id}/payments/{payment_id}/link", response_model=PaymentLinked)
def link_payment(raffle_id: uuid.UUID, payment_id: uuid.UUID, payload: PaymentLinkRequest, request: Request):
    require_admin(request, raffle_id)
    require_db()
    return payments_commands.link_payment_to_purchase(raffle_id, payment_id, payload.purchase_id)
