import logging

from fastapi import APIRouter, HTTPException, Request
from starlette.concurrency import run_in_threadpool

from rifa.api.dependencies import require_db
from rifa.core.config import settings
from rifa.cqrs.commands import payments as payments_commands
from rifa.integrations.stripe_api import WebhookSignatureError, verify_webhook
from rifa.models.schemas import WebhookAck

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post("/stripe", response_model=WebhookAck)
async def stripe_webhook(request: Request):
    payload = await request.body()
    signature = request.headers.get("stripe-signature")
    try:
        event = verify_webhook(payload, signature, settings.stripe_webhook_secret)
    except WebhookSignatureError as exc:
        logger.warning("Webhook signature verification failed: %s", exc)
        raise HTTPException(
            status_code=400, detail="Webhook signature verification failed"
        ) from exc
    require_db()
    await run_in_threadpool(payments_commands.handle_webhook_event, event)
    return {"received": True}
