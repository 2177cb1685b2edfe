import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import ValidationError
from sqlalchemy.orm import Session

from datahub.core.config import get_settings
from datahub.core.database import get_db
from datahub.middlewares.rate_limit import limiter
from datahub.schemas.webhooks import Portal02WebhookPayload, WebhookAck
from datahub.services.errors import PersistenceError
from datahub.services.fulfillment import apply_webhook_update

router = APIRouter()
settings = get_settings()
logger = logging.getLogger(__name__)


@router.post("/portal02", response_model=WebhookAck)
@limiter.limit(settings.webhook_rate_limit)
async def portal02_webhook(request: Request, db: Session = Depends(get_db)):
    try:
        body = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON body")
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Invalid webhook payload")

    try:
        payload = Portal02WebhookPayload.model_validate(body)
    except ValidationError as exc:
        logger.warning("Rejected Portal02 webhook: %s", exc)
        raise HTTPException(status_code=400, detail="Invalid webhook payload")

    logger.info(
        "Portal02 webhook received event=%s orderId=%s reference=%s status=%s",
        payload.event,
        payload.order_id,
        payload.reference,
        payload.status,
    )
    try:
        outcome = apply_webhook_update(db, payload)
    except PersistenceError as exc:
        logger.error("Portal02 webhook could not be applied: %s", exc.message)
        raise HTTPException(status_code=500, detail="Could not record webhook")
    return WebhookAck(outcome=outcome)
