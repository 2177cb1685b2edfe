"""
State helpers shared by every path that converges a transaction: the queue
processor, the reconciliation sweeper and the provider webhook.
"""
import enum
import logging
from datetime import datetime, timezone

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from datahub.models import Transaction, TransactionStatus, TERMINAL_STATUSES
from datahub.schemas.webhooks import Portal02WebhookPayload
from datahub.services.activity import log_activity
from datahub.services.errors import PersistenceError
from datahub.services.notifications import notify_user
from datahub.services.portal02 import ProviderStatus, map_provider_status


logger = logging.getLogger(__name__)

WEBHOOK_STATUS_EVENT = "order.status.updated"


class FulfillmentPhase(str, enum.Enum):
    AWAITING_SUBMISSION = "awaiting_submission"
    AWAITING_COMPLETION = "awaiting_completion"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


_LOCAL_STATUS = {
    ProviderStatus.COMPLETED: TransactionStatus.SUCCESS,
    ProviderStatus.FAILED: TransactionStatus.FAILED,
    ProviderStatus.PROCESSING: TransactionStatus.PROCESSING,
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def coerce_status(value) -> TransactionStatus:
    if isinstance(value, TransactionStatus):
        return value
    return TransactionStatus(str(value or "").strip().lower())


def to_transaction_status(status: ProviderStatus) -> TransactionStatus:
    return _LOCAL_STATUS[status]


def is_terminal(tx) -> bool:
    return coerce_status(tx.status) in TERMINAL_STATUSES


def fulfillment_phase(tx) -> FulfillmentPhase:
    status = coerce_status(tx.status)
    if status == TransactionStatus.SUCCESS:
        return FulfillmentPhase.SUCCEEDED
    if status == TransactionStatus.FAILED:
        return FulfillmentPhase.FAILED
    if tx.provider_order_id or tx.provider_reference:
        return FulfillmentPhase.AWAITING_COMPLETION
    return FulfillmentPhase.AWAITING_SUBMISSION


def commit_or_raise(db: Session, tx) -> None:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise PersistenceError(f"Could not persist transaction {getattr(tx, 'reference', '?')}: {exc}") from exc


def merge_meta(tx, snapshot: dict) -> None:
    # New dict so SQLAlchemy sees the JSON column change.
    tx.meta = {**(tx.meta or {}), **snapshot}


def bundle_label(tx) -> str:
    bundle = getattr(tx, "bundle", None)
    name = getattr(bundle, "name", None)
    if name:
        return name
    network = getattr(tx.network, "value", tx.network)
    return f"{network or ''} {tx.data_amount or ''}".strip() or "data"


def submission_candidates(db: Session, *, limit: int, max_retries: int, now: datetime | None = None) -> list[Transaction]:
    now = now or utcnow()
    return (
        db.query(Transaction)
        .filter(
            Transaction.status.in_([TransactionStatus.QUEUED, TransactionStatus.PROCESSING]),
            Transaction.provider_order_id.is_(None),
            Transaction.provider_reference.is_(None),
            Transaction.retries < max_retries,
            or_(Transaction.next_attempt_at.is_(None), Transaction.next_attempt_at <= now),
        )
        .order_by(Transaction.created_at.asc(), Transaction.id.asc())
        .limit(limit)
        .all()
    )


def reconciliation_candidates(db: Session, *, limit: int) -> list[Transaction]:
    return (
        db.query(Transaction)
        .filter(
            Transaction.status == TransactionStatus.PROCESSING,
            or_(Transaction.provider_order_id.isnot(None), Transaction.provider_reference.isnot(None)),
        )
        .order_by(Transaction.created_at.desc(), Transaction.id.desc())
        .limit(limit)
        .all()
    )


def announce_outcome(db: Session, tx, status: TransactionStatus, *, provider_status: str = "") -> None:
    """Tell the user about a terminal transition that has already been committed."""
    label = bundle_label(tx)
    if status == TransactionStatus.SUCCESS:
        notify_user(
            db,
            user_id=tx.user_id,
            title="Order Successful",
            message=f"Your order for {label} has been delivered.",
            type="success",
        )
    elif status == TransactionStatus.FAILED:
        detail = f" Status: {provider_status}" if provider_status else ""
        notify_user(
            db,
            user_id=tx.user_id,
            title="Order Failed",
            message=f"Your order for {label} failed.{detail}",
            type="error",
        )


def find_transaction_for_webhook(db: Session, *keys) -> Transaction | None:
    keys = [str(key) for key in keys if key not in (None, "")]
    if not keys:
        return None
    return (
        db.query(Transaction)
        .filter(
            or_(
                Transaction.reference.in_(keys),
                Transaction.provider_order_id.in_(keys),
                Transaction.provider_reference.in_(keys),
            )
        )
        .order_by(Transaction.id.asc())
        .first()
    )


def apply_webhook_update(db: Session, payload: Portal02WebhookPayload) -> str:
    """Converge a transaction from a provider push. Returns what happened."""
    if payload.event != WEBHOOK_STATUS_EVENT:
        return "ignored"

    order_id = str(payload.order_id) if payload.order_id not in (None, "") else None
    tx = find_transaction_for_webhook(db, payload.reference, order_id)
    if tx is None:
        logger.warning("Portal02 webhook for unknown order reference=%s orderId=%s", payload.reference, order_id)
        return "not_found"

    if is_terminal(tx):
        logger.info("Portal02 webhook for terminal order %s ignored (status=%s)", tx.reference, payload.status)
        return "terminal"

    provider_status = str(payload.status or "").strip().lower()
    new_status = to_transaction_status(map_provider_status(provider_status))
    previous = coerce_status(tx.status)

    merge_meta(
        tx,
        {
            "portal_order_id": order_id,
            "portal_status": provider_status,
            "portal02_webhook": payload.model_dump(by_alias=True, exclude_none=True),
        },
    )
    # An order the provider already knows about must never be resubmitted.
    if order_id and not tx.provider_order_id:
        tx.provider_order_id = order_id
    if new_status != TransactionStatus.PROCESSING or previous == TransactionStatus.QUEUED:
        tx.status = new_status
    commit_or_raise(db, tx)

    logger.info("Portal02 webhook: order %s %s -> %s (provider status %s)", tx.reference, previous.value, coerce_status(tx.status).value, provider_status)
    if new_status == previous or new_status == TransactionStatus.PROCESSING:
        return "unchanged"

    log_activity(
        db,
        type="order",
        level="success" if new_status == TransactionStatus.SUCCESS else "error",
        action="Order Status Update",
        message=f"Portal02 order {tx.reference} updated to {provider_status}",
        user_id=tx.user_id,
    )
    announce_outcome(db, tx, new_status, provider_status=provider_status)
    return "updated"
