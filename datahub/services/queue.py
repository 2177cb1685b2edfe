"""
Order queue processor.

Picks up transactions that have not reached the provider yet, submits them
through the Portal-02 client and records the outcome. Retryable failures are
counted against `queue_max_retries`; caller errors (bad phone/volume, no
offer for the network) fail the order straight away.
"""
import logging
from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy.orm import Session

from datahub.core import database
from datahub.core.config import get_settings
from datahub.models import TransactionStatus
from datahub.services.activity import log_activity
from datahub.services.errors import FulfillmentError, PersistenceError, ProviderUnavailable
from datahub.services.fulfillment import (
    announce_outcome,
    bundle_label,
    coerce_status,
    commit_or_raise,
    merge_meta,
    submission_candidates,
    to_transaction_status,
    utcnow,
)
from datahub.services.identifiers import ID_KEYS, RECIPIENT_KEYS, extract_provider_id
from datahub.services.notifications import notify_user
from datahub.services.portal02 import OrderResult, Portal02Client, get_portal02_client
from datahub.utils.phone import normalize_phone_lenient
from datahub.utils.run_guard import RunGuard


settings = get_settings()
logger = logging.getLogger(__name__)

queue_guard = RunGuard("order-queue")


@dataclass
class QueueRunStats:
    processed: int = 0
    submitted: int = 0
    completed: int = 0
    failed: int = 0
    retried: int = 0


def retry_delay_seconds(retries: int) -> float:
    base = float(settings.queue_retry_backoff_seconds or 0)
    if base <= 0 or retries <= 0:
        return 0
    return base * (2 ** (retries - 1))


def _is_same_order(order: dict, tx) -> bool:
    if not order.get("status") and not any(order.get(key) for key in ID_KEYS):
        return False
    reference = order.get("reference")
    if reference not in (None, ""):
        return str(reference) == tx.reference
    target = normalize_phone_lenient(tx.recipient_phone)
    return any(
        order.get(key) and normalize_phone_lenient(order.get(key)) == target
        for key in RECIPIENT_KEYS
    )


def _adopt_existing_order(client: Portal02Client, tx) -> OrderResult | None:
    # A previous attempt may have reached the provider before timing out.
    try:
        existing = client.check_order_status(tx.reference)
    except ProviderUnavailable:
        return None
    if not existing.order or not _is_same_order(existing.order, tx):
        return None
    order_id = extract_provider_id(existing.order, tx.reference, tx.recipient_phone)
    reference = existing.order.get("reference")
    logger.info("Order %s already known to provider as %s; adopting instead of resubmitting", tx.reference, order_id)
    return OrderResult(
        accepted=True,
        status=existing.status,
        raw=existing.raw,
        order_id=order_id,
        provider_reference=str(reference) if reference else None,
        provider_status=existing.provider_status,
        message="Adopted existing provider order",
    )


def submit_order(client: Portal02Client, tx) -> OrderResult:
    if (tx.retries or 0) > 0:
        adopted = _adopt_existing_order(client, tx)
        if adopted:
            return adopted
    result = client.place_order(tx.network, tx.data_amount, tx.recipient_phone, tx.reference)
    if not result.accepted:
        raise result.to_error()
    return result


def _record_submission(db: Session, tx, result: OrderResult, stats: QueueRunStats) -> None:
    status = to_transaction_status(result.status)
    tx.provider_order_id = result.order_id or tx.reference
    tx.provider_reference = result.provider_reference
    tx.status = status
    tx.next_attempt_at = None
    snapshot = {"portal_status": result.provider_status, "processed_at": utcnow().isoformat()}
    if result.offer_slug:
        snapshot["offer_slug"] = result.offer_slug
    if result.volume is not None:
        snapshot["volume"] = result.volume
    merge_meta(tx, snapshot)
    commit_or_raise(db, tx)

    stats.submitted += 1
    if status == TransactionStatus.SUCCESS:
        stats.completed += 1
    elif status == TransactionStatus.FAILED:
        stats.failed += 1
    logger.info("Order %s processed. Status: %s provider_order_id=%s", tx.reference, status.value, tx.provider_order_id)
    announce_outcome(db, tx, status, provider_status=result.provider_status)


def _record_failure(db: Session, tx, exc: Exception, stats: QueueRunStats) -> None:
    message = getattr(exc, "message", None) or str(exc) or exc.__class__.__name__
    retryable = getattr(exc, "retryable", True)
    kind = getattr(exc, "kind", "unexpected_error")

    if retryable:
        tx.retries = (tx.retries or 0) + 1
        exhausted = tx.retries >= settings.queue_max_retries
    else:
        exhausted = True
    tx.last_error = message
    tx.status = TransactionStatus.FAILED if exhausted else TransactionStatus.PROCESSING
    delay = 0 if exhausted else retry_delay_seconds(tx.retries)
    tx.next_attempt_at = utcnow() + timedelta(seconds=delay) if delay else None
    commit_or_raise(db, tx)

    logger.error("Order %s error (%s, retries=%s): %s", tx.reference, kind, tx.retries, message)
    if not exhausted:
        stats.retried += 1
        return

    stats.failed += 1
    reason = "after maximum retries" if retryable else "and will not be retried"
    log_activity(
        db,
        type="order",
        level="error",
        action="Queue Failure",
        message=f"Order {tx.reference} failed {reason}. Error: {message}",
        user_id=tx.user_id,
    )
    notify_user(
        db,
        user_id=tx.user_id,
        title="Order Failed",
        message=f"We encountered an issue processing your order for {bundle_label(tx)}. Our team has been notified.",
        type="error",
    )


def process_order(db: Session, client: Portal02Client, tx, stats: QueueRunStats) -> None:
    stats.processed += 1
    logger.info("Attempting order %s (retry %s, status %s)", tx.reference, tx.retries, coerce_status(tx.status).value)
    try:
        try:
            result = submit_order(client, tx)
        except FulfillmentError as exc:
            _record_failure(db, tx, exc, stats)
            return
        except Exception as exc:
            logger.exception("Unexpected error submitting order %s", tx.reference)
            _record_failure(db, tx, exc, stats)
            return
        _record_submission(db, tx, result, stats)
    except PersistenceError as exc:
        logger.error("%s", exc.message)
    except Exception:
        db.rollback()
        logger.exception("Order %s could not be finished; continuing with the batch", tx.reference)


def process_order_queue(*, session_factory=None, client: Portal02Client | None = None) -> QueueRunStats | None:
    """Run one batch. Returns None when another run is still in progress."""
    with queue_guard.try_run() as acquired:
        if not acquired:
            logger.info("Order queue run already in progress; skipping")
            return None

        stats = QueueRunStats()
        session_factory = session_factory or database.SessionLocal
        client = client or get_portal02_client()
        try:
            db = session_factory()
            try:
                orders = submission_candidates(
                    db,
                    limit=settings.queue_batch_size,
                    max_retries=settings.queue_max_retries,
                )
                if orders:
                    logger.info("Processing %s queued orders", len(orders))
                for tx in orders:
                    process_order(db, client, tx, stats)
            finally:
                db.close()
        except Exception:
            logger.exception("Order queue run failed")
        if stats.processed:
            logger.info("Order queue run finished: %s", stats)
        return stats
