"""
Reconciliation sweeper.

Orders the provider accepted but has not finished are polled for their
current status; whatever changed is written back and announced.
"""
import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from datahub.core import database
from datahub.core.config import get_settings
from datahub.models import TransactionStatus
from datahub.services.activity import log_activity
from datahub.services.errors import PersistenceError, ProviderUnavailable
from datahub.services.fulfillment import (
    announce_outcome,
    coerce_status,
    commit_or_raise,
    merge_meta,
    reconciliation_candidates,
    to_transaction_status,
    utcnow,
)
from datahub.services.portal02 import Portal02Client, get_portal02_client
from datahub.utils.run_guard import RunGuard


settings = get_settings()
logger = logging.getLogger(__name__)

sync_guard = RunGuard("provider-sync")


@dataclass
class SyncRunStats:
    checked: int = 0
    updated: int = 0
    errors: int = 0


def status_lookup_id(tx) -> str:
    return tx.provider_order_id or tx.provider_reference or tx.reference


def sync_order(db: Session, client: Portal02Client, tx) -> bool:
    """Poll one order. Returns True when its local status changed."""
    result = client.check_order_status(status_lookup_id(tx))
    new_status = to_transaction_status(result.status)
    previous = coerce_status(tx.status)
    if new_status == previous:
        return False

    tx.status = new_status
    merge_meta(tx, {"portal_status": result.provider_status, "last_sync": utcnow().isoformat()})
    commit_or_raise(db, tx)

    logger.info("Auto-sync: order %s %s -> %s", tx.reference, previous.value, new_status.value)
    log_activity(
        db,
        type="order",
        level="success" if new_status == TransactionStatus.SUCCESS else "error",
        action="Auto-Sync Status Update",
        message=f"Order {tx.reference} status updated to {new_status.value} (provider: {result.provider_status or '-'})",
        user_id=tx.user_id,
    )
    announce_outcome(db, tx, new_status, provider_status=result.provider_status)
    return True


def sync_provider_orders(*, session_factory=None, client: Portal02Client | None = None) -> SyncRunStats | None:
    """Run one sweep. Returns None when another sweep is still in progress."""
    with sync_guard.try_run() as acquired:
        if not acquired:
            logger.info("Provider sync already in progress; skipping")
            return None

        stats = SyncRunStats()
        session_factory = session_factory or database.SessionLocal
        client = client or get_portal02_client()
        try:
            db = session_factory()
            try:
                orders = reconciliation_candidates(db, limit=settings.sync_batch_size)
                if orders:
                    logger.info("Syncing %s processing orders with Portal02", len(orders))
                for tx in orders:
                    stats.checked += 1
                    try:
                        if sync_order(db, client, tx):
                            stats.updated += 1
                    except ProviderUnavailable as exc:
                        stats.errors += 1
                        logger.warning("Auto-sync check failed for order %s: %s", tx.reference, exc.message)
                    except PersistenceError as exc:
                        stats.errors += 1
                        logger.error("%s", exc.message)
                    except Exception as exc:
                        stats.errors += 1
                        db.rollback()
                        logger.exception("Auto-sync error for order %s", tx.reference)
                        log_activity(
                            db,
                            type="system",
                            level="error",
                            action="Auto-Sync Error",
                            message=f"Failed to sync order {tx.reference}: {exc}",
                        )
            finally:
                db.close()
        except Exception as exc:
            logger.exception("Provider sync run failed")
            _log_run_failure(session_factory, exc)
        if stats.checked:
            logger.info("Provider sync finished: %s", stats)
        return stats


def _log_run_failure(session_factory, exc: Exception) -> None:
    try:
        db = session_factory()
    except Exception:
        return
    try:
        log_activity(
            db,
            type="system",
            level="error",
            action="Auto-Sync Error",
            message=f"Provider sync run failed: {exc}",
        )
    finally:
        db.close()
