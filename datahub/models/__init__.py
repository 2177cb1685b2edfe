from datahub.models.transaction import Transaction, TransactionStatus, Network, TERMINAL_STATUSES
from datahub.models.bundle import Bundle
from datahub.models.notification import Notification
from datahub.models.activity_log import ActivityLog

__all__ = [
    "Transaction",
    "TransactionStatus",
    "Network",
    "TERMINAL_STATUSES",
    "Bundle",
    "Notification",
    "ActivityLog",
]
