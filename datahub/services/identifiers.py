"""
Best-effort discovery of the provider's own order identifier.

Portal-02 does not return its order id in a fixed place: it may be top-level,
inside `items`/`orders`, or nested under `data`, and bulk-shaped responses can
carry other recipients' orders next to ours. The search below walks the JSON
tree twice, first only through objects whose recipient matches the order's
phone number, then through everything.
"""
import json
import logging
import re

from datahub.utils.phone import normalize_phone_lenient


logger = logging.getLogger(__name__)

MAX_DEPTH = 5

UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)

STATUS_LITERALS = frozenset(
    {
        "success",
        "true",
        "false",
        "error",
        "failed",
        "completed",
        "pending",
        "processing",
        "delivered",
        "delivered_callback",
        "resolved",
        "refunded",
    }
)

ID_KEYS = (
    "_id",
    "order_id",
    "orderId",
    "id",
    "reference",
    "trans_id",
    "transaction_id",
    "requestId",
    "request_id",
    "provider_reference",
    "provider_id",
)
RECIPIENT_KEYS = ("recipient", "recipientPhone", "beneficiary_msisdn", "phone", "msisdn")
ARRAY_KEYS = ("orders", "items", "data", "history", "results")
SKIPPED_KEYS = frozenset({"portal02_webhook"})


def is_uuid(value) -> bool:
    return bool(UUID_RE.match(str(value or "").strip()))


def is_status_literal(value) -> bool:
    return str(value).strip().lower() in STATUS_LITERALS


def _as_identifier(value, target_phone: str | None, *, confirmed: bool = False) -> str | None:
    if value in (None, "") or isinstance(value, (dict, list)):
        return None
    # Booleans and zero never name an order.
    if value is False or value is True or value == 0:
        return None
    if is_uuid(value) or is_status_literal(value):
        return None
    if target_phone and normalize_phone_lenient(value) == target_phone:
        return None
    # Short strings are only trusted inside a subtree addressed to our recipient.
    if isinstance(value, str) and len(value) < 4 and not confirmed:
        return None
    return str(value)


def _recipient_matches(node: dict, target_phone: str) -> bool | None:
    """True/False when the object names a recipient, None when it does not."""
    for key in RECIPIENT_KEYS:
        recipient = node.get(key)
        if recipient:
            return normalize_phone_lenient(recipient) == target_phone
    return None


def find_identifier(
    node,
    target_phone: str | None,
    *,
    match_recipient: bool,
    depth: int = 0,
    confirmed: bool = False,
) -> str | None:
    if depth > MAX_DEPTH:
        return None

    def descend(child) -> str | None:
        return find_identifier(
            child,
            target_phone,
            match_recipient=match_recipient,
            depth=depth + 1,
            confirmed=confirmed,
        )

    if isinstance(node, list):
        for item in node:
            found = descend(item)
            if found:
                return found
        return None

    if not isinstance(node, dict):
        return None

    if match_recipient and target_phone:
        matches = _recipient_matches(node, target_phone)
        if matches is False:
            # Another recipient's order: skip the whole subtree.
            return None
        if matches:
            confirmed = True

    for key in ID_KEYS:
        found = _as_identifier(node.get(key), target_phone, confirmed=confirmed)
        if found:
            return found

    for key in ARRAY_KEYS:
        items = node.get(key)
        if isinstance(items, list):
            for item in items:
                found = descend(item)
                if found:
                    return found

    for key, value in node.items():
        if key in SKIPPED_KEYS or not isinstance(value, dict):
            continue
        found = descend(value)
        if found:
            return found
    return None


def _top_level_order_id(data: dict) -> str | None:
    order_id = data.get("orderId")
    if order_id and not is_uuid(order_id):
        return str(order_id)
    items = data.get("items")
    if isinstance(items, list) and items and isinstance(items[0], dict):
        order_id = items[0].get("orderId")
        if order_id and not is_uuid(order_id):
            return str(order_id)
    return None


def extract_provider_id(response, fallback_id: str | None, target_phone: str | None = None) -> str | None:
    """Return the provider's identifier for an order, or `fallback_id`.

    Never raises: anything unexpected in the payload degrades to the fallback.
    """
    if not response:
        return fallback_id

    try:
        normalized_target = normalize_phone_lenient(target_phone) if target_phone else None

        data = response
        if isinstance(response, (str, bytes)):
            try:
                data = json.loads(response)
            except ValueError:
                text = response.decode("utf-8", "replace") if isinstance(response, bytes) else response
                text = text.strip()
                if len(text) > 5 and not is_uuid(text) and not is_status_literal(text):
                    return text
                return fallback_id

        if not data:
            return fallback_id

        if isinstance(data, dict):
            shortcut = _top_level_order_id(data)
            if shortcut:
                return shortcut

        found = find_identifier(data, normalized_target, match_recipient=True)
        if not found:
            found = find_identifier(data, normalized_target, match_recipient=False)

        if not found:
            keys = ", ".join(map(str, data.keys())) if isinstance(data, dict) else type(data).__name__
            logger.warning("Provider id discovery failed for %s. Data keys: %s", fallback_id, keys)
            return fallback_id
        if found != fallback_id:
            logger.info("Discovered provider identifier %s for %s", found, fallback_id)
        return found
    except Exception as exc:
        logger.warning("Provider id extraction failed for %s: %s", fallback_id, exc)
        return fallback_id
