import enum
import ipaddress
import logging
import math
import re
import time
from dataclasses import dataclass
from functools import lru_cache
from urllib.parse import quote, urlparse, urlunparse

import httpx

from datahub.core.config import get_settings
from datahub.services.errors import (
    InvalidVolume,
    ProviderNotConfigured,
    ProviderRejected,
    ProviderUnavailable,
    error_for_kind,
)
from datahub.services.identifiers import extract_provider_id
from datahub.services.offers import Offer, network_key, order_network_path, parse_offers, resolve_offer_slug
from datahub.utils.cache import SnapshotCache
from datahub.utils.phone import normalize_phone


settings = get_settings()
logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://www.portal-02.com/api/v1"


class ProviderStatus(str, enum.Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


SUCCESS_STATUSES = frozenset({"delivered", "completed", "success", "fulfilled", "resolved", "delivered_callback"})
FAILURE_STATUSES = frozenset({"failed", "error", "cancelled", "rejected", "failed_callback", "refunded"})

VOLUME_RE = re.compile(r"(\d+(?:\.\d+)?)\s*(GB|MB)", re.IGNORECASE)


def map_provider_status(value) -> ProviderStatus:
    raw = str(value or "").strip().lower()
    if raw in SUCCESS_STATUSES:
        return ProviderStatus.COMPLETED
    if raw in FAILURE_STATUSES:
        return ProviderStatus.FAILED
    return ProviderStatus.PROCESSING


def parse_volume(data_amount) -> float:
    """Volume in GB from strings like "1GB", "1.5 gb" or "500MB"."""
    text = str(data_amount or "")
    match = VOLUME_RE.search(text)
    if match:
        number = float(match.group(1))
        volume = number / 1000 if match.group(2).upper() == "MB" else number
    else:
        digits = re.sub(r"[^0-9]", "", text)
        volume = float(int(digits)) if digits else math.nan

    if not math.isfinite(volume) or volume <= 0:
        raise InvalidVolume(f"Invalid bundle volume: {data_amount}")
    return volume


def _is_unusable_base(url: str) -> bool:
    if "localhost" in url.lower():
        return True
    host = urlparse(url if "://" in url else f"//{url}").hostname or ""
    try:
        return ipaddress.ip_address(host).is_loopback
    except ValueError:
        return False


def build_callback_url(
    backend_url: str | None,
    frontend_url: str | None,
    fallback_base_url: str,
    path: str = "/webhooks/portal02",
) -> str:
    base = str(backend_url or "").strip()
    if not base:
        frontend = str(frontend_url or "").strip()
        if frontend:
            base = f"{frontend.rstrip('/')}/api"
    if not base or _is_unusable_base(base):
        base = fallback_base_url
    return f"{base.rstrip('/')}/{path.lstrip('/')}"


def normalize_portal02_base_url(raw_url: str | None) -> str:
    url = str(raw_url or "").strip()
    if not url:
        return DEFAULT_BASE_URL

    parsed = urlparse(url)
    host = (parsed.hostname or "").lower()
    path = (parsed.path or "").rstrip("/")
    if host.endswith("portal-02.com") and not path:
        path = "/api/v1"

    scheme = parsed.scheme or "https"
    netloc = parsed.netloc or host
    normalized = urlunparse((scheme, netloc, path, "", "", ""))
    return normalized.rstrip("/")


def _provider_bool(value) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        if value == 1:
            return True
        if value == 0:
            return False
        return None
    raw = str(value or "").strip().lower()
    if raw in {"true", "1", "yes", "ok"}:
        return True
    if raw in {"false", "0", "no"}:
        return False
    return None


@dataclass
class ProviderResponse:
    status_code: int | None
    ok: bool
    data: dict
    transport_error: str | None = None

    @property
    def success(self) -> bool:
        return self.ok and _provider_bool(self.data.get("success")) is True

    def error_message(self, default: str) -> str:
        if self.transport_error:
            return self.transport_error
        for key in ("error", "message", "detail"):
            value = self.data.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
        if self.status_code is not None and not self.ok:
            return f"{default} (HTTP {self.status_code})"
        return default


@dataclass
class OrderResult:
    accepted: bool
    status: ProviderStatus
    raw: dict | None = None
    order_id: str | None = None
    provider_reference: str | None = None
    provider_status: str = ""
    offer_slug: str | None = None
    volume: float | None = None
    order_network: str | None = None
    message: str = ""
    error: str | None = None
    error_kind: str | None = None

    def to_error(self):
        return error_for_kind(self.error_kind, self.error or self.message or "Order failed", raw=self.raw)


@dataclass
class OrderStatusResult:
    status: ProviderStatus
    provider_status: str
    order: dict
    raw: dict


class Portal02Client:
    def __init__(
        self,
        *,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        offer_cache: SnapshotCache | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = normalize_portal02_base_url(base_url or settings.portal02_base_url)
        self.api_key = api_key if api_key is not None else settings.portal02_api_key
        self.timeout = timeout if timeout is not None else settings.portal02_timeout_seconds
        self.offer_cache = offer_cache or SnapshotCache(settings.offers_cache_ttl_seconds)
        self._transport = transport

    def _headers(self) -> dict:
        return {
            "x-api-key": self.api_key or "",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

    def _require_api_key(self) -> None:
        if not self.api_key:
            raise ProviderNotConfigured("PORTAL02_API_KEY is not configured.")

    def _request(self, method: str, path: str, payload: dict | None = None) -> ProviderResponse:
        """Single attempt; transport faults come back as a failed response, never raised."""
        url = f"{self.base_url}{path}"
        start = time.time()
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.request(method, url, json=payload, headers=self._headers())
        except httpx.TimeoutException:
            logger.error("Portal02 API %s %s timed out after %ss", method, path, self.timeout)
            return ProviderResponse(None, False, {}, transport_error=f"Request timed out after {self.timeout:g} seconds")
        except httpx.HTTPError as exc:
            logger.error("Portal02 API %s %s transport error: %s", method, path, exc)
            return ProviderResponse(None, False, {}, transport_error=f"Network error or Portal-02 is down: {exc}")

        duration_ms = round((time.time() - start) * 1000, 2)
        logger.info("Portal02 API %s %s status=%s duration=%sms", method, path, response.status_code, duration_ms)
        ok = 200 <= response.status_code < 300
        try:
            data = response.json() if response.content else {}
        except ValueError:
            logger.error("Portal02 returned invalid JSON for %s %s: %s", method, path, response.text[:500])
            return ProviderResponse(response.status_code, False, {"error": "Invalid JSON response", "raw": response.text[:200]})
        if not isinstance(data, dict):
            data = {"data": data}
        if response.status_code >= 400:
            logger.error("Portal02 request error (%s): %s", response.status_code, data)
        return ProviderResponse(response.status_code, ok, data)

    def callback_url(self) -> str:
        return build_callback_url(
            settings.backend_url,
            settings.frontend_url,
            settings.callback_fallback_base_url,
            settings.portal02_webhook_path,
        )

    def fetch_offers(self) -> list[Offer]:
        cached = self.offer_cache.get_fresh()
        if cached is not None:
            logger.debug("Using cached Portal02 offers")
            return list(cached)

        if not self.api_key:
            response = ProviderResponse(None, False, {}, transport_error="PORTAL02_API_KEY is not configured.")
        else:
            response = self._request("GET", "/offers")

        if not response.success:
            message = response.error_message("Offers request failed")
            stale = self.offer_cache.get_stale()
            if stale:
                logger.warning("Offers refresh failed (%s); serving stale cache", message)
                return list(stale)
            raise ProviderUnavailable(message, status_code=response.status_code, raw=response.data)

        offers = parse_offers(response.data.get("offers"))
        self.offer_cache.replace(tuple(offers))
        logger.info("Fetched %s Portal02 offers", len(offers))
        return offers

    def place_order(self, network, data_amount, recipient_phone, reference: str | None = None) -> OrderResult:
        """Submit one data bundle order.

        Raises only for caller/configuration problems (InvalidInput,
        ProviderNotConfigured, NoOfferAvailable). Anything that goes wrong on
        the wire is reported through `OrderResult.accepted`.
        """
        self._require_api_key()
        phone = normalize_phone(recipient_phone)
        volume = parse_volume(data_amount)

        try:
            offers = self.fetch_offers()
        except ProviderUnavailable as exc:
            logger.warning("Offer catalog unavailable (%s); using fallback offer slugs", exc.message)
            offers = []

        _, offer_slug = resolve_offer_slug(offers, network, volume)
        order_network = order_network_path(network)

        payload = {
            "type": "single",
            "volume": volume,
            "phone": phone,
            "offerSlug": offer_slug,
            "reference": reference,
        }
        if reference:
            # The provider has honoured each of these spellings at some point.
            callback = self.callback_url()
            payload["webhookUrl"] = callback
            payload["callback_url"] = callback
            payload["callbackURL"] = callback

        logger.info(
            "Placing Portal02 order network=%s path=/order/%s volume=%s phone=%s offer=%s reference=%s",
            network_key(network),
            order_network,
            volume,
            phone,
            offer_slug,
            reference,
        )
        response = self._request("POST", f"/order/{order_network}", payload)

        data = response.data
        items = data.get("items")
        first_item = items[0] if isinstance(items, list) and items and isinstance(items[0], dict) else {}
        provider_status = str(data.get("status") or first_item.get("status") or "").strip().lower()

        if not response.success:
            message = response.error_message("Order failed")
            server_side = response.transport_error is not None or (response.status_code or 0) >= 500
            kind = ProviderUnavailable.kind if server_side else ProviderRejected.kind
            logger.warning("Portal02 order %s not accepted (%s): %s", reference, kind, message)
            return OrderResult(
                accepted=False,
                status=ProviderStatus.FAILED,
                raw=data or None,
                provider_status=provider_status,
                offer_slug=offer_slug,
                volume=volume,
                order_network=order_network,
                message=message,
                error=message,
                error_kind=kind,
            )

        status = map_provider_status(provider_status)
        order_id = extract_provider_id(data, reference, phone)
        provider_reference = data.get("reference") or first_item.get("reference")
        default_message = {
            ProviderStatus.COMPLETED: "Order successful",
            ProviderStatus.PROCESSING: "Order placed, awaiting delivery",
            ProviderStatus.FAILED: "Order failed",
        }[status]
        logger.info(
            "Portal02 order %s accepted: provider_status=%s status=%s order_id=%s",
            reference,
            provider_status or "-",
            status.value,
            order_id,
        )
        return OrderResult(
            accepted=True,
            status=status,
            raw=data,
            order_id=order_id,
            provider_reference=str(provider_reference) if provider_reference else None,
            provider_status=provider_status,
            offer_slug=offer_slug,
            volume=volume,
            order_network=order_network,
            message=str(data.get("message") or default_message),
        )

    def check_order_status(self, order_id_or_reference: str) -> OrderStatusResult:
        self._require_api_key()
        path = f"/order/status/{quote(str(order_id_or_reference), safe='')}"
        response = self._request("GET", path)

        if not response.success:
            message = response.error_message("Failed to get order status")
            raise ProviderUnavailable(message, status_code=response.status_code, raw=response.data)

        data = response.data
        orders = data.get("orders")
        order = data.get("order")
        if not isinstance(order, dict):
            if isinstance(orders, list) and orders and isinstance(orders[0], dict):
                order = orders[0]
            elif "status" in data:
                # Flat single-order envelope.
                order = data
            else:
                # No order in the response, e.g. `orders: []`.
                order = {}
        provider_status = str(order.get("status") or "").strip().lower()
        return OrderStatusResult(
            status=map_provider_status(provider_status),
            provider_status=provider_status,
            order=order,
            raw=data,
        )

    def check_balance(self) -> dict:
        currency = settings.system_currency
        if not self.api_key:
            return {"success": False, "balance": 0, "currency": currency, "error": "API key not configured"}

        response = self._request("GET", "/balance")
        data = response.data
        try:
            balance = float(data.get("balance"))
        except (TypeError, ValueError):
            balance = 0
        if not math.isfinite(balance):
            balance = 0
        result = {
            "success": response.success,
            "balance": balance,
            "currency": str(data.get("currency") or currency),
        }
        if not response.success:
            result["error"] = response.error_message("Balance request failed")
        return result


@lru_cache
def get_portal02_client() -> Portal02Client:
    # One long-lived client so the offer cache is shared by every caller.
    return Portal02Client()
