import enum
import logging
import math
from dataclasses import dataclass, field

from datahub.services.errors import NoOfferAvailable


logger = logging.getLogger(__name__)


# Known spellings of each network's name in the provider catalog `isp` field.
ISP_CANDIDATES = {
    "MTN": ("mtn",),
    "TELECEL": ("telecel", "vodafone"),
    "AIRTELTIGO": ("airteltigo", "airtel", "tigo"),
}

# Path segment of POST /order/{network}.
ORDER_NETWORK_PATHS = {
    "MTN": "mtn",
    "TELECEL": "telecel",
    "AIRTELTIGO": "at",
}

# Used when the live catalog is unavailable or has no data offer for the network.
FALLBACK_OFFER_SLUGS = {
    "MTN": "master_beneficiary_data_bundle",
    "TELECEL": "telecel_expiry_bundle",
    "AIRTELTIGO": "ishare_data_bundle",
}

VOLUME_TOLERANCE_GB = 0.01


@dataclass(frozen=True)
class Offer:
    isp: str
    type: str
    offer_slug: str | None
    volumes: tuple[float, ...] = field(default_factory=tuple)

    @property
    def is_data(self) -> bool:
        return "data" in self.type.lower()

    def supports_volume(self, volume: float) -> bool:
        return any(abs(v - volume) < VOLUME_TOLERANCE_GB for v in self.volumes)


def network_key(network) -> str:
    if isinstance(network, enum.Enum):
        network = network.value
    return str(network or "").strip().upper()


def order_network_path(network) -> str:
    key = network_key(network)
    return ORDER_NETWORK_PATHS.get(key, key.lower())


def _parse_volumes(raw) -> tuple[float, ...]:
    if not isinstance(raw, (list, tuple)):
        return ()
    volumes = []
    for item in raw:
        try:
            value = float(item)
        except (TypeError, ValueError):
            continue
        if math.isfinite(value):
            volumes.append(value)
    return tuple(volumes)


def parse_offers(rows) -> list[Offer]:
    if not isinstance(rows, list):
        return []
    offers = []
    for row in rows:
        if not isinstance(row, dict):
            continue
        slug = row.get("offerSlug") or row.get("offer_slug")
        offers.append(
            Offer(
                isp=str(row.get("isp") or "").strip(),
                type=str(row.get("type") or "").strip(),
                offer_slug=str(slug).strip() if slug not in (None, "") else None,
                volumes=_parse_volumes(row.get("volumes")),
            )
        )
    return offers


def find_offer(offers: list[Offer], network) -> Offer | None:
    key = network_key(network)
    candidates = ISP_CANDIDATES.get(key, (key.lower(),))
    for offer in offers:
        if not offer.is_data:
            continue
        if offer.isp.lower() in candidates:
            return offer
    return None


def resolve_offer_slug(offers: list[Offer], network, volume: float) -> tuple[Offer | None, str]:
    """Pick the provider offer slug for an order.

    Returns the matched catalog offer (or None when the fallback table was
    used) together with the slug to submit.
    """
    key = network_key(network)
    offer = find_offer(offers, network)

    slug = offer.offer_slug if offer else None
    if not slug and key in FALLBACK_OFFER_SLUGS:
        slug = FALLBACK_OFFER_SLUGS[key]
        logger.info("Using fallback offer slug %s for network %s", slug, key)

    if not slug:
        logger.error(
            "No data offer for network %s. Available: %s",
            key,
            [(o.isp, o.type, o.offer_slug) for o in offers],
        )
        raise NoOfferAvailable(f"No data offer found for network: {key or network}")

    # The provider catalog is not reliable enough to block on.
    if offer and offer.volumes and not offer.supports_volume(volume):
        logger.warning(
            "Requested volume %sGB may not be available for %s. Available: %s",
            volume,
            slug,
            ", ".join(f"{v:g}" for v in offer.volumes),
        )
    return offer, slug
