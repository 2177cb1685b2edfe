import pytest

from datahub.models import Network
from datahub.services.errors import NoOfferAvailable
from datahub.services.offers import (
    FALLBACK_OFFER_SLUGS,
    find_offer,
    order_network_path,
    parse_offers,
    resolve_offer_slug,
)
from datahub.utils.cache import SnapshotCache


CATALOG = [
    {"isp": "MTN", "type": "Data", "offerSlug": "mtn_master_bundle", "volumes": [1, 2, 5]},
    {"isp": "Vodafone", "type": "data bundle", "offerSlug": "telecel_bundle", "volumes": ["1", "10"]},
    {"isp": "AirtelTigo", "type": "airtime", "offerSlug": "at_airtime", "volumes": []},
    "not-an-offer",
]


def test_parse_offers_skips_malformed_rows():
    offers = parse_offers(CATALOG)
    assert [o.offer_slug for o in offers] == ["mtn_master_bundle", "telecel_bundle", "at_airtime"]
    assert offers[1].volumes == (1.0, 10.0)
    assert parse_offers(None) == []


def test_find_offer_uses_isp_aliases_and_requires_data_type():
    offers = parse_offers(CATALOG)
    assert find_offer(offers, Network.MTN).offer_slug == "mtn_master_bundle"
    assert find_offer(offers, "telecel").offer_slug == "telecel_bundle"
    # Only an airtime offer exists for AirtelTigo.
    assert find_offer(offers, Network.AIRTELTIGO) is None


def test_resolve_offer_slug_falls_back_when_catalog_has_no_match():
    offer, slug = resolve_offer_slug(parse_offers(CATALOG), Network.AIRTELTIGO, 1.0)
    assert offer is None
    assert slug == FALLBACK_OFFER_SLUGS["AIRTELTIGO"]


def test_resolve_offer_slug_falls_back_on_empty_catalog():
    _, slug = resolve_offer_slug([], "MTN", 1.0)
    assert slug == FALLBACK_OFFER_SLUGS["MTN"]


def test_resolve_offer_slug_does_not_block_on_unlisted_volume():
    offer, slug = resolve_offer_slug(parse_offers(CATALOG), Network.MTN, 3.0)
    assert slug == "mtn_master_bundle"
    assert not offer.supports_volume(3.0)
    assert offer.supports_volume(2.005)


def test_resolve_offer_slug_raises_for_unknown_network():
    with pytest.raises(NoOfferAvailable):
        resolve_offer_slug([], "GLO", 1.0)


def test_order_network_path():
    assert order_network_path(Network.AIRTELTIGO) == "at"
    assert order_network_path("mtn") == "mtn"
    assert order_network_path(Network.TELECEL) == "telecel"


class _Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_snapshot_cache_ttl_and_stale_reads():
    clock = _Clock()
    cache = SnapshotCache(600, clock=clock)
    assert cache.get_fresh() is None

    cache.replace(("a",))
    clock.now += 599
    assert cache.get_fresh() == ("a",)

    clock.now += 1
    assert cache.get_fresh() is None
    assert cache.get_stale() == ("a",)

    cache.clear()
    assert cache.get_stale() is None


def test_snapshot_cache_treats_empty_snapshot_as_fresh():
    clock = _Clock()
    cache = SnapshotCache(600, clock=clock)
    cache.replace(())
    assert cache.get_fresh() == ()
    clock.now += 600
    assert cache.get_fresh() is None
