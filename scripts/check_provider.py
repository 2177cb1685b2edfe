#!/usr/bin/env python3
"""Check Portal-02 connectivity: wallet balance and the data offer catalog."""

from __future__ import annotations

from datahub.core.logging import configure_logging
from datahub.services.errors import ProviderUnavailable
from datahub.services.portal02 import Portal02Client


def fail(message: str) -> None:
    print(f"ERROR: {message}")
    raise SystemExit(1)


def main() -> None:
    configure_logging()
    client = Portal02Client()
    print(f"Provider: {client.base_url}")
    print(f"Callback: {client.callback_url()}")

    balance = client.check_balance()
    if not balance["success"]:
        fail(f"Balance check failed: {balance.get('error')}")
    print(f"Balance: {balance['balance']:.2f} {balance['currency']}")

    try:
        offers = client.fetch_offers()
    except ProviderUnavailable as exc:
        fail(f"Offers request failed: {exc.message}")
    data_offers = [offer for offer in offers if offer.is_data]
    print(f"Offers: {len(offers)} total, {len(data_offers)} data")
    for offer in data_offers:
        volumes = ", ".join(f"{volume:g}GB" for volume in offer.volumes) or "-"
        print(f"  {offer.isp:<10} {offer.offer_slug:<32} {volumes}")
    print("OK")


if __name__ == "__main__":
    main()
