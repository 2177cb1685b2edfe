from types import SimpleNamespace

import pytest

from datahub.models import TransactionStatus
from datahub.services.fulfillment import FulfillmentPhase, fulfillment_phase, to_transaction_status
from datahub.services.portal02 import ProviderStatus, map_provider_status


@pytest.mark.parametrize("raw", ["delivered", "completed", "success", "fulfilled", "resolved", "delivered_callback", " Delivered "])
def test_success_vocabulary_maps_to_completed(raw):
    assert map_provider_status(raw) == ProviderStatus.COMPLETED


@pytest.mark.parametrize("raw", ["failed", "error", "cancelled", "rejected", "failed_callback", "refunded", "FAILED"])
def test_failure_vocabulary_maps_to_failed(raw):
    assert map_provider_status(raw) == ProviderStatus.FAILED


@pytest.mark.parametrize("raw", [None, "", "pending", "processing", "queued", "something-new", 42])
def test_unknown_or_missing_status_stays_processing(raw):
    assert map_provider_status(raw) == ProviderStatus.PROCESSING


def test_provider_status_to_local_status():
    assert to_transaction_status(ProviderStatus.COMPLETED) == TransactionStatus.SUCCESS
    assert to_transaction_status(ProviderStatus.FAILED) == TransactionStatus.FAILED
    assert to_transaction_status(ProviderStatus.PROCESSING) == TransactionStatus.PROCESSING


def _tx(status, provider_order_id=None, provider_reference=None):
    return SimpleNamespace(status=status, provider_order_id=provider_order_id, provider_reference=provider_reference)


def test_fulfillment_phase_splits_processing_by_provider_identifiers():
    assert fulfillment_phase(_tx(TransactionStatus.QUEUED)) == FulfillmentPhase.AWAITING_SUBMISSION
    assert fulfillment_phase(_tx(TransactionStatus.PROCESSING)) == FulfillmentPhase.AWAITING_SUBMISSION
    assert fulfillment_phase(_tx("processing", provider_order_id="P-1")) == FulfillmentPhase.AWAITING_COMPLETION
    assert fulfillment_phase(_tx("processing", provider_reference="R-1")) == FulfillmentPhase.AWAITING_COMPLETION
    assert fulfillment_phase(_tx(TransactionStatus.SUCCESS, "P-1")) == FulfillmentPhase.SUCCEEDED
    assert fulfillment_phase(_tx(TransactionStatus.FAILED)) == FulfillmentPhase.FAILED
