import json

from datahub.services.identifiers import extract_provider_id, is_uuid


UUID = "3f2b8c1e-9a4d-4e6f-8b2a-1c3d5e7f9a0b"


def test_top_level_order_id():
    assert extract_provider_id({"orderId": "ABC123", "status": "success"}, "TXN-1") == "ABC123"


def test_recipient_scoped_short_id_inside_data():
    response = {"data": {"recipient": "0244000000", "id": "X1"}}
    assert extract_provider_id(response, "TXN-1", "233244000000") == "X1"


def test_bare_uuid_is_never_returned():
    assert extract_provider_id({"id": UUID}, "TXN-1") == "TXN-1"
    assert extract_provider_id(UUID, "TXN-1") == "TXN-1"
    assert is_uuid(UUID.upper())


def test_status_literals_and_booleans_are_not_identifiers():
    response = {"success": True, "id": "success", "reference": "pending", "order_id": 0}
    assert extract_provider_id(response, "TXN-1") == "TXN-1"


def test_recipient_phone_is_not_mistaken_for_an_id():
    response = {"data": {"id": "0244000000", "recipient": "0244000000"}}
    assert extract_provider_id(response, "TXN-1", "0244000000") == "TXN-1"


def test_first_item_order_id_shortcut():
    response = {"success": True, "items": [{"orderId": "ORD-77", "status": "processing"}]}
    assert extract_provider_id(response, "TXN-1") == "ORD-77"


def test_bulk_response_prefers_the_matching_recipient():
    response = {
        "success": True,
        "orders": [
            {"recipient": "0200000001", "id": "OTHER-1"},
            {"recipient": "233244000000", "id": "MINE-2"},
        ],
    }
    assert extract_provider_id(response, "TXN-1", "0244000000") == "MINE-2"


def test_second_pass_ignores_recipients_when_none_match():
    response = {"orders": [{"recipient": "0200000001", "id": "ONLY-1"}]}
    assert extract_provider_id(response, "TXN-1", "0244000000") == "ONLY-1"


def test_webhook_snapshot_is_skipped():
    response = {"portal02_webhook": {"orderId": "WEBHOOK-9"}, "meta": {"trans_id": "T-5551"}}
    assert extract_provider_id(response, "TXN-1") == "T-5551"


def test_json_string_responses_are_parsed():
    assert extract_provider_id(json.dumps({"data": {"order_id": "P02-1234"}}), "TXN-1") == "P02-1234"


def test_plain_text_response_used_when_it_looks_like_an_id():
    assert extract_provider_id("P02ORDER998", "TXN-1") == "P02ORDER998"
    assert extract_provider_id("ok", "TXN-1") == "TXN-1"
    assert extract_provider_id("completed", "TXN-1") == "TXN-1"


def test_search_depth_is_bounded():
    node = {"id": "DEEP-ID"}
    for _ in range(8):
        node = {"wrapper": node}
    assert extract_provider_id(node, "TXN-1") == "TXN-1"


def test_empty_response_returns_fallback():
    assert extract_provider_id(None, "TXN-1") == "TXN-1"
    assert extract_provider_id({}, "TXN-1") == "TXN-1"
