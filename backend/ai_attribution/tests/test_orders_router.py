"""Tests for order ingestion endpoint.

WHAT: POST /orders/ingest
WHY: Backfills push hundreds of orders at once; a single malformed node must
     be reported without losing the rest of the batch

REFERENCES:
  - ai_attribution/routers/orders.py
  - ai_attribution/services/order_repository.py
"""

from ai_attribution.models import Order


def test_ingest_batch_counts(client, test_db_session, make_order_node):
    orders = [
        make_order_node("1", "2024-11-05T10:00:00Z", "100.00", referrer="https://chatgpt.com/", customer_id="1"),
        make_order_node("2", "2024-11-06T10:00:00Z", "50.00", customer_id="2"),
    ]

    response = client.post("/orders/ingest", json={"orders": orders})

    assert response.status_code == 200
    assert response.json() == {"received": 2, "created": 2, "updated": 0, "failed": 0, "failures": []}
    assert test_db_session.query(Order).count() == 2


def test_reingest_updates(client, make_order_node):
    orders = [make_order_node("1", "2024-11-05T10:00:00Z", "100.00")]

    client.post("/orders/ingest", json={"orders": orders})
    response = client.post("/orders/ingest", json={"orders": orders})

    body = response.json()
    assert body["created"] == 0
    assert body["updated"] == 1


def test_malformed_order_is_reported_and_rest_committed(client, test_db_session, make_order_node):
    broken = make_order_node("2", "2024-11-06T10:00:00Z", "50.00")
    broken["createdAt"] = None
    orders = [make_order_node("1", "2024-11-05T10:00:00Z", "100.00"), broken]

    response = client.post("/orders/ingest", json={"orders": orders})

    body = response.json()
    assert response.status_code == 200
    assert body["created"] == 1
    assert body["failed"] == 1
    assert body["failures"][0]["order_id"] == "gid://shopify/Order/2"
    assert "createdAt" in body["failures"][0]["error"]
    assert test_db_session.get(Order, "gid://shopify/Order/1") is not None


def test_missing_orders_key_is_rejected(client):
    assert client.post("/orders/ingest", json={}).status_code == 422


def test_wrongly_shaped_nodes_do_not_abort_batch(client, test_db_session, make_order_node):
    good = make_order_node("1", "2024-11-05T10:00:00Z", "100.00", referrer="https://chatgpt.com/", customer_id="1")
    no_line_node = make_order_node("2", "2024-11-06T10:00:00Z", "50.00")
    no_line_node["lineItems"]["edges"] = [None]
    string_customer = make_order_node("3", "2024-11-06T11:00:00Z", "20.00")
    string_customer["customer"] = "gid://shopify/Customer/3"
    numeric_id = make_order_node("4", "2024-11-06T12:00:00Z", "10.00")
    numeric_id["id"] = 4

    response = client.post("/orders/ingest", json={"orders": [good, no_line_node, string_customer, numeric_id]})

    assert response.status_code == 200
    body = response.json()
    assert body["created"] == 1
    assert body["failed"] == 3
    assert [failure["order_id"] for failure in body["failures"]] == [
        "gid://shopify/Order/2",
        "gid://shopify/Order/3",
        "4",
    ]
    assert "lineItems.edges[]" in body["failures"][0]["error"]
    assert "customer" in body["failures"][1]["error"]
    assert test_db_session.query(Order).count() == 1
    assert test_db_session.get(Order, "gid://shopify/Order/1").ai_source == "ChatGPT"
