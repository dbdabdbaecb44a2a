"""
API-level integration tests for paymock.

Uses FastAPI's TestClient (synchronous) so no pytest-asyncio is needed.
The lifespan context manager (startup/shutdown) runs once for the module,
so every test starts from a reset engine via the /_paymock/reset route.

Requests are sent the way payment clients send them: form-encoded bodies
with bracketed keys for nested values and a Bearer API key.
"""

import pytest
from fastapi.testclient import TestClient

from paymock.main import app

_AUTH = {"Authorization": "Bearer sk_test_123"}

# ---------------------------------------------------------------------------
# Shared client: lifespan runs once for the whole module
# ---------------------------------------------------------------------------

@pytest.fixture(scope="module")
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture(autouse=True)
def _reset(client):
    client.post("/_paymock/reset")
    yield


def _post(client, url: str, data: dict | None = None):
    return client.post(url, data=data or {}, headers=_AUTH)


# ---------------------------------------------------------------------------
# 1. Health
# ---------------------------------------------------------------------------

def test_root(client):
    r = client.get("/")
    assert r.status_code == 200
    assert r.json()["service"] == "paymock"


# ---------------------------------------------------------------------------
# 2. Form-encoded requests
# ---------------------------------------------------------------------------

def test_create_customer_with_nested_form_params(client):
    r = _post(client, "/v1/customers", {"email": "jo@example.com", "metadata[tier]": "gold"})

    assert r.status_code == 200
    data = r.json()
    assert data["id"] == "test_cus_1"
    assert data["email"] == "jo@example.com"
    assert data["metadata"] == {"tier": "gold"}


def test_form_values_are_coerced(client):
    r = _post(client, "/v1/charges", {"amount": "1500", "capture": "false"})

    assert r.status_code == 200
    data = r.json()
    assert data["amount"] == 1500
    assert data["captured"] is False


def test_numeric_coupon_id_stays_a_string(client):
    r = _post(client, "/v1/coupons", {"id": "2024", "percent_off": "15"})
    assert r.status_code == 200
    assert r.json()["id"] == "2024"
    assert r.json()["percent_off"] == 15

    fetched = client.get("/v1/coupons/2024", headers=_AUTH)
    assert fetched.status_code == 200
    assert fetched.json()["id"] == "2024"


def test_numeric_customer_id_stays_a_string(client):
    _post(client, "/v1/customers", {"id": "42"})

    fetched = client.get("/v1/customers/42", headers=_AUTH)
    assert fetched.status_code == 200
    assert fetched.json()["id"] == "42"


def test_metadata_values_are_not_coerced(client):
    r = _post(
        client, "/v1/customers",
        {"metadata[order]": "00123", "metadata[vip]": "true", "description": "1999"},
    )

    data = r.json()
    assert data["metadata"] == {"order": "00123", "vip": "true"}
    assert data["description"] == "1999"


def test_json_body_is_accepted(client):
    r = client.post("/v1/plans", json={"id": "gold", "amount": 2000, "interval": "year"}, headers=_AUTH)
    assert r.status_code == 200
    assert r.json()["interval"] == "year"


def test_invalid_json_body(client):
    r = client.post(
        "/v1/customers",
        content="{not json",
        headers={**_AUTH, "content-type": "application/json"},
    )
    assert r.status_code == 400
    assert r.json()["error"]["type"] == "invalid_request_error"


def test_query_params_drive_pagination(client):
    for amount in ("100", "200", "300"):
        _post(client, "/v1/charges", {"amount": amount})

    r = client.get("/v1/charges?limit=2", headers=_AUTH)
    data = r.json()
    assert [c["amount"] for c in data["data"]] == [100, 200]
    assert data["has_more"] is True


# ---------------------------------------------------------------------------
# 3. Error bodies
# ---------------------------------------------------------------------------

def test_missing_customer_returns_404_error_body(client):
    r = client.get("/v1/customers/cus_missing", headers=_AUTH)

    assert r.status_code == 404
    error = r.json()["error"]
    assert error["type"] == "invalid_request_error"
    assert error["param"] == "customer"
    assert error["message"] == "No such customer: cus_missing"


def test_invalid_amount_returns_400(client):
    r = _post(client, "/v1/charges", {"amount": "0"})
    assert r.status_code == 400
    assert r.json()["error"]["param"] == "amount"


def test_unrecognized_route_returns_empty_body(client):
    r = client.get("/v1/widgets", headers=_AUTH)
    assert r.status_code == 200
    assert r.json() == {}


def test_delete_customer(client):
    cus_id = _post(client, "/v1/customers").json()["id"]
    r = client.delete(f"/v1/customers/{cus_id}", headers=_AUTH)
    assert r.json() == {"id": cus_id, "deleted": True}


# ---------------------------------------------------------------------------
# 4. Invoices end to end
# ---------------------------------------------------------------------------

def test_pay_invoice_over_http(client):
    invoice = _post(client, "/v1/invoices", {"amount_due": "1000"}).json()

    r = _post(client, f"/v1/invoices/{invoice['id']}/pay")
    assert r.status_code == 200
    paid = r.json()
    assert paid["paid"] is True

    charges = client.get("/_paymock/data/charges").json()
    txns = client.get("/_paymock/data/balance_transactions").json()
    txn = txns[charges[paid["charge"]]["balance_transaction"]]
    assert (txn["fee"], txn["net"]) == (59, 941)

    again = _post(client, f"/v1/invoices/{invoice['id']}/pay")
    assert again.status_code == 400


def test_subscription_requires_card_over_http(client):
    client.post("/v1/plans", json={"id": "gold", "amount": 2000}, headers=_AUTH)
    r = _post(client, "/v1/customers", {"plan": "gold"})

    assert r.status_code == 400
    assert r.json()["error"]["message"] == "You must supply a valid card"
    assert client.get("/_paymock/data/customers").json() == {}


# ---------------------------------------------------------------------------
# 5. Scripted errors
# ---------------------------------------------------------------------------

def test_enqueued_error_fires_once(client):
    r = client.post(
        "/_paymock/errors",
        json={
            "handler_name": "new_charge",
            "message": "Your card has insufficient funds.",
            "error_type": "card_error",
            "code": "insufficient_funds",
        },
    )
    assert r.status_code == 200
    assert r.json()["queued"] == 1

    failed = _post(client, "/v1/charges", {"amount": "500"})
    assert failed.status_code == 402
    assert failed.json()["error"] == {
        "type": "card_error",
        "message": "Your card has insufficient funds.",
        "param": None,
        "code": "insufficient_funds",
    }

    assert _post(client, "/v1/charges", {"amount": "500"}).status_code == 200


def test_enqueue_error_for_unknown_handler(client):
    r = client.post("/_paymock/errors", json={"handler_name": "nope", "message": "x"})
    assert r.status_code == 404


def test_enqueue_error_rejects_bad_status(client):
    r = client.post(
        "/_paymock/errors", json={"handler_name": "new_charge", "message": "x", "http_status": 200}
    )
    assert r.status_code == 422


def test_prepare_card_error(client):
    r = client.post("/_paymock/card-errors/card_declined")
    assert r.status_code == 200

    failed = _post(client, "/v1/charges", {"amount": "500"})
    assert failed.status_code == 402
    assert failed.json()["error"]["code"] == "card_declined"


def test_prepare_card_error_unknown_code_or_handler(client):
    assert client.post("/_paymock/card-errors/melted_card").status_code == 404
    r = client.post("/_paymock/card-errors/card_declined?handler_name=nope")
    assert r.status_code == 404


# ---------------------------------------------------------------------------
# 6. Control routes
# ---------------------------------------------------------------------------

def test_strict_toggle(client):
    try:
        r = client.post("/_paymock/strict", json={"enabled": False})
        assert r.json() == {"strict": False}

        ghost = client.get("/v1/customers/cus_ghost", headers=_AUTH)
        assert ghost.status_code == 200
        assert ghost.json()["id"] == "cus_ghost"
    finally:
        client.post("/_paymock/strict", json={"enabled": True})

    assert client.get("/v1/customers/cus_other", headers=_AUTH).status_code == 404


def test_debug_toggle(client):
    try:
        assert client.post("/_paymock/debug", json={"enabled": True}).json() == {"debug": True}
        assert _post(client, "/v1/customers").status_code == 200
    finally:
        client.post("/_paymock/debug", json={"enabled": False})


def test_id_prefix(client):
    try:
        client.post("/_paymock/id-prefix", json={"prefix": "live_"})
        assert _post(client, "/v1/customers").json()["id"] == "live_cus_1"
    finally:
        client.post("/_paymock/id-prefix", json={"prefix": "test_"})


def test_card_token_route(client):
    token = client.post("/_paymock/card-tokens", json={"card": {"number": "4000000000000002"}}).json()["id"]

    charge = _post(client, "/v1/charges", {"amount": "500", "source": token}).json()
    assert charge["source"]["last4"] == "0002"

    reused = _post(client, "/v1/charges", {"amount": "500", "source": token})
    assert reused.status_code == 400


def test_data_routes(client):
    cus_id = _post(client, "/v1/customers").json()["id"]

    assert cus_id in client.get("/_paymock/data/customers").json()
    assert client.get("/_paymock/data/widgets").status_code == 404


def test_handlers_route(client):
    names = client.get("/_paymock/handlers").json()
    assert "new_charge" in names
    assert "pay_invoice" in names
    assert names.index("create_subscription") < names.index("update_customer")


def test_reset(client):
    _post(client, "/v1/customers")
    client.post("/_paymock/card-errors/card_declined")

    assert client.post("/_paymock/reset").json() == {"action": "reset"}

    assert client.get("/_paymock/data/customers").json() == {}
    assert _post(client, "/v1/charges", {"amount": "500"}).status_code == 200
