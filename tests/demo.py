"""
paymock Demo Script
===================
Walks a client through the main flows of the mock payment API:

  1. Customer with a card
  2. Plan and subscription (dual-indexed under the customer)
  3. Invoice payment with an application fee
  4. Scripted card decline
  5. Strict mode off: records synthesized on demand
  6. Store dump

Run with:
    python tests/demo.py

Make sure the server is running first:
    uvicorn paymock.main:app --reload
"""

import httpx

BASE_URL = "http://127.0.0.1:8000"
HEADERS = {"Authorization": "Bearer sk_test_demo"}

COLORS = {
    "green": "\033[92m",
    "red": "\033[91m",
    "yellow": "\033[93m",
    "cyan": "\033[96m",
    "bold": "\033[1m",
    "reset": "\033[0m",
}


def c(color: str, text: str) -> str:
    return f"{COLORS[color]}{text}{COLORS['reset']}"


def separator(title: str = "") -> None:
    line = "─" * 60
    if title:
        print(f"\n{c('bold', line)}")
        print(c("bold", f"  {title}"))
        print(c("bold", line))
    else:
        print(c("bold", line))


def api(client: httpx.Client, method: str, path: str, data: dict | None = None) -> httpx.Response:
    return client.request(method, f"{BASE_URL}{path}", data=data, headers=HEADERS)


def run_demo():
    print(c("bold", "\n" + "═" * 60))
    print(c("bold", "   paymock: mock payment API walkthrough"))
    print(c("bold", "═" * 60))

    with httpx.Client(timeout=30) as client:

        # ── 0. Health check ───────────────────────────────────────
        separator("0. Service health check")
        try:
            r = client.get(f"{BASE_URL}/")
            r.raise_for_status()
            print(f"  {c('green', 'Service is UP')}: {r.json()['status']}")
        except httpx.HTTPError as e:
            print(c("red", f"  Cannot reach service: {e}"))
            print(c("yellow", "  Start the server with: uvicorn paymock.main:app --reload"))
            return
        client.post(f"{BASE_URL}/_paymock/reset").raise_for_status()

        # ── 1. Customer with a card ───────────────────────────────
        separator("1. Customer with a card")
        token = client.post(
            f"{BASE_URL}/_paymock/card-tokens",
            json={"card": {"number": "4242424242424242", "exp_month": 12, "exp_year": 2030}},
        ).json()["id"]
        customer = api(
            client, "POST", "/v1/customers",
            {"email": "studio@example.com", "source": token, "metadata[segment]": "fitness"},
        ).json()
        print(f"  Customer     : {customer['id']}")
        print(f"  Default card : {customer['default_source']} (last4 {customer['sources']['data'][0]['last4']})")

        reused = api(client, "POST", "/v1/customers", {"source": token})
        print(f"  Token reuse  : {c('red', str(reused.status_code))} {reused.json()['error']['message']}")

        # ── 2. Plan and subscription ──────────────────────────────
        separator("2. Plan and subscription")
        api(client, "POST", "/v1/plans", {"id": "gold", "amount": "2000", "interval": "month"})
        subscription = api(
            client, "POST", f"/v1/customers/{customer['id']}/subscriptions",
            {"plan": "gold", "application_fee_percent": "10"},
        ).json()
        print(f"  Subscription : {subscription['id']} status={subscription['status']}")

        api(client, "POST", f"/v1/subscriptions/{subscription['id']}", {"quantity": "2"})
        nested = api(client, "GET", f"/v1/customers/{customer['id']}/subscriptions").json()
        print(f"  Quantity seen through the customer: {nested['data'][0]['quantity']}")

        # ── 3. Invoice payment ────────────────────────────────────
        separator("3. Invoice payment with application fee")
        invoice = api(
            client, "POST", "/v1/invoices",
            {"customer": customer["id"], "subscription": subscription["id"], "amount_due": "2000"},
        ).json()
        paid = api(client, "POST", f"/v1/invoices/{invoice['id']}/pay").json()
        charge = api(client, "GET", f"/v1/charges/{paid['charge']}").json()
        txn = api(client, "GET", f"/v1/balance/history/{charge['balance_transaction']}").json()
        print(f"  Invoice      : {paid['id']} paid={c('green', str(paid['paid']))}")
        print(f"  Charge       : {charge['id']} amount={charge['amount']}")
        print(f"  App fee      : {paid['application_fee']} ({charge['application_fee']})")
        print(f"  Ledger       : fee={txn['fee']} net={txn['net']}")

        # ── 4. Scripted decline ───────────────────────────────────
        separator("4. Scripted card decline")
        client.post(f"{BASE_URL}/_paymock/card-errors/card_declined").raise_for_status()
        declined = api(client, "POST", "/v1/charges", {"amount": "500", "customer": customer["id"]})
        print(f"  First charge : {c('red', str(declined.status_code))} {declined.json()['error']['code']}")
        retried = api(client, "POST", "/v1/charges", {"amount": "500", "customer": customer["id"]})
        print(f"  Retry        : {c('green', str(retried.status_code))} {retried.json()['id']}")

        # ── 5. Strict mode ────────────────────────────────────────
        separator("5. Strict mode off")
        missing = api(client, "GET", "/v1/customers/cus_unknown")
        print(f"  Strict on    : {missing.status_code} {missing.json()['error']['message']}")
        client.post(f"{BASE_URL}/_paymock/strict", json={"enabled": False})
        synthesized = api(client, "GET", "/v1/customers/cus_unknown").json()
        print(f"  Strict off   : synthesized {synthesized['id']} ({synthesized['email']})")
        client.post(f"{BASE_URL}/_paymock/strict", json={"enabled": True})

        # ── 6. Store dump ─────────────────────────────────────────
        separator("6. Store sizes")
        for store in ("customers", "plans", "subscriptions", "invoices", "charges",
                      "balance_transactions", "application_fees", "card_tokens"):
            data = client.get(f"{BASE_URL}/_paymock/data/{store}").json()
            print(f"  {store:<22} {len(data):>3}")

    separator()
    print(c("green", "  Demo complete! Check the server logs for request traces."))
    print(c("cyan", "  Swagger UI available at: http://127.0.0.1:8000/docs"))
    separator()


if __name__ == "__main__":
    run_demo()
