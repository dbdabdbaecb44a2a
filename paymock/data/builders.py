"""
Object builders: default attribute mappings for every entity kind.

Each builder returns a fresh dict shaped like the real API's JSON object,
with caller-supplied overrides merged last.  Defaults are deliberately
non-null and realistic so that records synthesized on the fly (strict mode
off) look like something a client could have created.  Builders never touch
engine state; ids are allocated by the caller.
"""

import time

from paymock.models.errors import InvalidRequestError
from paymock.models.lists import parse_list_params

DEFAULT_CURRENCY = "usd"


def _now() -> int:
    return int(time.time())


def _list(data: list, url: str) -> dict:
    return {
        "object": "list",
        "data": data,
        "has_more": False,
        "total_count": len(data),
        "url": url,
    }


def mock_card(params: dict | None = None) -> dict:
    card = {
        "id": "test_cc_default",
        "object": "card",
        "brand": "Visa",
        "funding": "credit",
        "last4": "4242",
        "exp_month": 4,
        "exp_year": 2030,
        "fingerprint": "wXWJT135mEK107G8",
        "country": "US",
        "name": "Johnny App",
        "address_line1": None,
        "address_city": None,
        "address_zip": None,
        "address_country": None,
        "cvc_check": "pass",
        "address_zip_check": None,
        "customer": None,
        "metadata": {},
    }
    card.update(params or {})
    return card


def mock_card_token(params: dict | None = None) -> dict:
    params = dict(params or {})
    card = mock_card(params.pop("card", None))
    token = {
        "id": "test_tok_default",
        "object": "token",
        "type": "card",
        "used": False,
        "livemode": False,
        "created": _now(),
        "card": card,
    }
    token.update(params)
    return token


def mock_customer(sources: list[dict], params: dict | None = None) -> dict:
    params = params or {}
    cus_id = params.get("id", "test_cus_default")
    customer = {
        "id": cus_id,
        "object": "customer",
        "email": "stripe_mock@example.com",
        "description": "an auto-generated customer data mock",
        "created": _now(),
        "livemode": False,
        "delinquent": False,
        "discount": None,
        "account_balance": 0,
        "currency": None,
        "default_source": sources[0]["id"] if sources else None,
        "metadata": {},
        "sources": _list(sources, f"/v1/customers/{cus_id}/sources"),
        "subscriptions": _list([], f"/v1/customers/{cus_id}/subscriptions"),
    }
    customer.update(params)
    return customer


def mock_coupon(params: dict | None = None) -> dict:
    params = params or {}
    coupon = {
        "id": "10BUCKS",
        "object": "coupon",
        "created": _now(),
        "livemode": False,
        "duration": "repeating",
        "duration_in_months": 3,
        "amount_off": None,
        "currency": None,
        "percent_off": 25,
        "max_redemptions": None,
        "redeem_by": None,
        "times_redeemed": 0,
        "valid": True,
        "metadata": {},
    }
    if params.get("amount_off") is not None:
        coupon["percent_off"] = None
        coupon["currency"] = DEFAULT_CURRENCY
    coupon.update(params)
    return coupon


def mock_discount(coupon: dict, customer_id: str, subscription_id: str | None = None) -> dict:
    start = _now()
    end = None
    if coupon.get("duration") == "repeating" and coupon.get("duration_in_months"):
        end = start + coupon["duration_in_months"] * 30 * 86400
    return {
        "object": "discount",
        "coupon": coupon,
        "customer": customer_id,
        "subscription": subscription_id,
        "start": start,
        "end": end,
    }


def mock_plan(params: dict | None = None) -> dict:
    plan = {
        "id": "2",
        "object": "plan",
        "name": "The Basic Plan",
        "amount": 1337,
        "currency": DEFAULT_CURRENCY,
        "interval": "month",
        "interval_count": 1,
        "trial_period_days": None,
        "statement_descriptor": None,
        "created": _now(),
        "livemode": False,
        "metadata": {},
    }
    plan.update(params or {})
    return plan


def mock_subscription(params: dict | None = None) -> dict:
    now = _now()
    subscription = {
        "id": "test_su_default",
        "object": "subscription",
        "plan": mock_plan(),
        "customer": "test_cus_default",
        "status": "active",
        "quantity": 1,
        "start": now,
        "current_period_start": now,
        "current_period_end": now + 30 * 86400,
        "trial_start": None,
        "trial_end": None,
        "cancel_at_period_end": False,
        "canceled_at": None,
        "ended_at": None,
        "application_fee_percent": None,
        "tax_percent": None,
        "discount": None,
        "metadata": {},
    }
    subscription.update(params or {})
    return subscription


def mock_charge(params: dict | None = None) -> dict:
    params = params or {}
    ch_id = params.get("id", "test_ch_default")
    charge = {
        "id": ch_id,
        "object": "charge",
        "created": _now(),
        "livemode": False,
        "paid": True,
        "status": "succeeded",
        "amount": 1000,
        "currency": DEFAULT_CURRENCY,
        "captured": True,
        "refunded": False,
        "amount_refunded": 0,
        "refunds": _list([], f"/v1/charges/{ch_id}/refunds"),
        "source": mock_card(),
        "customer": None,
        "invoice": None,
        "description": None,
        "statement_descriptor": None,
        "receipt_email": None,
        "balance_transaction": None,
        "application_fee": None,
        "failure_code": None,
        "failure_message": None,
        "fraud_details": {},
        "dispute": None,
        "metadata": {},
    }
    charge.update(params)
    return charge


def mock_line_item(params: dict | None = None) -> dict:
    now = _now()
    item = {
        "id": "test_ii_default",
        "object": "line_item",
        "type": "invoiceitem",
        "livemode": False,
        "amount": 1000,
        "currency": DEFAULT_CURRENCY,
        "discountable": False,
        "proration": False,
        "quantity": None,
        "plan": None,
        "description": "Test invoice item",
        "period": {"start": now, "end": now},
        "metadata": {},
    }
    item.update(params or {})
    return item


def mock_invoice(lines: list[dict], params: dict | None = None) -> dict:
    """Amount fields default to the sum of the line items."""
    params = params or {}
    in_id = params.get("id", "test_in_default")
    now = _now()
    lines = list(lines) or [mock_line_item()]
    total = sum(line.get("amount") or 0 for line in lines)
    invoice = {
        "id": in_id,
        "object": "invoice",
        "date": now,
        "livemode": False,
        "customer": "test_cus_default",
        "subscription": None,
        "lines": _list(lines, f"/v1/invoices/{in_id}/lines"),
        "currency": DEFAULT_CURRENCY,
        "subtotal": total,
        "total": total,
        "amount_due": total,
        "starting_balance": 0,
        "ending_balance": None,
        "discount": None,
        "paid": False,
        "attempted": False,
        "closed": False,
        "forgiven": False,
        "attempt_count": 0,
        "charge": None,
        "application_fee": None,
        "period_start": now,
        "period_end": now,
        "next_payment_attempt": now + 3600,
        "metadata": {},
    }
    invoice.update(params)
    return invoice


def mock_balance_transaction(params: dict | None = None) -> dict:
    """``net`` and ``fee_details`` are derived from ``amount`` and ``fee`` unless given."""
    params = params or {}
    now = _now()
    amount = params.get("amount", 0) or 0
    fee = params.get("fee", 0) or 0
    txn = {
        "id": "test_txn_default",
        "object": "balance_transaction",
        "amount": amount,
        "currency": DEFAULT_CURRENCY,
        "fee": fee,
        "net": amount - fee,
        "fee_details": [
            {
                "amount": fee,
                "application": None,
                "currency": DEFAULT_CURRENCY,
                "description": "Stripe processing fees",
                "type": "stripe_fee",
            }
        ],
        "source": None,
        "type": "charge",
        "status": "pending",
        "description": None,
        "created": now,
        "available_on": now + 7 * 86400,
    }
    txn.update(params)
    return txn


def mock_application_fee(params: dict | None = None) -> dict:
    params = params or {}
    fee_id = params.get("id", "test_fee_default")
    fee = {
        "id": fee_id,
        "object": "application_fee",
        "amount": 0,
        "amount_refunded": 0,
        "refunded": False,
        "refunds": _list([], f"/v1/application_fees/{fee_id}/refunds"),
        "account": None,
        "application": "test_ca_default",
        "balance_transaction": None,
        "charge": None,
        "currency": DEFAULT_CURRENCY,
        "created": _now(),
        "livemode": False,
    }
    fee.update(params)
    return fee


def mock_list_object(
    data: list[dict],
    params: dict | None = None,
    url: str = "",
    default_limit: int = 10,
    max_limit: int = 100,
) -> dict:
    """
    Wrap *data* (already in store order) in a paginated list envelope.

    Supports ``offset``/``limit`` as well as ``starting_after`` and
    ``ending_before`` id cursors.
    """
    page = parse_list_params(params or {}, default_limit=default_limit, max_limit=max_limit)
    items = list(data)
    ids = [item.get("id") for item in items]

    if page.ending_before is not None:
        if page.ending_before not in ids:
            raise InvalidRequestError(
                f"Invalid ending_before id: {page.ending_before}", param="ending_before"
            )
        before = items[: ids.index(page.ending_before)]
        window = before[-page.limit:]
        has_more = len(before) > page.limit
    else:
        if page.starting_after is not None:
            if page.starting_after not in ids:
                raise InvalidRequestError(
                    f"Invalid starting_after id: {page.starting_after}", param="starting_after"
                )
            items = items[ids.index(page.starting_after) + 1:]
        end = page.offset + page.limit
        window = items[page.offset:end]
        has_more = len(items) > end

    return {
        "object": "list",
        "data": window,
        "has_more": has_more,
        "total_count": len(data),
        "url": url,
    }
