"""
Helpers shared by several handler groups: payment sources, discounts and
subscription bookkeeping.

Functions named ``verify_*`` only read state and raise InvalidRequestError;
handlers call all of them before their first store write so a failed
request never leaves a partial mutation behind.
"""

import calendar
import time
from datetime import datetime, timezone

from paymock.data import builders
from paymock.engine.state import MockState
from paymock.models.errors import InvalidRequestError

# Subscription options copied verbatim from request params
SUBSCRIPTION_OPTIONS = ("application_fee_percent", "quantity", "metadata", "tax_percent")

_INTERVAL_SECONDS = {"day": 86_400, "week": 604_800}


# ---------------------------------------------------------------------------
# Cards and tokens
# ---------------------------------------------------------------------------

def payment_source_param(params: dict):
    """``source`` is the current name of the param; ``card`` is the legacy one."""
    if params.get("source") is not None:
        return params["source"]
    return params.get("card")


def verify_source(state: MockState, source) -> None:
    if isinstance(source, dict):
        return
    token = state.card_tokens.get(str(source))
    if token is not None and token["used"]:
        raise InvalidRequestError(
            f"You cannot use a token more than once: {source}", param="source"
        )


def card_from_details(state: MockState, details: dict | None) -> dict:
    attrs = {k: v for k, v in (details or {}).items() if k not in ("number", "cvc", "object")}
    number = (details or {}).get("number")
    if number:
        attrs["last4"] = str(number)[-4:]
    attrs["id"] = state.new_id("cc")
    return builders.mock_card(attrs)


def create_card_token(state: MockState, card_details: dict | None = None) -> dict:
    tok_id = state.new_id("tok")
    token = builders.mock_card_token(
        {"id": tok_id, "card": card_from_details(state, card_details)}
    )
    state.card_tokens[tok_id] = token
    return token


def card_from_source(state: MockState, source, customer_id: str | None = None) -> dict:
    """
    Resolve a ``source``/``card`` param into a card record.

    A known token is marked used and yields a copy of its card; a dict of
    card fields yields a new card; any other token string yields a fresh
    default card.
    """
    if isinstance(source, dict):
        card = card_from_details(state, source)
    else:
        token = state.card_tokens.get(str(source))
        if token is not None:
            token["used"] = True
            card = dict(token["card"])
        else:
            card = builders.mock_card({"id": state.new_id("cc")})
    card["customer"] = customer_id
    return card


def set_default_card(customer: dict, card: dict) -> None:
    """Replace the customer's cards with *card* and make it the default source."""
    customer["sources"]["data"] = [card]
    customer["sources"]["total_count"] = 1
    customer["default_source"] = card["id"]


# ---------------------------------------------------------------------------
# Coupons
# ---------------------------------------------------------------------------

def find_coupon(state: MockState, coupon_id) -> dict:
    """Check-phase lookup; a synthesized coupon is only stored by redeem_coupon."""
    return state.find_or_synthesize(
        "coupon", state.coupons, str(coupon_id), builders.mock_coupon, save=False
    )


def redeem_coupon(
    state: MockState, coupon: dict, customer_id: str, subscription_id: str | None = None
) -> dict:
    coupon = state.coupons.setdefault(coupon["id"], coupon)
    coupon["times_redeemed"] = coupon.get("times_redeemed", 0) + 1
    return builders.mock_discount(coupon, customer_id, subscription_id)


# ---------------------------------------------------------------------------
# Plans
# ---------------------------------------------------------------------------

def find_plan(state: MockState, plan_id) -> dict:
    """Check-phase lookup; pair with keep_plan once the request can no longer fail."""
    return state.find_or_synthesize(
        "plan", state.plans, str(plan_id), builders.mock_plan, save=False
    )


def keep_plan(state: MockState, plan: dict) -> dict:
    return state.plans.setdefault(plan["id"], plan)


# ---------------------------------------------------------------------------
# Subscriptions
# ---------------------------------------------------------------------------

def _add_months(timestamp: int, months: int) -> int:
    dt = datetime.fromtimestamp(timestamp, tz=timezone.utc)
    index = dt.month - 1 + months
    year = dt.year + index // 12
    month = index % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return int(dt.replace(year=year, month=month, day=day).timestamp())


def period_end(start: int, plan: dict, intervals: int = 1) -> int:
    """End of the billing period(s) beginning at *start* for *plan*."""
    interval = plan.get("interval")
    count = (plan.get("interval_count") or 1) * intervals
    if interval in _INTERVAL_SECONDS:
        return start + _INTERVAL_SECONDS[interval] * count
    if interval == "month":
        return _add_months(start, count)
    if interval == "year":
        return _add_months(start, 12 * count)
    return start


def verify_trial_end(trial_end) -> None:
    if trial_end is None or trial_end == "now":
        return
    if isinstance(trial_end, bool) or not isinstance(trial_end, int) or trial_end <= time.time():
        raise InvalidRequestError(
            f"Invalid timestamp: must be an integer Unix timestamp in the future: {trial_end}",
            param="trial_end",
        )


def is_trialing(plan: dict, trial_end=None) -> bool:
    if trial_end == "now":
        return False
    if trial_end is not None:
        return True
    return bool(plan.get("trial_period_days"))


def verify_payment_source(plan: dict, has_source: bool, trial_end=None) -> None:
    """A paid plan without a trial needs a payment source on file."""
    if has_source or plan.get("amount") == 0 or is_trialing(plan, trial_end):
        return
    raise InvalidRequestError("You must supply a valid card", http_status=400)


def subscription_params(plan: dict, customer_id: str, options: dict) -> dict:
    """Plan-, period- and trial-derived subscription attributes."""
    start = options.get("current_period_start") or int(time.time())
    trial_end = options.get("trial_end")
    attrs = {"plan": plan, "customer": customer_id, "current_period_start": start}
    attrs.update({k: options[k] for k in SUBSCRIPTION_OPTIONS if k in options})

    if is_trialing(plan, trial_end):
        end = trial_end if trial_end is not None else start + plan["trial_period_days"] * 86_400
        attrs.update(status="trialing", current_period_end=end, trial_start=start, trial_end=end)
    else:
        attrs.update(
            status="active",
            current_period_end=period_end(start, plan),
            trial_start=None,
            trial_end=None,
        )
    return attrs


def add_subscription_to_customer(state: MockState, customer: dict, subscription: dict) -> None:
    """
    Index *subscription* both under the customer and in the top-level store.
    Both views hold the same dict, so in-place updates stay consistent.
    """
    if customer.get("currency") is None:
        customer["currency"] = subscription["plan"].get("currency")
    subs = customer["subscriptions"]
    subs["data"].insert(0, subscription)
    subs["total_count"] = len(subs["data"])
    state.subscriptions[subscription["id"]] = subscription


def remove_subscription_from_customer(customer: dict, subscription_id: str) -> None:
    subs = customer["subscriptions"]
    subs["data"] = [s for s in subs["data"] if s["id"] != subscription_id]
    subs["total_count"] = len(subs["data"])
