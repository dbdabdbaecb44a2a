import time

from paymock.data import builders
from paymock.engine.registry import RouteMatch
from paymock.handlers import support
from paymock.handlers.base import HandlerGroup
from paymock.models.errors import InvalidRequestError

# Params that drive side effects rather than being stored on the customer
_SIDE_CHANNEL_PARAMS = {
    "id", "source", "card", "plan", "coupon", "trial_end",
    "application_fee_percent", "quantity", "tax_percent",
}


def _customer_attrs(params: dict) -> dict:
    return {k: v for k, v in params.items() if k not in _SIDE_CHANNEL_PARAMS}


class CustomerHandlers(HandlerGroup):
    ROUTES = [
        ("post /v1/customers", "new_customer"),
        ("post /v1/customers/(.*)", "update_customer"),
        ("get /v1/customers/(.*)", "get_customer"),
        ("delete /v1/customers/(.*)", "delete_customer"),
        ("get /v1/customers", "list_customers"),
    ]

    def new_customer(self, route: RouteMatch, method_url: str, params: dict, headers: dict) -> dict:
        """
        Create a customer, optionally with a card, a subscription and a discount.

        Subscribing to a paid plan without a trial needs a payment source.
        Every check runs before the first store write.
        """
        state = self.state
        source = support.payment_source_param(params)
        if source is not None:
            support.verify_source(state, source)

        plan = None
        if params.get("plan") is not None:
            plan = support.find_plan(state, params["plan"])
            support.verify_trial_end(params.get("trial_end"))
            support.verify_payment_source(plan, source is not None, params.get("trial_end"))
        elif params.get("trial_end") is not None:
            raise InvalidRequestError("Received unknown parameter: trial_end", param="trial_end")

        coupon = None
        if params.get("coupon") is not None:
            coupon = support.find_coupon(state, params["coupon"])

        cus_id = str(params["id"]) if params.get("id") is not None else state.new_id("cus")
        sources = [support.card_from_source(state, source, cus_id)] if source is not None else []
        customer = builders.mock_customer(sources, {**_customer_attrs(params), "id": cus_id})
        state.customers[cus_id] = customer

        if plan is not None:
            plan = support.keep_plan(state, plan)
            subscription = builders.mock_subscription(
                {"id": state.new_id("su"), **support.subscription_params(plan, cus_id, params)}
            )
            support.add_subscription_to_customer(state, customer, subscription)

        if coupon is not None:
            customer["discount"] = support.redeem_coupon(state, coupon, cus_id)

        return customer

    def update_customer(self, route: RouteMatch, method_url: str, params: dict, headers: dict) -> dict:
        state = self.state
        cus_id = route.capture()
        customer = state.assert_active("customer", cus_id, state.customers.get(cus_id))

        source = support.payment_source_param(params)
        if source is not None:
            support.verify_source(state, source)
        coupon = None
        if params.get("coupon") is not None:
            coupon = support.find_coupon(state, params["coupon"])

        customer.update(_customer_attrs(params))

        if source is not None:
            support.set_default_card(customer, support.card_from_source(state, source, cus_id))

        if coupon is not None:
            customer["discount"] = support.redeem_coupon(state, coupon, cus_id)

        return customer

    def get_customer(self, route: RouteMatch, method_url: str, params: dict, headers: dict) -> dict:
        return self.state.find_or_synthesize(
            "customer",
            self.state.customers,
            route.capture(),
            lambda attrs: builders.mock_customer([], attrs),
        )

    def delete_customer(self, route: RouteMatch, method_url: str, params: dict, headers: dict) -> dict:
        """Tombstone the customer.  Its live subscriptions end with it."""
        state = self.state
        cus_id = route.capture()
        customer = state.assert_active("customer", cus_id, state.customers.get(cus_id))

        now = int(time.time())
        for subscription in customer["subscriptions"]["data"]:
            subscription.update(status="canceled", canceled_at=now, ended_at=now)

        state.customers[cus_id] = {"id": cus_id, "deleted": True}
        return state.customers[cus_id]

    def list_customers(self, route: RouteMatch, method_url: str, params: dict, headers: dict) -> dict:
        live = [c for c in self.state.customers.values() if not c.get("deleted")]
        return self.list_object(live, params, "/v1/customers")
