import time

from paymock.data import builders
from paymock.engine.registry import RouteMatch
from paymock.handlers import support
from paymock.handlers.base import HandlerGroup
from paymock.models.errors import InvalidRequestError, NotFoundError


class SubscriptionHandlers(HandlerGroup):
    """
    Subscriptions are dual-indexed: the same dict lives under its customer's
    ``subscriptions`` list and in the top-level store.  Updates merge in
    place so both views stay equal; cancellation drops the customer's
    reference and leaves the record in the store with ``status=canceled``.

    The nested customer routes must be registered before the customer
    group's ``/v1/customers/(.*)`` catch-alls.
    """

    ROUTES = [
        ("post /v1/customers/(.*)/subscriptions", "create_subscription"),
        ("get /v1/customers/(.*)/subscriptions", "list_customer_subscriptions"),
        ("get /v1/customers/(.*)/subscriptions/(.*)", "retrieve_customer_subscription"),
        ("post /v1/customers/(.*)/subscriptions/(.*)", "update_customer_subscription"),
        ("delete /v1/customers/(.*)/subscriptions/(.*)", "cancel_customer_subscription"),
        ("get /v1/subscriptions", "list_subscriptions"),
        ("get /v1/subscriptions/(.*)", "retrieve_subscription"),
        ("post /v1/subscriptions/(.*)", "update_subscription"),
        ("delete /v1/subscriptions/(.*)", "cancel_subscription"),
    ]

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _customer(self, cus_id: str) -> dict:
        return self.state.assert_active("customer", cus_id, self.state.customers.get(cus_id))

    def _customer_subscription(self, cus_id: str, sub_id: str) -> tuple[dict, dict]:
        customer = self._customer(cus_id)
        for subscription in customer["subscriptions"]["data"]:
            if subscription["id"] == sub_id:
                return customer, subscription
        raise NotFoundError(
            "subscription", sub_id, f"Customer {cus_id} does not have a subscription with ID {sub_id}"
        )

    def _owner(self, subscription: dict) -> dict | None:
        customer = self.state.customers.get(subscription.get("customer"))
        if customer is None or customer.get("deleted"):
            return None
        return customer

    def _live_subscription(self, sub_id: str) -> dict:
        subscription = self.state.subscriptions.get(sub_id)
        if subscription is None or subscription.get("status") == "canceled":
            raise NotFoundError("subscription", sub_id)
        return subscription

    # ------------------------------------------------------------------
    # Shared transitions
    # ------------------------------------------------------------------

    def _apply_update(self, customer: dict | None, subscription: dict, params: dict) -> dict:
        """
        Merge *params* into a live subscription.

        Changing plan re-runs the payment-source check used at creation and
        restarts the billing period; so does an explicit ``trial_end``.
        """
        state = self.state
        if subscription.get("status") == "canceled":
            raise NotFoundError("subscription", subscription["id"])

        source = support.payment_source_param(params)
        if source is not None:
            support.verify_source(state, source)
        support.verify_trial_end(params.get("trial_end"))

        plan = None
        if params.get("plan") is not None:
            plan = support.find_plan(state, params["plan"])
            if plan["id"] != subscription["plan"].get("id"):
                has_source = source is not None or bool(customer and customer.get("default_source"))
                support.verify_payment_source(plan, has_source, params.get("trial_end"))

        coupon = None
        if params.get("coupon") is not None:
            coupon = support.find_coupon(state, params["coupon"])

        if source is not None and customer is not None:
            support.set_default_card(customer, support.card_from_source(state, source, customer["id"]))

        if plan is not None:
            plan = support.keep_plan(state, plan)
        plan_changed = plan is not None and plan["id"] != subscription["plan"].get("id")
        if plan_changed or params.get("trial_end") is not None:
            subscription.update(
                support.subscription_params(plan or subscription["plan"], subscription["customer"], params)
            )
        else:
            subscription.update({k: params[k] for k in support.SUBSCRIPTION_OPTIONS if k in params})

        if params.get("cancel_at_period_end") is False:
            subscription.update(cancel_at_period_end=False, canceled_at=None)

        if coupon is not None:
            subscription["discount"] = support.redeem_coupon(
                state, coupon, subscription["customer"], subscription["id"]
            )
        return subscription

    def _apply_cancel(self, customer: dict | None, subscription: dict, params: dict) -> dict:
        if subscription.get("status") == "canceled":
            raise NotFoundError("subscription", subscription["id"])

        now = int(time.time())
        if params.get("at_period_end") is True:
            subscription.update(cancel_at_period_end=True, canceled_at=now)
            return subscription

        subscription.update(status="canceled", canceled_at=now, ended_at=now)
        if customer is not None:
            support.remove_subscription_from_customer(customer, subscription["id"])
        return subscription

    # ------------------------------------------------------------------
    # Nested under a customer
    # ------------------------------------------------------------------

    def create_subscription(self, route: RouteMatch, method_url: str, params: dict, headers: dict) -> dict:
        state = self.state
        customer = self._customer(route.capture())
        if params.get("plan") is None:
            raise InvalidRequestError("Missing required param: plan", param="plan")

        plan = support.find_plan(state, params["plan"])
        source = support.payment_source_param(params)
        if source is not None:
            support.verify_source(state, source)
        support.verify_trial_end(params.get("trial_end"))
        has_source = source is not None or customer.get("default_source") is not None
        support.verify_payment_source(plan, has_source, params.get("trial_end"))

        coupon = None
        if params.get("coupon") is not None:
            coupon = support.find_coupon(state, params["coupon"])

        if source is not None:
            support.set_default_card(customer, support.card_from_source(state, source, customer["id"]))

        plan = support.keep_plan(state, plan)
        subscription = builders.mock_subscription(
            {"id": state.new_id("su"), **support.subscription_params(plan, customer["id"], params)}
        )
        support.add_subscription_to_customer(state, customer, subscription)

        if coupon is not None:
            subscription["discount"] = support.redeem_coupon(state, coupon, customer["id"], subscription["id"])
        return subscription

    def list_customer_subscriptions(self, route: RouteMatch, method_url: str, params: dict, headers: dict) -> dict:
        customer = self._customer(route.capture())
        return self.list_object(
            customer["subscriptions"]["data"], params, customer["subscriptions"]["url"]
        )

    def retrieve_customer_subscription(self, route: RouteMatch, method_url: str, params: dict, headers: dict) -> dict:
        _, subscription = self._customer_subscription(route.capture(0), route.capture(1))
        return subscription

    def update_customer_subscription(self, route: RouteMatch, method_url: str, params: dict, headers: dict) -> dict:
        customer, subscription = self._customer_subscription(route.capture(0), route.capture(1))
        return self._apply_update(customer, subscription, params)

    def cancel_customer_subscription(self, route: RouteMatch, method_url: str, params: dict, headers: dict) -> dict:
        customer, subscription = self._customer_subscription(route.capture(0), route.capture(1))
        return self._apply_cancel(customer, subscription, params)

    # ------------------------------------------------------------------
    # Top level
    # ------------------------------------------------------------------

    def list_subscriptions(self, route: RouteMatch, method_url: str, params: dict, headers: dict) -> dict:
        """Canceled subscriptions are only listed with ``status=canceled`` or ``status=all``."""
        subscriptions = list(self.state.subscriptions.values())
        status = params.get("status")
        if status is None:
            subscriptions = [s for s in subscriptions if s.get("status") != "canceled"]
        elif status != "all":
            subscriptions = [s for s in subscriptions if s.get("status") == status]
        if params.get("customer") is not None:
            subscriptions = [s for s in subscriptions if s.get("customer") == params["customer"]]
        if params.get("plan") is not None:
            subscriptions = [s for s in subscriptions if s["plan"].get("id") == params["plan"]]
        return self.list_object(subscriptions, params, "/v1/subscriptions")

    def retrieve_subscription(self, route: RouteMatch, method_url: str, params: dict, headers: dict) -> dict:
        return self.state.find_or_synthesize(
            "subscription", self.state.subscriptions, route.capture(), builders.mock_subscription
        )

    def update_subscription(self, route: RouteMatch, method_url: str, params: dict, headers: dict) -> dict:
        subscription = self._live_subscription(route.capture())
        customer = self._owner(subscription)
        return self._apply_update(customer, subscription, params)

    def cancel_subscription(self, route: RouteMatch, method_url: str, params: dict, headers: dict) -> dict:
        subscription = self._live_subscription(route.capture())
        customer = self._owner(subscription)
        return self._apply_cancel(customer, subscription, params)
