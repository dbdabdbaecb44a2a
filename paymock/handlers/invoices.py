from decimal import ROUND_HALF_UP, Decimal

from paymock.data import builders
from paymock.engine.registry import RouteMatch
from paymock.handlers import support
from paymock.handlers.base import HandlerGroup
from paymock.models.errors import InvalidRequestError


def application_fee_amount(percent, amount: int) -> int:
    """percent of amount, rounded half away from zero to whole cents."""
    fee = Decimal(str(percent)) * amount / 100
    return int(fee.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class InvoiceHandlers(HandlerGroup):
    # Literal suffixes (/upcoming, /lines, /pay) must precede the (.*) catch-alls
    ROUTES = [
        ("post /v1/invoices", "new_invoice"),
        ("get /v1/invoices/upcoming", "upcoming_invoice"),
        ("get /v1/invoices/(.*)/lines", "get_invoice_line_items"),
        ("get /v1/invoices/(.*)", "get_invoice"),
        ("get /v1/invoices", "list_invoices"),
        ("post /v1/invoices/(.*)/pay", "pay_invoice"),
        ("post /v1/invoices/(.*)", "update_invoice"),
    ]

    def new_invoice(self, route: RouteMatch, method_url: str, params: dict, headers: dict) -> dict:
        state = self.state
        if params.get("customer") is not None:
            state.assert_active("customer", params["customer"], state.customers.get(params["customer"]))
        if params.get("subscription") is not None:
            state.assert_existence(
                "subscription", params["subscription"], state.subscriptions.get(params["subscription"])
            )

        in_id = state.new_id("in")
        line = builders.mock_line_item({"id": state.new_id("ii")})
        attrs = {k: v for k, v in params.items() if k != "lines"}
        state.invoices[in_id] = builders.mock_invoice([line], {**attrs, "id": in_id})
        return state.invoices[in_id]

    def update_invoice(self, route: RouteMatch, method_url: str, params: dict, headers: dict) -> dict:
        in_id = route.capture()
        invoice = self.state.assert_active("invoice", in_id, self.state.invoices.get(in_id))
        invoice.update({k: v for k, v in params.items() if k not in ("id", "lines")})
        return invoice

    def get_invoice(self, route: RouteMatch, method_url: str, params: dict, headers: dict) -> dict:
        return self.state.find_or_synthesize(
            "invoice",
            self.state.invoices,
            route.capture(),
            lambda attrs: builders.mock_invoice([], attrs),
        )

    def get_invoice_line_items(self, route: RouteMatch, method_url: str, params: dict, headers: dict) -> dict:
        invoice = self.get_invoice(route, method_url, params, headers)
        return self.list_object(invoice["lines"]["data"], params, invoice["lines"]["url"])

    def list_invoices(self, route: RouteMatch, method_url: str, params: dict, headers: dict) -> dict:
        invoices = list(self.state.invoices.values())
        if params.get("customer") is not None:
            invoices = [i for i in invoices if i.get("customer") == params["customer"]]
        return self.list_object(invoices, params, "/v1/invoices")

    def pay_invoice(self, route: RouteMatch, method_url: str, params: dict, headers: dict) -> dict:
        """
        Pay an invoice: charge -> balance transaction -> (application fee) -> invoice.

        Touches four stores.  The invoice is checked before anything is
        written, and every later step only reads records created earlier in
        this call, so a raised error never leaves a partial payment behind.
        """
        state = self.state
        in_id = route.capture()
        invoice = state.assert_active("invoice", in_id, state.invoices.get(in_id))
        if invoice.get("paid"):
            raise InvalidRequestError(f"Invoice {in_id} is already paid")

        amount = invoice["amount_due"]
        subscription = state.subscriptions.get(invoice.get("subscription"))

        charge_id = state.new_id("ch")
        state.charges[charge_id] = builders.mock_charge(
            {
                "id": charge_id,
                "customer": invoice.get("customer"),
                "amount": amount,
                "currency": invoice.get("currency"),
                "invoice": in_id,
                "description": f"Payment for invoice {in_id}",
            }
        )
        state.charges[charge_id]["balance_transaction"] = state.new_balance_transaction(
            {"amount": amount, "currency": invoice.get("currency"), "source": charge_id}
        )

        attrs = {
            "paid": True,
            "attempted": True,
            "closed": True,
            "charge": charge_id,
            "attempt_count": (invoice.get("attempt_count") or 0) + 1,
        }

        if subscription is not None:
            percent = subscription.get("application_fee_percent")
            fee_amount = 0
            if percent:
                fee_amount = application_fee_amount(percent, amount)
                customer = state.customers.get(subscription.get("customer")) or {}
                state.charges[charge_id]["application_fee"] = state.new_application_fee(
                    {
                        "amount": fee_amount,
                        "charge": charge_id,
                        "account": customer.get("account"),
                        "currency": invoice.get("currency"),
                    }
                )
            attrs["application_fee"] = fee_amount

        invoice.update(attrs)
        return invoice

    def upcoming_invoice(self, route: RouteMatch, method_url: str, params: dict, headers: dict) -> dict:
        """Preview the next invoice of the customer's soonest-renewing subscription."""
        state = self.state
        cus_id = params.get("customer")
        if cus_id is None:
            raise InvalidRequestError("Missing required param: customer", param="customer")
        customer = state.assert_active("customer", cus_id, state.customers.get(cus_id))

        subscriptions = customer["subscriptions"]["data"]
        if not subscriptions:
            raise InvalidRequestError(f"No upcoming invoices for customer: {cus_id}", http_status=404)

        upcoming = min(subscriptions, key=lambda s: s["current_period_end"])
        plan = upcoming["plan"]
        quantity = upcoming.get("quantity") or 1
        line = builders.mock_line_item(
            {
                "id": upcoming["id"],
                "type": "subscription",
                "plan": plan,
                "amount": (plan.get("amount") or 0) * quantity,
                "currency": plan.get("currency"),
                "discountable": True,
                "quantity": quantity,
                "period": {
                    "start": upcoming["current_period_end"],
                    "end": support.period_end(upcoming["current_period_start"], plan, 2),
                },
            }
        )

        in_id = state.new_id("in")
        state.invoices[in_id] = builders.mock_invoice(
            [line],
            {
                "id": in_id,
                "customer": cus_id,
                "subscription": upcoming["id"],
                "currency": plan.get("currency"),
                "period_start": upcoming["current_period_start"],
                "period_end": upcoming["current_period_end"],
                "next_payment_attempt": upcoming["current_period_end"] + 3600,
            },
        )
        return state.invoices[in_id]
