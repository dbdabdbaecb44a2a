from paymock.data import builders
from paymock.engine.registry import RouteMatch
from paymock.handlers import support
from paymock.handlers.base import HandlerGroup
from paymock.models.errors import InvalidRequestError

_UPDATABLE_PARAMS = ("description", "metadata", "receipt_email", "fraud_details")


def _is_positive_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


class ChargeHandlers(HandlerGroup):
    ROUTES = [
        ("post /v1/charges", "new_charge"),
        ("get /v1/charges", "list_charges"),
        ("get /v1/charges/(.*)", "get_charge"),
        ("post /v1/charges/(.*)/capture", "capture_charge"),
        ("post /v1/charges/(.*)", "update_charge"),
    ]

    def new_charge(self, route: RouteMatch, method_url: str, params: dict, headers: dict) -> dict:
        """
        Charge a card, or a customer's default card, and record the
        matching balance transaction.  ``capture=false`` only authorizes.
        """
        state = self.state
        if params.get("amount") is not None and not _is_positive_int(params["amount"]):
            raise InvalidRequestError("Invalid positive integer", param="amount")

        customer = None
        if params.get("customer") is not None:
            customer = state.assert_active("customer", params["customer"], state.customers.get(params["customer"]))
        source = support.payment_source_param(params)
        if source is not None:
            support.verify_source(state, source)

        ch_id = state.new_id("ch")
        attrs = {k: v for k, v in params.items() if k not in ("id", "source", "card", "capture")}
        attrs.update(id=ch_id, captured=params.get("capture", True) is not False)

        if source is not None:
            attrs["source"] = support.card_from_source(state, source, params.get("customer"))
        elif customer is not None and customer.get("default_source"):
            cards = customer["sources"]["data"]
            attrs["source"] = next((c for c in cards if c["id"] == customer["default_source"]), cards[0])

        charge = builders.mock_charge(attrs)
        charge["balance_transaction"] = state.new_balance_transaction(
            {"amount": charge["amount"], "currency": charge["currency"], "source": ch_id}
        )
        state.charges[ch_id] = charge
        return charge

    def get_charge(self, route: RouteMatch, method_url: str, params: dict, headers: dict) -> dict:
        return self.state.find_or_synthesize(
            "charge", self.state.charges, route.capture(), builders.mock_charge
        )

    def capture_charge(self, route: RouteMatch, method_url: str, params: dict, headers: dict) -> dict:
        """Capture an authorized charge; capturing less than authorized refunds the rest."""
        ch_id = route.capture()
        charge = self.state.assert_active("charge", ch_id, self.state.charges.get(ch_id))
        if charge.get("captured"):
            raise InvalidRequestError(f"Charge {ch_id} has already been captured.")

        amount = params.get("amount")
        if amount is not None:
            if not _is_positive_int(amount) or amount > charge["amount"]:
                raise InvalidRequestError(
                    f"Amount must be a positive integer no greater than {charge['amount']}",
                    param="amount",
                )
            charge["amount_refunded"] = charge["amount"] - amount

        charge["captured"] = True
        return charge

    def update_charge(self, route: RouteMatch, method_url: str, params: dict, headers: dict) -> dict:
        ch_id = route.capture()
        charge = self.state.assert_active("charge", ch_id, self.state.charges.get(ch_id))

        unknown = sorted(k for k in params if k not in _UPDATABLE_PARAMS)
        if unknown:
            raise InvalidRequestError(f"Received unknown parameter: {unknown[0]}", param=unknown[0])

        charge.update(params)
        return charge

    def list_charges(self, route: RouteMatch, method_url: str, params: dict, headers: dict) -> dict:
        state = self.state
        charges = list(state.charges.values())
        if params.get("customer") is not None:
            state.assert_existence("customer", params["customer"], state.customers.get(params["customer"]))
            charges = [c for c in charges if c.get("customer") == params["customer"]]
        return self.list_object(charges, params, "/v1/charges")
