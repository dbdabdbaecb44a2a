from paymock.data import builders
from paymock.engine.registry import RouteMatch
from paymock.handlers.base import HandlerGroup


class BalanceHandlers(HandlerGroup):
    """Read-only views of the ledger entries other handlers create."""

    ROUTES = [
        ("get /v1/balance/history/(.*)", "get_balance_transaction"),
        ("get /v1/balance/history", "list_balance_transactions"),
        ("get /v1/application_fees/(.*)", "get_application_fee"),
        ("get /v1/application_fees", "list_application_fees"),
    ]

    def get_balance_transaction(self, route: RouteMatch, method_url: str, params: dict, headers: dict) -> dict:
        return self.state.find_or_synthesize(
            "balance_transaction",
            self.state.balance_transactions,
            route.capture(),
            builders.mock_balance_transaction,
        )

    def list_balance_transactions(self, route: RouteMatch, method_url: str, params: dict, headers: dict) -> dict:
        txns = list(self.state.balance_transactions.values())
        for key in ("source", "type"):
            if params.get(key) is not None:
                txns = [t for t in txns if t.get(key) == params[key]]
        return self.list_object(txns, params, "/v1/balance/history")

    def get_application_fee(self, route: RouteMatch, method_url: str, params: dict, headers: dict) -> dict:
        return self.state.find_or_synthesize(
            "application_fee",
            self.state.application_fees,
            route.capture(),
            builders.mock_application_fee,
        )

    def list_application_fees(self, route: RouteMatch, method_url: str, params: dict, headers: dict) -> dict:
        fees = list(self.state.application_fees.values())
        if params.get("charge") is not None:
            fees = [f for f in fees if f.get("charge") == params["charge"]]
        return self.list_object(fees, params, "/v1/application_fees")
