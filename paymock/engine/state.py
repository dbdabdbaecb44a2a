import logging
import math
from decimal import Decimal
from typing import Callable

from paymock.config import Settings
from paymock.data import builders
from paymock.engine.ids import IdFamily, IdGenerator
from paymock.models.errors import NotFoundError

logger = logging.getLogger(__name__)

STORE_NAMES = (
    "customers",
    "coupons",
    "charges",
    "plans",
    "invoices",
    "subscriptions",
    "balance_transactions",
    "application_fees",
    "card_tokens",
)


class MockState:
    """
    The per-engine object stores plus the helpers every handler group shares.

    One insertion-ordered dict per entity kind (id -> attribute dict).  List
    endpoints rely on that order: most recently created last.  Nothing here
    is shared between engine instances.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.strict = settings.STRICT
        self.ids = IdGenerator(settings.GLOBAL_ID_PREFIX)

        self.customers: dict[str, dict] = {}
        self.coupons: dict[str, dict] = {}
        self.charges: dict[str, dict] = {}
        self.plans: dict[str, dict] = {}
        self.invoices: dict[str, dict] = {}
        self.subscriptions: dict[str, dict] = {}
        self.balance_transactions: dict[str, dict] = {}
        self.application_fees: dict[str, dict] = {}
        self.card_tokens: dict[str, dict] = {}

    # ------------------------------------------------------------------
    # Existence
    # ------------------------------------------------------------------

    def assert_existence(self, kind: str, resource_id, obj: dict | None) -> dict | None:
        """
        Return *obj*, or raise NotFoundError when it is missing and strict
        mode is on.  With strict mode off a missing record yields None.
        """
        if obj is None and self.strict:
            raise NotFoundError(kind, resource_id)
        return obj

    def assert_active(self, kind: str, resource_id, obj: dict | None) -> dict:
        """Like assert_existence, but tombstones count as missing regardless of strict mode."""
        if obj is None or obj.get("deleted"):
            raise NotFoundError(kind, resource_id)
        return obj

    def find_or_synthesize(
        self,
        kind: str,
        store: dict[str, dict],
        resource_id: str,
        builder: Callable[[dict], dict],
        save: bool = True,
    ) -> dict:
        """
        Retrieve contract.  With strict mode off a missing record is built
        from defaults and, unless *save* is false, stored.  Composite handlers
        pass save=False during their checks and store the record themselves
        once nothing else can fail.
        """
        obj = self.assert_existence(kind, resource_id, store.get(resource_id))
        if obj is None:
            logger.info(f"[paymock] Synthesizing {kind} {resource_id} (strict mode off)")
            obj = builder({"id": resource_id})
            if save:
                store[resource_id] = obj
        return obj

    # ------------------------------------------------------------------
    # Ids and derived ledger entries
    # ------------------------------------------------------------------

    def new_id(self, prefix: str) -> str:
        return self.ids.new_id(prefix)

    def processing_fee(self, amount: int) -> int:
        fee = self.settings.PROCESSING_FEE_FIXED + math.ceil(
            Decimal(abs(amount)) * Decimal(str(self.settings.PROCESSING_FEE_RATE))
        )
        return fee if amount >= 0 else -fee

    def new_balance_transaction(self, params: dict, prefix: str = "txn") -> str:
        """Store a balance transaction and return its id.  ``fee`` defaults to the processing fee."""
        txn_id = self.ids.new_id(prefix, IdFamily.BALANCE_TRANSACTION)
        attrs = dict(params)
        if attrs.get("amount") is not None and attrs.get("fee") is None:
            attrs["fee"] = self.processing_fee(attrs["amount"])
        attrs["id"] = txn_id
        self.balance_transactions[txn_id] = builders.mock_balance_transaction(attrs)
        return txn_id

    def new_application_fee(self, params: dict, prefix: str = "fee") -> str:
        """
        Store an application fee taken from ``params["charge"]`` and return
        its id.

        The fee gets its own balance transaction, and the source charge's
        balance transaction is patched: one more fee-detail line, ``fee``
        up and ``net`` down by the fee amount.
        """
        charge = self.charges[params["charge"]]
        charge_txn = self.balance_transactions[charge["balance_transaction"]]
        amount = params["amount"]

        fee_id = self.ids.new_id(prefix, IdFamily.APPLICATION_FEE)
        self.application_fees[fee_id] = builders.mock_application_fee({**params, "id": fee_id})
        self.application_fees[fee_id]["balance_transaction"] = self.new_balance_transaction(
            {"amount": amount, "source": fee_id, "type": "application_fee"}
        )

        charge_txn["fee_details"].append(
            {
                "amount": amount,
                "application": self.application_fees[fee_id]["application"],
                "currency": charge_txn["currency"],
                "description": "application fee",
                "type": "application_fee",
            }
        )
        charge_txn["fee"] += amount
        charge_txn["net"] -= amount
        return fee_id

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def get_data(self, name: str) -> dict[str, dict]:
        if name not in STORE_NAMES:
            raise KeyError(name)
        return getattr(self, name)

    def clear(self) -> None:
        for name in STORE_NAMES:
            getattr(self, name).clear()
        self.ids.reset()
