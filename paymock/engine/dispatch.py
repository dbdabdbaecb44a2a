import logging

from paymock.config import Settings
from paymock.engine.error_queue import ErrorQueue
from paymock.engine.registry import HandlerRegistry
from paymock.engine.state import MockState
from paymock.handlers import support
from paymock.handlers.balance import BalanceHandlers
from paymock.handlers.base import HandlerGroup
from paymock.handlers.charges import ChargeHandlers
from paymock.handlers.coupons import CouponHandlers
from paymock.handlers.customers import CustomerHandlers
from paymock.handlers.invoices import InvoiceHandlers
from paymock.handlers.plans import PlanHandlers
from paymock.handlers.subscriptions import SubscriptionHandlers
from paymock.handlers.tokens import TokenHandlers
from paymock.models.errors import ApiError, card_error

logger = logging.getLogger(__name__)

_debug_handler = logging.StreamHandler()
_debug_handler.setFormatter(
    logging.Formatter("%(asctime)s | %(levelname)-8s | %(name)s | %(message)s")
)

# Registration order is route priority.  Subscriptions precede customers so
# /v1/customers/<id>/subscriptions... is not swallowed by /v1/customers/(.*).
HANDLER_GROUPS: list[type[HandlerGroup]] = [
    TokenHandlers,
    ChargeHandlers,
    SubscriptionHandlers,
    CustomerHandlers,
    CouponHandlers,
    PlanHandlers,
    InvoiceHandlers,
    BalanceHandlers,
]

PROBE_METHOD = "xtest"


def normalize_params(params) -> dict:
    """Copy *params* with every mapping key, at any depth, as a plain str."""
    def _normalize(value):
        if isinstance(value, dict):
            return {str(k): _normalize(v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return [_normalize(v) for v in value]
        return value

    return _normalize(dict(params or {}))


class MockEngine:
    """
    In-process stand-in for the payment API.

    mock_request routing:
      "xtest" method        -> empty body, nothing touched
      no route matches      -> empty body, WARNING logged (never raises)
      queued error for the
      matched handler       -> error dequeued and raised, handler skipped
      otherwise             -> handler runs; its dict is the response body

    Errors raised by handlers propagate to the caller untouched.  Every
    engine owns its stores, id counters, error queue and route table;
    nothing is shared between instances.
    """

    def __init__(self, settings: Settings | None = None):
        self._settings = settings or Settings()
        self.state = MockState(self._settings)
        self.error_queue = ErrorQueue()
        self.registry = HandlerRegistry()
        self.debug = False
        if self._settings.DEBUG:
            self.toggle_debug(True)

        for group_cls in HANDLER_GROUPS:
            group_cls(self.state).register_routes(self.registry)

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def mock_request(
        self,
        method: str,
        url: str,
        api_key: str | None,
        params: dict | None = None,
        headers: dict | None = None,
    ) -> tuple[dict, str | None]:
        method = str(method).lstrip(":").lower()
        if method == PROBE_METHOD:
            return {}, api_key

        params = normalize_params(params)
        headers = dict(headers or {})
        method_url = f"{method} {url}"

        if self.debug:
            logger.info(f"[paymock req] {method_url} params={params}")

        match = self.registry.resolve(method_url)
        if match is None:
            logger.warning(f"[paymock] Unrecognized method + url: [{method_url}] params={params}")
            return {}, api_key

        mock_error = self.error_queue.error_for_handler(match.name)
        if mock_error is not None:
            self.error_queue.dequeue()
            logger.info(
                f"[paymock] Raising queued {type(mock_error).__name__} for {match.name}: {mock_error.message}"
            )
            raise mock_error

        response = match.route.handler(match, method_url, params, headers)
        if self.debug:
            logger.info(f"[paymock res] {response}")
        return response, api_key

    # ------------------------------------------------------------------
    # Toggles and test hooks
    # ------------------------------------------------------------------

    @property
    def strict(self) -> bool:
        return self.state.strict

    @strict.setter
    def strict(self, value: bool) -> None:
        self.state.strict = bool(value)

    def toggle_strict(self, value: bool) -> None:
        self.strict = value

    def toggle_debug(self, value: bool) -> None:
        """
        Log every request and response at INFO.  The dispatch logger gets its
        own INFO level while debug is on, plus a stderr handler when logging
        has not been configured, so the trace shows up without basicConfig.
        """
        self.debug = bool(value)
        if self.debug:
            logger.setLevel(logging.INFO)
            if not logger.hasHandlers():
                logger.addHandler(_debug_handler)
        else:
            logger.setLevel(logging.NOTSET)
            logger.removeHandler(_debug_handler)

    def enqueue_error(self, handler_name: str, error: ApiError) -> None:
        self.error_queue.enqueue(handler_name, error)

    def prepare_card_error(self, code: str, handler_name: str = "new_charge") -> None:
        """Make the next call to *handler_name* fail with the canned card error *code*."""
        self.enqueue_error(handler_name, card_error(code))

    def generate_card_token(self, card_params: dict | None = None) -> str:
        return support.create_card_token(self.state, normalize_params(card_params))["id"]

    def set_global_id_prefix(self, prefix: str) -> None:
        self.state.ids.set_global_prefix(prefix)

    def get_data(self, name: str) -> dict[str, dict]:
        return self.state.get_data(name)

    def clear_data(self) -> None:
        self.state.clear()
        self.error_queue.clear()

    def handler_names(self) -> list[str]:
        return self.registry.names()
