from paymock.data.builders import mock_list_object
from paymock.engine.registry import HandlerRegistry
from paymock.engine.state import MockState


class HandlerGroup:
    """
    One resource family's endpoints.

    Subclasses list their routes in ROUTES as (pattern, handler_name) pairs,
    most specific first; the handler name is also the key scripted errors
    are enqueued under.  Every handler has the signature
    ``(route, method_url, params, headers) -> dict``.
    """

    ROUTES: list[tuple[str, str]] = []

    def __init__(self, state: MockState):
        self.state = state

    def register_routes(self, registry: HandlerRegistry) -> None:
        for pattern, name in self.ROUTES:
            registry.register(pattern, name, getattr(self, name))

    def list_object(self, data: list[dict], params: dict, url: str) -> dict:
        return mock_list_object(
            data,
            params,
            url=url,
            default_limit=self.state.settings.LIST_DEFAULT_LIMIT,
            max_limit=self.state.settings.LIST_MAX_LIMIT,
        )
