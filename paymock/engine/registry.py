import re
from typing import Callable, NamedTuple

# (route, method_url, params, headers) -> response body
Handler = Callable[["RouteMatch", str, dict, dict], dict]


class Route:
    def __init__(self, pattern: str, name: str, handler: Handler):
        self.pattern = pattern
        self.name = name
        self.handler = handler
        self.regex = re.compile(pattern)

    def __repr__(self) -> str:
        return f"Route({self.pattern!r} -> {self.name})"


class RouteMatch(NamedTuple):
    route: Route
    captures: tuple[str, ...]

    @property
    def name(self) -> str:
        return self.route.name

    def capture(self, index: int = 0) -> str:
        return self.captures[index]


class HandlerRegistry:
    """
    Ordered route table.  One per engine instance.

    Patterns overlap by construction (``post /v1/invoices/(.*)`` also matches
    ``post /v1/invoices/in_1/pay``), so registration order is the tie-break:
    the first registered route that matches the whole "<verb> <url>" string
    wins.  Register literal-suffix routes before the catch-all that shares
    their prefix.
    """

    def __init__(self):
        self._routes: list[Route] = []

    def register(self, pattern: str, name: str, handler: Handler) -> Route:
        route = Route(pattern, name, handler)
        self._routes.append(route)
        return route

    def resolve(self, method_url: str) -> RouteMatch | None:
        for route in self._routes:
            m = route.regex.fullmatch(method_url)
            if m is not None:
                return RouteMatch(route, m.groups())
        return None

    def names(self) -> list[str]:
        return [r.name for r in self._routes]

    def __len__(self) -> int:
        return len(self._routes)
