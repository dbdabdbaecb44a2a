from paymock.data import builders
from paymock.engine.registry import RouteMatch
from paymock.handlers import support
from paymock.handlers.base import HandlerGroup
from paymock.models.errors import InvalidRequestError


class TokenHandlers(HandlerGroup):
    ROUTES = [
        ("post /v1/tokens", "new_token"),
        ("get /v1/tokens/(.*)", "get_token"),
    ]

    def new_token(self, route: RouteMatch, method_url: str, params: dict, headers: dict) -> dict:
        card = params.get("card")
        if card is not None and not isinstance(card, dict):
            raise InvalidRequestError("Invalid card: expected a hash of card details", param="card")
        return support.create_card_token(self.state, card)

    def get_token(self, route: RouteMatch, method_url: str, params: dict, headers: dict) -> dict:
        return self.state.find_or_synthesize(
            "token", self.state.card_tokens, route.capture(), builders.mock_card_token
        )
