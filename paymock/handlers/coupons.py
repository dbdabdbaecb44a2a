from paymock.data import builders
from paymock.engine.registry import RouteMatch
from paymock.handlers.base import HandlerGroup
from paymock.models.errors import InvalidRequestError

_DURATIONS = ("once", "repeating", "forever")


class CouponHandlers(HandlerGroup):
    ROUTES = [
        ("post /v1/coupons", "new_coupon"),
        ("get /v1/coupons/(.*)", "get_coupon"),
        ("delete /v1/coupons/(.*)", "delete_coupon"),
        ("get /v1/coupons", "list_coupons"),
    ]

    def new_coupon(self, route: RouteMatch, method_url: str, params: dict, headers: dict) -> dict:
        state = self.state
        if params.get("percent_off") is not None and params.get("amount_off") is not None:
            raise InvalidRequestError(
                "Only one of percent_off or amount_off may be set", param="percent_off"
            )
        duration = params.get("duration", "once")
        if duration not in _DURATIONS:
            raise InvalidRequestError(
                f"Invalid duration: must be one of {', '.join(_DURATIONS)}", param="duration"
            )
        if duration == "repeating" and params.get("duration_in_months") is None:
            raise InvalidRequestError(
                "Missing required param: duration_in_months", param="duration_in_months"
            )
        if params.get("id") is not None and str(params["id"]) in state.coupons:
            raise InvalidRequestError("Coupon already exists.", param="id")

        coupon_id = str(params["id"]) if params.get("id") is not None else state.new_id("coupon")
        attrs = {"duration_in_months": None, **params, "duration": duration, "id": coupon_id}
        state.coupons[coupon_id] = builders.mock_coupon(attrs)
        return state.coupons[coupon_id]

    def get_coupon(self, route: RouteMatch, method_url: str, params: dict, headers: dict) -> dict:
        return self.state.find_or_synthesize(
            "coupon", self.state.coupons, route.capture(), builders.mock_coupon
        )

    def delete_coupon(self, route: RouteMatch, method_url: str, params: dict, headers: dict) -> dict:
        """Coupons are forgotten outright; a later retrieve fails."""
        coupon_id = route.capture()
        self.state.assert_existence("coupon", coupon_id, self.state.coupons.get(coupon_id))
        self.state.coupons.pop(coupon_id, None)
        return {"id": coupon_id, "object": "coupon", "deleted": True}

    def list_coupons(self, route: RouteMatch, method_url: str, params: dict, headers: dict) -> dict:
        return self.list_object(list(self.state.coupons.values()), params, "/v1/coupons")
