from paymock.data import builders
from paymock.engine.registry import RouteMatch
from paymock.handlers.base import HandlerGroup
from paymock.models.errors import InvalidRequestError

_INTERVALS = ("day", "week", "month", "year")


def _verify_plan_params(params: dict) -> None:
    amount = params.get("amount")
    if amount is not None and (isinstance(amount, bool) or not isinstance(amount, int) or amount < 0):
        raise InvalidRequestError("Invalid integer: amount must be zero or positive", param="amount")
    interval = params.get("interval")
    if interval is not None and interval not in _INTERVALS:
        raise InvalidRequestError(
            f"Invalid interval: must be one of {', '.join(_INTERVALS)}", param="interval"
        )


class PlanHandlers(HandlerGroup):
    ROUTES = [
        ("post /v1/plans", "new_plan"),
        ("post /v1/plans/(.*)", "update_plan"),
        ("get /v1/plans/(.*)", "get_plan"),
        ("delete /v1/plans/(.*)", "delete_plan"),
        ("get /v1/plans", "list_plans"),
    ]

    def new_plan(self, route: RouteMatch, method_url: str, params: dict, headers: dict) -> dict:
        state = self.state
        _verify_plan_params(params)
        if params.get("id") is not None and str(params["id"]) in state.plans:
            raise InvalidRequestError("Plan already exists.", param="id")

        plan_id = str(params["id"]) if params.get("id") is not None else state.new_id("plan")
        state.plans[plan_id] = builders.mock_plan({**params, "id": plan_id})
        return state.plans[plan_id]

    def update_plan(self, route: RouteMatch, method_url: str, params: dict, headers: dict) -> dict:
        plan_id = route.capture()
        plan = self.state.assert_active("plan", plan_id, self.state.plans.get(plan_id))
        _verify_plan_params(params)
        plan.update({k: v for k, v in params.items() if k != "id"})
        return plan

    def get_plan(self, route: RouteMatch, method_url: str, params: dict, headers: dict) -> dict:
        return self.state.find_or_synthesize(
            "plan", self.state.plans, route.capture(), builders.mock_plan
        )

    def delete_plan(self, route: RouteMatch, method_url: str, params: dict, headers: dict) -> dict:
        plan_id = route.capture()
        self.state.assert_existence("plan", plan_id, self.state.plans.get(plan_id))
        self.state.plans.pop(plan_id, None)
        return {"id": plan_id, "object": "plan", "deleted": True}

    def list_plans(self, route: RouteMatch, method_url: str, params: dict, headers: dict) -> dict:
        return self.list_object(list(self.state.plans.values()), params, "/v1/plans")
