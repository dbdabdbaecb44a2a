import json
import re

from fastapi import APIRouter, Request

from paymock.models.errors import InvalidRequestError

router = APIRouter()

_INT_RE = re.compile(r"^-?\d+$")
_FLOAT_RE = re.compile(r"^-?\d+\.\d+$")

# Leaf keys whose form values are numbers or booleans; everything else,
# ids and metadata included, stays a string.
INT_PARAMS = frozenset({
    "account_balance", "amount", "amount_due", "amount_off", "count", "created",
    "current_period_start", "duration_in_months", "exp_month", "exp_year",
    "interval_count", "limit", "max_redemptions", "offset", "quantity",
    "redeem_by", "trial_end", "trial_period_days",
})
PERCENT_PARAMS = frozenset({"application_fee_percent", "percent_off", "tax_percent"})
BOOL_PARAMS = frozenset({"at_period_end", "cancel_at_period_end", "capture", "closed", "paid"})


def _coerce(key: str, value: str):
    """Form and query values arrive as strings; restore known numeric and boolean params."""
    parts = key.replace("[]", "").replace("]", "").split("[")
    leaf = parts[-1]
    if parts[0] == "metadata":
        return value
    if leaf in INT_PARAMS or leaf in PERCENT_PARAMS:
        if _INT_RE.match(value):
            return int(value)
        if leaf in PERCENT_PARAMS and _FLOAT_RE.match(value):
            return float(value)
    if leaf in BOOL_PARAMS and value in ("true", "false"):
        return value == "true"
    return value


def _assign(target: dict, key: str, value) -> None:
    """
    Store a bracketed form key: ``metadata[plan]=gold`` becomes
    ``{"metadata": {"plan": "gold"}}`` and ``expand[]=a`` appends to a list.
    """
    is_list = key.endswith("[]")
    if is_list:
        key = key[:-2]
    parts = key.replace("]", "").split("[")
    for part in parts[:-1]:
        target = target.setdefault(part, {})
    if is_list:
        target.setdefault(parts[-1], []).append(value)
    else:
        target[parts[-1]] = value


async def collect_params(request: Request) -> dict:
    params: dict = {}
    for key, value in request.query_params.multi_items():
        _assign(params, key, _coerce(key, value))

    if request.method != "POST":
        return params

    content_type = request.headers.get("content-type", "")
    if "application/json" in content_type:
        raw = await request.body()
        if raw:
            try:
                body = json.loads(raw)
            except ValueError as exc:
                raise InvalidRequestError("Invalid JSON body") from exc
            if not isinstance(body, dict):
                raise InvalidRequestError("JSON body must be an object")
            params.update(body)
    else:
        form = await request.form()
        for key, value in form.multi_items():
            if isinstance(value, str):
                _assign(params, key, _coerce(key, value))
    return params


def _api_key(request: Request) -> str | None:
    auth = request.headers.get("authorization", "")
    if auth.lower().startswith("bearer "):
        return auth[7:].strip() or None
    return None


@router.api_route("/v1/{path:path}", methods=["GET", "POST", "DELETE"])
async def mock_api(path: str, request: Request) -> dict:
    """
    Forward any /v1 call to the engine.  ApiError from the engine is turned
    into an error body by the app-level exception handler.
    """
    engine = request.app.state.engine
    params = await collect_params(request)
    body, _ = engine.mock_request(
        request.method.lower(),
        request.url.path,
        _api_key(request),
        params,
        dict(request.headers),
    )
    return body
