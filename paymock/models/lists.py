from typing import Optional

from pydantic import BaseModel, Field, ValidationError

from paymock.models.errors import InvalidRequestError

_LIST_KEYS = ("offset", "limit", "starting_after", "ending_before")


class ListParams(BaseModel):
    offset: int = Field(0, ge=0)
    limit: int = Field(10, ge=1)
    starting_after: Optional[str] = None
    ending_before: Optional[str] = None

    model_config = {"extra": "ignore"}


def parse_list_params(params: dict, default_limit: int = 10, max_limit: int = 100) -> ListParams:
    """
    Pull the pagination keys out of a request's params.

    ``count`` is the older name for ``limit`` and is honoured when ``limit``
    is absent.  Raises InvalidRequestError naming the offending param.
    """
    raw: dict = {"limit": default_limit}
    if params.get("count") is not None:
        raw["limit"] = params["count"]
    for key in _LIST_KEYS:
        if params.get(key) is not None:
            raw[key] = params[key]

    try:
        page = ListParams.model_validate(raw)
    except ValidationError as exc:
        err = exc.errors()[0]
        param = str(err["loc"][0]) if err["loc"] else None
        raise InvalidRequestError(f"Invalid {param}: {err['msg']}", param=param) from exc

    if page.limit > max_limit:
        raise InvalidRequestError(
            f"Invalid limit: must be between 1 and {max_limit}", param="limit"
        )
    return page
