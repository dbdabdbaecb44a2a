from fastapi import APIRouter, HTTPException, Request

from paymock.models.control import CardTokenRequest, EnqueueErrorRequest, IdPrefixRequest, ToggleRequest
from paymock.models.errors import CARD_ERRORS

router = APIRouter(prefix="/_paymock")


@router.post(
    "/errors",
    tags=["Testing"],
    summary="Make the next call to a handler fail with the given error",
)
async def enqueue_error(body: EnqueueErrorRequest, request: Request) -> dict:
    engine = request.app.state.engine
    if body.handler_name not in engine.handler_names():
        raise HTTPException(status_code=404, detail=f"Handler '{body.handler_name}' not found")
    engine.enqueue_error(body.handler_name, body.to_error())
    return {"handler_name": body.handler_name, "queued": len(engine.error_queue)}


@router.post(
    "/card-errors/{code}",
    tags=["Testing"],
    summary="Make the next call to a handler fail with a canned card error",
)
async def prepare_card_error(code: str, request: Request, handler_name: str = "new_charge") -> dict:
    engine = request.app.state.engine
    if code not in CARD_ERRORS:
        raise HTTPException(status_code=404, detail=f"Card error '{code}' not found")
    if handler_name not in engine.handler_names():
        raise HTTPException(status_code=404, detail=f"Handler '{handler_name}' not found")
    engine.prepare_card_error(code, handler_name)
    return {"handler_name": handler_name, "code": code, "queued": len(engine.error_queue)}


@router.post("/strict", tags=["Testing"])
async def toggle_strict(body: ToggleRequest, request: Request) -> dict:
    request.app.state.engine.toggle_strict(body.enabled)
    return {"strict": request.app.state.engine.strict}


@router.post("/debug", tags=["Testing"])
async def toggle_debug(body: ToggleRequest, request: Request) -> dict:
    request.app.state.engine.toggle_debug(body.enabled)
    return {"debug": request.app.state.engine.debug}


@router.post("/reset", tags=["Testing"], summary="Empty every store and the error queue")
async def reset(request: Request) -> dict:
    request.app.state.engine.clear_data()
    return {"action": "reset"}


@router.post("/id-prefix", tags=["Testing"])
async def set_id_prefix(body: IdPrefixRequest, request: Request) -> dict:
    request.app.state.engine.set_global_id_prefix(body.prefix)
    return {"prefix": body.prefix}


@router.post("/card-tokens", tags=["Testing"])
async def generate_card_token(body: CardTokenRequest, request: Request) -> dict:
    return {"id": request.app.state.engine.generate_card_token(body.card)}


@router.get("/data/{store}", tags=["Testing"])
async def get_data(store: str, request: Request) -> dict:
    try:
        return request.app.state.engine.get_data(store)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Store '{store}' not found")


@router.get("/handlers", tags=["Testing"])
async def list_handlers(request: Request) -> list[str]:
    return request.app.state.engine.handler_names()
