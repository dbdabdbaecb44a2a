from typing import Literal, Optional

from pydantic import BaseModel, Field

from paymock.models.errors import ApiError, CardError, InvalidRequestError

_ERROR_CLASSES: dict[str, type[ApiError]] = {
    "api_error": ApiError,
    "invalid_request_error": InvalidRequestError,
    "card_error": CardError,
}


class EnqueueErrorRequest(BaseModel):
    handler_name: str = Field(..., min_length=1, description="Handler the error fires for, e.g. new_charge")
    message: str = Field(..., min_length=1)
    error_type: Literal["api_error", "invalid_request_error", "card_error"] = "invalid_request_error"
    http_status: Optional[int] = Field(None, ge=400, le=599)
    param: Optional[str] = None
    code: Optional[str] = None

    def to_error(self) -> ApiError:
        cls = _ERROR_CLASSES[self.error_type]
        return cls(self.message, param=self.param, http_status=self.http_status, code=self.code)


class ToggleRequest(BaseModel):
    enabled: bool


class IdPrefixRequest(BaseModel):
    prefix: str = Field("", max_length=32, pattern=r"^[\w\-]*$")


class CardTokenRequest(BaseModel):
    card: dict = Field(default_factory=dict)
