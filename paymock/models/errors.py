from typing import Optional

from pydantic import BaseModel


class ApiError(Exception):
    """
    Structured API failure raised by request handlers (or replayed from the
    error queue).  Never caught inside the engine: it always surfaces to the
    mock_request caller, which translates it into its own exception type.
    """

    error_type = "api_error"
    default_status = 500

    def __init__(
        self,
        message: str,
        param: str | None = None,
        http_status: int | None = None,
        code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.param = param
        self.http_status = http_status if http_status is not None else self.default_status
        self.code = code

    def to_dict(self) -> dict:
        return ErrorBody(
            error=ErrorDetail(
                type=self.error_type,
                message=self.message,
                param=self.param,
                code=self.code,
            )
        ).model_dump()

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(message={self.message!r}, param={self.param!r}, "
            f"http_status={self.http_status})"
        )


class InvalidRequestError(ApiError):
    error_type = "invalid_request_error"
    default_status = 400


class NotFoundError(InvalidRequestError):
    default_status = 404

    def __init__(self, kind: str, resource_id, message: str | None = None) -> None:
        super().__init__(message or f"No such {kind}: {resource_id}", param=kind)
        self.kind = kind
        self.resource_id = resource_id


class CardError(ApiError):
    error_type = "card_error"
    default_status = 402


# code -> (message, param)
CARD_ERRORS: dict[str, tuple[str, str | None]] = {
    "card_declined": ("The card was declined", None),
    "incorrect_number": ("The card number is incorrect", "number"),
    "invalid_number": ("The card number is not a valid credit card number", "number"),
    "invalid_expiry_month": ("The card's expiration month is invalid", "exp_month"),
    "invalid_expiry_year": ("The card's expiration year is invalid", "exp_year"),
    "invalid_cvc": ("The card's security code is invalid", "cvc"),
    "expired_card": ("The card has expired", "exp_month"),
    "incorrect_cvc": ("The card's security code is incorrect", "cvc"),
    "incorrect_zip": ("The card's zip code failed validation", "address_zip"),
    "processing_error": ("An error occurred while processing the card", None),
    "missing": ("There is no card on a customer that is being charged.", None),
}


def card_error(code: str) -> CardError:
    """Build the canned CardError for *code*.  Raises KeyError for unknown codes."""
    message, param = CARD_ERRORS[code]
    return CardError(message, param=param, code=code)


class ErrorDetail(BaseModel):
    type: str
    message: str
    param: Optional[str] = None
    code: Optional[str] = None


class ErrorBody(BaseModel):
    error: ErrorDetail
