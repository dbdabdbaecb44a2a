from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Engine toggles (each MockEngine copies these at construction)
    STRICT: bool = True
    DEBUG: bool = False

    # Ids look like "<prefix><kind>_<n>", e.g. "test_cus_1"
    GLOBAL_ID_PREFIX: str = "test_"

    # List endpoints
    LIST_DEFAULT_LIMIT: int = 10
    LIST_MAX_LIMIT: int = 100

    # Processing fee charged on every balance transaction: fixed + ceil(amount * rate)
    PROCESSING_FEE_FIXED: int = 30            # cents
    PROCESSING_FEE_RATE: float = 0.029        # 2.9%

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "env_prefix": "PAYMOCK_"}


settings = Settings()
