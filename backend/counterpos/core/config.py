import secrets
from decimal import Decimal

from pydantic_settings import BaseSettings


def _generate_secret() -> str:
    """Generate a random secret key if none is provided via env."""
    return secrets.token_urlsafe(64)


class Settings(BaseSettings):
    PROJECT_NAME: str = "counterpos"
    DATABASE_URL: str = "sqlite+aiosqlite:///./counterpos.db"  # "memory://" keeps state in-process only
    SECRET_KEY: str = _generate_secret()  # MUST be set via .env in production
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 480  # 8 hours (1 shift)
    ALGORITHM: str = "HS256"
    MAX_UPLOAD_SIZE_MB: int = 5
    LOG_LEVEL: str = "INFO"

    # Store
    STORE_NAME: str = "CounterPOS"
    STORE_TIMEZONE: str = "UTC"
    CURRENCY: str = "EGP"
    TAX_RATE: Decimal = Decimal("0.14")
    DEFAULT_IMAGE_URL: str = "https://storage.googleapis.com/aistudio-apps/demos/pos/placeholder.png"

    # Suggestions
    SUGGESTION_URL: str = ""  # empty -> suggestions derived from the sales ledger
    SUGGESTION_API_KEY: str = ""
    SUGGESTION_DEBOUNCE_SECONDS: float = 1.0
    SUGGESTION_TIMEOUT_SECONDS: float = 10.0

    class Config:
        env_file = ".env"


settings = Settings()
