import os

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]

APP_ENV = os.getenv("APP_ENV", "development")

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./slotbook.db")
SQL_ECHO = _get_bool(os.getenv("SQL_ECHO"), default=False)

# Length of one bookable timeslot. Shifts span whole multiples of it.
SLOT_MINUTES = int(os.getenv("SLOT_MINUTES", "30"))

BOOKING_MAX_ATTEMPTS = int(os.getenv("BOOKING_MAX_ATTEMPTS", "2"))
BOOKING_RETRY_MAX_DELAY_MS = int(os.getenv("BOOKING_RETRY_MAX_DELAY_MS", "100"))

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "60"))

CORS_ALLOW_ORIGINS = _get_list(os.getenv("CORS_ALLOW_ORIGINS"), default=["http://localhost:3000"])


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
    if SLOT_MINUTES <= 0 or 60 % SLOT_MINUTES != 0:
        raise RuntimeError("SLOT_MINUTES must be a positive divisor of 60.")
    if BOOKING_MAX_ATTEMPTS < 1:
        raise RuntimeError("BOOKING_MAX_ATTEMPTS must be at least 1.")
