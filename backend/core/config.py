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
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./scheduling.db")

CORS_ALLOW_ORIGINS = _get_list(os.getenv("CORS_ALLOW_ORIGINS"), ["http://localhost:5173"])

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "60"))

# Slot grid. The last slot of a day must end by SLOT_DAILY_END_HOUR.
SLOT_DAILY_START_HOUR = int(os.getenv("SLOT_DAILY_START_HOUR", "10"))
SLOT_DAILY_END_HOUR = int(os.getenv("SLOT_DAILY_END_HOUR", "21"))
SLOT_INTERVAL_MINUTES = int(os.getenv("SLOT_INTERVAL_MINUTES", "30"))
SLOT_LOOKAHEAD_DAYS = int(os.getenv("SLOT_LOOKAHEAD_DAYS", "5"))

ALLOW_REBOOKING_CANCELLED_SLOTS = _get_bool(os.getenv("ALLOW_REBOOKING_CANCELLED_SLOTS"), default=True)
MAX_APPOINTMENT_REASON_LENGTH = int(os.getenv("MAX_APPOINTMENT_REASON_LENGTH", "600"))


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")

    from backend.scheduling.slot_template import default_template

    try:
        default_template()
    except ValueError as exc:
        raise RuntimeError(f"Invalid slot grid configuration: {exc}") from exc
