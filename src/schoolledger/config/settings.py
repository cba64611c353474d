from dataclasses import dataclass
import os
from dotenv import load_dotenv


load_dotenv()


def _split_csv(value: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in value.split(",") if item.strip())


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    school_api_base_url: str = os.getenv("SCHOOL_API_BASE_URL", "")
    school_api_token: str = os.getenv("SCHOOL_API_TOKEN", "")
    school_api_timeout: float = _float_env("SCHOOL_API_TIMEOUT", 15.0)

    currency_symbol: str = os.getenv("CURRENCY_SYMBOL", "₦")
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()

    cors_allowed_origins: tuple[str, ...] = _split_csv(
        os.getenv("CORS_ALLOWED_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000")
    )


settings = Settings()
