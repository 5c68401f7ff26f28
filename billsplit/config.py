import os
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    # Secret key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key")

    # SESSION / COOKIE CONFIG (the remote API token lives in the session)
    SESSION_COOKIE_NAME = os.environ.get("SESSION_COOKIE_NAME", "billsplit_session")
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = _env_bool("SESSION_COOKIE_SECURE", False)

    CORS_ORIGINS = [
        origin.strip()
        for origin in os.environ.get("CORS_ORIGINS", "http://localhost:5173").split(",")
        if origin.strip()
    ]

    # Remote REST API
    API_BASE_URL = os.environ.get("API_BASE_URL", "http://localhost:8080").rstrip("/")
    API_TIMEOUT = float(os.environ.get("API_TIMEOUT", 10))
    API_MAX_RETRIES = int(os.environ.get("API_MAX_RETRIES", 3))

    # Display
    CURRENCY_CODE = os.environ.get("CURRENCY_CODE", "IDR")
    CURRENCY_SYMBOL = os.environ.get("CURRENCY_SYMBOL", "Rp")

    FRONTEND_DIR = os.environ.get(
        "FRONTEND_DIR",
        os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "frontend"),
    )
    BILL_MAX_BYTES = int(os.environ.get("BILL_MAX_BYTES", 5 * 1024 * 1024))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()


config = Config()
