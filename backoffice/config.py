# ----------------------------------------------------------------
# Import configuration variables to be used throughout the project
# ----------------------------------------------------------------
import os
from dotenv import load_dotenv

# Load .env (allow container env to override file values)
load_dotenv(override=True)


def _rstrip_slash(s: str) -> str:
    return (s or "").rstrip("/")


def _get_bool(name: str, default: bool = False) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return str(v).strip().lower() in {"1", "true", "yes", "on", "y"}


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name, "")
    try:
        return int(raw) if raw.strip() else default
    except ValueError:
        return default


def _get_float(name: str, default: float) -> float:
    raw = os.getenv(name, "")
    try:
        return float(raw) if raw.strip() else default
    except ValueError:
        return default


class Settings:
    # ── Back-office REST API ─────────────────────────────────────────────────
    BACKOFFICE_API_URL: str = _rstrip_slash(os.getenv("BACKOFFICE_API_URL", "http://localhost:8080/api/v1"))
    BACKOFFICE_API_TOKEN: str = os.getenv("BACKOFFICE_API_TOKEN", "")
    BACKOFFICE_API_TIMEOUT: float = _get_float("BACKOFFICE_API_TIMEOUT", 30.0)
    BACKOFFICE_VERIFY_SSL: bool = _get_bool("BACKOFFICE_VERIFY_SSL", True)

    # ── Variation matrix ─────────────────────────────────────────────────────
    # total stock at or below this flags a product as low stock
    LOW_STOCK_THRESHOLD: int = _get_int("LOW_STOCK_THRESHOLD", 10)
    SKU_MAX_TOKENS: int = _get_int("SKU_MAX_TOKENS", 10)

    # ── Lookups ──────────────────────────────────────────────────────────────
    # CSV/XLSX with colors + attribute variants, used when the API is unreachable
    LOOKUP_FALLBACK_PATH: str = os.getenv("LOOKUP_FALLBACK_PATH", "")

    # ── Admin Panel ──────────────────────────────────────────────────────────
    ADMIN_USER: str = os.getenv("ADMIN_USER", "admin")
    ADMIN_PASS: str = os.getenv("ADMIN_PASS", "changeme")

    # ── CORS ─────────────────────────────────────────────────────────────────
    # Comma-separated list in .env, e.g. "https://example.com, https://foo.bar"
    CORS_ORIGINS: list[str] = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]


settings = Settings()
