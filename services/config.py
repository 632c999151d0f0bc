# services/config.py
from __future__ import annotations
import os

# ------------------------------------------------------------------------------
# Helper: get env var with fallback
# ------------------------------------------------------------------------------
def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return v if v is not None and v != "" else default

def _flag(name: str, default: str = "1") -> bool:
    return _env(name, default).strip().lower() in {"1", "true", "yes", "on"}

# ------------------------------------------------------------------------------
# Database
# ------------------------------------------------------------------------------
DB_URL: str = _env("DB_URL", "sqlite://./db.sqlite3")
GENERATE_SCHEMAS: bool = _flag("GENERATE_SCHEMAS", "1")

# ------------------------------------------------------------------------------
# Bearer tokens
# ------------------------------------------------------------------------------
JWT_SECRET: str = _env("JWT_SECRET", "change-me")
JWT_ALGORITHM: str = _env("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_SECONDS: int = int(_env("ACCESS_TOKEN_EXPIRE_SECONDS", str(15 * 60)))

# ------------------------------------------------------------------------------
# Billing
# ------------------------------------------------------------------------------
TARIFF_NAME: str = _env("TARIFF_NAME", "domestic")
# total monthly units at or below this use the low tier
LOW_TIER_LIMIT: float = float(_env("LOW_TIER_LIMIT", "60"))
# bills fall due on this day of the month after the billing month
BILL_DUE_DAY: int = int(_env("BILL_DUE_DAY", "20"))

# ------------------------------------------------------------------------------
# App
# ------------------------------------------------------------------------------
CORS_ORIGINS: list[str] = [
    o.strip() for o in _env("CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173").split(",") if o.strip()
]

SEED_ADMIN: bool = _flag("SEED_ADMIN", "1")
ADMIN_USERNAME: str = _env("ADMIN_USERNAME", "admin")
ADMIN_EMAIL: str = _env("ADMIN_EMAIL", "admin@example.com")
