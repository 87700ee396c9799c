from functools import lru_cache
from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def parse_store_ids(value: Optional[str]) -> frozenset[int]:
    if not value:
        return frozenset()
    store_ids = set()
    for part in value.split(","):
        part = part.strip()
        if part:
            store_ids.add(int(part))
    return frozenset(store_ids)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ==============================
    # Application
    # ==============================
    APP_NAME: str = "Stock Ledger Service"
    ENVIRONMENT: str = "local"

    # ==============================
    # Database
    # ==============================
    DATABASE_URL: str = "sqlite:///./stockledger.db"

    # ==============================
    # Logging
    # ==============================
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False
    LOG_SQL: bool = False

    # ==============================
    # Security
    # ==============================
    API_KEYS: Optional[str] = None
    API_KEY_HEADER: str = "X-API-Key"
    JWT_SECRET: Optional[str] = None
    JWT_ALGORITHM: str = "HS256"
    JWT_AUDIENCE: Optional[str] = None
    JWT_ISSUER: Optional[str] = None
    JWT_REQUIRED: bool = False

    # ==============================
    # Ledger locking
    # ==============================
    LOCK_TIMEOUT_SECONDS: float = 5.0

    # ==============================
    # Restock alerts
    # ==============================
    ALERT_WATCH_STORES: str = "1,2"
    ALERT_OPEN_THRESHOLD: int = 100
    ALERT_RECOVERY_THRESHOLD: int = 25

    # ==============================
    # Profitability
    # ==============================
    PROFIT_REPORT_STORES: str = "1,2"

    @model_validator(mode="after")
    def _check_alert_thresholds(self):
        if self.ALERT_RECOVERY_THRESHOLD > self.ALERT_OPEN_THRESHOLD:
            raise ValueError(
                "ALERT_RECOVERY_THRESHOLD must not exceed ALERT_OPEN_THRESHOLD"
            )
        if self.LOCK_TIMEOUT_SECONDS <= 0:
            raise ValueError("LOCK_TIMEOUT_SECONDS must be positive")
        return self

    @property
    def alert_watch_stores(self) -> frozenset[int]:
        return parse_store_ids(self.ALERT_WATCH_STORES)

    @property
    def profit_report_stores(self) -> frozenset[int]:
        return parse_store_ids(self.PROFIT_REPORT_STORES)


@lru_cache
def get_settings() -> Settings:
    """Cached settings loader (once per process)."""
    return Settings()


__all__ = ["Settings", "get_settings", "parse_store_ids"]
