from pathlib import Path
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    data_dir: Path = Path.home() / "MarketplaceData"
    api_prefix: str = "/api/v1"
    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "INFO"
    cors_origins: list[str] = [
        "http://127.0.0.1:19006",
        "http://localhost:19006",
    ]
    token_ttl_seconds: int = 7 * 24 * 3600
    # Marketplace commission taken from every delivered job.
    platform_fee_rate: float = 0.08
    # Payments stay held this long after delivery before release.
    payment_hold_hours: int = 24
    default_currency: str = "ARS"
    default_city: str = "Rosario"
    # Work schedules are expressed in local time (Argentina has no DST).
    utc_offset_hours: int = -3
    default_payment_method: str = "mercadopago"
    search_default_radius_km: float = 10
    search_default_limit: int = 20

    @property
    def db_path(self) -> Path:
        return self.data_dir / "db.sqlite"

    model_config = {"env_prefix": "MARKET_"}


settings = Settings()
