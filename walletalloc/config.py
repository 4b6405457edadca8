from functools import lru_cache
from pathlib import Path
from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

# Load .env from repo root for local development and scripts.
ENV_PATH = Path(__file__).resolve().parents[1] / ".env"
load_dotenv(dotenv_path=ENV_PATH)

class Settings(BaseSettings):
    model_config = SettingsConfigDict(case_sensitive=True, populate_by_name=True, frozen=True)
    api_key: str | None = Field(default=None, alias="API_KEY")
    current_market: str = Field(default="BullMarket", alias="CURRENT_MARKET")
    wallet_allocations_path: str = Field(default="wallet_allocations.csv", alias="WALLET_ALLOCATIONS_PATH")
    barca_allocations_path: str = Field(default="wallet_barca.csv", alias="BARCA_ALLOCATIONS_PATH")
    db_path: str = Field(default="./data/crypto.db", alias="DB_PATH")
    cmc_base_url: str = Field(default="https://pro-api.coinmarketcap.com", alias="CMC_BASE_URL")
    cmc_listing_limit: int = Field(default=1000, alias="CMC_LISTING_LIMIT")
    http_timeout_seconds: float = Field(default=15.0, alias="HTTP_TIMEOUT_SECONDS")
    http_retry_attempts: int = Field(default=3, alias="HTTP_RETRY_ATTEMPTS")
    http_retry_backoff_seconds: float = Field(default=1.0, alias="HTTP_RETRY_BACKOFF_SECONDS")
    app_host: str = Field(default="127.0.0.1", alias="APP_HOST")
    app_port: int = Field(default=3001, alias="APP_PORT")

@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
