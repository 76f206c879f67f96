from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import Optional
import os
from pathlib import Path


class Settings(BaseSettings):
    # Database
    database_url: str = "sqlite:///./fundraising.db"
    db_pool_size: int = 20
    db_max_overflow: int = 30
    db_connect_retries: int = 30
    db_connect_retry_delay: float = 2.0

    # App
    app_name: str = "Fundraiser Service API"
    debug: bool = False
    service_name: str = "fundraiser-service"

    # Public donate page origin, e.g. https://intern.example.org
    public_base_url: str = "http://localhost:8080"
    currency_symbol: str = "₹"

    # Listing
    max_page_size: int = 500
    leaderboard_default_limit: int = 10

    # Redis
    redis_url: Optional[str] = None
    cache_ttl_seconds: int = 60

    # Tracing (disabled when no endpoint is configured)
    otlp_endpoint: Optional[str] = None

    # Kafka
    kafka_enabled: bool = False
    kafka_bootstrap_servers: str = "localhost:9092"
    kafka_topic_donation_events: str = "donation.events"
    kafka_topic_payment_events: str = "payment.events"
    kafka_consumer_group: str = "fundraiser-service"
    # Pause before re-reading a payment event that hit a database outage
    kafka_retry_backoff_seconds: float = 5.0

    model_config = SettingsConfigDict(
        # Look for .env.local next to the package
        env_file=os.path.join(Path(__file__).parent.parent.parent, ".env.local"),
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache()
def get_settings():
    return Settings()
