"""Centralised client settings loaded from environment / .env file."""

from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # REST API
    api_base_url: str = "http://localhost:8081"
    request_timeout_seconds: float = 10.0

    # Active ride tracking
    poll_interval_seconds: float = 5.0

    # Fare estimate
    base_fare: float = 1000.0  # RWF
    rate_per_km: float = 500.0  # RWF / km
    rate_per_minute: float = 100.0  # RWF / min
    currency: str = "RWF"

    # Routing
    routing_provider: str = "google"  # "google" | "haversine"
    google_maps_api_key: Optional[str] = None
    directions_url: str = "https://maps.googleapis.com/maps/api/directions/json"
    average_speed_kmh: float = 30.0  # haversine provider only

    # Session storage
    redis_url: str = "redis://localhost:6379/0"
    token_key: str = "token"

    # Payments (mocked locally)
    mock_payment_latency_seconds: float = 0.0
    initial_wallet_balance: int = 15_000

    log_level: str = "INFO"

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
