import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()


class Settings(BaseModel):
    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Invoker
    default_dependency: str = Field(default="recipe-scraper", alias="DEFAULT_DEPENDENCY")
    max_concurrent_calls: int = Field(default=64, gt=0, alias="MAX_CONCURRENT_CALLS")
    worker_threads: int = Field(default=8, gt=0, alias="WORKER_THREADS")
    metrics_enabled: bool = Field(default=True, alias="METRICS_ENABLED")

    # Timeouts (seconds), shared by all dependencies
    connect_timeout: float = Field(default=5.0, gt=0, alias="EXTERNAL_CONNECT_TIMEOUT")
    read_timeout: float = Field(default=10.0, gt=0, alias="EXTERNAL_READ_TIMEOUT")

    # Circuit breaker
    breaker_failure_rate_threshold: float = Field(
        default=50.0, gt=0, le=100, alias="BREAKER_FAILURE_RATE_THRESHOLD"
    )
    breaker_sliding_window_size: int = Field(
        default=10, gt=0, alias="BREAKER_SLIDING_WINDOW_SIZE"
    )
    breaker_minimum_calls: int = Field(default=5, gt=0, alias="BREAKER_MINIMUM_CALLS")
    breaker_cool_down_seconds: float = Field(
        default=30.0, gt=0, alias="BREAKER_COOL_DOWN_SECONDS"
    )
    breaker_half_open_max_calls: int = Field(
        default=1, gt=0, alias="BREAKER_HALF_OPEN_MAX_CALLS"
    )
    # "attempt" or "call"
    breaker_recording: str = Field(default="attempt", alias="BREAKER_RECORDING")

    # Retry
    retry_max_attempts: int = Field(default=3, ge=1, alias="RETRY_MAX_ATTEMPTS")
    retry_backoff: str = Field(default="exponential", alias="RETRY_BACKOFF")
    retry_initial_wait: float = Field(default=1.0, ge=0, alias="RETRY_INITIAL_WAIT")
    retry_multiplier: float = Field(default=2.0, ge=1, alias="RETRY_MULTIPLIER")
    retry_max_wait: float = Field(default=10.0, ge=0, alias="RETRY_MAX_WAIT")

    # Recipe scraper (pricing)
    recipe_scraper_url: str = Field(
        default="http://localhost:8082", alias="RECIPE_SCRAPER_URL"
    )
    recipe_scraper_enabled: bool = Field(default=True, alias="RECIPE_SCRAPER_ENABLED")
    recipe_scraper_cache_ttl_minutes: int = Field(
        default=30, gt=0, alias="RECIPE_SCRAPER_CACHE_TTL_MINUTES"
    )
    recipe_scraper_cache_size: int = Field(
        default=1000, gt=0, alias="RECIPE_SCRAPER_CACHE_SIZE"
    )

    # User management (privacy/preferences)
    user_management_url: str = Field(
        default="http://localhost:8081", alias="USER_MANAGEMENT_URL"
    )
    user_management_enabled: bool = Field(default=True, alias="USER_MANAGEMENT_ENABLED")
    user_management_cache_ttl_minutes: int = Field(
        default=15, gt=0, alias="USER_MANAGEMENT_CACHE_TTL_MINUTES"
    )
    user_management_cache_size: int = Field(
        default=1000, gt=0, alias="USER_MANAGEMENT_CACHE_SIZE"
    )

    # Notification service (best effort, never cached)
    notification_service_url: str = Field(
        default="http://localhost:8083", alias="NOTIFICATION_SERVICE_URL"
    )
    notification_service_enabled: bool = Field(
        default=True, alias="NOTIFICATION_SERVICE_ENABLED"
    )

    # Media manager
    media_manager_url: str = Field(
        default="http://localhost:8084", alias="MEDIA_MANAGER_URL"
    )
    media_manager_enabled: bool = Field(default=True, alias="MEDIA_MANAGER_ENABLED")
    media_manager_cache_ttl_minutes: int = Field(
        default=10, gt=0, alias="MEDIA_MANAGER_CACHE_TTL_MINUTES"
    )
    media_manager_cache_size: int = Field(
        default=500, gt=0, alias="MEDIA_MANAGER_CACHE_SIZE"
    )


global_settings = Settings.model_validate(dict(os.environ))
