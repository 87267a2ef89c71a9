import logging

from pydantic_settings import BaseSettings
from typing import List

_logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    # App
    APP_NAME: str = "racefetch"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False

    # CORS
    BACKEND_CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    # Race timeouts (seconds)
    PER_STRATEGY_TIMEOUT: float = 12.0
    OVERALL_TIMEOUT: float = 15.0
    MIN_STRATEGY_TIMEOUT: float = 4.0  # floor applied to every strategy timeout

    # Strategy-specific timeouts (seconds)
    DIRECT_TIMEOUT: float = 8.0
    PROXY_TIMEOUT_MIN: float = 12.0
    PROXY_TIMEOUT_MAX: float = 25.0

    # Strategy endpoints
    SITEMAP_PROXY_URL: str = ""  # Server-side proxy (empty = strategy disabled)
    ALLORIGINS_URL: str = "https://api.allorigins.win/raw"
    JINA_READER_URL: str = "https://r.jina.ai"

    # Direct fetch
    DIRECT_IMPERSONATE: str = "chrome124"  # curl_cffi browser fingerprint
    USER_AGENT: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
    )

    # Sentry
    SENTRY_DSN: str = ""
    SENTRY_TRACES_SAMPLE_RATE: float = 0.2
    SENTRY_ENVIRONMENT: str = "development"

    # Logging
    LOG_FORMAT: str = "json"  # "json" for production, "text" for development
    LOG_LEVEL: str = "INFO"

    # Metrics
    METRICS_ENABLED: bool = True

    def model_post_init(self, __context) -> None:
        if self.OVERALL_TIMEOUT < self.PER_STRATEGY_TIMEOUT:
            _logger.warning(
                "OVERALL_TIMEOUT (%ss) is below PER_STRATEGY_TIMEOUT (%ss); "
                "races will use %ss as the overall deadline.",
                self.OVERALL_TIMEOUT,
                self.PER_STRATEGY_TIMEOUT,
                self.PER_STRATEGY_TIMEOUT,
            )

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()
