import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def env_int(name: str, default: int, min_value: Optional[int] = None, max_value: Optional[int] = None) -> int:
    """Read an integer from the environment, clamped to an optional range.

    Invalid values fall back to the default rather than failing at import time.
    """
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    if min_value is not None:
        value = max(min_value, value)
    if max_value is not None:
        value = min(max_value, value)
    return value


def env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() not in {"0", "false", "no", "off"}


@dataclass(frozen=True)
class ScrapeTimings:
    """Polling and scrolling thresholds used while a search page renders.

    All durations are in milliseconds.

    Attributes:
        initial_wait_ms: Pause after navigation before polling for cards
        poll_interval_ms: Delay between two readiness probes
        ready_max_attempts: Readiness probes before giving up (20 x 500ms ~ 10s)
        progress_every: Log a progress line every N readiness attempts
        scroll_rounds: Maximum scroll-to-bottom rounds
        scroll_settle_ms: Wait after each scroll before counting cards
        scroll_pause_ms: Extra wait between rounds (skipped after the last one)
        stable_rounds: Consecutive unchanged non-zero counts that end scrolling
        scroll_top_wait_ms: Wait after the final scroll back to the top
    """

    initial_wait_ms: int = 3000
    poll_interval_ms: int = 500
    ready_max_attempts: int = 20
    progress_every: int = 4
    scroll_rounds: int = 8
    scroll_settle_ms: int = 800
    scroll_pause_ms: int = 400
    stable_rounds: int = 2
    scroll_top_wait_ms: int = 500


class Settings:
    """Application settings loaded from environment variables with defaults.

    This centralized configuration class follows the 12-factor app methodology
    by allowing configuration through environment variables, while providing
    sensible defaults for local development.
    """

    # Project metadata
    PROJECT_NAME = "E-commerce Scraper"
    PROJECT_VERSION = "0.1.0"

    # Search defaults
    DEFAULT_QUERY = os.getenv("DEFAULT_QUERY", "iphone")
    DEFAULT_LIMIT = env_int("DEFAULT_LIMIT", 10, min_value=0, max_value=200)
    MAX_LIMIT = env_int("MAX_LIMIT", 200, min_value=1, max_value=1000)

    # Server Settings
    SERVER_HOST = os.getenv("SERVER_HOST", "0.0.0.0")
    SERVER_PORT = env_int("SERVER_PORT", 4103, min_value=1, max_value=65535)
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    # Browser Settings
    CHROME_BIN = os.getenv("CHROME_BIN") or None
    HEADLESS = env_bool("HEADLESS", True)
    USER_AGENT = os.getenv(
        "USER_AGENT",
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    )
    BROWSER_LOCALE = os.getenv("BROWSER_LOCALE", "id-ID")
    WINDOW_WIDTH = env_int("WINDOW_WIDTH", 1920, min_value=320, max_value=7680)
    WINDOW_HEIGHT = env_int("WINDOW_HEIGHT", 1080, min_value=240, max_value=4320)
    PAGE_LOAD_TIMEOUT_SECS = env_int("PAGE_LOAD_TIMEOUT_SECS", 10, min_value=1, max_value=120)

    # Cache Settings
    CACHE_BACKEND = os.getenv("CACHE_BACKEND", "redis").lower()
    CACHE_TTL_SECONDS = env_int("CACHE_TTL_SECONDS", 86400, min_value=1)
    REDIS_HOST = os.getenv("REDIS_HOST", "127.0.0.1")
    REDIS_PORT = os.getenv("REDIS_PORT", "6379")
    REDIS_PASSWORD = os.getenv("REDIS_PASSWORD", "")
    REDIS_SOCKET_TIMEOUT = env_int("REDIS_SOCKET_TIMEOUT", 2, min_value=1, max_value=60)

    # Database Settings
    DB_HOST = os.getenv("DB_HOST", "localhost")
    DB_PORT = os.getenv("DB_PORT", "3306")
    DB_NAME = os.getenv("DB_NAME", "scraper")
    DB_USER = os.getenv("DB_USER", "user")
    DB_PASS = os.getenv("DB_PASSWORD", "password")

    # Render timings
    POLL_INTERVAL_MS = env_int("POLL_INTERVAL_MS", 500, min_value=50, max_value=5000)
    READY_MAX_ATTEMPTS = env_int("READY_MAX_ATTEMPTS", 20, min_value=1, max_value=200)
    PROGRESS_EVERY = env_int("PROGRESS_EVERY", 4, min_value=1, max_value=100)
    SCROLL_ROUNDS = env_int("SCROLL_ROUNDS", 8, min_value=0, max_value=50)
    SCROLL_SETTLE_MS = env_int("SCROLL_SETTLE_MS", 800, min_value=0, max_value=10000)
    SCROLL_PAUSE_MS = env_int("SCROLL_PAUSE_MS", 400, min_value=0, max_value=10000)
    STABLE_ROUNDS = env_int("STABLE_ROUNDS", 2, min_value=1, max_value=10)
    SCROLL_TOP_WAIT_MS = env_int("SCROLL_TOP_WAIT_MS", 500, min_value=0, max_value=10000)

    @property
    def REDIS_URL(self) -> str:
        """Constructs a redis connection URL, with the password when one is set."""
        if self.REDIS_PASSWORD:
            return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}/"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/"

    @property
    def DATABASE_URL(self) -> str:
        """Constructs a SQLAlchemy connection string for MySQL."""
        return f"mysql+pymysql://{self.DB_USER}:{self.DB_PASS}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    def default_timings(self, initial_wait_ms: int = 3000) -> ScrapeTimings:
        """Build the render timings from the environment for one site."""
        return ScrapeTimings(
            initial_wait_ms=initial_wait_ms,
            poll_interval_ms=self.POLL_INTERVAL_MS,
            ready_max_attempts=self.READY_MAX_ATTEMPTS,
            progress_every=self.PROGRESS_EVERY,
            scroll_rounds=self.SCROLL_ROUNDS,
            scroll_settle_ms=self.SCROLL_SETTLE_MS,
            scroll_pause_ms=self.SCROLL_PAUSE_MS,
            stable_rounds=self.STABLE_ROUNDS,
            scroll_top_wait_ms=self.SCROLL_TOP_WAIT_MS,
        )


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()


# For direct access in other modules
settings = get_settings()
