import os
import secrets
import warnings

import redis
from dotenv import load_dotenv

basedir = os.path.abspath(os.path.dirname(__file__))
load_dotenv(os.path.join(basedir, ".env"))


def _parse_competitions(raw, default):
    """Parse "Name=path,Name=path" into a list of competition dicts"""
    if not raw:
        return default

    competitions = []
    for chunk in raw.split(","):
        if "=" not in chunk:
            continue
        name, path = chunk.split("=", 1)
        competitions.append({"name": name.strip(), "path": path.strip()})
    return competitions or default


DEFAULT_COMPETITIONS = [
    {"name": "Premier League", "path": "england:198/premier-league:dYlOSQOD"},
    {"name": "Championship", "path": "england:198/championship:2DSCa5fE"},
    {"name": "League One", "path": "england:198/league-one:rJSMG3H0"},
    {"name": "League Two", "path": "england:198/league-two:0MwU4NW6"},
]

DEFAULT_RESULT_COMPETITIONS = DEFAULT_COMPETITIONS + [
    {"name": "FA Cup", "path": "england:198/fa-cup:lYQtaqPQ"},
]


class Config:
    _secret_key = os.environ.get("SECRET_KEY")

    if not _secret_key:
        _secret_key = secrets.token_urlsafe(32)
        warnings.warn(
            "🔐 SECRET_KEY not set! Using auto-generated key. "
            "Selected players will be forgotten on app restart.",
            UserWarning,
        )

    SECRET_KEY = _secret_key

    def __init__(self):
        """Initialize configuration with dynamic database URI"""
        self.SQLALCHEMY_DATABASE_URI = self._build_database_uri()

    def _build_database_uri(self):
        """Build database URI from environment variables"""
        database_url = os.environ.get("DATABASE_URL")

        if database_url:
            return database_url

        db_type = os.environ.get("DB_TYPE", "sqlite")

        if db_type.lower() == "postgresql":
            db_host = os.environ.get("DB_HOST") or "localhost"
            db_port = os.environ.get("DB_PORT") or "5432"
            db_name = os.environ.get("DB_NAME") or "betpool_db"
            db_user = os.environ.get("DB_USER") or "betpool"
            db_password = os.environ.get("DB_PASSWORD") or "betpool"

            return f"postgresql+psycopg://{db_user}:{db_password}@{db_host}:{db_port}/{db_name}"
        else:
            return "sqlite:///" + os.path.join(basedir, "betpool.db")

    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Sports data API
    SPORTDB_API_BASE_URL = (
        os.environ.get("SPORTDB_API_BASE_URL")
        or "https://api.sportdb.dev/api/flashscore/football"
    )
    SPORTDB_API_KEY = os.environ.get("SPORTDB_API_KEY")
    SPORTDB_SEASON = os.environ.get("SPORTDB_SEASON", "2025-2026")
    SPORTDB_TIMEOUT = int(os.environ.get("SPORTDB_TIMEOUT") or 15)
    FIXTURES_COMPETITIONS = _parse_competitions(
        os.environ.get("FIXTURES_COMPETITIONS"), DEFAULT_COMPETITIONS
    )
    RESULTS_COMPETITIONS = _parse_competitions(
        os.environ.get("RESULTS_COMPETITIONS"), DEFAULT_RESULT_COMPETITIONS
    )

    # Settlement rules
    RESULTS_CACHE_TIMEOUT = int(os.environ.get("RESULTS_CACHE_TIMEOUT") or 600)
    SETTLEMENT_DELAY_MINUTES = int(os.environ.get("SETTLEMENT_DELAY_MINUTES") or 120)
    AUTO_SETTLE_DELAY_MINUTES = int(
        os.environ.get("AUTO_SETTLE_DELAY_MINUTES") or 135
    )
    AUTO_SETTLE_RETRY_MINUTES = int(
        os.environ.get("AUTO_SETTLE_RETRY_MINUTES") or 30
    )
    FINE_AMOUNT = int(os.environ.get("FINE_AMOUNT") or 5)

    # Telegram notifications
    TELEGRAM_BOT_TOKEN = os.environ.get("TELEGRAM_BOT_TOKEN")
    TELEGRAM_CHAT_ID = os.environ.get("TELEGRAM_CHAT_ID")
    TELEGRAM_API_BASE_URL = (
        os.environ.get("TELEGRAM_API_BASE_URL") or "https://api.telegram.org"
    )

    # Players, in the order they take turns placing the real bet
    ROSTER = [
        name.strip()
        for name in os.environ.get(
            "ROSTER", "Brett,Andy Barky,The Real Barky,Hudo,Gaz,Clarky"
        ).split(",")
        if name.strip()
    ]
    TIMEZONE = os.environ.get("TIMEZONE", "Europe/London")

    # Caching configuration
    CACHE_TYPE = os.environ.get("CACHE_TYPE", "RedisCache")
    CACHE_DEFAULT_TIMEOUT = int(os.environ.get("CACHE_DEFAULT_TIMEOUT", 300))
    CACHE_REDIS_URL = os.environ.get("CACHE_REDIS_URL", "redis://localhost:6379/0")
    CACHE_KEY_PREFIX = "betpool:"

    # Rate limiting
    RATELIMIT_ENABLED = True
    RATELIMIT_STORAGE_URI = os.environ.get("RATELIMIT_STORAGE_URI", "memory://")

    # Scheduler configuration
    SCHEDULER_ENABLED = os.environ.get("SCHEDULER_ENABLED", "True").lower() == "true"

    # Logging configuration
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_TO_CONSOLE = os.environ.get("LOG_TO_CONSOLE", "True").lower() == "true"
    LOG_TO_FILE = os.environ.get("LOG_TO_FILE", "True").lower() == "true"
    LOG_DIR = os.environ.get("LOG_DIR", "logs")

    # Environment detection
    FLASK_ENV = os.environ.get("FLASK_ENV", "development")
    DEBUG = FLASK_ENV == "development"
    TESTING = False


class DevelopmentConfig(Config):
    """Development configuration with helpful defaults"""

    DEBUG = True
    SQLALCHEMY_ECHO = os.environ.get("SQLALCHEMY_ECHO", "False").lower() == "true"

    def __init__(self):
        super().__init__()
        # Fallback to SimpleCache if Redis isn't available in development
        try:
            redis_client = redis.Redis.from_url(self.CACHE_REDIS_URL)
            redis_client.ping()
        except redis.exceptions.ConnectionError:
            self.CACHE_TYPE = "SimpleCache"
            warnings.warn(
                "🔶 Redis not available, falling back to SimpleCache for development.",
                UserWarning,
            )


class ProductionConfig(Config):
    """Production configuration"""

    DEBUG = False

    def __init__(self):
        super().__init__()

        if not os.environ.get("SECRET_KEY"):
            warnings.warn(
                "🚨 PRODUCTION WARNING: SECRET_KEY not explicitly set!",
                UserWarning,
            )
        if not os.environ.get("SPORTDB_API_KEY"):
            warnings.warn(
                "🚨 PRODUCTION WARNING: SPORTDB_API_KEY not set, results cannot be fetched!",
                UserWarning,
            )


class TestingConfig(Config):
    """Testing configuration"""

    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    CACHE_TYPE = "SimpleCache"
    SCHEDULER_ENABLED = False
    RATELIMIT_ENABLED = False
    LOG_TO_FILE = False
    LOG_LEVEL = "WARNING"
    SPORTDB_API_KEY = "test-key"
    TELEGRAM_BOT_TOKEN = None
    TELEGRAM_CHAT_ID = None

    def __init__(self):
        pass


config = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
    "default": DevelopmentConfig,
}
