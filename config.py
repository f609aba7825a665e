import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _csv(value: str) -> list:
    return [item.strip() for item in value.split(",") if item.strip()]


class Config:
    """
    HeatSentry Configuration
    Process-level settings are loaded from environment variables.
    Operational settings (aggregator URL, whale threshold) live in the
    `settings` table and are resolved per run by the task layer.
    """

    # Environment
    ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
    DEBUG = ENVIRONMENT == "development"

    # PostgreSQL Database
    DATABASE_URL = os.getenv("DATABASE_URL")

    # Redis (for Celery)
    REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

    # Price oracle (CoinGecko)
    COINGECKO_API_URL = os.getenv("COINGECKO_API_URL", "https://api.coingecko.com/api/v3").rstrip("/")
    COINGECKO_API_KEY = os.getenv("COINGECKO_API_KEY")

    # Telegram Bot
    TELEGRAM_BOT_TOKEN = os.getenv("TELEGRAM_BOT_TOKEN")
    TELEGRAM_CHAT_IDS = _csv(os.getenv("TELEGRAM_CHAT_IDS", ""))
    TELEGRAM_SEND_ATTEMPTS = max(1, int(os.getenv("TELEGRAM_SEND_ATTEMPTS", "3")))

    # Heatmap schedule
    HEATMAP_SYMBOLS = [s.upper() for s in _csv(os.getenv("HEATMAP_SYMBOLS", "ETH,BTC"))]
    HEATMAP_LEVEL_COUNT = int(os.getenv("HEATMAP_LEVEL_COUNT", "3"))
    HEATMAP_SCHEDULE_SEC = float(os.getenv("HEATMAP_SCHEDULE_SEC", "300"))

    # Timeouts
    HTTP_TIMEOUT_SEC = float(os.getenv("HTTP_TIMEOUT_SEC", "10"))
    PIPELINE_TIMEOUT_SEC = float(os.getenv("PIPELINE_TIMEOUT_SEC", "60"))

    @classmethod
    def validate(cls):
        """Validate critical configuration on startup."""
        import logging
        logger = logging.getLogger(__name__)

        warnings = []

        if not cls.DATABASE_URL:
            warnings.append("DATABASE_URL not set (snapshots cannot be stored)")
        if not cls.COINGECKO_API_KEY:
            warnings.append("COINGECKO_API_KEY not set (price fetch will likely be rejected)")
        if not cls.TELEGRAM_BOT_TOKEN:
            warnings.append("TELEGRAM_BOT_TOKEN not set (Notifications disabled)")
        if not cls.TELEGRAM_CHAT_IDS:
            warnings.append("TELEGRAM_CHAT_IDS not set (Notifications disabled)")

        for w in warnings:
            logger.warning(f"⚠️  {w}")

        if cls.ENVIRONMENT == "production":
            logger.info("🚀 Running in PRODUCTION mode")
        else:
            logger.info("🔧 Running in DEVELOPMENT mode")

        return len(warnings) == 0


config = Config()
