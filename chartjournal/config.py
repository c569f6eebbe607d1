# config.py
import logging
from pathlib import Path
from decouple import config

BASE_DIR = Path(__file__).parent.parent

logger = logging.getLogger(__name__)

DEFAULT_SECRET_KEY = "your-secret-key-here-change-in-production"


class Settings:
    # App
    APP_NAME = "Chart Journal"
    VERSION = "1.0.0"
    SECRET_KEY = config("SECRET_KEY", default=DEFAULT_SECRET_KEY)
    ALGORITHM = config("ALGORITHM", default="HS256")
    DEBUG = config("DEBUG", default=True, cast=bool)
    HOST = config("HOST", default="0.0.0.0")
    PORT = config("PORT", default=8000, cast=int)
    ENVIRONMENT = config("ENVIRONMENT", default="development")
    LOG_LEVEL = config("LOG_LEVEL", default="INFO")

    # Database (Supabase Postgres in production, SQLite locally)
    DATABASE_URL = config("DATABASE_URL", default=f"sqlite:///{BASE_DIR}/chart_journal.db")

    # JWT
    ACCESS_TOKEN_EXPIRE_MINUTES = config("ACCESS_TOKEN_EXPIRE_MINUTES", default=60 * 24, cast=int)

    # Accounts
    PASSWORD_MIN_LENGTH = config("PASSWORD_MIN_LENGTH", default=6, cast=int)
    DEFAULT_INITIAL_CAPITAL = config("DEFAULT_INITIAL_CAPITAL", default=10000.0, cast=float)

    # Gemini, reached through its OpenAI-compatible endpoint
    GEMINI_API_KEY = config("GEMINI_API_KEY", default="")
    GEMINI_BASE_URL = config(
        "GEMINI_BASE_URL",
        default="https://generativelanguage.googleapis.com/v1beta/openai/",
    )
    GEMINI_MODEL = config("GEMINI_MODEL", default="gemini-2.5-flash")
    AI_MAX_ATTEMPTS = config("AI_MAX_ATTEMPTS", default=3, cast=int)
    AI_RETRY_DELAY_SECONDS = config("AI_RETRY_DELAY_SECONDS", default=1.5, cast=float)
    AI_RESPONSE_LANGUAGE = config("AI_RESPONSE_LANGUAGE", default="English")

    # Finnhub (economic calendar and quotes)
    FINNHUB_API_KEY = config("FINNHUB_API_KEY", default="")

    # Charts are bucketed by calendar date in this timezone
    DISPLAY_TIMEZONE = config("DISPLAY_TIMEZONE", default="UTC")

    # Upload
    MAX_UPLOAD_SIZE = config("MAX_UPLOAD_SIZE", default=10, cast=int)  # MB

    # Session
    SESSION_COOKIE_SECURE = config("SESSION_COOKIE_SECURE", default=False, cast=bool)
    SESSION_COOKIE_SAMESITE = config("SESSION_COOKIE_SAMESITE", default="lax")

    # CORS
    CORS_ORIGINS = config("CORS_ORIGINS", default="http://localhost:8000,http://localhost:3000").split(",")

    @property
    def is_development(self):
        """Check if running in development environment"""
        return self.ENVIRONMENT.lower() == "development"

    @property
    def is_production(self):
        """Check if running in production environment"""
        return self.ENVIRONMENT.lower() == "production"

    @property
    def max_upload_bytes(self):
        return self.MAX_UPLOAD_SIZE * 1024 * 1024

    def validate_settings(self):
        """Validate critical settings"""
        errors = []

        if not self.DATABASE_URL:
            errors.append("DATABASE_URL is not configured")

        if self.is_production and self.SECRET_KEY == DEFAULT_SECRET_KEY:
            errors.append("SECRET_KEY must be changed in production")

        if self.AI_MAX_ATTEMPTS < 1:
            errors.append("AI_MAX_ATTEMPTS must be at least 1")

        if errors:
            raise ValueError(f"Configuration errors: {'; '.join(errors)}")

    def log_config_summary(self):
        """Log a summary of the current configuration"""
        logger.info("%s v%s - environment=%s debug=%s", self.APP_NAME, self.VERSION, self.ENVIRONMENT, self.DEBUG)
        logger.info("Database: %s", self.DATABASE_URL)
        logger.info("Gemini API key: %s", "Configured" if self.GEMINI_API_KEY else "Not configured (set in settings)")
        logger.info("Finnhub API key: %s", "Configured" if self.FINNHUB_API_KEY else "Not configured (sample calendar)")


# Initialize settings
settings = Settings()
