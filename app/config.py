import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

PROJECT_ROOT = Path(__file__).parent.parent


def _parse_weekdays(raw):
    """Parse a comma-separated list of weekday numbers (0 = Monday)."""
    weekdays = []
    for part in (raw or "").split(","):
        part = part.strip()
        if part.isdigit() and 0 <= int(part) <= 6:
            weekdays.append(int(part))
    return tuple(sorted(set(weekdays))) or (0, 1, 2, 3, 4)


class Config:
    """Base configuration class with common settings."""
    # Holiday calendar (versioned data, refreshed yearly)
    HOLIDAYS_FILE = os.environ.get("HOLIDAYS_FILE", str(PROJECT_ROOT / "data" / "holidays.csv"))
    HOLIDAYS_VERSION = os.environ.get("HOLIDAYS_VERSION")

    # Company calendar
    WORKING_WEEKDAYS = _parse_weekdays(os.environ.get("WORKING_WEEKDAYS", "0,1,2,3,4"))
    COMPANY_TIMEZONE = os.environ.get("COMPANY_TIMEZONE", "America/Sao_Paulo")

    # CORS configuration
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

    # Logging
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_FILE = os.environ.get("LOG_FILE")


class LocalConfig(Config):
    """Configuration for local development."""
    ENV = "local"
    DEBUG = True


class SandboxConfig(Config):
    """Configuration for sandbox/staging environment."""
    ENV = "sandbox"
    DEBUG = False


class ProductionConfig(Config):
    """Configuration for production environment."""
    ENV = "production"
    DEBUG = False


def get_config():
    """Get the appropriate configuration class based on environment variable.

    Environment is determined by FLASK_ENV or ENVIRONMENT variable:
    - 'local' or 'development' -> LocalConfig
    - 'sandbox' or 'staging' -> SandboxConfig
    - 'production' or 'prod' -> ProductionConfig

    Defaults to LocalConfig if not set.
    """
    env = (os.environ.get("FLASK_ENV") or os.environ.get("ENVIRONMENT", "local")).lower()

    if env in ["local", "development", "dev"]:
        return LocalConfig
    elif env in ["sandbox", "staging", "stage"]:
        return SandboxConfig
    elif env in ["production", "prod"]:
        return ProductionConfig
    else:
        # Default to local for safety
        return LocalConfig
