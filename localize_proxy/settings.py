import os
from typing import Optional

from dotenv import load_dotenv

from localize_proxy.errors import ConfigurationError
from localize_proxy.logger import get_logger

load_dotenv()

logger = get_logger("localize.settings")

# === Raw environment values ===

AZURE_TRANSLATOR_KEY = os.getenv("AZURE_TRANSLATOR_KEY")
AZURE_TRANSLATOR_REGION = os.getenv("AZURE_TRANSLATOR_REGION")
AZURE_TRANSLATOR_ENDPOINT = os.getenv(
    "AZURE_TRANSLATOR_ENDPOINT",
    "https://api.cognitive.microsofttranslator.com/translate",
)

GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
REFINEMENT_ENABLED = os.getenv("REFINEMENT_ENABLED", "true").lower() == "true"

# Quota storage
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
QUOTA_BACKEND = os.getenv("QUOTA_BACKEND", "redis").lower()
DAILY_LIMIT = int(os.getenv("DAILY_LIMIT", "25"))
QUOTA_WINDOW_SECONDS = int(os.getenv("QUOTA_WINDOW_SECONDS", "86400"))
# Only used by the in-memory backend
QUOTA_MEMORY_MAX_ENTRIES = int(os.getenv("QUOTA_MEMORY_MAX_ENTRIES", "10000"))

# Request limits
MAX_TEXT_LAYERS = int(os.getenv("MAX_TEXT_LAYERS", "200"))
MAX_TEXT_LENGTH = int(os.getenv("MAX_TEXT_LENGTH", "5000"))

# External call timeouts
PROVIDER_TIMEOUT_SECONDS = float(os.getenv("PROVIDER_TIMEOUT_SECONDS", "10"))
REFINEMENT_TIMEOUT_SECONDS = float(os.getenv("REFINEMENT_TIMEOUT_SECONDS", "15"))

# "auto" detects the batch language with langdetect
SOURCE_LANGUAGE = os.getenv("SOURCE_LANGUAGE", "en")

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))

# Configurable messages

QUOTA_EXCEEDED_MESSAGE = (
    f"Daily limit reached ({DAILY_LIMIT} translations/day). "
    "Please try again tomorrow."
)

PROVIDER_MISCONFIGURED_MESSAGE = (
    "Server misconfigured: missing Azure Translator credentials."
)

QUOTA_UNAVAILABLE_MESSAGE = (
    "Rate limiting is temporarily unavailable. Please try again later."
)


def validate_provider_settings(
    api_key: Optional[str] = AZURE_TRANSLATOR_KEY,
    region: Optional[str] = AZURE_TRANSLATOR_REGION,
) -> None:
    """
    Validate required translation provider configuration.

    Raises ConfigurationError if required keys are missing.
    """
    if not api_key or not region:
        raise ConfigurationError(PROVIDER_MISCONFIGURED_MESSAGE)


def log_settings_warnings() -> None:
    """
    Log configuration gaps at startup without refusing to boot.

    Missing provider credentials are reported per request as a 500.
    """
    try:
        validate_provider_settings()
    except ConfigurationError:
        logger.warning("AZURE_TRANSLATOR_KEY / AZURE_TRANSLATOR_REGION not set")

    if not GEMINI_API_KEY or not REFINEMENT_ENABLED:
        logger.info("Refinement disabled, provider output is returned as-is")

    if QUOTA_BACKEND not in ("redis", "memory"):
        logger.warning("Unknown QUOTA_BACKEND %r, using redis", QUOTA_BACKEND)
