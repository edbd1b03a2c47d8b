# utils/config.py
import os
from typing import Optional

from dotenv import load_dotenv

from utils.exceptions import APIKeyMissingError
from utils.logger import risk_logger

# Load environment variables
load_dotenv()

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        risk_logger.logger.warning(f"⚠️ {name}={raw!r} is not an integer, using {default}")
        return default
    if value < 1:
        risk_logger.logger.warning(f"⚠️ {name}={value} must be >= 1, using {default}")
        return default
    return value


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        risk_logger.logger.warning(f"⚠️ {name}={raw!r} is not a number, using {default}")
        return default
    if value <= 0:
        risk_logger.logger.warning(f"⚠️ {name}={value} must be positive, using {default}")
        return default
    return value


def _env_optional_seconds(name: str) -> Optional[float]:
    """Positive number of seconds, or None when unset, 0 or invalid"""
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        value = float(raw)
    except ValueError:
        risk_logger.logger.warning(f"⚠️ {name}={raw!r} is not a number, leaving it unset")
        return None
    return value if value > 0 else None


class Config:
    """Runtime configuration loaded from the environment"""

    def __init__(self, validate: bool = True):
        # LLM provider (any OpenAI-compatible endpoint, OpenRouter by default)
        self.openrouter_api_key: Optional[str] = (
            os.getenv("OPENROUTER_API_KEYS") or os.getenv("OPENROUTER_API_KEY")
        )
        self.llm_base_url = os.getenv("LLM_BASE_URL", OPENROUTER_BASE_URL)
        self.analysis_model = os.getenv("ANALYSIS_MODEL", "google/gemini-2.5-flash")
        self.router_model = os.getenv("ROUTER_MODEL", "x-ai/grok-4.1-fast:free")

        # Web search for fact-checking
        self.exa_api_key: Optional[str] = os.getenv("EXA_API_KEY")

        # Timeouts (seconds) for single external calls
        self.router_timeout = _env_float("ROUTER_TIMEOUT", 15.0)
        self.agent_timeout = _env_float("AGENT_TIMEOUT", 45.0)
        self.search_timeout = _env_float("SEARCH_TIMEOUT", 20.0)

        # Pipeline bounds
        self.batch_chunk_size = _env_int("BATCH_CHUNK_SIZE", 3)
        self.router_concurrency = _env_int("ROUTER_CONCURRENCY", 5)
        self.max_rows = _env_int("MAX_ROWS", 100)
        self.max_claims = _env_int("MAX_CLAIMS", 3)
        # Only for hosts that kill long responses; None streams until complete
        self.max_stream_seconds = _env_optional_seconds("MAX_STREAM_SECONDS")

        self.langchain_project = os.getenv("LANGCHAIN_PROJECT", "dataset-risk-analysis")

        if validate:
            self.validate()

    def validate(self):
        """Validate required env vars"""
        if not self.openrouter_api_key:
            raise APIKeyMissingError("OPENROUTER_API_KEY not set in environment")

        if not self.exa_api_key:
            risk_logger.logger.warning("⚠️ EXA_API_KEY not set - fact-check claims will be reported as unverified")

        risk_logger.logger.info("✅ Configuration loaded successfully")
