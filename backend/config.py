import os
from typing import List, Optional, Tuple

from dotenv import load_dotenv
from loguru import logger
from pydantic import ValidationError

from lag_analysis.accumulators import AVERAGE_MODE_BIASED, AVERAGE_MODES
from lag_analysis.models import LagThresholds

load_dotenv()

ENV = os.getenv("ENV", "local")

REQUIRED_BACKEND_ENV_VARS = [
    "MONGO_URI",
    "ALLOWED_ORIGINS",
]

# Known internal/test accounts, excluded from analytics unless the caller says otherwise
DEFAULT_INTERNAL_USER_IDS = [
    "6960e1af8d4fd6300c99a511",
    "6866164afb3e2073a0e5f888",
    "682fbc56a0cdf51b0bd556d3",
]

THRESHOLD_ENV_VARS = {
    "e2e_latency": "LAG_THRESHOLD_E2E",
    "llm_ttft": "LAG_THRESHOLD_LLM_TTFT",
    "tts_ttfb": "LAG_THRESHOLD_TTS_TTFB",
    "transcription_delay": "LAG_THRESHOLD_STT",
    "end_of_turn": "LAG_THRESHOLD_END_OF_TURN",
}

_thresholds: Optional[LagThresholds] = None


def validate_env_vars(required_vars: List[str]) -> Tuple[bool, List[str]]:
    missing = [var for var in required_vars if not os.getenv(var)]
    return len(missing) == 0, missing


def split_csv(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def load_lag_thresholds() -> LagThresholds:
    """Build thresholds from LAG_THRESHOLD_* env vars, falling back to defaults."""
    overrides = {}
    for field_name, env_var in THRESHOLD_ENV_VARS.items():
        raw = os.getenv(env_var)
        if raw is None or raw.strip() == "":
            continue
        try:
            overrides[field_name] = float(raw)
        except ValueError:
            raise RuntimeError(f"{env_var} must be a number of seconds, got {raw!r}")

    try:
        return LagThresholds(**overrides)
    except ValidationError as e:
        raise RuntimeError(f"Invalid lag thresholds: {e}")


def get_lag_thresholds() -> LagThresholds:
    global _thresholds
    if _thresholds is None:
        _thresholds = load_lag_thresholds()
        logger.info(f"Lag thresholds: {_thresholds.model_dump()}")
    return _thresholds


def get_daily_average_mode() -> str:
    mode = os.getenv("LAG_DAILY_AVERAGE_MODE", AVERAGE_MODE_BIASED).strip().lower()
    if mode not in AVERAGE_MODES:
        raise RuntimeError(f"LAG_DAILY_AVERAGE_MODE must be one of {AVERAGE_MODES}, got {mode!r}")
    return mode


def get_internal_user_ids() -> List[str]:
    configured = os.getenv("INTERNAL_USER_IDS")
    if configured is None:
        return list(DEFAULT_INTERNAL_USER_IDS)
    return split_csv(configured)


async def validate_backend_startup() -> None:
    from backend.database import check_connection

    logger.info("Validating backend environment...")

    all_present, missing = validate_env_vars(REQUIRED_BACKEND_ENV_VARS)
    if not all_present:
        raise RuntimeError(f"Missing required environment variables: {', '.join(missing)}")
    logger.info("✓ Required environment variables present")

    get_lag_thresholds()
    logger.info(f"✓ Lag thresholds valid (daily average mode: {get_daily_average_mode()})")

    is_healthy, error = await check_connection()
    if not is_healthy:
        raise RuntimeError(f"MongoDB health check failed: {error}")

    logger.info("✓ MongoDB connection successful")
    logger.info("Backend validation complete - ready to start")
