from contextlib import asynccontextmanager
from fastapi import FastAPI
from loguru import logger

from backend.config import get_daily_average_mode, get_internal_user_ids, get_lag_thresholds
from backend.database import close_mongo_client


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Bad threshold or mode settings should stop startup, not the first request
    thresholds = get_lag_thresholds()
    mode = get_daily_average_mode()
    logger.info(
        f"Lag analytics starting: e2e>{thresholds.e2e_latency}s, llm>{thresholds.llm_ttft}s, "
        f"daily average mode={mode}, {len(get_internal_user_ids())} internal users excluded by default"
    )

    yield

    await close_mongo_client()
    logger.info("Lag analytics stopped")
