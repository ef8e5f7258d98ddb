import os
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from backend.lifespan import lifespan
from backend.exceptions import register_exception_handlers
from backend.api import health, analytics, calls
from backend.config import split_csv
from logging_config import setup_logging

setup_logging()

ALLOWED_ORIGINS_STR = os.getenv("ALLOWED_ORIGINS", "http://localhost:3000")

app = FastAPI(
    title="Voice Call Lag Analytics",
    version="1.0.0",
    lifespan=lifespan
)

app.state.limiter = analytics.limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

allowed_origins = split_csv(ALLOWED_ORIGINS_STR)
logger.info(f"CORS allowed origins: {allowed_origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["Authorization", "Content-Type"],
    max_age=600
)

register_exception_handlers(app)

app.include_router(health.router, tags=["Health"])
app.include_router(analytics.router, prefix="/analytics", tags=["Analytics"])
app.include_router(calls.router, tags=["Calls"])
