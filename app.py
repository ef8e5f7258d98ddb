import os
import asyncio
import sys

import uvicorn
from dotenv import load_dotenv
from loguru import logger

load_dotenv()

from backend.config import ENV, validate_backend_startup
from backend.main import app


def main() -> int:
    logger.info(f"Voice Call Lag Analytics ({ENV})")

    try:
        asyncio.run(validate_backend_startup())
    except RuntimeError as e:
        logger.error(f"Startup validation failed: {e}")
        logger.error("Fix the configuration above and restart")
        return 1

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", 8000))
    logger.info(f"Serving lag analytics on {host}:{port}")
    uvicorn.run(app, host=host, port=port, log_config=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
