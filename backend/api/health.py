from fastapi import APIRouter

from backend.database import check_connection

router = APIRouter()


@router.get("/")
async def root():
    return {
        "service": "Voice Call Lag Analytics - Backend API",
        "version": "1.0",
        "status": "operational",
        "endpoints": {
            "health": "/health",
            "lag": "/analytics/lag",
            "summary": "/analytics/summary",
            "calls": "/calls",
            "call": "/calls/{call_id}"
        },
        "documentation": "/docs"
    }


@router.get("/health")
async def health():
    is_connected, db_status = await check_connection()

    return {
        "status": "healthy" if is_connected else "degraded",
        "service": "lag-analytics-api",
        "database": db_status
    }
