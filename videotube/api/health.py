from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from videotube.db import get_app_db
from videotube.errors import ApiError
from videotube.schemas import ApiResponse, HealthStatus
from videotube.utils.logger import setup_logger

logger = setup_logger("api.health")

router = APIRouter(tags=["Healthcheck"])


@router.get("/healthcheck", response_model=ApiResponse[HealthStatus])
async def healthcheck(db: AsyncSession = Depends(get_app_db)):
    """API health check endpoint, including a round trip to the database."""
    try:
        await db.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Healthcheck database check failed: {e}")
        raise ApiError.unavailable() from e

    return ApiResponse.ok(HealthStatus(status="OK", database="ok"), "Service is healthy")
