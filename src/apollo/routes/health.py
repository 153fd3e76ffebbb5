from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from apollo import __version__
from apollo.db import get_db
from apollo.log_config import logger

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health_check() -> dict[str, str]:
    """Liveness probe."""
    return {"status": "healthy", "version": __version__}


@router.get("/readiness")
async def readiness_check(db: Session = Depends(get_db)) -> dict[str, str]:
    """Readiness probe; fails while the database is unreachable."""
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error("Readiness check failed: %s", e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database unavailable",
        ) from e
    return {"status": "ready", "database": "connected"}
