"""
Development-only seeding route.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from svmms.config import get_settings
from svmms.database import get_db
from svmms.schemas.seed import SeedResult
from svmms.services.seed import seed_database

logger = logging.getLogger(__name__)

settings = get_settings()

router = APIRouter(prefix="/seed", tags=["seed"])


@router.post("", response_model=SeedResult)
async def seed(db: AsyncSession = Depends(get_db)):
    """
    Wipe the database and load the sample data set.
    """
    if not settings.is_development:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="This endpoint is only available in development mode"
        )

    try:
        summary = await seed_database(db)
        await db.commit()
    except Exception as exc:
        await db.rollback()
        logger.exception("Seeding failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Seeding failed"
        ) from exc

    return {"message": "Database seeded successfully!", "summary": summary}
