from fastapi import APIRouter, Depends
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from adboard.database import get_db
from adboard.models import Comment, Listing, User
from adboard.schemas import MetricsResponse
from adboard.cache import cache

router = APIRouter(prefix="/api/v1/metrics", tags=["metrics"])

@router.get("", response_model=MetricsResponse)
async def get_metrics(db: AsyncSession = Depends(get_db)):
    async def count(model) -> int:
        return (await db.execute(select(func.count()).select_from(model))).scalar_one()

    total_listings = await count(Listing)
    total_comments = await count(Comment)
    total_users = await count(User)

    avg_comments = total_comments / total_listings if total_listings > 0 else 0

    return MetricsResponse(
        total_listings=total_listings,
        total_comments=total_comments,
        total_users=total_users,
        avg_comments_per_listing=round(avg_comments, 2),
        cache_info=cache.stats,
    )
