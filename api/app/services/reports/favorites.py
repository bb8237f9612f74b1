import logging
import uuid
from dataclasses import dataclass, field

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.report import UserReportFavorite

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FavoritesLookup:
    """Outcome of reading a user's favorites. ``available`` is False when the store could not be read."""
    available: bool
    report_types: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def unavailable(cls) -> "FavoritesLookup":
        return cls(available=False)


async def load_favorites(db: AsyncSession, user_id: uuid.UUID) -> FavoritesLookup:
    try:
        result = await db.execute(
            select(UserReportFavorite.report_type)
            .where(UserReportFavorite.user_id == user_id)
            .order_by(UserReportFavorite.created_at)
        )
    except SQLAlchemyError as exc:
        logger.warning("Favorites store unavailable for user %s: %s", user_id, exc)
        await db.rollback()
        return FavoritesLookup.unavailable()
    return FavoritesLookup(available=True, report_types=frozenset(result.scalars().all()))


async def list_favorites(db: AsyncSession, user_id: uuid.UUID) -> list[str]:
    result = await db.execute(
        select(UserReportFavorite.report_type)
        .where(UserReportFavorite.user_id == user_id)
        .order_by(UserReportFavorite.created_at)
    )
    return list(result.scalars().all())


async def add_favorite(db: AsyncSession, user_id: uuid.UUID, report_type: str) -> bool:
    """Pin a report. Returns False when it was already a favorite."""
    existing = await db.execute(
        select(UserReportFavorite.id).where(
            UserReportFavorite.user_id == user_id,
            UserReportFavorite.report_type == report_type,
        )
    )
    if existing.scalar_one_or_none() is not None:
        return False
    db.add(UserReportFavorite(user_id=user_id, report_type=report_type))
    await db.commit()
    logger.info("User %s added favorite report %s", user_id, report_type)
    return True


async def remove_favorite(db: AsyncSession, user_id: uuid.UUID, report_type: str) -> bool:
    """Unpin a report. Returns False when it was not a favorite."""
    result = await db.execute(
        delete(UserReportFavorite).where(
            UserReportFavorite.user_id == user_id,
            UserReportFavorite.report_type == report_type,
        )
    )
    await db.commit()
    return result.rowcount > 0
