from __future__ import annotations

import uuid

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from videotube.db_handlers.base import BaseDBHandler, check_local_db
from videotube.models.video import Video
from videotube.utils.logger import setup_logger

logger = setup_logger("db_handlers.video")

SORTABLE_COLUMNS = {
    "createdAt": Video.created_at,
    "views": Video.views,
    "duration": Video.duration,
    "title": Video.title,
}


def escape_like(text: str) -> str:
    """Make ``%`` and ``_`` in user input match literally."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class VideoDBHandler(BaseDBHandler[Video]):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None):
        super().__init__(Video, session_factory)

    @check_local_db
    async def get_video_with_owner(
        self, video_id: uuid.UUID, *, db: AsyncSession = None
    ) -> Video | None:
        stmt = (
            select(Video)
            .where(Video.id == video_id)
            .options(selectinload(Video.owner))
        )
        result = await db.execute(stmt)
        return result.scalars().first()

    @check_local_db
    async def search_videos(
        self,
        *,
        page: int = 1,
        limit: int = 10,
        query: str | None = None,
        sort_by: str = "createdAt",
        sort_type: str = "desc",
        owner_id: uuid.UUID | None = None,
        published_only: bool = True,
        db: AsyncSession = None,
    ) -> tuple[list[Video], int]:
        """Filter, sort and paginate videos. Returns the page and the total match count."""
        stmt = select(Video).options(selectinload(Video.owner))

        if published_only:
            stmt = stmt.where(Video.is_published.is_(True))
        if owner_id is not None:
            stmt = stmt.where(Video.owner_id == owner_id)
        if query:
            pattern = f"%{escape_like(query.strip())}%"
            stmt = stmt.where(
                or_(
                    Video.title.ilike(pattern, escape="\\"),
                    Video.description.ilike(pattern, escape="\\"),
                )
            )

        sort_column = SORTABLE_COLUMNS.get(sort_by, Video.created_at)
        ordering = sort_column.asc() if sort_type == "asc" else sort_column.desc()
        # Stable paging when the sort key ties
        stmt = stmt.order_by(ordering, Video.id.asc())

        return await self.paginate(stmt, page=page, limit=limit, db=db)

    @check_local_db
    async def increment_views(
        self, video_id: uuid.UUID, *, db: AsyncSession = None
    ) -> None:
        """Add one view with a single UPDATE so concurrent reads never lose a count."""
        stmt = (
            update(Video)
            .where(Video.id == video_id)
            # A view is not an edit; keep updated_at as it was
            .values(views=Video.views + 1, updated_at=Video.updated_at)
            .execution_options(synchronize_session=False)
        )
        await db.execute(stmt)
        await db.commit()
