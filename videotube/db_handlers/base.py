from __future__ import annotations

import asyncio
from functools import wraps
from typing import Any, Generic, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from videotube.models.base import Base
from videotube.utils.logger import setup_logger
from videotube.utils.retry_utils import is_retryable_db_error

logger = setup_logger("db_handlers")

ModelType = TypeVar("ModelType", bound=Base)

MAX_SESSION_ATTEMPTS = 3


def check_local_db(func):
    """Database session decorator with transaction management and retry logic."""

    @wraps(func)
    async def wrapper(self, *args, **kwargs):
        # A caller-provided session owns its transaction
        if kwargs.get("db") is not None:
            return await func(self, *args, **kwargs)

        last_exception = None
        for attempt in range(MAX_SESSION_ATTEMPTS):
            async with self.session_factory() as db:
                kwargs["db"] = db
                try:
                    result = await func(self, *args, **kwargs)
                    await db.commit()
                    return result
                except Exception as e:
                    await db.rollback()
                    if not is_retryable_db_error(e):
                        raise
                    last_exception = e
                    logger.warning(
                        f"Connection error in {func.__name__} "
                        f"(attempt {attempt + 1}/{MAX_SESSION_ATTEMPTS}): {e}. Retrying..."
                    )
                    await asyncio.sleep(0.5 * (attempt + 1))

        logger.error(
            f"All retries failed for {func.__name__}. Last error: {last_exception}"
        )
        raise last_exception

    return wrapper


class BaseDBHandler(Generic[ModelType]):
    """Generic handler for database operations with basic CRUD methods."""

    def __init__(
        self,
        model: type[ModelType],
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ):
        self.model = model
        self.session_factory = session_factory

    @check_local_db
    async def create(
        self, obj_dict: dict[str, Any], *, db: AsyncSession = None
    ) -> ModelType:
        """Create a new record in the database."""
        db_obj = self.model(**obj_dict)
        try:
            db.add(db_obj)
            await db.commit()
            await db.refresh(db_obj)
            return db_obj
        except IntegrityError as e:
            await db.rollback()
            logger.warning(f"IntegrityError creating {self.model.__name__}: {e.orig}")
            # Callers translate this into a conflict
            raise
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Error creating {self.model.__name__}: {e}", exc_info=True)
            raise

    @check_local_db
    async def get(self, id: Any, *, db: AsyncSession = None) -> ModelType | None:
        """Get a single record by its primary key."""
        stmt = select(self.model).where(self.model.id == id)
        result = await db.execute(stmt)
        return result.scalars().first()

    @check_local_db
    async def paginate(
        self, stmt: Select, *, page: int, limit: int, db: AsyncSession = None
    ) -> tuple[list[ModelType], int]:
        """Run ``stmt`` for one page and return the page together with the total count."""
        count_stmt = select(func.count()).select_from(
            stmt.order_by(None).subquery()
        )
        total = (await db.execute(count_stmt)).scalar_one()

        page_stmt = stmt.offset((page - 1) * limit).limit(limit)
        result = await db.execute(page_stmt)
        return list(result.scalars().all()), total

    @check_local_db
    async def update(
        self,
        db_obj: ModelType,
        update_data: dict[str, Any],
        *,
        db: AsyncSession = None,
    ) -> ModelType:
        """Update an existing record in the database."""
        for field, value in update_data.items():
            if hasattr(db_obj, field):
                setattr(db_obj, field, value)

        try:
            db_obj = await db.merge(db_obj)
            await db.commit()
            await db.refresh(db_obj)
            return db_obj
        except IntegrityError as e:
            await db.rollback()
            logger.warning(
                f"IntegrityError updating {self.model.__name__} with id {db_obj.id}: {e.orig}"
            )
            raise
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(
                f"Error updating {self.model.__name__} with id {db_obj.id}: {e}",
                exc_info=True,
            )
            raise

    @check_local_db
    async def remove(self, id: Any, *, db: AsyncSession = None) -> ModelType | None:
        """Remove a record from the database by its primary key."""
        obj = await self.get(id, db=db)
        if obj:
            try:
                await db.delete(obj)
                await db.commit()
                return obj
            except SQLAlchemyError as e:
                await db.rollback()
                logger.error(
                    f"Error removing {self.model.__name__} with id {id}: {e}",
                    exc_info=True,
                )
                raise
        return None
