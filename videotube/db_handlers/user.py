from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from videotube.db_handlers.base import BaseDBHandler, check_local_db
from videotube.models.user import User
from videotube.utils.logger import setup_logger

logger = setup_logger("db_handlers.user")


class UserDBHandler(BaseDBHandler[User]):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None):
        super().__init__(User, session_factory)

    @check_local_db
    async def find_by_username_or_email(
        self,
        *,
        username: str | None = None,
        email: str | None = None,
        db: AsyncSession = None,
    ) -> User | None:
        """Return the first user matching either the username or the email."""
        conditions = []
        if username:
            conditions.append(User.username == username.strip().lower())
        if email:
            conditions.append(User.email == email.strip().lower())
        if not conditions:
            return None

        stmt = select(User).where(or_(*conditions)).limit(1)
        result = await db.execute(stmt)
        return result.scalars().first()

    @check_local_db
    async def create_user(
        self, obj_dict: dict[str, Any], *, db: AsyncSession = None
    ) -> User:
        """Create a user; ``obj_dict`` must already carry ``hashed_password``."""
        if "password" in obj_dict:
            raise ValueError("Plaintext passwords are never persisted")
        data = dict(obj_dict)
        data["username"] = data["username"].strip().lower()
        data["email"] = data["email"].strip().lower()
        user = await self.create(data, db=db)
        logger.info(f"Created user {user.id} ({user.username})")
        return user

    @check_local_db
    async def set_refresh_token(
        self, user_id: uuid.UUID, refresh_token: str | None, *, db: AsyncSession = None
    ) -> None:
        """Overwrite the stored refresh token; ``None`` ends the session."""
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(refresh_token=refresh_token)
            .execution_options(synchronize_session="fetch")
        )
        await db.execute(stmt)
        await db.commit()

    @check_local_db
    async def set_password_hash(
        self, user_id: uuid.UUID, hashed_password: str, *, db: AsyncSession = None
    ) -> None:
        """Replace the stored password hash."""
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(hashed_password=hashed_password)
            .execution_options(synchronize_session="fetch")
        )
        await db.execute(stmt)
        await db.commit()

    @check_local_db
    async def email_taken_by_other(
        self, email: str, user_id: uuid.UUID, *, db: AsyncSession = None
    ) -> bool:
        stmt = select(User.id).where(
            User.email == email.strip().lower(), User.id != user_id
        )
        result = await db.execute(stmt)
        return result.first() is not None
