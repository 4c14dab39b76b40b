"""User account management."""

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import ConflictError, NotFoundError, RejectedError
from ..models.role import Role
from ..models.user import User
from ..schemas.user import UserCreate, UserUpdate
from ..utils.security import get_password_hash
from .permission_service import Actor

logger = logging.getLogger(__name__)


class UserService:
    """Service class for user accounts and their role assignments."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_users(self, search: Optional[str] = None, include_inactive: bool = False) -> list[User]:
        query = select(User).where(User.deleted_at.is_(None))
        if not include_inactive:
            query = query.where(User.is_active.is_(True))
        if search:
            pattern = f"%{search.strip()}%"
            query = query.where(or_(User.email.ilike(pattern), User.display_name.ilike(pattern)))
        result = await self.db.execute(query.order_by(User.email))
        return list(result.scalars().all())

    async def get_user(self, user_id: UUID) -> User:
        result = await self.db.execute(
            select(User).where(User.id == user_id, User.deleted_at.is_(None))
        )
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    async def _roles(self, role_ids: list[UUID]) -> list[Role]:
        if not role_ids:
            return []
        result = await self.db.execute(
            select(Role).where(Role.id.in_(role_ids), Role.deleted_at.is_(None))
        )
        roles = list(result.scalars().all())
        missing = set(role_ids) - {r.id for r in roles}
        if missing:
            raise NotFoundError("Role", sorted(str(m) for m in missing)[0])
        return roles

    async def create_user(self, data: UserCreate) -> User:
        """
        Create an account.

        Raises:
            ConflictError: Email already registered
            NotFoundError: A role does not exist
        """
        email = data.email.strip().lower()
        existing = await self.db.execute(select(User.id).where(User.email == email))
        if existing.scalar_one_or_none() is not None:
            raise ConflictError("User", "email", email)

        user = User(
            email=email,
            password_hash=get_password_hash(data.password),
            display_name=data.display_name,
            is_super_admin=data.is_super_admin,
            roles=await self._roles(data.role_ids),
        )
        self.db.add(user)
        await self.db.commit()
        logger.info(f"User created: {user.email}")
        return user

    async def update_user(self, user_id: UUID, data: UserUpdate) -> User:
        user = await self.get_user(user_id)
        for name, value in data.model_dump(exclude_unset=True).items():
            setattr(user, name, value)
        await self.db.commit()
        return user

    async def assign_roles(self, user_id: UUID, role_ids: list[UUID]) -> User:
        """Replace the user's roles."""
        user = await self.get_user(user_id)
        user.roles = await self._roles(role_ids)
        await self.db.commit()
        logger.info(f"Roles of {user.email} set to {[r.slug for r in user.roles]}")
        return user

    async def deactivate_user(self, user_id: UUID, actor: Actor) -> None:
        """Soft-delete an account. Users cannot delete themselves."""
        if user_id == actor.id:
            raise RejectedError("You cannot delete your own account")
        user = await self.get_user(user_id)
        user.is_active = False
        user.deleted_at = datetime.utcnow()
        await self.db.commit()
        logger.info(f"User deactivated: {user.email}")


def get_user_service(db: AsyncSession) -> UserService:
    """Factory function to create a UserService instance."""
    return UserService(db)
