"""User directory service"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sso_broker.core.config import logger
from sso_broker.core.errors import UnknownUser, translate_store_errors
from sso_broker.models.user import User
from sso_broker.schemas.user import UserSync


class UserService:
    """Resolves user ids to the profile fields needed for session bootstrap"""

    @translate_store_errors
    async def get_by_id(self, db: AsyncSession, user_id: str) -> User | None:
        """
        Get user by ID

        Args:
            db: Database session
            user_id: User ID

        Returns:
            User or None if not found
        """
        result = await db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_active(self, db: AsyncSession, user_id: str) -> User:
        """
        Get an active user

        Raises:
            UnknownUser: If the user does not exist or is disabled
        """
        user = await self.get_by_id(db, user_id)
        if not user or not user.is_active:
            logger.warning(f"User not found or inactive: {user_id}")
            raise UnknownUser(user_id)
        return user

    @translate_store_errors
    async def sync_profile(
        self,
        db: AsyncSession,
        user_id: str,
        profile: UserSync,
    ) -> User:
        """
        Insert or update a user's profile before an SSO hand-off

        Args:
            db: Database session
            user_id: User ID owned by the account system
            profile: Profile fields

        Returns:
            The stored user
        """
        first_name = profile.first_name or profile.email.split("@")[0] or "User"
        roles = ",".join(profile.roles) or "user"

        user = await self.get_by_id(db, user_id)
        if user:
            user.email = profile.email
            user.first_name = first_name
            user.last_name = profile.last_name or ""
            user.phone = profile.phone
            user.roles = roles
            user.is_active = profile.is_active
            logger.debug(f"User profile updated: {user_id}")
        else:
            user = User(
                id=user_id,
                email=profile.email,
                first_name=first_name,
                last_name=profile.last_name or "",
                phone=profile.phone,
                roles=roles,
                is_active=profile.is_active,
            )
            db.add(user)
            logger.info(f"User profile created: {user_id}")

        await db.commit()
        await db.refresh(user)

        return user


# Global instance
user_service = UserService()
