"""Identity repository layer."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import RoleEnum
from app.modules.identity.models import Profile


class IdentityRepository:
    """DB operations for identity domain."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_profile_by_id(self, profile_id: UUID) -> Profile | None:
        stmt = select(Profile).where(Profile.id == profile_id)
        return await self.session.scalar(stmt)

    async def get_profile_by_email(self, email: str) -> Profile | None:
        stmt = select(Profile).where(func.lower(Profile.email) == email.lower())
        return await self.session.scalar(stmt)

    async def create_profile(
        self,
        profile_id: UUID,
        email: str,
        full_name: str,
        role: RoleEnum,
    ) -> Profile:
        profile = Profile(id=profile_id, email=email, full_name=full_name, role=role)
        self.session.add(profile)
        await self.session.flush()
        return profile

    async def list_profiles(
        self,
        limit: int,
        offset: int,
        role: RoleEnum | None = None,
    ) -> tuple[list[Profile], int]:
        base_stmt: Select[tuple[Profile]] = select(Profile)
        if role is not None:
            base_stmt = base_stmt.where(Profile.role == role)

        count_stmt = select(func.count()).select_from(base_stmt.subquery())
        total = int((await self.session.scalar(count_stmt)) or 0)

        stmt = base_stmt.order_by(Profile.full_name.asc()).limit(limit).offset(offset)
        items = (await self.session.scalars(stmt)).all()
        return items, total

    async def list_active_admins(self) -> list[Profile]:
        stmt = select(Profile).where(Profile.role == RoleEnum.ADMIN, Profile.is_active.is_(True))
        return (await self.session.scalars(stmt)).all()

    async def update_profile(self, profile: Profile, **changes) -> Profile:
        for key, value in changes.items():
            if value is not None:
                setattr(profile, key, value)
        await self.session.flush()
        return profile
