"""Identity business logic layer."""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.database import get_db_session
from app.core.enums import RoleEnum
from app.core.security import bearer_scheme, decode_token, display_name_from_claims, subject_from_claims
from app.modules.identity.models import Profile
from app.modules.identity.repository import IdentityRepository
from app.modules.identity.schemas import ProfileUpdate
from app.modules.teachers.repository import TeachersRepository
from app.shared.exceptions import (
    AuthenticationException,
    ConflictException,
    NotFoundException,
    UnauthorizedException,
)

logger = logging.getLogger(__name__)


class IdentityService:
    """Identity domain service."""

    def __init__(self, repository: IdentityRepository, teachers_repository: TeachersRepository) -> None:
        self.repository = repository
        self.teachers_repository = teachers_repository

    async def resolve_profile(self, claims: dict[str, Any]) -> Profile:
        """Map verified token claims to a staff profile, provisioning on first sight."""
        profile_id = subject_from_claims(claims)
        profile = await self.repository.get_profile_by_id(profile_id)

        if profile is None:
            settings = get_settings()
            email = claims.get("email")
            if not settings.auth_auto_provision_profiles or not email:
                raise AuthenticationException("Profile not found")
            email = str(email)

            if await self.repository.get_profile_by_email(email) is not None:
                raise ConflictException("Profile email is already linked to another account")

            if email.lower() in settings.admin_emails:
                profile = await self.repository.create_profile(
                    profile_id=profile_id,
                    email=email,
                    full_name=display_name_from_claims(claims),
                    role=RoleEnum.ADMIN,
                )
                logger.info("Provisioned admin profile %s for %s", profile.id, profile.email)
            else:
                profile = await self._provision_teacher_profile(profile_id, email)

        if not profile.is_active:
            raise UnauthorizedException("Profile is inactive")
        return profile

    async def _provision_teacher_profile(self, profile_id: UUID, email: str) -> Profile:
        """Create the profile of a teacher signing up and link it to the teacher record."""
        teacher = await self.teachers_repository.get_teacher_by_email(email, for_update=True)
        if teacher is None:
            raise AuthenticationException("No teacher with this email exists")
        if teacher.profile_id is not None:
            raise AuthenticationException("This teacher already has an account")

        profile = await self.repository.create_profile(
            profile_id=profile_id,
            email=email,
            full_name=teacher.name,
            role=RoleEnum.TEACHER,
        )
        await self.teachers_repository.update_teacher(teacher, profile_id=profile.id)
        logger.info("Provisioned teacher profile %s linked to teacher %s", profile.id, teacher.id)
        return profile

    async def list_profiles(
        self,
        actor: Profile,
        limit: int,
        offset: int,
        role: RoleEnum | None = None,
    ) -> tuple[list[Profile], int]:
        """List staff profiles (admin only)."""
        if actor.role != RoleEnum.ADMIN:
            raise UnauthorizedException("Only admin can list profiles")
        return await self.repository.list_profiles(limit=limit, offset=offset, role=role)

    async def update_profile(self, profile_id: UUID, payload: ProfileUpdate, actor: Profile) -> Profile:
        """Change role, activity or display name of a profile (admin only)."""
        if actor.role != RoleEnum.ADMIN:
            raise UnauthorizedException("Only admin can update profiles")

        profile = await self.repository.get_profile_by_id(profile_id)
        if profile is None:
            raise NotFoundException("Profile not found")

        changes = payload.model_dump(exclude_none=True)
        if profile.id == actor.id and (
            changes.get("role", actor.role) != RoleEnum.ADMIN or changes.get("is_active") is False
        ):
            raise UnauthorizedException("Admins cannot demote or deactivate themselves")

        return await self.repository.update_profile(profile, **changes)


async def get_identity_service(session: AsyncSession = Depends(get_db_session)) -> IdentityService:
    """Dependency to provide identity service."""
    return IdentityService(IdentityRepository(session), TeachersRepository(session))


async def get_current_profile(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    service: IdentityService = Depends(get_identity_service),
) -> Profile:
    """Resolve currently authenticated profile from bearer token."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationException("Bearer token is missing")
    claims = decode_token(credentials.credentials)
    return await service.resolve_profile(claims)


def require_roles(*roles: RoleEnum):
    """Dependency factory for role-based access."""

    async def _checker(current_profile: Profile = Depends(get_current_profile)) -> Profile:
        if current_profile.role not in roles:
            raise UnauthorizedException("Operation not permitted for your role")
        return current_profile

    return _checker
