import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from teamspace.models.profile import Profile
from teamspace.services.identity import IdentityProvider

logger = logging.getLogger("teamspace.profiles")


async def get_profile_by_external_id(db: AsyncSession, external_user_id: str) -> Profile | None:
    result = await db.execute(select(Profile).where(Profile.external_user_id == external_user_id))
    return result.scalar_one_or_none()


async def get_or_create_profile(
    db: AsyncSession,
    identity: IdentityProvider,
    external_user_id: str,
) -> Profile:
    """Resolve an authenticated caller to a local profile, creating it on first contact."""
    profile = await get_profile_by_external_id(db, external_user_id)
    if profile:
        return profile

    info = await identity.fetch_user_profile(external_user_id)
    profile = Profile(
        external_user_id=external_user_id,
        name=info.name,
        email=info.email,
        avatar_url=info.avatar_url,
    )
    db.add(profile)
    try:
        await db.commit()
    except IntegrityError:
        # Another request created it first
        await db.rollback()
        profile = await get_profile_by_external_id(db, external_user_id)
        if profile is None:
            raise
        return profile

    await db.refresh(profile)
    logger.info("Created profile %s for external user %s", profile.id, external_user_id)
    return profile
