from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from teamspace.core.errors import Unauthenticated
from teamspace.db.session import get_db
from teamspace.models.profile import Profile
from teamspace.services.call_coordinator import CallCoordinator
from teamspace.services.daily import DailyClient
from teamspace.services.identity import IdentityProvider
from teamspace.services.profiles import get_or_create_profile


def get_identity_provider() -> IdentityProvider:
    return IdentityProvider()


def get_video_provider() -> DailyClient:
    return DailyClient()


async def get_current_profile(
    request: Request,
    db: AsyncSession = Depends(get_db),
    identity: IdentityProvider = Depends(get_identity_provider),
) -> Profile:
    """Authenticate the caller and resolve them to a local profile (created on first contact)."""
    try:
        external_user_id = identity.authenticate(request)
    except Unauthenticated:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return await get_or_create_profile(db, identity, external_user_id)


def get_call_coordinator(
    db: AsyncSession = Depends(get_db),
    video: DailyClient = Depends(get_video_provider),
) -> CallCoordinator:
    return CallCoordinator(db, video)
