from fastapi import APIRouter, Depends

from teamspace.api.deps import get_current_profile
from teamspace.models.profile import Profile
from teamspace.schemas.profile import ProfileOut

router = APIRouter(tags=["profiles"])


@router.get("/me", response_model=ProfileOut)
async def read_me(current_profile: Profile = Depends(get_current_profile)):
    return current_profile
