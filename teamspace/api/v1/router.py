from fastapi import APIRouter

from teamspace.api.v1.calls import router as calls_router
from teamspace.api.v1.profiles import router as profiles_router
from teamspace.api.v1.rooms import router as rooms_router

api_router = APIRouter()
api_router.include_router(profiles_router)
# /calls/rooms must be matched before /calls/{call_id}
api_router.include_router(rooms_router)
api_router.include_router(calls_router)
