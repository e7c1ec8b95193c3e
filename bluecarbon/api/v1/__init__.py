"""
API v1 routes.
"""

from fastapi import APIRouter

from bluecarbon.api.v1 import auth, public, resources

router = APIRouter()

router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
router.include_router(resources.router, prefix="/resources", tags=["Resources"])
router.include_router(public.router, prefix="/public", tags=["Public"])
