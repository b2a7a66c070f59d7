"""
API v1 - image transcoding endpoints.
"""
from fastapi import APIRouter
from comiconv.api.v1.transcode import router as transcode_router

router = APIRouter()
router.include_router(transcode_router)
