from fastapi import APIRouter

from knowscroll.api.contents import router as contents_router

api_router = APIRouter()

# API routes at /api/*
api_router.include_router(contents_router, prefix="/api", tags=["contents"])
