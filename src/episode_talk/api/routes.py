"""API route registration."""

from fastapi import APIRouter

from episode_talk.api.handlers.generate import router as generate_router

# Main API router that aggregates all endpoint routers
api_router = APIRouter()

api_router.include_router(generate_router, tags=["generate"])
