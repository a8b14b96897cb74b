"""Main API router for v1 endpoints."""

from fastapi import APIRouter

from estate_intake.api.v1.endpoints import intake, review

api_router = APIRouter()

api_router.include_router(
    intake.router,
    prefix="/intake",
    tags=["Intake"],
)

api_router.include_router(
    review.router,
    prefix="/review",
    tags=["Review"],
)

__all__ = ["api_router"]
