from fastapi import APIRouter

from app.api.v1.endpoints import comments, projects, sections, versions, workflows

# Create API router
api_router = APIRouter()

# Include routers
api_router.include_router(projects.router, prefix="/projects", tags=["Projects"])
api_router.include_router(workflows.router, prefix="/projects", tags=["Workflows"])
api_router.include_router(sections.router, prefix="/projects", tags=["Sections"])
api_router.include_router(versions.router, prefix="/projects", tags=["Versions"])
api_router.include_router(comments.router, prefix="/projects", tags=["Comments"])

__all__ = ["api_router"]
