"""API router package."""

from fastapi import APIRouter

from collabhub.api.v1 import auth, contacts, health, projects

router = APIRouter()

# Include all API routers
router.include_router(health.router, tags=["Health"])
router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
router.include_router(contacts.router, prefix="/contacts", tags=["Contacts"])
router.include_router(projects.router, prefix="/projects", tags=["Projects"])
