from fastapi import APIRouter

from onboarding_resume.presentation.routers.v1.onboarding import router as onboarding_router
from onboarding_resume.presentation.routers.v1.resume import router as resume_router
from onboarding_resume.presentation.routers.v1.sessions import router as sessions_router
from onboarding_resume.presentation.routes.health import router as health_router

api = APIRouter()

# Add all v1 routers here
routers = (resume_router, sessions_router, onboarding_router)
for router in routers:
    api.include_router(router, prefix="/v1")

api.include_router(health_router)
