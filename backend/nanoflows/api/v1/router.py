from fastapi import APIRouter
from nanoflows.api.v1.endpoints import auth, courses, modules, quizzes, assignments, progress, certificates, notes, discussions, purchases, payments, notifications, hero_slides, about, ai_tools, jobs, uploads
from nanoflows.api.v1.endpoints.ecommerce import ecommerce_router
from nanoflows.core.config import settings

api_router = APIRouter()


@api_router.get("/health", tags=["Health"])
async def health_check():
    """Simple health check endpoint for load balancer"""
    return {"status": "healthy", "service": "nanoflows-backend", "version": settings.API_VERSION}


# Academy
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(courses.router, prefix="/courses", tags=["Courses"])
api_router.include_router(modules.router, prefix="/modules", tags=["Modules & Lessons"])
api_router.include_router(quizzes.router, prefix="/quizzes", tags=["Quizzes"])
api_router.include_router(assignments.router, prefix="/assignments", tags=["Assignments"])
api_router.include_router(progress.router, prefix="/progress", tags=["Progress"])
api_router.include_router(certificates.router, prefix="/certificates", tags=["Certificates"])
api_router.include_router(notes.router, prefix="/notes", tags=["Notes"])
api_router.include_router(discussions.router, prefix="/discussions", tags=["Discussions"])
api_router.include_router(purchases.router, prefix="/purchases", tags=["Purchases"])
api_router.include_router(payments.router, prefix="/payments", tags=["Payments"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])

# Site content
api_router.include_router(hero_slides.router, prefix="/hero-slides", tags=["Hero Slides"])
api_router.include_router(about.router, prefix="/about", tags=["About"])
api_router.include_router(ai_tools.router, prefix="/ai-tools", tags=["AI Tools"])
api_router.include_router(jobs.router, prefix="/jobs", tags=["Jobs"])
api_router.include_router(uploads.router, prefix="/upload", tags=["Uploads"])

# Storefront
api_router.include_router(ecommerce_router)
