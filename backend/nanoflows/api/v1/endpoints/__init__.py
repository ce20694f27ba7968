# API endpoints
from . import auth, courses, modules, quizzes, assignments, progress, certificates, notes, discussions, purchases, payments, notifications, hero_slides, about, ai_tools, jobs, uploads

__all__ = ["auth", "courses", "modules", "quizzes", "assignments", "progress", "certificates", "notes", "discussions", "purchases", "payments", "notifications", "hero_slides", "about", "ai_tools", "jobs", "uploads"]
