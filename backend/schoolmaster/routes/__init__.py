# backend/schoolmaster/routes/__init__.py
"""HTTP routers; each module owns one ``/api/...`` prefix."""

from . import admin, auth, balance, health, lessons, quizzes, student, tutor

__all__ = ["admin", "auth", "balance", "health", "lessons", "quizzes", "student", "tutor"]
