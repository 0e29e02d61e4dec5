"""API route modules."""
from quiz_engine.routes import quizzes, sessions, statistics, submissions

__all__ = ["quizzes", "sessions", "statistics", "submissions"]
