"""
Models package for the insights service.
"""
from .base import Base, engine, SessionLocal, get_db
from .models import (
    Question,
    TestSession,
    Response,
    WritingAssessment,
)

__all__ = [
    "Base",
    "engine",
    "SessionLocal",
    "get_db",
    "Question",
    "TestSession",
    "Response",
    "WritingAssessment",
]
