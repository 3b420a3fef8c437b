"""Database package."""

from .models import Base, JobParameter
from .session import get_engine, get_sessionmaker, session_scope

__all__ = ["Base", "JobParameter", "get_engine", "get_sessionmaker", "session_scope"]
