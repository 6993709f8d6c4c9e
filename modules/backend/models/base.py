"""
SQLAlchemy Base Model.

Declarative base shared by all database models and by Alembic autogenerate.
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass
