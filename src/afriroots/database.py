"""Database setup for accounts and community posts."""

from datetime import datetime

from sqlalchemy import create_engine, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import sessionmaker, declarative_base

from .config import settings

engine = create_engine(settings.database_url, future=True)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
Base = declarative_base()


class Post(Base):
    """A piece of community content tagged with a tribe and language."""

    __tablename__ = "posts"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    body = Column(Text, nullable=False)
    tribe = Column(String, index=True)
    language = Column(String, index=True)
    author_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


def init_db(bind=None) -> None:
    """Create database tables if they do not exist."""
    # users table must be registered on the metadata before create_all
    from .models import user  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
