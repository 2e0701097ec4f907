"""Service layer for the community content feed."""

import logging
from typing import List, Optional, Tuple

from fastapi import HTTPException
from prometheus_client import Counter
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .database import Post


logger = logging.getLogger(__name__)

POST_COUNTER = Counter("posts_total", "Total posts created")


def _handle_service_error(session: Session, exc: Exception) -> None:
    """Rollback transaction and raise HTTP exception for service errors."""
    session.rollback()
    logger.exception("service layer error", exc_info=exc)
    if isinstance(exc, SQLAlchemyError):
        raise HTTPException(status_code=500, detail="Database error") from exc
    raise HTTPException(status_code=400, detail=str(exc)) from exc


def create_post(
    session: Session,
    author_id: int,
    title: str,
    body: str,
    tribe: Optional[str] = None,
    language: Optional[str] = None,
) -> Post:
    """Persist a new post authored by ``author_id``."""
    try:
        post = Post(
            title=title,
            body=body,
            tribe=tribe,
            language=language,
            author_id=author_id,
        )
        session.add(post)
        session.commit()
        session.refresh(post)
        POST_COUNTER.inc()
        logger.info("created post id=%s author=%s", post.id, author_id)
        return post
    except Exception as exc:
        _handle_service_error(session, exc)


def list_posts(
    session: Session,
    tribe: Optional[str] = None,
    language: Optional[str] = None,
    skip: int = 0,
    limit: int = 20,
) -> Tuple[List[Post], int]:
    """Return newest-first posts matching the optional tribe/language filters."""
    try:
        query = session.query(Post)
        if tribe:
            query = query.filter(Post.tribe == tribe)
        if language:
            query = query.filter(Post.language == language)
        total = query.count()
        records = (
            query.order_by(Post.created_at.desc(), Post.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )
        return records, total
    except Exception as exc:
        _handle_service_error(session, exc)
