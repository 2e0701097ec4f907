"""FastAPI application exposing account and community feed endpoints."""

from datetime import datetime
from typing import List, Optional

import logging
from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse
from prometheus_client import Counter
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from sqlalchemy.orm import Session

from .accounts import AuthError, AuthService, PersistenceError
from .auth import get_auth_service, get_current_user, get_db
from .config import settings
from .database import init_db
from .models.user import Role, User
from .passwords import MAX_PASSWORD_BYTES
from .services import create_post, list_posts


app = FastAPI(title=settings.api_title)
init_db()

logger = logging.getLogger(__name__)

# Prometheus counter to track API requests by method, endpoint and status code
REQUEST_COUNTER = Counter(
    "api_requests_total",
    "Total API requests",
    ["method", "endpoint", "status"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log incoming requests and their outcomes while updating metrics."""
    logger.info("request %s %s", request.method, request.url.path)
    try:
        response = await call_next(request)
        REQUEST_COUNTER.labels(
            method=request.method,
            endpoint=request.url.path,
            status=str(response.status_code),
        ).inc()
        logger.info(
            "response %s %s status %s",
            request.method,
            request.url.path,
            response.status_code,
        )
        return response
    except Exception:
        REQUEST_COUNTER.labels(
            method=request.method,
            endpoint=request.url.path,
            status="500",
        ).inc()
        logger.exception(
            "error handling %s %s", request.method, request.url.path
        )
        raise


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Render account flow errors with their stable public message."""
    status_code = 500 if isinstance(exc, PersistenceError) else 400
    return JSONResponse(status_code=status_code, content={"msg": exc.message})


class RegisterRequest(BaseModel):
    """Request body for registering a new account."""

    email: EmailStr
    phone: Optional[str] = None
    password: str
    role: Role
    tribe: Optional[str] = None
    language: Optional[str] = None

    @field_validator("role", mode="before")
    @classmethod
    def _coerce_role(cls, value):
        return Role(value) if isinstance(value, str) else value

    @field_validator("password")
    @classmethod
    def _check_password(cls, value: str) -> str:
        if len(value) < settings.min_password_length:
            raise ValueError(
                f"password must be at least {settings.min_password_length} characters"
            )
        if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"password must be at most {MAX_PASSWORD_BYTES} bytes")
        return value


class LoginRequest(BaseModel):
    """Request body for account login."""

    email: str
    password: str


class TokenResponse(BaseModel):
    """Signed session token."""

    token: str


class UserResponse(BaseModel):
    """Public profile of an account."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    phone: Optional[str] = None
    role: str
    tribe: Optional[str] = None
    language: Optional[str] = None


class PostCreate(BaseModel):
    """Request body for publishing a post."""

    title: str = Field(..., min_length=1)
    body: str = Field(..., min_length=1)
    tribe: Optional[str] = None
    language: Optional[str] = None


class PostResponse(PostCreate):
    """Serialized post."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    author_id: int
    created_at: datetime


class PostListResponse(BaseModel):
    """Paginated list of posts."""

    total: int
    items: List[PostResponse]


@app.post("/auth/register", response_model=TokenResponse)
def register(
    payload: RegisterRequest, service: AuthService = Depends(get_auth_service)
):
    token = service.register(
        email=payload.email,
        password=payload.password,
        role=payload.role,
        phone=payload.phone,
        tribe=payload.tribe,
        language=payload.language,
    )
    return TokenResponse(token=token)


@app.post("/auth/login", response_model=TokenResponse)
def login(payload: LoginRequest, service: AuthService = Depends(get_auth_service)):
    return TokenResponse(token=service.login(payload.email, payload.password))


@app.get("/auth/me", response_model=UserResponse)
def read_current_user(current_user: User = Depends(get_current_user)):
    """Return the profile of the account owning the bearer token."""

    return current_user


@app.post("/posts", response_model=PostResponse)
def post_content(
    payload: PostCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Publish a post authored by the current account."""

    return create_post(
        db,
        author_id=current_user.id,
        title=payload.title,
        body=payload.body,
        tribe=payload.tribe,
        language=payload.language,
    )


@app.get("/posts", response_model=PostListResponse)
def get_posts(
    tribe: Optional[str] = None,
    language: Optional[str] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    """Return the newest posts, optionally filtered by tribe and language."""

    records, total = list_posts(db, tribe=tribe, language=language, skip=skip, limit=limit)
    return PostListResponse(total=total, items=records)
