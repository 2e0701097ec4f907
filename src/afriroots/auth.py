from datetime import timedelta
from typing import Generator

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .accounts import AccountStore, AuthService
from .config import settings
from .database import SessionLocal
from .models.user import User
from .passwords import PasswordHasher
from .tokens import InvalidToken, TokenIssuer

security = HTTPBearer()


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_auth_service() -> AuthService:
    """Assemble the account flows from the configured collaborators."""
    return AuthService(
        store=AccountStore(SessionLocal),
        hasher=PasswordHasher(rounds=settings.bcrypt_rounds),
        issuer=TokenIssuer(
            settings.jwt_secret,
            lifetime=timedelta(minutes=settings.access_token_expire_minutes),
            algorithm=settings.jwt_algorithm,
        ),
    )


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    service: AuthService = Depends(get_auth_service),
) -> User:
    try:
        account_id = service.issuer.verify(credentials.credentials)
    except InvalidToken:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token"
        )

    user = service.store.get(account_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found"
        )
    return user
