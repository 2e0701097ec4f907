"""Credential store plus the registration and login flows."""

import logging
from typing import Callable, Optional

from prometheus_client import Counter
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .models.user import Role, User
from .passwords import PasswordHasher
from .tokens import TokenIssuer


logger = logging.getLogger(__name__)

REGISTRATION_COUNTER = Counter(
    "account_registrations_total", "Total accounts registered"
)
LOGIN_COUNTER = Counter(
    "login_attempts_total", "Total login attempts", ["outcome"]
)


class AuthError(Exception):
    """Base class for errors surfaced by the account flows.

    ``message`` is safe to hand back to clients verbatim.
    """

    message = "Authentication error"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.message)
        if message:
            self.message = message


class DuplicateAccount(AuthError):
    message = "User already exists"


class InvalidCredentials(AuthError):
    message = "Invalid Credentials"


class PersistenceError(AuthError):
    message = "Server error"


def normalize_email(email: str) -> str:
    return email.strip().lower()


class AccountStore:
    """Persist and look up accounts through a SQLAlchemy session factory.

    Uniqueness of ``email`` and ``phone`` is enforced by the table's unique
    constraints, so two concurrent inserts for the same email cannot both
    succeed.
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self.session_factory = session_factory

    def get_by_email(self, email: str) -> Optional[User]:
        session = self.session_factory()
        try:
            return (
                session.query(User)
                .filter(User.email == normalize_email(email))
                .first()
            )
        except SQLAlchemyError as exc:
            logger.exception("account lookup failed")
            raise PersistenceError() from exc
        finally:
            session.close()

    def get(self, account_id: int) -> Optional[User]:
        session = self.session_factory()
        try:
            return session.get(User, account_id)
        except SQLAlchemyError as exc:
            logger.exception("account lookup failed id=%s", account_id)
            raise PersistenceError() from exc
        finally:
            session.close()

    def add(self, user: User) -> User:
        """Insert ``user``; raise DuplicateAccount on a uniqueness violation."""
        session = self.session_factory()
        try:
            session.add(user)
            session.commit()
            session.refresh(user)
            return user
        except IntegrityError as exc:
            session.rollback()
            logger.warning("duplicate account rejected by store")
            raise DuplicateAccount() from exc
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("account insert failed")
            raise PersistenceError() from exc
        finally:
            session.close()

    def count(self, email: Optional[str] = None) -> int:
        session = self.session_factory()
        try:
            query = session.query(User)
            if email is not None:
                query = query.filter(User.email == normalize_email(email))
            return query.count()
        except SQLAlchemyError as exc:
            logger.exception("account count failed")
            raise PersistenceError() from exc
        finally:
            session.close()


class AuthService:
    """Registration and login built from explicit collaborators."""

    def __init__(
        self, store: AccountStore, hasher: PasswordHasher, issuer: TokenIssuer
    ) -> None:
        self.store = store
        self.hasher = hasher
        self.issuer = issuer

    def register(
        self,
        email: str,
        password: str,
        role: Role = Role.VISITOR,
        phone: Optional[str] = None,
        tribe: Optional[str] = None,
        language: Optional[str] = None,
    ) -> str:
        """Create an account and return a fresh session token."""
        email = normalize_email(email)
        if self.store.get_by_email(email) is not None:
            logger.warning("registration rejected, email already in use")
            raise DuplicateAccount()

        user = User(
            email=email,
            phone=phone or None,
            password_hash=self.hasher.hash(password),
            role=Role(role).value,
            tribe=tribe,
            language=language,
        )
        # the store's unique constraint settles a race with a concurrent insert
        user = self.store.add(user)
        REGISTRATION_COUNTER.inc()
        logger.info("registered account id=%s role=%s", user.id, user.role)
        return self.issuer.issue(user.id)

    def login(self, email: str, password: str) -> str:
        """Return a session token; unknown email and wrong password look the same."""
        user = self.store.get_by_email(email)
        # unknown emails still pay for one bcrypt check
        digest = user.password_hash if user is not None else self.hasher.dummy_digest()
        if not self.hasher.verify(password, digest) or user is None:
            LOGIN_COUNTER.labels(outcome="failure").inc()
            logger.warning("login rejected")
            raise InvalidCredentials()
        LOGIN_COUNTER.labels(outcome="success").inc()
        logger.info("login succeeded id=%s", user.id)
        return self.issuer.issue(user.id)
