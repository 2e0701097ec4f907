"""Stateless signed session tokens."""

from datetime import datetime, timedelta, timezone
from typing import Callable

import jwt


class InvalidToken(Exception):
    """Token is malformed, carries a bad signature or has expired."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenIssuer:
    """Mint and verify JWTs carrying an account identifier in ``sub``.

    ``clock`` returns timezone-aware UTC datetimes and is used both to stamp
    ``iat``/``exp`` at issuance and to judge expiry at verification.
    """

    def __init__(
        self,
        secret: str,
        lifetime: timedelta = timedelta(hours=1),
        algorithm: str = "HS256",
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if not secret:
            raise ValueError("token signing secret must not be empty")
        self.secret = secret
        self.lifetime = lifetime
        self.algorithm = algorithm
        self.clock = clock

    def issue(self, account_id: int) -> str:
        issued_at = self.clock()
        payload = {
            "sub": str(account_id),
            "iat": issued_at,
            "exp": issued_at + self.lifetime,
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> int:
        """Return the account id embedded in ``token`` or raise InvalidToken."""
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                # expiry is checked against self.clock below
                options={"require": ["exp", "sub"], "verify_exp": False, "verify_iat": False},
            )
        except jwt.PyJWTError as exc:
            raise InvalidToken("Invalid token") from exc
        try:
            expires_at = datetime.fromtimestamp(float(payload["exp"]), timezone.utc)
        except (TypeError, ValueError, OverflowError, OSError) as exc:
            raise InvalidToken("Invalid token") from exc
        if expires_at <= self.clock():
            raise InvalidToken("Token expired")
        try:
            return int(payload["sub"])
        except (TypeError, ValueError) as exc:
            raise InvalidToken("Invalid token") from exc
