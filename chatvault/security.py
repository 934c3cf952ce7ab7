# chatvault/security.py
from typing import Optional, Protocol

from fastapi import Request
from jose import jwt, JWTError
from passlib.context import CryptContext

ALGORITHM = "HS256"


class PasswordHasher(Protocol):
    def hash(self, password: str) -> str: ...

    def verify(self, password: str, hashed: str) -> bool: ...

    def dummy_verify(self) -> bool: ...


class PasslibHasher:
    """Password hashing backed by a passlib ``CryptContext``.

    ``verify`` is passlib's constant-time comparison; ``dummy_verify`` burns the
    same amount of time for lookups that found no user.
    """

    def __init__(self, context: Optional[CryptContext] = None):
        self.context = context or CryptContext(schemes=["bcrypt"], deprecated="auto")

    def hash(self, password: str) -> str:
        return self.context.hash(password)

    def verify(self, password: str, hashed: str) -> bool:
        try:
            return self.context.verify(password, hashed)
        except ValueError:
            # unrecognised or corrupt hash in the db
            return False

    def dummy_verify(self) -> bool:
        return self.context.dummy_verify()


def get_password_hasher(request: Request) -> PasswordHasher:
    return request.app.state.password_hasher


def sign_session_token(token: str, secret: str) -> str:
    return jwt.encode({"sid": token}, secret, algorithm=ALGORITHM)


def unsign_session_token(value: Optional[str], secret: str) -> Optional[str]:
    """Return the session token inside a cookie value, or None if it was tampered with."""
    if not value:
        return None
    try:
        payload = jwt.decode(value, secret, algorithms=[ALGORITHM])
    except JWTError:
        return None
    sid = payload.get("sid")
    return sid if isinstance(sid, str) and sid else None
