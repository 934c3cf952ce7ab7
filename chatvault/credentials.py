"""User accounts: registration, password login and profile lookup."""
import logging

from pydantic import EmailStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import DuplicateEmail, DuplicateUsername, InvalidCredentials, NotFound, StoreFailure, ValidationError
from .models import Users
from .security import PasswordHasher

logger = logging.getLogger(__name__)

_email_adapter = TypeAdapter(EmailStr)


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def _check_duplicates(db: Session, *, username: str, email: str) -> None:
    # email wins when both collide, even with different users
    if db.query(Users.id).filter(Users.email == email).first() is not None:
        raise DuplicateEmail(email)
    if db.query(Users.id).filter(Users.username == username).first() is not None:
        raise DuplicateUsername(username)


def register_user(db: Session, hasher: PasswordHasher, *, username: str, email: str, password: str) -> Users:
    username = (username or "").strip()
    email = normalize_email(email)
    if not username or not email or not (password or "").strip():
        raise ValidationError("username, email and password are required")
    try:
        _email_adapter.validate_python(email)
    except PydanticValidationError:
        raise ValidationError("malformed email")

    try:
        _check_duplicates(db, username=username, email=email)
        user = Users(username=username, email=email, hashed_password=hasher.hash(password))
        db.add(user)
        db.commit()
    except IntegrityError:
        # lost a race with a concurrent registration; report it like the pre-check would
        db.rollback()
        _check_duplicates(db, username=username, email=email)
        logger.exception("Integrity error registering %s without a matching duplicate", email)
        raise StoreFailure("integrity error")
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Registration failed for %s", email)
        raise StoreFailure("registration failed") from exc

    db.refresh(user)
    logger.info("Registered user id=%s", user.id)
    return user


def authenticate_user(db: Session, hasher: PasswordHasher, *, email: str, password: str) -> Users:
    """Return the user owning ``email`` if ``password`` matches.

    Unknown email and wrong password raise the same ``InvalidCredentials``.
    """
    try:
        user = db.query(Users).filter(Users.email == normalize_email(email)).first()
    except SQLAlchemyError as exc:
        logger.exception("Login lookup failed")
        raise StoreFailure("login lookup failed") from exc

    if user is None:
        hasher.dummy_verify()
        logger.info("Login failed")
        raise InvalidCredentials()
    if not hasher.verify(password or "", user.hashed_password):
        logger.info("Login failed")
        raise InvalidCredentials()
    return user


def get_user_by_id(db: Session, user_id: int) -> Users:
    try:
        user = db.get(Users, user_id)
    except SQLAlchemyError as exc:
        logger.exception("User lookup failed for id=%s", user_id)
        raise StoreFailure("user lookup failed") from exc
    if user is None:
        raise NotFound(f"user {user_id}")
    return user
