import logging
import secrets
from datetime import datetime, timedelta

from sqlalchemy import or_
from sqlalchemy.orm import Session

from .. import mailer, models, schemas
from ..config import settings
from ..errors import BadRequest, Conflict, Forbidden, NotFound, Unauthorized
from ..security import create_access_token, hash_password, verify_password

logger = logging.getLogger(__name__)


def _new_token() -> str:
    return secrets.token_hex(32)


def register(db: Session, user_in: schemas.UserCreate) -> models.User:
    if user_in.role == models.Role.ADMIN:
        raise Forbidden("ROLE_NOT_ALLOWED", "Admin accounts cannot be self-registered")

    existing = db.query(models.User).filter(
        or_(models.User.email == user_in.email, models.User.username == user_in.username)).first()
    if existing:
        raise Conflict("USER_EXISTS", "Email or username already in use")

    user = models.User(
        email=user_in.email,
        username=user_in.username,
        hashed_password=hash_password(user_in.password),
        first_name=user_in.first_name,
        last_name=user_in.last_name,
        role=user_in.role.value,
        is_verified=not settings.REQUIRE_EMAIL_VERIFICATION,
        verification_token=_new_token(),
        verification_token_expiry=datetime.utcnow() + timedelta(hours=settings.VERIFICATION_TOKEN_HOURS),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Registered user %s (%s)", user.username, user.role)

    if settings.REQUIRE_EMAIL_VERIFICATION:
        mailer.send_verification_email(user.email, user.username, user.verification_token)
    return user


def login(db: Session, email_or_username: str, password: str):
    user = db.query(models.User).filter(
        or_(models.User.email == email_or_username, models.User.username == email_or_username)).first()
    if not user or not verify_password(password, user.hashed_password):
        raise Unauthorized("INVALID_CREDENTIALS", "Invalid email/username or password")
    if settings.REQUIRE_EMAIL_VERIFICATION and not user.is_verified:
        raise Forbidden("EMAIL_NOT_VERIFIED", "Please verify your email before logging in")
    return create_access_token(user), user


def verify_email(db: Session, token: str) -> models.User:
    user = db.query(models.User).filter(models.User.verification_token == token).first()
    if not user:
        raise BadRequest("INVALID_TOKEN", "Invalid verification token")
    if user.is_verified:
        raise BadRequest("ALREADY_VERIFIED", "Email is already verified")
    if user.verification_token_expiry and user.verification_token_expiry < datetime.utcnow():
        raise BadRequest("TOKEN_EXPIRED", "Verification token has expired")

    user.is_verified = True
    user.verification_token = None
    user.verification_token_expiry = None
    db.commit()
    db.refresh(user)
    return user


def resend_verification(db: Session, email: str) -> bool:
    user = db.query(models.User).filter(models.User.email == email).first()
    if not user:
        raise NotFound("USER_NOT_FOUND", "User not found")
    if user.is_verified:
        raise BadRequest("ALREADY_VERIFIED", "Email is already verified")

    user.verification_token = _new_token()
    user.verification_token_expiry = datetime.utcnow() + timedelta(hours=settings.VERIFICATION_TOKEN_HOURS)
    db.commit()
    return mailer.send_verification_email(user.email, user.username, user.verification_token)


def request_password_reset(db: Session, email: str) -> None:
    user = db.query(models.User).filter(models.User.email == email).first()
    if not user:
        # same response whether or not the account exists
        return

    user.reset_token = _new_token()
    user.reset_token_expiry = datetime.utcnow() + timedelta(hours=settings.RESET_TOKEN_HOURS)
    db.commit()
    mailer.send_password_reset_email(user.email, user.username, user.reset_token)


def reset_password(db: Session, token: str, new_password: str) -> None:
    if len(new_password) < 6:
        raise BadRequest("PASSWORD_TOO_SHORT", "Password must be at least 6 characters")

    user = db.query(models.User).filter(models.User.reset_token == token).first()
    if not user:
        raise BadRequest("INVALID_TOKEN", "Invalid reset token")
    if not user.reset_token_expiry or user.reset_token_expiry < datetime.utcnow():
        raise BadRequest("TOKEN_EXPIRED", "Reset token has expired")

    user.hashed_password = hash_password(new_password)
    user.reset_token = None
    user.reset_token_expiry = None
    db.commit()
    logger.info("Password reset for user %s", user.id)
