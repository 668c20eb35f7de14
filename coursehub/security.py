import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from . import models
from .config import settings
from .database import get_db
from .errors import Forbidden, Unauthorized

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.BCRYPT_ROUNDS)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    return pwd_context.verify(password, hashed)


def create_access_token(user: models.User) -> str:
    expire = datetime.utcnow() + timedelta(days=settings.ACCESS_TOKEN_EXPIRE_DAYS)
    payload = {"userId": user.id, "role": user.role, "exp": expire}
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise Unauthorized("INVALID_TOKEN", "Invalid or expired authentication token")
    if not isinstance(payload.get("userId"), int) or not isinstance(payload.get("role"), str):
        raise Unauthorized("INVALID_TOKEN", "Invalid authentication token payload")
    return payload


def get_current_user(request: Request, token: Optional[str] = Depends(oauth2_scheme),
                     db: Session = Depends(get_db)) -> models.User:
    """Resolve the caller from a bearer token, falling back to the auth cookie."""
    token = token or request.cookies.get(settings.AUTH_COOKIE_NAME)
    if not token:
        raise Unauthorized("TOKEN_MISSING", "Authentication token is missing")
    payload = decode_access_token(token)
    user = db.get(models.User, payload["userId"])
    if not user:
        raise Unauthorized("USER_NOT_FOUND", "User not authenticated")
    return user


def require_roles(*roles: models.Role):
    allowed = {role.value for role in roles}

    def checker(current_user: models.User = Depends(get_current_user)) -> models.User:
        if current_user.role not in allowed:
            raise Forbidden("FORBIDDEN", "Forbidden")
        return current_user

    return checker


student_only = require_roles(models.Role.STUDENT)
teacher_or_admin = require_roles(models.Role.TEACHER, models.Role.ADMIN)
admin_only = require_roles(models.Role.ADMIN)


def can_manage_course(user: models.User, course: models.Course) -> bool:
    return user.role == models.Role.ADMIN.value or course.teacher_id == user.id
