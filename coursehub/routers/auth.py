from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..config import settings
from ..database import get_db
from ..security import get_current_user
from ..services import auth as auth_service

router = APIRouter(tags=["auth"])


@router.post("/auth/register", status_code=status.HTTP_201_CREATED)
def register(user_in: schemas.UserCreate, db: Session = Depends(get_db)):
    """Create a STUDENT or TEACHER account and mail its verification link."""
    user = auth_service.register(db, user_in)
    message = "User registered successfully"
    if not user.is_verified:
        message += ". Please check your email to verify your account"
    return {"message": message, "user": schemas.UserOut.model_validate(user)}


@router.post("/auth/login", response_model=schemas.LoginResponse)
def login(credentials: schemas.LoginRequest, response: Response, db: Session = Depends(get_db)):
    token, user = auth_service.login(db, credentials.email, credentials.password)
    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
        max_age=settings.ACCESS_TOKEN_EXPIRE_DAYS * 24 * 60 * 60,
    )
    return {"message": "Login successful", "access_token": token, "token_type": "bearer",
            "user": schemas.UserOut.model_validate(user)}


@router.get("/auth/verify-email")
def verify_email(token: str, db: Session = Depends(get_db)):
    user = auth_service.verify_email(db, token)
    return {"message": "Email verified successfully", "user": schemas.UserOut.model_validate(user)}


@router.post("/auth/resend-verification")
def resend_verification(body: schemas.EmailRequest, db: Session = Depends(get_db)):
    auth_service.resend_verification(db, body.email)
    return {"message": "Verification email sent"}


@router.post("/auth/logout")
def logout(response: Response):
    response.delete_cookie(settings.AUTH_COOKIE_NAME)
    return {"message": "Logout successful"}


@router.get("/auth/me", response_model=schemas.UserOut)
def me(current_user: models.User = Depends(get_current_user)):
    return current_user


@router.post("/password/forgot")
def forgot_password(body: schemas.EmailRequest, db: Session = Depends(get_db)):
    auth_service.request_password_reset(db, body.email)
    return {"message": "If an account exists with this email, a reset link has been sent"}


@router.post("/password/reset")
def reset_password(body: schemas.PasswordReset, db: Session = Depends(get_db)):
    auth_service.reset_password(db, body.token, body.new_password)
    return {"message": "Password has been reset successfully"}
