from sqlalchemy.orm import Session

from .. import models, schemas
from ..errors import BadRequest, Conflict, NotFound
from ..security import hash_password, verify_password


def user_summary(user: models.User) -> dict:
    return {
        "id": user.id,
        "username": user.username,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "full_name": user.full_name,
    }


def get_profile(db: Session, user: models.User) -> dict:
    total_students = 0
    if user.role == models.Role.TEACHER.value:
        total_students = sum(len(course.enrollments) for course in user.courses_as_teacher)

    return {
        **schemas.UserOut.model_validate(user).model_dump(),
        "counts": {
            "enrollments": len(user.enrollments),
            "courses_as_teacher": len(user.courses_as_teacher),
            "quiz_attempts": len(user.quiz_attempts),
        },
        "total_students": total_students,
    }


def update_profile(db: Session, user: models.User, data: schemas.ProfileUpdate) -> models.User:
    if data.first_name is not None:
        user.first_name = data.first_name or None
    if data.last_name is not None:
        user.last_name = data.last_name or None

    if data.email and data.email != user.email:
        if db.query(models.User).filter(models.User.email == data.email).first():
            raise Conflict("EMAIL_IN_USE", "Email already in use")
        user.email = data.email

    if data.username and data.username != user.username:
        raise BadRequest("USERNAME_IMMUTABLE", "Username cannot be changed")

    if data.new_password:
        if not data.current_password:
            raise BadRequest("CURRENT_PASSWORD_REQUIRED", "Current password is required to change password")
        if not verify_password(data.current_password, user.hashed_password):
            raise BadRequest("WRONG_PASSWORD", "Current password is incorrect")
        if len(data.new_password) < 6:
            raise BadRequest("PASSWORD_TOO_SHORT", "New password must be at least 6 characters")
        user.hashed_password = hash_password(data.new_password)

    db.commit()
    db.refresh(user)
    return user


def get_user_or_404(db: Session, user_id: int) -> models.User:
    user = db.get(models.User, user_id)
    if not user:
        raise NotFound("USER_NOT_FOUND", "User not found")
    return user
