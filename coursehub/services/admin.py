"""Back-office operations. Callers are already checked to be ADMIN."""
import logging
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from .. import models, schemas
from ..errors import BadRequest, Conflict, NotFound
from ..security import hash_password
from . import catalog
from .users import get_user_or_404

logger = logging.getLogger(__name__)


def system_stats(db: Session) -> dict:
    by_role = dict(db.query(models.User.role, func.count(models.User.id)).group_by(models.User.role).all())
    recent = db.query(models.User).order_by(models.User.created_at.desc(), models.User.id.desc()).limit(5).all()
    return {
        "total_users": db.query(models.User).count(),
        "total_courses": db.query(models.Course).count(),
        "total_enrollments": db.query(models.Enrollment).count(),
        "total_categories": db.query(models.Category).count(),
        "users_by_role": by_role,
        "recent_users": [schemas.UserOut.model_validate(user) for user in recent],
    }


# --- categories ---

def _category_name_taken(db: Session, name: str, exclude_id: Optional[int] = None) -> bool:
    query = db.query(models.Category).filter(models.Category.name == name)
    if exclude_id is not None:
        query = query.filter(models.Category.id != exclude_id)
    return query.first() is not None


def create_category(db: Session, data: schemas.CategoryIn) -> models.Category:
    name = data.name.strip()
    if not name:
        raise BadRequest("CATEGORY_NAME_REQUIRED", "Category name is required")
    if _category_name_taken(db, name):
        raise Conflict("CATEGORY_EXISTS", "Category already exists")
    category = models.Category(name=name)
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


def update_category(db: Session, category_id: int, data: schemas.CategoryIn) -> models.Category:
    category = db.get(models.Category, category_id)
    if not category:
        raise NotFound("CATEGORY_NOT_FOUND", "Category not found")
    name = data.name.strip()
    if not name:
        raise BadRequest("CATEGORY_NAME_REQUIRED", "Category name is required")
    if _category_name_taken(db, name, exclude_id=category.id):
        raise Conflict("CATEGORY_EXISTS", "Category name already exists")
    category.name = name
    db.commit()
    db.refresh(category)
    return category


def delete_category(db: Session, category_id: int) -> None:
    category = db.get(models.Category, category_id)
    if not category:
        raise NotFound("CATEGORY_NOT_FOUND", "Category not found")
    in_use = db.query(models.Course).filter(models.Course.category_id == category.id).count()
    if in_use:
        raise BadRequest("CATEGORY_IN_USE",
                         f"Cannot delete category. It has {in_use} course(s) associated with it.")
    db.delete(category)
    db.commit()


# --- users ---

def _user_row(user: models.User) -> dict:
    return {
        **schemas.UserOut.model_validate(user).model_dump(),
        "counts": {
            "courses_as_teacher": len(user.courses_as_teacher),
            "enrollments": len(user.enrollments),
        },
    }


def list_users(db: Session, role: Optional[str] = None, search: Optional[str] = None):
    query = db.query(models.User)
    if role:
        query = query.filter(models.User.role == role.upper())
    if search:
        pattern = f"%{search.lower()}%"
        query = query.filter(or_(
            func.lower(models.User.username).like(pattern),
            func.lower(models.User.email).like(pattern),
            func.lower(models.User.first_name).like(pattern),
            func.lower(models.User.last_name).like(pattern),
        ))
    users = query.order_by(models.User.created_at.desc(), models.User.id.desc()).all()
    return [_user_row(user) for user in users]


def create_user(db: Session, data: schemas.AdminUserCreate) -> models.User:
    existing = db.query(models.User).filter(
        or_(models.User.email == data.email, models.User.username == data.username)).first()
    if existing:
        field = "Username" if existing.username == data.username else "Email"
        raise Conflict("USER_EXISTS", f"{field} already exists")

    # accounts created by an admin skip email verification
    user = models.User(
        email=data.email,
        username=data.username,
        hashed_password=hash_password(data.password),
        first_name=data.first_name or None,
        last_name=data.last_name or None,
        role=data.role.value,
        is_verified=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Admin created user %s (%s)", user.username, user.role)
    return user


def update_user_role(db: Session, user_id: int, role: models.Role) -> models.User:
    user = get_user_or_404(db, user_id)
    user.role = role.value
    db.commit()
    db.refresh(user)
    return user


def delete_user(db: Session, admin: models.User, user_id: int) -> None:
    if admin.id == user_id:
        raise BadRequest("CANNOT_DELETE_SELF", "Cannot delete your own account")
    user = get_user_or_404(db, user_id)
    db.delete(user)
    db.commit()
    logger.info("Admin %s deleted user %s", admin.id, user_id)


# --- courses ---

def _admin_course_row(course: models.Course) -> dict:
    return {
        **catalog.course_summary(course),
        "total_enrollments": len(course.enrollments),
        "total_modules": len(course.modules),
    }


def list_courses(db: Session, search: Optional[str] = None, category_id: Optional[int] = None):
    query = db.query(models.Course)
    if search:
        pattern = f"%{search.lower()}%"
        query = query.filter(or_(func.lower(models.Course.title).like(pattern),
                                 func.lower(models.Course.description).like(pattern)))
    if category_id is not None:
        query = query.filter(models.Course.category_id == category_id)
    courses = query.order_by(models.Course.created_at.desc(), models.Course.id.desc()).all()
    return [_admin_course_row(course) for course in courses]


def get_course(db: Session, course_id: int) -> dict:
    course = catalog.get_course_or_404(db, course_id)
    return {**catalog.course_detail(course, include_assets=True), "total_enrollments": len(course.enrollments)}


def create_course(db: Session, data: schemas.AdminCourseCreate) -> models.Course:
    teacher = db.get(models.User, data.teacher_id)
    if not teacher or teacher.role != models.Role.TEACHER.value:
        raise BadRequest("TEACHER_NOT_FOUND", "Invalid teacher ID")
    return catalog.create_course(db, teacher.id, data)


def delete_course(db: Session, admin: models.User, course_id: int) -> None:
    course = catalog.get_course_or_404(db, course_id)
    enrolled = len(course.enrollments)
    if enrolled:
        raise BadRequest("COURSE_HAS_ENROLLMENTS", f"Cannot delete course. It has {enrolled} enrollment(s).")
    catalog.delete_course(db, admin, course_id)
