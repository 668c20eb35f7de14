"""Categories, courses, modules and content items."""
import logging

from sqlalchemy.orm import Session

from .. import models, schemas
from ..errors import BadRequest, Forbidden, NotFound
from ..security import can_manage_course
from .users import user_summary

logger = logging.getLogger(__name__)


def course_summary(course: models.Course) -> dict:
    return {
        "id": course.id,
        "title": course.title,
        "description": course.description,
        "price": course.price,
        "thumbnail_url": course.thumbnail_url,
        "created_at": course.created_at,
        "updated_at": course.updated_at,
        "category": {"id": course.category.id, "name": course.category.name} if course.category else None,
        "teacher": user_summary(course.teacher) if course.teacher else None,
    }


def content_public(content: models.Content) -> dict:
    # asset URLs are only handed out to enrolled students
    return {
        "id": content.id,
        "title": content.title,
        "order": content.order,
        "content_type": content.content_type,
        "duration_in_seconds": content.duration_in_seconds,
        "time_limit_in_minutes": content.time_limit_in_minutes,
    }


def content_full(content: models.Content) -> dict:
    return {
        **content_public(content),
        "video_url": content.video_url,
        "document_url": content.document_url,
        "file_type": content.file_type,
    }


def course_detail(course: models.Course, include_assets: bool = False) -> dict:
    render = content_full if include_assets else content_public
    return {
        **course_summary(course),
        "modules": [
            {
                "id": module.id,
                "title": module.title,
                "order": module.order,
                "contents": [render(content) for content in module.contents],
            }
            for module in course.modules
        ],
    }


def list_categories(db: Session):
    return db.query(models.Category).order_by(models.Category.name.asc()).all()


def list_courses(db: Session):
    courses = db.query(models.Course).order_by(models.Course.created_at.desc(), models.Course.id.desc()).all()
    return [course_summary(course) for course in courses]


def list_teacher_courses(db: Session, teacher: models.User):
    courses = (db.query(models.Course).filter(models.Course.teacher_id == teacher.id)
               .order_by(models.Course.created_at.desc(), models.Course.id.desc()).all())
    return [{**course_summary(course), "total_students": len(course.enrollments)} for course in courses]


def get_course_or_404(db: Session, course_id: int) -> models.Course:
    course = db.get(models.Course, course_id)
    if not course:
        raise NotFound("COURSE_NOT_FOUND", "Course not found")
    return course


def get_content_or_404(db: Session, content_id: int) -> models.Content:
    content = db.get(models.Content, content_id)
    if not content:
        raise NotFound("CONTENT_NOT_FOUND", "Content not found")
    return content


def _ensure_category(db: Session, category_id: int) -> None:
    if not db.get(models.Category, category_id):
        raise BadRequest("CATEGORY_NOT_FOUND", "Invalid category ID")


def _ensure_owner(user: models.User, course: models.Course) -> None:
    if not can_manage_course(user, course):
        raise Forbidden("COURSE_FORBIDDEN", "You are not the owner of this course")


def create_course(db: Session, teacher_id: int, data: schemas.CourseCreate) -> models.Course:
    _ensure_category(db, data.category_id)
    course = models.Course(
        title=data.title,
        description=data.description,
        price=data.price,
        category_id=data.category_id,
        teacher_id=teacher_id,
        thumbnail_url=data.thumbnail_url,
    )
    db.add(course)
    db.commit()
    db.refresh(course)
    logger.info("Course %s created by teacher %s", course.id, teacher_id)
    return course


def update_course(db: Session, user: models.User, course_id: int, data: schemas.CourseUpdate) -> models.Course:
    course = get_course_or_404(db, course_id)
    _ensure_owner(user, course)

    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise BadRequest("NO_FIELDS", "No fields provided for update")
    if "category_id" in changes:
        _ensure_category(db, changes["category_id"])
    if "teacher_id" in changes:
        teacher = db.get(models.User, changes["teacher_id"])
        if not teacher or teacher.role != models.Role.TEACHER.value:
            raise BadRequest("TEACHER_NOT_FOUND", "Invalid teacher ID")

    for field, value in changes.items():
        setattr(course, field, value)
    db.commit()
    db.refresh(course)
    return course


def delete_course(db: Session, user: models.User, course_id: int) -> None:
    course = get_course_or_404(db, course_id)
    _ensure_owner(user, course)
    db.delete(course)
    db.commit()
    logger.info("Course %s deleted by user %s", course_id, user.id)


def create_module(db: Session, user: models.User, data: schemas.ModuleCreate) -> models.Module:
    course = get_course_or_404(db, data.course_id)
    _ensure_owner(user, course)

    order = data.order
    if order is None:
        order = db.query(models.Module).filter(models.Module.course_id == course.id).count() + 1
    module = models.Module(title=data.title, order=order, course_id=course.id)
    db.add(module)
    db.commit()
    db.refresh(module)
    return module


def delete_module(db: Session, user: models.User, module_id: int) -> None:
    module = db.get(models.Module, module_id)
    if not module:
        raise NotFound("MODULE_NOT_FOUND", "Module not found")
    _ensure_owner(user, module.course)
    db.delete(module)
    db.commit()


def create_content(db: Session, user: models.User, data: schemas.ContentCreate) -> models.Content:
    module = db.get(models.Module, data.module_id)
    if not module:
        raise NotFound("MODULE_NOT_FOUND", "Module not found")
    _ensure_owner(user, module.course)

    order = data.order
    if order is None:
        order = db.query(models.Content).filter(models.Content.module_id == module.id).count() + 1
    content = models.Content(
        title=data.title,
        order=order,
        content_type=data.content_type.value,
        video_url=data.video_url,
        duration_in_seconds=data.duration_in_seconds,
        document_url=data.document_url,
        file_type=data.file_type,
        time_limit_in_minutes=data.time_limit_in_minutes,
        module_id=module.id,
    )
    db.add(content)
    db.commit()
    db.refresh(content)
    return content


def delete_content(db: Session, user: models.User, content_id: int) -> None:
    content = get_content_or_404(db, content_id)
    _ensure_owner(user, content.module.course)
    db.delete(content)
    db.commit()
