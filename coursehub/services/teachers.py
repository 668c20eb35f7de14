from sqlalchemy.orm import Session

from .. import models
from ..errors import NotFound


def _total_students(teacher: models.User) -> int:
    return sum(len(course.enrollments) for course in teacher.courses_as_teacher)


def list_teachers(db: Session):
    teachers = (db.query(models.User).filter(models.User.role == models.Role.TEACHER.value)
                .order_by(models.User.created_at.desc(), models.User.id.desc()).all())
    return [
        {
            "id": teacher.id,
            "username": teacher.username,
            "first_name": teacher.first_name,
            "last_name": teacher.last_name,
            "full_name": teacher.full_name,
            "joined_at": teacher.created_at,
            "total_courses": len(teacher.courses_as_teacher),
            "total_students": _total_students(teacher),
        }
        for teacher in teachers
    ]


def get_teacher_profile(db: Session, teacher_id: int) -> dict:
    teacher = db.query(models.User).filter(models.User.id == teacher_id,
                                           models.User.role == models.Role.TEACHER.value).first()
    if not teacher:
        raise NotFound("TEACHER_NOT_FOUND", "Teacher not found")

    courses = sorted(teacher.courses_as_teacher, key=lambda c: (c.created_at, c.id), reverse=True)
    return {
        "id": teacher.id,
        "username": teacher.username,
        "first_name": teacher.first_name,
        "last_name": teacher.last_name,
        "full_name": teacher.full_name,
        "email": teacher.email,
        "joined_at": teacher.created_at,
        "stats": {
            "total_courses": len(courses),
            "total_students": _total_students(teacher),
        },
        "courses": [
            {
                "id": course.id,
                "title": course.title,
                "description": course.description,
                "price": course.price,
                "thumbnail_url": course.thumbnail_url,
                "created_at": course.created_at,
                "category": {"id": course.category.id, "name": course.category.name} if course.category else None,
                "total_students": len(course.enrollments),
                "total_modules": len(course.modules),
            }
            for course in courses
        ],
    }
