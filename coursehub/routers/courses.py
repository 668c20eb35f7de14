from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..database import get_db
from ..security import student_only, teacher_or_admin
from ..services import catalog
from ..services import enrollment as enrollment_service

router = APIRouter(tags=["courses"])


@router.get("/categories", response_model=List[schemas.CategoryOut])
def list_categories(db: Session = Depends(get_db)):
    return catalog.list_categories(db)


@router.get("/courses")
def list_courses(db: Session = Depends(get_db)):
    """Public catalog, newest first."""
    return catalog.list_courses(db)


@router.get("/courses/{course_id}")
def get_course(course_id: int, db: Session = Depends(get_db)):
    """Course outline. Video and document URLs are withheld."""
    return catalog.course_detail(catalog.get_course_or_404(db, course_id))


@router.get("/courses/{course_id}/content")
def get_course_content(course_id: int, current_user: models.User = Depends(student_only),
                       db: Session = Depends(get_db)):
    return enrollment_service.get_course_for_student(db, course_id, current_user.id)


@router.post("/courses", status_code=status.HTTP_201_CREATED)
def create_course(data: schemas.CourseCreate, current_user: models.User = Depends(teacher_or_admin),
                  db: Session = Depends(get_db)):
    course = catalog.create_course(db, current_user.id, data)
    return catalog.course_summary(course)


@router.put("/courses/{course_id}")
def update_course(course_id: int, data: schemas.CourseUpdate, current_user: models.User = Depends(teacher_or_admin),
                  db: Session = Depends(get_db)):
    return catalog.course_summary(catalog.update_course(db, current_user, course_id, data))


@router.delete("/courses/{course_id}")
def delete_course(course_id: int, current_user: models.User = Depends(teacher_or_admin),
                  db: Session = Depends(get_db)):
    catalog.delete_course(db, current_user, course_id)
    return {"message": "Course deleted successfully"}


@router.post("/modules", status_code=status.HTTP_201_CREATED)
def create_module(data: schemas.ModuleCreate, current_user: models.User = Depends(teacher_or_admin),
                  db: Session = Depends(get_db)):
    module = catalog.create_module(db, current_user, data)
    return {"id": module.id, "title": module.title, "order": module.order, "course_id": module.course_id}


@router.delete("/modules/{module_id}")
def delete_module(module_id: int, current_user: models.User = Depends(teacher_or_admin),
                  db: Session = Depends(get_db)):
    catalog.delete_module(db, current_user, module_id)
    return {"message": "Module deleted successfully"}


@router.post("/contents", status_code=status.HTTP_201_CREATED)
def create_content(data: schemas.ContentCreate, current_user: models.User = Depends(teacher_or_admin),
                   db: Session = Depends(get_db)):
    content = catalog.create_content(db, current_user, data)
    return {**catalog.content_full(content), "module_id": content.module_id}


@router.delete("/contents/{content_id}")
def delete_content(content_id: int, current_user: models.User = Depends(teacher_or_admin),
                   db: Session = Depends(get_db)):
    catalog.delete_content(db, current_user, content_id)
    return {"message": "Content deleted successfully"}


# --- teacher dashboard ---

@router.get("/teacher/courses", tags=["teacher"])
def my_teaching(current_user: models.User = Depends(teacher_or_admin), db: Session = Depends(get_db)):
    return catalog.list_teacher_courses(db, current_user)


@router.get("/teacher/courses/{course_id}/students", tags=["teacher"])
def enrolled_students(course_id: int, current_user: models.User = Depends(teacher_or_admin),
                      db: Session = Depends(get_db)):
    return enrollment_service.get_enrolled_students(db, current_user, course_id)


@router.get("/teacher/courses/{course_id}/stats", tags=["teacher"])
def enrollment_stats(course_id: int, current_user: models.User = Depends(teacher_or_admin),
                     db: Session = Depends(get_db)):
    return enrollment_service.get_enrollment_stats(db, current_user, course_id)


@router.get("/teacher/courses/{course_id}/students/{student_id}/performance", tags=["teacher"])
def student_performance(course_id: int, student_id: int, current_user: models.User = Depends(teacher_or_admin),
                        db: Session = Depends(get_db)):
    return enrollment_service.get_student_performance(db, current_user, course_id, student_id)
