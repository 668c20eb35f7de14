from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..database import get_db
from ..security import admin_only
from ..services import admin as admin_service
from ..services import catalog

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(admin_only)])


@router.get("/stats", response_model=schemas.SystemStats)
def stats(db: Session = Depends(get_db)):
    return admin_service.system_stats(db)


@router.post("/categories", response_model=schemas.CategoryOut, status_code=status.HTTP_201_CREATED)
def create_category(data: schemas.CategoryIn, db: Session = Depends(get_db)):
    return admin_service.create_category(db, data)


@router.put("/categories/{category_id}", response_model=schemas.CategoryOut)
def update_category(category_id: int, data: schemas.CategoryIn, db: Session = Depends(get_db)):
    return admin_service.update_category(db, category_id, data)


@router.delete("/categories/{category_id}")
def delete_category(category_id: int, db: Session = Depends(get_db)):
    admin_service.delete_category(db, category_id)
    return {"message": "Category deleted successfully"}


@router.get("/users")
def list_users(role: Optional[str] = None, search: Optional[str] = None, db: Session = Depends(get_db)):
    return admin_service.list_users(db, role=role, search=search)


@router.post("/users", response_model=schemas.UserOut, status_code=status.HTTP_201_CREATED)
def create_user(data: schemas.AdminUserCreate, db: Session = Depends(get_db)):
    return admin_service.create_user(db, data)


@router.put("/users/{user_id}/role", response_model=schemas.UserOut)
def update_role(user_id: int, data: schemas.RoleUpdate, db: Session = Depends(get_db)):
    return admin_service.update_user_role(db, user_id, data.role)


@router.delete("/users/{user_id}")
def delete_user(user_id: int, current_user: models.User = Depends(admin_only), db: Session = Depends(get_db)):
    admin_service.delete_user(db, current_user, user_id)
    return {"message": "User deleted successfully"}


@router.get("/courses")
def list_courses(search: Optional[str] = None, category_id: Optional[int] = None, db: Session = Depends(get_db)):
    return admin_service.list_courses(db, search=search, category_id=category_id)


@router.post("/courses", status_code=status.HTTP_201_CREATED)
def create_course(data: schemas.AdminCourseCreate, db: Session = Depends(get_db)):
    return catalog.course_summary(admin_service.create_course(db, data))


@router.get("/courses/{course_id}")
def get_course(course_id: int, db: Session = Depends(get_db)):
    return admin_service.get_course(db, course_id)


@router.put("/courses/{course_id}")
def update_course(course_id: int, data: schemas.AdminCourseUpdate, current_user: models.User = Depends(admin_only),
                  db: Session = Depends(get_db)):
    return catalog.course_summary(catalog.update_course(db, current_user, course_id, data))


@router.delete("/courses/{course_id}")
def delete_course(course_id: int, current_user: models.User = Depends(admin_only), db: Session = Depends(get_db)):
    admin_service.delete_course(db, current_user, course_id)
    return {"message": "Course deleted successfully"}
