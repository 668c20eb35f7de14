from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import models, schemas
from ..database import get_db
from ..security import get_current_user
from ..services import teachers as teacher_service
from ..services import users as user_service

router = APIRouter(tags=["users"])


@router.get("/users/profile")
def get_profile(current_user: models.User = Depends(get_current_user), db: Session = Depends(get_db)):
    return user_service.get_profile(db, current_user)


@router.put("/users/profile")
def update_profile(data: schemas.ProfileUpdate, current_user: models.User = Depends(get_current_user),
                   db: Session = Depends(get_db)):
    user = user_service.update_profile(db, current_user, data)
    return {"message": "Profile updated successfully", "user": schemas.UserOut.model_validate(user)}


@router.get("/teachers", tags=["teachers"])
def list_teachers(db: Session = Depends(get_db)):
    return teacher_service.list_teachers(db)


@router.get("/teachers/{teacher_id}", tags=["teachers"])
def get_teacher(teacher_id: int, db: Session = Depends(get_db)):
    return teacher_service.get_teacher_profile(db, teacher_id)
