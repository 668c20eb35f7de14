from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..database import get_db
from ..security import student_only
from ..services import reviews as review_service

router = APIRouter(tags=["reviews"])


@router.get("/courses/{course_id}/reviews")
def course_reviews(course_id: int, db: Session = Depends(get_db)):
    return review_service.list_course_reviews(db, course_id)


@router.get("/courses/{course_id}/reviews/my")
def my_review(course_id: int, current_user: models.User = Depends(student_only), db: Session = Depends(get_db)):
    return {"review": review_service.get_my_review(db, current_user.id, course_id)}


@router.post("/courses/{course_id}/reviews")
def post_review(course_id: int, data: schemas.ReviewIn, response: Response,
                current_user: models.User = Depends(student_only), db: Session = Depends(get_db)):
    """One review per enrollment; posting again updates it."""
    review, created = review_service.upsert_review(db, current_user.id, course_id, data)
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return review


@router.delete("/reviews/{review_id}")
def delete_review(review_id: int, current_user: models.User = Depends(student_only),
                  db: Session = Depends(get_db)):
    review_service.delete_review(db, current_user, review_id)
    return {"message": "Review deleted successfully"}
