from sqlalchemy.orm import Session

from .. import models, schemas
from ..errors import Forbidden, NotFound
from .catalog import get_course_or_404
from .enrollment import require_enrollment
from .users import user_summary


def review_out(review: models.Review) -> dict:
    return {
        "id": review.id,
        "rating": review.rating,
        "comment": review.comment,
        "date_posted": review.date_posted,
        "student": user_summary(review.student),
    }


def list_course_reviews(db: Session, course_id: int) -> dict:
    get_course_or_404(db, course_id)
    reviews = (db.query(models.Review).join(models.Enrollment)
               .filter(models.Enrollment.course_id == course_id)
               .order_by(models.Review.date_posted.desc(), models.Review.id.desc()).all())

    total = len(reviews)
    distribution = {str(star): 0 for star in range(1, 6)}
    for review in reviews:
        distribution[str(review.rating)] += 1

    return {
        "reviews": [review_out(review) for review in reviews],
        "average_rating": round(sum(r.rating for r in reviews) / total, 1) if total else 0,
        "total_reviews": total,
        "rating_distribution": distribution,
    }


def get_my_review(db: Session, student_id: int, course_id: int):
    get_course_or_404(db, course_id)
    enrollment = require_enrollment(db, student_id, course_id)
    return review_out(enrollment.review) if enrollment.review else None


def upsert_review(db: Session, student_id: int, course_id: int, data: schemas.ReviewIn):
    """Create the enrollment's review, or update it when one exists. Returns ``(review, created)``."""
    get_course_or_404(db, course_id)
    enrollment = require_enrollment(db, student_id, course_id)

    review = enrollment.review
    created = review is None
    if created:
        review = models.Review(enrollment_id=enrollment.id, student_id=student_id)
        db.add(review)
    review.rating = data.rating
    review.comment = data.comment
    db.commit()
    db.refresh(review)
    return review_out(review), created


def delete_review(db: Session, user: models.User, review_id: int) -> None:
    review = db.get(models.Review, review_id)
    if not review:
        raise NotFound("REVIEW_NOT_FOUND", "Review not found")
    if review.student_id != user.id:
        raise Forbidden("REVIEW_FORBIDDEN", "You can only delete your own review")
    db.delete(review)
    db.commit()
