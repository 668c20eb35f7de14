import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import models
from .catalog import get_content_or_404, get_course_or_404
from .enrollment import require_enrollment

logger = logging.getLogger(__name__)


def calculate_progress(completed: int, total: int) -> int:
    if total <= 0:
        return 0
    # half-up in integer arithmetic: 1 of 8 is 13, not banker's 12
    return (200 * completed + total) // (2 * total)


def _recompute(db: Session, enrollment: models.Enrollment) -> None:
    total = (db.query(models.Content).join(models.Module)
             .filter(models.Module.course_id == enrollment.course_id).count())
    completed = (db.query(models.ContentProgress)
                 .filter(models.ContentProgress.enrollment_id == enrollment.id).count())

    enrollment.progress = calculate_progress(completed, total)
    if enrollment.progress >= 100:
        if enrollment.completion_date is None:
            enrollment.completion_date = datetime.utcnow()
    else:
        enrollment.completion_date = None


def _state(enrollment: models.Enrollment, content_id: int, completed: bool) -> dict:
    return {
        "content_id": content_id,
        "completed": completed,
        "progress": enrollment.progress,
        "completion_date": enrollment.completion_date,
    }


def mark_complete(db: Session, student_id: int, content_id: int) -> dict:
    content = get_content_or_404(db, content_id)
    enrollment = require_enrollment(db, student_id, content.module.course_id)

    exists = db.query(models.ContentProgress).filter(
        models.ContentProgress.enrollment_id == enrollment.id,
        models.ContentProgress.content_id == content.id,
    ).first()
    if not exists:
        db.add(models.ContentProgress(enrollment_id=enrollment.id, content_id=content.id))
        try:
            db.flush()
        except IntegrityError:
            # marked twice at once, the other request already inserted the row
            db.rollback()
            enrollment = require_enrollment(db, student_id, content.module.course_id)

    _recompute(db, enrollment)
    db.commit()
    logger.info("Content %s completed by student %s, progress %s%%", content.id, student_id, enrollment.progress)
    return _state(enrollment, content.id, True)


def unmark_complete(db: Session, student_id: int, content_id: int) -> dict:
    content = get_content_or_404(db, content_id)
    enrollment = require_enrollment(db, student_id, content.module.course_id)

    db.query(models.ContentProgress).filter(
        models.ContentProgress.enrollment_id == enrollment.id,
        models.ContentProgress.content_id == content.id,
    ).delete(synchronize_session=False)

    _recompute(db, enrollment)
    db.commit()
    return _state(enrollment, content.id, False)


def completed_contents(db: Session, student_id: int, course_id: int) -> dict:
    get_course_or_404(db, course_id)
    enrollment = require_enrollment(db, student_id, course_id)
    ids = [row.content_id for row in db.query(models.ContentProgress.content_id)
           .filter(models.ContentProgress.enrollment_id == enrollment.id)
           .order_by(models.ContentProgress.content_id).all()]
    return {
        "course_id": course_id,
        "completed_content_ids": ids,
        "progress": enrollment.progress,
        "completion_date": enrollment.completion_date,
    }
