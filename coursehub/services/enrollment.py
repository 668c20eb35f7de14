"""Enrollment and payment lifecycle.

Per (student, course) the states are: no enrollment, enrolled with a PENDING
payment, enrolled with a SUCCESSFUL payment. The Enrollment and Payment rows
are written together before the gateway session exists; the webhook then
flips the payment to SUCCESSFUL.
"""
import logging
import uuid
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import models
from ..config import settings
from ..errors import BadRequest, Conflict, Forbidden, NotFound
from ..payments import PaymentGateway
from . import promotions
from .catalog import course_detail, course_summary, get_course_or_404

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"


def find_enrollment(db: Session, student_id: int, course_id: int) -> Optional[models.Enrollment]:
    return db.query(models.Enrollment).filter(
        models.Enrollment.student_id == student_id,
        models.Enrollment.course_id == course_id,
    ).first()


def is_paid(enrollment: models.Enrollment) -> bool:
    return enrollment.payment is None or enrollment.payment.status == models.PaymentStatus.SUCCESSFUL.value


def require_enrollment(db: Session, student_id: int, course_id: int) -> models.Enrollment:
    """Return the student's enrollment, rejecting missing or unpaid ones with 403."""
    enrollment = find_enrollment(db, student_id, course_id)
    if not enrollment:
        raise Forbidden("NOT_ENROLLED", "You are not enrolled in this course")
    if not is_paid(enrollment):
        raise Forbidden("PAYMENT_PENDING", "Payment for this course has not been completed")
    return enrollment


def checkout_course(db: Session, gateway: PaymentGateway, *, course_id: int, student_id: int,
                    promotion_code: Optional[str] = None) -> dict:
    course = get_course_or_404(db, course_id)
    if find_enrollment(db, student_id, course_id):
        raise Conflict("ALREADY_ENROLLED", "You are already enrolled in this course")

    final_price = course.price
    discount_amount = 0.0
    promotion = None
    if promotion_code and course.price > 0:
        promotion = promotions.get_active_promotion(db, promotion_code)
        if promotion:
            final_price, discount_amount = promotions.calculate_discount(course.price, promotion)

    is_free = final_price == 0
    enrollment = models.Enrollment(student_id=student_id, course_id=course.id)
    payment = models.Payment(
        amount=final_price,
        status=models.PaymentStatus.SUCCESSFUL.value if is_free else models.PaymentStatus.PENDING.value,
        stripe_session_id=f"{'free' if is_free else 'pending'}_{uuid.uuid4().hex}",
        student_id=student_id,
        promotion_id=promotion.id if promotion else None,
        enrollment=enrollment,
    )
    db.add_all([enrollment, payment])
    try:
        db.flush()
    except IntegrityError:
        # a concurrent checkout won the unique (student, course) race
        db.rollback()
        raise Conflict("ALREADY_ENROLLED", "You are already enrolled in this course")

    if is_free:
        if promotion:
            promotions.increment_usage(db, promotion.id)
        db.commit()
        logger.info("Free enrollment %s created for student %s in course %s", enrollment.id, student_id, course.id)
        return {"url": f"{settings.PAYMENT_SUCCESS_URL}?free=true&courseId={course.id}",
                "enrollment_id": enrollment.id, "payment_id": payment.id, "free": True}

    description = None
    if discount_amount > 0:
        description = f"Original: ${course.price:.2f}, Discount: ${discount_amount:.2f}"
    try:
        session = gateway.create_checkout_session(
            amount=final_price,
            title=course.title,
            description=description,
            success_url=f"{settings.PAYMENT_SUCCESS_URL}?courseId={course.id}",
            cancel_url=settings.PAYMENT_CANCEL_URL,
            metadata={
                "paymentId": str(payment.id),
                "enrollmentId": str(enrollment.id),
                "courseId": str(course.id),
                "studentId": str(student_id),
                "promotionCode": promotion.code if promotion else "",
            },
        )
    except Exception:
        db.rollback()
        raise

    payment.stripe_session_id = session["id"]
    db.commit()
    logger.info("Checkout session %s opened for payment %s", session["id"], payment.id)
    return {"url": session["url"], "enrollment_id": enrollment.id, "payment_id": payment.id, "free": False}


def handle_webhook(db: Session, gateway: PaymentGateway, payload: bytes, signature: Optional[str]) -> dict:
    event = gateway.construct_event(payload, signature)
    if not isinstance(event, dict):
        raise BadRequest("INVALID_PAYLOAD", "Webhook payload must be a JSON object")
    event_type = event.get("type")
    if event_type != CHECKOUT_COMPLETED:
        logger.info("Ignoring webhook event %s", event_type)
        return {"received": True, "handled": False}

    data = event.get("data") or {}
    session = data.get("object") if isinstance(data, dict) else None
    if not isinstance(session, dict):
        raise BadRequest("INVALID_PAYLOAD", "Webhook event has no session object")
    metadata = session.get("metadata") or {}
    if not isinstance(metadata, dict):
        raise BadRequest("STRIPE_METADATA_MISSING", "Webhook metadata is missing the payment reference")
    amount_total = session.get("amount_total")
    if amount_total is not None and (isinstance(amount_total, bool) or not isinstance(amount_total, (int, float))):
        raise BadRequest("INVALID_PAYLOAD", "amount_total must be a number")
    payment_id = metadata.get("paymentId")
    if not payment_id or not str(payment_id).isdigit():
        raise BadRequest("STRIPE_METADATA_MISSING", "Webhook metadata is missing the payment reference")

    payment = db.get(models.Payment, int(payment_id))
    if not payment:
        raise BadRequest("PAYMENT_NOT_FOUND", f"No payment with id {payment_id}")

    if payment.status == models.PaymentStatus.SUCCESSFUL.value:
        logger.info("Payment %s already successful, replayed webhook ignored", payment.id)
        return {"received": True, "handled": False}

    payment.status = models.PaymentStatus.SUCCESSFUL.value
    if isinstance(session.get("id"), str) and session["id"]:
        payment.stripe_session_id = session["id"]
    if amount_total is not None:
        payment.amount = amount_total / 100
    if payment.promotion_id:
        promotions.increment_usage(db, payment.promotion_id)
    db.commit()
    logger.info("Payment %s confirmed for enrollment %s", payment.id, payment.enrollment_id)
    return {"received": True, "handled": True}


def get_course_for_student(db: Session, course_id: int, student_id: int) -> dict:
    course = get_course_or_404(db, course_id)
    enrollment = require_enrollment(db, student_id, course_id)
    return {
        **course_detail(course, include_assets=True),
        "enrollment": {
            "enrollment_id": enrollment.id,
            "progress": enrollment.progress,
            "completion_date": enrollment.completion_date,
        },
    }


def list_my_enrollments(db: Session, student_id: int):
    enrollments = (db.query(models.Enrollment).filter(models.Enrollment.student_id == student_id)
                   .order_by(models.Enrollment.enrollment_date.desc(), models.Enrollment.id.desc()).all())
    return [
        {
            "id": enrollment.id,
            "enrollment_date": enrollment.enrollment_date,
            "progress": enrollment.progress,
            "completion_date": enrollment.completion_date,
            "payment_status": enrollment.payment.status if enrollment.payment else None,
            "course": course_summary(enrollment.course),
        }
        for enrollment in enrollments
    ]


# --- teacher analytics ---

def _owned_course(db: Session, user: models.User, course_id: int) -> models.Course:
    course = get_course_or_404(db, course_id)
    if user.role != models.Role.ADMIN.value and course.teacher_id != user.id:
        raise Forbidden("COURSE_FORBIDDEN", "You are not the owner of this course")
    return course


def get_enrolled_students(db: Session, user: models.User, course_id: int):
    course = _owned_course(db, user, course_id)
    enrollments = sorted(course.enrollments, key=lambda e: (e.enrollment_date, e.id), reverse=True)
    return [
        {
            "enrollment_id": e.id,
            "enrollment_date": e.enrollment_date,
            "progress": e.progress,
            "completion_date": e.completion_date,
            "student": {
                "id": e.student.id,
                "username": e.student.username,
                "email": e.student.email,
                "full_name": e.student.full_name,
                "joined_at": e.student.created_at,
            },
            "payment": {
                "amount": e.payment.amount,
                "status": e.payment.status,
                "paid_at": e.payment.created_at,
            } if e.payment else None,
        }
        for e in enrollments
    ]


def get_enrollment_stats(db: Session, user: models.User, course_id: int) -> dict:
    course = _owned_course(db, user, course_id)
    enrollments = course.enrollments

    total = len(enrollments)
    completed = sum(1 for e in enrollments if e.completion_date is not None)
    average = sum(e.progress for e in enrollments) / total if total else 0
    revenue = sum(e.payment.amount for e in enrollments
                  if e.payment and e.payment.status == models.PaymentStatus.SUCCESSFUL.value)
    free = sum(1 for e in enrollments if not e.payment or e.payment.amount == 0)

    return {
        "total_students": total,
        "completed_students": completed,
        "in_progress": total - completed,
        "average_progress": round(average, 1),
        "total_revenue": round(revenue, 2),
        "free_enrollments": free,
        "paid_enrollments": total - free,
    }


def get_student_performance(db: Session, user: models.User, course_id: int, student_id: int) -> dict:
    course = _owned_course(db, user, course_id)
    enrollment = find_enrollment(db, student_id, course_id)
    if not enrollment:
        raise NotFound("NOT_ENROLLED", "Student is not enrolled in this course")

    completed_ids = {cp.content_id for cp in enrollment.content_progresses}
    contents = [content for module in course.modules for content in module.contents]
    quizzes = [content for content in contents if content.content_type == models.ContentType.QUIZ.value]

    attempts = db.query(models.QuizAttempt).filter(
        models.QuizAttempt.student_id == student_id,
        models.QuizAttempt.quiz_content_id.in_([quiz.id for quiz in quizzes]),
    ).order_by(models.QuizAttempt.start_time.desc()).all()

    quiz_stats = []
    for quiz in quizzes:
        scores = [a for a in attempts if a.quiz_content_id == quiz.id]
        quiz_stats.append({
            "content_id": quiz.id,
            "title": quiz.title,
            "attempts": [{"id": a.id, "score": a.score, "created_at": a.start_time} for a in scores],
            "best_score": max(a.score for a in scores) if scores else None,
            "average_score": round(sum(a.score for a in scores) / len(scores), 1) if scores else None,
            "total_attempts": len(scores),
        })

    total = len(contents)
    return {
        "student": {
            "id": enrollment.student.id,
            "username": enrollment.student.username,
            "email": enrollment.student.email,
            "full_name": enrollment.student.full_name,
        },
        "enrollment": {
            "enrollment_date": enrollment.enrollment_date,
            "progress": enrollment.progress,
            "completion_date": enrollment.completion_date,
        },
        "content_progress": {
            "total_contents": total,
            "completed_contents": len(completed_ids),
            "progress": round(len(completed_ids) / total * 100, 1) if total else 0,
            "completed_content_ids": sorted(completed_ids),
        },
        "quiz_stats": quiz_stats,
        "modules": [
            {
                "id": module.id,
                "title": module.title,
                "order": module.order,
                "contents": [
                    {
                        "id": content.id,
                        "title": content.title,
                        "content_type": content.content_type,
                        "order": content.order,
                        "is_completed": content.id in completed_ids,
                    }
                    for content in module.contents
                ],
            }
            for module in course.modules
        ],
    }
