import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from .. import models, schemas
from ..database import get_db
from ..errors import ServiceError
from ..payments import PaymentGateway, get_payment_gateway
from ..security import student_only
from ..services import enrollment as enrollment_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["enrollment"])


@router.post("/enroll/checkout/{course_id}", response_model=schemas.CheckoutResponse)
def checkout(course_id: int, data: Optional[schemas.CheckoutRequest] = None,
             current_user: models.User = Depends(student_only),
             gateway: PaymentGateway = Depends(get_payment_gateway),
             db: Session = Depends(get_db)):
    """Enroll the caller and return where to pay. Free courses are confirmed immediately."""
    return enrollment_service.checkout_course(
        db, gateway,
        course_id=course_id,
        student_id=current_user.id,
        promotion_code=data.promotion_code if data else None,
    )


@router.post("/stripe-webhook")
async def stripe_webhook(request: Request, stripe_signature: Optional[str] = Header(None),
                         gateway: PaymentGateway = Depends(get_payment_gateway),
                         db: Session = Depends(get_db)):
    # signature covers the raw bytes, so the body is never parsed by FastAPI
    payload = await request.body()
    try:
        return await run_in_threadpool(enrollment_service.handle_webhook, db, gateway, payload, stripe_signature)
    except ServiceError as e:
        logger.warning("Webhook rejected: %s (%s)", e.message, e.code)
        return JSONResponse(status_code=400, content={"error": f"Webhook Error: {e.message}", "code": e.code})
    except Exception as e:
        db.rollback()
        logger.exception("Webhook processing failed")
        return JSONResponse(status_code=400, content={"error": f"Webhook Error: {e}", "code": "WEBHOOK_FAILED"})


@router.get("/enroll/my-courses")
def my_courses(current_user: models.User = Depends(student_only), db: Session = Depends(get_db)):
    return enrollment_service.list_my_enrollments(db, current_user.id)
