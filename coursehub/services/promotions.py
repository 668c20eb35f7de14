import logging
from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from .. import models, schemas
from ..errors import BadRequest, Conflict, NotFound

logger = logging.getLogger(__name__)


def calculate_discount(original_price: float, promotion) -> Tuple[float, float]:
    """Return ``(discounted_price, discount_amount)`` for a price.

    Pure function: usage counters are left alone. ``promotion`` only needs the
    discount attributes, so both ORM rows and plain objects work.
    """
    if promotion.min_purchase_amount and original_price < promotion.min_purchase_amount:
        return original_price, 0.0

    discount_amount = 0.0
    if promotion.discount_type == models.DiscountType.PERCENTAGE.value:
        discount_amount = original_price * promotion.discount_value / 100
        if promotion.max_discount_amount and discount_amount > promotion.max_discount_amount:
            discount_amount = promotion.max_discount_amount
    elif promotion.discount_type == models.DiscountType.FIXED.value:
        discount_amount = promotion.discount_value

    discount_amount = round(min(discount_amount, original_price), 2)
    discounted_price = round(max(0.0, original_price - discount_amount), 2)
    return discounted_price, discount_amount


def get_active_promotion(db: Session, code: str, now: Optional[datetime] = None) -> Optional[models.Promotion]:
    """Look a code up for checkout. Inactive, out-of-window or exhausted codes return None."""
    now = now or datetime.utcnow()
    promotion = db.query(models.Promotion).filter(
        models.Promotion.code == code.strip().upper(),
        models.Promotion.is_active.is_(True),
        models.Promotion.start_date <= now,
        models.Promotion.end_date > now,
    ).first()
    if not promotion:
        return None
    if promotion.usage_limit is not None and promotion.used_count >= promotion.usage_limit:
        return None
    return promotion


def increment_usage(db: Session, promotion_id: int) -> None:
    # single UPDATE so concurrent successes do not lose increments
    db.query(models.Promotion).filter(models.Promotion.id == promotion_id).update(
        {models.Promotion.used_count: models.Promotion.used_count + 1}, synchronize_session=False)


def _validate_fields(discount_type: str, discount_value: float, start_date: datetime, end_date: datetime) -> None:
    if start_date >= end_date:
        raise BadRequest("INVALID_DATES", "End date must be after start date")
    if discount_type == models.DiscountType.PERCENTAGE.value and not 0 <= discount_value <= 100:
        raise BadRequest("INVALID_DISCOUNT", "Percentage discount must be between 0 and 100")
    if discount_type == models.DiscountType.FIXED.value and discount_value < 0:
        raise BadRequest("INVALID_DISCOUNT", "Fixed discount must be positive")


def _normalize_code(code: str) -> str:
    code = code.strip().upper()
    if not code:
        raise BadRequest("INVALID_CODE", "Promotion code must not be blank")
    return code


def list_promotions(db: Session):
    return db.query(models.Promotion).order_by(models.Promotion.created_at.desc(), models.Promotion.id.desc()).all()


def get_promotion(db: Session, promotion_id: int) -> models.Promotion:
    promotion = db.get(models.Promotion, promotion_id)
    if not promotion:
        raise NotFound("PROMOTION_NOT_FOUND", "Promotion not found")
    return promotion


def create_promotion(db: Session, data: schemas.PromotionCreate) -> models.Promotion:
    code = _normalize_code(data.code)
    if db.query(models.Promotion).filter(models.Promotion.code == code).first():
        raise Conflict("PROMOTION_EXISTS", "Promotion code already exists")
    _validate_fields(data.discount_type.value, data.discount_value, data.start_date, data.end_date)

    promotion = models.Promotion(**data.model_dump(exclude={"code", "discount_type"}),
                                 code=code, discount_type=data.discount_type.value)
    db.add(promotion)
    db.commit()
    db.refresh(promotion)
    logger.info("Promotion %s created", promotion.code)
    return promotion


def update_promotion(db: Session, promotion_id: int, data: schemas.PromotionUpdate) -> models.Promotion:
    promotion = get_promotion(db, promotion_id)
    changes = data.model_dump(exclude_unset=True)

    if changes.get("code") is not None:
        changes["code"] = _normalize_code(changes["code"])
        if changes["code"] != promotion.code and \
                db.query(models.Promotion).filter(models.Promotion.code == changes["code"]).first():
            raise Conflict("PROMOTION_EXISTS", "Promotion code already exists")
    if changes.get("discount_type"):
        changes["discount_type"] = changes["discount_type"].value

    _validate_fields(
        changes.get("discount_type") or promotion.discount_type,
        changes["discount_value"] if changes.get("discount_value") is not None else promotion.discount_value,
        changes.get("start_date") or promotion.start_date,
        changes.get("end_date") or promotion.end_date,
    )

    for field, value in changes.items():
        if value is None and field in ("code", "discount_type", "discount_value", "start_date", "end_date",
                                       "is_active"):
            continue
        setattr(promotion, field, value)
    db.commit()
    db.refresh(promotion)
    return promotion


def delete_promotion(db: Session, promotion_id: int) -> None:
    promotion = get_promotion(db, promotion_id)
    db.delete(promotion)
    db.commit()


def validate_code(db: Session, code: str, price: float) -> dict:
    promotion = get_active_promotion(db, code)
    if not promotion:
        raise NotFound("PROMOTION_INVALID", "Invalid or expired promotion code")

    discounted_price, discount_amount = calculate_discount(price, promotion)
    return {
        "promotion": {
            "id": promotion.id,
            "code": promotion.code,
            "description": promotion.description,
            "discount_type": promotion.discount_type,
            "discount_value": promotion.discount_value,
        },
        "original_price": price,
        "discounted_price": discounted_price,
        "discount_amount": discount_amount,
    }
