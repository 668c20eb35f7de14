from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from .. import schemas
from ..database import get_db
from ..security import admin_only
from ..services import promotions as promotion_service

router = APIRouter(tags=["promotions"])


@router.post("/promotions/validate")
def validate_promotion(data: schemas.PromotionValidate, db: Session = Depends(get_db)):
    """Preview a code against a price. Usage counters are untouched."""
    return promotion_service.validate_code(db, data.code, data.price)


@router.get("/promotions", response_model=List[schemas.PromotionOut], dependencies=[Depends(admin_only)])
def list_promotions(db: Session = Depends(get_db)):
    return promotion_service.list_promotions(db)


@router.get("/promotions/{promotion_id}", response_model=schemas.PromotionOut, dependencies=[Depends(admin_only)])
def get_promotion(promotion_id: int, db: Session = Depends(get_db)):
    return promotion_service.get_promotion(db, promotion_id)


@router.post("/promotions", response_model=schemas.PromotionOut, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(admin_only)])
def create_promotion(data: schemas.PromotionCreate, db: Session = Depends(get_db)):
    return promotion_service.create_promotion(db, data)


@router.put("/promotions/{promotion_id}", response_model=schemas.PromotionOut, dependencies=[Depends(admin_only)])
def update_promotion(promotion_id: int, data: schemas.PromotionUpdate, db: Session = Depends(get_db)):
    return promotion_service.update_promotion(db, promotion_id, data)


@router.delete("/promotions/{promotion_id}", dependencies=[Depends(admin_only)])
def delete_promotion(promotion_id: int, db: Session = Depends(get_db)):
    promotion_service.delete_promotion(db, promotion_id)
    return {"message": "Promotion deleted successfully"}
