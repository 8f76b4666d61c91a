from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List, Optional

from app.database import get_db
from app.crud import court as court_crud
from app.crud import pricing_rule as crud
from app.schemas.pricing_rule import (
    PricingRuleCreate,
    PricingRuleResponse,
    PricingRuleUpdate,
)
from app.services.auth import require_admin
from app.models.user import User

router = APIRouter()


@router.get("/", response_model=List[PricingRuleResponse])
def read_pricing_rules(
    skip: int = 0,
    limit: int = 100,
    court_id: Optional[int] = None,
    active_only: bool = False,
    db: Session = Depends(get_db),
):
    return crud.get_pricing_rules(
        db, skip=skip, limit=limit, court_id=court_id, active_only=active_only
    )


@router.post("/", response_model=PricingRuleResponse)
def create_pricing_rule(
    rule: PricingRuleCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    if rule.court_id is not None and court_crud.get_court(db, rule.court_id) is None:
        raise HTTPException(status_code=404, detail="Court not found")
    return crud.create_pricing_rule(db, rule)


@router.put("/{rule_id}", response_model=PricingRuleResponse)
def update_pricing_rule(
    rule_id: int,
    rule: PricingRuleUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    db_rule = crud.update_pricing_rule(db, rule_id, rule)
    if db_rule is None:
        raise HTTPException(status_code=404, detail="Pricing rule not found")
    return db_rule


@router.delete("/{rule_id}")
def deactivate_pricing_rule(
    rule_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    if not crud.deactivate_pricing_rule(db, rule_id):
        raise HTTPException(status_code=404, detail="Pricing rule not found")
    return {"message": "Pricing rule deactivated"}
