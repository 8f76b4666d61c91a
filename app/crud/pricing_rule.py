from sqlalchemy import or_
from sqlalchemy.orm import Session
from typing import List, Optional

from app.models.pricing_rule import PricingRule
from app.schemas.pricing_rule import PricingRuleCreate, PricingRuleUpdate


def get_pricing_rule(db: Session, rule_id: int) -> Optional[PricingRule]:
    return db.query(PricingRule).filter(PricingRule.id == rule_id).first()


def get_pricing_rules(
    db: Session,
    skip: int = 0,
    limit: int = 100,
    court_id: Optional[int] = None,
    active_only: bool = False,
) -> List[PricingRule]:
    query = db.query(PricingRule)

    if court_id:
        query = query.filter(PricingRule.court_id == court_id)
    if active_only:
        query = query.filter(PricingRule.is_active == True)

    return query.order_by(PricingRule.id).offset(skip).limit(limit).all()


def get_candidate_rules(db: Session, court_id: int) -> List[PricingRule]:
    """Reglas activas aplicables a la cancha: específicas de ella o globales"""
    return (
        db.query(PricingRule)
        .filter(PricingRule.is_active == True)
        .filter(or_(PricingRule.court_id == court_id, PricingRule.court_id.is_(None)))
        .order_by(PricingRule.id)
        .all()
    )


def create_pricing_rule(db: Session, rule: PricingRuleCreate) -> PricingRule:
    db_rule = PricingRule(**rule.model_dump())
    db.add(db_rule)
    db.commit()
    db.refresh(db_rule)
    return db_rule


def update_pricing_rule(
    db: Session, rule_id: int, rule: PricingRuleUpdate
) -> Optional[PricingRule]:
    db_rule = get_pricing_rule(db, rule_id)
    if not db_rule:
        return None

    update_data = rule.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(db_rule, field, value)

    db.commit()
    db.refresh(db_rule)
    return db_rule


def deactivate_pricing_rule(db: Session, rule_id: int) -> bool:
    db_rule = get_pricing_rule(db, rule_id)
    if not db_rule:
        return False

    db_rule.is_active = False
    db.commit()
    return True
