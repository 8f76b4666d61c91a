from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.user import User
from app.schemas.settings import OperatingHours
from app.services import settings as settings_service
from app.services.auth import require_admin

router = APIRouter()


@router.get("/operating-hours", response_model=OperatingHours)
def read_operating_hours(db: Session = Depends(get_db)):
    return settings_service.get_operating_hours(db)


@router.put("/operating-hours", response_model=OperatingHours)
def update_operating_hours(
    hours: OperatingHours,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    return settings_service.update_operating_hours(db, hours, current_user.email)


@router.post("/operating-hours/reset", response_model=OperatingHours)
def reset_operating_hours(
    db: Session = Depends(get_db), current_user: User = Depends(require_admin)
):
    return settings_service.reset_operating_hours(db, current_user.email)
