from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.db import get_db
from models.enums import Role
from models.user import User
from schemas.stats import FarmerStatsOut, PublicStatsOut
from security.dependencies import require_role
from services import stats as stats_service

router = APIRouter(prefix="/api", tags=["stats"])


@router.get("/farmer-stats", response_model=FarmerStatsOut)
def farmer_stats(farmer: User = Depends(require_role(Role.FARMER)), db: Session = Depends(get_db)):
    return stats_service.farmer_stats(db, farmer.id)


@router.get("/public-stats", response_model=PublicStatsOut)
def public_stats(db: Session = Depends(get_db)):
    return stats_service.public_stats(db)
