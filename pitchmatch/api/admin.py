import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from pitchmatch.api.dependencies import require_role
from pitchmatch.api.schemas import AdminStatsResponse, StartupOut, SuccessResponse, UserOut
from pitchmatch.database import crud
from pitchmatch.database.database import get_db
from pitchmatch.database.models import User

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/admin", tags=["Admin"])

require_admin = require_role("admin")


@router.get("/stats", response_model=AdminStatsResponse)
def platform_stats(
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
) -> AdminStatsResponse:
    users = crud.get_all_users(db)
    return AdminStatsResponse(
        total_users=len(users),
        total_founders=sum(1 for u in users if u.role == "founder"),
        total_investors=sum(1 for u in users if u.role == "investor"),
        total_startups=crud.count_startups(db),
        total_messages=crud.get_message_count(db),
    )


@router.get("/users", response_model=List[UserOut])
def list_users(
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
) -> List[UserOut]:
    return [UserOut.model_validate(u) for u in crud.get_all_users(db)]


@router.get("/startups", response_model=List[StartupOut])
def list_startups(
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
) -> List[StartupOut]:
    return [StartupOut.model_validate(s) for s in crud.get_all_startups(db)]


@router.delete("/users/{user_id}", response_model=SuccessResponse)
def delete_user(
    user_id: str,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
) -> SuccessResponse:
    """Remove the user's startups, then soft-delete the account."""
    target = crud.get_user(db, user_id)
    if not target or target.deleted_at is not None:
        raise HTTPException(status_code=404, detail="User not found")
    if target.id == admin.id:
        raise HTTPException(status_code=400, detail="Admins cannot delete themselves")

    for startup in crud.get_startups_by_founder(db, user_id):
        crud.delete_startup(db, startup.id)
    crud.soft_delete_user(db, user_id)

    logger.info("Admin %s deleted user %s", admin.id, user_id)
    return SuccessResponse()


@router.delete("/startups/{startup_id}", response_model=SuccessResponse)
def delete_startup(
    startup_id: str,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
) -> SuccessResponse:
    if not crud.get_startup(db, startup_id):
        raise HTTPException(status_code=404, detail="Startup not found")
    crud.delete_startup(db, startup_id)
    logger.info("Admin %s deleted startup %s", admin.id, startup_id)
    return SuccessResponse()
