import logging
import re
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from pitchmatch.api.ai.agents import AIServiceError, is_ai_configured
from pitchmatch.api.ai.orchestrator import analyze_startup, generate_pitch_deck
from pitchmatch.api.ai.sanitize_html import cleanse_json, sanitize_plain_text
from pitchmatch.api.dependencies import get_current_user
from pitchmatch.api.schemas import (
    InvestorMatchOut,
    PitchDeckOut,
    ProfileUpdate,
    RoleUpdate,
    StartupDetailOut,
    StartupIn,
    StartupOut,
    StartupUpdate,
    SuccessResponse,
    UserOut,
)
from pitchmatch.database import crud
from pitchmatch.database.database import get_db
from pitchmatch.database.models import Startup, User
from pitchmatch.storage.pdfgenerator import generate_pdf

logger = logging.getLogger(__name__)
router = APIRouter()

SELECTABLE_ROLES = ("founder", "investor")


def _get_startup_or_404(db: Session, startup_id: str) -> Startup:
    startup = crud.get_startup(db, startup_id)
    if not startup:
        logger.warning("Startup with id %s not found", startup_id)
        raise HTTPException(status_code=404, detail="Startup not found")
    return startup


def _get_owned_startup(db: Session, startup_id: str, user: User) -> Startup:
    startup = _get_startup_or_404(db, startup_id)
    if startup.founder_id != user.id:
        raise HTTPException(status_code=403, detail="Not authorized")
    return startup


# ──────────────────────────────────────────────────────────────────────────────
#  AUTH / PROFILE
# ──────────────────────────────────────────────────────────────────────────────
@router.get("/auth/user", response_model=UserOut, tags=["Auth"])
def read_current_user(user: User = Depends(get_current_user)) -> UserOut:
    return UserOut.model_validate(user)


@router.post("/auth/role", response_model=UserOut, tags=["Auth"])
def update_role(
    body: RoleUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> UserOut:
    """Pick a marketplace side. Admin cannot be self-assigned."""
    if body.role not in SELECTABLE_ROLES:
        raise HTTPException(status_code=400, detail="Invalid role")
    updated = crud.update_user_role(db, user.id, body.role)
    logger.info("User %s selected role %s", user.id, body.role)
    return UserOut.model_validate(updated)


@router.patch("/auth/profile", response_model=UserOut, tags=["Auth"])
def update_profile(
    body: ProfileUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> UserOut:
    data = cleanse_json(body.model_dump(), sanitize_plain_text)
    updated = crud.update_user_profile(
        db,
        user.id,
        bio=data["bio"],
        company=data["company"],
        investment_focus=data["investment_focus"],
    )
    if not updated:
        raise HTTPException(status_code=404, detail="User not found")
    return UserOut.model_validate(updated)


@router.get("/users/{user_id}", response_model=UserOut, tags=["Users"])
def read_user(
    user_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> UserOut:
    target = crud.get_user(db, user_id)
    if not target:
        raise HTTPException(status_code=404, detail="User not found")
    return UserOut.model_validate(target)


# ──────────────────────────────────────────────────────────────────────────────
#  STARTUPS
# ──────────────────────────────────────────────────────────────────────────────
@router.post("/startups", response_model=StartupOut, status_code=status.HTTP_201_CREATED, tags=["Startups"])
def create_startup(
    body: StartupIn,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> StartupOut:
    """
    Post a new startup idea (founders only).

    When an OpenAI key is configured the idea is scored, analysed and
    matched against investors before the response is returned. AI failures
    are logged and the unscored startup is returned.
    """
    if user.role != "founder":
        raise HTTPException(status_code=403, detail="Only founders can create startups")

    startup = crud.create_startup(db, user.id, cleanse_json(body.model_dump(), sanitize_plain_text))
    logger.info("Startup %s created by founder %s", startup.id, user.id)

    if not is_ai_configured():
        logger.info("OpenAI API key not configured - skipping AI analysis")
        return StartupOut.model_validate(startup)

    try:
        analysis = analyze_startup(startup, crud.get_investors(db))
    except AIServiceError as e:
        logger.error("AI processing error for startup %s: %s", startup.id, e, exc_info=True)
        return StartupOut.model_validate(startup)

    startup = crud.update_startup(
        db,
        startup.id,
        {
            "ai_score": analysis["ai_score"],
            "ai_score_breakdown": analysis["ai_score_breakdown"],
            "market_analysis": analysis["market_analysis"],
        },
    )
    if analysis["matches"]:
        crud.create_investor_matches(db, startup.id, analysis["matches"])

    return StartupOut.model_validate(startup)


@router.get("/startups", response_model=List[StartupOut], tags=["Startups"])
def list_startups(
    industry: Optional[str] = None,
    min_score: Optional[int] = Query(None, ge=0, le=100),
    max_score: Optional[int] = Query(None, ge=0, le=100),
    business_model: Optional[str] = None,
    stage: Optional[str] = None,
    geography: Optional[str] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
) -> List[StartupOut]:
    """Public marketplace listing with optional filters."""
    filters = crud.StartupFilters(
        industry=industry,
        min_score=min_score,
        max_score=max_score,
        business_model=business_model,
        stage=stage,
        geography=geography,
        search=search,
    )
    return [StartupOut.model_validate(s) for s in crud.get_all_startups(db, filters)]


@router.get("/startups/my", response_model=List[StartupOut], tags=["Startups"])
def list_my_startups(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> List[StartupOut]:
    return [StartupOut.model_validate(s) for s in crud.get_startups_by_founder(db, user.id)]


@router.get("/startups/{startup_id}", response_model=StartupDetailOut, tags=["Startups"])
def read_startup(startup_id: str, db: Session = Depends(get_db)) -> StartupDetailOut:
    """Public detail view; every read counts as a view."""
    startup = _get_startup_or_404(db, startup_id)
    crud.increment_startup_view_count(db, startup_id)
    db.refresh(startup)
    return StartupDetailOut.model_validate(startup)


@router.patch("/startups/{startup_id}", response_model=StartupOut, tags=["Startups"])
def edit_startup(
    startup_id: str,
    body: StartupUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> StartupOut:
    _get_owned_startup(db, startup_id, user)
    changes = cleanse_json(body.model_dump(exclude_unset=True), sanitize_plain_text)
    updated = crud.update_startup(db, startup_id, changes)
    return StartupOut.model_validate(updated)


@router.delete("/startups/{startup_id}", response_model=SuccessResponse, tags=["Startups"])
def remove_startup(
    startup_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> SuccessResponse:
    _get_owned_startup(db, startup_id, user)
    crud.delete_startup(db, startup_id)
    logger.info("Startup %s deleted by founder %s", startup_id, user.id)
    return SuccessResponse()


# ──────────────────────────────────────────────────────────────────────────────
#  PITCH DECKS
# ──────────────────────────────────────────────────────────────────────────────
@router.post("/startups/{startup_id}/pitch-deck", response_model=PitchDeckOut, tags=["Pitch Decks"])
def create_pitch_deck(
    startup_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> PitchDeckOut:
    """Generate (or regenerate) the five-slide deck for an owned startup."""
    startup = _get_owned_startup(db, startup_id, user)
    try:
        slides = generate_pitch_deck(startup)
    except AIServiceError as e:
        logger.error("Error generating pitch deck for %s: %s", startup_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to generate pitch deck")

    deck = crud.create_pitch_deck(db, startup.id, [s.model_dump() for s in slides])
    return PitchDeckOut.model_validate(deck)


@router.get("/startups/{startup_id}/pitch-deck", response_model=PitchDeckOut, tags=["Pitch Decks"])
def read_pitch_deck(startup_id: str, db: Session = Depends(get_db)) -> PitchDeckOut:
    deck = crud.get_pitch_deck(db, startup_id)
    if not deck:
        raise HTTPException(status_code=404, detail="Pitch deck not found")
    return PitchDeckOut.model_validate(deck)


@router.get("/startups/{startup_id}/pitch-deck/pdf", tags=["Pitch Decks"])
def download_pitch_deck_pdf(startup_id: str, db: Session = Depends(get_db)) -> Response:
    startup = _get_startup_or_404(db, startup_id)
    deck = crud.get_pitch_deck(db, startup_id)
    if not deck:
        raise HTTPException(status_code=404, detail="Pitch deck not found")

    founder = startup.founder
    founder_name = " ".join(p for p in (founder.first_name, founder.last_name) if p) if founder else ""
    pdf_bytes = generate_pdf(
        startup_title=startup.title,
        slides=deck.slides,
        founder_name=founder_name,
        company=(founder.company or "") if founder else "",
        generated_at=deck.generated_at,
    )
    filename = re.sub(r"[^A-Za-z0-9_-]+", "_", startup.title).strip("_") or "pitch_deck"
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}.pdf"'},
    )


# ──────────────────────────────────────────────────────────────────────────────
#  INVESTOR MATCHES
# ──────────────────────────────────────────────────────────────────────────────
@router.get("/startups/{startup_id}/matches", response_model=List[InvestorMatchOut], tags=["Startups"])
def read_matches(
    startup_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> List[InvestorMatchOut]:
    """Matched investors for a startup, best match first."""
    _get_startup_or_404(db, startup_id)
    return [InvestorMatchOut.model_validate(m) for m in crud.get_investor_matches(db, startup_id)]
