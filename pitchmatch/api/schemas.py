from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

StageLiteral = Literal["idea", "mvp", "growth", "scale"]
SlideType = Literal["problem", "solution", "market", "business_model", "ask"]


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# --------------------------------------------------------------------------- #
# AI payloads
# --------------------------------------------------------------------------- #
class AIScoreBreakdown(BaseModel):
    market_potential: int = Field(50, ge=0, le=100)
    feasibility: int = Field(50, ge=0, le=100)
    innovation: int = Field(50, ge=0, le=100)
    scalability: int = Field(50, ge=0, le=100)


class IdeaScore(BaseModel):
    score: int = Field(..., ge=0, le=100)
    breakdown: AIScoreBreakdown


class MarketAnalysis(BaseModel):
    market_size: str
    competition: List[str] = []
    risks: List[str] = []
    opportunities: List[str] = []


class PitchSlide(BaseModel):
    title: str
    content: str
    type: SlideType


class InvestorMatchResult(BaseModel):
    investor_id: str
    match_score: int = Field(..., ge=0, le=100)


# --------------------------------------------------------------------------- #
# Users
# --------------------------------------------------------------------------- #
class UserOut(ORMModel):
    id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None
    role: Optional[str] = None
    bio: Optional[str] = None
    company: Optional[str] = None
    investment_focus: Optional[List[str]] = None
    created_at: datetime
    updated_at: datetime


class RoleUpdate(BaseModel):
    role: str


class ProfileUpdate(BaseModel):
    bio: Optional[str] = None
    company: Optional[str] = None
    investment_focus: Optional[List[str]] = None


# --------------------------------------------------------------------------- #
# Startups
# --------------------------------------------------------------------------- #
class StartupIn(BaseModel):
    """Inbound schema for POST /api/startups."""
    title: str = Field(..., min_length=5, max_length=200)
    description: str = Field(..., min_length=50)
    problem: str = Field(..., min_length=30)
    solution: str = Field(..., min_length=30)
    target_market: str = Field(..., min_length=20)
    industry: str = Field(..., min_length=1, max_length=100)
    stage: StageLiteral
    business_model: Optional[str] = Field(None, max_length=100)
    geography: Optional[str] = Field(None, max_length=100)
    funding_ask: Optional[str] = Field(None, max_length=50)
    tags: Optional[List[str]] = None


class StartupUpdate(BaseModel):
    """PATCH body – every field optional, same limits as creation."""
    title: Optional[str] = Field(None, min_length=5, max_length=200)
    description: Optional[str] = Field(None, min_length=50)
    problem: Optional[str] = Field(None, min_length=30)
    solution: Optional[str] = Field(None, min_length=30)
    target_market: Optional[str] = Field(None, min_length=20)
    industry: Optional[str] = Field(None, min_length=1, max_length=100)
    stage: Optional[StageLiteral] = None
    business_model: Optional[str] = Field(None, max_length=100)
    geography: Optional[str] = Field(None, max_length=100)
    funding_ask: Optional[str] = Field(None, max_length=50)
    tags: Optional[List[str]] = None

    @field_validator("title", "description", "problem", "solution", "target_market", "industry", "stage")
    @classmethod
    def required_fields_not_null(cls, value):
        # Omitted means unchanged; an explicit null would blank a required column
        if value is None:
            raise ValueError("may be omitted but not null")
        return value


class StartupOut(ORMModel):
    id: str
    founder_id: str
    title: str
    description: str
    problem: str
    solution: str
    target_market: str
    business_model: Optional[str] = None
    stage: Optional[str] = None
    industry: Optional[str] = None
    geography: Optional[str] = None
    funding_ask: Optional[str] = None
    tags: Optional[List[str]] = None
    ai_score: Optional[int] = None
    ai_score_breakdown: Optional[Dict[str, Any]] = None
    market_analysis: Optional[Dict[str, Any]] = None
    view_count: int = 0
    created_at: datetime
    updated_at: datetime


class StartupDetailOut(StartupOut):
    founder: Optional[UserOut] = None


class PitchDeckOut(ORMModel):
    id: str
    startup_id: str
    slides: List[Dict[str, Any]]
    generated_at: datetime


class InvestorMatchOut(ORMModel):
    id: str
    startup_id: str
    investor_id: str
    match_score: Optional[int] = None
    created_at: datetime
    investor: Optional[UserOut] = None


# --------------------------------------------------------------------------- #
# Messages
# --------------------------------------------------------------------------- #
class MessageIn(BaseModel):
    recipient_id: str
    startup_id: Optional[str] = None
    content: str = Field(..., min_length=1, max_length=5000)


class MessageOut(ORMModel):
    id: str
    sender_id: str
    recipient_id: str
    startup_id: Optional[str] = None
    content: str
    read: bool
    created_at: datetime


class MessageWithUsersOut(MessageOut):
    sender: Optional[UserOut] = None
    recipient: Optional[UserOut] = None


class UnreadCountResponse(BaseModel):
    count: int


# --------------------------------------------------------------------------- #
# Saved startups
# --------------------------------------------------------------------------- #
class SavedStartupOut(ORMModel):
    id: str
    investor_id: str
    startup_id: str
    saved_at: datetime


class SavedStartupWithDetailsOut(SavedStartupOut):
    startup: Optional[StartupOut] = None


class SavedCheckResponse(BaseModel):
    is_saved: bool


# --------------------------------------------------------------------------- #
# Admin / misc
# --------------------------------------------------------------------------- #
class AdminStatsResponse(BaseModel):
    total_users: int
    total_founders: int
    total_investors: int
    total_startups: int
    total_messages: int


class SuccessResponse(BaseModel):
    success: bool = True
