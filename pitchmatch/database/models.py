import datetime
import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship

from pitchmatch.database.database import Base

# JSONB on Postgres, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")

USER_ROLES = ("founder", "investor", "admin")
STARTUP_STAGES = ("idea", "mvp", "growth", "scale")


def _uuid() -> str:
    return str(uuid.uuid4())


class User(Base):
    """
    Marketplace account. The primary key is the identity provider's
    subject (Supabase auth user id), so rows are upserted on every login.
    """
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=_uuid)
    email = Column(String, unique=True)
    first_name = Column(String)
    last_name = Column(String)
    profile_image_url = Column(String)

    # 'founder' | 'investor' | 'admin' – null until the user picks one
    role = Column(String(20))
    bio = Column(Text)
    company = Column(String)

    # Investors only: list of industries / themes they back
    investment_focus = Column(JSONType)

    # Soft delete (admin moderation)
    deleted_at = Column(DateTime)

    created_at = Column(DateTime, default=datetime.datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime,
        default=datetime.datetime.utcnow,
        onupdate=datetime.datetime.utcnow,
        nullable=False,
    )

    startups = relationship("Startup", back_populates="founder")

    def __repr__(self):
        return f"<User id={self.id} role={self.role}>"


class Startup(Base):
    """A startup idea posted by a founder, plus its AI evaluation."""
    __tablename__ = "startups"

    id = Column(String, primary_key=True, default=_uuid)
    founder_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    problem = Column(Text, nullable=False)
    solution = Column(Text, nullable=False)
    target_market = Column(Text, nullable=False)
    business_model = Column(String(100))
    stage = Column(String(50))
    industry = Column(String(100), index=True)
    geography = Column(String(100))
    funding_ask = Column(String(50))
    tags = Column(JSONType)

    # Filled in by the AI orchestrator
    ai_score = Column(Integer)
    ai_score_breakdown = Column(JSONType)
    market_analysis = Column(JSONType)

    view_count = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=datetime.datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime,
        default=datetime.datetime.utcnow,
        onupdate=datetime.datetime.utcnow,
        nullable=False,
    )

    founder = relationship("User", back_populates="startups")
    pitch_deck = relationship(
        "PitchDeck",
        back_populates="startup",
        uselist=False,
        cascade="all, delete-orphan",
    )
    saved_by = relationship("SavedStartup", back_populates="startup", cascade="all, delete-orphan")
    investor_matches = relationship(
        "InvestorMatch", back_populates="startup", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<Startup id={self.id} founder_id={self.founder_id} ai_score={self.ai_score}>"


class PitchDeck(Base):
    __tablename__ = "pitch_decks"

    id = Column(String, primary_key=True, default=_uuid)
    startup_id = Column(String, ForeignKey("startups.id"), nullable=False, unique=True)

    # [{"title": ..., "content": ..., "type": "problem" | ... | "ask"}, ...]
    slides = Column(JSONType, nullable=False)
    generated_at = Column(DateTime, default=datetime.datetime.utcnow, nullable=False)

    startup = relationship("Startup", back_populates="pitch_deck")


class Message(Base):
    __tablename__ = "messages"

    id = Column(String, primary_key=True, default=_uuid)
    sender_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    recipient_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    startup_id = Column(String, ForeignKey("startups.id", ondelete="SET NULL"))
    content = Column(Text, nullable=False)
    read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.datetime.utcnow, nullable=False)

    sender = relationship("User", foreign_keys=[sender_id])
    recipient = relationship("User", foreign_keys=[recipient_id])

    def __repr__(self):
        return f"<Message id={self.id} sender={self.sender_id} recipient={self.recipient_id}>"


class SavedStartup(Base):
    __tablename__ = "saved_startups"
    __table_args__ = (
        UniqueConstraint("investor_id", "startup_id", name="uq_saved_startup_investor"),
    )

    id = Column(String, primary_key=True, default=_uuid)
    investor_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    startup_id = Column(String, ForeignKey("startups.id"), nullable=False)
    saved_at = Column(DateTime, default=datetime.datetime.utcnow, nullable=False)

    startup = relationship("Startup", back_populates="saved_by")


class InvestorMatch(Base):
    __tablename__ = "investor_matches"

    id = Column(String, primary_key=True, default=_uuid)
    startup_id = Column(String, ForeignKey("startups.id"), nullable=False, index=True)
    investor_id = Column(String, ForeignKey("users.id"), nullable=False)
    match_score = Column(Integer)
    created_at = Column(DateTime, default=datetime.datetime.utcnow, nullable=False)

    startup = relationship("Startup", back_populates="investor_matches")
    investor = relationship("User")
