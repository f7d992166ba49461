from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session

from pitchmatch.database.models import (
    InvestorMatch,
    Message,
    PitchDeck,
    SavedStartup,
    Startup,
    User,
)

# Columns a founder may change after posting
EDITABLE_STARTUP_FIELDS = (
    "title",
    "description",
    "problem",
    "solution",
    "target_market",
    "business_model",
    "stage",
    "industry",
    "geography",
    "funding_ask",
    "tags",
)

# Columns the AI orchestrator writes
AI_STARTUP_FIELDS = ("ai_score", "ai_score_breakdown", "market_analysis")


@dataclass
class StartupFilters:
    industry: Optional[str] = None
    min_score: Optional[int] = None
    max_score: Optional[int] = None
    business_model: Optional[str] = None
    stage: Optional[str] = None
    geography: Optional[str] = None
    search: Optional[str] = None


# --------------------------------------------------------------------------- #
# Users
# --------------------------------------------------------------------------- #
def get_user(db: Session, user_id: str) -> Optional[User]:
    """Return the user row or None."""
    return db.query(User).filter(User.id == user_id).first()


def upsert_user(db: Session, data: Dict[str, Any]) -> User:
    """
    Insert the user, or refresh the identity fields (email, names, avatar)
    the token carries for an existing row. Role and profile fields are
    never touched here.
    """
    user = get_user(db, data["id"])
    if user is None:
        user = User(**data)
        db.add(user)
    else:
        for field in ("email", "first_name", "last_name", "profile_image_url"):
            if data.get(field) is not None:
                setattr(user, field, data[field])
        user.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(user)
    return user


def update_user_role(db: Session, user_id: str, role: Optional[str]) -> Optional[User]:
    user = get_user(db, user_id)
    if not user:
        return None
    user.role = role
    user.updated_at = datetime.utcnow()
    db.commit()
    return user


def update_user_profile(
    db: Session,
    user_id: str,
    bio: Optional[str] = None,
    company: Optional[str] = None,
    investment_focus: Optional[List[str]] = None,
) -> Optional[User]:
    user = get_user(db, user_id)
    if not user:
        return None
    user.bio = bio
    user.company = company
    user.investment_focus = investment_focus
    user.updated_at = datetime.utcnow()
    db.commit()
    return user


def get_investors(db: Session) -> List[User]:
    return (
        db.query(User)
        .filter(User.role == "investor", User.deleted_at.is_(None))
        .order_by(User.created_at)
        .all()
    )


def get_all_users(db: Session) -> List[User]:
    return db.query(User).filter(User.deleted_at.is_(None)).order_by(User.created_at).all()


def soft_delete_user(db: Session, user_id: str) -> Optional[User]:
    """
    Anonymise the account: rewrite the email, clear the role and stamp
    `deleted_at`. Messages the user exchanged are kept.
    """
    user = get_user(db, user_id)
    if not user:
        return None
    user.email = f"deleted-{user.id}@deleted.local"
    user.role = None
    user.deleted_at = datetime.utcnow()
    user.updated_at = user.deleted_at
    db.commit()
    return user


# --------------------------------------------------------------------------- #
# Startups
# --------------------------------------------------------------------------- #
def create_startup(db: Session, founder_id: str, data: Dict[str, Any]) -> Startup:
    startup = Startup(founder_id=founder_id, **data)
    db.add(startup)
    db.commit()
    db.refresh(startup)
    return startup


def get_startup(db: Session, startup_id: str) -> Optional[Startup]:
    return db.query(Startup).filter(Startup.id == startup_id).first()


def get_startups_by_founder(db: Session, founder_id: str) -> List[Startup]:
    return (
        db.query(Startup)
        .filter(Startup.founder_id == founder_id)
        .order_by(Startup.created_at.desc())
        .all()
    )


def get_all_startups(db: Session, filters: Optional[StartupFilters] = None) -> List[Startup]:
    """
    Compose the marketplace listing query. Every filter that is set is
    AND-ed; `search` matches title OR description case-insensitively.
    Highest AI score first, unscored ideas last, newest first on ties.
    """
    query = db.query(Startup)
    conditions = []

    if filters is not None:
        if filters.industry:
            conditions.append(Startup.industry == filters.industry)
        if filters.min_score is not None:
            conditions.append(Startup.ai_score >= filters.min_score)
        if filters.max_score is not None:
            conditions.append(Startup.ai_score <= filters.max_score)
        if filters.business_model:
            conditions.append(Startup.business_model == filters.business_model)
        if filters.stage:
            conditions.append(Startup.stage == filters.stage)
        if filters.geography:
            conditions.append(Startup.geography == filters.geography)
        if filters.search:
            pattern = f"%{filters.search}%"
            conditions.append(
                or_(Startup.title.ilike(pattern), Startup.description.ilike(pattern))
            )

    if conditions:
        query = query.filter(and_(*conditions))

    return query.order_by(
        Startup.ai_score.desc().nulls_last(),
        Startup.created_at.desc(),
    ).all()


def update_startup(db: Session, startup_id: str, data: Dict[str, Any]) -> Optional[Startup]:
    """Apply editable or AI-owned fields; anything else in `data` is ignored."""
    startup = get_startup(db, startup_id)
    if not startup:
        return None
    allowed = EDITABLE_STARTUP_FIELDS + AI_STARTUP_FIELDS
    for key, value in data.items():
        if key in allowed:
            setattr(startup, key, value)
    startup.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(startup)
    return startup


def delete_startup(db: Session, startup_id: str) -> None:
    """
    Delete the startup together with its deck, saves and matches.
    Messages that referenced it keep their content but lose the link.
    """
    startup = get_startup(db, startup_id)
    if not startup:
        return
    db.query(Message).filter(Message.startup_id == startup_id).update(
        {Message.startup_id: None}, synchronize_session=False
    )
    db.delete(startup)
    db.commit()


def increment_startup_view_count(db: Session, startup_id: str) -> None:
    db.query(Startup).filter(Startup.id == startup_id).update(
        {Startup.view_count: Startup.view_count + 1}, synchronize_session=False
    )
    db.commit()


def count_startups(db: Session) -> int:
    return db.query(func.count(Startup.id)).scalar() or 0


# --------------------------------------------------------------------------- #
# Pitch decks
# --------------------------------------------------------------------------- #
def create_pitch_deck(db: Session, startup_id: str, slides: List[Dict[str, Any]]) -> PitchDeck:
    """Replace any existing deck for the startup."""
    db.query(PitchDeck).filter(PitchDeck.startup_id == startup_id).delete(
        synchronize_session=False
    )
    deck = PitchDeck(startup_id=startup_id, slides=slides)
    db.add(deck)
    db.commit()
    db.refresh(deck)
    return deck


def get_pitch_deck(db: Session, startup_id: str) -> Optional[PitchDeck]:
    return db.query(PitchDeck).filter(PitchDeck.startup_id == startup_id).first()


# --------------------------------------------------------------------------- #
# Messages
# --------------------------------------------------------------------------- #
def create_message(
    db: Session,
    sender_id: str,
    recipient_id: str,
    content: str,
    startup_id: Optional[str] = None,
) -> Message:
    message = Message(
        sender_id=sender_id,
        recipient_id=recipient_id,
        startup_id=startup_id,
        content=content,
    )
    db.add(message)
    db.commit()
    db.refresh(message)
    return message


def get_message(db: Session, message_id: str) -> Optional[Message]:
    return db.query(Message).filter(Message.id == message_id).first()


def get_messages(db: Session, user_id: str) -> List[Message]:
    """Everything the user sent or received, newest first."""
    return (
        db.query(Message)
        .filter(or_(Message.sender_id == user_id, Message.recipient_id == user_id))
        .order_by(Message.created_at.desc())
        .all()
    )


def get_conversation(
    db: Session, user_a: str, user_b: str, startup_id: Optional[str] = None
) -> List[Message]:
    """Messages between two users in either direction, oldest first."""
    query = db.query(Message).filter(
        or_(
            and_(Message.sender_id == user_a, Message.recipient_id == user_b),
            and_(Message.sender_id == user_b, Message.recipient_id == user_a),
        )
    )
    if startup_id:
        query = query.filter(Message.startup_id == startup_id)
    return query.order_by(Message.created_at.asc()).all()


def mark_message_as_read(db: Session, message_id: str) -> None:
    message = get_message(db, message_id)
    if not message:
        return
    message.read = True
    db.commit()


def get_unread_message_count(db: Session, user_id: str) -> int:
    return (
        db.query(func.count(Message.id))
        .filter(Message.recipient_id == user_id, Message.read.is_(False))
        .scalar()
        or 0
    )


def get_message_count(db: Session) -> int:
    return db.query(func.count(Message.id)).scalar() or 0


# --------------------------------------------------------------------------- #
# Saved startups
# --------------------------------------------------------------------------- #
def _get_saved(db: Session, investor_id: str, startup_id: str) -> Optional[SavedStartup]:
    return (
        db.query(SavedStartup)
        .filter(SavedStartup.investor_id == investor_id, SavedStartup.startup_id == startup_id)
        .first()
    )


def save_startup(db: Session, investor_id: str, startup_id: str) -> SavedStartup:
    """Bookmark a startup. Saving twice returns the original bookmark."""
    existing = _get_saved(db, investor_id, startup_id)
    if existing:
        return existing
    saved = SavedStartup(investor_id=investor_id, startup_id=startup_id)
    db.add(saved)
    db.commit()
    db.refresh(saved)
    return saved


def unsave_startup(db: Session, investor_id: str, startup_id: str) -> None:
    db.query(SavedStartup).filter(
        SavedStartup.investor_id == investor_id, SavedStartup.startup_id == startup_id
    ).delete(synchronize_session=False)
    db.commit()


def get_saved_startups(db: Session, investor_id: str) -> List[SavedStartup]:
    return (
        db.query(SavedStartup)
        .filter(SavedStartup.investor_id == investor_id)
        .order_by(SavedStartup.saved_at.desc())
        .all()
    )


def is_startup_saved(db: Session, investor_id: str, startup_id: str) -> bool:
    return _get_saved(db, investor_id, startup_id) is not None


# --------------------------------------------------------------------------- #
# Investor matches
# --------------------------------------------------------------------------- #
def create_investor_matches(
    db: Session, startup_id: str, matches: Iterable[Dict[str, Any]]
) -> None:
    """Replace the startup's matches with `matches` ({investor_id, match_score})."""
    db.query(InvestorMatch).filter(InvestorMatch.startup_id == startup_id).delete(
        synchronize_session=False
    )
    for match in matches:
        db.add(
            InvestorMatch(
                startup_id=startup_id,
                investor_id=match["investor_id"],
                match_score=match["match_score"],
            )
        )
    db.commit()


def get_investor_matches(db: Session, startup_id: str) -> List[InvestorMatch]:
    return (
        db.query(InvestorMatch)
        .filter(InvestorMatch.startup_id == startup_id)
        .order_by(InvestorMatch.match_score.desc())
        .all()
    )
