import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from pitchmatch.api.ai.sanitize_html import sanitize_plain_text
from pitchmatch.api.dependencies import get_current_user, require_role
from pitchmatch.api.schemas import (
    MessageIn,
    MessageOut,
    MessageWithUsersOut,
    SavedCheckResponse,
    SavedStartupOut,
    SavedStartupWithDetailsOut,
    SuccessResponse,
    UnreadCountResponse,
)
from pitchmatch.database import crud
from pitchmatch.database.database import get_db
from pitchmatch.database.models import User
from pitchmatch.notifications.supabase_notifier import notify_new_message

logger = logging.getLogger(__name__)
router = APIRouter()


# ──────────────────────────────────────────────────────────────────────────────
#  MESSAGES  (clients poll these endpoints; there is no push channel)
# ──────────────────────────────────────────────────────────────────────────────
@router.post("/messages", response_model=MessageOut, status_code=status.HTTP_201_CREATED, tags=["Messages"])
def send_message(
    body: MessageIn,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> MessageOut:
    content = sanitize_plain_text(body.content)
    if not content:
        raise HTTPException(status_code=400, detail="Message content cannot be empty")
    if body.recipient_id == user.id:
        raise HTTPException(status_code=400, detail="Cannot send a message to yourself")

    recipient = crud.get_user(db, body.recipient_id)
    if not recipient or recipient.deleted_at is not None:
        raise HTTPException(status_code=404, detail="Recipient not found")
    if body.startup_id and not crud.get_startup(db, body.startup_id):
        raise HTTPException(status_code=404, detail="Startup not found")

    message = crud.create_message(
        db,
        sender_id=user.id,
        recipient_id=recipient.id,
        content=content,
        startup_id=body.startup_id,
    )
    logger.info("Message %s sent from %s to %s", message.id, user.id, recipient.id)

    notify_new_message(recipient.id, user.id, message.id, message.startup_id)
    return MessageOut.model_validate(message)


@router.get("/messages", response_model=List[MessageWithUsersOut], tags=["Messages"])
def list_messages(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> List[MessageWithUsersOut]:
    """Inbox + outbox, newest first, with both parties' profiles."""
    return [MessageWithUsersOut.model_validate(m) for m in crud.get_messages(db, user.id)]


@router.get("/messages/unread-count", response_model=UnreadCountResponse, tags=["Messages"])
def unread_count(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> UnreadCountResponse:
    return UnreadCountResponse(count=crud.get_unread_message_count(db, user.id))


@router.get("/messages/conversation/{other_user_id}", response_model=List[MessageOut], tags=["Messages"])
def read_conversation(
    other_user_id: str,
    startup_id: Optional[str] = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> List[MessageOut]:
    messages = crud.get_conversation(db, user.id, other_user_id, startup_id)
    return [MessageOut.model_validate(m) for m in messages]


@router.patch("/messages/{message_id}/read", response_model=SuccessResponse, tags=["Messages"])
def mark_read(
    message_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> SuccessResponse:
    message = crud.get_message(db, message_id)
    if not message:
        raise HTTPException(status_code=404, detail="Message not found")
    if message.recipient_id != user.id:
        raise HTTPException(status_code=403, detail="Not authorized")
    crud.mark_message_as_read(db, message_id)
    return SuccessResponse()


# ──────────────────────────────────────────────────────────────────────────────
#  SAVED STARTUPS  (investor bookmarks)
# ──────────────────────────────────────────────────────────────────────────────
@router.post("/saved-startups/{startup_id}", response_model=SavedStartupOut, tags=["Saved Startups"])
def save_startup(
    startup_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(require_role("investor")),
) -> SavedStartupOut:
    if not crud.get_startup(db, startup_id):
        raise HTTPException(status_code=404, detail="Startup not found")
    saved = crud.save_startup(db, user.id, startup_id)
    return SavedStartupOut.model_validate(saved)


@router.delete("/saved-startups/{startup_id}", response_model=SuccessResponse, tags=["Saved Startups"])
def unsave_startup(
    startup_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(require_role("investor")),
) -> SuccessResponse:
    crud.unsave_startup(db, user.id, startup_id)
    return SuccessResponse()


@router.get("/saved-startups", response_model=List[SavedStartupWithDetailsOut], tags=["Saved Startups"])
def list_saved_startups(
    db: Session = Depends(get_db),
    user: User = Depends(require_role("investor")),
) -> List[SavedStartupWithDetailsOut]:
    return [SavedStartupWithDetailsOut.model_validate(s) for s in crud.get_saved_startups(db, user.id)]


@router.get("/saved-startups/{startup_id}/check", response_model=SavedCheckResponse, tags=["Saved Startups"])
def check_saved(
    startup_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(require_role("investor")),
) -> SavedCheckResponse:
    return SavedCheckResponse(is_saved=crud.is_startup_saved(db, user.id, startup_id))
