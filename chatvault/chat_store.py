import logging
from typing import List

from sqlalchemy import desc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import StoreFailure, ValidationError
from .models import ChatHistory

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 50


def save_chat(db: Session, *, owner_id: int, message: str, response: str) -> ChatHistory:
    if not message or not message.strip() or not response or not response.strip():
        raise ValidationError("message and response are required")

    chat = ChatHistory(message=message, response=response, owner_id=owner_id)
    try:
        db.add(chat)
        db.commit()
        db.refresh(chat)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Saving chat failed for user id=%s", owner_id)
        raise StoreFailure("saving chat failed") from exc
    return chat


def list_recent_chats(db: Session, owner_id: int, limit: int = HISTORY_LIMIT) -> List[ChatHistory]:
    """Newest-first chats owned by ``owner_id``, at most ``limit`` of them."""
    try:
        return (
            db.query(ChatHistory)
            .filter(ChatHistory.owner_id == owner_id)
            .order_by(desc(ChatHistory.timestamp), desc(ChatHistory.id))
            .limit(limit)
            .all()
        )
    except SQLAlchemyError as exc:
        logger.exception("Fetching chat history failed for user id=%s", owner_id)
        raise StoreFailure("fetching chat history failed") from exc
