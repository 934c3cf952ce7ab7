from datetime import datetime
from typing import Annotated, List

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from .. import chat_store
from ..database import get_db
from .auth import get_current_user_id

router = APIRouter(
prefix="/api/chat", tags=["chat"]
)


class ChatBody(BaseModel):
    message: str = Field(..., min_length=1)
    response: str = Field(..., min_length=1)


class ChatOut(BaseModel):
    id: int
    message: str
    response: str
    timestamp: datetime
    owner_id: int

    class Config:
        from_attributes = True


class SavedChatOut(BaseModel):
    success: bool = True
    chat: ChatOut


chat_db = Annotated[Session, Depends(get_db)]
current_user_id = Annotated[int, Depends(get_current_user_id)]


@router.post("/save", response_model=SavedChatOut)
def save_chat(body: ChatBody, db: chat_db, user_id: current_user_id):
    chat = chat_store.save_chat(db, owner_id=user_id, message=body.message, response=body.response)
    return SavedChatOut(chat=ChatOut.model_validate(chat))


@router.get("/history", response_model=List[ChatOut])
def chat_history(db: chat_db, user_id: current_user_id):
    return chat_store.list_recent_chats(db, user_id)
