from pydantic import BaseModel, Field
from datetime import datetime
from typing import List

from app.schemas.common import Envelope

class MessageCreateRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=2000, description="Message content")

class MessageView(BaseModel):
    message_id: int
    room_id: int
    sender_id: int
    sender_name: str
    content: str
    created_at: datetime

class MessageCreatedResponse(Envelope):
    message: MessageView

class MessageListResponse(Envelope):
    messages: List[MessageView] = []
