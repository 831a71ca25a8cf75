from pydantic import BaseModel, field_validator
from datetime import datetime
from typing import Optional


# Create or fetch a conversation
class CreateConversationModel(BaseModel):
    recipientId: str

    @field_validator("recipientId")
    @classmethod
    def validate_recipient(cls, recipient_id: str) -> str:
        recipient_id = recipient_id.strip()
        if not recipient_id:
            raise ValueError("Recipient id is required.")
        return recipient_id


class CreateConversationResponseModel(BaseModel):
    conversationId: str


# Conversation listing
class ConversationUser(BaseModel):
    id: str
    username: str
    profile_pic_url: Optional[str] = None


class ConversationSummary(BaseModel):
    conversation_id: str
    users: ConversationUser
    last_message: Optional[str] = None
    last_message_time: datetime
    is_sender: bool


# Messages
class SendMessageModel(BaseModel):
    content: str

    @field_validator("content")
    @classmethod
    def validate_content(cls, content: str) -> str:
        if not content.strip():
            raise ValueError("Message content cannot be empty.")
        return content


class MessageData(BaseModel):
    id: str
    conversation_id: str
    sender_id: str
    receiver_id: str
    content: str
    created_at: datetime
