import logging
from typing import List

from fastapi import APIRouter, Depends, Response, status
from supabase import AsyncClient

from social_api.core.dependencies import CurrentUser, get_current_user
from social_api.core.supabase_client import get_supabase

from . import service
from .schemas import (
    ConversationSummary,
    CreateConversationModel,
    CreateConversationResponseModel,
    MessageData,
    SendMessageModel,
)


logger = logging.getLogger(__name__)
router = APIRouter()


@router.get(
    "/conversations",
    response_model=List[ConversationSummary],
    status_code=200,
)
async def get_conversations(
    user: CurrentUser = Depends(get_current_user),
    supabase: AsyncClient = Depends(get_supabase),
):
    """
    List every conversation of the authenticated user.

    Each entry carries the other participant's public profile and a preview
    of the latest message. Entries are ordered by most recent activity
    (last message time, or creation time for empty threads), newest first.

    **Returns**
    - A list of `{conversation_id, users, last_message, last_message_time, is_sender}`
    - `[]` when the user has no conversations

    **Errors**
    - 401: Not authenticated
    - 500: The membership lookup failed
    """
    return await service.list_conversations(supabase, user.id)


@router.post(
    "/conversations",
    response_model=CreateConversationResponseModel,
    status_code=200,
)
async def create_or_fetch_conversation(
    data: CreateConversationModel,
    response: Response,
    user: CurrentUser = Depends(get_current_user),
    supabase: AsyncClient = Depends(get_supabase),
):
    """
    Get or create the direct conversation with another user.

    **Input**
    - `recipientId`: id of the user to talk to

    **Returns**
    - `200` + `{conversationId}` when the conversation already existed
    - `201` + `{conversationId}` when it was created

    **Errors**
    - 400: Missing recipient, or recipient is the caller
    - 401: Not authenticated
    - 404: Recipient does not exist
    - 500: Database error
    """
    conversation_id, created = await service.find_or_create_conversation(
        supabase, user.id, data.recipientId
    )

    if created:
        response.status_code = status.HTTP_201_CREATED

    return {"conversationId": conversation_id}


@router.get(
    "/{conversation_id}/messages",
    response_model=List[MessageData],
    status_code=200,
)
async def get_messages(
    conversation_id: str,
    user: CurrentUser = Depends(get_current_user),
    supabase: AsyncClient = Depends(get_supabase),
):
    """
    Full message history of a conversation, oldest first.

    **Errors**
    - 401: Not authenticated
    - 403: Caller is not a member of the conversation
    - 404: Conversation does not exist
    """
    return await service.get_messages(supabase, conversation_id, user.id)


@router.post(
    "/{conversation_id}/messages",
    response_model=MessageData,
    status_code=201,
)
async def send_message(
    conversation_id: str,
    data: SendMessageModel,
    user: CurrentUser = Depends(get_current_user),
    supabase: AsyncClient = Depends(get_supabase),
):
    """
    Send a message to the other member of a conversation.

    **Input**
    - `content`: message text, must not be blank

    **Errors**
    - 400: Blank content, or no receiver could be resolved
    - 401: Not authenticated
    - 403: Caller is not a member of the conversation
    - 404: Conversation does not exist
    - 500: Database error
    """
    return await service.send_message(supabase, conversation_id, user.id, data.content)
