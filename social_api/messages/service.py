"""
Direct-conversation data access.

Every conversation here is a two-party thread: one ``conversations`` row, two
``conversation_members`` rows and one ``direct_conversations`` row holding the
pair in canonical order. The unique constraint on that pair is what keeps two
concurrent "start a chat" requests from producing two threads.
"""

import logging
from typing import List, Optional, Set, Tuple

from supabase import AsyncClient

from social_api.core.database import UNIQUE_VIOLATION, is_uuid, run_query
from social_api.core.errors import (
    Forbidden,
    InvalidRequest,
    NotFound,
    PartialFailure,
    PersistenceFailure,
)
from social_api.utils.profiles import get_profile
from .schemas import ConversationSummary, ConversationUser, MessageData


logger = logging.getLogger(__name__)


async def conversation_ids_for(supabase: AsyncClient, user_id: str) -> Set[str]:
    response = await run_query(
        supabase.table("conversation_members")
        .select("conversation_id")
        .eq("user_id", user_id)
    )
    return {row["conversation_id"] for row in response.data or []}


async def conversation_member_ids(supabase: AsyncClient, conversation_id: str) -> List[str]:
    if not is_uuid(conversation_id):
        return []

    response = await run_query(
        supabase.table("conversation_members")
        .select("user_id")
        .eq("conversation_id", conversation_id)
    )
    return [row["user_id"] for row in response.data or []]


async def conversation_exists(supabase: AsyncClient, conversation_id: str) -> bool:
    if not is_uuid(conversation_id):
        return False

    response = await run_query(
        supabase.table("conversations").select("id").eq("id", conversation_id).limit(1)
    )
    return bool(response.data)


async def _direct_conversation_id(
    supabase: AsyncClient, user1_id: str, user2_id: str
) -> Optional[str]:
    response = await run_query(
        supabase.table("direct_conversations")
        .select("conversation_id")
        .eq("user1_id", user1_id)
        .eq("user2_id", user2_id)
        .limit(1)
    )
    return response.data[0]["conversation_id"] if response.data else None


async def _discard_conversation(supabase: AsyncClient, conversation_id: str) -> None:
    # members and the pair row go with it (ON DELETE CASCADE)
    await run_query(supabase.table("conversations").delete().eq("id", conversation_id))


async def find_or_create_conversation(
    supabase: AsyncClient, caller_id: str, recipient_id: str
) -> Tuple[str, bool]:
    """
    Return ``(conversation_id, created)`` for the direct thread between
    ``caller_id`` and ``recipient_id``, creating it when missing.
    """
    if caller_id == recipient_id:
        raise InvalidRequest("Cannot start a conversation with yourself.")

    if await get_profile(supabase, recipient_id) is None:
        raise NotFound("Recipient not found.")

    caller_conversations = await conversation_ids_for(supabase, caller_id)
    recipient_conversations = await conversation_ids_for(supabase, recipient_id)

    shared = caller_conversations & recipient_conversations
    if shared:
        conversation_id = sorted(shared)[0]
        if len(shared) > 1:
            logger.warning(
                f"duplicate_direct_conversations users={caller_id},{recipient_id} ids={sorted(shared)}"
            )
        logger.info(f"conversation_found id={conversation_id}")
        return conversation_id, False

    created = await run_query(
        supabase.table("conversations").insert({"created_by": caller_id})
    )
    conversation_id = created.data[0]["id"]

    u1, u2 = sorted([caller_id, recipient_id])

    try:
        await run_query(
            supabase.table("direct_conversations").insert(
                {"conversation_id": conversation_id, "user1_id": u1, "user2_id": u2}
            )
        )
    except PersistenceFailure as error:
        await _discard_conversation(supabase, conversation_id)
        if error.code != UNIQUE_VIOLATION:
            raise

        # A concurrent request claimed the pair first.
        existing_id = await _direct_conversation_id(supabase, u1, u2)
        if existing_id is None:
            raise
        logger.info(f"conversation_race_lost discarded={conversation_id} kept={existing_id}")
        return existing_id, False

    try:
        await run_query(
            supabase.table("conversation_members").insert(
                [
                    {"conversation_id": conversation_id, "user_id": caller_id},
                    {"conversation_id": conversation_id, "user_id": recipient_id},
                ]
            )
        )
    except PersistenceFailure:
        await _discard_conversation(supabase, conversation_id)
        raise

    logger.info(f"conversation_created id={conversation_id} created_by={caller_id}")
    return conversation_id, True


async def _summarize(
    supabase: AsyncClient, conversation: dict, caller_id: str
) -> ConversationSummary:
    conversation_id = conversation["id"]

    try:
        members = await conversation_member_ids(supabase, conversation_id)
        other_user_id = next((uid for uid in members if uid != caller_id), None)
        if other_user_id is None:
            raise PartialFailure(f"No other user found in conversation {conversation_id}")

        other_user = await get_profile(supabase, other_user_id)
        if other_user is None:
            raise PartialFailure(f"User {other_user_id} not found for conversation {conversation_id}")

        last = await run_query(
            supabase.table("messages")
            .select("content, created_at, sender_id")
            .eq("conversation_id", conversation_id)
            .order("created_at", desc=True)
            .limit(1)
        )
    except PartialFailure:
        raise
    except Exception as error:
        raise PartialFailure(
            f"Lookup failed for conversation {conversation_id}: {error}"
        ) from error

    last_message = last.data[0] if last.data else None

    return ConversationSummary(
        conversation_id=conversation_id,
        users=ConversationUser(**other_user),
        last_message=last_message["content"] if last_message else None,
        last_message_time=(
            last_message["created_at"] if last_message else conversation["created_at"]
        ),
        is_sender=bool(last_message) and last_message["sender_id"] == caller_id,
    )


async def list_conversations(
    supabase: AsyncClient, caller_id: str
) -> List[ConversationSummary]:
    """
    Every conversation of ``caller_id``, most recent activity first.

    A conversation that cannot be summarised (e.g. its other member is
    missing) is logged and left out.
    """
    conversation_ids = await conversation_ids_for(supabase, caller_id)
    if not conversation_ids:
        return []

    response = await run_query(
        supabase.table("conversations")
        .select("id, created_at")
        .in_("id", sorted(conversation_ids))
    )

    summaries = []
    skipped = []

    for conversation in response.data or []:
        try:
            summaries.append(await _summarize(supabase, conversation, caller_id))
        except PartialFailure as error:
            logger.warning(f"conversation_skipped user_id={caller_id} reason={error.message}")
            skipped.append(conversation["id"])

    if skipped:
        logger.warning(f"conversations_partial user_id={caller_id} skipped={len(skipped)}")

    summaries.sort(key=lambda summary: summary.last_message_time, reverse=True)
    return summaries


async def get_messages(
    supabase: AsyncClient, conversation_id: str, caller_id: str
) -> List[MessageData]:
    if not await conversation_exists(supabase, conversation_id):
        raise NotFound("Conversation not found.")

    members = await conversation_member_ids(supabase, conversation_id)
    if caller_id not in members:
        raise Forbidden("You are not a member of this conversation.")

    response = await run_query(
        supabase.table("messages")
        .select("id, conversation_id, sender_id, receiver_id, content, created_at")
        .eq("conversation_id", conversation_id)
        .order("created_at", desc=False)
    )
    return [MessageData(**row) for row in response.data or []]


async def send_message(
    supabase: AsyncClient, conversation_id: str, sender_id: str, content: str
) -> MessageData:
    try:
        members = await conversation_member_ids(supabase, conversation_id)
    except PersistenceFailure:
        raise InvalidRequest("Failed to fetch conversation members.")

    if not members and not await conversation_exists(supabase, conversation_id):
        raise NotFound("Conversation not found.")

    if sender_id not in members:
        raise Forbidden("You are not a member of this conversation.")

    receiver_id = next((uid for uid in members if uid != sender_id), None)
    if receiver_id is None:
        raise InvalidRequest("Receiver not found in the conversation.")

    response = await run_query(
        supabase.table("messages").insert(
            {
                "conversation_id": conversation_id,
                "sender_id": sender_id,
                "receiver_id": receiver_id,
                "content": content,
            }
        ),
        failure_message="Failed to send message.",
    )

    message = MessageData(**response.data[0])
    logger.info(f"message_sent id={message.id} conversation_id={conversation_id}")
    return message
