# backend/app/api/routes_conversation.py

from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query, status

from app.api.dependencies import authenticate, get_conversation_store, get_current_user_id
from app.core.errors import FIELD_MESSAGES, ValidationFailed
from app.db.conversation_store import ConversationStore
from app.models.conversation_models import (
    CONVERSATION_ID_PATTERN,
    CreateConversationIn,
    SendMessageIn,
    UpdateConversationIn,
)
from app.models.response_models import pagination, success_response

# every chat route needs a token and a resolved user
router = APIRouter(prefix="/chat", tags=["chat"], dependencies=[Depends(authenticate)])

ConversationId = Annotated[str, Path(pattern=CONVERSATION_ID_PATTERN)]

# keeps (page - 1) * limit well inside what Mongo accepts for skip
MAX_PAGE = 10000

Page = Annotated[int, Query(ge=1, le=MAX_PAGE)]
Limit = Annotated[int, Query(ge=1, le=100)]
UserId = Annotated[str, Depends(get_current_user_id)]
Store = Annotated[ConversationStore, Depends(get_conversation_store)]


# --------------------------
# List conversations
# --------------------------
@router.get("/conversations")
async def list_conversations(user_id: UserId, store: Store, page: Page = 1, limit: Limit = 20):
    conversations, total = await store.list_conversations(user_id, page, limit)
    return success_response(
        "Conversations retrieved successfully",
        {"conversations": conversations, "pagination": pagination(page, limit, total)},
    )


# --------------------------
# Search conversations by title or message content
# --------------------------
@router.get("/conversations/search")
async def search_conversations(
    user_id: UserId,
    store: Store,
    query: Annotated[str, Query(min_length=1, max_length=200)],
    page: Page = 1,
    limit: Limit = 20,
):
    query = query.strip()
    if not query:
        raise ValidationFailed(errors=[{"field": "query", "message": FIELD_MESSAGES["query"]}])

    conversations, total = await store.search_conversations(user_id, query, page, limit)
    return success_response(
        "Search completed successfully",
        {
            "conversations": conversations,
            "pagination": pagination(page, limit, total),
            "query": query,
        },
    )


# --------------------------
# Create conversation
# --------------------------
@router.post("/conversations", status_code=status.HTTP_201_CREATED)
async def create_conversation(data: CreateConversationIn, user_id: UserId, store: Store):
    conversation = await store.create_conversation(user_id, data.title, data.initial_message)
    return success_response("Conversation created successfully", conversation)


# --------------------------
# Get one conversation
# --------------------------
@router.get("/conversations/{conversation_id}")
async def get_conversation(conversation_id: ConversationId, user_id: UserId, store: Store):
    conversation = await store.get_conversation(user_id, conversation_id)
    return success_response("Conversation retrieved successfully", conversation)


# --------------------------
# Update title / active flag
# --------------------------
@router.put("/conversations/{conversation_id}")
async def update_conversation(
    conversation_id: ConversationId,
    data: UpdateConversationIn,
    user_id: UserId,
    store: Store,
):
    conversation = await store.update_conversation(
        user_id, conversation_id, title=data.title, is_active=data.is_active
    )
    return success_response("Conversation updated successfully", conversation)


# --------------------------
# Delete conversation (soft)
# --------------------------
@router.delete("/conversations/{conversation_id}")
async def delete_conversation(conversation_id: ConversationId, user_id: UserId, store: Store):
    await store.soft_delete(user_id, conversation_id)
    return success_response("Conversation deleted successfully")


# --------------------------
# Messages, newest page first
# --------------------------
@router.get("/conversations/{conversation_id}/messages")
async def get_messages(
    conversation_id: ConversationId,
    user_id: UserId,
    store: Store,
    page: Page = 1,
    limit: Limit = 20,
):
    messages, total = await store.list_messages(user_id, conversation_id, page, limit)
    return success_response(
        "Messages retrieved successfully",
        {"messages": messages, "pagination": pagination(page, limit, total)},
    )


# --------------------------
# Send message
# --------------------------
@router.post("/conversations/{conversation_id}/messages")
async def send_message(
    conversation_id: ConversationId,
    data: SendMessageIn,
    user_id: UserId,
    store: Store,
):
    metadata = data.metadata.model_dump(exclude_none=True) if data.metadata else None
    conversation, message = await store.append_message(
        user_id, conversation_id, data.content, data.role, metadata
    )
    return success_response(
        "Message sent successfully",
        {"conversation": conversation, "message": message},
    )
