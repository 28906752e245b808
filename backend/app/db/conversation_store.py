# backend/app/db/conversation_store.py

import re
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from pymongo import ASCENDING, DESCENDING, ReturnDocument

from app.core.errors import ConversationNotFound
from app.core.logger import logger
from app.models.conversation_models import Conversation, Message, as_stored, utcnow


COLLECTION_NAME = "conversations"

# Mongo's own _id never leaves the store; conversationId is the public key
PUBLIC_FIELDS = {"_id": 0}


def _with_utc_dates(value: Any) -> Any:
    # clients without tz_aware hand back naive datetimes
    if isinstance(value, datetime):
        return as_stored(value)
    if isinstance(value, dict):
        return {k: _with_utc_dates(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_with_utc_dates(v) for v in value]
    return value


class ConversationStore:
    def __init__(self, database):
        self.collection = database[COLLECTION_NAME]

    # ----------------------------------------------------------------------
    # FILTERS
    # ----------------------------------------------------------------------
    @staticmethod
    def _visible(user_id: str, conversation_id: Optional[str] = None) -> Dict[str, Any]:
        query = {"userId": user_id, "isActive": True, "isDeleted": False}
        if conversation_id is not None:
            query["conversationId"] = conversation_id
        return query

    @staticmethod
    def _not_deleted(user_id: str, conversation_id: str) -> Dict[str, Any]:
        return {"conversationId": conversation_id, "userId": user_id, "isDeleted": False}

    async def ensure_indexes(self) -> None:
        await self.collection.create_index("conversationId", unique=True)
        await self.collection.create_index(
            [("userId", ASCENDING), ("isActive", ASCENDING), ("isDeleted", ASCENDING)]
        )
        await self.collection.create_index([("userId", ASCENDING), ("createdAt", DESCENDING)])
        await self.collection.create_index([("updatedAt", DESCENDING)])
        await self.collection.create_index("isDeleted")

    async def _page(self, query: Dict[str, Any], page: int, limit: int) -> Tuple[List[dict], int]:
        cursor = self.collection.find(
            query,
            PUBLIC_FIELDS,
            sort=[("updatedAt", DESCENDING)],
            skip=(page - 1) * limit,
            limit=limit,
        )
        items = _with_utc_dates(await cursor.to_list(length=limit))
        total = await self.collection.count_documents(query)
        return items, total

    # ----------------------------------------------------------------------
    # CONVERSATIONS
    # ----------------------------------------------------------------------
    async def list_conversations(self, user_id: str, page: int = 1, limit: int = 20) -> Tuple[List[dict], int]:
        return await self._page(self._visible(user_id), page, limit)

    async def search_conversations(
        self, user_id: str, query: str, page: int = 1, limit: int = 20
    ) -> Tuple[List[dict], int]:
        pattern = {"$regex": re.escape(query.strip()), "$options": "i"}
        mongo_query = self._visible(user_id)
        mongo_query["$or"] = [{"title": pattern}, {"messages.content": pattern}]
        return await self._page(mongo_query, page, limit)

    async def get_conversation(self, user_id: str, conversation_id: str) -> dict:
        conversation = await self.collection.find_one(
            self._visible(user_id, conversation_id), PUBLIC_FIELDS
        )
        if conversation is None:
            raise ConversationNotFound()
        return _with_utc_dates(conversation)

    async def create_conversation(
        self,
        user_id: str,
        title: Optional[str] = None,
        initial_message: Optional[str] = None,
    ) -> dict:
        data: Dict[str, Any] = {"userId": user_id, "messages": []}
        if title:
            data["title"] = title
        if initial_message:
            data["messages"].append({"content": initial_message, "role": "user"})

        document = Conversation.model_validate(data).to_document()
        # insert_one adds _id to the dict it is given
        await self.collection.insert_one(dict(document))

        logger.info("Conversation %s created for user %s", document["conversationId"], user_id)
        return document

    async def update_conversation(
        self,
        user_id: str,
        conversation_id: str,
        title: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> dict:
        changes: Dict[str, Any] = {"updatedAt": utcnow()}
        if title is not None:
            changes["title"] = title
        if is_active is not None:
            changes["isActive"] = is_active

        conversation = await self.collection.find_one_and_update(
            self._not_deleted(user_id, conversation_id),
            {"$set": changes},
            projection=PUBLIC_FIELDS,
            return_document=ReturnDocument.AFTER,
        )
        if conversation is None:
            raise ConversationNotFound()
        return _with_utc_dates(conversation)

    async def soft_delete(self, user_id: str, conversation_id: str) -> None:
        now = utcnow()
        result = await self.collection.update_one(
            self._not_deleted(user_id, conversation_id),
            {"$set": {"isDeleted": True, "deletedAt": now, "updatedAt": now}},
        )
        if result.matched_count == 0:
            raise ConversationNotFound()
        logger.info("Conversation %s soft-deleted by user %s", conversation_id, user_id)

    # ----------------------------------------------------------------------
    # MESSAGES
    # ----------------------------------------------------------------------
    async def append_message(
        self,
        user_id: str,
        conversation_id: str,
        content: str,
        role: str = "user",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Tuple[dict, dict]:
        message = Message(content=content, role=role, metadata=metadata).model_dump()

        # $push keeps concurrent appends from overwriting each other
        conversation = await self.collection.find_one_and_update(
            self._visible(user_id, conversation_id),
            {"$push": {"messages": message}, "$set": {"updatedAt": message["timestamp"]}},
            projection=PUBLIC_FIELDS,
            return_document=ReturnDocument.AFTER,
        )
        if conversation is None:
            raise ConversationNotFound()
        return _with_utc_dates(conversation), message

    async def list_messages(
        self, user_id: str, conversation_id: str, page: int = 1, limit: int = 20
    ) -> Tuple[List[dict], int]:
        """
        Page through messages from the newest backwards. Page 1 holds the
        latest `limit` messages; each page keeps chronological order.
        """
        conversation = await self.get_conversation(user_id, conversation_id)
        messages = conversation.get("messages", [])

        total = len(messages)
        start = max(0, total - page * limit)
        end = max(0, total - (page - 1) * limit)
        return messages[start:end], total
