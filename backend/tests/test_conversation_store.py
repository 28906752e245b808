import unittest
from datetime import datetime, timedelta, timezone
from uuid import uuid4

from app.core.errors import ConversationNotFound
from app.models.conversation_models import DEFAULT_TITLE
from helpers import make_store


class ConversationLifecycleTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.store = make_store()
        await self.store.ensure_indexes()

    async def test_create_with_defaults(self):
        conversation = await self.store.create_conversation("alice")

        self.assertEqual(conversation["title"], DEFAULT_TITLE)
        self.assertEqual(conversation["userId"], "alice")
        self.assertEqual(conversation["messages"], [])
        self.assertTrue(conversation["isActive"])
        self.assertFalse(conversation["isDeleted"])
        self.assertIsNone(conversation["deletedAt"])
        self.assertNotIn("_id", conversation)

        stored = await self.store.get_conversation("alice", conversation["conversationId"])
        self.assertEqual(stored["conversationId"], conversation["conversationId"])
        self.assertNotIn("_id", stored)

    async def test_dates_are_utc_millisecond_values(self):
        created = await self.store.create_conversation("alice", initial_message="hi")
        stored = await self.store.get_conversation("alice", created["conversationId"])

        for field in ("createdAt", "updatedAt"):
            self.assertEqual(stored[field], created[field])
            self.assertEqual(stored[field].utcoffset(), timedelta(0))
            self.assertEqual(stored[field].microsecond % 1000, 0)
        self.assertEqual(stored["messages"][0]["timestamp"], created["messages"][0]["timestamp"])

    async def test_create_with_initial_message(self):
        conversation = await self.store.create_conversation("alice", "Trip", "Hi there")

        self.assertEqual(conversation["title"], "Trip")
        self.assertEqual(len(conversation["messages"]), 1)
        message = conversation["messages"][0]
        self.assertEqual(message["content"], "Hi there")
        self.assertEqual(message["role"], "user")
        self.assertEqual(message["metadata"], {})

    async def test_other_users_cannot_see_a_conversation(self):
        conversation = await self.store.create_conversation("alice", "Private")
        conversation_id = conversation["conversationId"]

        with self.assertRaises(ConversationNotFound):
            await self.store.get_conversation("bob", conversation_id)
        with self.assertRaises(ConversationNotFound):
            await self.store.update_conversation("bob", conversation_id, title="Mine now")
        with self.assertRaises(ConversationNotFound):
            await self.store.soft_delete("bob", conversation_id)
        with self.assertRaises(ConversationNotFound):
            await self.store.append_message("bob", conversation_id, "hello")

        items, total = await self.store.list_conversations("bob")
        self.assertEqual((items, total), ([], 0))

    async def test_unknown_id_is_not_found(self):
        with self.assertRaises(ConversationNotFound):
            await self.store.get_conversation("alice", str(uuid4()))

    async def test_soft_delete(self):
        conversation = await self.store.create_conversation("alice")
        conversation_id = conversation["conversationId"]

        await self.store.soft_delete("alice", conversation_id)

        with self.assertRaises(ConversationNotFound):
            await self.store.get_conversation("alice", conversation_id)
        with self.assertRaises(ConversationNotFound):
            await self.store.soft_delete("alice", conversation_id)
        with self.assertRaises(ConversationNotFound):
            await self.store.update_conversation("alice", conversation_id, is_active=True)

        # the document stays in the collection
        raw = await self.store.collection.find_one({"conversationId": conversation_id})
        self.assertTrue(raw["isDeleted"])
        self.assertIsNotNone(raw["deletedAt"])

    async def test_update_title_and_reactivate(self):
        conversation = await self.store.create_conversation("alice")
        conversation_id = conversation["conversationId"]

        updated = await self.store.update_conversation("alice", conversation_id, title="Renamed")
        self.assertEqual(updated["title"], "Renamed")
        self.assertTrue(updated["isActive"])

        archived = await self.store.update_conversation("alice", conversation_id, is_active=False)
        self.assertFalse(archived["isActive"])
        with self.assertRaises(ConversationNotFound):
            await self.store.get_conversation("alice", conversation_id)

        restored = await self.store.update_conversation("alice", conversation_id, is_active=True)
        self.assertTrue(restored["isActive"])
        self.assertEqual(restored["title"], "Renamed")
        await self.store.get_conversation("alice", conversation_id)

    async def test_update_without_changes_keeps_fields(self):
        conversation = await self.store.create_conversation("alice", "Keep me")
        updated = await self.store.update_conversation("alice", conversation["conversationId"])
        self.assertEqual(updated["title"], "Keep me")
        self.assertTrue(updated["isActive"])


class MessageTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.store = make_store()
        conversation = await self.store.create_conversation("alice")
        self.conversation_id = conversation["conversationId"]

    async def test_append_message(self):
        conversation, message = await self.store.append_message(
            "alice", self.conversation_id, "What is the weather?", "user", {"model": "gpt", "tokens": 5}
        )

        self.assertEqual(message["content"], "What is the weather?")
        self.assertEqual(message["metadata"], {"model": "gpt", "tokens": 5})
        self.assertEqual(len(conversation["messages"]), 1)
        self.assertEqual(conversation["messages"][0]["content"], "What is the weather?")
        self.assertNotIn("_id", conversation)

        conversation, _ = await self.store.append_message(
            "alice", self.conversation_id, "Sunny", "assistant"
        )
        self.assertEqual([m["role"] for m in conversation["messages"]], ["user", "assistant"])

    async def test_cannot_append_to_inactive_conversation(self):
        await self.store.update_conversation("alice", self.conversation_id, is_active=False)
        with self.assertRaises(ConversationNotFound):
            await self.store.append_message("alice", self.conversation_id, "hello")

    async def test_message_pages_run_newest_first(self):
        for i in range(5):
            await self.store.append_message("alice", self.conversation_id, f"m{i}")

        first, total = await self.store.list_messages("alice", self.conversation_id, page=1, limit=2)
        self.assertEqual(total, 5)
        self.assertEqual([m["content"] for m in first], ["m3", "m4"])

        second, _ = await self.store.list_messages("alice", self.conversation_id, page=2, limit=2)
        self.assertEqual([m["content"] for m in second], ["m1", "m2"])

        last, _ = await self.store.list_messages("alice", self.conversation_id, page=3, limit=2)
        self.assertEqual([m["content"] for m in last], ["m0"])

        beyond, _ = await self.store.list_messages("alice", self.conversation_id, page=4, limit=2)
        self.assertEqual(beyond, [])

    async def test_empty_conversation_has_no_messages(self):
        messages, total = await self.store.list_messages("alice", self.conversation_id)
        self.assertEqual((messages, total), ([], 0))


class ListAndSearchTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.store = make_store()
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        self.ids = []
        for i, title in enumerate(["Paris trip", "Groceries", "Tokyo trip"]):
            conversation = await self.store.create_conversation("alice", title)
            self.ids.append(conversation["conversationId"])
            await self.store.collection.update_one(
                {"conversationId": conversation["conversationId"]},
                {"$set": {"updatedAt": base + timedelta(hours=i)}},
            )

    async def test_list_is_sorted_by_last_update(self):
        items, total = await self.store.list_conversations("alice")
        self.assertEqual(total, 3)
        self.assertEqual([c["title"] for c in items], ["Tokyo trip", "Groceries", "Paris trip"])

    async def test_list_pagination(self):
        items, total = await self.store.list_conversations("alice", page=2, limit=2)
        self.assertEqual(total, 3)
        self.assertEqual([c["title"] for c in items], ["Paris trip"])

    async def test_list_hides_archived_and_deleted(self):
        await self.store.update_conversation("alice", self.ids[0], is_active=False)
        await self.store.soft_delete("alice", self.ids[1])

        items, total = await self.store.list_conversations("alice")
        self.assertEqual(total, 1)
        self.assertEqual([c["title"] for c in items], ["Tokyo trip"])

    async def test_search_matches_titles_case_insensitively(self):
        items, total = await self.store.search_conversations("alice", "TRIP")
        self.assertEqual(total, 2)
        self.assertEqual({c["title"] for c in items}, {"Paris trip", "Tokyo trip"})

    async def test_search_matches_message_content(self):
        await self.store.append_message("alice", self.ids[1], "buy milk and eggs")
        items, total = await self.store.search_conversations("alice", "milk")
        self.assertEqual(total, 1)
        self.assertEqual(items[0]["conversationId"], self.ids[1])

    async def test_search_treats_query_literally(self):
        items, total = await self.store.search_conversations("alice", ".*")
        self.assertEqual((items, total), ([], 0))

    async def test_search_is_scoped_to_user(self):
        items, total = await self.store.search_conversations("bob", "trip")
        self.assertEqual((items, total), ([], 0))
