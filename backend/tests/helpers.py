from datetime import datetime, timedelta, timezone

import jwt
from mongomock_motor import AsyncMongoMockClient

from app.core.errors import Unauthenticated
from app.db.conversation_store import ConversationStore
from app.models.user_models import UserOut


# any key works, signatures are never checked
SIGNING_KEY = "test-signing-key-that-is-long-enough-for-hs256"


def make_token(user_id="user-1", expires_in=timedelta(hours=1), **extra):
    payload = {"user_id": user_id, "tenant_id": 1, "email": f"{user_id}@example.com", **extra}
    if expires_in is not None:
        payload["exp"] = datetime.now(timezone.utc) + expires_in
    return jwt.encode(payload, SIGNING_KEY, algorithm="HS256")


def make_user(user_uuid="uuid-1"):
    return UserOut(
        user_uuid=user_uuid,
        first_name="Ada",
        last_name="Lovelace",
        email="ada@example.com",
        phone_number="555-0100",
        organization_uuid="org-1",
        organization_name="Analytical Engines",
    )


def make_store():
    return ConversationStore(AsyncMongoMockClient()["chat_backend_test"])


class FakeAuthService:
    """Resolves users from a fixed token -> user uuid table."""

    def __init__(self, users):
        self.users = users
        self.profile_error = None

    def fetch_profile(self, access_token, timeout=None):
        if self.profile_error is not None:
            raise self.profile_error
        if access_token not in self.users:
            raise Unauthenticated()
        return make_user(self.users[access_token])
