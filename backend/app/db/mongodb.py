# backend/app/db/mongodb.py

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from app.core.logger import logger


DEFAULT_DATABASE = "chat_backend"


class MongoConnection:
    """
    Owns the single motor client of the process. Created in the app
    lifespan and handed to the store through `app.state`.
    """

    def __init__(self, uri: str, client: AsyncIOMotorClient = None):
        self.uri = uri
        # stored dates come back as aware UTC datetimes
        self.client = client or AsyncIOMotorClient(uri, tz_aware=True)
        self.is_connected = False

    def get_database(self) -> AsyncIOMotorDatabase:
        return self.client.get_default_database(default=DEFAULT_DATABASE)

    async def connect(self) -> None:
        if self.is_connected:
            return
        try:
            await self.client.admin.command("ping")
        except Exception:
            logger.exception("Failed to connect to MongoDB")
            raise
        self.is_connected = True
        logger.info("Connected to MongoDB database '%s'", self.get_database().name)

    def close(self) -> None:
        self.client.close()
        self.is_connected = False
        logger.info("MongoDB connection closed")
