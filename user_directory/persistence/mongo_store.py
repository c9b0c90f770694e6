# ==============================================
# MongoKeyValueStore
# ==============================================
#
# PURPOSE:
#   Key-value persistence in a MongoDB collection, for
#   deployments where the snapshot should live next to other
#   application data instead of on the local disk.
#
# CLASS: MongoKeyValueStore
# -------------------------
#   Stateful — holds connection to MongoDB.
#
#   Constructor:
#   ------------
#   - __init__(host, port, database, collection="kv_store", user=None, password=None,
#              server_selection_timeout_ms=2000)
#
#   Methods:
#   --------
#   - connect() -> None
#   - disconnect() -> None
#   - save(key, value) -> None      (upsert, never raises)
#   - load(key) -> value | None     (never raises)
#   - delete(key) -> bool
#
#   Document shape:
#   ---------------
#   { "_id": <key>, "value": <JSON string>, "updated_at": <ISO timestamp> }
#
#   The value is stored JSON-serialized so the round trip is the
#   same as for the file backend (no BSON type surprises).
#
# ==============================================

import json
from datetime import datetime, timezone
from typing import Any, Optional

from loguru import logger
from pymongo import MongoClient as PyMongoClient
from pymongo.errors import PyMongoError

from user_directory.config import MongoConfig


class MongoKeyValueStore:
    def __init__(self, host, port, database, collection="kv_store", user=None, password=None,
                 server_selection_timeout_ms=2000):
        # Store connection params. Don't connect yet.
        self.host = host
        self.port = port
        self.database = database
        self.collection_name = collection
        self.user = user
        self.password = password
        self.server_selection_timeout_ms = server_selection_timeout_ms
        self.client = None  # Will hold the actual MongoDB client connection

    @classmethod
    def from_config(cls, config: MongoConfig) -> "MongoKeyValueStore":
        return cls(
            host=config.host,
            port=config.port,
            database=config.database,
            collection=config.collection,
            user=config.user,
            password=config.password,
            server_selection_timeout_ms=config.server_selection_timeout_ms
        )

    def connect(self):
        # Establish connection to MongoDB.
        if self.client is not None:
            return
        if self.user and self.password:
            uri = f"mongodb://{self.user}:{self.password}@{self.host}:{self.port}/{self.database}"
        else:
            uri = f"mongodb://{self.host}:{self.port}/{self.database}"
        # Fail fast when the server is down; saves are best-effort
        client = PyMongoClient(uri, serverSelectionTimeoutMS=self.server_selection_timeout_ms)
        # Test connection
        client.admin.command('ping')
        self.client = client
        logger.info(f"Connected to MongoDB at {self.host}:{self.port}")

    def disconnect(self):
        # Close connection.
        if self.client:
            self.client.close()
            logger.info("Disconnected from MongoDB.")
            self.client = None

    def close(self) -> None:
        self.disconnect()

    def save(self, key: str, value: Any) -> None:
        try:
            serialized = json.dumps(value)
            self._collection().update_one(
                {"_id": key},
                {"$set": {
                    "value": serialized,
                    "updated_at": datetime.now(timezone.utc).isoformat()
                }},
                upsert=True
            )
            logger.debug(f"Saved state under '{key}' to MongoDB")
        except (PyMongoError, TypeError, ValueError) as e:
            logger.error(f"Error saving state under '{key}' to MongoDB: {e}")

    def load(self, key: str) -> Optional[Any]:
        try:
            document = self._collection().find_one({"_id": key})
            if not document or document.get("value") is None:
                return None
            return json.loads(document["value"])
        except (PyMongoError, TypeError, ValueError) as e:
            logger.error(f"Error loading state under '{key}' from MongoDB: {e}")
            return None

    def delete(self, key: str) -> bool:
        result = self._collection().delete_one({"_id": key})
        return result.deleted_count > 0

    def _collection(self):
        self.connect()
        return self.client[self.database][self.collection_name]

    def __enter__(self):
        # For `with MongoKeyValueStore(...) as kv:` usage.
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()
        return False
