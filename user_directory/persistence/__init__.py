# ==============================================
# PERSISTENCE (Snapshot across restarts)
# ==============================================
#
# This package provides the key-value gateways the record store
# saves its snapshot through, so favorites, tags and filters
# survive process restarts.
#
# Modules:
# --------
# - json_file_store.py → One JSON file per key on local disk
# - mongo_store.py     → One document per key in MongoDB
#
# Both backends share the same never-raise contract:
#   save(key, value) -> None
#   load(key) -> value | None
#
# ==============================================

from user_directory.config import AppConfig

from .json_file_store import JsonFileStore
from .mongo_store import MongoKeyValueStore


def create_persistence(config: AppConfig):
    """
    Build the persistence gateway selected by PERSISTENCE_BACKEND.

    Args:
        config: Application configuration

    Returns:
        JsonFileStore or MongoKeyValueStore
    """
    backend = config.persistence.backend
    if backend == "file":
        return JsonFileStore(config.persistence.data_dir)
    if backend == "mongo":
        return MongoKeyValueStore.from_config(config.mongo)
    raise ValueError(f"Unknown persistence backend: {backend!r} (expected 'file' or 'mongo')")


__all__ = ["JsonFileStore", "MongoKeyValueStore", "create_persistence"]
