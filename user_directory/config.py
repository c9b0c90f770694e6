# ==============================================
# Configuration Management
# ==============================================
#
# PURPOSE:
#   Load and validate all configuration from environment
#   variables / .env file. Provides typed config objects
#   to all other modules.
#
# CLASSES:
# --------
# - SourceConfig (dataclass)
#     base_url: str          (default "https://randomuser.me/api")
#     seed: str              (default "user-directory")
#     page_size: int         (default 25)
#     exclude_fields: str    (default "login,registered,nat")
#     timeout_seconds: float (default 10.0)
#
# - PersistenceConfig (dataclass)
#     backend: str               (default "file", or "mongo")
#     data_dir: str              (default "data/")
#     snapshot_key: str          (default "userPreferences")
#     quiet_period_seconds: float (default 1.0)
#
# - MongoConfig (dataclass)
#     host, port, user, password, database, collection,
#     server_selection_timeout_ms (default 2000)
#
# - ParseConfig (dataclass)
#     skip_malformed: bool   (default False)
#
# - AppConfig (dataclass)
#     source, persistence, mongo, parse
#
# FUNCTION:
# ---------
# - get_config(reload=False) -> AppConfig
#     Load .env using python-dotenv, construct AppConfig.
#     Returns the same instance on repeated calls unless reload=True.
#
# USAGE:
# ------
#   from user_directory.config import get_config
#   config = get_config()
#   print(config.source.page_size)
#   print(config.persistence.quiet_period_seconds)
#
# ==============================================

import os
from dataclasses import dataclass, field
from typing import Optional
from pathlib import Path

from dotenv import load_dotenv


@dataclass
class SourceConfig:
    """Remote user directory (randomuser.me compatible) configuration."""
    base_url: str = "https://randomuser.me/api"
    seed: str = "user-directory"
    page_size: int = 25
    exclude_fields: str = "login,registered,nat"
    timeout_seconds: float = 10.0


@dataclass
class PersistenceConfig:
    """Snapshot persistence configuration."""
    backend: str = "file"
    data_dir: str = "data/"
    snapshot_key: str = "userPreferences"
    quiet_period_seconds: float = 1.0


@dataclass
class MongoConfig:
    """MongoDB key-value backend configuration."""
    host: str = "localhost"
    port: int = 27017
    user: Optional[str] = None
    password: Optional[str] = None
    database: str = "user_directory"
    collection: str = "kv_store"
    server_selection_timeout_ms: int = 2000


@dataclass
class ParseConfig:
    """Raw record parsing behaviour."""
    skip_malformed: bool = False


@dataclass
class AppConfig:
    """Main application configuration."""
    source: SourceConfig = field(default_factory=SourceConfig)
    persistence: PersistenceConfig = field(default_factory=PersistenceConfig)
    mongo: MongoConfig = field(default_factory=MongoConfig)
    parse: ParseConfig = field(default_factory=ParseConfig)


_TRUE_VALUES = {"1", "true", "yes", "on"}

# Cached instance
_config_instance: Optional[AppConfig] = None


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in _TRUE_VALUES


def get_config(reload: bool = False) -> AppConfig:
    """
    Load configuration from environment variables / .env file.
    Returns the same instance on repeated calls.

    Args:
        reload: Rebuild the configuration from the environment

    Returns:
        AppConfig: Application configuration
    """
    global _config_instance

    if _config_instance is not None and not reload:
        return _config_instance

    # Load .env file from project root
    env_path = Path(__file__).parent.parent / ".env"
    load_dotenv(dotenv_path=env_path)

    source_config = SourceConfig(
        base_url=os.getenv("DIRECTORY_SOURCE_URL", "https://randomuser.me/api"),
        seed=os.getenv("DIRECTORY_SOURCE_SEED", "user-directory"),
        page_size=int(os.getenv("DIRECTORY_PAGE_SIZE", "25")),
        exclude_fields=os.getenv("DIRECTORY_EXCLUDE_FIELDS", "login,registered,nat"),
        timeout_seconds=float(os.getenv("DIRECTORY_SOURCE_TIMEOUT", "10.0"))
    )

    persistence_config = PersistenceConfig(
        backend=os.getenv("PERSISTENCE_BACKEND", "file").strip().lower(),
        data_dir=os.getenv("PERSISTENCE_DIR", "data/"),
        snapshot_key=os.getenv("PERSISTENCE_KEY", "userPreferences"),
        quiet_period_seconds=float(os.getenv("PERSISTENCE_QUIET_PERIOD", "1.0"))
    )

    mongo_config = MongoConfig(
        host=os.getenv("MONGO_HOST", "localhost"),
        port=int(os.getenv("MONGO_PORT", "27017")),
        user=os.getenv("MONGO_USER") or None,
        password=os.getenv("MONGO_PASSWORD") or None,
        database=os.getenv("MONGO_DATABASE", "user_directory"),
        collection=os.getenv("MONGO_COLLECTION", "kv_store"),
        server_selection_timeout_ms=int(os.getenv("MONGO_TIMEOUT_MS", "2000"))
    )

    parse_config = ParseConfig(
        skip_malformed=_env_bool("DIRECTORY_SKIP_MALFORMED")
    )

    _config_instance = AppConfig(
        source=source_config,
        persistence=persistence_config,
        mongo=mongo_config,
        parse=parse_config
    )

    return _config_instance
