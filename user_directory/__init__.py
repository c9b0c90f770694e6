# ==============================================
# User Directory
# ==============================================
#
# Package Structure:
#
# user_directory/
# ├── normalization/             # Raw directory record → User
# ├── source/                    # Paginated, seeded HTTP client
# ├── persistence/               # Key-value snapshot backends (file, MongoDB)
# ├── models.py                  # User, Location, Filters
# ├── errors.py                  # DirectoryError hierarchy
# ├── record_store.py            # Canonical collection, tags, filters
# ├── persistence_orchestrator.py # Restore on startup, debounced writes
# ├── app.py                     # Application root wiring
# ├── config.py                  # Configuration management
# └── cli.py                     # Command line entry point
#
# ==============================================

__version__ = "0.1.0"
