# ==============================================
# RecordStore — Canonical user collection
# ==============================================
#
# PURPOSE:
#   Owns the in-memory list of users, the filter criteria, the
#   global tag vocabulary and the pagination cursor. Every change
#   to user annotations goes through this class.
#
#   ┌───────────────────────────────────────────────────────┐
#   │                     RecordStore                       │
#   │                                                       │
#   │  source.fetch_page(page, size)                        │
#   │        │ raw records                                  │
#   │        ▼                                              │
#   │  RecordParser.parse_page()  → list[User]              │
#   │        │                                              │
#   │        ▼                                              │
#   │  merge favorite/tags from the LAST SAVED snapshot     │
#   │        │                                              │
#   │        ▼                                              │
#   │  users.extend(...) → page += 1 → persist_state()      │
#   └───────────────────────────────────────────────────────┘
#
# STATE:
# ------
#   - users: list[User]            (fetch order, ids not deduplicated)
#   - selected_user: User | None   (focus handle, not ownership)
#   - filters: Filters
#   - tags: list[str]              (vocabulary)
#   - page: int                    (starts at 1, advances on success only)
#   - loading: bool                (True while exactly one fetch is in flight)
#   - error: str | None
#   - hydrated: bool               (startup restore has run)
#   - dirty: bool                  (mutated since last persist)
#
# SAVED USERS NOT YET LOADED:
# ---------------------------
#   restore_from_persistence() keeps the snapshot's user entries
#   whose pages have not been fetched in this run. snapshot()
#   writes them back after the loaded users, so saving after
#   page 1 does not drop the annotations of page 2+ users, and
#   vocabulary cascades (remove_tag, update_tag) reach them too.
#   An entry leaves this list once its id is fetched.
#
# CHANGE NOTIFICATION:
# --------------------
#   Every mutating operation sets `dirty` and calls the registered
#   listeners synchronously. The PersistenceOrchestrator uses this
#   to schedule a debounced persist.
#
# ==============================================

from typing import Any, Callable, Dict, List, Optional

from loguru import logger

from user_directory.models import Filters, User
from user_directory.normalization.record_parser import RecordParser


FETCH_ERROR_MESSAGE = "Failed to fetch users. Please try again later."
DEFAULT_PAGE_SIZE = 25
DEFAULT_SNAPSHOT_KEY = "userPreferences"

_UNSET = object()


class RecordStore:
    """
    Canonical collection of directory users with favorite/tag annotations.

    Example:
        store = RecordStore(source, persistence)
        store.restore_from_persistence()
        await store.fetch_next_page()
        store.set_filters(search_text="john", favorites_only=True)
        visible = store.filtered_users
    """

    def __init__(
        self,
        source,
        persistence,
        parser: Optional[RecordParser] = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        snapshot_key: str = DEFAULT_SNAPSHOT_KEY
    ):
        """
        Args:
            source: Object with `async fetch_page(page, page_size) -> list[dict]`
            persistence: Object with `save(key, value)` and `load(key)`
            parser: Raw record parser (defaults to fail-whole-page parsing)
            page_size: Records requested per fetch
            snapshot_key: Key the snapshot is saved under
        """
        self._source = source
        self._persistence = persistence
        self._parser = parser or RecordParser()
        self.page_size = page_size
        self.snapshot_key = snapshot_key

        self.users: List[User] = []
        self.selected_user: Optional[User] = None
        self._filters = Filters()
        self.tags: List[str] = []
        self.page = 1
        self.loading = False
        self.error: Optional[str] = None
        self.hydrated = False
        self.dirty = False

        self._unloaded_users: List[User] = []
        self._listeners: List[Callable[["RecordStore"], None]] = []

    # ----------------------------------------------
    # Change notification
    # ----------------------------------------------

    def add_listener(self, callback: Callable[["RecordStore"], None]) -> None:
        if callback not in self._listeners:
            self._listeners.append(callback)

    def remove_listener(self, callback: Callable[["RecordStore"], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _touch(self) -> None:
        self.dirty = True
        for callback in list(self._listeners):
            callback(self)

    # ----------------------------------------------
    # Fetching
    # ----------------------------------------------

    async def fetch_next_page(self) -> None:
        """
        Fetch the page at the cursor and append it to `users`.

        No-op while another fetch is in flight. Favorite status and
        tags are carried over from the last saved snapshot by id.
        Any failure (network, payload, malformed record) leaves the
        cursor where it was and sets `error`.
        """
        if self.loading:
            return

        # Set before the first await so a second call sees it
        self.loading = True
        self.error = None

        try:
            raw_records = await self._source.fetch_page(self.page, self.page_size)
            fetched = self._parser.parse_page(raw_records)

            saved_users = self._load_saved_users()
            for user in fetched:
                saved = saved_users.get(user.id)
                user.is_favorite = saved.is_favorite if saved else False
                user.tags = list(saved.tags) if saved else []

            self.users.extend(fetched)
            fetched_ids = {user.id for user in fetched}
            self._unloaded_users = [u for u in self._unloaded_users if u.id not in fetched_ids]
            self.page += 1
            logger.info(f"Fetched {len(fetched)} users, next page {self.page}")

            self._touch()
            self.persist_state()
        except Exception:
            self.error = FETCH_ERROR_MESSAGE
            logger.exception(f"Error fetching users page {self.page}")
        finally:
            self.loading = False

    def _load_saved_users(self) -> Dict[str, User]:
        return self._saved_users_by_id(self._persistence.load(self.snapshot_key))

    @staticmethod
    def _saved_users_by_id(snapshot: Any) -> Dict[str, User]:
        """Snapshot user entries keyed by id, in saved order."""
        if not isinstance(snapshot, dict):
            return {}
        entries = snapshot.get("users")
        if not isinstance(entries, list):
            return {}

        saved_users = {}
        for entry in entries:
            # First occurrence wins, like a linear search would
            if isinstance(entry, dict) and entry.get("id") not in saved_users:
                saved_users[entry.get("id")] = User.from_dict(entry)
        return saved_users

    # ----------------------------------------------
    # Selection and filters
    # ----------------------------------------------

    def find_user(self, user_id: str) -> Optional[User]:
        for user in self.users:
            if user.id == user_id:
                return user
        return None

    def set_selected_user(self, user: Optional[User]) -> None:
        self.selected_user = user
        self._touch()

    @property
    def selected_user_id(self) -> Optional[str]:
        return self.selected_user.id if self.selected_user else None

    @property
    def filters(self) -> Filters:
        return self._filters

    def set_filters(self, search_text=_UNSET, gender=_UNSET, favorites_only=_UNSET) -> bool:
        """
        Update any subset of the filter criteria.

        Returns:
            True if at least one criterion changed
        """
        changed = False
        if search_text is not _UNSET and (search_text or "") != self._filters.search_text:
            self._filters.search_text = search_text or ""
            changed = True
        if gender is not _UNSET and (gender or None) != self._filters.gender:
            self._filters.gender = gender or None
            changed = True
        if favorites_only is not _UNSET and bool(favorites_only) != self._filters.favorites_only:
            self._filters.favorites_only = bool(favorites_only)
            changed = True

        if changed:
            self._touch()
        return changed

    def clear_filters(self) -> bool:
        return self.set_filters(search_text="", gender=None, favorites_only=False)

    # ----------------------------------------------
    # Favorites and per-user tags
    # ----------------------------------------------

    def toggle_favorite(self, user_id: str) -> bool:
        user = self.find_user(user_id)
        if user is None:
            return False
        user.is_favorite = not user.is_favorite
        self._touch()
        self.persist_state()
        return True

    def toggle_user_tag(self, user_id: str, tag: str) -> bool:
        """Add or remove a tag on one user. Does not touch the vocabulary."""
        user = self.find_user(user_id)
        if user is None:
            return False
        if user.has_tag(tag):
            user.tags.remove(tag)
        else:
            user.tags.append(tag)
        self._touch()
        self.persist_state()
        return True

    def add_tag_to_user(self, user_id: str, tag: str) -> bool:
        """Add a tag to one user, registering it in the vocabulary if new."""
        user = self.find_user(user_id)
        if user is None or user.has_tag(tag):
            return False
        user.tags.append(tag)
        if tag not in self.tags:
            self.tags.append(tag)
        self._touch()
        self.persist_state()
        return True

    def remove_tag_from_user(self, user_id: str, tag: str) -> bool:
        user = self.find_user(user_id)
        if user is None or not user.has_tag(tag):
            return False
        user.tags.remove(tag)
        self._touch()
        self.persist_state()
        return True

    # ----------------------------------------------
    # Vocabulary
    # ----------------------------------------------

    def add_tag(self, tag: str) -> bool:
        if tag in self.tags:
            return False
        self.tags.append(tag)
        self._touch()
        self.persist_state()
        return True

    def remove_tag(self, tag: str) -> bool:
        """Remove every vocabulary entry for a tag, and the tag from every user."""
        if tag not in self.tags:
            return False
        self.tags = [t for t in self.tags if t != tag]
        for user in self._annotated_users():
            user.tags = [t for t in user.tags if t != tag]
        self._touch()
        self.persist_state()
        return True

    def update_tag(self, old_tag: str, new_tag: str) -> bool:
        """
        Rename a tag in place, in the vocabulary and on every user.

        Renaming onto a tag that is already in the vocabulary leaves a
        duplicate vocabulary entry (all_tags hides it). A user that
        already carries new_tag just drops old_tag so per-user tags
        stay unique.
        """
        if old_tag not in self.tags:
            return False

        self.tags = [new_tag if t == old_tag else t for t in self.tags]
        for user in self._annotated_users():
            if not user.has_tag(old_tag) or old_tag == new_tag:
                continue
            if user.has_tag(new_tag):
                user.tags.remove(old_tag)
            else:
                user.tags[user.tags.index(old_tag)] = new_tag

        self._touch()
        self.persist_state()
        return True

    def _annotated_users(self) -> List[User]:
        """Loaded users plus saved users whose pages are not loaded yet."""
        return self.users + self._unloaded_users

    # ----------------------------------------------
    # Derived views
    # ----------------------------------------------

    @property
    def filtered_users(self) -> List[User]:
        return [user for user in self.users if self._filters.matches(user)]

    @property
    def all_tags(self) -> List[str]:
        return list(dict.fromkeys(self.tags))

    # ----------------------------------------------
    # Persistence
    # ----------------------------------------------

    def snapshot(self) -> Dict[str, Any]:
        """
        Build the JSON-ready snapshot of the store.

        Returns:
            {"filters": {...}, "users": [...], "tags": [...], "selectedUserId": str | None}

            "users" holds the loaded users, then the restored entries
            whose pages have not been fetched yet.
        """
        loaded_ids = {user.id for user in self.users}
        carried = [user for user in self._unloaded_users if user.id not in loaded_ids]
        return {
            "filters": self._filters.to_dict(),
            "users": [user.to_dict() for user in self.users + carried],
            "tags": list(self.tags),
            "selectedUserId": self.selected_user_id,
        }

    def persist_state(self) -> None:
        """Hand the snapshot to the persistence gateway. Never raises."""
        try:
            self._persistence.save(self.snapshot_key, self.snapshot())
            self.dirty = False
        except Exception as e:
            logger.error(f"Error saving state: {e}")

    def restore_from_persistence(self) -> bool:
        """
        Restore tags, filters and the selected user from the snapshot.

        Users themselves are not restored; they come back through
        fetch_next_page(), which re-applies their saved annotations.
        Saved entries not loaded yet are kept so later saves write
        them back unchanged.

        Returns:
            True if a snapshot was found
        """
        snapshot = self._persistence.load(self.snapshot_key)
        found = isinstance(snapshot, dict)

        if snapshot is not None and not found:
            logger.warning(f"Ignoring snapshot under '{self.snapshot_key}': not an object")

        if found:
            saved_tags = snapshot.get("tags")
            if isinstance(saved_tags, list):
                self.tags = [t for t in saved_tags if isinstance(t, str)]
            else:
                self.tags = []

            loaded_ids = {user.id for user in self.users}
            self._unloaded_users = [
                user for user in self._saved_users_by_id(snapshot).values()
                if user.id not in loaded_ids
            ]

            saved_filters = snapshot.get("filters")
            if isinstance(saved_filters, dict):
                if "searchText" in saved_filters:
                    self._filters.search_text = saved_filters["searchText"] or ""
                if "gender" in saved_filters:
                    self._filters.gender = saved_filters["gender"] or None
                if "favoritesOnly" in saved_filters:
                    self._filters.favorites_only = bool(saved_filters["favoritesOnly"])

            selected_id = snapshot.get("selectedUserId")
            if selected_id:
                self.selected_user = self.find_user(selected_id)

            logger.info(f"Restored {len(self.tags)} tags from '{self.snapshot_key}'")

        self.hydrated = True
        return found
