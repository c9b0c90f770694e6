# ==============================================
# Models (Data Classes)
# ==============================================
#
# PURPOSE:
#   Data classes for the records the store owns and the
#   criteria used to filter them.
#
# CLASSES:
# --------
# - Location (dataclass)
#     country, city, street, postcode  → all strings
#
# - User (dataclass)
#     The canonical user record.
#
#     Source-owned attributes:
#     ------------------------
#     - id: str                  → Source-assigned identity
#     - first_name / last_name   → Display-normalized casing
#     - email, gender, thumbnail, picture, phone: str
#     - location: Location
#     - age: int
#
#     Annotations (owned by this system):
#     -----------------------------------
#     - is_favorite: bool        → default False
#     - tags: list[str]          → unique per user, default []
#
# - Filters (dataclass)
#     search_text, gender, favorites_only (AND-composed)
#
# SERIALIZATION:
# --------------
#   to_dict() / from_dict() use the camelCase keys of the persisted
#   snapshot (firstName, isFavorite, searchText, ...).
#
# ==============================================

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class Location:
    """Postal location of a user, flattened to strings."""
    country: str = ""
    city: str = ""
    street: str = ""
    postcode: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {
            "country": self.country,
            "city": self.city,
            "street": self.street,
            "postcode": self.postcode,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Location":
        if not isinstance(data, dict):
            data = {}
        return cls(
            country=data.get("country", ""),
            city=data.get("city", ""),
            street=data.get("street", ""),
            postcode=data.get("postcode", ""),
        )


@dataclass
class User:
    """
    A user record from the remote directory plus local annotations.

    Users are only created by the record parser (fetch path) and only
    mutated through RecordStore operations.
    """

    # --- Identity ---
    id: str

    # --- Source attributes ---
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    gender: str = ""
    thumbnail: str = ""
    picture: str = ""
    location: Location = field(default_factory=Location)
    age: int = 0
    phone: str = ""

    # --- Annotations ---
    is_favorite: bool = False
    tags: List[str] = field(default_factory=list)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize the user for the persisted snapshot.

        Returns:
            A JSON-serializable dictionary with camelCase keys
        """
        return {
            "id": self.id,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "gender": self.gender,
            "thumbnail": self.thumbnail,
            "picture": self.picture,
            "location": self.location.to_dict(),
            "age": self.age,
            "phone": self.phone,
            "isFavorite": self.is_favorite,
            "tags": list(self.tags),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        """
        Rebuild a user from a snapshot entry.

        Args:
            data: Dictionary produced by to_dict(). Partial entries are
                  accepted; missing attributes take their defaults.

        Returns:
            A User instance
        """
        tags = data.get("tags")
        return cls(
            id=data.get("id", ""),
            first_name=data.get("firstName", ""),
            last_name=data.get("lastName", ""),
            email=data.get("email", ""),
            gender=data.get("gender", ""),
            thumbnail=data.get("thumbnail", ""),
            picture=data.get("picture", ""),
            location=Location.from_dict(data.get("location")),
            age=data.get("age", 0),
            phone=data.get("phone", ""),
            is_favorite=bool(data.get("isFavorite", False)),
            tags=[t for t in tags if isinstance(t, str)] if isinstance(tags, list) else [],
        )


@dataclass
class Filters:
    """Criteria for the filtered view. Empty / None / False relax a clause."""
    search_text: str = ""
    gender: Optional[str] = None
    favorites_only: bool = False

    def matches(self, user: User) -> bool:
        """Return True if the user satisfies all three clauses."""
        if self.search_text and self.search_text.lower() not in user.full_name.lower():
            return False
        if self.gender and user.gender != self.gender:
            return False
        if self.favorites_only and not user.is_favorite:
            return False
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "searchText": self.search_text,
            "gender": self.gender,
            "favoritesOnly": self.favorites_only,
        }


__all__ = ["Location", "User", "Filters"]
