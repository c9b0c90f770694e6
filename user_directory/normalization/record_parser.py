# ==============================================
# RecordParser
# ==============================================
#
# PURPOSE:
#   Turn one raw directory record (randomuser.me shape) into a
#   canonical User, or report why it cannot be turned into one.
#
# VALIDATION:
# -----------
#   Required nested objects:  id, name, picture, location,
#                             location.street, dob
#   Required values:          name.first, name.last
#
#   A non-dict record → ParseError(NOT_AN_OBJECT)
#   A missing requirement → ParseError(MISSING_FIELD, field=<path>)
#
# FIELD MAPPING / DEFAULTS:
# -------------------------
#   id          ← id.value            (None → "")
#   first_name  ← name.first          (capitalize_first)
#   last_name   ← name.last           (capitalize_first)
#   email, gender, phone              (missing → "")
#   thumbnail   ← picture.thumbnail   (missing → "")
#   picture     ← picture.large       (missing → "")
#   location.country / city           (missing → "")
#   location.street ← "<number> <name>" (each part missing → "")
#   location.postcode ← str(postcode) (missing → "")
#   age         ← int(dob.age)        (missing or not numeric → 0)
#   is_favorite = False, tags = []    (annotations never come from the source)
#
# PAGES:
# ------
#   parse_page() raises MalformedRecordError on the first bad
#   record (whole page rejected) unless skip_malformed is set,
#   in which case bad records are logged and dropped.
#
# ==============================================

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from loguru import logger

from user_directory.errors import MalformedRecordError
from user_directory.models import Location, User


class ParseErrorKind(Enum):
    MISSING_FIELD = "missing_field"
    NOT_AN_OBJECT = "not_an_object"


@dataclass
class ParseError:
    """Why one raw record was rejected."""
    kind: ParseErrorKind
    field: str = ""
    index: Optional[int] = None

    def to_exception(self) -> MalformedRecordError:
        if self.kind is ParseErrorKind.NOT_AN_OBJECT:
            return MalformedRecordError("<record>", self.index, reason="record is not an object")
        return MalformedRecordError(self.field, self.index)


@dataclass
class ParseResult:
    """Either ok with a user, or not ok with an error."""
    ok: bool
    user: Optional[User] = None
    error: Optional[ParseError] = None


class RecordParser:
    """
    Raw record → User transform. Holds only the skip_malformed policy.

    Example:
        users = RecordParser().parse_page(payload["results"])
    """

    # Nested objects / values the transform cannot do without
    REQUIRED_OBJECTS = ("id", "name", "picture", "location", "location.street", "dob")
    REQUIRED_VALUES = ("name.first", "name.last")

    def __init__(self, skip_malformed: bool = False):
        self.skip_malformed = skip_malformed

    def parse(self, raw_record: Any, index: Optional[int] = None) -> ParseResult:
        """
        Validate and transform one raw record.

        Args:
            raw_record: One entry of the source "results" list
            index: Position in the page, reported in errors

        Returns:
            ParseResult (never raises for bad input)
        """
        if not isinstance(raw_record, dict):
            return ParseResult(ok=False, error=ParseError(ParseErrorKind.NOT_AN_OBJECT, index=index))

        missing = self._find_missing_field(raw_record)
        if missing:
            return ParseResult(ok=False, error=ParseError(ParseErrorKind.MISSING_FIELD, missing, index))

        return ParseResult(ok=True, user=self._to_user(raw_record))

    def parse_page(self, raw_records: list) -> list[User]:
        """
        Parse a whole page, preserving source order.

        Raises:
            MalformedRecordError: first bad record, unless skip_malformed
        """
        users = []
        for index, raw_record in enumerate(raw_records):
            result = self.parse(raw_record, index)
            if result.ok:
                users.append(result.user)
                continue

            if not self.skip_malformed:
                raise result.error.to_exception()
            logger.warning(f"Skipping malformed record #{index}: {result.error.kind.value} {result.error.field}")
        return users

    def _find_missing_field(self, raw_record: dict) -> Optional[str]:
        for path in self.REQUIRED_OBJECTS:
            if not isinstance(self._lookup(raw_record, path), dict):
                return path
        for path in self.REQUIRED_VALUES:
            if self._lookup(raw_record, path) is None:
                return path
        return None

    def _to_user(self, raw: dict) -> User:
        name = raw["name"]
        picture = raw["picture"]
        location = raw["location"]
        street = location["street"]
        postcode = location.get("postcode")

        return User(
            id=self._text(raw["id"].get("value")),
            first_name=capitalize_first(str(name["first"])),
            last_name=capitalize_first(str(name["last"])),
            email=self._text(raw.get("email")),
            gender=self._text(raw.get("gender")),
            thumbnail=self._text(picture.get("thumbnail")),
            picture=self._text(picture.get("large")),
            location=Location(
                country=self._text(location.get("country")),
                city=self._text(location.get("city")),
                street=f"{self._text(street.get('number'))} {self._text(street.get('name'))}",
                postcode="" if postcode is None else str(postcode),
            ),
            age=self._int(raw["dob"].get("age")),
            phone=self._text(raw.get("phone")),
            is_favorite=False,
            tags=[],
        )

    @staticmethod
    def _lookup(record: dict, path: str) -> Any:
        value: Any = record
        for part in path.split("."):
            if not isinstance(value, dict):
                return None
            value = value.get(part)
        return value

    @staticmethod
    def _text(value: Any) -> str:
        return "" if value is None else str(value)

    @staticmethod
    def _int(value: Any) -> int:
        if value is None:
            return 0
        try:
            return int(value)
        except (TypeError, ValueError):
            return 0


def capitalize_first(text: str) -> str:
    """'jOHN' -> 'John'"""
    return text[:1].upper() + text[1:].lower()
