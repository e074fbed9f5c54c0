"""
Event records accepted by the dispatcher.

Records are frozen once created. Trait and property maps only ever hold
strings, booleans, numbers and timestamps; other values are dropped while
the record is built.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
import logging
from typing import Any, Dict, Literal, Mapping, Optional, Union
import uuid

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError as PydanticValidationError,
    field_validator,
    model_validator,
)

from analytics.errors import ValidationError

logger = logging.getLogger(__name__)

ALLOWED_VALUE_TYPES = (str, bool, int, float, Decimal, datetime, date)


def clean_properties(values: Optional[Mapping[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Drop every entry whose value is not of an allowed type.

    Args:
        values: A trait or property map, or None.

    Returns:
        A new dictionary holding only the allowed entries, or None if
        nothing was given.
    """
    if values is None:
        return None

    cleaned = {}
    for key, value in values.items():
        if isinstance(value, ALLOWED_VALUE_TYPES):
            cleaned[key] = value
        else:
            logger.debug(
                "Dropping %r: unsupported value type %s", key, type(value).__name__
            )
    return cleaned


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class BaseAction(BaseModel):
    """
    Fields shared by every record: who it is about, when it happened and
    the optional request context (user agent, IP address, ...).
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    action: str
    session_id: Optional[str] = Field(default=None, alias="sessionId")
    user_id: Optional[str] = Field(default=None, alias="userId")
    context: Optional[Dict[str, Any]] = None
    timestamp: datetime = Field(default_factory=_utc_now)
    message_id: str = Field(default_factory=lambda: str(uuid.uuid4()), alias="messageId")

    @model_validator(mode="after")
    def _require_subject(self) -> "BaseAction":
        if not self.session_id and not self.user_id:
            raise ValueError(
                f"Please supply either a valid sessionId or userId (or both) to {self.action}."
            )
        return self

    @classmethod
    def create(cls, **values: Any):
        """
        Build a record, raising ValidationError for malformed input.

        Arguments passed as None fall back to the field defaults.
        """
        try:
            return cls(**{k: v for k, v in values.items() if v is not None})
        except PydanticValidationError as e:
            raise ValidationError(
                message=f"Invalid {cls.__name__} record.", reason=str(e)
            ) from e

    def to_wire(self) -> Dict[str, Any]:
        """
        JSON-ready representation using the collection API field names.
        """
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Identify(BaseAction):
    """
    Ties a visitor to an identity and records traits to segment by.
    """

    action: Literal["identify"] = "identify"
    traits: Optional[Dict[str, Any]] = None

    @field_validator("traits", mode="before")
    @classmethod
    def _clean_traits(cls, value: Any) -> Any:
        if isinstance(value, Mapping):
            return clean_properties(value)
        return value


class Track(BaseAction):
    """
    Records an action performed by a visitor.
    """

    action: Literal["track"] = "track"
    event: str = Field(min_length=1)
    properties: Optional[Dict[str, Any]] = None

    @field_validator("event")
    @classmethod
    def _require_event_name(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Please supply a valid event name to track.")
        return value

    @field_validator("properties", mode="before")
    @classmethod
    def _clean_properties(cls, value: Any) -> Any:
        if isinstance(value, Mapping):
            return clean_properties(value)
        return value


Action = Union[Identify, Track]
