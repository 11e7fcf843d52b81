"""Optional event base model for raiser.

The buses route any value by its exact type and never look inside it.
:class:`DomainEvent` is a convenience for applications that want every
event to carry the same metadata.
"""

import uuid
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from raiser.exceptions import EventValidationError


def _new_event_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(UTC)


class DomainEvent(BaseModel):
    """Base class for domain events with consistent metadata.

    Subclass it to add fields.  Instances are immutable (frozen).

    Example:
        >>> class UserCreated(DomainEvent):
        ...     user_id: str
        >>> event = UserCreated(user_id="123", aggregate_id="user-123")

    Attributes:
        id: Unique identifier, generated when not given.
        occurred_on: Creation time (UTC), taken now when not given.
        metadata: Auxiliary key/value data.
        aggregate_id: Optional id of the aggregate the event belongs to.

    Raises:
        EventValidationError: If fields fail pydantic validation.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(default_factory=_new_event_id)
    occurred_on: datetime = Field(default_factory=_utcnow)
    metadata: dict[str, Any] = Field(default_factory=dict)
    aggregate_id: str | None = None

    def __init__(self, **data: Any) -> None:
        """Wrap pydantic ValidationError into EventValidationError."""
        try:
            super().__init__(**data)
        except ValidationError as exc:
            raise EventValidationError(str(exc)) from exc

    def to_metadata_map(self) -> dict[str, Any]:
        """Return the event metadata as a plain dict.

        Subclasses extend it with their own fields::

            def to_metadata_map(self) -> dict[str, Any]:
                return {**super().to_metadata_map(), "user_id": self.user_id}
        """
        return {
            "id": self.id,
            "occurred_on": self.occurred_on.isoformat(),
            "aggregate_id": self.aggregate_id,
            "metadata": dict(self.metadata),
        }
