"""
Change events pushed by the database change feed.

A trigger publishes one JSON notification per row change:

    {"type": "UPDATE", "schema": "public", "table": "widgets",
     "record": {...new row...}, "old_record": {...old row...},
     "truncated": false}

`ChangeNotification` validates that payload and `to_event()` narrows it to the
tagged `ChangeEvent` union the reconciler consumes.
"""
from __future__ import annotations

from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from rowdesk.domain.models import Record


class InsertEvent(BaseModel):
    kind: Literal["INSERT"] = "INSERT"
    record: Record

    model_config = ConfigDict(frozen=True)

    @property
    def id(self) -> Any:
        return self.record["id"]

    @model_validator(mode="after")
    def _require_id(self) -> "InsertEvent":
        if "id" not in self.record:
            raise ValueError("inserted record has no 'id'")
        return self


class UpdateEvent(BaseModel):
    kind: Literal["UPDATE"] = "UPDATE"
    id: Any
    changes: Record = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)


class DeleteEvent(BaseModel):
    kind: Literal["DELETE"] = "DELETE"
    id: Any

    model_config = ConfigDict(frozen=True)


ChangeEvent = Annotated[
    Union[InsertEvent, UpdateEvent, DeleteEvent],
    Field(discriminator="kind"),
]


class ChangeNotification(BaseModel):
    """
    Raw payload published by the change-feed trigger.

    When the full payload would exceed PostgreSQL's NOTIFY limit the trigger
    sends a `truncated` notification whose rows hold only `id`: a truncated
    insert appends an id-only record, a truncated update carries no changes,
    and a truncated delete still removes the row.
    """

    type: Literal["INSERT", "UPDATE", "DELETE"]
    schema_name: str = Field("public", alias="schema")
    table: str
    record: Optional[Dict[str, Any]] = None
    old_record: Optional[Dict[str, Any]] = None
    truncated: bool = False

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    def row(self) -> Dict[str, Any]:
        """The row the change is about: new values, or old ones for deletes."""
        return (self.record if self.type != "DELETE" else self.old_record) or {}

    def to_event(self) -> ChangeEvent:
        if self.type == "INSERT":
            return InsertEvent(record=dict(self.record or {}))
        if self.type == "UPDATE":
            new = dict(self.record or {})
            row_id = new.get("id", (self.old_record or {}).get("id"))
            if row_id is None:
                raise ValueError("update notification carries no 'id'")
            return UpdateEvent(id=row_id, changes={} if self.truncated else new)
        old = self.old_record or {}
        if "id" not in old:
            raise ValueError("delete notification carries no 'id'")
        return DeleteEvent(id=old["id"])


def parse_notification(payload: Union[str, bytes, Dict[str, Any]]) -> ChangeNotification:
    """Validate a trigger payload."""
    if isinstance(payload, (str, bytes)):
        return ChangeNotification.model_validate_json(payload)
    return ChangeNotification.model_validate(payload)


__all__ = [
    "ChangeEvent",
    "ChangeNotification",
    "DeleteEvent",
    "InsertEvent",
    "UpdateEvent",
    "parse_notification",
]
