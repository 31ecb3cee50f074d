"""
Generic record form driven by introspected columns.

A `RecordForm` holds one draft record for one create or edit interaction.
The draft is a deep copy of the initial row restricted to the editable
fields, so changes elsewhere (e.g. live updates to the grid) never reach an
open form. Saving is delegated to an injected coroutine.
"""

from __future__ import annotations

import copy
from typing import Any, Dict, List, Optional, Sequence

from rowdesk.domain.models import ColumnDescriptor, Record
from rowdesk.forms.fields import FieldSpec, FormMode, build_fields, normalize_value
from rowdesk.infrastructure.abstract import SaveCallback
from rowdesk.utils.logging import get_logger

log = get_logger(__name__)

DEFAULT_ERROR_MESSAGE = "An error occurred"


class RecordForm:
    def __init__(
        self,
        columns: Sequence[ColumnDescriptor],
        save: SaveCallback,
        initial: Optional[Record] = None,
        mode: FormMode = FormMode.CREATE,
    ) -> None:
        self.mode = mode
        self.fields: List[FieldSpec] = build_fields(columns, mode)
        self._by_name: Dict[str, FieldSpec] = {field.name: field for field in self.fields}
        self._save = save
        self._draft: Record = {
            field.name: normalize_value(copy.deepcopy((initial or {}).get(field.name)))
            for field in self.fields
        }
        self.error: Optional[str] = None
        self.busy = False
        self.is_open = True

    @property
    def title(self) -> str:
        return "Add New Record" if self.mode is FormMode.CREATE else "Edit Record"

    @property
    def submit_label(self) -> str:
        if self.busy:
            return "Saving..."
        return "Create" if self.mode is FormMode.CREATE else "Save Changes"

    @property
    def draft(self) -> Record:
        return copy.deepcopy(self._draft)

    def field(self, name: str) -> FieldSpec:
        try:
            return self._by_name[name]
        except KeyError:
            raise KeyError(f"'{name}' is not an editable field of this form") from None

    def value(self, name: str) -> Any:
        self.field(name)
        return self._draft[name]

    def set_value(self, name: str, value: Any) -> None:
        self.field(name)
        self._draft[name] = normalize_value(value)

    def set_input(self, name: str, raw: str) -> None:
        """Apply text typed into the field's control."""
        self._draft[name] = self.field(name).parse(raw)

    def missing_required(self) -> List[str]:
        """Required controls that are still empty."""
        return [
            field.name for field in self.fields if field.required and self._draft[field.name] is None
        ]

    async def submit(self) -> bool:
        """
        Hand the draft to the save callback.

        Returns True when saved (the form closes); on failure the message is
        kept in `error` and the form stays open for correction.
        """
        if not self.is_open or self.busy:
            return False
        self.error = None
        self.busy = True
        try:
            await self._save(self.draft)
        except Exception as exc:  # noqa: BLE001 - failures are shown inside the form
            self.error = str(exc) or DEFAULT_ERROR_MESSAGE
            log.warning("Form submission failed", extra={"mode": self.mode.value, "error": self.error})
            return False
        finally:
            self.busy = False
        self.is_open = False
        return True

    def cancel(self) -> None:
        self.is_open = False


def open_form(
    columns: Sequence[ColumnDescriptor],
    save: SaveCallback,
    initial: Optional[Record] = None,
    mode: FormMode = FormMode.CREATE,
) -> RecordForm:
    return RecordForm(columns, save, initial=initial, mode=mode)


__all__ = ["DEFAULT_ERROR_MESSAGE", "RecordForm", "open_form"]
