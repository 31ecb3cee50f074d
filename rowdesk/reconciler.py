"""
Live update reconciliation.

`RecordSet` is the client-held page of rows for one table; `Reconciler`
applies change events to it in arrival order, in place, without refetching.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Iterator, List, Optional

from rowdesk.domain.events import ChangeEvent, DeleteEvent, InsertEvent, UpdateEvent
from rowdesk.domain.models import Record
from rowdesk.utils.logging import get_logger

log = get_logger(__name__)


class RecordSet:
    """
    Ordered rows with unique ids.

    The underlying list object is never swapped out, so views holding a
    reference to `rows` keep seeing the live contents.
    """

    def __init__(self, rows: Iterable[Record] = ()) -> None:
        self._rows: List[Record] = []
        self.replace(rows)

    @property
    def rows(self) -> List[Record]:
        return self._rows

    @property
    def ids(self) -> List[Any]:
        return [row.get("id") for row in self._rows]

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self) -> Iterator[Record]:
        return iter(self._rows)

    def __contains__(self, row_id: object) -> bool:
        return self._index(row_id) is not None

    def _index(self, row_id: Any) -> Optional[int]:
        for index, row in enumerate(self._rows):
            if row.get("id") == row_id:
                return index
        return None

    def get(self, row_id: Any) -> Optional[Record]:
        index = self._index(row_id)
        return self._rows[index] if index is not None else None

    def replace(self, rows: Iterable[Record]) -> None:
        """Swap in a fresh page, keeping the first row for any repeated id."""
        seen = set()
        fresh: List[Record] = []
        for row in rows:
            key = row.get("id")
            if key in seen:
                log.warning("Duplicate row id dropped", extra={"row_id": row.get("id")})
                continue
            seen.add(key)
            fresh.append(dict(row))
        self._rows[:] = fresh

    def append(self, row: Record) -> bool:
        if row.get("id") in self:
            return False
        self._rows.append(dict(row))
        return True

    def merge(self, row_id: Any, changes: Dict[str, Any]) -> bool:
        index = self._index(row_id)
        if index is None:
            return False
        self._rows[index] = {**self._rows[index], **changes}
        return True

    def remove(self, row_id: Any) -> bool:
        index = self._index(row_id)
        if index is None:
            return False
        del self._rows[index]
        return True

    def snapshot(self) -> List[Record]:
        return [dict(row) for row in self._rows]


class Reconciler:
    """Applies change events to one RecordSet."""

    def __init__(self, records: RecordSet) -> None:
        self.records = records

    def apply(self, event: ChangeEvent) -> bool:
        """
        Apply one event. Returns whether the set changed.

        Duplicate inserts, updates for unknown ids, and deletes for unknown
        ids are all no-ops.
        """
        if isinstance(event, InsertEvent):
            changed = self.records.append(event.record)
        elif isinstance(event, UpdateEvent):
            changed = self.records.merge(event.id, event.changes)
        elif isinstance(event, DeleteEvent):
            changed = self.records.remove(event.id)
        else:
            raise TypeError(f"Unsupported change event: {event!r}")
        log.debug(
            "Change applied",
            extra={"kind": event.kind, "changed": changed, "rows": len(self.records)},
        )
        return changed

    def apply_all(self, events: Iterable[ChangeEvent]) -> int:
        return sum(1 for event in events if self.apply(event))


__all__ = ["RecordSet", "Reconciler"]
