"""
Per-accessory history store

A bounded ring buffer of timestamped history entries with an index of the
newest entry per (type, sub) pair. The whole document is written back to
storage after every mutation, so a restart picks up exactly where the
accessory left off.

Document layout (also the persisted form):
    reset     unix time the history was last cleared
    rollover  unix time the buffer last wrapped, 0 if never
    next      position the next entry is written to
    types     [{type, sub, lastEntry}] newest entry per type/subtype
    data      the entries, oldest first once unwrapped from `next`

Entries are dicts holding at least `time`, `type` and `sub`; the remaining
keys depend on the kind of service that recorded them.
"""
import csv
import logging
import time
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from evehistory.core.metrics import (
    record_history_entry,
    record_history_reset,
    record_history_rollover,
)
from evehistory.schemas.eve import PersistedHistory
from evehistory.services.history_storage import HistoryStorage

logger = logging.getLogger(__name__)

# Default ring buffer capacity, 0 makes the store unbounded
MAX_HISTORY_SIZE = 16384

# Keys every entry carries that are not recorded fields
ENTRY_KEYS = ("time", "type", "sub")

# Marker for "subtype not given": resolves to the object's subtype or 0
DEFAULT_SUBTYPE = object()


def _now() -> int:
    return int(time.time())


def history_type_of(service: Any) -> str:
    """History type of a HAP service (its upper-case UUID) or a plain type string."""
    type_id = getattr(service, "type_id", None)
    if type_id is not None:
        return str(type_id).upper()
    return str(service)


def history_subtype_of(service: Any) -> Any:
    """Subtype of a HAP service (its unique_id), 0 for anything else."""
    unique_id = getattr(service, "unique_id", None)
    return unique_id if unique_id is not None else 0


class HistoryStore:
    """
    Ring buffer of history entries persisted under one storage key.

    Args:
        storage: Backend with get(key)/set(key, value)
        storage_key: Key of this accessory's document
        max_entries: Ring capacity, 0 for unbounded
        clock: Returns the current unix time (int seconds)
    """

    def __init__(
        self,
        storage: HistoryStorage,
        storage_key: str,
        max_entries: int = MAX_HISTORY_SIZE,
        clock: Callable[[], int] = _now,
    ):
        self._storage = storage
        self.storage_key = storage_key
        self.max_entries = max_entries
        self._clock = clock

        self._reset: float = 0
        self._rollover: float = 0
        self._next = 0
        self._types: List[Dict[str, Any]] = []
        self._data: List[Dict[str, Any]] = []

        self._load()

        # Capacity may have shrunk since the document was written
        if self.max_entries and (self._next >= self.max_entries or len(self._data) > self.max_entries):
            self.rollover_history()

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def reset_time(self) -> float:
        return self._reset

    @property
    def rollover_time(self) -> float:
        return self._rollover

    @property
    def next_index(self) -> int:
        return self._next

    @property
    def types(self) -> List[Dict[str, Any]]:
        return [dict(entry) for entry in self._types]

    @property
    def entries(self) -> List[Dict[str, Any]]:
        """Entries in storage order (not unwrapped)."""
        return [dict(entry) for entry in self._data]

    def __len__(self) -> int:
        return len(self._data)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _load(self) -> None:
        stored = self._storage.get(self.storage_key)
        if stored is None:
            self._clear(reason="startup")
            return

        try:
            document = PersistedHistory.model_validate(stored)
            if document.next > len(document.data):
                raise ValueError("insertion cursor beyond stored entries")
        except (ValidationError, ValueError, TypeError) as e:
            logger.warning(
                f"Discarding malformed history document {self.storage_key}: {e}",
                extra={"diagnostic_category": "lifecycle", "storage_key": self.storage_key}
            )
            self._clear(reason="invalid")
            return

        self._reset = document.reset
        self._rollover = document.rollover
        self._next = document.next
        self._types = [
            {"type": entry.type, "sub": entry.sub, "lastEntry": entry.last_entry}
            for entry in document.types
        ]
        self._data = document.data
        self._prune_types()

        logger.debug(
            f"Loaded history {self.storage_key} with {len(self._data)} entries",
            extra={"storage_key": self.storage_key, "entries": len(self._data)}
        )

    def _persist(self) -> None:
        self._storage.set(self.storage_key, {
            "reset": self._reset,
            "rollover": self._rollover,
            "next": self._next,
            "types": self._types,
            "data": self._data,
        })

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def _clear(self, reason: str) -> None:
        self._reset = self._clock()
        self._rollover = 0
        self._next = 0
        self._types = []
        self._data = []
        self._persist()
        record_history_reset(reason)
        logger.info(
            f"History reset for {self.storage_key}",
            extra={"diagnostic_category": "lifecycle", "storage_key": self.storage_key, "reason": reason}
        )

    def reset_history(self) -> None:
        """Clear all entries and the type index, stamping the reset time."""
        self._clear(reason="manual")

    def _wrap(self) -> None:
        self._rollover = self._clock()
        self._next = 0
        if self.max_entries:
            del self._data[self.max_entries:]
        self._rebuild_types()
        record_history_rollover()
        logger.debug(
            f"History rollover for {self.storage_key}",
            extra={"diagnostic_category": "lifecycle", "storage_key": self.storage_key}
        )

    def rollover_history(self) -> None:
        """Wrap the ring buffer: cursor back to 0, stored data cut to capacity."""
        self._wrap()
        self._persist()

    def _find_type(self, type_id: str, sub: Any) -> Optional[int]:
        for index, entry in enumerate(self._types):
            if entry["type"] == type_id and entry["sub"] == sub:
                return index
        return None

    def _rebuild_types(self) -> None:
        # Scan newest to oldest, first hit per pair is its latest entry
        self._types = []
        seen = set()
        for position in range(len(self._data) - 1, -1, -1):
            entry = self._data[position]
            key = (entry.get("type"), entry.get("sub"))
            if key in seen:
                continue
            seen.add(key)
            self._types.append({"type": key[0], "sub": key[1], "lastEntry": position})

    def _prune_types(self) -> None:
        valid = []
        for entry in self._types:
            position = entry["lastEntry"]
            if position < len(self._data):
                stored = self._data[position]
                if stored.get("type") == entry["type"] and stored.get("sub") == entry["sub"]:
                    valid.append(entry)
        self._types = valid

    def add_entry(
        self,
        type_id: str,
        sub: Any = 0,
        time: Optional[float] = None,
        timegap: float = 0,
        fields: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """
        Record one history entry.

        Args:
            type_id: History type (usually a HAP service UUID)
            sub: Subtype within the type
            time: Unix time of the entry, now when None
            timegap: Minimum seconds since the previous entry of the same
                type/sub; closer entries are dropped unless they carry a
                `restart` marker
            fields: Recorded values

        Returns:
            True if the entry was stored, False if the time gap suppressed it
        """
        record = {
            "time": self._clock() if time is None else time,
            "type": type_id,
            "sub": sub,
        }
        for key, value in (fields or {}).items():
            if key not in ENTRY_KEYS:
                record[key] = value

        if timegap > 0 and "restart" not in record:
            index = self._find_type(type_id, sub)
            if index is not None:
                last = self._data[self._types[index]["lastEntry"]]
                if record["time"] - last["time"] < timegap:
                    record_history_entry(False)
                    logger.debug(
                        f"History entry for {type_id}/{sub} within {timegap}s of previous, skipped",
                        extra={"storage_key": self.storage_key}
                    )
                    return False

        if self.max_entries and self._next >= self.max_entries:
            self._wrap()

        position = self._next
        if position < len(self._data):
            self._data[position] = record
        else:
            self._data.append(record)

        index = self._find_type(type_id, sub)
        if index is None:
            self._types.append({"type": type_id, "sub": sub, "lastEntry": position})
        else:
            self._types[index]["lastEntry"] = position

        self._next += 1
        if self.max_entries and self._next >= self.max_entries:
            self._wrap()

        self._prune_types()
        self._persist()
        record_history_entry(True)
        return True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _ordered(self) -> List[Dict[str, Any]]:
        return self._data[self._next:] + self._data[:self._next]

    def get_history(
        self,
        service: Any,
        subtype: Any = DEFAULT_SUBTYPE,
        field_filter: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """
        Entries of one type, oldest first.

        Args:
            service: Type string or HAP service object
            subtype: Subtype to match; None matches every subtype, omitted
                uses the service's own subtype (0 for plain types)
            field_filter: Optional single {field: value} equality filter

        Raises:
            ValueError: If the filter names more than one field
        """
        type_id = history_type_of(service)
        if subtype is DEFAULT_SUBTYPE:
            subtype = history_subtype_of(service)

        filter_key = None
        filter_value = None
        if field_filter:
            if len(field_filter) > 1:
                raise ValueError("history field filter accepts a single field")
            filter_key, filter_value = next(iter(field_filter.items()))

        history = []
        for entry in self._ordered():
            if entry.get("type") != type_id:
                continue
            if subtype is not None and entry.get("sub") != subtype:
                continue
            if filter_key is not None and entry.get(filter_key) != filter_value:
                continue
            history.append(dict(entry))
        return history

    def last_history(self, service: Any, subtype: Any = DEFAULT_SUBTYPE) -> Optional[Dict[str, Any]]:
        """Newest entry of a type/subtype; with subtype None the newest across subtypes."""
        type_id = history_type_of(service)
        if subtype is DEFAULT_SUBTYPE:
            subtype = history_subtype_of(service)

        if subtype is None:
            newest = None
            for entry in self._ordered():
                if entry.get("type") == type_id and (newest is None or entry["time"] >= newest["time"]):
                    newest = entry
            return dict(newest) if newest is not None else None

        index = self._find_type(type_id, subtype)
        if index is None:
            return None
        return dict(self._data[self._types[index]["lastEntry"]])

    def entry_count(
        self,
        service: Any,
        subtype: Any = DEFAULT_SUBTYPE,
        field_filter: Optional[Dict[str, Any]] = None,
    ) -> int:
        """Number of entries get_history would return."""
        return len(self.get_history(service, subtype, field_filter))

    def export_csv(self, service: Any, path: str) -> int:
        """
        Write every entry of a type (all subtypes) to a CSV file.

        Columns are the entry time in local time, the subtype and each
        recorded field in order of first appearance. Returns the row count.
        """
        history = self.get_history(service, None)
        columns: List[str] = []
        for entry in history:
            for key in entry:
                if key not in ENTRY_KEYS and key != "restart" and key not in columns:
                    columns.append(key)

        with open(path, "w", newline="", encoding="utf-8") as csv_file:
            writer = csv.writer(csv_file)
            writer.writerow(["time", "subtype"] + columns)
            for entry in history:
                writer.writerow(
                    [datetime.fromtimestamp(entry["time"]).strftime("%Y-%m-%d %H:%M:%S"), entry.get("sub")]
                    + [entry.get(column, "") for column in columns]
                )

        logger.info(
            f"Exported {len(history)} history entries to {path}",
            extra={"storage_key": self.storage_key, "entries": len(history)}
        )
        return len(history)
