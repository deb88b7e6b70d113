"""
Eve history streaming session

The Eve app pages through an accessory's history with four characteristics:

1. it reads *status* and learns how many entries exist and the reference
   time they are relative to,
2. it writes *request* with the first entry it still needs,
3. it reads *entries* repeatedly, each read returning a header record and
   up to 11 history records, until a read ends with the `00` terminator,
4. it may write *set-time* with its own clock, which is only logged.

Entry numbers on the wire start at 1 and index the history of the bound
type/subtype in oldest-first order.
"""
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from evehistory.core.metrics import record_eve_entries_streamed, record_eve_request
from evehistory.services.eve_codec import (
    EPOCH_OFFSET,
    decode_eve_data,
    encode_eve_data,
    hex_to_number,
    number_to_hex,
)
from evehistory.services.history_store import MAX_HISTORY_SIZE, HistoryStore

logger = logging.getLogger(__name__)

# History records per read of the entries characteristic
EVEHOME_MAX_STREAM = 11

# Returned when no entries are pending
END_OF_STREAM = "00"


class SessionState(str, Enum):
    IDLE = "idle"
    READY = "ready"
    STREAMING = "streaming"


@dataclass
class EveHomeSession:
    """
    Protocol state of the one Eve-linked service of an accessory.

    Attributes:
        type: History type of the linked service
        sub: Subtype, None to aggregate every subtype (irrigation systems)
        evetype: Eve profile name (door, thermo, aqua, ...)
        fields: Field signature codes advertised in the status blob
        entry: Next entry number to send (1-based, 0 before any request)
        count: Entries available when status was last read
        reftime: Reference time in Eve epoch seconds
        send: Entries still expected by the Eve app
    """
    type: str
    sub: Any
    evetype: str
    fields: Tuple[str, ...] = ()
    entry: int = 0
    count: int = 0
    reftime: int = 0
    send: int = 0
    state: SessionState = SessionState.IDLE
    last_set_time: Optional[int] = None


def compute_reftime(store: HistoryStore, history: List[Dict[str, Any]]) -> int:
    """Eve epoch time of the first entry, or of the last history reset."""
    if history:
        return int(history[0]["time"] - EPOCH_OFFSET)
    return int(store.reset_time - EPOCH_OFFSET)


class EveHistoryStream:
    """
    Serves the status, request, entries and set-time characteristics.

    Args:
        store: History of the accessory
        session: Session of the linked service
        format_entry: Profile payload of one entry as hex ('' for none)
        clock: Returns the current unix time
    """

    def __init__(
        self,
        store: HistoryStore,
        session: EveHomeSession,
        format_entry: Callable[[Dict[str, Any]], str],
        clock: Callable[[], int] = lambda: int(time.time()),
    ):
        self.store = store
        self.session = session
        self.format_entry = format_entry
        self._clock = clock

        history = self._history()
        self.session.count = len(history)
        self.session.reftime = compute_reftime(store, history)

    def _history(self) -> List[Dict[str, Any]]:
        return self.store.get_history(self.session.type, self.session.sub)

    def last_event_time(self) -> int:
        """Seconds from the reference time to the newest entry (or now)."""
        last = self.store.last_history(self.session.type, self.session.sub)
        if last:
            return int(last["time"] - self.session.reftime - EPOCH_OFFSET)
        return int(self._clock() - self.session.reftime - EPOCH_OFFSET)

    def reset_total(self) -> int:
        """History reset time in Eve epoch seconds."""
        return int(self.store.reset_time - EPOCH_OFFSET)

    def status(self) -> str:
        """Build the history status blob and refresh count/reftime."""
        session = self.session
        history = self._history()
        session.count = len(history)
        session.reftime = compute_reftime(self.store, history)
        if session.state == SessionState.IDLE:
            session.state = SessionState.READY

        value = " ".join([
            number_to_hex(self.last_event_time(), 8),
            "00000000",
            number_to_hex(session.reftime, 8),
            number_to_hex(len(session.fields), 2),
            " ".join(session.fields),
            number_to_hex(session.count, 4),
            number_to_hex(self.store.max_entries or MAX_HISTORY_SIZE, 4),
            number_to_hex(1, 8),
            "000000000101",
        ])

        logger.debug(
            f"Eve history status for {session.evetype}: {session.count} entries",
            extra={"diagnostic_category": "status", "evetype": session.evetype, "count": session.count}
        )
        return encode_eve_data(value)

    def request(self, value: str) -> None:
        """Handle a history request: the Eve app asks for entries from a position on."""
        session = self.session
        data = decode_eve_data(value)
        entry = hex_to_number(data[4:12]) if data else None
        if entry is None:
            logger.debug(
                "Ignoring malformed Eve history request",
                extra={"diagnostic_category": "request", "evetype": session.evetype}
            )
            return

        session.entry = entry if entry > 0 else 1
        session.send = session.count - session.entry + 1
        session.state = SessionState.STREAMING
        record_eve_request(session.evetype)
        logger.debug(
            f"Eve history request for entry {session.entry}",
            extra={"diagnostic_category": "request", "evetype": session.evetype, "entry": session.entry}
        )

    def entries(self) -> str:
        """Next page of history records, or the end-of-stream marker."""
        session = self.session
        history = self._history()

        if session.entry <= 0 or session.send == 0 or session.entry > session.count:
            session.send = 0
            if session.state == SessionState.STREAMING:
                session.state = SessionState.READY
            logger.debug(
                f"No Eve history entries to send for {session.evetype}",
                extra={"diagnostic_category": "entries", "evetype": session.evetype}
            )
            return encode_eve_data(END_OF_STREAM)

        header = (
            number_to_hex(session.entry, 8) + "0100" + "0000" + "81"
            + number_to_hex(session.reftime, 8) + "0000" + "0000" + "00" + "0000"
        )
        stream = number_to_hex(len(header) // 2 + 1, 2) + header

        sent = 0
        for _ in range(EVEHOME_MAX_STREAM):
            if session.entry > len(history):
                break
            entry = history[session.entry - 1]
            record = (
                number_to_hex(session.entry, 8)
                + number_to_hex(entry["time"] - session.reftime - EPOCH_OFFSET, 8)
                + self.format_entry(entry)
            )
            stream += number_to_hex(len(record) // 2 + 1, 2) + record
            session.entry += 1
            sent += 1
            if session.entry > session.count:
                break

        record_eve_entries_streamed(session.evetype, sent)
        logger.debug(
            f"Sent {sent} Eve history entries for {session.evetype}, next entry {session.entry}",
            extra={"diagnostic_category": "entries", "evetype": session.evetype, "entry": session.entry}
        )

        if session.entry > session.count:
            session.send = 0
            session.state = SessionState.READY
            stream += END_OF_STREAM

        return encode_eve_data(stream)

    def set_time(self, value: str) -> Optional[int]:
        """Decode the clock written by the Eve app (unix time), logged only."""
        data = decode_eve_data(value)
        offset = hex_to_number(data) if data else None
        if offset is None:
            logger.debug(
                "Ignoring malformed Eve set time value",
                extra={"diagnostic_category": "settime", "evetype": self.session.evetype}
            )
            return None

        timestamp = EPOCH_OFFSET + offset
        self.session.last_set_time = timestamp
        logger.debug(
            f"Eve app clock is {timestamp}",
            extra={"diagnostic_category": "settime", "evetype": self.session.evetype, "reader_time": timestamp}
        )
        return timestamp
