"""history.py – The console's launch history file on the memory cards.

The PS2 browser keeps a fixed table of recently launched titles in
``mcN:/B?DATA-SYSTEM/history`` and uses it to pick the icons of its
"Tower of Memories" animation.  Launching through nhddl updates that table the
same way the console would:

- an existing record gets a new timestamp and a bumped launch counter;
- an unknown title takes a random blank slot, or evicts the least launched
  record (oldest first on ties) into the append-only ``history.old`` file.

Wear leveling
~~~~~~~~~~~~~
Each record carries six "wear slot" bits.  Every ten launches past the 14th a
random unused slot is marked and stored in ``shift_amount``, so the bit
pattern written for a record keeps moving.  Once all six slots are used the
counter runs on up to 0x3F and then folds into the terminal "wrapped" state
(``shift_amount == 7``).  :class:`LaunchCounter` names these states.

Record layout (22 bytes, little endian)::

    char     title_id[16]   NUL padded, all zero = blank slot
    uint8    launch_count   saturates at 127
    uint8    bitmask        low 6 bits = used wear slots
    uint8    shift_amount   last selected wear slot, 7 = wrapped
    uint8    (padding)
    uint16   timestamp      (year - 2000) << 9 | month << 5 | day

Both memory cards are processed independently: a failure on one card is
reported and never undoes a successful write on the other.
"""

from __future__ import annotations

import enum
import random
import struct
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import date

from rich.console import Console

from nhddl.errors import NotFoundError, StorageIOError
from nhddl.paths import DeviceMap
from nhddl.utils import atomic_write_bytes

console = Console(stderr=True, highlight=False)

# ---------------------------------------------------------------------------
# Layout constants
# ---------------------------------------------------------------------------

HISTORY_CAPACITY = 21
WEAR_SLOTS = 6
TITLE_ID_SIZE = 16

MAX_LAUNCH_COUNT = 0x7F
ROTATION_START = 14
ROTATION_INTERVAL = 10
SHIFT_WRAPPED = 7

RECORD_STRUCT = struct.Struct("<16sBBBxH")
RECORD_SIZE = RECORD_STRUCT.size

MEMORY_CARDS = ("mc0:", "mc1:")
OVERFLOW_SUFFIX = ".old"
ROMVER_PATH = "rom0:ROMVER"


def history_file_size(capacity: int = HISTORY_CAPACITY) -> int:
    return RECORD_SIZE * capacity


def check_table_shape(capacity: int, wear_slots: int) -> None:
    """Raise ``ValueError`` unless the table constants are usable."""
    if capacity < 1:
        raise ValueError(f"History capacity must be at least 1, got {capacity}")
    if not 1 <= wear_slots < SHIFT_WRAPPED:
        raise ValueError(f"wear_slots must be between 1 and {SHIFT_WRAPPED - 1}, got {wear_slots}")


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------


def pack_date(day: date) -> int:
    """Pack *day* into the 16-bit history timestamp."""
    return ((day.year - 2000) & 0x7F) << 9 | (day.month & 0xF) << 5 | (day.day & 0x1F)


def unpack_date(timestamp: int) -> tuple[int, int, int]:
    """Return ``(year, month, day)`` from a packed timestamp."""
    return 2000 + ((timestamp >> 9) & 0x7F), (timestamp >> 5) & 0xF, timestamp & 0x1F


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


def encode_title_id(title_id: str) -> bytes:
    """Encode *title_id* for the record, truncated to leave a NUL terminator."""
    raw = title_id.encode("ascii", errors="replace")[: TITLE_ID_SIZE - 1]
    return raw.ljust(TITLE_ID_SIZE, b"\x00")


def checked_title_id(title_id: str) -> bytes:
    """Encode *title_id*, raising ``ValueError`` if it would read as a blank slot."""
    tid = encode_title_id(title_id)
    if tid[0] == 0:
        raise ValueError(f"Invalid title ID {title_id!r}")
    return tid


@dataclass
class HistoryRecord:
    """One slot of the history table."""

    title_id: bytes = bytes(TITLE_ID_SIZE)
    launch_count: int = 0
    bitmask: int = 0
    shift_amount: int = 0
    timestamp: int = 0

    @property
    def is_blank(self) -> bool:
        return self.title_id[:1] in (b"", b"\x00")

    @property
    def title(self) -> str:
        return self.title_id.split(b"\x00", 1)[0].decode("ascii", errors="replace")

    def matches(self, title_id: bytes) -> bool:
        """Compare title IDs up to the first NUL, like ``strncmp``."""
        return self.title_id.split(b"\x00", 1)[0] == title_id.split(b"\x00", 1)[0]

    def pack(self) -> bytes:
        return RECORD_STRUCT.pack(
            self.title_id, self.launch_count, self.bitmask, self.shift_amount, self.timestamp
        )

    @classmethod
    def unpack(cls, data: bytes) -> HistoryRecord:
        title_id, launch_count, bitmask, shift_amount, timestamp = RECORD_STRUCT.unpack(data)
        return cls(title_id, launch_count, bitmask, shift_amount, timestamp)

    def reset(self, title_id: bytes, timestamp: int) -> None:
        """Turn this slot into a freshly launched record for *title_id*."""
        self.title_id = title_id
        self.launch_count = 1
        self.bitmask = 1
        self.shift_amount = 0
        self.timestamp = timestamp

    def to_dict(self) -> dict[str, object]:
        year, month, day = unpack_date(self.timestamp)
        return {
            "title_id": self.title,
            "launch_count": self.launch_count,
            "bitmask": f"0x{self.bitmask:02x}",
            "shift_amount": self.shift_amount,
            "date": f"{year:04d}-{month:02d}-{day:02d}",
        }


# ---------------------------------------------------------------------------
# Launch counter
# ---------------------------------------------------------------------------


class CounterState(enum.Enum):
    ROTATING = "rotating"  # plain counter, wear slots still being picked
    EXHAUSTED = "exhausted"  # all wear slots used, counter runs up to the wear mask
    SATURATED = "saturated"  # counter reached the wear mask, next launch wraps


@dataclass
class LaunchCounter:
    """Tagged view over a record's ``launch_count``/``bitmask``/``shift_amount``."""

    record: HistoryRecord
    wear_slots: int = WEAR_SLOTS

    @property
    def wear_mask(self) -> int:
        return (1 << self.wear_slots) - 1

    @property
    def state(self) -> CounterState:
        if self.record.bitmask & self.wear_mask != self.wear_mask:
            return CounterState.ROTATING
        if self.record.launch_count < self.wear_mask:
            return CounterState.EXHAUSTED
        return CounterState.SATURATED

    @property
    def is_wrapped(self) -> bool:
        return self.record.shift_amount == SHIFT_WRAPPED

    def unused_slots(self) -> list[int]:
        return [bit for bit in range(self.wear_slots) if not (self.record.bitmask >> bit) & 1]

    def advance(self, rng: random.Random) -> int | None:
        """Count one launch.  Returns the newly selected wear slot, if any."""
        rec = self.record
        state = self.state
        if state is CounterState.ROTATING:
            count = min(rec.launch_count + 1, MAX_LAUNCH_COUNT)
            selected = None
            if count >= ROTATION_START and (count - ROTATION_START) % ROTATION_INTERVAL == 0:
                selected = rng.choice(self.unused_slots())
                rec.shift_amount = selected
                rec.bitmask |= 1 << selected
            rec.launch_count = count
            return selected
        if state is CounterState.EXHAUSTED:
            rec.launch_count += 1
        else:
            rec.launch_count = rec.bitmask & self.wear_mask
            rec.shift_amount = SHIFT_WRAPPED
        return None


# ---------------------------------------------------------------------------
# Table
# ---------------------------------------------------------------------------


@dataclass
class ScanResult:
    match: int | None
    blank_slots: list[int]
    least_used: int | None


@dataclass
class UpdateResult:
    """What :meth:`HistoryTable.update` did."""

    slot: int
    action: str  # "updated", "inserted" or "evicted"
    evicted: HistoryRecord | None = None
    wear_slot: int | None = None


class HistoryTable:
    """Fixed-capacity array of :class:`HistoryRecord`."""

    def __init__(
        self,
        records: list[HistoryRecord] | None = None,
        capacity: int = HISTORY_CAPACITY,
        wear_slots: int = WEAR_SLOTS,
    ) -> None:
        check_table_shape(capacity, wear_slots)
        records = list(records) if records is not None else []
        if len(records) > capacity:
            raise ValueError(f"{len(records)} records exceed capacity {capacity}")
        records.extend(HistoryRecord() for _ in range(capacity - len(records)))
        self.records = records
        self.capacity = capacity
        self.wear_slots = wear_slots

    def __len__(self) -> int:
        return self.capacity

    def __getitem__(self, index: int) -> HistoryRecord:
        return self.records[index]

    @classmethod
    def from_bytes(
        cls, data: bytes, capacity: int = HISTORY_CAPACITY, wear_slots: int = WEAR_SLOTS
    ) -> HistoryTable:
        """Parse a whole history file; raises ``StorageIOError`` on a size mismatch."""
        expected = history_file_size(capacity)
        if len(data) != expected:
            raise StorageIOError(f"History file is {len(data)} bytes, expected {expected}")
        records = [
            HistoryRecord.unpack(data[off : off + RECORD_SIZE])
            for off in range(0, expected, RECORD_SIZE)
        ]
        return cls(records, capacity, wear_slots)

    def to_bytes(self) -> bytes:
        return b"".join(rec.pack() for rec in self.records)

    def live_records(self) -> list[tuple[int, HistoryRecord]]:
        return [(i, rec) for i, rec in enumerate(self.records) if not rec.is_blank]

    def scan(self, title_id: bytes) -> ScanResult:
        """Single pass: matching slot, blank slots and least used live slot."""
        match: int | None = None
        blanks: list[int] = []
        least: int | None = None
        for i, rec in enumerate(self.records):
            if rec.is_blank:
                blanks.append(i)
                continue
            if least is None or (rec.launch_count, rec.timestamp) < (
                self.records[least].launch_count,
                self.records[least].timestamp,
            ):
                least = i
            if match is None and rec.matches(title_id):
                match = i
        return ScanResult(match, blanks, least)

    def update(self, title_id: str, timestamp: int, rng: random.Random) -> UpdateResult:
        """Record one launch of *title_id*.

        Raises ``ValueError`` for an ID that would encode as a blank slot.
        """
        tid = checked_title_id(title_id)
        scan = self.scan(tid)

        if scan.match is not None:
            rec = self.records[scan.match]
            rec.timestamp = timestamp
            selected = LaunchCounter(rec, self.wear_slots).advance(rng)
            return UpdateResult(scan.match, "updated", wear_slot=selected)

        if scan.blank_slots:
            slot = rng.choice(scan.blank_slots)
            self.records[slot].reset(tid, timestamp)
            return UpdateResult(slot, "inserted")

        if scan.least_used is None:
            raise ValueError("History table has no slots")
        slot = scan.least_used
        evicted = replace(self.records[slot])
        self.records[slot].reset(tid, timestamp)
        return UpdateResult(slot, "evicted", evicted=evicted)


# ---------------------------------------------------------------------------
# Region / system data directory
# ---------------------------------------------------------------------------


def region_from_romver(romver: str) -> str:
    """Map the ROMVER region character to the system data directory letter."""
    region = romver[4:5]
    if region == "C":
        return "C"
    if region == "E":
        return "E"
    if region in ("H", "A"):
        return "A"
    return "I"


def detect_region(devices: DeviceMap) -> str:
    """Read ``rom0:ROMVER`` and return the region letter."""
    try:
        path = devices.resolve(ROMVER_PATH)
        romver = path.read_bytes()[:5].decode("ascii", errors="replace")
    except OSError as exc:
        raise NotFoundError(f"Cannot read {ROMVER_PATH}: {exc}") from exc
    return region_from_romver(romver)


def system_data_dir(region: str) -> str:
    return f"/B{region}DATA-SYSTEM"


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


@dataclass
class CardResult:
    """Outcome of a history update on a single memory card."""

    card: str
    status: str  # "updated", "skipped" or "failed"
    path: str = ""
    slot: int | None = None
    action: str = ""
    error: str = ""

    def to_dict(self) -> dict[str, object]:
        return {
            "card": self.card,
            "status": self.status,
            "path": self.path,
            "slot": self.slot,
            "action": self.action,
            "error": self.error,
        }


@dataclass
class HistoryStore:
    """Reads, updates and writes the history file on every memory card."""

    devices: DeviceMap
    region: str
    cards: tuple[str, ...] = MEMORY_CARDS
    capacity: int = HISTORY_CAPACITY
    wear_slots: int = WEAR_SLOTS
    rng: random.Random = field(default_factory=random.Random)
    today: Callable[[], date] = date.today

    def history_path(self, card: str) -> str:
        return f"{card}{system_data_dir(self.region)}/history"

    def overflow_path(self, card: str) -> str:
        return self.history_path(card) + OVERFLOW_SUFFIX

    def is_present(self, card: str) -> bool:
        """True when the card is mapped and has the region's system data dir."""
        if not self.devices.has(card):
            return False
        return self.devices.resolve(self.history_path(card)).parent.is_dir()

    def load(self, card: str) -> HistoryTable:
        """Load the table from *card*.

        A missing file or one with the wrong size yields an empty table.
        """
        path = self.devices.resolve(self.history_path(card))
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            console.print(f"No history file at {self.history_path(card)}, starting a new one")
            return HistoryTable(capacity=self.capacity, wear_slots=self.wear_slots)
        except OSError as exc:
            console.print(f"Failed to read the history file ({exc}), reinitializing")
            return HistoryTable(capacity=self.capacity, wear_slots=self.wear_slots)

        try:
            return HistoryTable.from_bytes(data, self.capacity, self.wear_slots)
        except StorageIOError as exc:
            console.print(f"Failed to load the history file ({exc}), reinitializing")
            return HistoryTable(capacity=self.capacity, wear_slots=self.wear_slots)

    def save(self, card: str, table: HistoryTable) -> None:
        path = self.devices.resolve(self.history_path(card))
        try:
            atomic_write_bytes(path, table.to_bytes())
        except OSError as exc:
            raise StorageIOError(f"Failed to write {self.history_path(card)}: {exc}") from exc

    def append_overflow(self, card: str, record: HistoryRecord) -> None:
        """Append an evicted record to ``history.old``."""
        console.print(f"Evicting {record.title} into {self.overflow_path(card)}")
        path = self.devices.resolve(self.overflow_path(card))
        data = record.pack()
        try:
            with open(path, "ab") as f:
                written = f.write(data)
        except OSError as exc:
            raise StorageIOError(f"Failed to append to {self.overflow_path(card)}: {exc}") from exc
        if written != len(data):
            raise StorageIOError(f"Short write to {self.overflow_path(card)}: {written}/{len(data)}")

    def update_card(self, card: str, title_id: str) -> CardResult:
        """Run one load → update → store cycle on *card*."""
        display = self.history_path(card)
        if not self.is_present(card):
            return CardResult(card, "skipped", display)

        console.print(f"Updating history file at {display}")
        table = self.load(card)
        result = table.update(title_id, pack_date(self.today()), self.rng)

        if result.evicted is not None:
            try:
                self.append_overflow(card, result.evicted)
            except StorageIOError as exc:
                console.print(f"ERROR: {exc}")

        if result.action == "updated":
            console.print(f"Updating entry at slot {result.slot}")
        else:
            console.print(f"Inserting entry to slot {result.slot}")

        try:
            self.save(card, table)
        except StorageIOError as exc:
            console.print(f"ERROR: {exc}")
            return CardResult(card, "failed", display, result.slot, result.action, str(exc))
        return CardResult(card, "updated", display, result.slot, result.action)

    def record_launch(self, title_id: str) -> list[CardResult]:
        """Add *title_id* to the history file on every memory card.

        Raises ``ValueError`` for an empty title ID before any card is touched.
        """
        checked_title_id(title_id)
        return [self.update_card(card, title_id) for card in self.cards]
