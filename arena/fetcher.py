"""
Sales Arena — Snapshot Fetcher
================================

Pulls the sheet export on a fixed interval, normalizes every row and
publishes an immutable Snapshot.

    fetch (GoogleSheetsExport) -> parse_csv -> build_snapshot -> SnapshotStore.publish

Failure policy: a failed cycle (transport error, non-2xx answer, unusable
document) keeps the previous snapshot, is logged, and the loop simply waits
for its next tick. There are no retries and no backoff; "last updated"
stops advancing, which is the only visible symptom of a failing feed.

At most one refresh is in flight: the poller runs cycles sequentially and
refresh_once() is guarded by a lock, so a manual refresh can't overlap a
scheduled one. Ticks missed while a slow cycle was running are skipped.
"""
from __future__ import annotations

import asyncio
import csv
import io
import time
from dataclasses import replace
from datetime import datetime
from typing import Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Protocol

from arena.lib.errors import ArenaError, SchemaValidationError
from arena.lib.logger import setup_logger
from arena.normalizer import COLUMN_ALIASES, normalize_row
from arena.records import SaleRecord, Snapshot

logger = setup_logger("fetcher")

KNOWN_LABELS = frozenset(label for labels in COLUMN_ALIASES.values() for label in labels)

RefreshListener = Callable[[Optional[Snapshot], Snapshot], Awaitable[None]]


class CSVSource(Protocol):
    async def fetch_csv(self) -> str: ...


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def parse_csv(text: str) -> List[Dict[str, str]]:
    """Parse CSV text with a header row into one dict per data row.

    Blank lines are skipped. When a label appears twice in the header, the
    first non-empty cell under that label wins.

    Raises:
        SchemaValidationError: no header row, or a header that shares no
            label with the expected sheet layout (e.g. an HTML login page).
    """
    try:
        rows = [
            row for row in csv.reader(io.StringIO(text.lstrip("\ufeff")))
            if any(cell.strip() for cell in row)
        ]
    except csv.Error as e:
        raise SchemaValidationError(f"Malformed CSV: {e}")

    if not rows:
        raise SchemaValidationError("Export is empty, no header row")

    header = [label.strip() for label in rows[0]]
    if not KNOWN_LABELS.intersection(header):
        raise SchemaValidationError(
            f"Header has no known sales columns: {header[:8]}", field="header",
        )

    records = []
    for raw in rows[1:]:
        record: Dict[str, str] = {}
        for label, cell in zip(header, raw):
            if not label:
                continue
            if not record.get(label, "").strip():
                record[label] = cell
        records.append(record)
    return records


def build_snapshot(
    rows: Iterable[Mapping[str, Optional[str]]],
    fetched_at: Optional[datetime] = None,
) -> Snapshot:
    """Normalize rows into a Snapshot.

    Rows whose id comes out empty are dropped. A repeated id gets a
    ``-2``, ``-3``... suffix so ids stay unique within the snapshot.
    """
    fetched_at = fetched_at or datetime.now()
    records: List[SaleRecord] = []
    seen: Dict[str, int] = {}
    dropped = 0

    for row in rows:
        record = normalize_row(row, now=fetched_at)
        if not record.id:
            dropped += 1
            continue
        count = seen.get(record.id, 0) + 1
        seen[record.id] = count
        if count > 1:
            logger.debug("Duplicate id %s, suffixing -%d", record.id, count)
            record = replace(record, id=f"{record.id}-{count}")
        records.append(record)

    if dropped:
        logger.debug("Dropped %d row(s) without an identifier", dropped)
    return Snapshot(records=tuple(records), fetched_at=fetched_at)


# ---------------------------------------------------------------------------
# Snapshot store
# ---------------------------------------------------------------------------

class SnapshotStore:
    """Holds the currently published snapshot. Replaced by reference, never mutated."""

    def __init__(self):
        self._snapshot: Optional[Snapshot] = None
        self.last_updated: Optional[datetime] = None
        self.last_error: Optional[str] = None
        self.consecutive_failures = 0

    @property
    def snapshot(self) -> Optional[Snapshot]:
        return self._snapshot

    @property
    def loading(self) -> bool:
        """True until the first successful fetch."""
        return self._snapshot is None

    def publish(self, snapshot: Snapshot) -> Optional[Snapshot]:
        """Swap in ``snapshot`` and return the one it replaced."""
        previous, self._snapshot = self._snapshot, snapshot
        self.last_updated = snapshot.fetched_at
        self.last_error = None
        self.consecutive_failures = 0
        return previous

    def record_failure(self, error: BaseException):
        self.last_error = str(error)
        self.consecutive_failures += 1

    def status(self) -> dict:
        return {
            "loading": self.loading,
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
            "record_count": len(self._snapshot) if self._snapshot else 0,
            "consecutive_failures": self.consecutive_failures,
            "last_error": self.last_error,
        }


# ---------------------------------------------------------------------------
# Poller
# ---------------------------------------------------------------------------

class SnapshotPoller:
    """Background refresh loop with an explicit start/stop lifecycle."""

    def __init__(
        self,
        source: CSVSource,
        store: SnapshotStore,
        interval_seconds: float,
        listeners: Optional[List[RefreshListener]] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.source = source
        self.store = store
        self.interval_seconds = interval_seconds
        self.listeners = list(listeners or [])
        self._clock = clock
        self._lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def add_listener(self, listener: RefreshListener):
        self.listeners.append(listener)

    async def refresh_once(self) -> bool:
        """Run one fetch → normalize → publish cycle.

        Returns True when a new snapshot was published. Returns False when
        the cycle failed (previous snapshot kept) or another cycle was
        already in flight.
        """
        if self._lock.locked():
            logger.warning("Refresh already in flight, skipping")
            return False

        async with self._lock:
            start = time.monotonic()
            try:
                text = await self.source.fetch_csv()
                snapshot = build_snapshot(parse_csv(text), fetched_at=self._clock())
            except ArenaError as e:
                self.store.record_failure(e)
                logger.warning(
                    "Refresh failed, keeping previous snapshot (%d consecutive): %s",
                    self.store.consecutive_failures, e,
                )
                return False

            previous = self.store.publish(snapshot)
            logger.info(
                "Published snapshot: %d records in %.2fs",
                len(snapshot), time.monotonic() - start,
            )

        await self._notify(previous, snapshot)
        return True

    async def _notify(self, previous: Optional[Snapshot], snapshot: Snapshot):
        for listener in self.listeners:
            try:
                await listener(previous, snapshot)
            except Exception as e:
                logger.error("Refresh listener %r failed: %s", listener, e)

    async def _run(self):
        loop = asyncio.get_running_loop()
        next_tick = loop.time()
        while True:
            try:
                await self.refresh_once()
            except Exception as e:
                self.store.record_failure(e)
                logger.exception("Unexpected error during refresh")

            next_tick += self.interval_seconds
            now = loop.time()
            if next_tick < now:
                missed = int((now - next_tick) // self.interval_seconds) + 1
                next_tick += missed * self.interval_seconds
                logger.warning("Refresh overran its interval, skipped %d tick(s)", missed)
            await asyncio.sleep(next_tick - now)

    def start(self):
        """Fetch immediately, then every ``interval_seconds``."""
        if self.running:
            return
        logger.info("Starting snapshot poller (every %.1fs)", self.interval_seconds)
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self):
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Snapshot poller stopped")
