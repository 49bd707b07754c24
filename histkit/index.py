"""SQLite index of shell history entries: schema, writer and queries."""

from __future__ import annotations

import hashlib
import os
import re
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Iterable, Iterator

SCHEMA_VERSION = 1

SHELL_BASH = "bash"
SHELL_ZSH = "zsh"

_SCHEMA_STATEMENTS = (
    "PRAGMA foreign_keys = ON;",
    """CREATE TABLE IF NOT EXISTS history_entries (
        id TEXT PRIMARY KEY,
        shell TEXT NOT NULL,
        source_file TEXT NOT NULL,
        raw_line TEXT NOT NULL,
        command TEXT NOT NULL,
        timestamp TEXT,
        exit_code INTEGER,
        session_id TEXT,
        hash TEXT,
        ingested_at TEXT NOT NULL
    );""",
    """CREATE UNIQUE INDEX IF NOT EXISTS idx_history_entries_source_hash
        ON history_entries(source_file, hash)
        WHERE hash IS NOT NULL AND hash <> '';""",
    """CREATE INDEX IF NOT EXISTS idx_history_entries_shell
        ON history_entries(shell);""",
    """CREATE INDEX IF NOT EXISTS idx_history_entries_timestamp
        ON history_entries(timestamp);""",
    """CREATE TABLE IF NOT EXISTS runs (
        id TEXT PRIMARY KEY,
        command TEXT NOT NULL,
        started_at TEXT NOT NULL,
        finished_at TEXT,
        status TEXT NOT NULL,
        notes TEXT
    );""",
    f"PRAGMA user_version = {SCHEMA_VERSION};",
)

_INSERT_ENTRY = """
    INSERT OR IGNORE INTO history_entries
        (id, shell, source_file, raw_line, command, timestamp, exit_code, session_id, hash, ingested_at)
    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
"""

_RECENT_ENTRIES = """
    SELECT id, shell, source_file, raw_line, command, timestamp, exit_code, session_id, hash
    FROM history_entries
    ORDER BY COALESCE(timestamp, ingested_at) DESC, ingested_at DESC
    LIMIT ?;
"""

_RFC3339 = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})[Tt](\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?([Zz]|[+-]\d{2}:\d{2})$"
)


class IndexStoreError(RuntimeError):
    """Raised when the history index cannot be opened, written or queried."""


def _blank(value: object) -> bool:
    return not isinstance(value, str) or not value.strip()


@dataclass
class HistoryEntry:
    """One command taken from a shell history file."""

    id: str = ""
    shell: str = ""
    source_file: str = ""
    raw_line: str = ""
    command: str = ""
    timestamp: datetime | None = None
    exit_code: int | None = None
    session_id: str = ""
    hash: str = ""

    def validate(self) -> HistoryEntry:
        """Return the entry unchanged if it is valid; raise IndexStoreError otherwise."""
        if _blank(self.shell):
            raise IndexStoreError("history entry shell is required")
        if _blank(self.source_file):
            raise IndexStoreError("history entry source file is required")
        if _blank(self.command):
            raise IndexStoreError("history entry command is required")
        return self


@dataclass(frozen=True)
class WriteResult:
    """Counts from one batch write."""

    attempted: int = 0
    inserted: int = 0
    skipped: int = 0


@dataclass(frozen=True)
class GroupCount:
    name: str
    count: int


@dataclass(frozen=True)
class HistoryStats:
    total_entries: int = 0
    by_shell: list[GroupCount] = field(default_factory=list)
    by_source: list[GroupCount] = field(default_factory=list)


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def _format_timestamp(moment: datetime) -> str:
    """Format as RFC 3339 in UTC, with trailing zeros of the fraction dropped."""
    utc = _as_utc(moment)
    text = utc.strftime("%Y-%m-%dT%H:%M:%S")
    if utc.microsecond:
        text += "." + f"{utc.microsecond:06d}".rstrip("0")
    return text + "Z"


def _parse_timestamp(value: str) -> datetime:
    match = _RFC3339.match(value)
    if match is None:
        raise ValueError(f"not an RFC 3339 timestamp: {value!r}")
    year, month, day, hour, minute, second, fraction, zone = match.groups()
    micro = int((fraction or "")[:6].ljust(6, "0"))
    if zone in ("Z", "z"):
        tz = timezone.utc
    else:
        sign = -1 if zone[0] == "-" else 1
        offset = timedelta(hours=int(zone[1:3]), minutes=int(zone[4:6]))
        tz = timezone(sign * offset)
    return datetime(
        int(year), int(month), int(day), int(hour), int(minute), int(second), micro, tzinfo=tz
    )


def _require_db(db: sqlite3.Connection | None, action: str) -> sqlite3.Connection:
    if db is None:
        raise IndexStoreError(f"{action}: database is required")
    return db


@contextmanager
def _transaction(db: sqlite3.Connection) -> Iterator[None]:
    db.execute("BEGIN")
    try:
        yield
    except BaseException:
        db.execute("ROLLBACK")
        raise
    db.execute("COMMIT")


def open_database(path: str | os.PathLike[str]) -> sqlite3.Connection:
    """Open (creating if needed) the SQLite database at path."""
    if not os.fspath(path):
        raise IndexStoreError("open sqlite database: path is required")
    target = Path(path)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        os.close(os.open(target, os.O_CREAT | os.O_RDONLY, 0o600))
    except OSError as exc:
        raise IndexStoreError(f"open sqlite database {str(target)!r}: {exc}") from exc
    try:
        return sqlite3.connect(target, isolation_level=None)
    except sqlite3.Error as exc:
        raise IndexStoreError(f"open sqlite database {str(target)!r}: {exc}") from exc


def init_schema(db: sqlite3.Connection | None) -> None:
    """Create the tables and indexes and stamp the schema version."""
    db = _require_db(db, "init schema")
    try:
        with _transaction(db):
            for statement in _SCHEMA_STATEMENTS:
                db.execute(statement)
    except sqlite3.Error as exc:
        raise IndexStoreError(f"init schema: {exc}") from exc


def hash_command(command: str) -> str:
    """Hex SHA-256 digest of the command text."""
    return hashlib.sha256(command.encode("utf-8")).hexdigest()


def derive_entry_id(entry: HistoryEntry) -> str:
    """Stable id built from every field of the entry."""
    parts = (
        entry.shell,
        entry.source_file,
        entry.raw_line,
        entry.command,
        _format_timestamp(entry.timestamp) if entry.timestamp is not None else "",
        str(entry.exit_code) if entry.exit_code is not None else "",
        entry.session_id,
        entry.hash,
    )
    digest = hashlib.sha256()
    for part in parts:
        digest.update(part.encode("utf-8"))
        digest.update(b"\x00")
    return "entry-" + digest.hexdigest()


def _prepare_entry(entry: HistoryEntry) -> HistoryEntry:
    entry.validate()
    if _blank(entry.hash):
        entry = replace(entry, hash=hash_command(entry.command))
    if _blank(entry.id):
        entry = replace(entry, id=derive_entry_id(entry))
    return entry


def _nullable(value: str) -> str | None:
    return None if _blank(value) else value


def write_history_entries(
    db: sqlite3.Connection | None,
    entries: Iterable[HistoryEntry],
    ingested_at: datetime | None = None,
) -> WriteResult:
    """Insert entries in one transaction, skipping duplicates by source and hash."""
    db = _require_db(db, "write history entries")
    batch = list(entries)
    if ingested_at is None:
        ingested_at = datetime.now(timezone.utc)
    if not batch:
        return WriteResult()

    ingested_value = _format_timestamp(ingested_at)
    inserted = 0
    try:
        with _transaction(db):
            for original in batch:
                stored = _prepare_entry(original)
                try:
                    cursor = db.execute(
                        _INSERT_ENTRY,
                        (
                            stored.id,
                            stored.shell,
                            stored.source_file,
                            stored.raw_line,
                            stored.command,
                            _format_timestamp(stored.timestamp)
                            if stored.timestamp is not None
                            else None,
                            stored.exit_code,
                            _nullable(stored.session_id),
                            _nullable(stored.hash),
                            ingested_value,
                        ),
                    )
                except sqlite3.Error as exc:
                    raise IndexStoreError(
                        f"write history entries: insert {stored.source_file!r}: {exc}"
                    ) from exc
                if cursor.rowcount > 0:
                    inserted += 1
    except IndexStoreError as exc:
        if str(exc).startswith("write history entries:"):
            raise
        raise IndexStoreError(f"write history entries: {exc}") from exc
    except sqlite3.Error as exc:
        raise IndexStoreError(f"write history entries: {exc}") from exc

    return WriteResult(attempted=len(batch), inserted=inserted, skipped=len(batch) - inserted)


def query_recent_history_entries(db: sqlite3.Connection | None, limit: int) -> list[HistoryEntry]:
    """Newest entries first, by timestamp or else ingestion time."""
    db = _require_db(db, "query recent history entries")
    if limit <= 0:
        raise IndexStoreError("query recent history entries: limit must be positive")
    try:
        rows = db.execute(_RECENT_ENTRIES, (limit,)).fetchall()
    except sqlite3.Error as exc:
        raise IndexStoreError(f"query recent history entries: {exc}") from exc

    entries = []
    for entry_id, shell, source_file, raw_line, command, stamp, exit_code, session, digest in rows:
        timestamp = None
        if stamp is not None:
            try:
                timestamp = _parse_timestamp(stamp)
            except ValueError as exc:
                raise IndexStoreError(
                    f"query recent history entries: parse timestamp {stamp!r}: {exc}"
                ) from exc
        entries.append(
            HistoryEntry(
                id=entry_id,
                shell=shell,
                source_file=source_file,
                raw_line=raw_line,
                command=command,
                timestamp=timestamp,
                exit_code=int(exit_code) if exit_code is not None else None,
                session_id=session or "",
                hash=digest or "",
            )
        )
    return entries


def _grouped_counts(db: sqlite3.Connection, column: str) -> list[GroupCount]:
    rows = db.execute(
        f"SELECT {column}, COUNT(*) FROM history_entries "
        f"GROUP BY {column} ORDER BY COUNT(*) DESC, {column} ASC;"
    )
    return [GroupCount(name=name, count=count) for name, count in rows]


def query_history_stats(db: sqlite3.Connection | None) -> HistoryStats:
    """Total entry count and counts grouped by shell and by source file."""
    db = _require_db(db, "query history stats")
    try:
        (total,) = db.execute("SELECT COUNT(*) FROM history_entries;").fetchone()
        return HistoryStats(
            total_entries=total,
            by_shell=_grouped_counts(db, "shell"),
            by_source=_grouped_counts(db, "source_file"),
        )
    except sqlite3.Error as exc:
        raise IndexStoreError(f"query history stats: {exc}") from exc