"""SQLite storage for reminders."""

import sqlite3
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path

from ..timeutil import utc_now


def _to_db(value: datetime) -> str:
    # Fixed-width UTC text so lexical order matches time order
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _from_db(value: str) -> datetime:
    return datetime.fromisoformat(value)


@dataclass
class Reminder:
    """A local reminder, fired once by the scheduler."""

    subject: str
    time: datetime
    body: str = ""
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    notified: bool = False
    created_at: datetime = field(default_factory=utc_now)


class ReminderStore:
    """Persistent reminder storage using SQLite."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self._conn: sqlite3.Connection | None = None

    def _get_connection(self) -> sqlite3.Connection:
        """Lazily open the connection, creating the parent directory."""
        if self._conn is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(self.db_path)
            self._conn.row_factory = sqlite3.Row
        return self._conn

    def init_db(self) -> None:
        """Create the reminders table if it doesn't exist."""
        conn = self._get_connection()
        conn.execute("""
            CREATE TABLE IF NOT EXISTS reminders (
                id          TEXT PRIMARY KEY,
                subject     TEXT NOT NULL,
                body        TEXT NOT NULL DEFAULT '',
                time        TEXT NOT NULL,
                notified    INTEGER NOT NULL DEFAULT 0,
                created_at  TEXT NOT NULL
            )
        """)
        conn.execute("CREATE INDEX IF NOT EXISTS idx_reminders_time ON reminders(time)")
        conn.commit()

    def save_reminder(self, reminder: Reminder) -> Reminder:
        """Insert a reminder, replacing any existing one with the same id."""
        conn = self._get_connection()
        conn.execute(
            """
            INSERT INTO reminders (id, subject, body, time, notified, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                subject = excluded.subject,
                body = excluded.body,
                time = excluded.time,
                notified = excluded.notified
            """,
            (
                reminder.id,
                reminder.subject,
                reminder.body,
                _to_db(reminder.time),
                int(reminder.notified),
                _to_db(reminder.created_at),
            ),
        )
        conn.commit()
        return reminder

    def get(self, reminder_id: str) -> Reminder | None:
        conn = self._get_connection()
        row = conn.execute("SELECT * FROM reminders WHERE id = ?", (reminder_id,)).fetchone()
        return self._row_to_reminder(row) if row else None

    def delete(self, reminder_id: str) -> bool:
        """Delete a reminder by id.

        Returns:
            True if a reminder was deleted, False if not found.
        """
        conn = self._get_connection()
        cursor = conn.execute("DELETE FROM reminders WHERE id = ?", (reminder_id,))
        conn.commit()
        return cursor.rowcount > 0

    def mark_notified(self, reminder_id: str) -> bool:
        conn = self._get_connection()
        cursor = conn.execute(
            "UPDATE reminders SET notified = 1 WHERE id = ? AND notified = 0",
            (reminder_id,),
        )
        conn.commit()
        return cursor.rowcount > 0

    def fetch_upcoming(self, within_minutes: int, now: datetime | None = None) -> list[Reminder]:
        """Active reminders due between now and ``within_minutes`` from now."""
        now = now or utc_now()
        return self._select(
            "notified = 0 AND time >= ? AND time <= ?",
            (_to_db(now), _to_db(now + timedelta(minutes=within_minutes))),
        )

    def fetch_due(self, now: datetime | None = None) -> list[Reminder]:
        """Active reminders whose time has come."""
        return self._select("notified = 0 AND time <= ?", (_to_db(now or utc_now()),))

    def fetch_all_active(self) -> list[Reminder]:
        return self._select("notified = 0", ())

    def search(self, query: str) -> list[Reminder]:
        """Case-insensitive substring search over subject and body."""
        pattern = f"%{query.lower()}%"
        return self._select("LOWER(subject) LIKE ? OR LOWER(body) LIKE ?", (pattern, pattern))

    def snooze(self, reminder_id: str, minutes: int, now: datetime | None = None) -> Reminder | None:
        """Mark a reminder notified and schedule a follow-up copy.

        Returns:
            The new reminder, or None if the id is unknown.
        """
        original = self.get(reminder_id)
        if original is None:
            return None
        now = now or utc_now()
        self.mark_notified(reminder_id)
        snoozed = Reminder(
            id=f"{reminder_id}_snoozed_{int(now.timestamp())}",
            subject=f"⏰ {original.subject}",
            body=original.body,
            time=now + timedelta(minutes=minutes),
        )
        return self.save_reminder(snoozed)

    def cleanup_old(self, retention_days: int = 30, now: datetime | None = None) -> int:
        """Delete notified reminders older than the retention period.

        Returns:
            Number of reminders deleted.
        """
        cutoff = (now or utc_now()) - timedelta(days=retention_days)
        conn = self._get_connection()
        cursor = conn.execute(
            "DELETE FROM reminders WHERE notified = 1 AND time < ?",
            (_to_db(cutoff),),
        )
        conn.commit()
        return cursor.rowcount

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def _select(self, where: str, params: tuple) -> list[Reminder]:
        conn = self._get_connection()
        rows = conn.execute(
            f"SELECT * FROM reminders WHERE {where} ORDER BY time",
            params,
        ).fetchall()
        return [self._row_to_reminder(row) for row in rows]

    def _row_to_reminder(self, row: sqlite3.Row) -> Reminder:
        return Reminder(
            id=row["id"],
            subject=row["subject"],
            body=row["body"],
            time=_from_db(row["time"]),
            notified=bool(row["notified"]),
            created_at=_from_db(row["created_at"]),
        )
