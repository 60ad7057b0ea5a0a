"""
src/core/db.py — SQLite store for quotes, line items and profiles

TABLES:
  quotes       — one row per proposal, addressed publicly by public_id
  quote_items  — priced lines, quote_items.quote_id → quotes.id
  profiles     — auth_user_id → role (who may send quotes)

The delivery pipeline only reads, plus one keyed update (mark_sent). Reads
return Found / Missing / StoreFailure values so callers can tell "no such
quote" apart from "the database is broken" without catching exceptions.
"""

import os
import sqlite3
import logging
import threading
from datetime import datetime, timezone
from contextlib import contextmanager

from src.core.models import (
    Quote, LineItem, QuoteAggregate, Found, Missing, StoreFailure, STATUS_SENT,
)

log = logging.getLogger("continuate.db")

# ── Schema ────────────────────────────────────────────────────────────────────
SCHEMA = """
CREATE TABLE IF NOT EXISTS quotes (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    public_id       TEXT UNIQUE NOT NULL,
    name            TEXT NOT NULL DEFAULT '',
    customer        TEXT NOT NULL DEFAULT '',
    contact_name    TEXT,
    contact_email   TEXT NOT NULL DEFAULT '',
    status          TEXT NOT NULL DEFAULT 'Draft',
    sla_url         TEXT,
    sent_at         TEXT,
    created_at      TEXT NOT NULL,
    valid_until     TEXT,
    currency        TEXT DEFAULT 'USD',
    notes           TEXT
);

CREATE TABLE IF NOT EXISTS quote_items (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    quote_id        INTEGER NOT NULL REFERENCES quotes(id) ON DELETE CASCADE,
    description     TEXT NOT NULL DEFAULT '',
    quantity        REAL DEFAULT 1,
    unit            TEXT DEFAULT 'ea',
    unit_price      REAL DEFAULT 0,
    sort_order      INTEGER DEFAULT 0
);
CREATE INDEX IF NOT EXISTS idx_quote_items_quote ON quote_items(quote_id);

CREATE TABLE IF NOT EXISTS profiles (
    auth_user_id    TEXT PRIMARY KEY,
    role            TEXT,
    full_name       TEXT,
    updated_at      TEXT
);
"""

_QUOTE_COLUMNS = ("public_id", "name", "customer", "contact_name", "contact_email",
                  "status", "sla_url", "sent_at", "created_at", "valid_until",
                  "currency", "notes")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class QuoteStore:
    """Keyed reads and the single status update the delivery flow needs."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._lock = threading.Lock()

    # ── Connection factory ────────────────────────────────────────────────────
    @contextmanager
    def get_db(self):
        """Thread-safe SQLite connection with WAL mode for multi-worker gunicorn."""
        with self._lock:
            conn = sqlite3.connect(self.db_path, timeout=30, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA synchronous=NORMAL")
            conn.execute("PRAGMA foreign_keys=ON")
            try:
                yield conn
                conn.commit()
            except Exception:
                conn.rollback()
                raise
            finally:
                conn.close()

    def init_db(self):
        """Create tables if missing. Safe to call on every start."""
        parent = os.path.dirname(os.path.abspath(self.db_path))
        os.makedirs(parent, exist_ok=True)
        with self.get_db() as conn:
            conn.executescript(SCHEMA)
        log.info("DB schema ready: %s", self.db_path)

    # ── Reads ─────────────────────────────────────────────────────────────────

    def find_quote(self, public_id: str):
        """Exactly one quote by public id → Found(Quote); zero or several → Missing."""
        try:
            with self.get_db() as conn:
                rows = conn.execute(
                    "SELECT * FROM quotes WHERE public_id=? LIMIT 2",
                    (public_id,)).fetchall()
        except sqlite3.Error as e:
            log.error("Quote lookup failed for %s: %s", public_id, e)
            return StoreFailure(e)
        if len(rows) != 1:
            return Missing(f"{len(rows)} rows for public_id")
        return Found(Quote.from_row(rows[0]))

    def list_items(self, quote_pk: int):
        """All line items for a quote (possibly none), in display order."""
        try:
            with self.get_db() as conn:
                rows = conn.execute(
                    "SELECT * FROM quote_items WHERE quote_id=? ORDER BY sort_order, id",
                    (quote_pk,)).fetchall()
        except sqlite3.Error as e:
            log.error("Line item lookup failed for quote %s: %s", quote_pk, e)
            return StoreFailure(e)
        return Found(tuple(LineItem.from_row(r) for r in rows))

    def load_aggregate(self, public_id: str):
        """Quote + its items as one value. Never returns a partial aggregate."""
        found = self.find_quote(public_id)
        if not isinstance(found, Found):
            return found
        items = self.list_items(found.value.id)
        if isinstance(items, StoreFailure):
            return items
        return Found(QuoteAggregate(quote=found.value, items=items.value))

    def get_profile_role(self, auth_user_id: str):
        """Found(role) for a known profile, Missing() when there is none."""
        try:
            with self.get_db() as conn:
                row = conn.execute(
                    "SELECT role FROM profiles WHERE auth_user_id=?",
                    (auth_user_id,)).fetchone()
        except sqlite3.Error as e:
            log.error("Profile lookup failed for %s: %s", auth_user_id, e)
            return StoreFailure(e)
        if row is None:
            return Missing("no profile")
        return Found(row["role"])

    # ── Writes ────────────────────────────────────────────────────────────────

    def mark_sent(self, quote_pk: int, sent_at: str = None) -> str:
        """Set status=Sent and sent_at on one quote. Raises sqlite3.Error on failure."""
        sent_at = sent_at or _now()
        with self.get_db() as conn:
            cur = conn.execute(
                "UPDATE quotes SET status=?, sent_at=? WHERE id=?",
                (STATUS_SENT, sent_at, quote_pk))
            if cur.rowcount != 1:
                raise sqlite3.DatabaseError(f"quote {quote_pk} not updated")
        log.info("Quote %s marked %s at %s", quote_pk, STATUS_SENT, sent_at)
        return sent_at

    def upsert_quote(self, q: dict) -> int:
        """Insert or update a quote keyed by public_id. Returns the internal id."""
        row = {k: q.get(k) for k in _QUOTE_COLUMNS}
        row["created_at"] = row["created_at"] or _now()
        row["status"] = row["status"] or "Draft"
        row["currency"] = row["currency"] or "USD"
        for k in ("name", "customer", "contact_email"):
            row[k] = row[k] or ""
        cols = ", ".join(_QUOTE_COLUMNS)
        marks = ", ".join("?" for _ in _QUOTE_COLUMNS)
        updates = ", ".join(f"{c}=excluded.{c}" for c in _QUOTE_COLUMNS
                            if c not in ("public_id", "created_at"))
        with self.get_db() as conn:
            conn.execute(
                f"INSERT INTO quotes ({cols}) VALUES ({marks}) "
                f"ON CONFLICT(public_id) DO UPDATE SET {updates}",
                tuple(row[c] for c in _QUOTE_COLUMNS))
            pk = conn.execute("SELECT id FROM quotes WHERE public_id=?",
                              (row["public_id"],)).fetchone()["id"]
        return pk

    def add_item(self, quote_pk: int, description: str, quantity: float = 1,
                 unit_price: float = 0.0, unit: str = "ea", sort_order: int = 0) -> int:
        with self.get_db() as conn:
            cur = conn.execute(
                "INSERT INTO quote_items (quote_id, description, quantity, unit, unit_price, sort_order) "
                "VALUES (?,?,?,?,?,?)",
                (quote_pk, description, quantity, unit, unit_price, sort_order))
            return cur.lastrowid

    def upsert_profile(self, auth_user_id: str, role: str, full_name: str = "") -> bool:
        with self.get_db() as conn:
            conn.execute("""
                INSERT INTO profiles (auth_user_id, role, full_name, updated_at)
                VALUES (?,?,?,?)
                ON CONFLICT(auth_user_id) DO UPDATE SET
                  role=excluded.role, full_name=excluded.full_name,
                  updated_at=excluded.updated_at
            """, (auth_user_id, role, full_name, _now()))
        return True

    def get_db_stats(self) -> dict:
        """Row counts per table, for the health endpoint."""
        stats = {}
        with self.get_db() as conn:
            for table in ("quotes", "quote_items", "profiles"):
                stats[table] = conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
        return stats
