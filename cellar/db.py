"""SQLite persistence layer for the storefront tables the assistant touches."""

from __future__ import annotations

import secrets
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Iterator

from cellar.models import AIConnection

SCHEMA_VERSION = 1

_PROFILE_FIELDS = ("name", "phone", "address")


class Database:
    """Small SQLite wrapper with explicit schema management."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self._path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def initialize(self) -> None:
        """Create or migrate schema."""

        with self._connect() as conn:
            conn.execute("CREATE TABLE IF NOT EXISTS schema_version (version INTEGER NOT NULL)")
            row = conn.execute("SELECT version FROM schema_version LIMIT 1").fetchone()
            if row is None:
                self._create_schema(conn)
                conn.execute("INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
            elif row["version"] != SCHEMA_VERSION:
                raise RuntimeError(
                    f"Unsupported schema version {row['version']} (expected {SCHEMA_VERSION})"
                )

    def _create_schema(self, conn: sqlite3.Connection) -> None:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS wines (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                description TEXT,
                type TEXT,
                region TEXT,
                vintage INTEGER,
                price REAL NOT NULL,
                image TEXT,
                stock INTEGER NOT NULL DEFAULT 0,
                is_active INTEGER NOT NULL DEFAULT 1,
                created_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS orders (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                status TEXT NOT NULL,
                total REAL NOT NULL,
                created_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS order_items (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                order_id TEXT NOT NULL,
                wine_id TEXT NOT NULL,
                quantity INTEGER NOT NULL,
                unit_price REAL NOT NULL,
                FOREIGN KEY(order_id) REFERENCES orders(id),
                FOREIGN KEY(wine_id) REFERENCES wines(id)
            );

            CREATE TABLE IF NOT EXISTS profiles (
                user_id TEXT PRIMARY KEY,
                name TEXT,
                email TEXT,
                phone TEXT,
                address TEXT,
                updated_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS payment_methods (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                card_brand TEXT NOT NULL,
                last4 TEXT NOT NULL,
                expiry TEXT,
                is_default INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS user_roles (
                user_id TEXT NOT NULL,
                role TEXT NOT NULL,
                PRIMARY KEY(user_id, role)
            );

            CREATE TABLE IF NOT EXISTS user_ai_connections (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                provider TEXT NOT NULL,
                model_name TEXT NOT NULL,
                api_key TEXT,
                display_name TEXT,
                is_active INTEGER NOT NULL DEFAULT 1,
                created_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS ai_chat_messages (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                connection_id TEXT NOT NULL,
                role TEXT NOT NULL,
                content TEXT NOT NULL,
                created_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS auth_sessions (
                token TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                expires_at TEXT NOT NULL,
                revoked INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL
            );
            """
        )

    # Catalog

    def add_wine(
        self,
        name: str,
        price: float,
        wine_type: str | None = None,
        region: str | None = None,
        description: str | None = None,
        vintage: int | None = None,
        image: str | None = None,
        stock: int = 0,
        is_active: bool = True,
        wine_id: str | None = None,
    ) -> str:
        wine_id = wine_id or str(uuid.uuid4())
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO wines(id, name, description, type, region, vintage, price, image, stock, is_active, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    wine_id,
                    name,
                    description,
                    wine_type,
                    region,
                    vintage,
                    price,
                    image,
                    stock,
                    int(is_active),
                    _utc_now_iso(),
                ),
            )
        return wine_id

    def search_wines(
        self,
        query: str | None = None,
        wine_type: str | None = None,
        region: str | None = None,
        limit: int = 10,
    ) -> list[dict[str, Any]]:
        clauses = ["is_active = 1"]
        params: list[Any] = []
        if query:
            clauses.append("(name LIKE ? OR description LIKE ?)")
            params.extend([f"%{query}%", f"%{query}%"])
        if wine_type:
            clauses.append("type = ?")
            params.append(wine_type)
        if region:
            clauses.append("region LIKE ?")
            params.append(f"%{region}%")
        params.append(limit)
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT * FROM wines WHERE {' AND '.join(clauses)} ORDER BY name LIMIT ?",
                params,
            ).fetchall()
        return [_wine_dict(row) for row in rows]

    def get_wine(self, wine_id: str) -> dict[str, Any] | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM wines WHERE id = ?", (wine_id,)).fetchone()
        return _wine_dict(row) if row else None

    # Orders

    def create_order(self, user_id: str, items: list[tuple[str, int]], status: str = "pending") -> str:
        """Create an order from (wine_id, quantity) pairs priced at current catalog prices."""

        order_id = str(uuid.uuid4())
        with self._connect() as conn:
            priced: list[tuple[str, int, float]] = []
            for wine_id, quantity in items:
                row = conn.execute("SELECT price FROM wines WHERE id = ?", (wine_id,)).fetchone()
                if row is None:
                    raise ValueError(f"Unknown wine: {wine_id}")
                priced.append((wine_id, quantity, float(row["price"])))
            total = round(sum(quantity * price for _, quantity, price in priced), 2)
            conn.execute(
                "INSERT INTO orders(id, user_id, status, total, created_at) VALUES (?, ?, ?, ?, ?)",
                (order_id, user_id, status, total, _utc_now_iso()),
            )
            conn.executemany(
                "INSERT INTO order_items(order_id, wine_id, quantity, unit_price) VALUES (?, ?, ?, ?)",
                [(order_id, wine_id, quantity, price) for wine_id, quantity, price in priced],
            )
        return order_id

    def list_orders(self, user_id: str, limit: int = 10) -> list[dict[str, Any]]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT id, user_id, status, total, created_at
                FROM orders
                WHERE user_id = ?
                ORDER BY created_at DESC, rowid DESC
                LIMIT ?
                """,
                (user_id, limit),
            ).fetchall()
            orders = []
            for row in rows:
                order = dict(row)
                order["order_items"] = self._order_items(conn, order["id"], full_wine=False)
                orders.append(order)
        return orders

    def get_order(self, user_id: str, order_id: str) -> dict[str, Any] | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT id, user_id, status, total, created_at FROM orders WHERE id = ? AND user_id = ?",
                (order_id, user_id),
            ).fetchone()
            if row is None:
                return None
            order = dict(row)
            order["order_items"] = self._order_items(conn, order_id, full_wine=True)
        return order

    def _order_items(self, conn: sqlite3.Connection, order_id: str, full_wine: bool) -> list[dict[str, Any]]:
        rows = conn.execute(
            """
            SELECT oi.id, oi.order_id, oi.wine_id, oi.quantity, oi.unit_price, w.id AS w_id, w.name AS w_name,
                   w.image AS w_image
            FROM order_items oi
            JOIN wines w ON w.id = oi.wine_id
            WHERE oi.order_id = ?
            ORDER BY oi.id
            """,
            (order_id,),
        ).fetchall()
        items = []
        for row in rows:
            item = {
                "id": row["id"],
                "order_id": row["order_id"],
                "wine_id": row["wine_id"],
                "quantity": row["quantity"],
                "unit_price": row["unit_price"],
            }
            if full_wine:
                wine = conn.execute("SELECT * FROM wines WHERE id = ?", (row["w_id"],)).fetchone()
                item["wines"] = _wine_dict(wine)
            else:
                item["wines"] = {"name": row["w_name"], "image": row["w_image"]}
            items.append(item)
        return items

    # Profiles and payment methods

    def upsert_profile(self, user_id: str, **fields: Any) -> None:
        allowed = {k: v for k, v in fields.items() if k in (*_PROFILE_FIELDS, "email")}
        now = _utc_now_iso()
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO profiles(user_id, updated_at) VALUES (?, ?) ON CONFLICT(user_id) DO NOTHING",
                (user_id, now),
            )
            for column, value in allowed.items():
                conn.execute(
                    f"UPDATE profiles SET {column} = ?, updated_at = ? WHERE user_id = ?",
                    (value, now, user_id),
                )

    def get_profile(self, user_id: str) -> dict[str, Any] | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM profiles WHERE user_id = ?", (user_id,)).fetchone()
        return dict(row) if row else None

    def update_profile(self, user_id: str, updates: dict[str, str]) -> dict[str, Any] | None:
        """Apply whitelisted profile updates; returns None when the user has no profile."""

        columns = [column for column in _PROFILE_FIELDS if column in updates]
        with self._connect() as conn:
            if columns:
                assignments = ", ".join(f"{column} = ?" for column in columns)
                conn.execute(
                    f"UPDATE profiles SET {assignments}, updated_at = ? WHERE user_id = ?",
                    (*[updates[column] for column in columns], _utc_now_iso(), user_id),
                )
            row = conn.execute("SELECT * FROM profiles WHERE user_id = ?", (user_id,)).fetchone()
        return dict(row) if row else None

    def add_payment_method(
        self,
        user_id: str,
        card_brand: str,
        last4: str,
        expiry: str | None = None,
        is_default: bool = False,
    ) -> str:
        method_id = str(uuid.uuid4())
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO payment_methods(id, user_id, card_brand, last4, expiry, is_default, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (method_id, user_id, card_brand, last4, expiry, int(is_default), _utc_now_iso()),
            )
        return method_id

    def list_payment_methods(self, user_id: str) -> list[dict[str, Any]]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT id, user_id, card_brand, last4, expiry, is_default, created_at
                FROM payment_methods
                WHERE user_id = ?
                ORDER BY is_default DESC, created_at ASC
                """,
                (user_id,),
            ).fetchall()
        return [{**dict(row), "is_default": bool(row["is_default"])} for row in rows]

    # Roles

    def add_role(self, user_id: str, role: str) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO user_roles(user_id, role) VALUES (?, ?) ON CONFLICT DO NOTHING",
                (user_id, role),
            )

    def has_role(self, user_id: str, role: str) -> bool:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT 1 FROM user_roles WHERE user_id = ? AND role = ?", (user_id, role)
            ).fetchone()
        return row is not None

    # AI connections

    def create_connection(
        self,
        user_id: str,
        provider: str,
        model_name: str,
        api_key: str | None = None,
        display_name: str | None = None,
        is_active: bool = True,
    ) -> AIConnection:
        connection = AIConnection(
            id=str(uuid.uuid4()),
            user_id=user_id,
            provider=provider,
            model_name=model_name,
            api_key=api_key,
            display_name=display_name,
            is_active=is_active,
            created_at=_utc_now_iso(),
        )
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO user_ai_connections(id, user_id, provider, model_name, api_key, display_name, is_active, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    connection.id,
                    connection.user_id,
                    connection.provider,
                    connection.model_name,
                    connection.api_key,
                    connection.display_name,
                    int(connection.is_active),
                    connection.created_at,
                ),
            )
        return connection

    def get_connection(self, connection_id: str, user_id: str) -> AIConnection | None:
        """Return the connection only when it belongs to ``user_id``."""

        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM user_ai_connections WHERE id = ? AND user_id = ?",
                (connection_id, user_id),
            ).fetchone()
        return _connection(row) if row else None

    def list_connections(self, user_id: str) -> list[AIConnection]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM user_ai_connections WHERE user_id = ? ORDER BY created_at DESC, rowid DESC",
                (user_id,),
            ).fetchall()
        return [_connection(row) for row in rows]

    def delete_connection(self, connection_id: str, user_id: str) -> bool:
        with self._connect() as conn:
            cur = conn.execute(
                "DELETE FROM user_ai_connections WHERE id = ? AND user_id = ?",
                (connection_id, user_id),
            )
            return cur.rowcount > 0

    # Chat history

    def add_chat_exchange(
        self,
        user_id: str,
        connection_id: str,
        user_content: str,
        assistant_content: str,
    ) -> None:
        """Persist one user message and its assistant reply in a single transaction."""

        now = _utc_now_iso()
        with self._connect() as conn:
            conn.executemany(
                """
                INSERT INTO ai_chat_messages(user_id, connection_id, role, content, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                [
                    (user_id, connection_id, "user", user_content, now),
                    (user_id, connection_id, "assistant", assistant_content, now),
                ],
            )

    def list_chat_messages(
        self,
        user_id: str,
        connection_id: str | None = None,
        limit: int = 100,
    ) -> list[dict[str, Any]]:
        query = "SELECT id, user_id, connection_id, role, content, created_at FROM ai_chat_messages WHERE user_id = ?"
        params: list[Any] = [user_id]
        if connection_id is not None:
            query += " AND connection_id = ?"
            params.append(connection_id)
        query += " ORDER BY id DESC LIMIT ?"
        params.append(limit)
        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [dict(row) for row in reversed(rows)]

    # Sessions

    def create_session(self, user_id: str, ttl: timedelta = timedelta(hours=1), token: str | None = None) -> str:
        token = token or secrets.token_urlsafe(32)
        now = datetime.now(timezone.utc)
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO auth_sessions(token, user_id, expires_at, revoked, created_at) VALUES (?, ?, ?, 0, ?)",
                (token, user_id, (now + ttl).isoformat(), now.isoformat()),
            )
        return token

    def get_session_user(self, token: str, now: datetime) -> str | None:
        """Return the user id for a live, unrevoked session token."""

        with self._connect() as conn:
            row = conn.execute(
                "SELECT user_id FROM auth_sessions WHERE token = ? AND revoked = 0 AND expires_at > ?",
                (token, now.astimezone(timezone.utc).isoformat()),
            ).fetchone()
        return row["user_id"] if row else None

    def revoke_session(self, token: str) -> None:
        with self._connect() as conn:
            conn.execute("UPDATE auth_sessions SET revoked = 1 WHERE token = ?", (token,))


def _wine_dict(row: sqlite3.Row) -> dict[str, Any]:
    wine = dict(row)
    wine["is_active"] = bool(wine["is_active"])
    return wine


def _connection(row: sqlite3.Row) -> AIConnection:
    return AIConnection(
        id=row["id"],
        user_id=row["user_id"],
        provider=row["provider"],
        model_name=row["model_name"],
        api_key=row["api_key"],
        display_name=row["display_name"],
        is_active=bool(row["is_active"]),
        created_at=row["created_at"],
    )


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
