from __future__ import annotations

import logging
import re
import uuid
from pathlib import Path
from typing import Iterable

import mysql.connector
from werkzeug.security import generate_password_hash

from .connection import DBConfig

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parent / "schema.sql"

DEMO_USERS = (
    ("Teacher Demo", "teacher@example.com", "teacher", "teacher123"),
    ("Alice Student", "alice@example.com", "student", "student123"),
    ("Bob Student", "bob@example.com", "student", "student123"),
)


def as_db_config(db_config: dict) -> DBConfig:
    return DBConfig(
        host=str(db_config.get("host", "localhost")),
        port=int(db_config.get("port", 3306)),
        user=str(db_config.get("user", "root")),
        password=str(db_config.get("password", "")),
        database=str(db_config.get("database", "attendance_portal")),
    )


def _strip_create_db_and_use(sql: str) -> str:
    # Keep schema.sql usable regardless of the configured DB name.
    sql = re.sub(r"(?im)^\s*CREATE\s+DATABASE\b.*?;\s*$", "", sql)
    sql = re.sub(r"(?im)^\s*USE\b.*?;\s*$", "", sql)
    sql = re.sub(r"(?m)^\s*--.*$", "", sql)
    return sql


def iter_sql_statements(sql: str) -> Iterable[str]:
    """Split a script on ';' outside of quoted strings."""
    buf: list[str] = []
    quote = None

    for ch in sql:
        if quote:
            buf.append(ch)
            if ch == quote:
                quote = None
            continue

        if ch in ("'", '"'):
            quote = ch
            buf.append(ch)
            continue

        if ch == ";":
            stmt = "".join(buf).strip()
            buf.clear()
            if stmt:
                yield stmt
            continue

        buf.append(ch)

    tail = "".join(buf).strip()
    if tail:
        yield tail


def _connect(target: DBConfig, *, with_database: bool = True):
    kwargs = dict(host=target.host, port=target.port, user=target.user, password=target.password)
    if with_database:
        kwargs["database"] = target.database
    return mysql.connector.connect(**kwargs)


def apply_schema(db_config: dict, *, schema_path: str | Path = SCHEMA_PATH) -> None:
    target = as_db_config(db_config)

    conn = _connect(target, with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{target.database}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
        )
        conn.commit()
    finally:
        conn.close()

    sql = _strip_create_db_and_use(Path(schema_path).read_text(encoding="utf-8"))
    conn = _connect(target)
    try:
        cur = conn.cursor()
        for stmt in iter_sql_statements(sql):
            cur.execute(stmt)
        conn.commit()
    finally:
        conn.close()
    logger.info("schema applied to %s@%s/%s", target.user, target.host, target.database)


def ensure_demo_users(db_config: dict) -> None:
    target = as_db_config(db_config)
    conn = _connect(target)
    try:
        cur = conn.cursor(dictionary=True)
        for name, email, role, password in DEMO_USERS:
            cur.execute("SELECT id FROM users WHERE email=%s", (email,))
            existing = cur.fetchone()
            password_hash = generate_password_hash(password)
            if existing:
                cur.execute(
                    "UPDATE users SET name=%s, role=%s, password_hash=%s WHERE id=%s",
                    (name, role, password_hash, existing["id"]),
                )
            else:
                cur.execute(
                    "INSERT INTO users (id, name, email, role, password_hash) VALUES (%s, %s, %s, %s, %s)",
                    (str(uuid.uuid4()), name, email, role, password_hash),
                )
        conn.commit()
    finally:
        conn.close()
    logger.info("demo users ready (%d)", len(DEMO_USERS))
