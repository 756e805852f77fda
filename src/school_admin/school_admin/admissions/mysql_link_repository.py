from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import ApplicationLink
from .repository import LinkRepository

_COLUMNS = "token, link_type, expires_at, created_at, created_by"


def _row_to_link(r: dict) -> ApplicationLink:
    return ApplicationLink(
        token=r["token"],
        link_type=r["link_type"],
        expires_at=r["expires_at"],
        created_at=r.get("created_at"),
        created_by=int(r["created_by"]) if r.get("created_by") is not None else None,
    )


class MySQLLinkRepository(LinkRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, token: str) -> Optional[ApplicationLink]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM application_links WHERE token=%s", (token,))
            r = fetchone(cur)
            return _row_to_link(r) if r else None

    def latest(self, link_type: str) -> Optional[ApplicationLink]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM application_links WHERE link_type=%s ORDER BY expires_at DESC LIMIT 1",
                (link_type,),
            )
            r = fetchone(cur)
            return _row_to_link(r) if r else None

    def rotate(
        self,
        *,
        token: str,
        link_type: str,
        now: datetime,
        expire_at: datetime,
        expires_at: datetime,
        created_by: Optional[int],
    ) -> tuple[ApplicationLink, int]:
        with db_cursor(self._conn_factory) as (_, cur):
            # locks the type's index range so a concurrent rotation waits here
            cur.execute("SELECT token FROM application_links WHERE link_type=%s FOR UPDATE", (link_type,))
            cur.fetchall()
            cur.execute(
                "UPDATE application_links SET expires_at=%s WHERE link_type=%s AND expires_at > %s",
                (expire_at, link_type, now),
            )
            expired = int(cur.rowcount)
            cur.execute(
                """
                INSERT INTO application_links(token, link_type, expires_at, created_by)
                VALUES(%s,%s,%s,%s)
                """,
                (token, link_type, expires_at, created_by),
            )
            cur.execute(f"SELECT {_COLUMNS} FROM application_links WHERE token=%s", (token,))
            return _row_to_link(fetchone(cur)), expired
