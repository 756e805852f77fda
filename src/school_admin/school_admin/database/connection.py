from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional

import mysql.connector
from mysql.connector import errors
from mysql.connector.constants import ClientFlag

logger = logging.getLogger(__name__)


@dataclass
class DBConfig:
    host: str
    port: int
    user: str
    password: str
    database: str
    connection_timeout: int = 10
    connect_retries: int = 3


class DatabaseConnection:
    """Singleton-like DB connection factory.

    Note: We create short-lived connections per operation (safe for simple Flask apps).
    Only the connect step is retried; a failed connect has not run any statement yet.
    """

    _instance: Optional["DatabaseConnection"] = None

    def __init__(self, config: DBConfig, *, sleep=time.sleep):
        self._config = config
        self._sleep = sleep

    @classmethod
    def get_instance(cls, config: DBConfig) -> "DatabaseConnection":
        if cls._instance is None:
            cls._instance = DatabaseConnection(config)
        return cls._instance

    def _connect_once(self):
        return mysql.connector.connect(
            host=self._config.host,
            port=int(self._config.port),
            user=self._config.user,
            password=self._config.password,
            database=self._config.database,
            connection_timeout=int(self._config.connection_timeout),
            # rowcount = matched rows, so an UPDATE that changes nothing still reports success
            client_flags=[ClientFlag.FOUND_ROWS],
        )

    def connect(self):
        attempts = max(1, int(self._config.connect_retries))
        for attempt in range(attempts):
            try:
                return self._connect_once()
            except (errors.InterfaceError, errors.OperationalError) as e:
                if attempt == attempts - 1:
                    raise
                wait_time = min(2 ** attempt * 0.2, 2.0)
                logger.warning(
                    "DB connect failed (attempt %d/%d): %s; retrying in %.1fs",
                    attempt + 1, attempts, e, wait_time,
                )
                self._sleep(wait_time)
