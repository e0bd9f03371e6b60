from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from pymongo import MongoClient
from pymongo.database import Database

logger = logging.getLogger(__name__)


@dataclass
class DBConfig:
    uri: str
    database: str
    server_selection_timeout_ms: int = 5000
    max_pool_size: int = 10


class DatabaseConnection:
    """Owns the process-wide MongoClient.

    Built once by the container at startup and closed on shutdown; every
    repository receives this object instead of reaching for a global.
    """

    def __init__(self, config: DBConfig, client: Optional[MongoClient] = None):
        # a client passed in is used as is; open() only connects when none was given
        self._config = config
        self._client = client

    @property
    def name(self) -> str:
        return self._config.database

    def open(self) -> "DatabaseConnection":
        if self._client is None:
            self._client = MongoClient(
                self._config.uri,
                serverSelectionTimeoutMS=self._config.server_selection_timeout_ms,
                maxPoolSize=self._config.max_pool_size,
                tz_aware=False,
            )
            logger.info("mongo client opened db=%s", self._config.database)
        return self

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
            logger.info("mongo client closed db=%s", self._config.database)

    @property
    def db(self) -> Database:
        if self._client is None:
            raise RuntimeError("DatabaseConnection is not open")
        return self._client[self._config.database]

    def collection(self, name: str):
        return self.db[name]

    def ping(self) -> bool:
        self.db.command("ping")
        return True
