# ==============================
# MongoDB Source
# ==============================
"""
Thin "source" collaborator: a named MongoClient scoped to one database.

Rules:
- Connection pooling, retries and server selection belong to pymongo.
- Tools receive the client as a shared, non-owned handle.
- close() is called by the host at shutdown, never by a tool.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Type

from pydantic import BaseModel, ConfigDict, Field
from pymongo import MongoClient

logger = logging.getLogger(__name__)

SOURCE_KIND = "mongodb"


class MongoDBSourceConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    name: str = Field(..., description="Source name referenced by tools.")
    kind: str = Field(default=SOURCE_KIND)
    uri: str = Field(..., description="mongodb:// or mongodb+srv:// connection string.")
    database: str = Field(..., description="Database all bound tools are scoped to.")
    app_name: Optional[str] = Field(default="atlas-tools", alias="appName")
    timeout_ms: Optional[int] = Field(default=None, alias="timeoutMS", ge=0)

    def initialize(self) -> "MongoDBSource":
        options: Dict[str, Any] = {}
        if self.app_name:
            options["appname"] = self.app_name
        if self.timeout_ms is not None:
            options["timeoutMS"] = self.timeout_ms
        # MongoClient connects in the background; construction does not block
        client: MongoClient = MongoClient(self.uri, **options)
        logger.info("mongodb source initialized", extra={"data": {"source": self.name, "database": self.database}})
        return MongoDBSource(name=self.name, client=client, database=self.database)


class MongoDBSource:
    kind: str = SOURCE_KIND

    def __init__(self, *, name: str, client: Any, database: str) -> None:
        self.name = name
        self.client = client
        self._database = database

    def database_name(self) -> str:
        return self._database

    def close(self) -> None:
        self.client.close()


SOURCE_KINDS: Dict[str, Type[MongoDBSourceConfig]] = {
    SOURCE_KIND: MongoDBSourceConfig,
}
