"""
Tool inventory data access layer backed by MongoDB.

Wraps the ``tools``, ``categories``, ``tags`` and ``users`` collections behind
a small set of operations used by the normalizer, the query compiler and the
HTTP layer. Filters are plain pymongo filter documents.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database
from pymongo.errors import BulkWriteError, DuplicateKeyError
from pymongo.server_api import ServerApi

from toolinv.utils.logger import get_logger

logger = get_logger("data.tool_store")

DUPLICATE_KEY_CODE = 11000

TOOLS = "tools"
CATEGORIES = "categories"
TAGS = "tags"
USERS = "users"

_client: Optional[MongoClient] = None
_db: Optional[Database] = None


class ToolStoreError(RuntimeError):
    """Raised when the tool store encounters an error."""


class ToolNotFoundError(ToolStoreError):
    """Raised when a tool id is malformed or does not exist."""

    def __init__(self, tool_id: str):
        super().__init__(f"Tool not found: {tool_id}")
        self.tool_id = tool_id


def connect(uri: str, db_name: str = "tools_inventory") -> Database:
    """Return the process-wide database handle, connecting on first use."""
    global _client, _db
    if _db is not None:
        return _db

    _client = MongoClient(uri, server_api=ServerApi("1"))
    _db = _client[db_name]
    logger.info(f"Connected to MongoDB database '{db_name}'")
    return _db


def close() -> None:
    """Close the process-wide client, if any."""
    global _client, _db
    if _client is not None:
        _client.close()
    _client = None
    _db = None


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _object_id(tool_id: str) -> ObjectId:
    try:
        return ObjectId(tool_id)
    except (InvalidId, TypeError):
        raise ToolNotFoundError(tool_id)


def is_duplicate_only(error: BulkWriteError) -> bool:
    """True when every write error in a bulk failure is a duplicate-key conflict."""
    write_errors = (error.details or {}).get("writeErrors") or []
    if not write_errors:
        return False
    if (error.details or {}).get("writeConcernErrors"):
        return False
    return all(err.get("code") == DUPLICATE_KEY_CODE for err in write_errors)


@dataclass
class ToolStore:
    """
    Document store for the tool inventory.
    """
    db: Database

    def ensure_indexes(self) -> None:
        """Unique names make lazy category/tag creation idempotent under races."""
        self.db[CATEGORIES].create_index([("name", ASCENDING)], unique=True)
        self.db[TAGS].create_index([("name", ASCENDING)], unique=True)
        self.db[USERS].create_index([("username", ASCENDING)], unique=True)

    #  Tools

    def find_tools(
        self,
        filters: Dict[str, Any],
        projection: Optional[Dict[str, int]] = None,
    ) -> List[Dict[str, Any]]:
        logger.debug(f"find tools: filter={filters!r}")
        return list(self.db[TOOLS].find(filters, projection))

    def get_tool(self, tool_id: str) -> Dict[str, Any]:
        tool = self.db[TOOLS].find_one({"_id": _object_id(tool_id)})
        if tool is None:
            raise ToolNotFoundError(tool_id)
        return tool

    def insert_tool(self, record: Dict[str, Any]) -> str:
        result = self.db[TOOLS].insert_one(dict(record))
        return str(result.inserted_id)

    def update_tool(self, tool_id: str, record: Dict[str, Any]) -> None:
        """Replace the stored document with ``record``, keeping its ``_id``.

        Legacy keys (``rack``, ``specs``, ...) and optional fields the new
        record leaves out do not survive an update.
        """
        result = self.db[TOOLS].replace_one({"_id": _object_id(tool_id)}, dict(record))
        if result.matched_count == 0:
            raise ToolNotFoundError(tool_id)

    def delete_tool(self, tool_id: str) -> None:
        result = self.db[TOOLS].delete_one({"_id": _object_id(tool_id)})
        if result.deleted_count == 0:
            raise ToolNotFoundError(tool_id)

    def distinct_values(self, field: str) -> List[Any]:
        """Distinct non-empty values of a tool field."""
        return [v for v in self.db[TOOLS].distinct(field) if v not in (None, "")]

    #  Categories

    def find_category(self, name: str) -> Optional[Dict[str, Any]]:
        return self.db[CATEGORIES].find_one({"name": name})

    def create_category(self, name: str) -> bool:
        """Insert a category. Returns False when another writer created it first."""
        try:
            self.db[CATEGORIES].insert_one({"name": name, "createdAt": utcnow()})
        except DuplicateKeyError:
            logger.info(f"Category '{name}' created concurrently; reusing it")
            return False
        return True

    def list_categories(self) -> List[Dict[str, Any]]:
        return list(self.db[CATEGORIES].find({}, {"_id": 0}).sort("name", ASCENDING))

    #  Tags

    def find_tags(self, names: Iterable[str]) -> List[Dict[str, Any]]:
        return list(self.db[TAGS].find({"name": {"$in": list(names)}}))

    def create_tags(self, names: List[str]) -> List[str]:
        """Bulk-insert tags, unordered. Duplicate-key conflicts are not errors.

        Returns the names this call actually inserted. Any other failure
        propagates as the original pymongo exception.
        """
        if not names:
            return []
        now = utcnow()
        try:
            self.db[TAGS].insert_many(
                [{"name": name, "createdAt": now} for name in names],
                ordered=False,
            )
        except BulkWriteError as e:
            if not is_duplicate_only(e):
                raise
            conflicted = {err.get("index") for err in e.details["writeErrors"]}
            logger.info(f"Some tags in {names} were created concurrently; reusing them")
            return [name for i, name in enumerate(names) if i not in conflicted]
        return list(names)

    def list_tags(self) -> List[Dict[str, Any]]:
        return list(self.db[TAGS].find({}, {"_id": 0}).sort("name", ASCENDING))

    #  Users

    def find_user(self, username: str) -> Optional[Dict[str, Any]]:
        return self.db[USERS].find_one({"username": username})

    def create_user(self, username: str, password_hash: str) -> bool:
        """Insert a user. Returns False if the username is taken."""
        try:
            self.db[USERS].insert_one(
                {"username": username, "passwordHash": password_hash, "createdAt": utcnow()}
            )
        except DuplicateKeyError:
            return False
        return True
